"""Session endpoints for image moderation"""
from flask import Blueprint, request
from flask_login import current_user, login_required

from contentguard.errors import ValidationError
from contentguard.schemas import ContentType, HistoryQuery, ModerateImageUrlRequest
from contentguard.services.registry import get_services
from contentguard.utils.error_handlers import (
    api_success_response,
    handle_api_error,
    validate_json_request,
    validate_query_params,
)

image_moderation_bp = Blueprint('image_moderation', __name__)


def read_uploaded_image(field='image'):
    """Return (bytes, filename, mimetype) for a multipart upload"""
    upload = request.files.get(field)
    if upload is None or not upload.filename:
        raise ValidationError('No image file provided')
    return upload.read(), upload.filename, upload.mimetype


@image_moderation_bp.route('', methods=['POST'])
@login_required
@handle_api_error
async def moderate_image():
    image_bytes, filename, mimetype = read_uploaded_image()
    result = await get_services().orchestrator.moderate_image(
        current_user.id, image_bytes, filename=filename, content_type=mimetype)
    return api_success_response(result)


@image_moderation_bp.route('/url', methods=['POST'])
@login_required
@validate_json_request(ModerateImageUrlRequest)
@handle_api_error
async def moderate_image_url(validated_data=None):
    result = await get_services().orchestrator.moderate_image_url(
        current_user.id, validated_data.image_url, override=validated_data.settings)
    return api_success_response(result)


@image_moderation_bp.route('/history', methods=['GET'])
@login_required
@validate_query_params(HistoryQuery)
@handle_api_error
async def image_history(validated_params=None):
    history = await get_services().log_writer.history(
        current_user.id, ContentType.IMAGE.value, validated_params)
    return api_success_response(history.value)
