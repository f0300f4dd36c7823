"""
External moderation API authenticated by x-api-key.
Each call runs as the key's owner and may carry a per-call settings override.
"""
import json

from flask import Blueprint, request

from contentguard.errors import ValidationError
from contentguard.routes.image_moderation import read_uploaded_image
from contentguard.schemas import ModerateImageUrlRequest, ModerateTextRequest, SettingsOverride
from contentguard.services.registry import get_services
from contentguard.utils.auth import require_api_key
from contentguard.utils.error_handlers import (
    api_success_response,
    handle_api_error,
    parse_model,
    validate_json_request,
)

external_bp = Blueprint('external', __name__)


def _form_override():
    """Parse the optional JSON 'settings' form field of a multipart request"""
    raw = request.form.get('settings')
    if not raw:
        return None
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        raise ValidationError('settings must be a JSON object')
    if not isinstance(data, dict):
        raise ValidationError('settings must be a JSON object')
    return parse_model(SettingsOverride, data)


@external_bp.route('/moderate-text', methods=['POST'])
@require_api_key
@validate_json_request(ModerateTextRequest)
@handle_api_error
async def moderate_text(validated_data=None):
    result = await get_services().orchestrator.moderate_text(
        request.api_key.user_id, validated_data.text, override=validated_data.settings)
    return api_success_response(result)


@external_bp.route('/moderate-image', methods=['POST'])
@require_api_key
@handle_api_error
async def moderate_image():
    override = _form_override()
    image_bytes, filename, mimetype = read_uploaded_image()
    result = await get_services().orchestrator.moderate_image(
        request.api_key.user_id, image_bytes, filename=filename,
        content_type=mimetype, override=override)
    return api_success_response(result)


@external_bp.route('/moderate-image-url', methods=['POST'])
@require_api_key
@validate_json_request(ModerateImageUrlRequest)
@handle_api_error
async def moderate_image_url(validated_data=None):
    result = await get_services().orchestrator.moderate_image_url(
        request.api_key.user_id, validated_data.image_url, override=validated_data.settings)
    return api_success_response(result)
