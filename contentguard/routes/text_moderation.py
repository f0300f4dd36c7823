"""Session endpoints for text moderation"""
from flask import Blueprint
from flask_login import current_user, login_required

from contentguard.schemas import ContentType, HistoryQuery, ModerateTextRequest
from contentguard.services.registry import get_services
from contentguard.utils.error_handlers import (
    api_success_response,
    handle_api_error,
    validate_json_request,
    validate_query_params,
)

text_moderation_bp = Blueprint('text_moderation', __name__)


@text_moderation_bp.route('', methods=['POST'])
@login_required
@validate_json_request(ModerateTextRequest)
@handle_api_error
async def moderate_text(validated_data=None):
    result = await get_services().orchestrator.moderate_text(
        current_user.id, validated_data.text, override=validated_data.settings)
    return api_success_response(result)


@text_moderation_bp.route('/history', methods=['GET'])
@login_required
@validate_query_params(HistoryQuery)
@handle_api_error
async def text_history(validated_params=None):
    """Newest-first text moderation logs for the signed-in user"""
    history = await get_services().log_writer.history(
        current_user.id, ContentType.TEXT.value, validated_params)
    return api_success_response(history.value)
