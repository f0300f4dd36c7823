"""Moderation settings, category catalogue and API key management"""
from flask import Blueprint, current_app
from flask_login import current_user, login_required

from config.default_settings import MODERATION_CATEGORIES
from contentguard.schemas import APIKeyCreateRequest, APIKeyUpdateRequest, SettingsUpdateRequest
from contentguard.services.registry import get_services
from contentguard.utils.error_handlers import api_success_response, handle_api_error, validate_json_request

settings_bp = Blueprint('settings', __name__)


@settings_bp.route('', methods=['GET'])
@login_required
@handle_api_error
async def get_settings():
    result = await get_services().settings_store.get(current_user.id)
    if result.degraded:
        current_app.logger.warning(f"Serving default settings to {current_user.id}: {result.error}")
    return api_success_response(result.value.to_dict())


@settings_bp.route('', methods=['PUT'])
@login_required
@validate_json_request(SettingsUpdateRequest)
@handle_api_error
async def update_settings(validated_data=None):
    result = await get_services().settings_store.update(current_user.id, validated_data.changes())

    message = None
    if not result.persisted:
        current_app.logger.warning(f"Settings for {current_user.id} were not persisted: {result.error}")
        message = 'Settings could not be saved; the returned values apply to this session only'

    return api_success_response(result.value.to_dict(), message=message)


@settings_bp.route('/categories', methods=['GET'])
@login_required
def get_categories():
    return api_success_response(MODERATION_CATEGORIES)


@settings_bp.route('/api-key', methods=['POST'])
@login_required
@validate_json_request(APIKeyCreateRequest)
@handle_api_error
async def create_api_key(validated_data=None):
    """Create an API key; the key string is returned only in this response"""
    api_key = await get_services().api_keys.create(
        current_user.id, validated_data.name, validated_data.rate_limit)
    return api_success_response({'api_key': api_key}, message='API key created'), 201


@settings_bp.route('/api-keys', methods=['GET'])
@login_required
@handle_api_error
async def list_api_keys():
    result = await get_services().api_keys.list_keys(current_user.id)
    return api_success_response({'api_keys': result.value})


@settings_bp.route('/api-key/<key_id>', methods=['PUT'])
@login_required
@validate_json_request(APIKeyUpdateRequest)
@handle_api_error
async def update_api_key(key_id, validated_data=None):
    api_key = await get_services().api_keys.update(current_user.id, key_id, validated_data.changes())
    return api_success_response({'api_key': api_key})


@settings_bp.route('/api-key/<key_id>', methods=['DELETE'])
@login_required
@handle_api_error
async def delete_api_key(key_id):
    await get_services().api_keys.delete(current_user.id, key_id)
    return api_success_response(message='API key deleted')
