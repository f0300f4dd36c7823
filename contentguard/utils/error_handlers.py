"""
Error handling utilities for consistent error responses
"""
import logging
from functools import wraps

from flask import current_app, jsonify, request
from flask_login import current_user
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from contentguard.errors import APIError, ContentFetchError, ModerationProviderError, ValidationError
from contentguard.services.error_tracker import error_tracker

logger = logging.getLogger(__name__)

# Error categories reported to the error tracker
_TRACKED_TYPES = {
    ModerationProviderError: 'provider',
    ContentFetchError: 'provider',
}


def api_error_response(message, status_code=400, error_code=None, details=None):
    """Generate standardized API error response"""
    response_data = {
        'success': False,
        'error': message
    }

    if error_code:
        response_data['error_code'] = error_code

    if details:
        response_data['details'] = details

    return jsonify(response_data), status_code


def api_success_response(data=None, message=None):
    """Generate standardized API success response"""
    response_data = {'success': True}

    if message:
        response_data['message'] = message

    if data:
        response_data.update(data)

    return jsonify(response_data)


def error_response_for(error: APIError):
    """Convert an APIError into the JSON error envelope"""
    details = dict(error.details)
    provider_message = getattr(error, 'provider_message', None)
    if provider_message and current_app.config.get('EXPOSE_ERROR_DETAILS'):
        details['message'] = provider_message
    return api_error_response(error.message, error.status_code, error.error_code, details)


def _field_errors(e: PydanticValidationError):
    error_details = []
    for error in e.errors():
        field = '.'.join(str(loc) for loc in error['loc'])
        error_details.append(f"{field}: {error['msg']}")
    return error_details


def _request_user_id():
    """Owner of the current request: the API key holder, else the session user"""
    api_key = getattr(request, 'api_key', None)
    if api_key is not None:
        return api_key.user_id
    if current_user.is_authenticated:
        return current_user.id
    return None


def handle_api_error(f):
    """Decorator to handle API errors consistently"""
    @wraps(f)
    async def decorated_function(*args, **kwargs):
        try:
            return await f(*args, **kwargs)
        except APIError as e:
            error_type = _TRACKED_TYPES.get(type(e))
            if error_type:
                logger.error(f"{type(e).__name__} in {f.__name__}: {getattr(e, 'provider_message', e.message)}")
                error_tracker.track_error(error_type, e.message, user_id=_request_user_id(),
                                          details={'endpoint': request.path})
            else:
                logger.warning(f"API error in {f.__name__}: {e.message}")
            return error_response_for(e)
        except Exception as e:
            logger.error(f"Unexpected error in {f.__name__}: {str(e)}", exc_info=True)
            error_tracker.track_error('api', str(e), user_id=_request_user_id(),
                                      details={'endpoint': request.path})
            return api_error_response("Internal server error", 500)

    return decorated_function


def parse_model(schema_class: BaseModel, data, message="Invalid input data"):
    """
    Validate a plain dict against a schema, raising the API ValidationError
    so callers can render it with error_response_for
    """
    try:
        return schema_class(**data)
    except PydanticValidationError as e:
        raise ValidationError(message, details={"field_errors": _field_errors(e)})


def _coerce_query_value(value: str):
    """Query strings carry no types; map digits and true/false before validation"""
    if value.isdigit():
        return int(value)
    if value.lower() in ('true', 'false'):
        return value.lower() == 'true'
    return value


def validate_json_request(schema_class: BaseModel):
    """
    Decorator to validate a JSON object body against a Pydantic schema.
    The parsed model is passed to the view as 'validated_data'.
    """
    def decorator(f):
        @wraps(f)
        async def decorated_function(*args, **kwargs):
            json_data = request.get_json(silent=True)
            if not isinstance(json_data, dict):
                return api_error_response("JSON object body required", 400, "MISSING_JSON_DATA")

            try:
                kwargs['validated_data'] = parse_model(schema_class, json_data)
            except ValidationError as e:
                return error_response_for(e)
            return await f(*args, **kwargs)

        return decorated_function
    return decorator


def validate_query_params(schema_class: BaseModel):
    """
    Decorator to validate the query string against a Pydantic schema.
    The parsed model is passed to the view as 'validated_params'.
    """
    def decorator(f):
        @wraps(f)
        async def decorated_function(*args, **kwargs):
            query_data = {key: _coerce_query_value(value) for key, value in request.args.items()}

            try:
                kwargs['validated_params'] = parse_model(
                    schema_class, query_data, message="Invalid query parameters")
            except ValidationError as e:
                return error_response_for(e)
            return await f(*args, **kwargs)

        return decorated_function
    return decorator
