"""
Request authentication: session bearer tokens for the web app and
API keys for the external API
"""
import logging
from functools import wraps
from typing import Callable, Optional

from flask import current_app, request
from flask_login import UserMixin
from jose import JWTError, jwt

from contentguard.errors import APIError, RateLimitExceededError
from contentguard.services.error_tracker import error_tracker
from contentguard.services.registry import get_services
from contentguard.utils.error_handlers import api_error_response, error_response_for

logger = logging.getLogger(__name__)

API_KEY_HEADER = 'x-api-key'


class SessionUser(UserMixin):
    """User identified by a verified session token; nothing is loaded from storage"""

    def __init__(self, user_id: str, email: Optional[str] = None):
        self.id = user_id
        self.email = email


def _bearer_token(req) -> Optional[str]:
    header = req.headers.get('Authorization', '')
    scheme, _, token = header.partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        return None
    return token.strip()


def load_user_from_request(req) -> Optional[SessionUser]:
    """Flask-Login request loader: verify the bearer JWT issued by the auth provider"""
    token = _bearer_token(req)
    if token is None:
        return None

    secret = current_app.config.get('SUPABASE_JWT_SECRET')
    if not secret:
        logger.error("SUPABASE_JWT_SECRET is not configured, rejecting session token")
        return None

    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=['HS256'],
            audience=current_app.config.get('SUPABASE_JWT_AUDIENCE')
        )
    except JWTError as e:
        logger.info(f"Rejected session token: {str(e)}")
        error_tracker.track_error('auth', 'Invalid session token', details={'endpoint': req.path})
        return None

    user_id = payload.get('sub')
    if not user_id:
        return None
    return SessionUser(user_id, email=payload.get('email'))


def unauthorized():
    """JSON 401 for session routes instead of a login redirect"""
    return api_error_response('Unauthorized', 401, 'UNAUTHORIZED')


def require_api_key(f: Callable) -> Callable:
    """Decorator to require valid API key for external API endpoints"""
    @wraps(f)
    async def decorated_function(*args, **kwargs):
        services = get_services()

        try:
            api_key = await services.api_keys.authenticate(request.headers.get(API_KEY_HEADER))

            if not services.rate_limiter.is_allowed(api_key.key_id, api_key.rate_limit):
                raise RateLimitExceededError(
                    'Too many requests, please try again later',
                    details={'rate_limit': api_key.rate_limit,
                             'window_seconds': services.rate_limiter.window_seconds}
                )
        except APIError as e:
            if e.status_code in (401, 403):
                error_tracker.track_error('auth', e.message, details={'endpoint': request.path})
            logger.warning(f"External API request rejected: {e.message}")
            return error_response_for(e)

        # Add to request context
        request.api_key = api_key

        return await f(*args, **kwargs)
    return decorated_function
