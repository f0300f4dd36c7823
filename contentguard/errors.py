"""
Error taxonomy shared by services and route handlers
"""


class APIError(Exception):
    """Custom exception for API errors with structured response data"""

    status_code = 400
    error_code = None

    def __init__(self, message, status_code=None, error_code=None, details=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if error_code is not None:
            self.error_code = error_code
        self.details = details or {}


class ValidationError(APIError):
    """Missing or malformed input"""
    status_code = 400
    error_code = 'VALIDATION_ERROR'


class AuthError(APIError):
    """Missing, invalid or inactive credentials (401, or 403 when forbidden)"""
    status_code = 401
    error_code = 'UNAUTHORIZED'

    @classmethod
    def forbidden(cls, message):
        return cls(message, status_code=403, error_code='FORBIDDEN')


class NotFoundError(APIError):
    status_code = 404
    error_code = 'NOT_FOUND'


class RateLimitExceededError(APIError):
    status_code = 429
    error_code = 'RATE_LIMITED'


class ServiceUnavailableError(APIError):
    """Backing store is structurally missing or unreachable"""
    status_code = 503
    error_code = 'SERVICE_UNAVAILABLE'


class ModerationProviderError(APIError):
    """Transport or provider failure while calling a moderation API"""
    status_code = 500
    error_code = 'MODERATION_PROVIDER_ERROR'

    def __init__(self, message, provider=None, provider_message=None):
        super().__init__(message)
        self.provider = provider
        self.provider_message = provider_message or message


class ContentFetchError(APIError):
    """Remote content (an image URL) could not be fetched"""
    status_code = 500
    error_code = 'CONTENT_FETCH_ERROR'

    def __init__(self, message, url=None, provider_message=None):
        super().__init__(message)
        self.url = url
        self.provider_message = provider_message or message


class StorageError(Exception):
    """Raised by the database layer; callers turn it into a fallback or a 503"""

    def __init__(self, message, missing_table=False):
        super().__init__(message)
        self.missing_table = missing_table
