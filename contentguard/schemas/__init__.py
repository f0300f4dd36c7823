"""
Pydantic schemas for request/response validation
"""
from .api_schemas import (
    ALL_CATEGORIES,
    APIKeyCreateRequest,
    APIKeyUpdateRequest,
    ContentType,
    HistoryQuery,
    Likelihood,
    ModerateImageUrlRequest,
    ModerateTextRequest,
    ModerationSettings,
    SettingsOverride,
    SettingsUpdateRequest,
    Theme,
)

__all__ = [
    'ALL_CATEGORIES',
    'ModerateTextRequest',
    'ModerateImageUrlRequest',
    'ModerationSettings',
    'SettingsUpdateRequest',
    'SettingsOverride',
    'HistoryQuery',
    'APIKeyCreateRequest',
    'APIKeyUpdateRequest',
    'ContentType',
    'Likelihood',
    'Theme'
]
