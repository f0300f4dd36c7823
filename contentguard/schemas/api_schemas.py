"""
Pydantic schemas for API request/response validation
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, Field, validator

from config.default_settings import DEFAULT_USER_SETTINGS, IMAGE_CATEGORIES, TEXT_CATEGORIES

ALL_CATEGORIES = TEXT_CATEGORIES + IMAGE_CATEGORIES


class ContentType(str, Enum):
    """Content types that can be moderated"""
    TEXT = "text"
    IMAGE = "image"


class Likelihood(str, Enum):
    """Five-level ordinal scale used by the image provider, lowest first"""
    VERY_UNLIKELY = "VERY_UNLIKELY"
    UNLIKELY = "UNLIKELY"
    POSSIBLE = "POSSIBLE"
    LIKELY = "LIKELY"
    VERY_LIKELY = "VERY_LIKELY"


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"


def _normalize_categories(v):
    if v is None:
        return v
    unknown = [c for c in v if c not in ALL_CATEGORIES]
    if unknown:
        raise ValueError(f"Unknown categories: {', '.join(unknown)}")
    # Keep first occurrence order, drop duplicates
    return list(dict.fromkeys(v))


class ModerationSettings(BaseModel):
    """Effective moderation settings for one user"""
    user_id: Optional[str] = None
    toxicity_threshold: float = Field(default=DEFAULT_USER_SETTINGS['toxicity_threshold'], ge=0.0, le=1.0)
    bias_threshold: float = Field(default=DEFAULT_USER_SETTINGS['bias_threshold'], ge=0.0, le=1.0)
    misinformation_threshold: float = Field(
        default=DEFAULT_USER_SETTINGS['misinformation_threshold'], ge=0.0, le=1.0)
    adult_threshold: Likelihood = Likelihood(DEFAULT_USER_SETTINGS['adult_threshold'])
    violence_threshold: Likelihood = Likelihood(DEFAULT_USER_SETTINGS['violence_threshold'])
    medical_threshold: Likelihood = Likelihood(DEFAULT_USER_SETTINGS['medical_threshold'])
    spoof_threshold: Likelihood = Likelihood(DEFAULT_USER_SETTINGS['spoof_threshold'])
    check_copyright: bool = DEFAULT_USER_SETTINGS['check_copyright']
    enabled_categories: List[str] = Field(
        default_factory=lambda: list(DEFAULT_USER_SETTINGS['enabled_categories']))
    theme: Theme = Theme(DEFAULT_USER_SETTINGS['theme'])
    notifications_enabled: bool = DEFAULT_USER_SETTINGS['notifications_enabled']
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @validator('enabled_categories')
    def validate_enabled_categories(cls, v):
        return _normalize_categories(v) or []

    def threshold_for(self, category: str):
        return getattr(self, f'{category}_threshold')

    def is_enabled(self, category: str) -> bool:
        return category in self.enabled_categories

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode='json')

    class Config:
        json_schema_extra = {
            "example": {
                "user_id": "5b0c1a52-8d7e-4d8c-9f3e-1c2b3a4d5e6f",
                "toxicity_threshold": 0.7,
                "bias_threshold": 0.7,
                "misinformation_threshold": 0.7,
                "adult_threshold": "POSSIBLE",
                "violence_threshold": "POSSIBLE",
                "medical_threshold": "LIKELY",
                "spoof_threshold": "LIKELY",
                "check_copyright": True,
                "enabled_categories": ["toxicity", "bias", "misinformation", "adult", "violence"],
                "theme": "light",
                "notifications_enabled": True
            }
        }


class SettingsUpdateRequest(BaseModel):
    """Partial settings update; omitted fields keep their stored value"""
    toxicity_threshold: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    bias_threshold: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    misinformation_threshold: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    adult_threshold: Optional[Likelihood] = None
    violence_threshold: Optional[Likelihood] = None
    medical_threshold: Optional[Likelihood] = None
    spoof_threshold: Optional[Likelihood] = None
    check_copyright: Optional[bool] = None
    enabled_categories: Optional[List[str]] = None
    theme: Optional[Theme] = None
    notifications_enabled: Optional[bool] = None

    @validator('enabled_categories')
    def validate_enabled_categories(cls, v):
        return _normalize_categories(v)

    def changes(self) -> Dict[str, Any]:
        """Fields the caller actually supplied"""
        return self.model_dump(mode='json', exclude_none=True)

    class Config:
        # Clients often send back the full settings object including ids/timestamps
        extra = "ignore"
        json_schema_extra = {
            "example": {
                "toxicity_threshold": 0.9,
                "enabled_categories": ["toxicity", "adult"]
            }
        }


class SettingsOverride(BaseModel):
    """Per-call threshold override sent by external API clients"""
    toxicity_threshold: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    bias_threshold: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    misinformation_threshold: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    adult_threshold: Optional[Likelihood] = None
    violence_threshold: Optional[Likelihood] = None
    medical_threshold: Optional[Likelihood] = None
    spoof_threshold: Optional[Likelihood] = None
    check_copyright: Optional[bool] = None
    categories: Optional[List[str]] = None

    @validator('categories')
    def validate_categories(cls, v):
        return _normalize_categories(v)

    def changes(self) -> Dict[str, Any]:
        values = self.model_dump(mode='json', exclude_none=True)
        if 'categories' in values:
            values['enabled_categories'] = values.pop('categories')
        return values

    class Config:
        extra = "forbid"


class ModerateTextRequest(BaseModel):
    """Schema for text moderation requests"""
    text: str = Field(..., min_length=1, max_length=100000, description="Text to moderate")
    settings: Optional[SettingsOverride] = Field(default=None, description="Per-call override")

    @validator('text')
    def validate_text(cls, v):
        if not v.strip():
            raise ValueError('Text cannot be empty or only whitespace')
        return v

    class Config:
        extra = "forbid"
        json_schema_extra = {
            "example": {
                "text": "This is content to be moderated"
            }
        }


class ModerateImageUrlRequest(BaseModel):
    """Schema for image-by-URL moderation requests"""
    image_url: str = Field(..., alias="imageUrl", min_length=1, max_length=2048)
    settings: Optional[SettingsOverride] = None

    @validator('image_url')
    def validate_image_url(cls, v):
        v = v.strip()
        parsed = urlparse(v)
        if parsed.scheme not in ('http', 'https') or not parsed.netloc:
            raise ValueError('Image URL must be an absolute http(s) URL')
        return v

    class Config:
        populate_by_name = True
        extra = "forbid"
        json_schema_extra = {
            "example": {
                "imageUrl": "https://example.com/picture.jpg"
            }
        }


class HistoryQuery(BaseModel):
    """Query parameters for moderation history"""
    page: int = Field(default=1, ge=1, description="Page number")
    page_size: int = Field(default=10, ge=1, le=100, alias="pageSize", description="Items per page")
    flagged: Optional[bool] = Field(default=None, description="Filter by overall flag")
    from_date: Optional[datetime] = None
    to_date: Optional[datetime] = None

    @validator('from_date', 'to_date')
    def to_naive_utc(cls, v):
        # Timestamps are stored as naive UTC
        if v is not None and v.tzinfo is not None:
            v = v.astimezone(timezone.utc).replace(tzinfo=None)
        return v

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "page": 1,
                "pageSize": 10,
                "flagged": True,
                "from_date": "2024-01-01T00:00:00Z"
            }
        }


class APIKeyCreateRequest(BaseModel):
    """Schema for API key creation requests"""
    name: str = Field(..., min_length=1, max_length=100, description="Name for the API key")
    rate_limit: Optional[int] = Field(default=None, ge=1, le=100000, description="Requests per hour")

    @validator('name')
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError('API key name cannot be empty')
        return v.strip()

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Production API Key",
                "rate_limit": 100
            }
        }


class APIKeyUpdateRequest(BaseModel):
    """Schema for API key updates"""
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    is_active: Optional[bool] = None
    rate_limit: Optional[int] = Field(default=None, ge=1, le=100000)

    @validator('name')
    def validate_name(cls, v):
        if v is not None and not v.strip():
            raise ValueError('API key name cannot be empty')
        return v.strip() if v else v

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)

    class Config:
        extra = "forbid"
