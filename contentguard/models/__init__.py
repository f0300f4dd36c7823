from .api_key import APIKey
from .moderation_log import ModerationLog
from .user_settings import UserSettings

__all__ = ['APIKey', 'ModerationLog', 'UserSettings']
