"""
Builds the service graph once per app and hands it to route handlers
"""
from dataclasses import dataclass

from flask import current_app

from .ai.image_moderator import ImageModerationProvider
from .ai.openai_client import OpenAIClient
from .ai.text_moderator import TextModerationProvider
from .api_key_service import APIKeyService
from .database_service import DatabaseService
from .image_storage import ImageStorage
from .moderation_log_writer import ModerationLogWriter
from .moderation_orchestrator import ModerationOrchestrator
from .rate_limiter import SlidingWindowRateLimiter
from .settings_store import SettingsStore

EXTENSION_KEY = 'contentguard'


@dataclass
class Services:
    database: DatabaseService
    settings_store: SettingsStore
    log_writer: ModerationLogWriter
    api_keys: APIKeyService
    rate_limiter: SlidingWindowRateLimiter
    ip_rate_limiter: SlidingWindowRateLimiter
    orchestrator: ModerationOrchestrator


def build_services(app, db, text_provider=None, image_provider=None, image_storage=None) -> Services:
    """
    Wire every component from app config. Providers and storage can be
    passed in to replace the network-backed defaults.
    """
    cfg = app.config
    timeout = cfg['PROVIDER_TIMEOUT']

    database = DatabaseService(db, max_workers=cfg['DB_THREAD_POOL_WORKERS'])
    settings_store = SettingsStore(database)
    log_writer = ModerationLogWriter(database)

    if text_provider is None:
        text_provider = TextModerationProvider(
            OpenAIClient(api_key=cfg.get('OPENAI_API_KEY'), timeout=timeout),
            moderation_model=cfg['OPENAI_MODERATION_MODEL'],
            chat_model=cfg['OPENAI_CHAT_MODEL']
        )
    if image_provider is None:
        image_provider = ImageModerationProvider(
            cfg.get('GOOGLE_CLOUD_VISION_API_KEY'),
            api_url=cfg['VISION_API_URL'],
            timeout=timeout,
            max_image_bytes=cfg['MAX_IMAGE_BYTES']
        )
    if image_storage is None:
        image_storage = ImageStorage(
            cfg.get('SUPABASE_URL'),
            cfg.get('SUPABASE_SERVICE_KEY'),
            bucket=cfg['IMAGE_STORAGE_BUCKET'],
            timeout=timeout
        )

    services = Services(
        database=database,
        settings_store=settings_store,
        log_writer=log_writer,
        api_keys=APIKeyService(database, default_rate_limit=cfg['DEFAULT_API_KEY_RATE_LIMIT']),
        rate_limiter=SlidingWindowRateLimiter(window_seconds=cfg['RATE_LIMIT_WINDOW']),
        ip_rate_limiter=SlidingWindowRateLimiter(window_seconds=cfg['API_RATE_LIMIT_WINDOW']),
        orchestrator=ModerationOrchestrator(
            settings_store, text_provider, image_provider, log_writer, image_storage=image_storage)
    )
    app.extensions[EXTENSION_KEY] = services
    return services


def get_services() -> Services:
    return current_app.extensions[EXTENSION_KEY]
