import os

from dotenv import load_dotenv

load_dotenv()


def _env_flag(name, default='false'):
    return os.environ.get(name, default).strip().lower() in ('1', 'true', 'yes')


class Config:
    SECRET_KEY = os.environ.get(
        'SECRET_KEY') or 'dev-secret-key-change-in-production'
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        'DATABASE_URL') or 'sqlite:///contentguard.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Managed databases get their schema from migrations; set to false there
    AUTO_CREATE_TABLES = _env_flag('AUTO_CREATE_TABLES', 'true')

    # Text moderation provider
    OPENAI_API_KEY = os.environ.get('OPENAI_API_KEY')
    OPENAI_MODERATION_MODEL = os.environ.get(
        'OPENAI_MODERATION_MODEL', 'omni-moderation-latest')
    # Model used for the misinformation fact-check
    OPENAI_CHAT_MODEL = os.environ.get('OPENAI_CHAT_MODEL', 'gpt-4o-mini')

    # Image moderation provider
    GOOGLE_CLOUD_VISION_API_KEY = os.environ.get('GOOGLE_CLOUD_VISION_API_KEY')
    VISION_API_URL = os.environ.get(
        'VISION_API_URL', 'https://vision.googleapis.com/v1/images:annotate')

    # Auth provider and object storage
    SUPABASE_URL = os.environ.get('SUPABASE_URL')
    SUPABASE_SERVICE_KEY = os.environ.get('SUPABASE_SERVICE_KEY')
    SUPABASE_JWT_SECRET = os.environ.get('SUPABASE_JWT_SECRET')
    SUPABASE_JWT_AUDIENCE = os.environ.get('SUPABASE_JWT_AUDIENCE', 'authenticated')
    IMAGE_STORAGE_BUCKET = os.environ.get('IMAGE_STORAGE_BUCKET', 'moderated-images')

    FRONTEND_URL = os.environ.get('FRONTEND_URL', 'http://localhost:3000')

    # Seconds allowed for each outbound provider/storage HTTP call
    PROVIDER_TIMEOUT = float(os.environ.get('PROVIDER_TIMEOUT', '5.0'))

    MAX_IMAGE_BYTES = 5 * 1024 * 1024
    MAX_CONTENT_LENGTH = 10 * 1024 * 1024

    # External API: requests allowed per key within RATE_LIMIT_WINDOW seconds
    DEFAULT_API_KEY_RATE_LIMIT = int(os.environ.get('DEFAULT_API_KEY_RATE_LIMIT', '100'))
    RATE_LIMIT_WINDOW = int(os.environ.get('RATE_LIMIT_WINDOW', '3600'))

    # Every /api route: requests allowed per client IP within API_RATE_LIMIT_WINDOW seconds
    API_RATE_LIMIT = int(os.environ.get('API_RATE_LIMIT', '100'))
    API_RATE_LIMIT_WINDOW = int(os.environ.get('API_RATE_LIMIT_WINDOW', '900'))

    EXPOSE_ERROR_DETAILS = True
    FORCE_HTTPS = False
    SENTRY_DSN = os.environ.get('SENTRY_DSN')
    DB_THREAD_POOL_WORKERS = int(os.environ.get('DB_THREAD_POOL_WORKERS', '8'))

    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,             # Verify connections before use
        'echo': _env_flag('SQL_DEBUG')     # SQL debugging via env var
    }


class DevelopmentConfig(Config):
    DEBUG = True


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SUPABASE_JWT_SECRET = 'test-jwt-secret'
    SUPABASE_URL = None
    SUPABASE_SERVICE_KEY = None
    SENTRY_DSN = None
    AUTO_CREATE_TABLES = True


class ProductionConfig(Config):
    DEBUG = False
    EXPOSE_ERROR_DETAILS = False
    FORCE_HTTPS = True
    AUTO_CREATE_TABLES = _env_flag('AUTO_CREATE_TABLES', 'false')
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_size': 5,                    # Number of connections to maintain in pool
        'pool_timeout': 30,                # Seconds to wait for connection from pool
        'pool_recycle': 1800,              # Seconds before recreating connection (30 min)
        'pool_pre_ping': True,
        'max_overflow': 10,
        'echo': False
    }


config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig
}
