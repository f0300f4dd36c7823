import logging
import time

import sentry_sdk
from flask import Flask, request
from flask_login import LoginManager
from flask_sqlalchemy import SQLAlchemy
from flask_talisman import Talisman
from sqlalchemy.exc import SQLAlchemyError

from config.config import config
from contentguard.errors import APIError

# SQLAlchemy - database interface
db = SQLAlchemy()
login_manager = LoginManager()


def create_app(config_name: str = 'default', **service_overrides) -> Flask:
    """
    Application factory.

    ``service_overrides`` (text_provider, image_provider, image_storage)
    replace the network-backed components, mainly for tests.
    """
    app = Flask(__name__)
    app.config.from_object(config[config_name])

    # Initialize Sentry
    if app.config.get('SENTRY_DSN'):
        def before_send(event, hint):
            """Client errors are reported through responses, not Sentry"""
            if 'exc_info' in hint:
                exc = hint['exc_info'][1]
                if isinstance(exc, APIError) and exc.status_code < 500:
                    return None
            return event

        sentry_sdk.init(
            dsn=app.config['SENTRY_DSN'],
            send_default_pii=False,
            traces_sample_rate=0.2,
            environment=config_name,
            before_send=before_send,
        )

    # Handle HTTPS proxy headers (for production behind reverse proxy)
    from werkzeug.middleware.proxy_fix import ProxyFix
    app.wsgi_app = ProxyFix(app.wsgi_app, x_proto=1, x_host=1)

    db.init_app(app)

    # Session auth: bearer tokens verified per request, no server-side sessions
    from contentguard.utils.auth import load_user_from_request, unauthorized
    login_manager.init_app(app)
    login_manager.request_loader(load_user_from_request)
    login_manager.unauthorized_handler(unauthorized)

    # JSON API only: no HTML, so the CSP can be strict
    Talisman(
        app,
        force_https=app.config['FORCE_HTTPS'],
        strict_transport_security=True,
        strict_transport_security_max_age=31536000,  # 1 year
        content_security_policy={'default-src': "'none'", 'frame-ancestors': "'none'"},
        referrer_policy='strict-origin-when-cross-origin',
        session_cookie_secure=app.config['FORCE_HTTPS'],
    )

    _register_cors(app)
    _register_error_handlers(app)

    from contentguard.services.registry import build_services
    services = build_services(app, db, **service_overrides)
    _register_rate_limit(app, services.ip_rate_limiter)

    with app.app_context():
        from contentguard import models  # noqa: F401 - registers tables
        if app.config.get('AUTO_CREATE_TABLES'):
            _initialize_database_with_retry(app)
        services.database.probe()

    # Register blueprints
    from contentguard.routes.external import external_bp
    from contentguard.routes.image_moderation import image_moderation_bp
    from contentguard.routes.monitoring import monitoring_bp
    from contentguard.routes.settings import settings_bp
    from contentguard.routes.text_moderation import text_moderation_bp

    app.register_blueprint(text_moderation_bp, url_prefix='/api/moderate-text')
    app.register_blueprint(image_moderation_bp, url_prefix='/api/moderate-image')
    app.register_blueprint(settings_bp, url_prefix='/api/settings')
    app.register_blueprint(external_bp, url_prefix='/api/external')
    app.register_blueprint(monitoring_bp)

    return app


def _register_cors(app: Flask) -> None:
    """Allow the single configured frontend origin"""
    allowed_origin = app.config.get('FRONTEND_URL')

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get('Origin')
        if allowed_origin and origin == allowed_origin:
            response.headers['Access-Control-Allow-Origin'] = origin
            response.headers['Access-Control-Allow-Credentials'] = 'true'
            response.headers['Access-Control-Allow-Headers'] = 'Authorization, Content-Type, x-api-key'
            response.headers['Access-Control-Allow-Methods'] = 'GET, POST, PUT, DELETE, OPTIONS'
            response.headers['Vary'] = 'Origin'
        return response


def _register_rate_limit(app: Flask, limiter) -> None:
    """Per-IP request budget shared by every /api route"""
    from contentguard.errors import RateLimitExceededError
    from contentguard.utils.error_handlers import error_response_for

    def _applies():
        return request.path.startswith('/api') and request.method != 'OPTIONS'

    @app.before_request
    def limit_api_requests():
        if not _applies():
            return None
        if not limiter.is_allowed(request.remote_addr or 'unknown', app.config['API_RATE_LIMIT']):
            return error_response_for(RateLimitExceededError(
                'Too many requests from this IP, please try again later.'))
        return None

    @app.after_request
    def add_rate_limit_headers(response):
        if _applies():
            limit = app.config['API_RATE_LIMIT']
            response.headers['RateLimit-Limit'] = str(limit)
            response.headers['RateLimit-Remaining'] = str(
                limiter.get_remaining(request.remote_addr or 'unknown', limit))
        return response


def _register_error_handlers(app: Flask) -> None:
    from contentguard.utils.error_handlers import api_error_response

    @app.errorhandler(404)
    def not_found(e):
        return api_error_response('Not found', 404, 'NOT_FOUND')

    @app.errorhandler(405)
    def method_not_allowed(e):
        return api_error_response('Method not allowed', 405, 'METHOD_NOT_ALLOWED')

    @app.errorhandler(413)
    def payload_too_large(e):
        return api_error_response(
            f"Request body exceeds {app.config['MAX_CONTENT_LENGTH'] // (1024 * 1024)} MB",
            413, 'PAYLOAD_TOO_LARGE')


def _initialize_database_with_retry(app: Flask, max_retries: int = 3, delay: int = 2) -> None:
    """Create missing tables, retrying transient connection failures"""
    logger = logging.getLogger(__name__)
    for attempt in range(max_retries):
        try:
            logger.info(f"Attempting database initialization (attempt {attempt + 1}/{max_retries})")
            db.create_all()
            logger.info("Database initialization successful")
            return
        except SQLAlchemyError as e:
            logger.warning(f"Database initialization failed on attempt {attempt + 1}: {e}")
            if attempt < max_retries - 1:
                logger.info(f"Retrying in {delay} seconds...")
                time.sleep(delay)
                delay *= 2  # Exponential backoff
            else:
                # Start anyway; the storage probe marks the tables unavailable
                logger.error("Database initialization failed, continuing with fallbacks")
                return
