"""Test configuration and fixtures"""
import time

import pytest
from jose import jwt

from config.config import TestingConfig
from contentguard import create_app, db
from contentguard.errors import ValidationError
from contentguard.services.error_tracker import error_tracker
from contentguard.services.moderation.signals import CategorySignal, ImageAnalysis

TEST_USER_ID = 'user-123'


class FakeTextProvider:
    """Returns canned signals for the enabled categories"""

    def __init__(self):
        self.signals = {
            'toxicity': CategorySignal(score=0.1, sub_scores={'harassment': 0.1, 'hate': 0.05}),
            'bias': CategorySignal(score=0.05),
            'misinformation': CategorySignal(score=0.2, explanation='Looks accurate.'),
        }
        self.error = None
        self.calls = []

    def analyze(self, text, settings):
        self.calls.append((text, settings))
        if self.error is not None:
            raise self.error
        return {name: signal for name, signal in self.signals.items() if settings.is_enabled(name)}


class FakeImageProvider:
    def __init__(self):
        self.analysis = ImageAnalysis(
            signals={
                'adult': CategorySignal(likelihood='VERY_UNLIKELY'),
                'violence': CategorySignal(likelihood='UNLIKELY'),
                'medical': CategorySignal(likelihood='UNLIKELY'),
                'spoof': CategorySignal(likelihood='VERY_UNLIKELY'),
            },
            logos=[]
        )
        self.error = None
        self.fetched = []

    def analyze(self, image_bytes, settings):
        if not image_bytes:
            raise ValidationError('No image data provided')
        if self.error is not None:
            raise self.error
        signals = {name: signal for name, signal in self.analysis.signals.items()
                   if settings.is_enabled(name)}
        return ImageAnalysis(signals=signals, logos=self.analysis.logos if settings.check_copyright else None)

    def fetch_image(self, url):
        self.fetched.append(url)
        return b'fetched-image-bytes'


class FakeImageStorage:
    def __init__(self):
        self.uploads = []

    def upload(self, user_id, image_bytes, filename=None, content_type=None):
        self.uploads.append((user_id, filename))
        return f"https://storage.example.com/{user_id}/{filename}"


def make_token(user_id=TEST_USER_ID, secret='test-jwt-secret', audience='authenticated', expires_in=3600):
    payload = {
        'sub': user_id,
        'aud': audience,
        'email': f'{user_id}@example.com',
        'exp': int(time.time()) + expires_in,
    }
    return jwt.encode(payload, secret, algorithm='HS256')


def _build_app(tmp_path, monkeypatch, db_name='test.db', create_tables=True):
    monkeypatch.setattr(TestingConfig, 'SQLALCHEMY_DATABASE_URI', f"sqlite:///{tmp_path / db_name}")
    monkeypatch.setattr(TestingConfig, 'AUTO_CREATE_TABLES', create_tables)
    error_tracker.reset()
    return create_app(
        'testing',
        text_provider=FakeTextProvider(),
        image_provider=FakeImageProvider(),
        image_storage=FakeImageStorage()
    )


def _teardown(app):
    with app.app_context():
        db.session.remove()
        db.engine.dispose()
    app.extensions['contentguard'].database.shutdown()


@pytest.fixture
def app(tmp_path, monkeypatch):
    """App backed by a fresh on-disk SQLite database with all tables"""
    app = _build_app(tmp_path, monkeypatch)
    yield app
    _teardown(app)


@pytest.fixture
def bare_app(tmp_path, monkeypatch):
    """App whose database has none of the managed tables"""
    app = _build_app(tmp_path, monkeypatch, db_name='bare.db', create_tables=False)
    yield app
    _teardown(app)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def bare_client(bare_app):
    return bare_app.test_client()


@pytest.fixture
def services(app):
    return app.extensions['contentguard']


@pytest.fixture
def auth_headers():
    return {'Authorization': f"Bearer {make_token()}"}
