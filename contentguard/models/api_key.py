import secrets
import uuid
from datetime import datetime

from contentguard import db


class APIKey(db.Model):
    __tablename__ = 'api_keys'

    id = db.Column(db.String(36), primary_key=True,
                   default=lambda: str(uuid.uuid4()))
    # Owning user id as issued by the auth provider
    user_id = db.Column(db.String(64), nullable=False, index=True)
    key = db.Column(db.String(80), unique=True, nullable=False)
    name = db.Column(db.String(100), nullable=False)
    # Requests allowed per rate limit window (one hour by default)
    rate_limit = db.Column(db.Integer, nullable=False, default=100)
    is_active = db.Column(db.Boolean, default=True)
    last_used = db.Column(db.DateTime)
    usage_count = db.Column(db.Integer, default=0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(
        db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __init__(self, **kwargs):
        super(APIKey, self).__init__(**kwargs)
        if not self.key:
            self.key = self.generate_key()

    @staticmethod
    def generate_key():
        return f"cg_{secrets.token_urlsafe(32)}"

    def record_usage(self):
        self.usage_count = (self.usage_count or 0) + 1
        self.last_used = datetime.utcnow()

    def to_dict(self, include_key=False):
        data = {
            'id': self.id,
            'user_id': self.user_id,
            'name': self.name,
            'rate_limit': self.rate_limit,
            'is_active': self.is_active,
            'last_used': self.last_used.isoformat() if self.last_used else None,
            'usage_count': self.usage_count or 0,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }
        if include_key:
            data['key'] = self.key
        return data

    def __repr__(self):
        return f'<APIKey {self.name}>'
