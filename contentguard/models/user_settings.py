"""Per-user moderation settings model."""
import uuid
from datetime import datetime

from contentguard import db


class UserSettings(db.Model):
    """Moderation thresholds and UI preferences, one row per user."""
    __tablename__ = 'user_settings'

    id = db.Column(db.String(36), primary_key=True,
                   default=lambda: str(uuid.uuid4()))
    user_id = db.Column(db.String(64), unique=True, nullable=False)

    # Numeric thresholds in [0, 1]
    toxicity_threshold = db.Column(db.Float, nullable=False)
    bias_threshold = db.Column(db.Float, nullable=False)
    misinformation_threshold = db.Column(db.Float, nullable=False)

    # Likelihood labels, VERY_UNLIKELY .. VERY_LIKELY
    adult_threshold = db.Column(db.String(20), nullable=False)
    violence_threshold = db.Column(db.String(20), nullable=False)
    medical_threshold = db.Column(db.String(20), nullable=False)
    spoof_threshold = db.Column(db.String(20), nullable=False)

    check_copyright = db.Column(db.Boolean, default=True)
    enabled_categories = db.Column(db.JSON, nullable=False, default=list)

    theme = db.Column(db.String(20), default='light')
    notifications_enabled = db.Column(db.Boolean, default=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(
        db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Columns a settings payload may write
    SETTINGS_FIELDS = (
        'toxicity_threshold', 'bias_threshold', 'misinformation_threshold',
        'adult_threshold', 'violence_threshold', 'medical_threshold', 'spoof_threshold',
        'check_copyright', 'enabled_categories', 'theme', 'notifications_enabled',
    )

    def apply(self, values):
        for field in self.SETTINGS_FIELDS:
            if field in values:
                setattr(self, field, values[field])

    def to_dict(self):
        data = {field: getattr(self, field) for field in self.SETTINGS_FIELDS}
        data.update({
            'user_id': self.user_id,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        })
        return data

    def __repr__(self):
        return f'<UserSettings {self.user_id}>'
