import uuid
from datetime import datetime

from contentguard import db


class ModerationLog(db.Model):
    __tablename__ = 'moderation_logs'
    __table_args__ = (
        db.Index('ix_moderation_logs_owner', 'user_id', 'content_type', 'created_at'),
    )

    id = db.Column(db.String(36), primary_key=True,
                   default=lambda: str(uuid.uuid4()))
    user_id = db.Column(db.String(64), nullable=False)
    # text or image
    content_type = db.Column(db.String(20), nullable=False)
    # Submitted text, stored image URL, or null when no image was kept
    content = db.Column(db.Text)
    # category -> {flagged, score, likelihood?, explanation?}
    moderation_results = db.Column(db.JSON, nullable=False, default=dict)
    logo_detection = db.Column(db.JSON)
    flagged = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'content_type': self.content_type,
            'content': self.content,
            'moderation_results': self.moderation_results or {},
            'logo_detection': self.logo_detection,
            'flagged': self.flagged,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }

    def __repr__(self):
        return f'<ModerationLog {self.id}>'
