"""
Per-user moderation settings with a default fallback
"""
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError

from contentguard.errors import StorageError
from contentguard.models.user_settings import UserSettings
from contentguard.schemas import ALL_CATEGORIES, ModerationSettings, SettingsOverride
from contentguard.services.results import StoreResult
from config.default_settings import DEFAULT_USER_SETTINGS

logger = logging.getLogger(__name__)


def merge_settings(settings: ModerationSettings, changes: Optional[Dict[str, Any]]) -> ModerationSettings:
    """Apply changes field by field; None values never overwrite"""
    if not changes:
        return settings
    merged = settings.model_dump()
    merged.update({key: value for key, value in changes.items() if value is not None})
    return ModerationSettings(**merged)


def apply_override(settings: ModerationSettings, override: Optional[SettingsOverride]) -> ModerationSettings:
    """Merge a per-call override over stored settings; the override wins per field"""
    if override is None:
        return settings
    return merge_settings(settings, override.changes())


class SettingsStore:
    """Reads and upserts user settings. Reads never fail; writes are best-effort."""

    TABLE = 'user_settings'

    def __init__(self, database):
        self.database = database

    def defaults(self, user_id: str) -> ModerationSettings:
        now = datetime.utcnow().isoformat()
        return ModerationSettings(user_id=user_id, created_at=now, updated_at=now, **DEFAULT_USER_SETTINGS)

    def _from_row(self, user_id: str, stored: Dict[str, Any]) -> StoreResult[ModerationSettings]:
        """Rows may name categories that were since retired; those ids are dropped"""
        stored = dict(stored, enabled_categories=[
            c for c in stored.get('enabled_categories') or [] if c in ALL_CATEGORIES])
        try:
            return StoreResult.ok(ModerationSettings(**stored))
        except PydanticValidationError as e:
            logger.warning(f"Stored settings for {user_id} are invalid, using defaults: {str(e)}")
            return StoreResult.fallback(self.defaults(user_id), error='Stored settings are invalid')

    @staticmethod
    def _new_row(user_id: str) -> UserSettings:
        row = UserSettings(user_id=user_id)
        row.apply(dict(DEFAULT_USER_SETTINGS,
                       enabled_categories=list(DEFAULT_USER_SETTINGS['enabled_categories'])))
        return row

    async def get(self, user_id: str) -> StoreResult[ModerationSettings]:
        if not self.database.is_available(self.TABLE):
            return StoreResult.fallback(self.defaults(user_id))

        def _get_settings():
            row = UserSettings.query.filter_by(user_id=user_id).first()
            return row.to_dict() if row else None

        try:
            stored = await self.database.run(_get_settings)
        except StorageError as e:
            logger.warning(f"Using default settings for {user_id}: {str(e)}")
            if e.missing_table:
                self.database.mark_unavailable(self.TABLE)
            return StoreResult.fallback(self.defaults(user_id), error=str(e))

        if stored is None:
            return StoreResult.fallback(self.defaults(user_id))
        return self._from_row(user_id, stored)

    async def update(self, user_id: str, changes: Dict[str, Any]) -> StoreResult[ModerationSettings]:
        """Upsert: merge changes onto the stored row, or onto the defaults"""
        if not self.database.is_available(self.TABLE):
            merged = merge_settings(self.defaults(user_id), changes)
            return StoreResult.fallback(merged, error=f"{self.TABLE} table is not available")

        def _upsert_settings():
            session = self.database.db.session
            row = UserSettings.query.filter_by(user_id=user_id).first()
            if row is None:
                row = self._new_row(user_id)
                row.apply(changes)
                row.updated_at = datetime.utcnow()
                session.add(row)
                try:
                    session.commit()
                    return row.to_dict()
                except IntegrityError:
                    # A concurrent first write created the row; update that one
                    session.rollback()
                    row = UserSettings.query.filter_by(user_id=user_id).one()

            row.apply(changes)
            row.updated_at = datetime.utcnow()
            session.commit()
            return row.to_dict()

        try:
            stored = await self.database.run(_upsert_settings)
        except StorageError as e:
            logger.warning(f"Settings for {user_id} not persisted: {str(e)}")
            if e.missing_table:
                self.database.mark_unavailable(self.TABLE)
            current = await self.get(user_id)
            return StoreResult.fallback(merge_settings(current.value, changes), error=str(e))

        return self._from_row(user_id, stored)
