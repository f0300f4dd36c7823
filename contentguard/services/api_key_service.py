"""
API keys for the external API: the authentication gate and per-user key management
"""
import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from contentguard.errors import AuthError, NotFoundError, ServiceUnavailableError, StorageError
from contentguard.models.api_key import APIKey
from contentguard.services.results import StoreResult

logger = logging.getLogger(__name__)

_KEY_PATTERN = re.compile(r'^cg_[a-zA-Z0-9_-]+$')

UNAVAILABLE_MESSAGE = 'Service Unavailable: API key functionality is not available at this time'


@dataclass
class AuthenticatedKey:
    """Context attached to a request authenticated with an API key"""
    key_id: str
    user_id: str
    rate_limit: int


def is_valid_api_key_format(api_key):
    """Validate API key format"""
    if not api_key or len(api_key) < 10 or len(api_key) > 100:
        return False
    return _KEY_PATTERN.match(api_key) is not None


class APIKeyService:
    TABLE = 'api_keys'

    def __init__(self, database, default_rate_limit: int = 100):
        self.database = database
        self.default_rate_limit = default_rate_limit

    def _require_store(self):
        if not self.database.is_available(self.TABLE):
            logger.warning("API keys table does not exist")
            raise ServiceUnavailableError(
                UNAVAILABLE_MESSAGE,
                details={'hint': 'Please try again later or contact support'}
            )

    async def authenticate(self, raw_key: Optional[str]) -> AuthenticatedKey:
        """
        Resolve an x-api-key value to its owner.

        Missing or unknown key -> AuthError (401); inactive key -> AuthError (403);
        key store absent or unreachable -> ServiceUnavailableError (503).
        """
        if not raw_key:
            raise AuthError('Unauthorized: No API key provided')

        self._require_store()

        raw_key = raw_key.strip()
        if not is_valid_api_key_format(raw_key):
            raise AuthError('Unauthorized: Invalid API key')

        def _find_key():
            key = APIKey.query.filter_by(key=raw_key).first()
            return key.to_dict() if key else None

        try:
            key = await self.database.run(_find_key)
        except StorageError as e:
            if e.missing_table:
                self.database.mark_unavailable(self.TABLE)
            raise ServiceUnavailableError(UNAVAILABLE_MESSAGE)

        if key is None:
            raise AuthError('Unauthorized: Invalid API key')
        if not key['is_active']:
            raise AuthError.forbidden('Forbidden: API key is inactive')

        await self._record_usage(key['id'])
        return AuthenticatedKey(key_id=key['id'], user_id=key['user_id'], rate_limit=key['rate_limit'])

    async def _record_usage(self, key_id: str):
        def _update_usage():
            key = self.database.db.session.get(APIKey, key_id)
            if key:
                key.record_usage()
                self.database.db.session.commit()

        try:
            await self.database.run(_update_usage)
        except StorageError as e:
            logger.warning(f"Could not record usage for API key {key_id}: {str(e)}")

    async def create(self, user_id: str, name: str, rate_limit: Optional[int] = None) -> Dict[str, Any]:
        """Create a key; the returned dict is the only place the key string is exposed"""
        self._require_store()

        def _create_key():
            key = APIKey(user_id=user_id, name=name,
                         rate_limit=rate_limit or self.default_rate_limit, is_active=True)
            self.database.db.session.add(key)
            self.database.db.session.commit()
            return key.to_dict(include_key=True)

        try:
            return await self.database.run(_create_key)
        except StorageError:
            raise ServiceUnavailableError('API key could not be created at this time')

    async def list_keys(self, user_id: str) -> StoreResult[List[Dict[str, Any]]]:
        if not self.database.is_available(self.TABLE):
            return StoreResult.fallback([], error=f"{self.TABLE} table is not available")

        def _get_keys():
            keys = (APIKey.query.filter_by(user_id=user_id)
                    .order_by(APIKey.created_at.desc())
                    .all())
            return [key.to_dict() for key in keys]

        try:
            return StoreResult.ok(await self.database.run(_get_keys))
        except StorageError as e:
            if e.missing_table:
                self.database.mark_unavailable(self.TABLE)
            return StoreResult.fallback([], error=str(e))

    async def update(self, user_id: str, key_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        self._require_store()

        def _update_key():
            key = APIKey.query.filter_by(id=key_id, user_id=user_id).first()
            if key is None:
                return None
            for field in ('name', 'is_active', 'rate_limit'):
                if field in changes:
                    setattr(key, field, changes[field])
            key.updated_at = datetime.utcnow()
            self.database.db.session.commit()
            return key.to_dict()

        try:
            updated = await self.database.run(_update_key)
        except StorageError:
            raise ServiceUnavailableError('API key could not be updated at this time')

        if updated is None:
            raise NotFoundError('API key not found')
        return updated

    async def delete(self, user_id: str, key_id: str) -> None:
        self._require_store()

        def _delete_key():
            key = APIKey.query.filter_by(id=key_id, user_id=user_id).first()
            if key is None:
                return False
            self.database.db.session.delete(key)
            self.database.db.session.commit()
            return True

        try:
            deleted = await self.database.run(_delete_key)
        except StorageError:
            raise ServiceUnavailableError('API key could not be deleted at this time')

        if not deleted:
            raise NotFoundError('API key not found')
