"""
Moderation log persistence. Saving never blocks a moderation response:
when storage fails, an in-memory record with a temporary id is returned.
"""
import logging
import math
import time
from datetime import datetime
from typing import Any, Dict, List, Optional

from contentguard.errors import StorageError
from contentguard.models.moderation_log import ModerationLog
from contentguard.services.results import StoreResult

logger = logging.getLogger(__name__)


class ModerationLogWriter:
    TABLE = 'moderation_logs'

    def __init__(self, database):
        self.database = database

    async def save(self, user_id: str, content_type: str, content: Optional[str],
                   moderation_results: Dict[str, Any], flagged: bool,
                   logo_detection: Optional[List[Dict]] = None) -> StoreResult[Dict[str, Any]]:
        record = {
            'user_id': user_id,
            'content_type': content_type,
            'content': content,
            'moderation_results': moderation_results,
            'logo_detection': logo_detection,
            'flagged': flagged,
        }

        if not self.database.is_available(self.TABLE):
            logger.info("Moderation logs table does not exist, skipping log save")
            return StoreResult.fallback(self.synthesize(record), error=f"{self.TABLE} table is not available")

        def _insert_log():
            log = ModerationLog(created_at=datetime.utcnow(), **record)
            self.database.db.session.add(log)
            self.database.db.session.commit()
            return log.to_dict()

        try:
            return StoreResult.ok(await self.database.run(_insert_log))
        except StorageError as e:
            logger.error(f"Error saving {content_type} moderation log for {user_id}: {str(e)}")
            if e.missing_table:
                self.database.mark_unavailable(self.TABLE)
            return StoreResult.fallback(self.synthesize(record), error=str(e))

    @staticmethod
    def synthesize(record: Dict[str, Any]) -> Dict[str, Any]:
        """Build the log entry that would have been stored"""
        entry = dict(record)
        entry['id'] = f"temp-{int(time.time() * 1000)}"
        entry['created_at'] = datetime.utcnow().isoformat()
        return entry

    async def history(self, user_id: str, content_type: str, query) -> StoreResult[Dict[str, Any]]:
        """Newest-first page of a user's logs, filtered by type, flag and date range"""
        page, page_size = query.page, query.page_size

        def _empty_page():
            return {
                'logs': [],
                'pagination': {'total': 0, 'page': page, 'pageSize': page_size, 'totalPages': 0}
            }

        if not self.database.is_available(self.TABLE):
            return StoreResult.fallback(_empty_page(), error=f"{self.TABLE} table is not available")

        def _query_logs():
            q = ModerationLog.query.filter_by(user_id=user_id, content_type=content_type)
            if query.flagged is not None:
                q = q.filter(ModerationLog.flagged == query.flagged)
            if query.from_date is not None:
                q = q.filter(ModerationLog.created_at >= query.from_date)
            if query.to_date is not None:
                q = q.filter(ModerationLog.created_at <= query.to_date)

            total = q.count()
            rows = (q.order_by(ModerationLog.created_at.desc())
                    .offset((page - 1) * page_size)
                    .limit(page_size)
                    .all())
            return total, [row.to_dict() for row in rows]

        try:
            total, logs = await self.database.run(_query_logs)
        except StorageError as e:
            if e.missing_table:
                self.database.mark_unavailable(self.TABLE)
            return StoreResult.fallback(_empty_page(), error=str(e))

        return StoreResult.ok({
            'logs': logs,
            'pagination': {
                'total': total,
                'page': page,
                'pageSize': page_size,
                'totalPages': math.ceil(total / page_size)
            }
        })
