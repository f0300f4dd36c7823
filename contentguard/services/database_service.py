"""
Async database access layer for ContentGuard
Runs SQLAlchemy work in a thread pool and records which tables exist
"""

import asyncio
import logging
import re
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, Set

from flask import current_app, has_app_context
from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError

from contentguard.errors import StorageError
from contentguard.services.error_tracker import error_tracker

logger = logging.getLogger(__name__)

MANAGED_TABLES = ('user_settings', 'moderation_logs', 'api_keys')

# SQLite and Postgres wording for a query against an absent table
_MISSING_TABLE = re.compile(r'no such table|relation "?\w+"? does not exist', re.IGNORECASE)


class DatabaseService:
    """Thread-pooled SQLAlchemy execution plus a cached storage capability probe"""

    def __init__(self, db, max_workers: int = 8):
        self.db = db
        self._executor = ThreadPoolExecutor(max_workers=max_workers)
        self._available_tables: Set[str] = set()

    def probe(self, tables: Iterable[str] = MANAGED_TABLES) -> Set[str]:
        """
        Check once which tables exist. Must run inside an app context.
        Components consult is_available() instead of checking per request.
        """
        tables = tuple(tables)
        try:
            inspector = inspect(self.db.engine)
            self._available_tables = {t for t in tables if inspector.has_table(t)}
        except SQLAlchemyError as e:
            logger.error(f"Storage probe failed, running without persistence: {str(e)}")
            self._available_tables = set()

        missing = set(tables) - self._available_tables
        if missing:
            logger.warning(f"Tables not available, using fallbacks: {', '.join(sorted(missing))}")
        return set(self._available_tables)

    def mark_unavailable(self, table: str):
        """A table dropped after startup stays unavailable until restart"""
        if table in self._available_tables:
            logger.warning(f"Table {table} disappeared, using fallbacks")
            self._available_tables.discard(table)

    def is_available(self, table: str) -> bool:
        return table in self._available_tables

    @property
    def status(self):
        return {table: self.is_available(table) for table in MANAGED_TABLES}

    async def run(self, operation_func, *args, **kwargs):
        """
        Execute a database operation in the thread pool.

        Raises StorageError (after rolling back) on any database failure so
        callers decide between a fallback value and an error response.
        """
        loop = asyncio.get_running_loop()

        if has_app_context():
            app = current_app._get_current_object()

            def context_operation():
                with app.app_context():
                    try:
                        return operation_func(*args, **kwargs)
                    except SQLAlchemyError:
                        self.db.session.rollback()
                        raise
        else:
            def context_operation():
                return operation_func(*args, **kwargs)

        try:
            return await loop.run_in_executor(self._executor, context_operation)
        except SQLAlchemyError as e:
            logger.error(f"Database error: {str(e)}")
            error_tracker.track_error('storage', str(e))
            raise StorageError(str(e), missing_table=bool(_MISSING_TABLE.search(str(e)))) from e

    def shutdown(self):
        self._executor.shutdown(wait=False)
