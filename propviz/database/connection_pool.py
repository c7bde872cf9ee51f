"""Postgres access for the users table"""

import threading
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Sequence

import psycopg2
from psycopg2 import pool
from psycopg2.extras import RealDictCursor
import structlog

from propviz.config.settings import settings
from propviz.utils.exceptions import ConfigurationError

logger = structlog.get_logger(__name__)

class DatabasePool:
    """
    Lazily opened ThreadedConnectionPool

    Nothing connects until the first query, so the app and its tests start
    without a database. Rows come back as dicts.
    """

    def __init__(self, dsn: Optional[str] = None, max_connections: Optional[int] = None):
        self._dsn = dsn
        self._max_connections = max_connections
        self._pool: Optional[pool.ThreadedConnectionPool] = None
        self._lock = threading.Lock()

    def _get_pool(self) -> pool.ThreadedConnectionPool:
        with self._lock:
            if self._pool is None:
                dsn = self._dsn or settings.DATABASE_URL
                if not dsn:
                    raise ConfigurationError("DATABASE_URL is not configured")

                size = self._max_connections or settings.DATABASE_POOL_SIZE
                self._pool = pool.ThreadedConnectionPool(
                    minconn=1,
                    maxconn=size,
                    dsn=dsn,
                    cursor_factory=RealDictCursor
                )
                logger.info("Database connection pool created", max_connections=size)

            return self._pool

    @contextmanager
    def get_cursor(self):
        """Cursor in its own transaction: committed on success, rolled back on error"""
        db = self._get_pool()
        conn = db.getconn()
        try:
            with conn.cursor() as cursor:
                yield cursor
            conn.commit()
        except psycopg2.Error as e:
            conn.rollback()
            logger.error("Database error", error=str(e), code=e.pgcode)
            raise
        finally:
            db.putconn(conn)

    def execute_query(self, query: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        with self.get_cursor() as cursor:
            cursor.execute(query, params)
            return cursor.fetchall()

    def execute_one(self, query: str, params: Optional[Sequence[Any]] = None) -> Optional[Dict[str, Any]]:
        """First row of the result, e.g. for UPDATE/DELETE ... RETURNING"""
        with self.get_cursor() as cursor:
            cursor.execute(query, params)
            return cursor.fetchone()

db_pool = DatabasePool()
