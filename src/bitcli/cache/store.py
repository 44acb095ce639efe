from __future__ import annotations

import asyncio
import logging
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from bitcli.core.errors import CacheError
from bitcli.core.models import Bitlink, CacheRecord

logger = logging.getLogger(__name__)

DB_NAME = "bitlinks.db"

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS bitlinks (
    long_url TEXT PRIMARY KEY,
    short_url TEXT NOT NULL,
    bitlink_id TEXT,
    domain TEXT,
    group_guid TEXT,
    created_at TEXT NOT NULL
);
"""

_SELECT_SQL = """
SELECT long_url, short_url, created_at, bitlink_id, domain, group_guid
FROM bitlinks
WHERE long_url = ?
"""

# Records are write-once: a second insert for the same URL keeps the first one.
_INSERT_SQL = """
INSERT INTO bitlinks (long_url, short_url, bitlink_id, domain, group_guid, created_at)
VALUES (?, ?, ?, ?, ?, ?)
ON CONFLICT (long_url) DO NOTHING
"""


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _format_rfc3339(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _parse_rfc3339(value: str) -> datetime:
    raw = value.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    return datetime.fromisoformat(raw)


class ShortLinkCache:
    """
    Persistent mapping of normalized long URLs to short links, stored in SQLite.

    A cache created without a directory is disabled: every lookup misses and writes
    are dropped. An enabled cache that fails raises CacheError instead of pretending
    to miss. Blocking SQLite calls run in worker threads over a single connection,
    serialized by a lock, so readers never observe a partially written record.
    """

    def __init__(self, db_path: Optional[Path] = None) -> None:
        self._db_path = db_path
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.Lock()

    @classmethod
    async def open(cls, cache_dir: Optional[Path]) -> ShortLinkCache:
        if cache_dir is None:
            logger.info("Link cache disabled.")
            return cls()
        cache = cls(Path(cache_dir) / DB_NAME)
        await asyncio.to_thread(cache._connect)
        return cache

    @property
    def enabled(self) -> bool:
        return self._db_path is not None

    @property
    def path(self) -> Optional[Path]:
        return self._db_path

    async def get(self, key: str) -> Optional[CacheRecord]:
        if self._db_path is None:
            return None
        return await asyncio.to_thread(self._get_sync, key)

    async def put(
        self,
        key: str,
        link: Bitlink,
        *,
        domain: Optional[str] = None,
        group_guid: Optional[str] = None,
    ) -> None:
        if self._db_path is None:
            return
        await asyncio.to_thread(self._put_sync, key, link, domain, group_guid)

    async def close(self) -> None:
        if self._conn is None:
            return
        await asyncio.to_thread(self._close_sync)

    def _connect(self) -> None:
        if self._db_path is None:
            raise CacheError("Link cache is disabled and has no database to open")
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(self._db_path, check_same_thread=False)
            conn.execute("PRAGMA journal_mode=WAL")
            conn.executescript(SCHEMA_SQL)
            conn.commit()
        except (OSError, sqlite3.Error) as e:
            raise CacheError(f"Failed to open link cache at {self._db_path}: {e}") from e
        self._conn = conn
        logger.info("Link cache opened. path=%s", self._db_path)

    def _require_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise CacheError(f"Link cache is not open. path={self._db_path}")
        return self._conn

    def _get_sync(self, key: str) -> Optional[CacheRecord]:
        with self._lock:
            conn = self._require_conn()
            try:
                row = conn.execute(_SELECT_SQL, (key,)).fetchone()
            except sqlite3.Error as e:
                raise CacheError(f"Link cache lookup failed for {key}: {e}") from e

        if row is None:
            logger.debug("Link cache miss. long_url=%s", key)
            return None
        logger.debug("Link cache hit. long_url=%s", key)
        try:
            created_at = _parse_rfc3339(row[2])
        except ValueError as e:
            raise CacheError(f"Corrupted link cache record for {key}: {e}") from e
        return CacheRecord(
            long_url=row[0],
            short_url=row[1],
            created_at=created_at,
            bitlink_id=row[3],
            domain=row[4],
            group_guid=row[5],
        )

    def _put_sync(self, key: str, link: Bitlink, domain: Optional[str], group_guid: Optional[str]) -> None:
        params = (key, link.link, link.id, domain, group_guid, _format_rfc3339(_utc_now()))
        with self._lock:
            conn = self._require_conn()
            try:
                with conn:
                    inserted = conn.execute(_INSERT_SQL, params).rowcount
            except sqlite3.Error as e:
                raise CacheError(f"Link cache write failed for {key}: {e}") from e
        logger.debug("Link cache write. long_url=%s inserted=%s", key, bool(inserted))

    def _close_sync(self) -> None:
        with self._lock:
            if self._conn is None:
                return
            try:
                self._conn.close()
            except sqlite3.Error as e:
                raise CacheError(f"Failed to close link cache at {self._db_path}: {e}") from e
            finally:
                self._conn = None
        logger.info("Link cache closed. path=%s", self._db_path)
