"""SQLite store for assembled digest records.

Records are JSON blobs in two tables:
  digest_cache    named slots (``latest_digest``) stamped with a naive UTC
                  ``stored_at`` so callers can ask for "only if younger than N hours"
  digest_history  append-only log keyed by the digest's own timestamp
"""

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

from market_digest.core.logger import logger

_STAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class SQLiteCache:
    """Key → JSON record store with per-read freshness limits.

    Args:
        db_path: SQLite file; parent directories are created on demand.
    """

    def __init__(self, db_path: str = "output/.cache.db") -> None:
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            conn.execute(
                "CREATE TABLE IF NOT EXISTS digest_cache ("
                " cache_key TEXT PRIMARY KEY,"
                " record_data TEXT NOT NULL,"
                " stored_at TEXT NOT NULL)"
            )
            conn.execute(
                "CREATE TABLE IF NOT EXISTS digest_history ("
                " digest_timestamp TEXT PRIMARY KEY,"
                " record_data TEXT NOT NULL,"
                " stored_at TEXT NOT NULL)"
            )

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Open, commit on success and always close."""
        conn = sqlite3.connect(self.db_path, check_same_thread=False)
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    # ── public API ──────────────────────────────────────────────────────────

    def get(self, key: str, max_age_hours: Optional[float] = None) -> Optional[Dict[str, Any]]:
        """
        Return the record stored under ``key``.

        Args:
            key (str): Record name.
            max_age_hours (Optional[float]): Treat older records as missing.
                ``None`` accepts a record of any age.

        Returns:
            Optional[Dict[str, Any]]: The record, or None when absent, stale or unreadable.
        """
        row = self._read(key)
        if row is None:
            logger.info(f"SQLiteCache: miss for {key}")
            return None

        blob, stored_at = row
        age = self._age_hours(stored_at)
        if max_age_hours is not None and (age is None or age > max_age_hours):
            logger.info(f"SQLiteCache: {key} is stale ({_fmt_age(age)} > {max_age_hours}h)")
            return None

        try:
            record = json.loads(blob)
        except json.JSONDecodeError as e:
            logger.error(f"SQLiteCache: corrupt record for {key}: {e}")
            return None
        logger.info(f"SQLiteCache: hit for {key} (age {_fmt_age(age)})")
        return record

    def set(self, key: str, value: Dict[str, Any]) -> None:
        """Store ``value`` under ``key``, replacing any previous record. Failures are logged."""
        try:
            blob = json.dumps(value)
            with self._connect() as conn:
                conn.execute(
                    "INSERT OR REPLACE INTO digest_cache (cache_key, record_data, stored_at) VALUES (?, ?, ?)",
                    (key, blob, _utcnow().strftime(_STAMP_FORMAT)),
                )
        except (sqlite3.Error, TypeError, ValueError) as e:
            logger.error(f"SQLiteCache: could not store {key}: {e}")

    def clear(self, key: str) -> None:
        """Forget the record stored under ``key``."""
        try:
            with self._connect() as conn:
                conn.execute("DELETE FROM digest_cache WHERE cache_key = ?", (key,))
        except sqlite3.Error as e:
            logger.error(f"SQLiteCache: could not clear {key}: {e}")

    def append_history(self, record: Dict[str, Any]) -> bool:
        """
        Add a digest record to the history, keyed by its ``timestamp``.

        A timestamp already in the history is left as it was.

        Returns:
            bool: True when a new row was written.
        """
        stamp = record.get("timestamp")
        if not stamp:
            logger.warning("SQLiteCache: refusing to archive a record without a timestamp")
            return False
        try:
            blob = json.dumps(record)
            with self._connect() as conn:
                cursor = conn.execute(
                    "INSERT OR IGNORE INTO digest_history (digest_timestamp, record_data, stored_at) VALUES (?, ?, ?)",
                    (stamp, blob, _utcnow().strftime(_STAMP_FORMAT)),
                )
                added = cursor.rowcount == 1
        except (sqlite3.Error, TypeError, ValueError) as e:
            logger.error(f"SQLiteCache: could not archive digest {stamp}: {e}")
            return False
        if not added:
            logger.info(f"SQLiteCache: digest {stamp} already archived")
        return added

    def history(self, limit: int = 30) -> List[Dict[str, Any]]:
        """Archived records, newest first, at most ``limit`` of them."""
        try:
            with self._connect() as conn:
                rows = conn.execute(
                    "SELECT digest_timestamp, record_data FROM digest_history"
                    " ORDER BY digest_timestamp DESC LIMIT ?",
                    (limit,),
                ).fetchall()
        except sqlite3.Error as e:
            logger.error(f"SQLiteCache: history read failed: {e}")
            return []

        records = []
        for stamp, blob in rows:
            try:
                records.append(json.loads(blob))
            except json.JSONDecodeError as e:
                logger.error(f"SQLiteCache: skipping corrupt history row {stamp}: {e}")
        return records

    # ── internal ────────────────────────────────────────────────────────────

    def _read(self, key: str) -> Optional[Tuple[str, str]]:
        try:
            with self._connect() as conn:
                return conn.execute(
                    "SELECT record_data, stored_at FROM digest_cache WHERE cache_key = ?",
                    (key,),
                ).fetchone()
        except sqlite3.Error as e:
            logger.error(f"SQLiteCache: read failed for {key}: {e}")
            return None

    @staticmethod
    def _age_hours(stored_at: str) -> Optional[float]:
        try:
            stored = datetime.strptime(stored_at, _STAMP_FORMAT)
        except (TypeError, ValueError):
            return None
        return (_utcnow() - stored) / timedelta(hours=1)


def _fmt_age(age: Optional[float]) -> str:
    return "unknown" if age is None else f"{age:.1f}h"


def _utcnow() -> datetime:
    """Naive UTC now, matching the stored ``stored_at`` format."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
