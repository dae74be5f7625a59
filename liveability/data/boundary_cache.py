"""SQLite-backed cache of zone boundaries fetched from the remote source."""

import json
import logging
import sqlite3
from datetime import datetime, timedelta, timezone
from pathlib import Path

logger = logging.getLogger(__name__)


class BoundaryCache:
    def __init__(self, db_path: str = "data/boundary_cache.db"):
        self.db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._ensure_tables()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_tables(self) -> None:
        with self._connect() as conn:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS zone_boundaries (
                    zone_id TEXT PRIMARY KEY,
                    zone_json TEXT,
                    fetched_at TIMESTAMP
                );
            """)

    def get(self, zone_id: str, max_age_days: int = 90) -> dict | None:
        """Return the cached zone record or None if missing/stale."""
        cutoff = (datetime.now(timezone.utc) - timedelta(days=max_age_days)).isoformat()
        with self._connect() as conn:
            row = conn.execute(
                "SELECT zone_json FROM zone_boundaries "
                "WHERE zone_id = ? AND fetched_at > ?",
                (zone_id, cutoff),
            ).fetchone()
        if row:
            return json.loads(row["zone_json"])
        return None

    def set(self, zone_id: str, data: dict) -> None:
        """Store a fetched zone record."""
        now = datetime.now(timezone.utc).isoformat()
        with self._connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO zone_boundaries "
                "(zone_id, zone_json, fetched_at) VALUES (?, ?, ?)",
                (zone_id, json.dumps(data), now),
            )
        logger.debug("Cached boundary for zone %s", zone_id)
