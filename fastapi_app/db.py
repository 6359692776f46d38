import json
import logging
import os
import sqlite3
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from studio.graphics.persistence import PersistenceService

logger = logging.getLogger(__name__)

CURRENT_KEY = "current_template"


class Database(PersistenceService):
    """SQLite persistence for template snapshots"""

    def __init__(self, db_path: str = "templates.db"):
        self.db_path = db_path
        db_dir = os.path.dirname(db_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)
        self.init_db()

    def init_db(self):
        """Initialize database with required tables"""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS templates (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    snapshot_json TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """
            )

            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS meta (
                    key TEXT PRIMARY KEY,
                    value TEXT
                )
            """
            )

            conn.commit()
            logger.info("[db] Database initialized successfully")

    def save(self, template_id: str, snapshot: Dict[str, Any]) -> None:
        """Insert or replace a template snapshot"""
        now = datetime.now(timezone.utc).isoformat()
        name = (snapshot.get("manifest") or {}).get("name", "")
        try:
            with sqlite3.connect(self.db_path) as conn:
                conn.execute(
                    """
                    INSERT INTO templates (id, name, snapshot_json, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        name = excluded.name,
                        snapshot_json = excluded.snapshot_json,
                        updated_at = excluded.updated_at
                """,
                    (template_id, name, json.dumps(snapshot), now, now),
                )
                conn.commit()
        except sqlite3.Error as e:
            logger.error(f"[db] Failed to save template {template_id}: {e}")
            raise

    def load(self, template_id: str) -> Optional[Dict[str, Any]]:
        """Retrieve a template snapshot by ID"""
        with sqlite3.connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row
            row = conn.execute(
                "SELECT snapshot_json FROM templates WHERE id = ?", (template_id,)
            ).fetchone()
        if not row:
            return None
        return json.loads(row["snapshot_json"])

    def delete(self, template_id: str) -> bool:
        try:
            with sqlite3.connect(self.db_path) as conn:
                cursor = conn.execute("DELETE FROM templates WHERE id = ?", (template_id,))
                conn.commit()
                return cursor.rowcount > 0
        except sqlite3.Error as e:
            logger.error(f"[db] Failed to delete template {template_id}: {e}")
            raise

    def list_ids(self) -> List[str]:
        with sqlite3.connect(self.db_path) as conn:
            rows = conn.execute("SELECT id FROM templates ORDER BY created_at, id").fetchall()
        return [row[0] for row in rows]

    def list_summaries(self) -> List[Dict[str, Any]]:
        """Id, name and timestamps for every stored template"""
        with sqlite3.connect(self.db_path) as conn:
            conn.row_factory = sqlite3.Row
            rows = conn.execute(
                "SELECT id, name, created_at, updated_at FROM templates ORDER BY created_at, id"
            ).fetchall()
        return [dict(row) for row in rows]

    def save_current(self, template_id: Optional[str]) -> None:
        try:
            with sqlite3.connect(self.db_path) as conn:
                conn.execute(
                    "INSERT OR REPLACE INTO meta (key, value) VALUES (?, ?)",
                    (CURRENT_KEY, template_id),
                )
                conn.commit()
        except sqlite3.Error as e:
            logger.error(f"[db] Failed to save current template: {e}")
            raise

    def load_current(self) -> Optional[str]:
        with sqlite3.connect(self.db_path) as conn:
            row = conn.execute("SELECT value FROM meta WHERE key = ?", (CURRENT_KEY,)).fetchone()
        return row[0] if row else None
