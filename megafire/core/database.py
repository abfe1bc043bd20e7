"""
Database module for persistent storage.
Uses SQLite for the player profile (credits), round results and saved strategies.
"""

import json
import sqlite3
import threading
import uuid
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from megafire.config import settings
from megafire.core.logger import get_logger

# Get logger for this module
logger = get_logger("database")


class Database:
    """Thread-safe SQLite database wrapper for a single-player table."""

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = Path(db_path) if db_path else settings.paths.get_db_path()
        self._local = threading.local()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        logger.info(f"Initializing database at {self.db_path}")
        self._init_db()

    def _get_connection(self) -> sqlite3.Connection:
        if getattr(self._local, "connection", None) is None:
            self._local.connection = sqlite3.connect(
                str(self.db_path), check_same_thread=False
            )
            self._local.connection.row_factory = sqlite3.Row
        return self._local.connection

    def _init_db(self):
        conn = self._get_connection()
        cursor = conn.cursor()

        # Single-row profile
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS profile (
                id INTEGER PRIMARY KEY CHECK (id = 1),
                credits INTEGER NOT NULL,
                updated_at TEXT DEFAULT CURRENT_TIMESTAMP
            )
        """
        )

        # Round results; bonus payouts are stored as their own row with a multiplier
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS rounds (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                winning_number INTEGER NOT NULL,
                is_fire_hit INTEGER DEFAULT 0,
                multiplier INTEGER,
                total_win INTEGER DEFAULT 0,
                created_at TEXT DEFAULT CURRENT_TIMESTAMP
            )
        """
        )

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS saved_strategies (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                description TEXT DEFAULT '',
                color_code TEXT DEFAULT '#3b82f6',
                bets TEXT NOT NULL,
                created_at TEXT DEFAULT CURRENT_TIMESTAMP
            )
        """
        )

        conn.commit()

    def close(self):
        conn = getattr(self._local, "connection", None)
        if conn is not None:
            conn.close()
            self._local.connection = None

    # ==================== Profile ====================

    def load_credits(self, default: int) -> int:
        """Stored balance, seeding the profile with `default` on first run."""
        conn = self._get_connection()
        cursor = conn.cursor()

        cursor.execute("SELECT credits FROM profile WHERE id = 1")
        row = cursor.fetchone()
        if row:
            return int(row["credits"])

        cursor.execute(
            "INSERT INTO profile (id, credits, updated_at) VALUES (1, ?, ?)",
            (default, datetime.now().isoformat()),
        )
        conn.commit()
        logger.info(f"Created profile with {default} credits")
        return default

    def set_credits(self, credits: int):
        conn = self._get_connection()
        conn.execute(
            """
            INSERT INTO profile (id, credits, updated_at) VALUES (1, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                credits = excluded.credits,
                updated_at = excluded.updated_at
        """,
            (credits, datetime.now().isoformat()),
        )
        conn.commit()

    async def push_credits(self, credits: int):
        """Outbound credits sync port."""
        self.set_credits(credits)
        logger.debug(f"Credits synced: {credits}")

    # ==================== Rounds ====================

    def insert_round(
        self,
        winning_number: int,
        is_fire_hit: bool,
        multiplier: Optional[int],
        total_win: int,
    ) -> int:
        conn = self._get_connection()
        cursor = conn.cursor()
        cursor.execute(
            """
            INSERT INTO rounds (winning_number, is_fire_hit, multiplier, total_win, created_at)
            VALUES (?, ?, ?, ?, ?)
        """,
            (
                winning_number,
                1 if is_fire_hit else 0,
                multiplier,
                total_win,
                datetime.now().isoformat(),
            ),
        )
        conn.commit()
        return cursor.lastrowid

    async def record_round(
        self,
        winning_number: int,
        is_fire_hit: bool,
        multiplier: Optional[int],
        total_win: int,
    ):
        """Round persistence port used by the table."""
        self.insert_round(winning_number, is_fire_hit, multiplier, total_win)

    def get_recent_rounds(self, limit: int = 50) -> List[Dict]:
        conn = self._get_connection()
        cursor = conn.cursor()

        cursor.execute(
            """
            SELECT * FROM rounds ORDER BY id DESC LIMIT ?
        """,
            (limit,),
        )
        rounds = []
        for row in cursor.fetchall():
            data = dict(row)
            data["is_fire_hit"] = bool(data["is_fire_hit"])
            rounds.append(data)
        return rounds

    # ==================== Saved Strategies ====================

    def save_strategy(
        self,
        name: str,
        bets: Mapping[str, int],
        description: str = "",
        color_code: str = "#3b82f6",
    ) -> Dict:
        conn = self._get_connection()
        strategy_id = uuid.uuid4().hex[:12]
        conn.execute(
            """
            INSERT INTO saved_strategies (id, name, description, color_code, bets, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """,
            (
                strategy_id,
                name,
                description,
                color_code,
                json.dumps(dict(bets)),
                datetime.now().isoformat(),
            ),
        )
        conn.commit()
        logger.info(f"Saved strategy {name!r} ({strategy_id})")
        return self.get_strategy(strategy_id)

    def get_strategy(self, strategy_id: str) -> Optional[Dict]:
        conn = self._get_connection()
        cursor = conn.cursor()
        cursor.execute("SELECT * FROM saved_strategies WHERE id = ?", (strategy_id,))
        row = cursor.fetchone()
        return self._strategy_row(row) if row else None

    def list_strategies(self) -> List[Dict]:
        conn = self._get_connection()
        cursor = conn.cursor()
        cursor.execute("SELECT * FROM saved_strategies ORDER BY created_at DESC")
        return [self._strategy_row(row) for row in cursor.fetchall()]

    def delete_strategy(self, strategy_id: str) -> bool:
        conn = self._get_connection()
        cursor = conn.cursor()
        cursor.execute("DELETE FROM saved_strategies WHERE id = ?", (strategy_id,))
        conn.commit()
        return cursor.rowcount > 0

    @staticmethod
    def _strategy_row(row: sqlite3.Row) -> Dict:
        data = dict(row)
        data["bets"] = json.loads(data["bets"])
        return data


_db: Optional[Database] = None


def get_db() -> Database:
    """Shared instance at the configured path, created on first use."""
    global _db
    if _db is None:
        _db = Database()
    return _db
