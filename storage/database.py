"""
Match Snapshot Database Module

SQLite storage for MatchState snapshots, one row per match key. Provides
the raw snapshot CRUD functions and SqliteMatchStore, the store a scoring
session persists through.
"""

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from scoring.match_state import MatchState, initial_match_state
from storage.validation import dumps_match_state, validate_match_state

logger = logging.getLogger(__name__)

# Default database path
DEFAULT_DB_PATH = Path(__file__).parent / "cricket_scorer.db"

DEFAULT_MATCH_KEY = "current"


@contextmanager
def get_connection(db_path: Path = DEFAULT_DB_PATH):
    """Context manager for database connections returning dict-like rows."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()


def init_db(db_path: Path = DEFAULT_DB_PATH) -> None:
    """
    Initialise the database and create tables if they don't exist.

    Creates one table:
    - match_snapshots: Latest serialized MatchState per match key
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)

    with get_connection(db_path) as conn:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS match_snapshots (
                match_key TEXT PRIMARY KEY,
                state_json TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)
        conn.commit()


# =============================================================================
# Snapshot CRUD Operations
# =============================================================================

def save_snapshot(match_key: str, state_json: str, db_path: Path = DEFAULT_DB_PATH) -> None:
    """Insert or overwrite the snapshot stored under match_key (last writer wins)."""
    updated_at = datetime.now(timezone.utc).isoformat()

    with get_connection(db_path) as conn:
        conn.execute("""
            INSERT INTO match_snapshots (match_key, state_json, updated_at)
            VALUES (?, ?, ?)
            ON CONFLICT(match_key) DO UPDATE SET
                state_json = excluded.state_json,
                updated_at = excluded.updated_at
        """, (match_key, state_json, updated_at))
        conn.commit()


def load_snapshot(match_key: str, db_path: Path = DEFAULT_DB_PATH) -> Optional[str]:
    """Get the raw snapshot JSON for match_key, or None."""
    with get_connection(db_path) as conn:
        cursor = conn.cursor()
        cursor.execute(
            "SELECT state_json FROM match_snapshots WHERE match_key = ?",
            (match_key,)
        )
        row = cursor.fetchone()
        return row['state_json'] if row else None


def delete_snapshot(match_key: str, db_path: Path = DEFAULT_DB_PATH) -> bool:
    """Delete the snapshot for match_key."""
    with get_connection(db_path) as conn:
        cursor = conn.cursor()
        cursor.execute("DELETE FROM match_snapshots WHERE match_key = ?", (match_key,))
        conn.commit()
        return cursor.rowcount > 0


def list_snapshots(db_path: Path = DEFAULT_DB_PATH) -> list[dict]:
    """
    Get every stored match with a short summary, most recently updated first.

    Returns:
        List of dicts with match_key, updated_at, current_inning, balls_recorded
        and is_match_over
    """
    with get_connection(db_path) as conn:
        cursor = conn.cursor()
        cursor.execute(
            "SELECT match_key, state_json, updated_at FROM match_snapshots ORDER BY updated_at DESC"
        )
        rows = [dict(row) for row in cursor.fetchall()]

    results = []
    for row in rows:
        state = validate_match_state(row.pop('state_json'))
        row['current_inning'] = state.current_inning
        row['balls_recorded'] = len(state.ball_history)
        row['is_match_over'] = state.is_match_over
        results.append(row)

    return results


# =============================================================================
# Match Store
# =============================================================================

class SqliteMatchStore:
    """
    MatchStore backed by one row of match_snapshots.

    load() never raises: a missing row, unreadable JSON or a database error
    all produce a fresh match. save() and clear() log failures and return.
    With disabled=True, save() and clear() do nothing.
    """

    def __init__(
        self,
        db_path: Path = DEFAULT_DB_PATH,
        match_key: str = DEFAULT_MATCH_KEY,
        disabled: bool = False,
    ):
        self.db_path = Path(db_path)
        self.match_key = match_key
        self.disabled = disabled
        init_db(self.db_path)

    def load(self) -> MatchState:
        try:
            raw = load_snapshot(self.match_key, self.db_path)
        except sqlite3.Error:
            logger.exception(f"Failed to load match '{self.match_key}'")
            return initial_match_state()

        if raw is None:
            return initial_match_state()
        return validate_match_state(raw)

    def save(self, state: MatchState) -> None:
        if self.disabled:
            return
        try:
            save_snapshot(self.match_key, dumps_match_state(state), self.db_path)
        except (sqlite3.Error, OSError):
            logger.exception(f"Failed to save match '{self.match_key}'")

    def clear(self) -> None:
        if self.disabled:
            return
        try:
            delete_snapshot(self.match_key, self.db_path)
        except (sqlite3.Error, OSError):
            logger.exception(f"Failed to clear match '{self.match_key}'")
