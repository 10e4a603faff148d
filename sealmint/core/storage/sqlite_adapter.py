import sqlite3
import threading
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from sealmint.utils.logger import get_logger

logger = get_logger("storage.sqlite")


class SQLiteAdapter:
    """
    SQLite backend for persistent sale state.

    Provides:
    1. Participant records (commitment, appraisal, lifecycle status)
    2. Sale-wide state (statistics, supply, curve anchor, books) as a
       key/value table. Values are stored as text because appraisals and
       prices are uint256 and do not fit SQLite integers.
    """

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._conn_local = threading.local()

        if not db_path.parent.exists():
            db_path.parent.mkdir(parents=True, exist_ok=True)

        self._init_schema()

    def _get_conn(self) -> sqlite3.Connection:
        """Get or create connection for current thread."""
        if not hasattr(self._conn_local, "conn"):
            self._conn_local.conn = sqlite3.connect(
                self.db_path,
                timeout=30.0,
                check_same_thread=False
            )
            self._conn_local.conn.row_factory = sqlite3.Row
            self._conn_local.conn.execute("PRAGMA journal_mode=WAL;")
            self._conn_local.conn.execute("PRAGMA synchronous=NORMAL;")
        return self._conn_local.conn

    def _init_schema(self):
        """Initialize database schema."""
        conn = self._get_conn()
        with conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS participants (
                    address BLOB PRIMARY KEY,
                    status INTEGER NOT NULL,
                    commitment BLOB,
                    appraisal TEXT,
                    commit_count INTEGER NOT NULL DEFAULT 0
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_participant_status ON participants(status);")

            conn.execute("""
                CREATE TABLE IF NOT EXISTS sale_state (
                    key TEXT PRIMARY KEY,
                    value TEXT
                )
            """)

    def close(self):
        if hasattr(self._conn_local, "conn"):
            self._conn_local.conn.close()
            del self._conn_local.conn

    # =========================================================================
    # Participants
    # =========================================================================

    def get_all_participants(self) -> List[Tuple]:
        conn = self._get_conn()
        cursor = conn.execute(
            "SELECT address, status, commitment, appraisal, commit_count FROM participants"
        )
        return [tuple(row) for row in cursor]

    # =========================================================================
    # Sale State
    # =========================================================================

    def get_all_state(self) -> Dict[str, Optional[str]]:
        conn = self._get_conn()
        cursor = conn.execute("SELECT key, value FROM sale_state")
        return {row['key']: row['value'] for row in cursor}

    # =========================================================================
    # Atomic Update
    # =========================================================================

    def persist_update(
        self,
        participant_rows: List[Tuple],
        state: Dict[str, Optional[str]],
    ):
        """
        Atomically write changed participants and the sale state.

        Args:
            participant_rows: (address, status, commitment, appraisal, commit_count) rows
            state: key -> text value
        """
        conn = self._get_conn()
        with conn:
            conn.executemany(
                "INSERT OR REPLACE INTO participants "
                "(address, status, commitment, appraisal, commit_count) VALUES (?, ?, ?, ?, ?)",
                participant_rows
            )
            conn.executemany(
                "INSERT OR REPLACE INTO sale_state (key, value) VALUES (?, ?)",
                list(state.items())
            )
