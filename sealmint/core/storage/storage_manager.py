from pathlib import Path
from typing import Dict, List, Optional, Tuple

from sealmint.core.storage.sqlite_adapter import SQLiteAdapter
from sealmint.utils.logger import get_logger

logger = get_logger("storage.manager")


# Sale-wide values persisted for compatibility with external readers
STATE_KEYS = (
    "reveal_count",
    "mean",
    "variance",
    "total_supply",
    "last_mint_time",
    "clearing_price",
    "deposits_held",
    "proceeds",
    "total_collected",
    "total_refunded",
    "total_withdrawn",
)


def encode_int(value: Optional[int]) -> Optional[str]:
    return str(value) if value is not None else None


def decode_int(value: Optional[str]) -> Optional[int]:
    return int(value) if value is not None else None


class StorageManager:
    """
    Manages persistent storage for a sale.

    Coordinates data persistence using the SQLite adapter:
    - Participant records (commitment-by-participant, appraisal-by-participant)
    - Sale state (reveal count, mean, variance, total supply, curve anchor, books)
    """

    def __init__(self, data_dir: Path, db_name: str = "sale.db"):
        self.data_dir = Path(data_dir)
        self.db_path = self.data_dir / db_name
        self.adapter = SQLiteAdapter(self.db_path)

        logger.info(f"StorageManager initialized at {self.db_path}")

    # =========================================================================
    # Loading
    # =========================================================================

    def load_participants(self) -> List[Tuple]:
        return self.adapter.get_all_participants()

    def load_sale_state(self) -> Dict[str, Optional[int]]:
        """Persisted sale state; empty dict for a fresh database."""
        raw = self.adapter.get_all_state()
        return {key: decode_int(raw[key]) for key in STATE_KEYS if key in raw}

    # =========================================================================
    # Atomic Update
    # =========================================================================

    def persist_snapshot(
        self,
        participant_rows: List[Tuple],
        state: Dict[str, Optional[int]],
    ):
        """Atomically persist changed participants and the sale state."""
        unknown = set(state) - set(STATE_KEYS)
        if unknown:
            raise ValueError(f"Unknown sale state keys: {sorted(unknown)}")
        self.adapter.persist_update(
            participant_rows,
            {key: encode_int(value) for key, value in state.items()},
        )

    def close(self):
        self.adapter.close()
