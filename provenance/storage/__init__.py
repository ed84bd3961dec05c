# provenance/storage/__init__.py
"""
Storage backends for the custody ledger.

A backend is a plain key-value store: item id → item, item id → checkpoint
sequence, actor → item id sequence, plus the access-control fields. It knows
nothing about authorization or invariants; the ledger components do.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import List, Optional
from pathlib import Path

from provenance.core.types import Item, Checkpoint


class StorageBackend(ABC):
    """Abstract base for all storage implementations."""

    # ── transactions
    @abstractmethod
    def transaction(self) -> AbstractContextManager:
        """All-or-nothing scope: writes inside are discarded if the block raises."""

    # ── items
    @abstractmethod
    def get_item(self, item_id: str) -> Optional[Item]:
        pass

    @abstractmethod
    def put_item(self, item: Item) -> None:
        pass

    @abstractmethod
    def list_item_ids(self, offset: int = 0, limit: Optional[int] = None) -> List[str]:
        pass

    @abstractmethod
    def count_items(self) -> int:
        pass

    # ── checkpoints
    @abstractmethod
    def append_checkpoint(self, cp: Checkpoint) -> None:
        pass

    @abstractmethod
    def history_length(self, item_id: str) -> int:
        pass

    @abstractmethod
    def load_checkpoints(self, item_id: str, offset: int = 0, limit: Optional[int] = None) -> List[Checkpoint]:
        pass

    def last_checkpoint(self, item_id: str) -> Optional[Checkpoint]:
        n = self.history_length(item_id)
        if n == 0:
            return None
        return self.load_checkpoints(item_id, n - 1, 1)[0]

    # ── ownership index
    @abstractmethod
    def append_holding(self, actor: str, item_id: str) -> None:
        pass

    @abstractmethod
    def load_holdings(self, actor: str) -> List[str]:
        pass

    @abstractmethod
    def list_holders(self) -> List[str]:
        pass

    # ── access control
    @abstractmethod
    def get_meta(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def set_meta(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def add_participant(self, actor: str) -> None:
        pass

    @abstractmethod
    def remove_participant(self, actor: str) -> None:
        pass

    @abstractmethod
    def is_participant(self, actor: str) -> bool:
        pass

    @abstractmethod
    def list_participants(self) -> List[str]:
        pass

    @abstractmethod
    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def create_storage(uri: str) -> StorageBackend:
    """
    memory://              → MemoryStorage
    sqlite:///abs/path.db  → SQLiteStorage
    anything else          → treated as a plain SQLite file path
    """
    uri = uri.strip()
    if uri.startswith("memory://"):
        return MemoryStorage()

    if uri.startswith("sqlite://"):
        raw_path = uri[len("sqlite://"):].lstrip("/")
        if not raw_path:
            raise ValueError(f"Missing database path in storage URI: {uri}")
        absolute_path = Path("/" + raw_path).resolve()
        return SQLiteStorage(absolute_path)

    if "://" in uri:
        raise ValueError(f"Unsupported storage URI: {uri}")
    if not uri:
        raise ValueError("Empty storage URI")
    return SQLiteStorage(Path(uri))


from .memory import MemoryStorage
from .sqlite import SQLiteStorage

__all__ = ["StorageBackend", "create_storage", "MemoryStorage", "SQLiteStorage"]
