# provenance/storage/memory.py
from contextlib import contextmanager
from typing import Dict, List, Optional

from provenance.core.types import Item, Checkpoint
from . import StorageBackend


class MemoryStorage(StorageBackend):
    """Process-local storage, mostly for tests and throwaway ledgers."""

    def __init__(self):
        self._items: Dict[str, Item] = {}
        self._histories: Dict[str, List[Checkpoint]] = {}
        self._holdings: Dict[str, List[str]] = {}
        self._participants: Dict[str, None] = {}      # insertion-ordered set
        self._meta: Dict[str, str] = {}
        self._depth = 0
        self._closed = False

    def _check_open(self):
        if self._closed:
            raise RuntimeError("Storage is closed")

    @contextmanager
    def transaction(self):
        self._check_open()
        if self._depth:
            # Nested scope joins the outer one
            self._depth += 1
            try:
                yield self
            finally:
                self._depth -= 1
            return

        snapshot = (
            dict(self._items),
            {k: list(v) for k, v in self._histories.items()},
            {k: list(v) for k, v in self._holdings.items()},
            dict(self._participants),
            dict(self._meta),
        )
        self._depth = 1
        try:
            yield self
        except BaseException:
            (self._items, self._histories, self._holdings,
             self._participants, self._meta) = snapshot
            raise
        finally:
            self._depth = 0

    def get_item(self, item_id: str) -> Optional[Item]:
        self._check_open()
        return self._items.get(item_id)

    def put_item(self, item: Item) -> None:
        self._check_open()
        self._items[item.id] = item

    def list_item_ids(self, offset: int = 0, limit: Optional[int] = None) -> List[str]:
        self._check_open()
        ids = list(self._items)
        end = None if limit is None else offset + limit
        return ids[offset:end]

    def count_items(self) -> int:
        self._check_open()
        return len(self._items)

    def append_checkpoint(self, cp: Checkpoint) -> None:
        self._check_open()
        if cp.hash is None:
            raise ValueError("Cannot persist unsealed checkpoint")
        history = self._histories.setdefault(cp.item_id, [])
        if cp.sequence != len(history):
            raise ValueError(
                f"Out-of-order checkpoint for {cp.item_id}: expected {len(history)}, got {cp.sequence}"
            )
        history.append(cp)

    def history_length(self, item_id: str) -> int:
        self._check_open()
        return len(self._histories.get(item_id, ()))

    def load_checkpoints(self, item_id: str, offset: int = 0, limit: Optional[int] = None) -> List[Checkpoint]:
        self._check_open()
        history = self._histories.get(item_id, [])
        end = None if limit is None else offset + limit
        return history[offset:end]

    def append_holding(self, actor: str, item_id: str) -> None:
        self._check_open()
        self._holdings.setdefault(actor, []).append(item_id)

    def load_holdings(self, actor: str) -> List[str]:
        self._check_open()
        return list(self._holdings.get(actor, ()))

    def list_holders(self) -> List[str]:
        self._check_open()
        return list(self._holdings)

    def get_meta(self, key: str) -> Optional[str]:
        self._check_open()
        return self._meta.get(key)

    def set_meta(self, key: str, value: str) -> None:
        self._check_open()
        self._meta[key] = value

    def add_participant(self, actor: str) -> None:
        self._check_open()
        self._participants[actor] = None

    def remove_participant(self, actor: str) -> None:
        self._check_open()
        self._participants.pop(actor, None)

    def is_participant(self, actor: str) -> bool:
        self._check_open()
        return actor in self._participants

    def list_participants(self) -> List[str]:
        self._check_open()
        return list(self._participants)

    def close(self) -> None:
        self._closed = True
