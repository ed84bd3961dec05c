# provenance/chain/ledger.py
import logging
import threading
from pathlib import Path
from typing import List, Optional, Tuple, Union

from provenance.access.control import AccessControl, CheckpointPolicy
from provenance.chain.context import LedgerContext
from provenance.core.clock import Clock, utc_now
from provenance.core.types import Checkpoint, Item, Status
from provenance.events import EventSink, NullSink
from provenance.history.ledger import HistoryLedger
from provenance.history.view import HistoryView
from provenance.index.ownership import OwnershipIndex
from provenance.registry.items import ItemRegistry
from provenance.storage import StorageBackend, MemoryStorage, create_storage

logger = logging.getLogger(__name__)


class CustodyLedger:
    """
    Chain-of-custody ledger for tracked items.

    Wires access control, item registry, history and ownership index around
    a single store, lock, clock and event sink. The storage argument accepts a
    backend instance, a URI ("memory://", "sqlite:///path.db") or a plain
    file path; None means an in-memory ledger.
    """

    def __init__(
        self,
        storage: Optional[Union[StorageBackend, str, Path]] = None,
        administrator: Optional[str] = None,
        sink: Optional[EventSink] = None,
        clock: Clock = utc_now,
        checkpoint_policy: CheckpointPolicy = CheckpointPolicy.AUTHORIZED,
        page_size: int = 100,
    ):
        if storage is None:
            storage = MemoryStorage()
        elif isinstance(storage, (str, Path)):
            storage = create_storage(str(storage))

        self.ctx = LedgerContext(
            store=storage,
            sink=sink if sink is not None else NullSink(),
            clock=clock,
            lock=threading.RLock(),
        )
        self.access = AccessControl(self.ctx, checkpoint_policy=checkpoint_policy)
        self.history = HistoryLedger(self.ctx, self.access, page_size=page_size)
        self.index = OwnershipIndex(self.ctx)
        self.registry = ItemRegistry(self.ctx, self.access, self.history, self.index)

        self.access.bootstrap(administrator)
        logger.debug("Ledger opened on %s", type(storage).__name__)

    @property
    def storage(self) -> StorageBackend:
        return self.ctx.store

    @property
    def sink(self) -> EventSink:
        return self.ctx.sink

    # ── access control

    @property
    def administrator(self) -> str:
        return self.access.administrator

    def authorize(self, actor: str, caller: str) -> None:
        self.access.authorize(actor, caller)

    def revoke(self, actor: str, caller: str) -> None:
        self.access.revoke(actor, caller)

    def transfer_administration(self, new_admin: str, caller: str) -> None:
        self.access.transfer_administration(new_admin, caller)

    def is_authorized(self, actor: str) -> bool:
        return self.access.is_authorized(actor)

    def participants(self) -> List[str]:
        return self.access.participants()

    # ── registry

    def register(self, item_id: str, description: str, actor: str) -> Item:
        return self.registry.register(item_id, description, actor)

    def deactivate(self, item_id: str, actor: str) -> Item:
        return self.registry.deactivate(item_id, actor)

    def transfer_ownership(self, item_id: str, new_custodian: str, actor: str) -> Item:
        return self.registry.transfer_ownership(item_id, new_custodian, actor)

    def get_item(self, item_id: str) -> Item:
        return self.registry.get_item(item_id)

    def list_items(self, offset: int = 0, limit: Optional[int] = None) -> List[Item]:
        return self.registry.list_items(offset, limit)

    def count_items(self) -> int:
        return self.registry.count()

    # ── history

    def append_checkpoint(
        self,
        item_id: str,
        status: Union[Status, str],
        location: str = "",
        note: str = "",
        actor: str = "",
    ) -> Checkpoint:
        return self.history.append_checkpoint(item_id, status, location, note, actor)

    def get_history(self, item_id: str) -> HistoryView:
        return self.history.get_history(item_id)

    # ── ownership index

    def get_items_of(self, actor: str) -> Tuple[str, ...]:
        return self.index.get_items_of(actor)

    def close(self) -> None:
        with self.ctx.lock:
            self.ctx.store.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
