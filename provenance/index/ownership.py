# provenance/index/ownership.py
import logging
from typing import Tuple

from provenance.chain.context import LedgerContext
from provenance.storage import StorageBackend

logger = logging.getLogger(__name__)


class OwnershipIndex:
    """
    Reverse index actor → item ids the actor created or received.

    Append-only: it answers "has ever held", not "currently holds". The
    current holder of an item is Item.current_custodian.
    """

    def __init__(self, ctx: LedgerContext):
        self.ctx = ctx

    def record_for_actor(self, store: StorageBackend, actor: str, item_id: str) -> None:
        """Only called from inside a registry mutation (same transaction)."""
        store.append_holding(actor, item_id)
        logger.debug("Indexed %s for %s", item_id, actor)

    def get_items_of(self, actor: str) -> Tuple[str, ...]:
        with self.ctx.lock:
            return tuple(self.ctx.store.load_holdings(actor))

    def actors(self) -> Tuple[str, ...]:
        with self.ctx.lock:
            return tuple(self.ctx.store.list_holders())
