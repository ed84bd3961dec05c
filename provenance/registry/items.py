# provenance/registry/items.py
import logging
from dataclasses import replace
from typing import List, Optional

from provenance.access.control import AccessControl
from provenance.chain.context import LedgerContext
from provenance.core.errors import (
    AlreadyExists,
    AlreadyInactive,
    Inactive,
    NoChange,
    NotFound,
    Unauthorized,
)
from provenance.core.identity import require_identifier
from provenance.core.types import CheckpointKind, Item, INITIAL_STATUS
from provenance.events import (
    ItemDeactivated,
    ItemRegistered,
    OwnershipTransferred,
    StatusUpdated,
    SCOPE_ITEM,
)
from provenance.history.ledger import HistoryLedger
from provenance.index.ownership import OwnershipIndex

logger = logging.getLogger(__name__)

REGISTRATION_LOCATION = "registry"
REGISTRATION_NOTE = "Item registered"


class ItemRegistry:
    """
    Create-once item records plus their denormalized current state.

    Every mutation writes the item, its history entry and the ownership index
    in one transaction; events go out only after it commits.
    """

    def __init__(
        self,
        ctx: LedgerContext,
        access: AccessControl,
        history: HistoryLedger,
        index: OwnershipIndex,
    ):
        self.ctx = ctx
        self.access = access
        self.history = history
        self.index = index

    def register(self, item_id: str, description: str, actor: str) -> Item:
        require_identifier(item_id, "item id")
        require_identifier(actor, "registering actor")
        with self.ctx.lock:
            with self.ctx.mutation() as store:
                if store.get_item(item_id) is not None:
                    logger.info("Rejected registration of %s: already exists", item_id)
                    raise AlreadyExists(f"Item {item_id!r} is already registered")

                ts = self.ctx.clock()
                item = Item(
                    id=item_id,
                    description=description or "",
                    creator=actor,
                    current_custodian=actor,
                    current_status=INITIAL_STATUS,
                    active=True,
                    created_at=ts,
                )
                store.put_item(item)
                self.history.write(
                    store, item, CheckpointKind.REGISTERED, INITIAL_STATUS,
                    REGISTRATION_LOCATION, REGISTRATION_NOTE, actor, actor, ts,
                )
                self.index.record_for_actor(store, actor, item_id)

            logger.info("Registered %s by %s", item_id, actor)
            self.ctx.publish([
                ItemRegistered(item_id=item_id, creator=actor, description=item.description, timestamp=ts),
                StatusUpdated(
                    item_id=item_id,
                    status=INITIAL_STATUS,
                    location=REGISTRATION_LOCATION,
                    note=REGISTRATION_NOTE,
                    actor=actor,
                    timestamp=ts,
                ),
            ])
            return item

    def deactivate(self, item_id: str, actor: str) -> Item:
        with self.ctx.lock:
            with self.ctx.mutation() as store:
                item = self._require(item_id)
                if actor != item.creator and not self.access.is_administrator(actor):
                    logger.info("Rejected deactivation of %s by %r", item_id, actor)
                    raise Unauthorized(f"Only the creator or the administrator may deactivate {item_id!r}")
                if not item.active:
                    raise AlreadyInactive(f"Item {item_id!r} is already deactivated")

                ts = self.ctx.clock()
                updated = replace(item, active=False)
                store.put_item(updated)

            logger.info("Deactivated %s by %s", item_id, actor)
            self.ctx.publish([ItemDeactivated(item_id=item_id, actor=actor, timestamp=ts)])
            return updated

    def transfer_ownership(self, item_id: str, new_custodian: str, actor: str) -> Item:
        with self.ctx.lock:
            with self.ctx.mutation() as store:
                item = self._require(item_id)
                if not item.active:
                    raise Inactive(f"Item {item_id!r} is deactivated")
                if actor != item.current_custodian:
                    logger.info("Rejected transfer of %s by %r: not the custodian", item_id, actor)
                    raise Unauthorized(f"Only the current custodian may transfer {item_id!r}")
                require_identifier(new_custodian, "new custodian")
                if new_custodian == item.current_custodian:
                    raise NoChange(f"{new_custodian!r} already holds {item_id!r}")

                ts = self.ctx.clock()
                previous = item.current_custodian
                updated = replace(item, current_custodian=new_custodian)
                last = store.last_checkpoint(item_id)
                self.history.write(
                    store, item, CheckpointKind.TRANSFER, item.current_status,
                    last.location if last else "",
                    f"Custody transferred from {previous} to {new_custodian}",
                    actor, new_custodian, ts,
                )
                store.put_item(updated)
                self.index.record_for_actor(store, new_custodian, item_id)

            logger.info("Transferred %s from %s to %s", item_id, previous, new_custodian)
            self.ctx.publish([OwnershipTransferred(
                scope=SCOPE_ITEM,
                item_id=item_id,
                previous_holder=previous,
                new_holder=new_custodian,
                actor=actor,
                timestamp=ts,
            )])
            return updated

    def get_item(self, item_id: str) -> Item:
        """Current state; deactivated items are returned with active=False."""
        with self.ctx.lock:
            return self._require(item_id)

    def list_items(self, offset: int = 0, limit: Optional[int] = None) -> List[Item]:
        if offset < 0 or (limit is not None and limit < 0):
            raise ValueError("offset and limit must be >= 0")
        with self.ctx.lock:
            ids = self.ctx.store.list_item_ids(offset, limit)
            return [self.ctx.store.get_item(i) for i in ids]

    def count(self) -> int:
        with self.ctx.lock:
            return self.ctx.store.count_items()

    def _require(self, item_id: str) -> Item:
        item = self.ctx.store.get_item(item_id)
        if item is None:
            raise NotFound(f"Unknown item: {item_id!r}")
        return item
