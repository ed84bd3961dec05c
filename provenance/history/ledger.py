# provenance/history/ledger.py
import logging
from dataclasses import replace
from typing import List

from provenance.access.control import AccessControl
from provenance.chain.context import LedgerContext
from provenance.core.canon import checkpoint_hash
from provenance.core.errors import NotFound, Inactive, Unauthorized, NoChange
from provenance.core.types import Checkpoint, CheckpointKind, Item, Status
from provenance.events import StatusUpdated
from provenance.history.view import HistoryView
from provenance.storage import StorageBackend

logger = logging.getLogger(__name__)


class HistoryLedger:
    """Append-only per-item checkpoint sequences."""

    def __init__(self, ctx: LedgerContext, access: AccessControl, page_size: int = 100):
        self.ctx = ctx
        self.access = access
        self.page_size = page_size

    def write(
        self,
        store: StorageBackend,
        item: Item,
        kind: CheckpointKind,
        status: Status,
        location: str,
        note: str,
        actor: str,
        custodian: str,
        timestamp: str,
    ) -> Checkpoint:
        """
        Seal and store the next checkpoint of `item`: sequence = current length,
        prev_hash = hash of the current last entry. Must run inside a mutation.
        """
        last = store.last_checkpoint(item.id)
        unsealed = Checkpoint(
            item_id=item.id,
            sequence=0 if last is None else last.sequence + 1,
            kind=kind,
            status=status,
            location=location,
            note=note,
            actor=actor,
            custodian=custodian,
            timestamp=timestamp,
            prev_hash="" if last is None else last.hash,
            hash=None,
        )
        sealed = replace(unsealed, hash=checkpoint_hash(unsealed))
        store.append_checkpoint(sealed)
        return sealed

    def append_checkpoint(
        self,
        item_id: str,
        status: "Status | str",
        location: str = "",
        note: str = "",
        actor: str = "",
    ) -> Checkpoint:
        """
        Record a status change. Rejected if the item is unknown or inactive, if
        the actor may not record checkpoints, or if the status would not change.
        """
        status = Status.parse(status)
        with self.ctx.lock:
            # Read and check inside the write transaction so another
            # connection to the same database cannot commit in between.
            with self.ctx.mutation() as store:
                item = store.get_item(item_id)
                if item is None:
                    raise NotFound(f"Unknown item: {item_id!r}")
                if not item.active:
                    raise Inactive(f"Item {item_id!r} is deactivated")
                if not self.access.may_record_checkpoint(actor, item):
                    logger.info("Rejected checkpoint on %s by %r: not allowed", item_id, actor)
                    raise Unauthorized(f"{actor!r} may not record checkpoints for {item_id!r}")
                if item.current_status is status:
                    raise NoChange(f"Item {item_id!r} is already {status.value}")

                ts = self.ctx.clock()
                cp = self.write(
                    store, item, CheckpointKind.STATUS, status, location or "", note or "",
                    actor, item.current_custodian, ts,
                )
                store.put_item(replace(item, current_status=status))

            logger.info("%s → %s at %r by %s (#%d)", item_id, status.value, cp.location, actor, cp.sequence)
            self.ctx.publish([StatusUpdated(
                item_id=item_id,
                status=status,
                location=cp.location,
                note=cp.note,
                actor=actor,
                timestamp=ts,
            )])
            return cp

    def get_history(self, item_id: str) -> HistoryView:
        with self.ctx.lock:
            if self.ctx.store.get_item(item_id) is None:
                raise NotFound(f"Unknown item: {item_id!r}")
            length = self.ctx.store.history_length(item_id)
        logger.debug("History view for %s (%d entries)", item_id, length)
        return HistoryView(item_id, length, self._reader(item_id), page_size=self.page_size)

    def _reader(self, item_id: str):
        def read(offset: int, limit: int) -> List[Checkpoint]:
            with self.ctx.lock:
                return self.ctx.store.load_checkpoints(item_id, offset, limit)
        return read
