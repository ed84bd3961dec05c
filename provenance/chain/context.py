# provenance/chain/context.py
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterable

from provenance.core.clock import Clock, utc_now
from provenance.events import EventSink, NullSink
from provenance.storage import StorageBackend

logger = logging.getLogger(__name__)


@dataclass
class LedgerContext:
    """
    Everything the ledger components share: one store, one lock, one clock,
    one event sink. Owned by a CustodyLedger instance.
    """
    store: StorageBackend
    sink: EventSink = field(default_factory=NullSink)
    clock: Clock = utc_now
    lock: threading.RLock = field(default_factory=threading.RLock)

    @contextmanager
    def mutation(self):
        """
        Serialise against every other call and run the block as one store
        transaction. Callers publish events only after this block exits.
        """
        with self.lock:
            with self.store.transaction():
                yield self.store

    def publish(self, events: Iterable) -> None:
        # State is already committed here; a failing sink must not turn a
        # successful mutation into a reported failure.
        for event in events:
            try:
                self.sink.emit(event)
            except Exception:
                logger.exception("Event sink failed on %s", event.name)
