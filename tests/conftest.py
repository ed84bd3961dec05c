# tests/conftest.py
import itertools
from pathlib import Path

import pytest

from provenance.chain.ledger import CustodyLedger
from provenance.events import RecordingSink
from provenance.storage import MemoryStorage, SQLiteStorage

ADMIN = "ADMIN"


class TickClock:
    """Deterministic clock: one second per call."""

    def __init__(self):
        self._ticks = itertools.count()

    def __call__(self) -> str:
        n = next(self._ticks)
        return f"2026-02-13T14:{n // 60:02d}:{n % 60:02d}.000Z"


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def clock() -> TickClock:
    return TickClock()


@pytest.fixture(params=["memory", "sqlite"])
def storage(request, tmp_path: Path):
    backend = MemoryStorage() if request.param == "memory" else SQLiteStorage(tmp_path / "ledger.db")
    yield backend
    backend.close()


@pytest.fixture
def ledger(storage, sink, clock) -> CustodyLedger:
    """Ledger administered by ADMIN, with M1 and M2 as authorized participants."""
    ledger = CustodyLedger(storage, administrator=ADMIN, sink=sink, clock=clock)
    ledger.authorize("M1", ADMIN)
    ledger.authorize("M2", ADMIN)
    sink.clear()
    return ledger
