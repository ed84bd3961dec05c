# provenance/__init__.py
"""
Provenance — an append-only custody ledger for tracked items.
Items are registered once, move through status checkpoints and change hands;
every step is kept as an immutable, hash-linked history entry.
"""

from provenance.chain.ledger import CustodyLedger
from provenance.core.types import Item, Checkpoint, CheckpointKind, Status
from provenance.core.errors import (
    LedgerError,
    NotFound,
    AlreadyExists,
    Unauthorized,
    InvalidIdentifier,
    InvalidStatus,
    Inactive,
    AlreadyInactive,
    NoChange,
)
from provenance.events import RecordingSink, LoggingSink, JsonlSink, FanoutSink
from provenance.storage import create_storage, MemoryStorage, SQLiteStorage
from provenance.verify.verifier import LedgerVerifier

__version__ = "0.1.0-dev"

__all__ = [
    "CustodyLedger",
    "Item",
    "Checkpoint",
    "CheckpointKind",
    "Status",
    "LedgerError",
    "NotFound",
    "AlreadyExists",
    "Unauthorized",
    "InvalidIdentifier",
    "InvalidStatus",
    "Inactive",
    "AlreadyInactive",
    "NoChange",
    "RecordingSink",
    "LoggingSink",
    "JsonlSink",
    "FanoutSink",
    "create_storage",
    "MemoryStorage",
    "SQLiteStorage",
    "LedgerVerifier",
]
