# provenance/events/__init__.py
"""
Outbound notifications emitted after a mutation has been committed.

Events are the integration surface for indexers and dashboards. A ledger
publishes them to whatever EventSink it was constructed with.
"""

from dataclasses import dataclass, asdict
from typing import ClassVar

from provenance.core.types import Status


@dataclass(frozen=True)
class LedgerEvent:
    name: ClassVar[str] = "LedgerEvent"

    def to_dict(self) -> dict:
        d = {"event": self.name}
        for key, value in asdict(self).items():
            d[key] = value.value if isinstance(value, Status) else value
        return d


@dataclass(frozen=True)
class ItemRegistered(LedgerEvent):
    name: ClassVar[str] = "ItemRegistered"
    item_id: str
    creator: str
    description: str
    timestamp: str


@dataclass(frozen=True)
class StatusUpdated(LedgerEvent):
    name: ClassVar[str] = "StatusUpdated"
    item_id: str
    status: Status
    location: str
    note: str
    actor: str
    timestamp: str


@dataclass(frozen=True)
class ItemDeactivated(LedgerEvent):
    name: ClassVar[str] = "ItemDeactivated"
    item_id: str
    actor: str
    timestamp: str


@dataclass(frozen=True)
class OwnershipTransferred(LedgerEvent):
    """Custody change of one item, or handover of the ledger administration."""
    name: ClassVar[str] = "OwnershipTransferred"
    scope: str                      # "item" | "administration"
    previous_holder: str
    new_holder: str
    actor: str
    timestamp: str
    item_id: str = ""               # empty for scope="administration"


@dataclass(frozen=True)
class ParticipantAuthorized(LedgerEvent):
    name: ClassVar[str] = "ParticipantAuthorized"
    actor: str
    by: str
    timestamp: str


@dataclass(frozen=True)
class ParticipantRevoked(LedgerEvent):
    name: ClassVar[str] = "ParticipantRevoked"
    actor: str
    by: str
    timestamp: str


SCOPE_ITEM = "item"
SCOPE_ADMINISTRATION = "administration"


from .sinks import EventSink, RecordingSink, LoggingSink, JsonlSink, FanoutSink, NullSink

__all__ = [
    "LedgerEvent",
    "ItemRegistered",
    "StatusUpdated",
    "ItemDeactivated",
    "OwnershipTransferred",
    "ParticipantAuthorized",
    "ParticipantRevoked",
    "SCOPE_ITEM",
    "SCOPE_ADMINISTRATION",
    "EventSink",
    "RecordingSink",
    "LoggingSink",
    "JsonlSink",
    "FanoutSink",
    "NullSink",
]
