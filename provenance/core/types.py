# provenance/core/types.py
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Optional

from provenance.core.errors import InvalidStatus


class Status(str, Enum):
    """Lifecycle status of a tracked item."""
    CREATED = "Created"
    PROCESSING = "Processing"
    IN_TRANSIT = "InTransit"
    IN_STORAGE = "InStorage"
    DELIVERED = "Delivered"
    SOLD = "Sold"
    RETURNED = "Returned"
    RECALLED = "Recalled"

    @classmethod
    def parse(cls, value: "Status | str") -> "Status":
        """
        Accept a Status, its value ("InTransit") or its member name in any
        case / separator style ("in_transit", "IN-TRANSIT", "intransit").
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().replace("-", "").replace("_", "").replace(" ", "").lower()
            for member in cls:
                if key in (member.value.lower(), member.name.replace("_", "").lower()):
                    return member
        raise InvalidStatus(f"Unknown status: {value!r}")


INITIAL_STATUS = Status.CREATED


class CheckpointKind(str, Enum):
    REGISTERED = "registered"
    STATUS = "status"
    TRANSFER = "transfer"


@dataclass(frozen=True)
class Item:
    """Current-state snapshot of a registered item."""
    id: str
    description: str
    creator: str
    current_custodian: str
    current_status: Status
    active: bool
    created_at: str                 # ISO 8601 UTC with millis

    def to_dict(self) -> dict:
        d = asdict(self)
        d["current_status"] = self.current_status.value
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "Item":
        return cls(
            id=d["id"],
            description=d["description"],
            creator=d["creator"],
            current_custodian=d["current_custodian"],
            current_status=Status(d["current_status"]),
            active=bool(d["active"]),
            created_at=d["created_at"],
        )


@dataclass(frozen=True)
class Checkpoint:
    """Single immutable entry in an item's custody history."""
    item_id: str
    sequence: int                   # 0 for the registration entry
    kind: CheckpointKind
    status: Status
    location: str
    note: str
    actor: str                      # identity that recorded the entry
    custodian: str                  # custodian once this entry applies
    timestamp: str
    prev_hash: str = ""             # hex(sha256) of previous entry, empty for the first
    hash: Optional[str] = None      # None until sealed

    def to_dict(self) -> dict:
        d = asdict(self)
        d["kind"] = self.kind.value
        d["status"] = self.status.value
        return d

    def payload(self) -> dict:
        """Fields covered by the entry hash."""
        return {k: v for k, v in self.to_dict().items() if k != "hash"}

    @classmethod
    def from_dict(cls, d: dict) -> "Checkpoint":
        return cls(
            item_id=d["item_id"],
            sequence=int(d["sequence"]),
            kind=CheckpointKind(d["kind"]),
            status=Status(d["status"]),
            location=d["location"],
            note=d["note"],
            actor=d["actor"],
            custodian=d["custodian"],
            timestamp=d["timestamp"],
            prev_hash=d.get("prev_hash", ""),
            hash=d.get("hash"),
        )
