# provenance/verify/verifier.py
from typing import List, Optional
from dataclasses import dataclass

from provenance.core.canon import checkpoint_hash
from provenance.core.types import CheckpointKind, INITIAL_STATUS
from provenance.storage import StorageBackend


@dataclass
class VerificationFailure:
    item_id: str
    index: int
    message: str
    category: str = "general"  # e.g. "hash_chain", "hash", "sequence", "state", "index", "storage"


@dataclass
class VerificationResult:
    is_valid: bool
    message: str = ""
    failures: List[VerificationFailure] = None
    checked_items: int = 0

    def __post_init__(self):
        if self.failures is None:
            self.failures = []

    @property
    def first_failure(self) -> Optional[VerificationFailure]:
        return self.failures[0] if self.failures else None

    def fail(self, item_id: str, index: int, message: str, category: str) -> None:
        self.failures.append(VerificationFailure(item_id, index, message, category))
        self.is_valid = False

    def __bool__(self):
        return self.is_valid

    def __str__(self):
        if self.is_valid:
            return f"Ledger is valid ✓ ({self.checked_items} items checked)"
        lines = [f"Verification FAILED ({len(self.failures)} issues):"]
        for f in self.failures:
            lines.append(f"  • {f.item_id}[{f.index}] {f.category}: {f.message}")
        return "\n".join(lines)


class LedgerVerifier:
    """
    Offline consistency checker for a stored ledger.

    Recomputes every checkpoint hash and link, and checks that the item
    records and the ownership index agree with the histories.
    """

    def __init__(self, storage: StorageBackend):
        self.storage = storage

    def verify_item(self, item_id: str) -> VerificationResult:
        result = VerificationResult(True)
        try:
            self._check_item(item_id, result)
        except (RuntimeError, ValueError, KeyError) as e:
            result.fail(item_id, -1, f"Failed to load item from storage: {e}", "storage")
        result.checked_items = 1
        result.message = "Valid item" if result.is_valid else f"Failed with {len(result.failures)} issues"
        return result

    def verify_all(self) -> VerificationResult:
        result = VerificationResult(True)
        try:
            item_ids = self.storage.list_item_ids()
            for item_id in item_ids:
                self._check_item(item_id, result)
            self._check_index(result)
        except (RuntimeError, ValueError, KeyError) as e:
            result.fail("*", -1, f"Failed to load ledger from storage: {e}", "storage")
            item_ids = []
        result.checked_items = len(item_ids)
        result.message = "Valid ledger" if result.is_valid else f"Failed with {len(result.failures)} issues"
        return result

    def _check_item(self, item_id: str, result: VerificationResult) -> None:
        item = self.storage.get_item(item_id)
        if item is None:
            result.fail(item_id, -1, "Item not found", "state")
            return

        chain = self.storage.load_checkpoints(item_id)
        if not chain:
            result.fail(item_id, -1, "Item has no history", "state")
            return

        # 1. Sequence & ownership of entries
        for i, cp in enumerate(chain):
            if cp.item_id != item_id:
                result.fail(item_id, i, f"Entry belongs to {cp.item_id!r}", "sequence")
            if cp.sequence != i:
                result.fail(item_id, i, f"Sequence mismatch: expected {i}, got {cp.sequence}", "sequence")

        # 2. Hashes and links
        for i, cp in enumerate(chain):
            if cp.hash != checkpoint_hash(cp):
                result.fail(item_id, i, "Stored hash does not match entry content", "hash")
            expected_prev = chain[i - 1].hash if i else ""
            if cp.prev_hash != expected_prev:
                result.fail(item_id, i, "prev_hash does not match previous entry hash", "hash_chain")

        # 3. Registration entry
        first = chain[0]
        if first.kind is not CheckpointKind.REGISTERED or first.status is not INITIAL_STATUS:
            result.fail(item_id, 0, "First entry is not the registration entry", "state")
        if first.actor != item.creator:
            result.fail(item_id, 0, f"Registered by {first.actor!r}, item says {item.creator!r}", "state")
        if first.timestamp != item.created_at:
            result.fail(item_id, 0, "created_at does not match registration timestamp", "state")

        # 4. Denormalized current state
        last = chain[-1]
        if item.current_status is not last.status:
            result.fail(
                item_id, len(chain) - 1,
                f"current_status {item.current_status.value} != last entry {last.status.value}", "state",
            )
        if item.current_custodian != last.custodian:
            result.fail(
                item_id, len(chain) - 1,
                f"current_custodian {item.current_custodian!r} != last entry {last.custodian!r}", "state",
            )

        if item_id not in self.storage.load_holdings(item.creator):
            result.fail(item_id, -1, f"Missing from index of creator {item.creator!r}", "index")

    def _check_index(self, result: VerificationResult) -> None:
        for actor in self.storage.list_holders():
            for item_id in self.storage.load_holdings(actor):
                if self.storage.get_item(item_id) is None:
                    result.fail(item_id, -1, f"Indexed for {actor!r} but not registered", "index")
