# tests/test_verify.py
import sqlite3
from dataclasses import replace
from pathlib import Path

import pytest

from provenance.chain.ledger import CustodyLedger
from provenance.core.types import Status
from provenance.storage import MemoryStorage, SQLiteStorage
from provenance.verify.verifier import LedgerVerifier

ADMIN = "ADMIN"


def build_ledger(storage, clock) -> CustodyLedger:
    ledger = CustodyLedger(storage, administrator=ADMIN, clock=clock)
    ledger.authorize("M1", ADMIN)
    ledger.register("A1", "widget", "M1")
    ledger.append_checkpoint("A1", Status.IN_TRANSIT, "DOCK-7", "", "M1")
    ledger.transfer_ownership("A1", "M2", "M1")
    ledger.register("B2", "gadget", "M2")
    ledger.deactivate("B2", "M2")
    return ledger


def test_valid_ledger(clock):
    ledger = build_ledger(MemoryStorage(), clock)
    result = LedgerVerifier(ledger.storage).verify_all()
    assert result.is_valid, str(result)
    assert result.checked_items == 2
    assert len(result.failures) == 0
    assert "valid" in str(result).lower()


def test_valid_item(clock):
    ledger = build_ledger(MemoryStorage(), clock)
    result = LedgerVerifier(ledger.storage).verify_item("A1")
    assert result
    assert result.first_failure is None


def test_unknown_item_fails():
    result = LedgerVerifier(MemoryStorage()).verify_item("nope")
    assert not result.is_valid
    assert result.first_failure.category == "state"


def test_tampered_checkpoint_in_memory(clock):
    ledger = build_ledger(MemoryStorage(), clock)
    history = ledger.storage._histories["A1"]
    history[1] = replace(history[1], location="SOMEWHERE-ELSE")

    result = LedgerVerifier(ledger.storage).verify_item("A1")
    assert result.is_valid is False
    assert any(f.category == "hash" and f.index == 1 for f in result.failures)


def test_broken_hash_link(clock):
    ledger = build_ledger(MemoryStorage(), clock)
    history = ledger.storage._histories["A1"]
    history[2] = replace(history[2], prev_hash="deadbeef" * 8)

    result = LedgerVerifier(ledger.storage).verify_item("A1")
    assert result.is_valid is False
    assert any(f.category == "hash_chain" for f in result.failures)


def test_wrong_sequence(clock):
    ledger = build_ledger(MemoryStorage(), clock)
    history = ledger.storage._histories["A1"]
    history[1] = replace(history[1], sequence=99)

    result = LedgerVerifier(ledger.storage).verify_item("A1")
    assert result.is_valid is False
    assert any(f.category == "sequence" for f in result.failures)


def test_stale_current_status(clock):
    ledger = build_ledger(MemoryStorage(), clock)
    item = ledger.storage.get_item("A1")
    ledger.storage.put_item(replace(item, current_status=Status.DELIVERED))

    result = LedgerVerifier(ledger.storage).verify_item("A1")
    assert result.is_valid is False
    assert any("current_status" in f.message for f in result.failures)


def test_dangling_index_entry(clock):
    ledger = build_ledger(MemoryStorage(), clock)
    ledger.storage.append_holding("M1", "GHOST")

    result = LedgerVerifier(ledger.storage).verify_all()
    assert result.is_valid is False
    assert any(f.category == "index" and f.item_id == "GHOST" for f in result.failures)


def test_tamper_detection_in_sqlite(tmp_path: Path, clock):
    db = tmp_path / "ledger.db"
    build_ledger(SQLiteStorage(db), clock).close()

    conn = sqlite3.connect(db)
    conn.execute("""
        UPDATE checkpoints
        SET canonical_json = REPLACE(canonical_json, 'DOCK-7', 'DOCK-9')
        WHERE item_id = 'A1' AND sequence = 1
    """)
    conn.commit()
    conn.close()

    with SQLiteStorage(db) as storage:
        assert storage.load_checkpoints("A1")[1].location == "DOCK-9"
        result = LedgerVerifier(storage).verify_all()

    assert not result.is_valid, "Tampered history should fail verification"
    assert any(f.category == "hash" for f in result.failures)


def test_closed_storage_reports_failure(clock):
    ledger = build_ledger(MemoryStorage(), clock)
    ledger.close()
    result = LedgerVerifier(ledger.storage).verify_all()
    assert not result.is_valid
    assert result.first_failure.category == "storage"
