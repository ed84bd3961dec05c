# tests/test_cli.py
import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from provenance.cli.main import app
from provenance.chain.ledger import CustodyLedger
from provenance.core.types import Status
from provenance.storage import SQLiteStorage

runner = CliRunner()

ADMIN = "ADMIN"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ("PROVENANCE_DB_PATH", "PROVENANCE_ACTOR", "PROVENANCE_EVENTS_PATH",
                "PROVENANCE_CHECKPOINT_POLICY", "PROVENANCE_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def temp_db(tmp_path: Path) -> Path:
    return tmp_path / "test-cli.db"


@pytest.fixture
def populated_db(temp_db: Path) -> Path:
    """DB with one item that has been moved and handed over."""
    with CustodyLedger(SQLiteStorage(temp_db), administrator=ADMIN) as ledger:
        ledger.authorize("M1", ADMIN)
        ledger.register("A1", "widget", "M1")
        ledger.append_checkpoint("A1", Status.IN_TRANSIT, "DOCK-7", "left the plant", "M1")
        ledger.transfer_ownership("A1", "M2", "M1")
    return temp_db


def invoke(*args):
    return runner.invoke(app, [str(a) for a in args])


def test_items_no_db(tmp_path: Path):
    result = invoke("items", "--db", tmp_path / "missing.db")
    assert result.exit_code == 1
    assert "not found" in result.stdout.lower()
    assert "to get started" in result.stdout.lower()


def test_uninitialised_db(temp_db: Path):
    temp_db.touch()
    result = invoke("items", "--db", temp_db)
    assert result.exit_code == 1
    assert "not been initialised" in result.stdout


def test_init_creates_ledger(temp_db: Path):
    result = invoke("init", "--admin", ADMIN, "--db", temp_db)
    assert result.exit_code == 0, result.stdout
    assert temp_db.exists()
    assert "Administrator: ADMIN" in result.stdout

    again = invoke("init", "--admin", "OTHER", "--db", temp_db)
    assert again.exit_code == 0
    assert "Administrator: ADMIN" in again.stdout
    assert "unchanged" in again.stdout


def test_full_workflow(temp_db: Path):
    assert invoke("init", "--admin", ADMIN, "--db", temp_db).exit_code == 0
    assert invoke("authorize", "M1", "--as", ADMIN, "--db", temp_db).exit_code == 0

    result = invoke("register", "A1", "widget", "--as", "M1", "--db", temp_db)
    assert result.exit_code == 0, result.stdout
    assert "Registered 'A1'" in result.stdout

    result = invoke("checkpoint", "A1", "in-transit", "-l", "DOCK-7", "--as", "M1", "--db", temp_db)
    assert result.exit_code == 0, result.stdout
    assert "InTransit" in result.stdout

    result = invoke("transfer", "A1", "M2", "--as", "M1", "--db", temp_db)
    assert result.exit_code == 0, result.stdout

    result = invoke("deactivate", "A1", "--as", "M1", "--db", temp_db)
    assert result.exit_code == 0, result.stdout

    with CustodyLedger(SQLiteStorage(temp_db)) as ledger:
        item = ledger.get_item("A1")
        assert item.current_custodian == "M2"
        assert item.active is False
        assert len(ledger.get_history("A1")) == 3


def test_actor_from_env(populated_db: Path, monkeypatch):
    monkeypatch.setenv("PROVENANCE_ACTOR", "M2")
    result = invoke("transfer", "A1", "M3", "--db", populated_db)
    assert result.exit_code == 0, result.stdout


def test_rejections_exit_nonzero(populated_db: Path):
    result = invoke("register", "A1", "dup", "--as", "M1", "--db", populated_db)
    assert result.exit_code == 1
    assert "already_exists" in result.stdout

    result = invoke("transfer", "A1", "M3", "--as", "M1", "--db", populated_db)
    assert result.exit_code == 1
    assert "unauthorized" in result.stdout

    result = invoke("checkpoint", "A1", "InTransit", "--as", "M1", "--db", populated_db)
    assert result.exit_code == 1
    assert "no_change" in result.stdout

    result = invoke("checkpoint", "A1", "Teleported", "--as", "M1", "--db", populated_db)
    assert result.exit_code == 1
    assert "invalid_status" in result.stdout

    result = invoke("item", "nope", "--db", populated_db)
    assert result.exit_code == 1
    assert "not_found" in result.stdout


def test_item_shows_state(populated_db: Path):
    result = invoke("item", "A1", "--db", populated_db)
    assert result.exit_code == 0
    assert "widget" in result.stdout
    assert "InTransit" in result.stdout
    assert "M2" in result.stdout


def test_items_lists_registered(populated_db: Path):
    result = invoke("items", "--db", populated_db)
    assert result.exit_code == 0
    assert "A1" in result.stdout
    assert "Registered Items (1)" in result.stdout


def test_history_shows_entries(populated_db: Path):
    result = invoke("history", "A1", "--db", populated_db)
    assert result.exit_code == 0
    assert "DOCK-7" in result.stdout
    assert "left the plant" in result.stdout
    assert "TRANSFER" in result.stdout
    assert "Showing 3 of 3 entries" in result.stdout

    page = invoke("history", "A1", "--db", populated_db, "--offset", "1", "--limit", "1")
    assert "Showing 1 of 3 entries" in page.stdout


def test_holdings(populated_db: Path):
    result = invoke("holdings", "M2", "--db", populated_db)
    assert result.exit_code == 0
    assert "A1" in result.stdout

    empty = invoke("holdings", "nobody", "--db", populated_db)
    assert empty.exit_code == 0
    assert "No items recorded" in empty.stdout


def test_participants(populated_db: Path):
    assert invoke("authorize", "M3", "--as", ADMIN, "--db", populated_db).exit_code == 0
    assert invoke("revoke", "M1", "--as", ADMIN, "--db", populated_db).exit_code == 0

    result = invoke("participants", "--db", populated_db)
    assert result.exit_code == 0
    assert "Administrator: ADMIN" in result.stdout
    assert "M3" in result.stdout
    assert "M1" not in result.stdout


def test_transfer_admin(populated_db: Path):
    result = invoke("transfer-admin", "BOSS", "--as", ADMIN, "--db", populated_db)
    assert result.exit_code == 0
    result = invoke("participants", "--db", populated_db)
    assert "Administrator: BOSS" in result.stdout


def test_verify_valid(populated_db: Path):
    result = invoke("verify", "--db", populated_db)
    assert result.exit_code == 0
    assert "valid" in result.stdout.lower()

    result = invoke("verify", "A1", "--db", populated_db)
    assert result.exit_code == 0


def test_verify_detects_tampering(populated_db: Path):
    import sqlite3
    conn = sqlite3.connect(populated_db)
    conn.execute("UPDATE checkpoints SET canonical_json = REPLACE(canonical_json, 'DOCK-7', 'DOCK-9')")
    conn.commit()
    conn.close()

    result = invoke("verify", "--db", populated_db)
    assert result.exit_code == 1
    assert "failed" in result.stdout.lower()


def test_export_creates_jsonl(populated_db: Path, tmp_path: Path):
    output_file = tmp_path / "export-test.jsonl"

    result = invoke("export", "A1", "--db", populated_db, "--output", output_file)

    assert result.exit_code == 0
    assert "Exported 3 checkpoints" in result.stdout
    with open(output_file, "r", encoding="utf-8") as f:
        lines = f.readlines()
    assert len(lines) == 3
    records = [json.loads(line) for line in lines]
    assert [r["sequence"] for r in records] == [0, 1, 2]
    assert records[1]["prev_hash"] == records[0]["hash"]


def test_events_file_from_env(populated_db: Path, tmp_path: Path, monkeypatch):
    events = tmp_path / "events.jsonl"
    monkeypatch.setenv("PROVENANCE_EVENTS_PATH", str(events))

    result = invoke("register", "B2", "gadget", "--as", "M1", "--db", populated_db)
    assert result.exit_code == 0

    names = [json.loads(line)["event"] for line in events.read_text().splitlines()]
    assert names == ["ItemRegistered", "StatusUpdated"]


def test_custodian_policy_from_env(populated_db: Path, monkeypatch):
    monkeypatch.setenv("PROVENANCE_CHECKPOINT_POLICY", "custodian")
    # M2 holds A1 but was never authorized
    result = invoke("checkpoint", "A1", "Delivered", "--as", "M2", "--db", populated_db)
    assert result.exit_code == 0, result.stdout


def test_unknown_policy_from_env_is_reported(populated_db: Path, monkeypatch):
    monkeypatch.setenv("PROVENANCE_CHECKPOINT_POLICY", "everyone")
    result = invoke("items", "--db", populated_db)
    assert result.exit_code == 1
    assert not isinstance(result.exception, ValueError)
    assert "Invalid PROVENANCE_CHECKPOINT_POLICY" in result.stdout


@pytest.mark.parametrize("command", [["history", "A1"], ["items"]])
@pytest.mark.parametrize("paging", [["--offset", "-1"], ["--limit", "-2"]])
def test_negative_paging_is_reported(populated_db: Path, command, paging):
    result = invoke(*command, "--db", populated_db, *paging)
    assert result.exit_code == 1
    assert not isinstance(result.exception, ValueError)
    assert "Invalid paging" in result.stdout
