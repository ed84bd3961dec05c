# tests/test_core.py
import pytest
from dataclasses import replace

from provenance.core.types import Item, Checkpoint, CheckpointKind, Status
from provenance.core.canon import canonical_json, checkpoint_hash
from provenance.core.identity import is_null_identifier, require_identifier
from provenance.core.errors import InvalidIdentifier, InvalidStatus, LedgerError


@pytest.fixture
def sample_checkpoint():
    return Checkpoint(
        item_id="A1",
        sequence=0,
        kind=CheckpointKind.REGISTERED,
        status=Status.CREATED,
        location="registry",
        note="Item registered",
        actor="M1",
        custodian="M1",
        timestamp="2026-02-13T14:00:00.000Z",
    )


def test_item_immutable():
    item = Item("A1", "widget", "M1", "M1", Status.CREATED, True, "2026-02-13T14:00:00.000Z")
    with pytest.raises(AttributeError):
        item.active = False


def test_item_dict_roundtrip():
    item = Item("A1", "widget", "M1", "M2", Status.IN_TRANSIT, False, "2026-02-13T14:00:00.000Z")
    d = item.to_dict()
    assert d["current_status"] == "InTransit"
    assert Item.from_dict(d) == item


def test_checkpoint_payload_excludes_hash(sample_checkpoint):
    payload = sample_checkpoint.payload()
    assert "hash" not in payload
    assert payload["kind"] == "registered"
    assert payload["status"] == "Created"
    assert payload["prev_hash"] == ""


@pytest.mark.parametrize("raw, expected", [
    ("InTransit", Status.IN_TRANSIT),
    ("in_transit", Status.IN_TRANSIT),
    ("IN-TRANSIT", Status.IN_TRANSIT),
    ("delivered", Status.DELIVERED),
    (Status.SOLD, Status.SOLD),
])
def test_status_parse(raw, expected):
    assert Status.parse(raw) is expected


def test_status_parse_rejects_unknown():
    with pytest.raises(InvalidStatus):
        Status.parse("Teleported")
    # usable as a plain ValueError too
    with pytest.raises(ValueError):
        Status.parse(42)


def test_canonical_json_sorting():
    messy = {"z": 1, "a": "hello", "nested": {"b": 2, "a": 1}}
    canon = canonical_json(messy).decode("utf-8")
    assert canon == '{"a":"hello","nested":{"a":1,"b":2},"z":1}'


def test_checkpoint_hash_deterministic(sample_checkpoint):
    copy = Checkpoint(**sample_checkpoint.__dict__)
    assert checkpoint_hash(copy) == checkpoint_hash(sample_checkpoint)
    assert len(checkpoint_hash(sample_checkpoint)) == 64


def test_checkpoint_hash_covers_content(sample_checkpoint):
    original = checkpoint_hash(sample_checkpoint)
    assert checkpoint_hash(replace(sample_checkpoint, note="edited")) != original
    assert checkpoint_hash(replace(sample_checkpoint, prev_hash="ab" * 32)) != original
    # the stored hash itself is not part of the payload
    assert checkpoint_hash(replace(sample_checkpoint, hash="whatever")) == original


@pytest.mark.parametrize("value", [None, "", "   ", "0", "0000", "0x", "0x0000000000000000000000000000000000000000"])
def test_null_identifiers(value):
    assert is_null_identifier(value)


@pytest.mark.parametrize("value", ["A1", "M1", "10", "0x01", "agent:alice"])
def test_regular_identifiers(value):
    assert not is_null_identifier(value)
    assert require_identifier(value, "id") == value


def test_require_identifier_raises():
    with pytest.raises(InvalidIdentifier, match="item id"):
        require_identifier("0x00", "item id")


def test_error_codes_are_distinct():
    from provenance.core import errors
    classes = [
        errors.NotFound, errors.AlreadyExists, errors.Unauthorized, errors.InvalidIdentifier,
        errors.InvalidStatus, errors.Inactive, errors.AlreadyInactive, errors.NoChange,
    ]
    assert all(issubclass(c, LedgerError) for c in classes)
    assert len({c.code for c in classes}) == len(classes)
