# provenance/core/canon.py
"""
Byte-exact serialisation of ledger records.

Checkpoint hashes, the SQLite `canonical_json` column and the JSONL event
sink all go through RFC 8785 (JCS), so the same record always yields the
same bytes regardless of key order or float formatting.
"""

import hashlib
from typing import Any

import jcs

from provenance.core.types import Checkpoint


def canonical_json(obj: Any) -> bytes:
    """JCS encoding of a JSON-compatible value (dicts of str/int/bool/None/lists)."""
    return jcs.canonicalize(obj)


def canonical_json_str(obj: Any) -> str:
    """Text form for storage columns and JSONL lines."""
    return canonical_json(obj).decode("utf-8")


def checkpoint_hash(cp: Checkpoint) -> str:
    """
    Hex SHA-256 of a checkpoint's canonical payload.

    The payload includes prev_hash, so each entry commits to every entry
    before it in the item's history.
    """
    return hashlib.sha256(canonical_json(cp.payload())).hexdigest()
