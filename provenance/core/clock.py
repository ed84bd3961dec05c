# provenance/core/clock.py
from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], str]


def utc_now() -> str:
    """ISO 8601 UTC with millis, e.g. 2026-02-13T14:00:00.000Z"""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
