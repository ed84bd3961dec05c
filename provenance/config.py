# provenance/config.py
"""
Environment-driven settings shared by the CLI and embedding applications.
"""

import os
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from provenance.access.control import CheckpointPolicy

DEFAULT_DB_PATH = Path.home() / ".provenance" / "ledger.db"


def get_db_path(db_flag: Optional[Path] = None) -> Path:
    """Resolve DB path in this order:
    1. --db flag
    2. PROVENANCE_DB_PATH environment variable
    3. Default: ~/.provenance/ledger.db
    """
    if db_flag:
        path = Path(db_flag).resolve()
    else:
        env_path = os.environ.get("PROVENANCE_DB_PATH")
        if env_path:
            path = Path(env_path).resolve()
        else:
            path = DEFAULT_DB_PATH

    path.parent.mkdir(parents=True, exist_ok=True)
    return path


@dataclass
class LedgerConfig:
    db_path: Optional[Path] = None
    checkpoint_policy: CheckpointPolicy = CheckpointPolicy.AUTHORIZED
    events_path: Optional[Path] = None
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, db_flag: Optional[Path] = None) -> "LedgerConfig":
        policy = os.environ.get("PROVENANCE_CHECKPOINT_POLICY", CheckpointPolicy.AUTHORIZED.value)
        try:
            checkpoint_policy = CheckpointPolicy(policy.strip().lower())
        except ValueError:
            raise ValueError(
                f"Invalid PROVENANCE_CHECKPOINT_POLICY {policy!r}; "
                f"expected one of: {', '.join(p.value for p in CheckpointPolicy)}"
            )
        events = os.environ.get("PROVENANCE_EVENTS_PATH")
        return cls(
            db_path=get_db_path(db_flag),
            checkpoint_policy=checkpoint_policy,
            events_path=Path(events) if events else None,
            log_level=os.environ.get("PROVENANCE_LOG_LEVEL", "WARNING").upper(),
        )


def configure_logging(level: str = "WARNING") -> None:
    """Console logging for the CLI, rendered through rich."""
    from rich.console import Console
    from rich.logging import RichHandler

    logger = logging.getLogger("provenance")
    logger.setLevel(getattr(logging, level.upper(), logging.WARNING))
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)
    logger.addHandler(RichHandler(console=Console(stderr=True), show_path=False))
