# provenance/core/errors.py
"""
Rejection taxonomy for ledger operations.

Every failure is raised before anything is written, so a caught LedgerError
always means the ledger is exactly as it was before the call.
"""


class LedgerError(Exception):
    """Base class for rejected ledger operations."""
    code = "ledger_error"


class NotFound(LedgerError):
    code = "not_found"


class AlreadyExists(LedgerError):
    code = "already_exists"


class Unauthorized(LedgerError):
    code = "unauthorized"


class InvalidIdentifier(LedgerError):
    code = "invalid_identifier"


class InvalidStatus(LedgerError, ValueError):
    code = "invalid_status"


class Inactive(LedgerError):
    code = "inactive"


class AlreadyInactive(LedgerError):
    code = "already_inactive"


class NoChange(LedgerError):
    code = "no_change"
