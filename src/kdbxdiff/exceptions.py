"""Custom exception hierarchy for kdbxdiff.

All exceptions inherit from KdbxError, so callers can catch every
library-specific error in one place.

Exception Hierarchy:
    KdbxError (base)
    ├── FormatError
    │   └── InvalidXmlError
    ├── DatabaseError
    │   ├── EntryNotFoundError
    │   └── GroupNotFoundError
    └── ReconcileError
        ├── InvalidModeError
        ├── InvalidCriteriaError
        └── InvalidTransferError

Security Note:
    Exception messages are designed to avoid leaking sensitive information.
    They name entries by UUID and never include field values.
"""

from __future__ import annotations


class KdbxError(Exception):
    """Base exception for all kdbxdiff errors.

    All exceptions raised by kdbxdiff inherit from this class,
    making it easy to catch all library-specific errors.
    """


# --- Format Errors ---


class FormatError(KdbxError):
    """Error in the structure of a database document.

    Raised when input doesn't conform to the KeePass XML layout.
    """


class InvalidXmlError(FormatError):
    """Invalid or malformed XML payload.

    The XML content doesn't conform to the expected KeePass
    XML schema, or is not well-formed XML at all.
    """

    def __init__(self, message: str = "Invalid KeePass XML structure") -> None:
        super().__init__(message)


# --- Database Errors ---


class DatabaseError(KdbxError):
    """Error in database operations.

    Base class for errors that occur while manipulating a loaded
    database tree.
    """


class EntryNotFoundError(DatabaseError):
    """Entry not found in database.

    The requested entry doesn't exist or was not found
    in the specified location.
    """

    def __init__(self, message: str = "Entry not found") -> None:
        super().__init__(message)


class GroupNotFoundError(DatabaseError):
    """Group not found in database.

    The requested group doesn't exist or was not found
    in the database hierarchy.
    """

    def __init__(self, message: str = "Group not found") -> None:
        super().__init__(message)


# --- Reconciliation Errors ---


class ReconcileError(KdbxError, ValueError):
    """Invalid argument to a reconciliation operation.

    Raised before any database is touched, so no partial work is
    ever visible when one of these propagates.
    """


class InvalidModeError(ReconcileError):
    """Unknown import mode."""

    def __init__(self, mode: object) -> None:
        self.mode = mode
        super().__init__(f"Unknown import mode: {mode!r}")


class InvalidCriteriaError(ReconcileError):
    """Unknown duplicate-matching criteria."""

    def __init__(self, criteria: object) -> None:
        self.criteria = criteria
        super().__init__(f"Unknown duplicate criteria: {criteria!r}")


class InvalidTransferError(ReconcileError):
    """Malformed transfer descriptor (bad action, direction or UUID)."""
