# STS Ledger - Financial ledger & analytics engine for small-business operations
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Exception hierarchy for STS Ledger.

Every error raised by the ledger store, the dues lifecycle and the invoice
allocator derives from ``LedgerError``. Each class carries the status code
a transport layer (REST API, CLI) is expected to surface:

- NotFoundError          -> 404 (unknown id)
- NoOutstandingDueError  -> 404 (nothing to settle)
- AlreadySettledError    -> 404 (dues already settled)
- InvalidStateError      -> 400 (dues invariant / frozen dues fields)
- ConflictError          -> 400 (duplicate invoice number)
- ValidationError        -> 400 (malformed input, rejected before storage)

The classes also inherit from the closest builtin (LookupError or
ValueError) so callers that only know the builtins keep working.
"""


class LedgerError(Exception):
    """Base class for all ledger errors."""

    status_code = 500


class NotFoundError(LedgerError, LookupError):
    """A referenced record id does not exist."""

    status_code = 404


class NoOutstandingDueError(NotFoundError):
    """The income record has no outstanding due to settle."""


class AlreadySettledError(NotFoundError):
    """The dues of the income record were already settled."""


class InvalidStateError(LedgerError, ValueError):
    """A write would break the dues invariant or touch frozen fields."""

    status_code = 400


class ConflictError(LedgerError, ValueError):
    """An invoice number is already used for the business unit."""

    status_code = 400


class ValidationError(LedgerError, ValueError):
    """Input is malformed (bad amount, date, category...)."""

    status_code = 400
