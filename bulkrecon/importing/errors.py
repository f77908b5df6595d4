"""Error taxonomy for the bulk import engine.

Validation and resolution errors are terminal for one row and end up as ErrorRow
entries; commit errors are isolated to one chunk or row. Duplicates are not
errors at all, they are a disposition.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Why a row was rejected before commit."""

    VALIDATION = "validation"  # Missing or malformed required field
    RESOLUTION = "resolution"  # Employee or training type not found


class RowImportError(Exception):
    """Base class for per-row import failures."""

    kind: ErrorKind | None = None

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class RowValidationError(RowImportError):
    """Required field missing or malformed; the row never reaches matching."""

    kind = ErrorKind.VALIDATION


class ResolutionError(RowImportError):
    """A textual reference could not be resolved to a canonical record."""

    kind = ErrorKind.RESOLUTION


class CommitError(RowImportError):
    """Persistence call failed for one chunk or one row."""

    def __init__(self, message: str, row_numbers: list[int]) -> None:
        super().__init__(message)
        self.row_numbers = row_numbers


class ApprovalError(ValueError):
    """Invalid approval workflow command (unknown row, wrong bucket, bad type)."""


class SessionStateError(RuntimeError):
    """Import session used out of order (commit before prepare, second commit)."""
