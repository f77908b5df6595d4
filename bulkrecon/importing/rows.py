"""Classified import rows and the preview that groups them.

Each disposition is its own row class, so fields that only make sense for one
bucket (the existing training of a duplicate, the approval flag of a suggestion)
exist only there. ParsedRow is the union of the five variants.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import date
from typing import ClassVar, Union
from uuid import UUID

from bulkrecon.importing.errors import ErrorKind
from bulkrecon.models import Disposition, ImportRow

HEADER_OFFSET = 2  # 1-based numbering plus the header line


@dataclass(slots=True)
class TypeMatch:
    """Resolved training type as shown to the reviewer."""

    training_type_id: UUID
    training_type_name: str
    facility: str
    period_days: int | None
    confidence: int
    cross_facility: bool


@dataclass(slots=True, kw_only=True)
class _BaseRow:
    row_number: int
    data: ImportRow

    disposition: ClassVar[Disposition]


@dataclass(slots=True, kw_only=True)
class ErrorRow(_BaseRow):
    """Row rejected by validation or resolution."""

    error: str
    kind: ErrorKind

    disposition: ClassVar[Disposition] = Disposition.ERROR


@dataclass(slots=True, kw_only=True)
class _ResolvedRow(_BaseRow):
    employee_id: UUID
    employee_name: str
    match: TypeMatch
    warning: str | None = None

    @property
    def training_type_id(self) -> UUID:
        return self.match.training_type_id

    @property
    def match_confidence(self) -> int:
        return self.match.confidence

    @property
    def cross_facility(self) -> bool:
        return self.match.cross_facility

    @property
    def period_days(self) -> int | None:
        return self.match.period_days


@dataclass(slots=True, kw_only=True)
class ValidRow(_ResolvedRow):
    """Exact same-facility match, no existing training."""

    disposition: ClassVar[Disposition] = Disposition.VALID


@dataclass(slots=True, kw_only=True)
class AutoMatchedRow(_ResolvedRow):
    """Same-facility fuzzy match at or above the auto-match threshold."""

    disposition: ClassVar[Disposition] = Disposition.AUTO_MATCHED


@dataclass(slots=True, kw_only=True)
class SuggestionRow(_ResolvedRow):
    """Fuzzy match needing a human decision before commit."""

    approved: bool = False
    manual_override_type_id: UUID | None = None

    disposition: ClassVar[Disposition] = Disposition.SUGGESTION


@dataclass(slots=True, kw_only=True)
class DuplicateRow(_ResolvedRow):
    """Resolved row whose (employee, type) pair already has a training.

    Match metadata is kept for display even though the duplicate bucket wins.
    """

    existing_training_id: UUID
    existing_training_date: date | None = None

    disposition: ClassVar[Disposition] = Disposition.DUPLICATE


ParsedRow = Union[ValidRow, ErrorRow, DuplicateRow, AutoMatchedRow, SuggestionRow]
ResolvedRow = Union[ValidRow, DuplicateRow, AutoMatchedRow, SuggestionRow]


@dataclass
class ImportPreview:
    """All classified rows of one import, partitioned by disposition.

    Every input row sits in exactly one bucket; rows stay in input order
    inside each bucket.
    """

    total_rows: int = 0
    valid: list[ValidRow] = field(default_factory=list)
    errors: list[ErrorRow] = field(default_factory=list)
    duplicates: list[DuplicateRow] = field(default_factory=list)
    auto_matched: list[AutoMatchedRow] = field(default_factory=list)
    suggestions: list[SuggestionRow] = field(default_factory=list)

    def add(self, row: ParsedRow) -> None:
        """Place a classified row into its bucket."""
        self.bucket(row.disposition).append(row)
        self.total_rows += 1

    def bucket(self, disposition: Disposition) -> list:
        return {
            Disposition.VALID: self.valid,
            Disposition.ERROR: self.errors,
            Disposition.DUPLICATE: self.duplicates,
            Disposition.AUTO_MATCHED: self.auto_matched,
            Disposition.SUGGESTION: self.suggestions,
        }[disposition]

    def rows(self) -> Iterator[ParsedRow]:
        """Every row, ordered by row number."""
        yield from sorted(
            [*self.valid, *self.errors, *self.duplicates, *self.auto_matched, *self.suggestions],
            key=lambda r: r.row_number,
        )

    def find(self, row_number: int) -> ParsedRow | None:
        for row in self.rows():
            if row.row_number == row_number:
                return row
        return None

    @property
    def approved_suggestions(self) -> list[SuggestionRow]:
        return [row for row in self.suggestions if row.approved]

    @property
    def pending_suggestions(self) -> list[SuggestionRow]:
        return [row for row in self.suggestions if not row.approved]

    def summary(self) -> dict[str, int]:
        """Row counts per disposition, for rendering."""
        return {
            "total_rows": self.total_rows,
            Disposition.VALID.value: len(self.valid),
            Disposition.ERROR.value: len(self.errors),
            Disposition.DUPLICATE.value: len(self.duplicates),
            Disposition.AUTO_MATCHED.value: len(self.auto_matched),
            Disposition.SUGGESTION.value: len(self.suggestions),
            "approved_suggestions": len(self.approved_suggestions),
        }
