"""Row classification: validation, resolution, duplicate detection.

Checks run in a fixed order and the first failing or qualifying check wins:
1. Required fields and date format          -> error (validation)
2. Employee identity present and resolvable -> error (validation / resolution)
3. Training type resolvable                 -> error (resolution)
4. Match tier: exact -> valid, same-facility >= auto threshold -> auto_matched,
   anything else (incl. every cross-facility match) -> suggestion
5. Existing training for (employee, type)   -> duplicate, overriding step 4 but
   keeping its match metadata
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Sequence
from datetime import date, timedelta
from uuid import UUID

from bulkrecon.importing.errors import ResolutionError, RowImportError, RowValidationError
from bulkrecon.importing.rows import (
    HEADER_OFFSET,
    AutoMatchedRow,
    DuplicateRow,
    ErrorRow,
    ImportPreview,
    ParsedRow,
    SuggestionRow,
    TypeMatch,
    ValidRow,
)
from bulkrecon.matching.resolver import EmployeeResolver, MatchResult, TrainingTypeResolver
from bulkrecon.models import (
    EmployeeRef,
    ExistingTrainingRef,
    ImportRow,
    ImportSettings,
    TrainingTypeRef,
)

logger = logging.getLogger(__name__)

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Checked in this order; the first missing one is reported
REQUIRED_FIELDS: tuple[tuple[str, str], ...] = (
    ("training_type_name", "training type name"),
    ("facility_code", "facility code"),
    ("last_training_date", "last training date"),
)


class DuplicateIndex:
    """Lookup of existing trainings by (employee_id, training_type_id).

    Built once per import from the store snapshot; read-only afterwards.
    """

    def __init__(self, existing: Iterable[ExistingTrainingRef]) -> None:
        self._index: dict[tuple[UUID, UUID], ExistingTrainingRef] = {}
        for training in existing:
            self._index.setdefault((training.employee_id, training.training_type_id), training)

    def find(self, employee_id: UUID, training_type_id: UUID) -> ExistingTrainingRef | None:
        return self._index.get((employee_id, training_type_id))

    def __len__(self) -> int:
        return len(self._index)


def parse_iso_date(value: str) -> date:
    """Parse a YYYY-MM-DD literal that has already passed the pattern check."""
    return date.fromisoformat(value)


def next_due_date(last_date: date, period_days: int) -> date:
    """Date the next training is due (calendar days).

    Raises:
        OverflowError: If the result lies beyond date.max
    """
    return last_date + timedelta(days=period_days)


class RowClassifier:
    """Classify import rows into the five disposition buckets.

    Pure with respect to its inputs: catalogues and the duplicate index are
    read, never modified.
    """

    def __init__(
        self,
        employees: Iterable[EmployeeRef],
        training_types: Iterable[TrainingTypeRef],
        existing_trainings: Iterable[ExistingTrainingRef],
        settings: ImportSettings | None = None,
        default_period_days: int = 365,
    ) -> None:
        """Initialize classifier.

        Args:
            employees: Employee snapshot for identity resolution
            training_types: Full training type catalogue (all facilities)
            existing_trainings: Non-deleted trainings for duplicate detection
            settings: Matching thresholds (defaults: 70 / 90)
            default_period_days: Period used when a training type has none
        """
        self.settings = settings or ImportSettings()
        self.employees = EmployeeResolver(employees)
        self.training_types = TrainingTypeResolver(
            training_types,
            min_similarity=self.settings.min_similarity_threshold,
        )
        self.duplicates = DuplicateIndex(existing_trainings)
        self.default_period_days = default_period_days

    def classify(self, row: ImportRow, row_number: int) -> ParsedRow:
        """Classify one row. Never raises for bad row content."""
        try:
            self._validate(row)
            employee = self._resolve_employee(row)
            match = self._resolve_type(row)
            self._check_schedulable(row, match.ref)
        except RowImportError as exc:
            logger.debug(f"Row {row_number}: error ({exc.message})")
            return ErrorRow(row_number=row_number, data=row, error=exc.message, kind=exc.kind)

        type_match = TypeMatch(
            training_type_id=match.ref.id,
            training_type_name=match.ref.name,
            facility=match.ref.facility,
            period_days=match.ref.period_days,
            confidence=match.score,
            cross_facility=match.cross_facility,
        )
        common = {
            "row_number": row_number,
            "data": row,
            "employee_id": employee.id,
            "employee_name": employee.display_name,
            "match": type_match,
        }

        existing = self.duplicates.find(employee.id, match.ref.id)
        if existing is not None:
            when = existing.last_training_date.isoformat() if existing.last_training_date else "unknown date"
            parsed: ParsedRow = DuplicateRow(
                **common,
                existing_training_id=existing.id,
                existing_training_date=existing.last_training_date,
                warning=f"Training already exists for this employee and type (last {when})",
            )
        elif match.is_exact:
            parsed = ValidRow(**common)
        elif match.score >= self.settings.auto_match_threshold and not match.cross_facility:
            parsed = AutoMatchedRow(
                **common,
                warning=f'Matched to "{match.ref.name}" ({match.score} %)',
            )
        else:
            parsed = SuggestionRow(**common, warning=_suggestion_warning(match))

        logger.debug(f"Row {row_number}: {parsed.disposition.value} (score={match.score})")
        return parsed

    def classify_all(self, rows: Sequence[ImportRow]) -> ImportPreview:
        """Classify every row into a fresh preview (row numbers start at 2)."""
        preview = ImportPreview()
        for index, row in enumerate(rows):
            preview.add(self.classify(row, index + HEADER_OFFSET))

        summary = preview.summary()
        logger.info(
            "Classified %d rows: %d valid, %d auto-matched, %d suggestions, %d duplicates, %d errors",
            summary["total_rows"],
            summary["valid"],
            summary["auto_matched"],
            summary["suggestion"],
            summary["duplicate"],
            summary["error"],
        )
        return preview

    def _validate(self, row: ImportRow) -> None:
        for field_name, label in REQUIRED_FIELDS:
            if not getattr(row, field_name):
                raise RowValidationError(f"Missing {label} ({field_name})")

        if not DATE_PATTERN.match(row.last_training_date):
            raise RowValidationError(
                f'Date "{row.last_training_date}" must be in YYYY-MM-DD format (last_training_date)'
            )
        try:
            parse_iso_date(row.last_training_date)
        except ValueError:
            raise RowValidationError(
                f'Date "{row.last_training_date}" is not a valid calendar date (last_training_date)'
            ) from None

    def _check_schedulable(self, row: ImportRow, ref: TrainingTypeRef) -> None:
        period = ref.period_days or self.default_period_days
        try:
            next_due_date(parse_iso_date(row.last_training_date), period)
        except OverflowError:
            raise RowValidationError(
                f'Date "{row.last_training_date}" is too far in the future to schedule '
                f"the next training (last_training_date)"
            ) from None

    def _resolve_employee(self, row: ImportRow) -> EmployeeRef:
        if not row.employee_number and not row.email:
            raise RowValidationError("Missing employee number and email (employee_number, email)")

        employee = self.employees.resolve(row.employee_number, row.email)
        if employee is None:
            identity = row.employee_number or row.email
            raise ResolutionError(f'Employee "{identity}" not found')
        return employee

    def _resolve_type(self, row: ImportRow) -> MatchResult:
        match = self.training_types.resolve(row.training_type_name, row.facility_code)
        if match is None:
            raise ResolutionError(
                f'Training type "{row.training_type_name}" not found for facility '
                f'"{row.facility_code}" (no match above {self.settings.min_similarity_threshold} % similarity)'
            )
        return match


def _suggestion_warning(match: MatchResult) -> str:
    if match.cross_facility:
        return (
            f'Suggested "{match.ref.name}" from facility "{match.ref.facility}" '
            f"({match.score} %), needs approval"
        )
    return f'Suggested "{match.ref.name}" ({match.score} %), needs approval'
