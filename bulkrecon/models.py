"""bulkrecon Pydantic models for type-safe data validation.

Reference records (employees, training types, existing trainings) are read-only
snapshots of the store. ImportRow is the cleaned, immutable form of one
spreadsheet line; required-field and format checks happen in the classifier.
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Spreadsheet serial day numbers count from this epoch (Lotus 1-2-3 leap-year quirk included)
_SPREADSHEET_EPOCH = date(1899, 12, 30)
_DOTTED_DATE = re.compile(r"^(\d{1,2})\.(\d{1,2})\.(\d{4})$")

IMPORT_COLUMNS: tuple[str, ...] = (
    "employee_number",
    "email",
    "training_type_name",
    "facility_code",
    "last_training_date",
    "trainer",
    "company",
    "note",
)


class Disposition(str, Enum):
    """Terminal classification bucket of an import row."""

    VALID = "valid"
    ERROR = "error"
    DUPLICATE = "duplicate"
    AUTO_MATCHED = "auto_matched"
    SUGGESTION = "suggestion"


class DuplicatePolicy(str, Enum):
    """Operator choice for rows matching an existing (employee, type) pair."""

    SKIP = "skip"
    OVERWRITE = "overwrite"


class TrainingStatus(str, Enum):
    """Validity status stored with each committed training."""

    VALID = "valid"
    WARNING = "warning"  # Next training due within the warning window
    EXPIRED = "expired"


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and not value.strip()


def _to_text(value: Any) -> str:
    # Spreadsheet readers hand integral numbers back as floats ("1001.0")
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def normalize_date_value(value: Any) -> str:
    """Normalize a date cell to YYYY-MM-DD where the input is recognizable.

    Handles date/datetime objects, spreadsheet serial numbers and DD.MM.YYYY text.
    Anything else is returned as stripped text and left to format validation.
    """
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return (_SPREADSHEET_EPOCH + timedelta(days=int(value))).isoformat()
        except (OverflowError, ValueError):
            # Not a serial day (e.g. 20240115 typed as a number); format check rejects it
            return _to_text(value)

    text = str(value).strip()
    dotted = _DOTTED_DATE.match(text)
    if dotted:
        day, month, year = dotted.groups()
        return f"{year}-{month.zfill(2)}-{day.zfill(2)}"
    return text


class ImportRow(BaseModel):
    """One raw row from an import file, cleaned once at parse time.

    Every value is optional here: a missing required value is a classification
    outcome (error row), not a parse failure.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    employee_number: str | None = None
    email: str | None = None
    training_type_name: str | None = None
    facility_code: str | None = None
    last_training_date: str | None = None
    trainer: str | None = None
    company: str | None = None
    note: str | None = None

    @field_validator("*", mode="before")
    @classmethod
    def clean_value(cls, v: Any, info) -> str | None:
        if _is_blank(v):
            return None
        if info.field_name == "last_training_date":
            return normalize_date_value(v)
        return _to_text(v)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> ImportRow:
        """Build a row from a loosely keyed mapping (header case and padding ignored)."""
        cleaned = {str(key).strip().lower(): value for key, value in raw.items()}
        return cls(**{name: cleaned.get(name) for name in IMPORT_COLUMNS})

    def as_export_dict(self) -> dict[str, str]:
        """Values in input column order, blanks as empty strings."""
        return {name: getattr(self, name) or "" for name in IMPORT_COLUMNS}


class EmployeeRef(BaseModel):
    """Canonical employee identity."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    employee_number: str | None = None
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None

    @property
    def display_name(self) -> str:
        full = " ".join(part for part in (self.first_name, self.last_name) if part)
        return full or self.employee_number or self.email or str(self.id)


class TrainingTypeRef(BaseModel):
    """Catalogue entry a training row must resolve to."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    name: str
    facility: str
    period_days: int | None = None

    @field_validator("period_days")
    @classmethod
    def validate_period_days(cls, v: int | None) -> int | None:
        if v is not None and v <= 0:
            raise ValueError("period_days must be positive")
        return v


class ExistingTrainingRef(BaseModel):
    """Training already stored for an (employee, training type) pair."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    employee_id: UUID
    training_type_id: UUID
    last_training_date: date | None = None


class ImportSettings(BaseModel):
    """Matching thresholds for one import run."""

    model_config = ConfigDict(frozen=True)

    min_similarity_threshold: int = Field(default=70, ge=0, le=100)
    auto_match_threshold: int = Field(default=90, ge=0, le=100)

    @model_validator(mode="after")
    def validate_threshold_order(self) -> ImportSettings:
        if self.min_similarity_threshold > self.auto_match_threshold:
            raise ValueError(
                "min_similarity_threshold must not exceed auto_match_threshold "
                f"({self.min_similarity_threshold} > {self.auto_match_threshold})"
            )
        return self


class NewTrainingRecord(BaseModel):
    """Insert payload for one committed training."""

    employee_id: UUID
    training_type_id: UUID
    facility: str
    last_training_date: date
    next_training_date: date
    trainer: str | None = None
    company: str | None = None
    note: str | None = None
    status: TrainingStatus = TrainingStatus.VALID
    is_active: bool = True
    created_by: str = "system"


class TrainingUpdate(BaseModel):
    """Fields overwritten on an existing training under the overwrite policy."""

    last_training_date: date
    next_training_date: date
    trainer: str | None = None
    company: str | None = None
    note: str | None = None
    status: TrainingStatus = TrainingStatus.VALID
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class CommitFailure(BaseModel):
    """One failed unit of work (a chunk or a single update)."""

    model_config = ConfigDict(frozen=True)

    row_numbers: list[int]
    message: str


class BatchResult(BaseModel):
    """Final tally of one commit run."""

    model_config = ConfigDict(frozen=True)

    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0
    not_attempted: int = 0  # Rows left untouched after cancellation
    cancelled: bool = False
    failures: list[CommitFailure] = Field(default_factory=list)

    @property
    def submitted(self) -> int:
        """Number of non-error rows handed to the committer."""
        return self.inserted + self.updated + self.skipped + self.failed + self.not_attempted
