"""Pytest configuration and fixtures for bulkrecon tests.

Provides a small reference catalogue (two facilities), employees, existing
trainings and an in-memory repository with injectable failures.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import date
from uuid import UUID, uuid4

import pytest

from bulkrecon.importing.classifier import RowClassifier
from bulkrecon.importing.rows import ImportPreview
from bulkrecon.models import (
    EmployeeRef,
    ExistingTrainingRef,
    ImportRow,
    NewTrainingRecord,
    TrainingTypeRef,
    TrainingUpdate,
)

FACILITY = "fac-1"
OTHER_FACILITY = "fac-2"


class FakeRepository:
    """In-memory TrainingRepository.

    fail_insert_calls: 0-based indexes of insert_trainings calls that raise
    fail_update_ids: training ids whose update raises
    after_insert: hook run after every insert call (success or failure)
    """

    def __init__(
        self,
        employees: Sequence[EmployeeRef] = (),
        training_types: Sequence[TrainingTypeRef] = (),
        existing: Sequence[ExistingTrainingRef] = (),
        fail_insert_calls: Sequence[int] = (),
        fail_update_ids: Sequence[UUID] = (),
        after_insert: Callable[[int], None] | None = None,
    ):
        self.employees = list(employees)
        self.training_types = list(training_types)
        self.existing = list(existing)
        self.fail_insert_calls = set(fail_insert_calls)
        self.fail_update_ids = set(fail_update_ids)
        self.after_insert = after_insert

        self.insert_calls: list[list[NewTrainingRecord]] = []
        self.inserted: list[NewTrainingRecord] = []
        self.updates: dict[UUID, TrainingUpdate] = {}
        self.update_calls: list[UUID] = []
        self.exclude_deleted_args: list[bool] = []

    async def list_employees(self) -> list[EmployeeRef]:
        return list(self.employees)

    async def list_training_types(self) -> list[TrainingTypeRef]:
        return list(self.training_types)

    async def list_existing_trainings(self, exclude_deleted: bool = True) -> list[ExistingTrainingRef]:
        self.exclude_deleted_args.append(exclude_deleted)
        return list(self.existing)

    async def insert_trainings(self, rows: Sequence[NewTrainingRecord]) -> None:
        call_index = len(self.insert_calls)
        self.insert_calls.append(list(rows))
        try:
            if call_index in self.fail_insert_calls:
                raise RuntimeError("database unavailable")
            self.inserted.extend(rows)
        finally:
            if self.after_insert is not None:
                self.after_insert(call_index)

    async def update_training(self, training_id: UUID, fields: TrainingUpdate) -> None:
        self.update_calls.append(training_id)
        if training_id in self.fail_update_ids:
            raise LookupError(f"Training {training_id} not found")
        self.updates[training_id] = fields


@pytest.fixture
def employees() -> dict[str, EmployeeRef]:
    """Employees keyed by employee number."""
    return {
        "E001": EmployeeRef(
            id=uuid4(),
            employee_number="E001",
            email="jan.novak@example.com",
            first_name="Jan",
            last_name="Novák",
        ),
        "E002": EmployeeRef(
            id=uuid4(),
            employee_number="E002",
            email="petr.svoboda@example.com",
            first_name="Petr",
            last_name="Svoboda",
        ),
        "E003": EmployeeRef(id=uuid4(), employee_number=None, email="eva.mala@example.com"),
    }


@pytest.fixture
def catalogue() -> dict[str, TrainingTypeRef]:
    """Training types keyed by a short alias."""
    return {
        "bozp": TrainingTypeRef(id=uuid4(), name="BOZP - Základní", facility=FACILITY, period_days=365),
        "atex": TrainingTypeRef(id=uuid4(), name="ATEX", facility=FACILITY, period_days=730),
        "first_aid": TrainingTypeRef(id=uuid4(), name="První pomoc", facility=FACILITY, period_days=None),
        "cranes": TrainingTypeRef(
            id=uuid4(), name="Obsluha jeřábů a VZV", facility=OTHER_FACILITY, period_days=365
        ),
        "welding": TrainingTypeRef(id=uuid4(), name="Svařování", facility=OTHER_FACILITY, period_days=1095),
    }


@pytest.fixture
def existing_trainings(employees, catalogue) -> list[ExistingTrainingRef]:
    """E001 already has ATEX on record."""
    return [
        ExistingTrainingRef(
            id=uuid4(),
            employee_id=employees["E001"].id,
            training_type_id=catalogue["atex"].id,
            last_training_date=date(2023, 5, 1),
        )
    ]


@pytest.fixture
def classifier(employees, catalogue, existing_trainings) -> RowClassifier:
    return RowClassifier(employees.values(), catalogue.values(), existing_trainings)


@pytest.fixture
def make_row() -> Callable[..., ImportRow]:
    """Build an ImportRow with sensible defaults."""

    def _make(**overrides) -> ImportRow:
        values = {
            "employee_number": "E002",
            "training_type_name": "ATEX",
            "facility_code": FACILITY,
            "last_training_date": "2024-01-15",
        }
        values.update(overrides)
        return ImportRow(**values)

    return _make


@pytest.fixture
def mixed_preview(classifier, make_row) -> ImportPreview:
    """One row per disposition (row numbers 2..7)."""
    rows = [
        make_row(),  # 2 valid
        make_row(training_type_name="BOZP - Zakladni 2023"),  # 3 auto_matched
        make_row(training_type_name="ATEXX"),  # 4 suggestion (same facility)
        make_row(training_type_name="Obsluha jeřábů a VZX"),  # 5 suggestion (cross facility)
        make_row(employee_number="E001"),  # 6 duplicate
        make_row(last_training_date=None),  # 7 error
    ]
    return classifier.classify_all(rows)


@pytest.fixture
def fake_repository(employees, catalogue, existing_trainings) -> FakeRepository:
    return FakeRepository(
        employees=list(employees.values()),
        training_types=list(catalogue.values()),
        existing=existing_trainings,
    )


@pytest.fixture
def database_env(monkeypatch, tmp_path):
    """Point configuration at a throwaway SQLite file."""
    from bulkrecon.config import reset_config

    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'bulkrecon.db'}")
    reset_config()
    yield
    reset_config()


@pytest.fixture
def make_repository() -> Callable[..., FakeRepository]:
    """Factory for FakeRepository with injectable failures."""
    return FakeRepository
