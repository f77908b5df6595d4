"""Persistence boundary consumed by the import engine.

Implementations raise on failure; the committer turns a raised exception
into a failed chunk or row.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol
from uuid import UUID

from bulkrecon.models import (
    EmployeeRef,
    ExistingTrainingRef,
    NewTrainingRecord,
    TrainingTypeRef,
    TrainingUpdate,
)


class TrainingRepository(Protocol):
    """Store access needed by classification and commit."""

    async def list_employees(self) -> list[EmployeeRef]: ...

    async def list_training_types(self) -> list[TrainingTypeRef]: ...

    async def list_existing_trainings(self, exclude_deleted: bool = True) -> list[ExistingTrainingRef]: ...

    async def insert_trainings(self, rows: Sequence[NewTrainingRecord]) -> None:
        """Insert all rows in one call; all-or-nothing per call."""
        ...

    async def update_training(self, training_id: UUID, fields: TrainingUpdate) -> None: ...
