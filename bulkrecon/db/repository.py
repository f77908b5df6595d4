"""SQLAlchemy implementation of the import persistence boundary.

Every write call runs in its own transaction, so a failed chunk rolls back
alone and earlier chunks stay committed.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bulkrecon.db.models import EmployeeModel, TrainingModel, TrainingTypeModel
from bulkrecon.models import (
    EmployeeRef,
    ExistingTrainingRef,
    NewTrainingRecord,
    TrainingTypeRef,
    TrainingUpdate,
)

logger = logging.getLogger(__name__)


class SqlTrainingRepository:
    """Reference reads and batched training writes against the database."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def list_employees(self) -> list[EmployeeRef]:
        async with self.session_factory() as session:
            result = await session.execute(select(EmployeeModel))
            return [
                EmployeeRef(
                    id=model.id,
                    employee_number=model.employee_number,
                    email=model.email,
                    first_name=model.first_name,
                    last_name=model.last_name,
                )
                for model in result.scalars()
            ]

    async def list_training_types(self) -> list[TrainingTypeRef]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(TrainingTypeModel).order_by(TrainingTypeModel.facility, TrainingTypeModel.name)
            )
            return [
                TrainingTypeRef(
                    id=model.id,
                    name=model.name,
                    facility=model.facility,
                    period_days=model.period_days,
                )
                for model in result.scalars()
            ]

    async def list_existing_trainings(self, exclude_deleted: bool = True) -> list[ExistingTrainingRef]:
        stmt = select(TrainingModel)
        if exclude_deleted:
            stmt = stmt.where(TrainingModel.deleted_at.is_(None))

        async with self.session_factory() as session:
            result = await session.execute(stmt)
            return [
                ExistingTrainingRef(
                    id=model.id,
                    employee_id=model.employee_id,
                    training_type_id=model.training_type_id,
                    last_training_date=model.last_training_date,
                )
                for model in result.scalars()
            ]

    async def insert_trainings(self, rows: Sequence[NewTrainingRecord]) -> None:
        """Insert rows with a single executemany; all-or-nothing."""
        if not rows:
            return

        values = [
            {**row.model_dump(), "status": row.status.value}
            for row in rows
        ]
        async with self.session_factory() as session:
            async with session.begin():
                await session.execute(insert(TrainingModel), values)
        logger.debug(f"Inserted {len(values)} trainings")

    async def update_training(self, training_id: UUID, fields: TrainingUpdate) -> None:
        """Overwrite one training.

        Raises:
            LookupError: If no live training has this id
        """
        values = {**fields.model_dump(), "status": fields.status.value}
        stmt = (
            update(TrainingModel)
            .where(TrainingModel.id == training_id, TrainingModel.deleted_at.is_(None))
            .values(**values)
        )
        async with self.session_factory() as session:
            async with session.begin():
                result = await session.execute(stmt)
                if result.rowcount == 0:
                    raise LookupError(f"Training {training_id} not found")
