"""SQLAlchemy async database models for bulkrecon.

Employees and training types are the reference catalogues; trainings hold one
row per (employee, training type) with soft deletion via deleted_at.
"""

from __future__ import annotations

from datetime import date, datetime
from uuid import UUID, uuid4

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, Text, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class EmployeeModel(Base):
    """Employee identity as maintained by HR."""

    __tablename__ = "employees"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    employee_number: Mapped[str | None] = mapped_column(Text, index=True)
    email: Mapped[str | None] = mapped_column(Text, index=True)
    first_name: Mapped[str | None] = mapped_column(Text)
    last_name: Mapped[str | None] = mapped_column(Text)


class TrainingTypeModel(Base):
    """Per-facility training type catalogue entry."""

    __tablename__ = "training_types"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    facility: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    period_days: Mapped[int | None] = mapped_column(Integer)


class TrainingModel(Base):
    """Recorded training with its next due date."""

    __tablename__ = "trainings"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("employees.id"), nullable=False, index=True
    )
    training_type_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("training_types.id"), nullable=False, index=True
    )
    facility: Mapped[str] = mapped_column(Text, nullable=False)
    last_training_date: Mapped[date] = mapped_column(Date, nullable=False)
    next_training_date: Mapped[date] = mapped_column(Date, nullable=False)
    trainer: Mapped[str | None] = mapped_column(Text)
    company: Mapped[str | None] = mapped_column(Text)
    note: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="valid")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Audit
    created_by: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
