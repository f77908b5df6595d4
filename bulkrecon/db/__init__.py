"""Database layer for bulkrecon with async SQLAlchemy."""

from bulkrecon.db.connection import get_session, get_session_factory, init_db
from bulkrecon.db.models import Base, EmployeeModel, TrainingModel, TrainingTypeModel
from bulkrecon.db.repository import SqlTrainingRepository

__all__ = [
    "Base",
    "EmployeeModel",
    "TrainingTypeModel",
    "TrainingModel",
    "SqlTrainingRepository",
    "get_session",
    "get_session_factory",
    "init_db",
]
