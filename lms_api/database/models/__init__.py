"""Database models package - import all models so Alembic can discover them."""

from lms_api.database.models.model_base import SqlAlchemyModel
from lms_api.database.models.user import User

__all__ = [
    "SqlAlchemyModel",
    "User",
]
