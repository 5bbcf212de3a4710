"""SQLAlchemy ORM models"""

from app.db.models.task import Task

__all__ = ["Task"]
