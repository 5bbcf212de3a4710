"""Tasks feature module"""

from app.features.tasks.api import router
from app.features.tasks.repository import TaskRepository
from app.features.tasks.service import TaskService
from app.features.tasks.domain import (
    FieldViolation,
    Priority,
    SortField,
    SortOrder,
    StatusFilter,
    StorageError,
    Task,
    TaskError,
    TaskListQuery,
    TaskNotFoundError,
    TaskValidationError,
)

__all__ = [
    "router",
    "TaskRepository",
    "TaskService",
    "FieldViolation",
    "Priority",
    "SortField",
    "SortOrder",
    "StatusFilter",
    "StorageError",
    "Task",
    "TaskError",
    "TaskListQuery",
    "TaskNotFoundError",
    "TaskValidationError",
]
