"""Domain models for the Tasks feature"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


TITLE_MAX_LENGTH = 200
TAG_MAX_LENGTH = 50

# Task ids are signed 64-bit integers in every supported database
TASK_ID_MAX = 2 ** 63 - 1


class Priority(str, Enum):
    """Task urgency level"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        """Sort rank, high first"""
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {Priority.HIGH: 0, Priority.MEDIUM: 1, Priority.LOW: 2}


class StatusFilter(str, Enum):
    """Completion status filter for listing"""
    ALL = "all"
    ACTIVE = "active"
    COMPLETED = "completed"


class SortField(str, Enum):
    """Fields a task list can be sorted by"""
    DUE_DATE = "dueDate"
    PRIORITY = "priority"
    CREATED_AT = "createdAt"
    TITLE = "title"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class Task(BaseModel):
    """Complete task domain model"""
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    title: str
    description: Optional[str] = None
    due_date: Optional[date] = Field(None, alias="dueDate")
    priority: Priority = Priority.MEDIUM
    completed: bool = False
    tags: List[str] = Field(default_factory=list)
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")

    @field_validator("tags", mode="before")
    @classmethod
    def default_tags(cls, value):
        return [] if value is None else value

    @field_validator("created_at", "updated_at")
    @classmethod
    def ensure_utc(cls, value: datetime) -> datetime:
        """SQLite drops tzinfo; stored timestamps are always UTC"""
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class TaskListQuery(BaseModel):
    """
    Immutable description of a list request: filters, search, sort and page.

    Built from request parameters by the API layer and passed explicitly to
    the repository.
    """
    model_config = ConfigDict(frozen=True)

    status: StatusFilter = StatusFilter.ALL
    priorities: Tuple[Priority, ...] = ()
    tags: Tuple[str, ...] = ()
    due_from: Optional[date] = None
    due_to: Optional[date] = None
    search: Optional[str] = None
    sort_by: SortField = SortField.DUE_DATE
    sort_order: SortOrder = SortOrder.ASC
    limit: Optional[int] = None
    offset: int = 0


class FieldViolation(BaseModel):
    """A single field-level validation failure"""
    field: str
    message: str
    code: str


class TaskError(Exception):
    """Base class for task feature errors"""


class TaskValidationError(TaskError):
    """Payload rejected; carries every detected violation"""

    def __init__(self, violations: List[FieldViolation]):
        self.violations = violations
        fields = ", ".join(sorted({v.field for v in violations}))
        super().__init__(f"Validation failed for: {fields}")


class TaskNotFoundError(TaskError):
    """Operation targeted a task id that does not exist"""

    def __init__(self, task_id: int):
        self.task_id = task_id
        super().__init__(f"Task {task_id} not found")


class StorageError(TaskError):
    """The database could not complete the operation"""
