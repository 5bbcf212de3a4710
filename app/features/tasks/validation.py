"""
Payload validation for the Tasks feature.

Incoming JSON is checked against explicit pydantic schemas before it reaches
the service. Every failing field is reported, never just the first one.
"""

import re
from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_core import PydanticCustomError

from app.features.tasks.domain import (
    TAG_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    FieldViolation,
    Priority,
    TaskValidationError,
)

# Only the extended calendar form; date.fromisoformat alone also takes 20261224 and week dates
_ISO_DATE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")


class TaskPayload(BaseModel):
    """Fields shared by create and update payloads"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    title: Optional[str] = None
    description: Optional[str] = None
    due_date: Optional[date] = Field(None, alias="dueDate")
    priority: Optional[Priority] = None
    completed: Optional[bool] = Field(None, strict=True)
    tags: Optional[List[str]] = None

    # Defaults are not validated, so these only fire on an explicit null
    @field_validator("title", "priority", "completed", "tags", mode="before")
    @classmethod
    def reject_null(cls, value: Any, info):
        if value is None:
            raise PydanticCustomError("null_not_allowed", "{field} must not be null", {"field": info.field_name})
        return value

    @field_validator("title")
    @classmethod
    def normalize_title(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise PydanticCustomError("title_empty", "title must not be empty")
        if len(value) > TITLE_MAX_LENGTH:
            raise PydanticCustomError(
                "title_too_long",
                "title must be at most {max_length} characters",
                {"max_length": TITLE_MAX_LENGTH},
            )
        return value

    @field_validator("description")
    @classmethod
    def normalize_description(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        return value or None

    @field_validator("priority", mode="before")
    @classmethod
    def lowercase_priority(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, value: Any) -> Any:
        if value is None or isinstance(value, date):
            return value
        if isinstance(value, str) and _ISO_DATE.fullmatch(value.strip()):
            try:
                return date.fromisoformat(value.strip())
            except ValueError:
                pass
        raise PydanticCustomError("date_invalid", "dueDate must be a valid calendar date (YYYY-MM-DD)")

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, value: List[str]) -> List[str]:
        tags: List[str] = []
        for raw in value:
            tag = raw.strip()
            if not tag or tag in tags:
                continue
            if len(tag) > TAG_MAX_LENGTH:
                raise PydanticCustomError(
                    "tag_too_long",
                    "tags must be at most {max_length} characters each",
                    {"max_length": TAG_MAX_LENGTH},
                )
            tags.append(tag)
        return tags


class TaskCreate(TaskPayload):
    """Normalized payload for creating (or fully replacing) a task"""
    title: str
    priority: Priority = Priority.MEDIUM
    completed: bool = Field(False, strict=True)
    tags: List[str] = Field(default_factory=list)

    def to_record(self) -> Dict[str, Any]:
        """All persistable fields, defaults included"""
        return self.model_dump(mode="python")


class TaskPatch(TaskPayload):
    """Normalized partial update; only fields present in the payload apply"""

    def to_changes(self) -> Dict[str, Any]:
        return self.model_dump(mode="python", exclude_unset=True)


_FIELD_ALIASES = {"due_date": "dueDate"}


def _to_violations(exc: ValidationError) -> List[FieldViolation]:
    violations = []
    for error in exc.errors():
        loc = [str(part) for part in error["loc"]]
        if loc:
            loc[0] = _FIELD_ALIASES.get(loc[0], loc[0])
        violations.append(
            FieldViolation(
                field=".".join(loc) or "body",
                message=error["msg"],
                code=error["type"],
            )
        )
    return violations


def validate_new_task(payload: Any) -> TaskCreate:
    """
    Validate a create (or full update) payload.

    Raises:
        TaskValidationError: with every violation found
    """
    try:
        return TaskCreate.model_validate(payload)
    except ValidationError as e:
        raise TaskValidationError(_to_violations(e)) from e


def validate_task_changes(payload: Any) -> TaskPatch:
    """
    Validate a partial update payload.

    Raises:
        TaskValidationError: with every violation found
    """
    try:
        return TaskPatch.model_validate(payload)
    except ValidationError as e:
        raise TaskValidationError(_to_violations(e)) from e
