"""Tasks API endpoints"""

import logging
from datetime import date
from typing import Any, List, Optional

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.db import get_db
from app.features.tasks.domain import (
    FieldViolation,
    Priority,
    SortField,
    SortOrder,
    StatusFilter,
    Task,
    TaskListQuery,
    TaskValidationError,
)
from app.features.tasks.schemas import DeleteResponse, ErrorResponse, TaskListResponse
from app.features.tasks.service import TaskService

logger = logging.getLogger(__name__)


router = APIRouter(
    prefix="/tasks",
    tags=["tasks"],
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)


def _split_values(values: Optional[List[str]]) -> List[str]:
    """Accept both repeated (?tags=a&tags=b) and comma separated (?tags=a,b) values"""
    items: List[str] = []
    for value in values or []:
        for part in value.split(","):
            part = part.strip()
            if part and part not in items:
                items.append(part)
    return items


def get_list_query(
    status: StatusFilter = Query(StatusFilter.ALL, description="all, active or completed"),
    priority: Optional[List[str]] = Query(None, description="One or more of low, medium, high"),
    tags: Optional[List[str]] = Query(None, description="Tasks must carry every listed tag"),
    due_from: Optional[date] = Query(None, alias="dueFrom"),
    due_to: Optional[date] = Query(None, alias="dueTo"),
    search: Optional[str] = Query(None, description="Substring of title or description"),
    sort_by: SortField = Query(SortField.DUE_DATE, alias="sortBy"),
    sort_order: SortOrder = Query(SortOrder.ASC, alias="sortOrder"),
    limit: Optional[int] = Query(None, ge=1, le=500),
    offset: int = Query(0, ge=0),
) -> TaskListQuery:
    """Translate list query parameters into a TaskListQuery"""
    violations = []

    priorities = []
    for value in _split_values(priority):
        try:
            priorities.append(Priority(value.lower()))
        except ValueError:
            violations.append(
                FieldViolation(
                    field="priority",
                    message=f"Unknown priority '{value}', expected low, medium or high",
                    code="enum",
                )
            )

    if due_from is not None and due_to is not None and due_from > due_to:
        violations.append(
            FieldViolation(field="dueFrom", message="dueFrom must not be after dueTo", code="date_range")
        )

    if violations:
        raise TaskValidationError(violations)

    search = search.strip() if search else None

    return TaskListQuery(
        status=status,
        priorities=tuple(priorities),
        tags=tuple(_split_values(tags)),
        due_from=due_from,
        due_to=due_to,
        search=search or None,
        sort_by=sort_by,
        sort_order=sort_order,
        limit=limit,
        offset=offset,
    )


@router.get("", response_model=TaskListResponse)
async def list_tasks(
    query: TaskListQuery = Depends(get_list_query),
    db: AsyncSession = Depends(get_db),
):
    """
    List tasks.

    Filters combine with AND. Default order is due date (tasks without one
    last), then priority high to low, then id.
    """
    service = TaskService(db)
    tasks, total = await service.list_tasks(query)

    return {
        "tasks": tasks,
        "count": total,
    }


@router.get("/{task_id}", response_model=Task)
async def get_task(task_id: int, db: AsyncSession = Depends(get_db)):
    """Get a single task by ID"""
    service = TaskService(db)
    return await service.get_task(task_id)


@router.post("", response_model=Task, status_code=201)
async def create_task(payload: Any = Body(...), db: AsyncSession = Depends(get_db)):
    """Create a new task"""
    service = TaskService(db)
    return await service.create_task(payload)


@router.put("/{task_id}", response_model=Task)
async def replace_task(task_id: int, payload: Any = Body(...), db: AsyncSession = Depends(get_db)):
    """Replace every field of an existing task"""
    service = TaskService(db)
    return await service.replace_task(task_id, payload)


@router.patch("/{task_id}", response_model=Task)
async def update_task(task_id: int, payload: Any = Body(...), db: AsyncSession = Depends(get_db)):
    """Update only the fields present in the payload"""
    service = TaskService(db)
    return await service.update_task(task_id, payload)


@router.patch("/{task_id}/complete", response_model=Task)
async def toggle_task_completion(task_id: int, db: AsyncSession = Depends(get_db)):
    """Flip a task between active and completed"""
    service = TaskService(db)
    task = await service.toggle_completion(task_id)
    logger.debug(f"Toggled task {task_id} to completed={task.completed}")
    return task


@router.delete("/{task_id}", response_model=DeleteResponse)
async def delete_task(task_id: int, db: AsyncSession = Depends(get_db)):
    """Delete a task permanently"""
    service = TaskService(db)
    await service.delete_task(task_id)

    return {"success": True, "message": "Task deleted successfully"}
