"""SQLAlchemy repository for Tasks"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import case, delete, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.task import Task as TaskORM
from app.features.tasks.domain import (
    Priority,
    SortField,
    SortOrder,
    StatusFilter,
    TASK_ID_MAX,
    StorageError,
    Task,
    TaskListQuery,
)

logger = logging.getLogger(__name__)


_PRIORITY_RANK = case(
    {p.value: p.rank for p in Priority},
    value=TaskORM.priority,
    else_=len(Priority),
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def next_timestamp(previous: Optional[datetime], now: Optional[datetime] = None) -> datetime:
    """Current UTC time, bumped past `previous` when the clock has not moved"""
    now = now or _utcnow()
    if previous is not None:
        previous = _as_utc(previous)
        if now <= previous:
            return previous + timedelta(microseconds=1)
    return now


def _storable_id(task_id: int) -> bool:
    """Ids outside the column range cannot exist and would overflow the driver"""
    return 1 <= task_id <= TASK_ID_MAX


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _to_row_values(data: Dict[str, Any]) -> Dict[str, Any]:
    values = dict(data)
    if isinstance(values.get("priority"), Priority):
        values["priority"] = values["priority"].value
    if "tags" in values:
        values["tags"] = list(values["tags"])
    return values


class TaskRepository:
    """Repository for Task operations using SQLAlchemy"""

    def __init__(self, db: AsyncSession):
        """
        Initialize the repository with a database session.

        Args:
            db: SQLAlchemy async database session
        """
        self.db = db

    async def _rollback(self, action: str, error: SQLAlchemyError) -> StorageError:
        logger.error(f"Failed to {action}: {error}", exc_info=error)
        try:
            await self.db.rollback()
        except SQLAlchemyError as rollback_error:
            logger.error(f"Rollback after failed {action} also failed: {rollback_error}")
        return StorageError(f"Failed to {action}")

    async def _get_for_update(self, task_id: int) -> Optional[TaskORM]:
        stmt = select(TaskORM).where(TaskORM.id == task_id).with_for_update()
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, data: Dict[str, Any]) -> Task:
        """
        Insert a new task. id, created_at and updated_at are assigned here.

        Args:
            data: Normalized task fields (title, description, due_date, priority, completed, tags)

        Returns:
            The stored Task
        """
        now = _utcnow()
        row = TaskORM(**_to_row_values(data), created_at=now, updated_at=now)
        try:
            self.db.add(row)
            await self.db.commit()
            await self.db.refresh(row)
        except SQLAlchemyError as e:
            raise await self._rollback("create task", e) from e

        logger.info(f"Created task {row.id}")
        return Task.model_validate(row)

    async def get_by_id(self, task_id: int) -> Optional[Task]:
        """Find a single task by ID"""
        if not _storable_id(task_id):
            return None

        try:
            row = await self.db.get(TaskORM, task_id)
        except SQLAlchemyError as e:
            raise await self._rollback(f"fetch task {task_id}", e) from e

        if row is None:
            return None
        return Task.model_validate(row)

    async def list(self, query: TaskListQuery) -> List[Task]:
        """
        List tasks matching the query's filters, in the query's sort order.

        Tag filtering runs after the SQL query because tags are stored as a
        JSON list.
        """
        stmt = select(TaskORM)

        if query.status == StatusFilter.ACTIVE:
            stmt = stmt.where(TaskORM.completed.is_(False))
        elif query.status == StatusFilter.COMPLETED:
            stmt = stmt.where(TaskORM.completed.is_(True))

        if query.priorities:
            stmt = stmt.where(TaskORM.priority.in_([p.value for p in query.priorities]))

        if query.due_from is not None:
            stmt = stmt.where(TaskORM.due_date >= query.due_from)
        if query.due_to is not None:
            stmt = stmt.where(TaskORM.due_date <= query.due_to)

        if query.search:
            pattern = f"%{_escape_like(query.search.lower())}%"
            stmt = stmt.where(
                or_(
                    func.lower(TaskORM.title).like(pattern, escape="\\"),
                    func.lower(func.coalesce(TaskORM.description, "")).like(pattern, escape="\\"),
                )
            )

        stmt = stmt.order_by(*self._order_by(query.sort_by, query.sort_order))

        try:
            result = await self.db.execute(stmt)
            rows = result.scalars().all()
        except SQLAlchemyError as e:
            raise await self._rollback("list tasks", e) from e

        tasks = [Task.model_validate(row) for row in rows]

        if query.tags:
            wanted = set(query.tags)
            tasks = [t for t in tasks if wanted.issubset(t.tags)]

        return tasks

    @staticmethod
    def _order_by(sort_by: SortField, sort_order: SortOrder) -> List[Any]:
        """
        ORDER BY clauses for a sort key.

        Tasks without a due date go last in either direction. Sorting by due
        date breaks ties by priority (high first); id ascending is the final
        tie-break for every key.
        """
        descending = sort_order == SortOrder.DESC

        def directed(column):
            return column.desc() if descending else column.asc()

        if sort_by == SortField.DUE_DATE:
            clauses = [TaskORM.due_date.is_(None), directed(TaskORM.due_date), _PRIORITY_RANK.asc()]
        elif sort_by == SortField.PRIORITY:
            clauses = [directed(_PRIORITY_RANK)]
        elif sort_by == SortField.CREATED_AT:
            clauses = [directed(TaskORM.created_at)]
        else:
            clauses = [directed(TaskORM.title)]

        clauses.append(TaskORM.id.asc())
        return clauses

    async def update(self, task_id: int, changes: Dict[str, Any]) -> Optional[Task]:
        """
        Apply field changes to a task and refresh updated_at.

        Returns:
            The updated Task, or None if the task does not exist
        """
        if not _storable_id(task_id):
            return None

        try:
            row = await self._get_for_update(task_id)
            if row is None:
                await self.db.rollback()
                return None

            for key, value in _to_row_values(changes).items():
                setattr(row, key, value)
            row.updated_at = next_timestamp(row.updated_at)

            await self.db.commit()
            await self.db.refresh(row)
        except SQLAlchemyError as e:
            raise await self._rollback(f"update task {task_id}", e) from e

        logger.info(f"Updated task {task_id} fields={sorted(changes)}")
        return Task.model_validate(row)

    async def toggle_completed(self, task_id: int) -> Optional[Task]:
        """
        Flip the completed flag and refresh updated_at.

        Returns:
            The updated Task, or None if the task does not exist
        """
        if not _storable_id(task_id):
            return None

        try:
            row = await self._get_for_update(task_id)
            if row is None:
                await self.db.rollback()
                return None

            row.completed = not row.completed
            row.updated_at = next_timestamp(row.updated_at)

            await self.db.commit()
            await self.db.refresh(row)
        except SQLAlchemyError as e:
            raise await self._rollback(f"toggle task {task_id}", e) from e

        logger.info(f"Task {task_id} completed={row.completed}")
        return Task.model_validate(row)

    async def delete(self, task_id: int) -> bool:
        """Hard delete a task. Returns False if it did not exist"""
        if not _storable_id(task_id):
            return False

        try:
            result = await self.db.execute(delete(TaskORM).where(TaskORM.id == task_id))
            await self.db.commit()
        except SQLAlchemyError as e:
            raise await self._rollback(f"delete task {task_id}", e) from e

        deleted = result.rowcount > 0
        if deleted:
            logger.info(f"Deleted task {task_id}")
        return deleted
