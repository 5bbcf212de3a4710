"""Business logic for Tasks"""

from typing import Any, List, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from app.features.tasks.domain import Task, TaskListQuery, TaskNotFoundError
from app.features.tasks.repository import TaskRepository
from app.features.tasks.validation import validate_new_task, validate_task_changes


class TaskService:
    """Service layer for task business logic"""

    def __init__(self, db: AsyncSession):
        self.repository = TaskRepository(db)

    async def list_tasks(self, query: TaskListQuery) -> Tuple[List[Task], int]:
        """
        List tasks for a query.

        Returns:
            (page of tasks, number of matching tasks before pagination)
        """
        tasks = await self.repository.list(query)
        total = len(tasks)

        end = None if query.limit is None else query.offset + query.limit
        return tasks[query.offset:end], total

    async def get_task(self, task_id: int) -> Task:
        """
        Raises:
            TaskNotFoundError: If the task does not exist
        """
        task = await self.repository.get_by_id(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    async def create_task(self, payload: Any) -> Task:
        """
        Validate a payload and store it as a new task.

        Raises:
            TaskValidationError: If any field is invalid
        """
        data = validate_new_task(payload)
        return await self.repository.create(data.to_record())

    async def replace_task(self, task_id: int, payload: Any) -> Task:
        """
        Full update: every field takes the payload's value, omitted optional
        fields fall back to their defaults.

        Raises:
            TaskValidationError: If any field is invalid
            TaskNotFoundError: If the task does not exist
        """
        data = validate_new_task(payload)
        task = await self.repository.update(task_id, data.to_record())
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    async def update_task(self, task_id: int, payload: Any) -> Task:
        """
        Partial update: only fields present in the payload change.

        Raises:
            TaskValidationError: If any provided field is invalid
            TaskNotFoundError: If the task does not exist
        """
        changes = validate_task_changes(payload).to_changes()
        if not changes:
            # Nothing to update
            return await self.get_task(task_id)

        task = await self.repository.update(task_id, changes)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    async def toggle_completion(self, task_id: int) -> Task:
        """
        Raises:
            TaskNotFoundError: If the task does not exist
        """
        task = await self.repository.toggle_completed(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    async def delete_task(self, task_id: int) -> None:
        """
        Raises:
            TaskNotFoundError: If the task does not exist
        """
        if not await self.repository.delete(task_id):
            raise TaskNotFoundError(task_id)
