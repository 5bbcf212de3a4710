"""Request and response schemas for the Tasks API"""

from typing import List, Optional

from pydantic import BaseModel

from app.features.tasks.domain import FieldViolation, Task


class TaskListResponse(BaseModel):
    """Response model for listing tasks"""
    tasks: List[Task]
    count: int  # matching tasks before limit/offset


class DeleteResponse(BaseModel):
    success: bool
    message: str


class ErrorResponse(BaseModel):
    """Error payload returned for every 4xx/5xx response"""
    message: str
    violations: Optional[List[FieldViolation]] = None
