"""Health check and monitoring endpoints"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db import get_db
from app.db.models.task import Task as TaskORM
from app.db.session import engine, get_pool_stats

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/health", tags=["health"])

SERVICE_NAME = "festive-todo-backend"


def summarize_pool(stats: dict) -> dict:
    """Turn raw pool counters into a utilization report"""
    in_use = stats["checked_out"]
    total_capacity = stats["size"] + stats["max_overflow"]
    utilization = (in_use / total_capacity * 100) if total_capacity > 0 else 0

    if utilization >= 90:
        status = "critical"
    elif utilization >= 80:
        status = "warning"
    else:
        status = "healthy"

    return {
        "status": status,
        "pool_size": stats["size"],
        "max_overflow": stats["max_overflow"],
        "available": stats["checked_in"],
        "in_use": in_use,
        "overflow": stats["overflow"],
        "utilization_percent": round(utilization, 2),
        "total_capacity": total_capacity,
    }


@router.get("/")
async def health_check(db: AsyncSession = Depends(get_db)):
    """
    Liveness of the task store.

    Counts the rows in the tasks table, which proves both the connection and
    the schema. Returns 503 when the query fails.
    """
    database = db.bind.dialect.name
    try:
        result = await db.execute(select(func.count()).select_from(TaskORM))
        task_count = result.scalar_one()
    except SQLAlchemyError as e:
        logger.error(f"Health check against {database} failed: {e}")
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "service": SERVICE_NAME, "database": database},
        )

    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "database": database,
        "tasks": task_count,
    }


@router.get("/pool")
async def get_pool_health():
    """
    Connection pool utilization for server databases.

    SQLite runs without a connection pool, so it reports "not_applicable".
    """
    stats = get_pool_stats(engine)
    if stats is None:
        return {"status": "not_applicable", "database": engine.dialect.name}
    return summarize_pool(stats)
