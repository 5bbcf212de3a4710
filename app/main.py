import logging

from app.config import AUTO_CREATE_TABLES, CORS_ORIGINS, LOG_LEVEL

# Log configuration (before other imports)
# ruff: noqa: E402
logging.basicConfig(
    level=LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    force=True
)

from contextlib import asynccontextmanager  # noqa: E402

from fastapi import FastAPI  # noqa: E402
from fastapi.middleware.cors import CORSMiddleware  # noqa: E402
from app.api.base import api_router  # noqa: E402
from app.db import engine, init_models  # noqa: E402
from app.errors import register_exception_handlers  # noqa: E402

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if AUTO_CREATE_TABLES:
        await init_models()
    yield
    await engine.dispose()
    logger.info("Database engine disposed")


app = FastAPI(
    title="Festive TODO API",
    description="Backend API for the festive TODO list: tasks with priorities, tags and due dates",
    version="1.0.0",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,  # Specify your frontend URL in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include all API routes
app.include_router(api_router)


@app.get("/")
def read_root():
    return {
        "message": "Festive TODO API",
        "docs": "/docs",
        "version": "1.0.0"
    }
