"""FastAPI application factory for the task index REST API."""

from typing import Any, Optional

from fastapi import APIRouter, FastAPI

from api.routes import register_routes
from api.task_handlers import TaskServices


def create_app(services: TaskServices, lifespan: Optional[Any] = None) -> FastAPI:
    """Build and return a FastAPI app wired to the given services."""
    app = FastAPI(
        title="vault-tasks",
        docs_url="/api/docs",
        openapi_url="/api/openapi.json",
        lifespan=lifespan,
    )

    api = APIRouter(prefix="/api")
    register_routes(api, services)
    app.include_router(api)

    return app
