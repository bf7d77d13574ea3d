"""REST API routes for the task index."""

from typing import Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from api.task_handlers import (
    TaskServices,
    handle_index_status,
    handle_redo,
    handle_task_follow_up,
    handle_task_get,
    handle_task_list,
    handle_task_set_attribute,
    handle_task_set_status,
    handle_undo,
)


# ---------------------------------------------------------------------------
# Request body models
# ---------------------------------------------------------------------------


class StatusBody(BaseModel):
    status: str


class AttributeBody(BaseModel):
    name: str
    value: Optional[str] = None


class FollowUpBody(BaseModel):
    due_date: Optional[str] = None
    complete_original: bool = False


def _or_404(result: dict) -> dict:
    if "error" in result:
        raise HTTPException(status_code=404, detail=result["error"])
    return result


def _or_409(result: dict) -> dict:
    if "error" in result:
        raise HTTPException(status_code=409, detail=result["error"])
    return result


def register_routes(app_router: APIRouter, services: TaskServices) -> None:
    """Attach all REST routes that use the shared services."""

    @app_router.get("/tasks")
    def list_tasks(
        status: Optional[str] = Query(None),
        document: Optional[str] = Query(None),
    ):
        try:
            return handle_task_list(services, status=status, document=document)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

    @app_router.get("/documents/{document_id:path}/tasks/{line}")
    def get_task(document_id: str, line: int):
        return _or_404(handle_task_get(services, document_id=document_id, line=line))

    @app_router.post("/documents/{document_id:path}/tasks/{line}/status")
    async def set_status(document_id: str, line: int, body: StatusBody):
        try:
            result = await handle_task_set_status(
                services, document_id=document_id, line=line, status=body.status
            )
        except Exception as e:
            raise HTTPException(status_code=400, detail=str(e))
        return _or_404(result)

    @app_router.patch("/documents/{document_id:path}/tasks/{line}/attributes")
    async def set_attribute(document_id: str, line: int, body: AttributeBody):
        try:
            result = await handle_task_set_attribute(
                services, document_id=document_id, line=line, **body.model_dump()
            )
        except Exception as e:
            raise HTTPException(status_code=400, detail=str(e))
        return _or_404(result)

    @app_router.post("/documents/{document_id:path}/tasks/{line}/follow-up", status_code=201)
    async def follow_up(document_id: str, line: int, body: FollowUpBody):
        try:
            result = await handle_task_follow_up(
                services, document_id=document_id, line=line, **body.model_dump()
            )
        except Exception as e:
            raise HTTPException(status_code=400, detail=str(e))
        return _or_404(result)

    @app_router.get("/index/status")
    def get_index_status():
        return handle_index_status(services)

    @app_router.post("/undo")
    async def undo():
        try:
            result = await handle_undo(services)
        except Exception as e:
            raise HTTPException(status_code=400, detail=str(e))
        return _or_409(result)

    @app_router.post("/redo")
    async def redo():
        try:
            result = await handle_redo(services)
        except Exception as e:
            raise HTTPException(status_code=400, detail=str(e))
        return _or_409(result)
