"""Task handler functions shared by MCP tools and REST API."""

import logging
from dataclasses import dataclass
from typing import Optional

from cache.task_index import TaskIndex
from models.settings import TaskPlannerSettings
from models.task import Task, TaskStatus
from operations.follow_up import FollowUpComposer
from operations.line_mutator import LineMutator
from operations.undo import UndoableLineMutator, UndoManager, UndoOperation

log = logging.getLogger(__name__)


@dataclass
class TaskServices:
    """The index plus the operations that write task lines back to documents."""

    index: TaskIndex
    mutator: LineMutator
    composer: FollowUpComposer
    undo: UndoableLineMutator

    @classmethod
    def from_settings(cls, settings: TaskPlannerSettings) -> "TaskServices":
        mutator = LineMutator(settings)
        return cls(
            index=TaskIndex(settings),
            mutator=mutator,
            composer=FollowUpComposer(settings),
            undo=UndoableLineMutator(mutator, UndoManager(settings.undo), settings),
        )


def parse_status(value: str) -> TaskStatus:
    """Parse a status name such as "todo" or "in-progress"."""
    key = value.strip().upper().replace("-", "_")
    try:
        return TaskStatus[key]
    except KeyError:
        names = ", ".join(s.name.lower() for s in TaskStatus)
        raise ValueError(f"Unknown status '{value}' (expected one of: {names})") from None


def task_to_dict(task: Task, include_subtasks: bool = True) -> dict:
    """Serialize a Task to a JSON-serializable dict."""
    d = {
        "id": task.task_id,
        "text": task.text,
        "status": task.status.name.lower(),
        "status_order": int(task.status),
        "document": task.document.id if task.document is not None else None,
        "line": task.line,
        "attributes": dict(task.attributes),
        "tags": list(task.tags),
    }
    if include_subtasks and task.subtasks:
        d["subtasks"] = [task_to_dict(c) for c in task.subtasks]
    return d


def _not_found(document_id: str, line: int) -> dict:
    return {"error": f"Task at '{document_id}' line {line} not found"}


def handle_task_list(
    services: TaskServices,
    *,
    status: Optional[str] = None,
    document: Optional[str] = None,
) -> list[dict]:
    tasks = services.index.tasks
    if document:
        tasks = [t for t in tasks if t.document is not None and t.document.id == document]
    if status:
        wanted = {parse_status(s) for s in status.split(",") if s.strip()}
        tasks = [t for t in tasks if t.status in wanted]
    return [task_to_dict(t) for t in tasks]


def handle_task_get(services: TaskServices, *, document_id: str, line: int) -> dict:
    task = services.index.find_task(document_id, line)
    if task is None:
        return _not_found(document_id, line)
    return task_to_dict(task)


async def _refresh(services: TaskServices, task: Task, document_id: str, line: int) -> dict:
    """Re-enter the index through the update path and return the fresh task."""
    await services.index.document_updated(task.document)
    refreshed = services.index.find_task(document_id, line)
    if refreshed is None:
        return _not_found(document_id, line)
    return task_to_dict(refreshed)


async def handle_task_set_status(
    services: TaskServices, *, document_id: str, line: int, status: str
) -> dict:
    new_status = parse_status(status)
    task = services.index.find_task(document_id, line)
    if task is None:
        return _not_found(document_id, line)
    await services.undo.update_status(task, new_status)
    log.info("Set %s:%d to %s", document_id, line, new_status.name.lower())
    return await _refresh(services, task, document_id, line)


async def handle_task_set_attribute(
    services: TaskServices,
    *,
    document_id: str,
    line: int,
    name: str,
    value: Optional[str] = None,
) -> dict:
    """Set an attribute; an empty value sets a flag, None removes the attribute."""
    task = services.index.find_task(document_id, line)
    if task is None:
        return _not_found(document_id, line)
    if value is None:
        await services.undo.remove_attribute(task, name)
    else:
        await services.undo.update_attribute(task, name, value or True)
    return await _refresh(services, task, document_id, line)


async def handle_task_follow_up(
    services: TaskServices,
    *,
    document_id: str,
    line: int,
    due_date: Optional[str] = None,
    complete_original: bool = False,
) -> dict:
    task = services.index.find_task(document_id, line)
    if task is None:
        return _not_found(document_id, line)
    new_line = await services.composer.create_follow_up(task, due_date, complete_original)
    return await _refresh(services, task, document_id, new_line)


async def _refresh_documents(services: TaskServices, operation: UndoOperation) -> None:
    for document_id in operation.document_ids:
        entry = services.index.get_entry(document_id)
        if entry is not None:
            await services.index.document_updated(entry.document)


def _history_result(operation: UndoOperation, complete: bool) -> dict:
    return {
        "operation_id": operation.id,
        "description": operation.description,
        "kind": operation.kind,
        "documents": operation.document_ids,
        "complete": complete,
    }


async def handle_undo(services: TaskServices) -> dict:
    """Revert the newest recorded edit. complete is False if part of it could not be applied."""
    operation = await services.undo.manager.pop_for_undo()
    if operation is None:
        return {"error": "Nothing to undo"}
    complete = await services.undo.apply_undo(operation, services.index.find_task)
    await _refresh_documents(services, operation)
    log.info("Undid %s: %s", operation.id, operation.description)
    return _history_result(operation, complete)


async def handle_redo(services: TaskServices) -> dict:
    operation = await services.undo.manager.pop_for_redo()
    if operation is None:
        return {"error": "Nothing to redo"}
    complete = await services.undo.apply_redo(operation, services.index.find_task)
    await _refresh_documents(services, operation)
    log.info("Redid %s: %s", operation.id, operation.description)
    return _history_result(operation, complete)


def handle_index_status(services: TaskServices) -> dict:
    manager = services.undo.manager
    return {
        **services.index.status(),
        "undo_available": manager.can_undo(),
        "redo_available": manager.can_redo(),
    }
