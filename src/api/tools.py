"""MCP tool registration for the task index."""

import json
import logging
from typing import Optional

from mcp.server.fastmcp import FastMCP

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

log = logging.getLogger(__name__)


def register_tools(mcp: FastMCP, services: TaskServices) -> None:
    """Register all MCP tools onto the FastMCP instance."""

    @mcp.tool()
    def task_list(status: Optional[str] = None, document: Optional[str] = None) -> str:
        """
        List indexed top-level tasks, each with its nested subtasks.

        Args:
            status: Comma-separated statuses to include, e.g. "todo,in_progress".
                    One of attention_required, todo, in_progress, delegated,
                    complete, canceled. Omit for all.
            document: Restrict to one document id (vault-relative path)

        Returns:
            JSON array of task objects
        """
        try:
            return json.dumps(handle_task_list(services, status=status, document=document))
        except ValueError as e:
            return json.dumps({"error": str(e)})

    @mcp.tool()
    def task_get(document_id: str, line: int) -> str:
        """
        Get one task by document id and zero-based line number.

        Returns:
            JSON task object, or {"error": ...} if not found
        """
        return json.dumps(handle_task_get(services, document_id=document_id, line=line))

    @mcp.tool()
    async def task_set_status(document_id: str, line: int, status: str) -> str:
        """
        Change a task's status in its document.

        Closing a task (complete/canceled) adds today's completed date;
        reopening it removes the date.

        Returns:
            JSON of the updated task
        """
        try:
            result = await handle_task_set_status(
                services, document_id=document_id, line=line, status=status
            )
        except Exception as e:
            log.exception("task_set_status failed")
            result = {"error": str(e)}
        return json.dumps(result)

    @mcp.tool()
    async def task_set_attribute(
        document_id: str, line: int, name: str, value: Optional[str] = None
    ) -> str:
        """
        Set or remove an inline attribute on a task.

        Args:
            name: Attribute key, e.g. "due"
            value: New value; empty string sets a flag; omit to remove

        Returns:
            JSON of the updated task
        """
        try:
            result = await handle_task_set_attribute(
                services, document_id=document_id, line=line, name=name, value=value
            )
        except Exception as e:
            log.exception("task_set_attribute failed")
            result = {"error": str(e)}
        return json.dumps(result)

    @mcp.tool()
    async def task_follow_up(
        document_id: str,
        line: int,
        due_date: Optional[str] = None,
        complete_original: bool = False,
    ) -> str:
        """
        Create a follow-up task right after a task and its sub-items.

        Args:
            due_date: ISO date (YYYY-MM-DD) for the follow-up, or omit for none
            complete_original: Also mark the original task complete

        Returns:
            JSON of the new follow-up task
        """
        try:
            result = await handle_task_follow_up(
                services,
                document_id=document_id,
                line=line,
                due_date=due_date,
                complete_original=complete_original,
            )
        except Exception as e:
            log.exception("task_follow_up failed")
            result = {"error": str(e)}
        return json.dumps(result)

    @mcp.tool()
    def index_status() -> str:
        """Return index diagnostics: document count, task counts, ignore policy."""
        return json.dumps(handle_index_status(services))

    @mcp.tool()
    async def task_undo() -> str:
        """
        Undo the most recent status or attribute change.

        Edits older than the configured history age are gone.

        Returns:
            JSON with the undone operation's description and touched documents,
            or {"error": ...} when there is nothing to undo
        """
        try:
            result = await handle_undo(services)
        except Exception as e:
            log.exception("task_undo failed")
            result = {"error": str(e)}
        return json.dumps(result)

    @mcp.tool()
    async def task_redo() -> str:
        """Redo the most recently undone change."""
        try:
            result = await handle_redo(services)
        except Exception as e:
            log.exception("task_redo failed")
            result = {"error": str(e)}
        return json.dumps(result)
