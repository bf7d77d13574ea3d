"""
Tests for api/tools.py.

Uses a real TaskIndex loaded from a temporary vault on disk.
Exercises the MCP tool handler functions directly (bypasses transport).
"""

import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
import pytest_asyncio

from api.task_handlers import TaskServices, parse_status
from api.tools import register_tools
from documents.file_document import discover_documents
from models.settings import TaskPlannerSettings
from models.task import TaskStatus


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_vault(tmp_path: Path) -> Path:
    vault = tmp_path / "vault"
    vault.mkdir()
    (vault / "TASKS.md").write_text(
        "- [ ] Write report #work @priority(high)\n"
        "  - [>] Draft outline\n"
        "- [d] Review budget\n",
        encoding="utf-8",
    )
    return vault


class _FakeMCP:
    """Minimal fake to capture tool registrations."""

    def __init__(self):
        self._tools = {}

    def tool(self, *args, **kwargs):
        """Decorator that records functions by name."""
        def decorator(fn):
            self._tools[fn.__name__] = fn
            return fn
        return decorator

    def get(self, name: str):
        return self._tools[name]


@pytest_asyncio.fixture
async def tools(tmp_path):
    vault = _make_vault(tmp_path)
    services = TaskServices.from_settings(TaskPlannerSettings())
    await services.index.load_all(discover_documents(vault, set()))
    mcp = _FakeMCP()
    register_tools(mcp, services)
    return mcp, vault


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------

class TestRegistration:
    def test_all_tools_registered(self):
        mcp = _FakeMCP()
        register_tools(mcp, TaskServices.from_settings(TaskPlannerSettings()))
        assert set(mcp._tools) == {
            "task_list",
            "task_get",
            "task_set_status",
            "task_set_attribute",
            "task_follow_up",
            "index_status",
            "task_undo",
            "task_redo",
        }


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------

class TestTaskTools:
    @pytest.mark.asyncio
    async def test_task_list(self, tools):
        mcp, _vault = tools
        data = json.loads(mcp.get("task_list")())
        assert [t["text"] for t in data] == ["Write report", "Review budget"]
        assert data[0]["subtasks"][0]["status"] == "in_progress"

    @pytest.mark.asyncio
    async def test_task_list_bad_status(self, tools):
        mcp, _vault = tools
        assert "error" in json.loads(mcp.get("task_list")(status="nope"))

    @pytest.mark.asyncio
    async def test_task_get(self, tools):
        mcp, _vault = tools
        data = json.loads(mcp.get("task_get")(document_id="TASKS.md", line=1))
        assert data["text"] == "Draft outline"
        assert data["id"] == "TASKS.md-1-Draft outline"

    @pytest.mark.asyncio
    async def test_task_get_missing(self, tools):
        mcp, _vault = tools
        assert "error" in json.loads(mcp.get("task_get")(document_id="NOPE.md", line=0))

    @pytest.mark.asyncio
    async def test_task_set_status(self, tools):
        mcp, vault = tools
        data = json.loads(
            await mcp.get("task_set_status")(document_id="TASKS.md", line=2, status="canceled")
        )
        assert data["status"] == "canceled"
        assert (vault / "TASKS.md").read_text(encoding="utf-8").split("\n")[2].startswith(
            "- [-] Review budget @completed("
        )

    @pytest.mark.asyncio
    async def test_task_set_status_invalid(self, tools):
        mcp, _vault = tools
        data = json.loads(
            await mcp.get("task_set_status")(document_id="TASKS.md", line=2, status="finished")
        )
        assert "Unknown status" in data["error"]

    @pytest.mark.asyncio
    async def test_task_set_attribute(self, tools):
        mcp, _vault = tools
        data = json.loads(
            await mcp.get("task_set_attribute")(
                document_id="TASKS.md", line=0, name="due", value="2026-04-01"
            )
        )
        assert data["attributes"] == {"priority": "high", "due": "2026-04-01"}
        assert data["tags"] == ["work"]

    @pytest.mark.asyncio
    async def test_task_follow_up(self, tools):
        mcp, vault = tools
        data = json.loads(
            await mcp.get("task_follow_up")(document_id="TASKS.md", line=0, due_date="2026-05-01")
        )
        assert data["line"] == 2
        assert data["text"] == "Follow up: Write report"
        assert data["attributes"] == {"due": "2026-05-01", "priority": "high"}
        lines = (vault / "TASKS.md").read_text(encoding="utf-8").split("\n")
        assert lines[3] == "- [d] Review budget"

    @pytest.mark.asyncio
    async def test_index_status(self, tools):
        mcp, _vault = tools
        data = json.loads(mcp.get("index_status")())
        assert data["documents_indexed"] == 1
        assert data["tasks_indexed"] == 3


class TestParseStatus:
    @pytest.mark.parametrize(
        "value,status",
        [
            ("todo", TaskStatus.TODO),
            ("in-progress", TaskStatus.IN_PROGRESS),
            (" Complete ", TaskStatus.COMPLETE),
            ("attention_required", TaskStatus.ATTENTION_REQUIRED),
        ],
    )
    def test_parse(self, value, status):
        assert parse_status(value) == status

    def test_unknown(self):
        with pytest.raises(ValueError):
            parse_status("later")


class TestHistoryTools:
    @pytest.mark.asyncio
    async def test_undo_and_redo_set_attribute(self, tools):
        mcp, vault = tools
        path = vault / "TASKS.md"
        original = path.read_text(encoding="utf-8")
        await mcp.get("task_set_attribute")(
            document_id="TASKS.md", line=0, name="priority", value="low"
        )

        data = json.loads(await mcp.get("task_undo")())
        assert data["complete"] is True
        assert data["documents"] == ["TASKS.md"]
        assert path.read_text(encoding="utf-8") == original

        json.loads(await mcp.get("task_redo")())
        task = json.loads(mcp.get("task_get")(document_id="TASKS.md", line=0))
        assert task["attributes"] == {"priority": "low"}

    @pytest.mark.asyncio
    async def test_undo_with_empty_history(self, tools):
        mcp, _vault = tools
        assert json.loads(await mcp.get("task_undo")()) == {"error": "Nothing to undo"}
        assert json.loads(await mcp.get("task_redo")()) == {"error": "Nothing to redo"}
