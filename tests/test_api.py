"""
Tests for the REST API routes.

Uses FastAPI TestClient against a real TaskIndex loaded from a temp vault.
"""

import asyncio
import sys
from datetime import date
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from fastapi.testclient import TestClient

from api.app import create_app
from api.task_handlers import TaskServices
from documents.file_document import discover_documents
from models.settings import TaskPlannerSettings

TODAY = date.today().isoformat()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_vault(tmp_path: Path) -> Path:
    vault = tmp_path / "vault"
    (vault / "projects").mkdir(parents=True)
    (vault / "Archive").mkdir()

    (vault / "TASKS.md").write_text(
        "### Open\n\n"
        "- [ ] Buy groceries @due(2026-02-28) #errand\n"
        "  - [ ] Milk\n"
        "- [x] File taxes @completed(2026-01-15)\n",
        encoding="utf-8",
    )
    (vault / "projects" / "side.md").write_text("- [!] Urgent fix @high\n", encoding="utf-8")
    (vault / "Archive" / "old.md").write_text("- [ ] Old task\n", encoding="utf-8")
    return vault


@pytest.fixture
def vault(tmp_path):
    return _make_vault(tmp_path)


@pytest.fixture
def client(vault):
    services = TaskServices.from_settings(TaskPlannerSettings(ignored_folders=("Archive",)))
    asyncio.run(services.index.load_all(discover_documents(vault, set())))
    return TestClient(create_app(services))


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

class TestReadEndpoints:
    def test_list_tasks(self, client):
        r = client.get("/api/tasks")
        assert r.status_code == 200
        data = r.json()
        assert [t["text"] for t in data] == ["Buy groceries", "File taxes", "Urgent fix"]
        groceries = data[0]
        assert groceries["document"] == "TASKS.md"
        assert groceries["line"] == 2
        assert groceries["status"] == "todo"
        assert groceries["attributes"] == {"due": "2026-02-28"}
        assert groceries["tags"] == ["errand"]
        assert [s["text"] for s in groceries["subtasks"]] == ["Milk"]

    def test_list_filter_status(self, client):
        data = client.get("/api/tasks", params={"status": "complete,attention_required"}).json()
        assert [t["text"] for t in data] == ["File taxes", "Urgent fix"]

    def test_list_filter_document(self, client):
        data = client.get("/api/tasks", params={"document": "projects/side.md"}).json()
        assert [t["text"] for t in data] == ["Urgent fix"]
        assert data[0]["attributes"] == {"priority": "high"}

    def test_list_invalid_status(self, client):
        assert client.get("/api/tasks", params={"status": "bogus"}).status_code == 400

    def test_get_nested_task(self, client):
        r = client.get("/api/documents/TASKS.md/tasks/3")
        assert r.status_code == 200
        assert r.json()["text"] == "Milk"

    def test_get_task_in_subfolder(self, client):
        r = client.get("/api/documents/projects/side.md/tasks/0")
        assert r.status_code == 200
        assert r.json()["status"] == "attention_required"

    def test_get_task_not_found(self, client):
        assert client.get("/api/documents/TASKS.md/tasks/9").status_code == 404

    def test_index_status(self, client):
        data = client.get("/api/index/status").json()
        assert data["documents_indexed"] == 2
        assert data["tasks_indexed"] == 4
        assert data["ignored_folders"] == ["Archive"]


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

class TestWriteEndpoints:
    def test_set_status(self, client, vault):
        r = client.post("/api/documents/TASKS.md/tasks/2/status", json={"status": "complete"})
        assert r.status_code == 200
        assert r.json()["status"] == "complete"
        assert r.json()["attributes"]["completed"] == TODAY
        line = (vault / "TASKS.md").read_text(encoding="utf-8").split("\n")[2]
        assert line == f"- [x] Buy groceries #errand @due(2026-02-28) @completed({TODAY})"

    def test_set_status_invalid(self, client):
        r = client.post("/api/documents/TASKS.md/tasks/2/status", json={"status": "done-ish"})
        assert r.status_code == 400

    def test_set_status_not_found(self, client):
        r = client.post("/api/documents/TASKS.md/tasks/0/status", json={"status": "todo"})
        assert r.status_code == 404

    def test_set_attribute(self, client, vault):
        r = client.patch(
            "/api/documents/TASKS.md/tasks/4/attributes", json={"name": "owner", "value": "Sam"}
        )
        assert r.status_code == 200
        assert r.json()["attributes"] == {"completed": "2026-01-15", "owner": "Sam"}

    def test_set_flag_and_remove(self, client):
        url = "/api/documents/TASKS.md/tasks/3/attributes"
        assert client.patch(url, json={"name": "today", "value": ""}).json()["attributes"] == {
            "today": True
        }
        assert client.patch(url, json={"name": "today"}).json()["attributes"] == {}

    def test_follow_up(self, client, vault):
        r = client.post(
            "/api/documents/TASKS.md/tasks/2/follow-up",
            json={"due_date": "2026-03-01", "complete_original": True},
        )
        assert r.status_code == 201
        data = r.json()
        assert data["line"] == 4
        assert data["text"] == "Follow up: Buy groceries"
        assert data["tags"] == ["errand"]
        assert data["attributes"] == {"due": "2026-03-01"}
        original = client.get("/api/documents/TASKS.md/tasks/2").json()
        assert original["status"] == "complete"


# ---------------------------------------------------------------------------
# Undo / redo
# ---------------------------------------------------------------------------

class TestUndoEndpoints:
    def test_undo_status_then_redo(self, client, vault):
        path = vault / "TASKS.md"
        original = path.read_text(encoding="utf-8")
        client.post("/api/documents/TASKS.md/tasks/3/status", json={"status": "complete"})

        r = client.post("/api/undo")
        assert r.status_code == 200
        assert r.json()["documents"] == ["TASKS.md"]
        assert r.json()["complete"] is True
        assert path.read_text(encoding="utf-8") == original
        assert client.get("/api/documents/TASKS.md/tasks/3").json()["status"] == "todo"

        r = client.post("/api/redo")
        assert r.status_code == 200
        redone = client.get("/api/documents/TASKS.md/tasks/3").json()
        assert redone["status"] == "complete"
        assert redone["attributes"] == {"completed": TODAY}

    def test_undo_attribute_removal(self, client):
        url = "/api/documents/TASKS.md/tasks/4/attributes"
        client.patch(url, json={"name": "completed"})
        client.post("/api/undo")
        assert client.get("/api/documents/TASKS.md/tasks/4").json()["attributes"] == {
            "completed": "2026-01-15"
        }

    def test_nothing_to_undo(self, client):
        r = client.post("/api/undo")
        assert r.status_code == 409
        assert r.json()["detail"] == "Nothing to undo"

    def test_nothing_to_redo(self, client):
        assert client.post("/api/redo").status_code == 409

    def test_index_status_reports_history(self, client):
        assert client.get("/api/index/status").json()["undo_available"] is False
        client.post("/api/documents/TASKS.md/tasks/3/status", json={"status": "in_progress"})
        data = client.get("/api/index/status").json()
        assert data["undo_available"] is True
        assert data["redo_available"] is False
