"""
In-memory task index.

Design:
    entries  : List[DocumentEntry]     one per tracked document, in load order
    _tasks   : Optional[List[Task]]    memoised flattened view, None when stale

Document lifecycle methods (load_all, document_created/updated/deleted/renamed)
are the only mutation entry points. Each one drops the memo before returning
and fires on_update exactly once when the index changed. Document text stays
the source of truth; the index is a cache of it.

All methods run on one event loop and only suspend while a document is being
read, so in-memory state needs no locking.
"""

import logging
from typing import List, Optional

from models.document import Document
from models.settings import TaskPlannerSettings
from models.task import DocumentEntry, Task
from parsers.batch_parser import BatchDocumentParser
from parsers.document_parser import DocumentParser
from utils.errors import ConsistencyError, log_error
from utils.events import TaskPlannerEvent

log = logging.getLogger(__name__)


class TaskIndex:
    """
    Task index over a set of documents.

    Build with the settings (and optionally custom parsers), call load_all()
    once with the initial documents, then forward document lifecycle events.
    """

    def __init__(
        self,
        settings: Optional[TaskPlannerSettings] = None,
        document_parser: Optional[DocumentParser] = None,
        batch_parser: Optional[BatchDocumentParser] = None,
    ) -> None:
        self._settings = settings or TaskPlannerSettings()
        self._document_parser = document_parser or DocumentParser(self._settings)
        self._batch_parser = batch_parser or BatchDocumentParser(self._document_parser)
        self.entries: List[DocumentEntry] = []
        self._tasks: Optional[List[Task]] = None
        self.on_update: TaskPlannerEvent[List[Task]] = TaskPlannerEvent()

    # ------------------------------------------------------------------
    # Read view
    # ------------------------------------------------------------------

    @property
    def tasks(self) -> List[Task]:
        if self._tasks is None:
            flattened: List[Task] = []
            for entry in self.entries:
                flattened.extend(entry.tasks)
            self._tasks = flattened
        return self._tasks

    def _invalidate(self) -> None:
        self._tasks = None

    def _find_entry(self, document_id: str) -> int:
        for i, entry in enumerate(self.entries):
            if entry.document.id == document_id:
                return i
        return -1

    def get_entry(self, document_id: str) -> Optional[DocumentEntry]:
        i = self._find_entry(document_id)
        return self.entries[i] if i >= 0 else None

    def find_task(self, document_id: str, line: int) -> Optional[Task]:
        """Find a task (at any depth) by document and line number."""
        entry = self.get_entry(document_id)
        if entry is None:
            return None
        for root in entry.tasks:
            for task in root.all_tasks():
                if task.line == line:
                    return task
        return None

    def status(self) -> dict:
        return {
            "documents_indexed": len(self.entries),
            "tasks_indexed": sum(len(t.all_tasks()) for t in self.tasks),
            "root_tasks": len(self.tasks),
            "ignored_folders": list(self._settings.ignored_folders),
            "ignore_archived_tasks": self._settings.ignore_archived_tasks,
        }

    # ------------------------------------------------------------------
    # Ignore policy
    # ------------------------------------------------------------------

    def is_ignored(self, document: Document) -> bool:
        """True if the document lives under an ignored folder and archived tasks are ignored.

        Per-document metadata flags are left to display code so that a
        "show ignored" mode stays possible.
        """
        if not self._settings.ignore_archived_tasks:
            return False
        if any(document.is_in_folder(folder) for folder in self._settings.ignored_folders):
            log.debug("TaskIndex: File ignored because archived: %s", document.id)
            return True
        return False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def load_all(self, documents: List[Document]) -> None:
        """Replace the whole index with a fresh parse of documents."""
        tracked = [d for d in documents if not self.is_ignored(d)]
        try:
            entries = await self._batch_parser.parse_documents(tracked)
        except Exception as e:
            log_error(log, e, operation="load_all", document_count=len(tracked))
            return
        self.entries = entries
        self._invalidate()
        log.info(
            "TaskIndex: loaded %d documents (%d skipped)", len(entries), len(documents) - len(tracked)
        )
        await self._trigger_update()

    async def document_updated(self, document: Document) -> None:
        index = self._find_entry(document.id)

        if self.is_ignored(document):
            if index >= 0:
                log.debug("TaskIndex: File now ignored, removing from index: %s", document.id)
                del self.entries[index]
                self._invalidate()
                await self._trigger_update()
            return

        if index < 0:
            log.debug("TaskIndex: File no longer ignored, adding to index: %s", document.id)
            tasks = await self._parse_or_report(document, "update")
            if tasks is None:
                return
            self.entries.append(DocumentEntry(document=document, tasks=tasks))
            self._invalidate()
            await self._trigger_update()
            return

        log.debug("TaskIndex: File updated: %s", document.id)
        tasks = await self._parse_or_report(document, "update")
        if tasks is None:
            return
        # Entries may have shifted while the document was being read.
        index = self._find_entry(document.id)
        if index < 0:
            log.debug("TaskIndex: File left the index during update: %s", document.id)
            return
        self.entries[index].tasks = tasks
        self._invalidate()
        await self._trigger_update()

    async def document_created(self, document: Document) -> None:
        if self.is_ignored(document):
            return
        log.debug("TaskIndex: File created: %s", document.id)
        tasks = await self._parse_or_report(document, "create")
        if tasks is None:
            return
        self.entries.append(DocumentEntry(document=document, tasks=tasks))
        self._invalidate()
        await self._trigger_update()

    async def document_deleted(self, document: Document) -> None:
        """Drop a document's entry. Raises ConsistencyError if it was never indexed."""
        if self.is_ignored(document):
            return
        log.debug("TaskIndex: File deleted: %s", document.id)
        index = self._find_entry(document.id)
        if index < 0:
            error = ConsistencyError(
                f"TaskIndex: File not found in index: {document.id}",
                document.id,
                context={"file_path": document.path},
            )
            log_error(log, error)
            raise error
        del self.entries[index]
        self._invalidate()
        await self._trigger_update()

    async def document_renamed(self, old_id: str, document: Document) -> None:
        log.debug("TaskIndex: File renamed: %s to %s", old_id, document.id)
        index = self._find_entry(old_id)
        if index < 0:
            log.debug("TaskIndex: File not found in index during rename: %s", old_id)
            return

        if self.is_ignored(document):
            del self.entries[index]
        else:
            self.entries[index].document = document
            for root in self.entries[index].tasks:
                for task in root.all_tasks():
                    task.document = document
        self._invalidate()
        await self._trigger_update()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _parse_or_report(self, document: Document, operation: str) -> Optional[List[Task]]:
        try:
            return await self._document_parser.parse_document(document)
        except Exception as e:
            log_error(log, e, file_path=document.path, operation=operation)
            return None

    async def _trigger_update(self) -> None:
        try:
            await self.on_update.fire(self.tasks)
        except Exception as e:
            log_error(log, e, operation="trigger_update")
