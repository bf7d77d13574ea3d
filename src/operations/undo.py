"""
Undo/redo history for task line edits.

UndoManager keeps a bounded history of recorded operations: at most
max_history_size of them, none older than max_history_age seconds. Recording
a new operation clears the redo stack.

UndoableLineMutator wraps a LineMutator. Each edit records the values it
replaces; apply_undo / apply_redo write those values back through the same
line edits, one read and one write per document. Changes are addressed by
document id and line number and resolved to current tasks at apply time.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Dict, List, Optional, Tuple

from models.settings import TaskPlannerSettings, UndoSettings
from models.task import AttributeValue, LineStructure, Task, TaskStatus
from operations.line_mutator import LineEdit, LineMutator, group_tasks_by_document
from utils.errors import log_error
from utils.events import TaskPlannerEvent

log = logging.getLogger(__name__)

TaskLookup = Callable[[str, int], Optional[Task]]


@dataclass
class AttributeChange:
    document_id: str
    line: int
    attribute: str
    previous_value: Optional[AttributeValue]
    new_value: Optional[AttributeValue]


@dataclass
class StatusChange:
    document_id: str
    line: int
    previous_status: TaskStatus
    new_status: TaskStatus
    previous_completed_date: Optional[str] = None
    new_completed_date: Optional[str] = None


@dataclass
class TagChange:
    document_id: str
    line: int
    tag: str
    added: bool


@dataclass
class UndoOperation:
    description: str
    kind: str = "single"
    attribute_changes: List[AttributeChange] = field(default_factory=list)
    status_changes: List[StatusChange] = field(default_factory=list)
    tag_changes: List[TagChange] = field(default_factory=list)
    id: str = field(default_factory=lambda: f"undo-{uuid.uuid4().hex[:12]}")
    timestamp: float = 0.0

    @property
    def document_ids(self) -> List[str]:
        """Ids of every document this operation touched, first-seen order."""
        ids: List[str] = []
        for change in [*self.attribute_changes, *self.status_changes, *self.tag_changes]:
            if change.document_id not in ids:
                ids.append(change.document_id)
        return ids


class UndoManager:
    def __init__(
        self,
        settings: Optional[UndoSettings] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._settings = settings or UndoSettings()
        self._clock = clock
        self.history: List[UndoOperation] = []
        self.redo_stack: List[UndoOperation] = []
        self.on_recorded: TaskPlannerEvent[UndoOperation] = TaskPlannerEvent()
        self.on_undo: TaskPlannerEvent[UndoOperation] = TaskPlannerEvent()
        self.on_redo: TaskPlannerEvent[UndoOperation] = TaskPlannerEvent()

    @property
    def enabled(self) -> bool:
        return self._settings.enabled

    def update_settings(self, settings: UndoSettings) -> None:
        self._settings = settings
        self.prune()

    async def record(self, operation: UndoOperation) -> None:
        if not self.enabled:
            return
        operation.timestamp = self._clock()
        self.history.append(operation)
        self.redo_stack.clear()
        self.prune()
        log.debug("Recorded %s: %s", operation.id, operation.description)
        await self.on_recorded.fire(operation)

    def can_undo(self) -> bool:
        self.prune()
        return self.enabled and bool(self.history)

    def can_redo(self) -> bool:
        self.prune()
        return self.enabled and bool(self.redo_stack)

    def last_operation(self) -> Optional[UndoOperation]:
        self.prune()
        return self.history[-1] if self.history else None

    async def pop_for_undo(self) -> Optional[UndoOperation]:
        """Move the newest operation onto the redo stack and return it."""
        if not self.can_undo():
            return None
        operation = self.history.pop()
        self.redo_stack.append(operation)
        await self.on_undo.fire(operation)
        return operation

    async def pop_for_redo(self) -> Optional[UndoOperation]:
        if not self.can_redo():
            return None
        operation = self.redo_stack.pop()
        self.history.append(operation)
        await self.on_redo.fire(operation)
        return operation

    def clear(self) -> None:
        self.history.clear()
        self.redo_stack.clear()

    def prune(self) -> None:
        """Drop expired operations and trim history to the size limit."""
        now = self._clock()
        max_age = self._settings.max_history_age
        self.history = [op for op in self.history if now - op.timestamp < max_age]
        overflow = len(self.history) - self._settings.max_history_size
        if overflow > 0:
            self.history = self.history[overflow:]
        self.redo_stack = [op for op in self.redo_stack if now - op.timestamp < max_age]


def _describe(action: str, count: int) -> str:
    if count == 1:
        return f"{action} on 1 task"
    return f"{action} on {count} tasks"


def _kind(changes: list) -> str:
    return "batch" if len(changes) > 1 else "single"


class UndoableLineMutator:
    """LineMutator operations that record what they replace."""

    def __init__(
        self,
        mutator: LineMutator,
        manager: UndoManager,
        settings: Optional[TaskPlannerSettings] = None,
    ) -> None:
        self.mutator = mutator
        self.manager = manager
        self._settings = settings or TaskPlannerSettings()

    # ------------------------------------------------------------------
    # Recording edits
    # ------------------------------------------------------------------

    async def update_attribute(
        self,
        task: Task,
        name: str,
        value: Optional[AttributeValue],
        description: Optional[str] = None,
    ) -> None:
        await self.batch_update_attribute([task], name, value, description)

    async def remove_attribute(
        self, task: Task, name: str, description: Optional[str] = None
    ) -> None:
        await self.batch_update_attribute([task], name, None, description)

    async def batch_update_attribute(
        self,
        tasks: List[Task],
        name: str,
        value: Optional[AttributeValue],
        description: Optional[str] = None,
    ) -> None:
        if value is False:
            value = None
        changes = [
            AttributeChange(t.document.id, t.line, name, t.attributes.get(name), value)
            for t in _addressable(tasks)
        ]
        await self.mutator.batch_update_attribute(tasks, name, value)
        action = f"Set {name}" if value is not None else f"Removed {name}"
        await self._record(
            UndoOperation(
                description or _describe(action, len(changes)),
                _kind(changes),
                attribute_changes=changes,
            )
        )

    async def batch_remove_attribute(
        self, tasks: List[Task], name: str, description: Optional[str] = None
    ) -> None:
        await self.batch_update_attribute(tasks, name, None, description)

    async def update_status(
        self, task: Task, status: TaskStatus, description: Optional[str] = None
    ) -> None:
        await self.batch_update_status([task], status, description)

    async def batch_update_status(
        self, tasks: List[Task], status: TaskStatus, description: Optional[str] = None
    ) -> None:
        completed = self._settings.completed_date_attribute
        new_date = date.today().isoformat() if status.is_closed else None
        changes = []
        for t in _addressable(tasks):
            previous_date = t.attributes.get(completed) if t.status.is_closed else None
            changes.append(
                StatusChange(
                    t.document.id,
                    t.line,
                    t.status,
                    status,
                    previous_date if isinstance(previous_date, str) else None,
                    new_date,
                )
            )
        edit = self.mutator.status_edit(status, new_date)
        await self.mutator.batch_update(tasks, lambda line, _task: edit(line))
        await self._record(
            UndoOperation(
                description or _describe(f"Changed to {status.name.lower()}", len(changes)),
                _kind(changes),
                status_changes=changes,
            )
        )

    async def append_tag(self, task: Task, tag: str, description: Optional[str] = None) -> None:
        await self.batch_append_tag([task], tag, description)

    async def remove_tag(self, task: Task, tag: str, description: Optional[str] = None) -> None:
        await self.batch_remove_tag([task], tag, description)

    async def batch_append_tag(
        self, tasks: List[Task], tag: str, description: Optional[str] = None
    ) -> None:
        targets = [t for t in tasks if tag not in t.tags]
        if not targets:
            return
        changes = [TagChange(t.document.id, t.line, tag, True) for t in _addressable(targets)]
        await self.mutator.batch_append_tag(targets, tag)
        await self._record(
            UndoOperation(
                description or _describe(f"Added #{tag}", len(changes)),
                _kind(changes),
                tag_changes=changes,
            )
        )

    async def batch_remove_tag(
        self, tasks: List[Task], tag: str, description: Optional[str] = None
    ) -> None:
        targets = [t for t in tasks if tag in t.tags]
        if not targets:
            return
        changes = [TagChange(t.document.id, t.line, tag, False) for t in _addressable(targets)]
        await self.mutator.batch_remove_tag(targets, tag)
        await self._record(
            UndoOperation(
                description or _describe(f"Removed #{tag}", len(changes)),
                _kind(changes),
                tag_changes=changes,
            )
        )

    async def _record(self, operation: UndoOperation) -> None:
        if operation.attribute_changes or operation.status_changes or operation.tag_changes:
            await self.manager.record(operation)

    # ------------------------------------------------------------------
    # Applying history
    # ------------------------------------------------------------------

    async def apply_undo(self, operation: UndoOperation, find_task: TaskLookup) -> bool:
        """Write back the values operation replaced. False if any change could not be applied."""
        return await self._apply(operation, find_task, undo=True)

    async def apply_redo(self, operation: UndoOperation, find_task: TaskLookup) -> bool:
        return await self._apply(operation, find_task, undo=False)

    def _edits(self, operation: UndoOperation, undo: bool) -> Dict[Tuple[str, int], List[LineEdit]]:
        edits: Dict[Tuple[str, int], List[LineEdit]] = {}

        def add(document_id: str, line: int, edit: LineEdit) -> None:
            edits.setdefault((document_id, line), []).append(edit)

        for change in operation.attribute_changes:
            value = change.previous_value if undo else change.new_value
            add(change.document_id, change.line, self.mutator.attribute_edit(change.attribute, value))
        for change in operation.tag_changes:
            if change.added != undo:
                add(change.document_id, change.line, self.mutator.append_tag_edit(change.tag))
            else:
                add(change.document_id, change.line, self.mutator.remove_tag_edit(change.tag))
        for change in operation.status_changes:
            if undo:
                edit = self.mutator.status_edit(
                    change.previous_status, change.previous_completed_date
                )
            else:
                edit = self.mutator.status_edit(change.new_status, change.new_completed_date)
            add(change.document_id, change.line, edit)
        return edits

    async def _apply(self, operation: UndoOperation, find_task: TaskLookup, undo: bool) -> bool:
        edits = self._edits(operation, undo)
        success = True
        tasks: List[Task] = []
        for document_id, line in edits:
            task = find_task(document_id, line)
            if task is None:
                log.warning("No task at %s:%d for %s", document_id, line, operation.id)
                success = False
                continue
            tasks.append(task)

        def edit(line: LineStructure, task: Task) -> None:
            for line_edit in edits[(task.document.id, task.line)]:
                line_edit(line)

        for document, doc_tasks in group_tasks_by_document(tasks):
            try:
                await self.mutator.batch_update(doc_tasks, edit)
            except Exception as e:
                log_error(log, e, operation_id=operation.id, document_id=document.id)
                success = False
        return success


def _addressable(tasks: List[Task]) -> List[Task]:
    """Tasks that can be found again later: they have a document and a line."""
    return [t for t in tasks if t.document is not None and t.line is not None]
