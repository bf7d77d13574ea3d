"""
In-place task line edits.

Each edit is a read-modify-write of the whole document: read, split on the
document's line ending, reparse only the target line, apply the edit,
reserialise that line, join and write back. Every other line is written back
byte-for-byte. Batch variants read and write each document once no matter
how many of its lines change.

Two concurrent edits of the same document race; the last write wins.
"""

import logging
from datetime import date
from typing import Callable, Dict, List, Optional, Tuple

from models.document import Document
from models.settings import TaskPlannerSettings
from models.task import AttributeValue, LineStructure, Task, TaskStatus
from parsers.line_parser import LineParser
from parsers.status import status_to_checkbox
from utils.errors import ConsistencyError, FileOperationError, error_message

log = logging.getLogger(__name__)

LineEdit = Callable[[LineStructure], None]
TaskLineEdit = Callable[[LineStructure, Task], None]


def detect_eol(content: str) -> str:
    """Line ending for a whole document: CRLF if it appears anywhere, else LF."""
    return "\r\n" if "\r\n" in content else "\n"


def group_tasks_by_document(tasks: List[Task]) -> List[Tuple[Document, List[Task]]]:
    """Group tasks by document id, keeping first-seen document order."""
    groups: Dict[str, Tuple[Document, List[Task]]] = {}
    for task in tasks:
        if task.document is None:
            log.debug("Skipping task without document: %s", task.text)
            continue
        doc_id = task.document.id
        if doc_id not in groups:
            groups[doc_id] = (task.document, [])
        groups[doc_id][1].append(task)
    return list(groups.values())


class LineMutator:
    def __init__(self, settings: Optional[TaskPlannerSettings] = None) -> None:
        self._settings = settings or TaskPlannerSettings()
        self.line_parser = LineParser(self._settings)

    # ------------------------------------------------------------------
    # Raw line helpers
    # ------------------------------------------------------------------

    def toggle_todo(self, line: str) -> str:
        """Add an open checkbox to a line, or remove the checkbox it has."""
        parsed = self.line_parser.parse_line(line)
        parsed.checkbox = "" if parsed.checkbox else "[ ]"
        return self.line_parser.line_to_string(parsed)

    def set_checkmark(self, line: str, mark: str) -> str:
        parsed = self.line_parser.parse_line(line)
        parsed.checkbox = f"[{mark}]"
        return self.line_parser.line_to_string(parsed)

    # ------------------------------------------------------------------
    # Edit builders
    # ------------------------------------------------------------------
    # Each builder returns an edit over a parsed line. Hashtags are parsed
    # with keep_tags so they stay where the user wrote them.

    def attribute_edit(self, name: str, value: Optional[AttributeValue]) -> LineEdit:
        def edit(line: LineStructure) -> None:
            parsed = self.line_parser.parse_attributes(line.line, keep_tags=True)
            if value is None or value is False:
                parsed.attributes.pop(name, None)
            else:
                parsed.attributes[name] = value
            line.line = self.line_parser.attributes_to_string(parsed)

        return edit

    def append_tag_edit(self, tag: str) -> LineEdit:
        def edit(line: LineStructure) -> None:
            parsed = self.line_parser.parse_attributes(line.line, keep_tags=True)
            if tag not in parsed.tags:
                parsed.tags.append(tag)
            line.line = self.line_parser.attributes_to_string(parsed)

        return edit

    def remove_tag_edit(self, tag: str) -> LineEdit:
        def edit(line: LineStructure) -> None:
            parsed = self.line_parser.parse_attributes(line.line, keep_tags=True)
            parsed.text_without_attributes = self.line_parser.remove_tag(
                parsed.text_without_attributes, tag
            )
            parsed.tags = [t for t in parsed.tags if t != tag]
            line.line = self.line_parser.attributes_to_string(parsed)

        return edit

    def status_edit(self, status: TaskStatus, completed_date: Optional[str] = None) -> LineEdit:
        """Checkbox and completed date change together in one edit.

        A closed status gets completed_date, or today when none is given.
        """
        completed_attribute = self._settings.completed_date_attribute

        def edit(line: LineStructure) -> None:
            line.checkbox = status_to_checkbox(status)
            parsed = self.line_parser.parse_attributes(line.line, keep_tags=True)
            if status.is_closed:
                parsed.attributes[completed_attribute] = completed_date or date.today().isoformat()
            else:
                parsed.attributes.pop(completed_attribute, None)
            line.line = self.line_parser.attributes_to_string(parsed)

        return edit

    # ------------------------------------------------------------------
    # Single-task operations
    # ------------------------------------------------------------------

    async def update_attribute(
        self, task: Task, name: str, value: Optional[AttributeValue]
    ) -> None:
        """Set an attribute; None or False removes it."""
        await self.update_line(task, self.attribute_edit(name, value))

    async def remove_attribute(self, task: Task, name: str) -> None:
        await self.update_line(task, self.attribute_edit(name, None))

    async def append_tag(self, task: Task, tag: str) -> None:
        if tag in task.tags:
            return
        await self.update_line(task, self.append_tag_edit(tag))

    async def remove_tag(self, task: Task, tag: str) -> None:
        if tag not in task.tags:
            return
        await self.update_line(task, self.remove_tag_edit(tag))

    async def update_status(
        self, task: Task, status: TaskStatus, completed_date: Optional[str] = None
    ) -> None:
        await self.update_line(task, self.status_edit(status, completed_date))

    async def update_line(self, task: Task, edit: LineEdit) -> None:
        """Apply edit to the task's own line and write the document back."""
        if task.line is None or task.document is None:
            log.debug("Cannot update task without a line number: %s", task.text)
            return
        document = task.document
        lines, eol = await self._read_lines(document, {"line_number": task.line})
        self._apply(lines, task, lambda line, _task: edit(line))
        await self._write_lines(document, lines, eol, {"line_number": task.line})

    # ------------------------------------------------------------------
    # Batch operations
    # ------------------------------------------------------------------

    async def batch_update_attribute(
        self, tasks: List[Task], name: str, value: Optional[AttributeValue]
    ) -> None:
        edit = self.attribute_edit(name, value)
        await self.batch_update(tasks, lambda line, _task: edit(line))

    async def batch_remove_attribute(self, tasks: List[Task], name: str) -> None:
        await self.batch_update_attribute(tasks, name, None)

    async def batch_append_tag(self, tasks: List[Task], tag: str) -> None:
        edit = self.append_tag_edit(tag)
        await self.batch_update([t for t in tasks if tag not in t.tags], lambda line, _t: edit(line))

    async def batch_remove_tag(self, tasks: List[Task], tag: str) -> None:
        edit = self.remove_tag_edit(tag)
        await self.batch_update([t for t in tasks if tag in t.tags], lambda line, _t: edit(line))

    async def batch_update_status(self, tasks: List[Task], status: TaskStatus) -> None:
        edit = self.status_edit(status)
        await self.batch_update(tasks, lambda line, _task: edit(line))

    async def batch_update(self, tasks: List[Task], edit: TaskLineEdit) -> None:
        """Apply edit to every task's line, one read and one write per document.

        Tasks without a line number are skipped; a document none of whose
        tasks has one is not touched at all.
        """
        for document, doc_tasks in group_tasks_by_document(tasks):
            targets = [t for t in doc_tasks if t.line is not None]
            if not targets:
                log.debug("Skipping %s: no task has a line number", document.path)
                continue
            context = {"task_count": len(targets)}
            lines, eol = await self._read_lines(document, context)
            for task in targets:
                self._apply(lines, task, edit)
            await self._write_lines(document, lines, eol, context)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _apply(self, lines: List[str], task: Task, edit: TaskLineEdit) -> None:
        if task.line >= len(lines) or task.line < 0:
            raise ConsistencyError(
                f"Line {task.line} is outside {task.document.path} ({len(lines)} lines)",
                task.document.id,
                context={"line_number": task.line, "file_path": task.document.path},
            )
        parsed = self.line_parser.parse_line(lines[task.line])
        edit(parsed, task)
        lines[task.line] = self.line_parser.line_to_string(parsed)

    async def _read_lines(self, document: Document, context: dict) -> Tuple[List[str], str]:
        try:
            content = await document.get_content()
        except Exception as e:
            raise FileOperationError(
                f"Failed to read file: {document.path}",
                document.path,
                "read",
                context={**context, "original_error": error_message(e)},
            ) from e
        eol = detect_eol(content)
        return content.split(eol), eol

    async def _write_lines(
        self, document: Document, lines: List[str], eol: str, context: dict
    ) -> None:
        try:
            await document.set_content(eol.join(lines))
        except Exception as e:
            raise FileOperationError(
                f"Failed to write file: {document.path}",
                document.path,
                "write",
                context={**context, "original_error": error_message(e)},
            ) from e
