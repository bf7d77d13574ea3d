"""
Follow-up task creation.

A follow-up is a new open task inserted right after a source task and its
sub-items, at the source's indentation. The source can optionally be closed
in the same write.
"""

import logging
from datetime import date
from typing import Dict, List, Optional

from models.settings import TaskPlannerSettings
from models.task import AttributesStructure, AttributeValue, Task, TaskStatus
from operations.line_mutator import detect_eol
from parsers.document_parser import indent_level
from parsers.line_parser import LineParser
from parsers.status import status_to_checkbox
from utils.errors import ConsistencyError, FileOperationError, error_message

log = logging.getLogger(__name__)


class FollowUpComposer:
    def __init__(self, settings: Optional[TaskPlannerSettings] = None) -> None:
        self._settings = settings or TaskPlannerSettings()
        self.line_parser = LineParser(self._settings)

    # ------------------------------------------------------------------
    # Composition
    # ------------------------------------------------------------------

    def build_text(self, task: Task) -> str:
        prefix = self._settings.follow_up.text_prefix
        text = _strip_prefix(task.text, prefix)
        if not prefix:
            return text
        separator = "" if prefix.endswith(" ") else " "
        return f"{prefix}{separator}{text}"

    def build_attributes(self, task: Task, due_date: Optional[str]) -> Dict[str, AttributeValue]:
        attributes: Dict[str, AttributeValue] = {}
        if due_date:
            attributes[self._settings.due_date_attribute] = due_date
        if self._settings.follow_up.copy_priority and task.attributes.get("priority"):
            attributes["priority"] = task.attributes["priority"]
        return attributes

    def build_tags(self, task: Task) -> List[str]:
        if not self._settings.follow_up.copy_tags:
            return []
        return list(task.tags)

    def format_task_line(
        self, text: str, attributes: Dict[str, AttributeValue], tags: List[str]
    ) -> str:
        remainder = self.line_parser.attributes_to_string(
            AttributesStructure(text_without_attributes=text, attributes=attributes, tags=tags)
        )
        return f"- {status_to_checkbox(TaskStatus.TODO)} {remainder}"

    def compose(self, task: Task, due_date: Optional[str]) -> str:
        return self.format_task_line(
            self.build_text(task), self.build_attributes(task, due_date), self.build_tags(task)
        )

    # ------------------------------------------------------------------
    # Insertion
    # ------------------------------------------------------------------

    def mark_complete(self, line: str) -> str:
        """Close a raw task line, adding a completed date unless one is already there."""
        parsed = self.line_parser.parse_line(line)
        parsed.checkbox = status_to_checkbox(TaskStatus.COMPLETE)
        attributes = self.line_parser.parse_attributes(parsed.line, keep_tags=True)
        completed = self._settings.completed_date_attribute
        if completed not in attributes.attributes:
            attributes.attributes[completed] = date.today().isoformat()
        parsed.line = self.line_parser.attributes_to_string(attributes)
        return self.line_parser.line_to_string(parsed)

    async def create_follow_up(
        self, task: Task, due_date: Optional[str], complete_original: bool = False
    ) -> int:
        """Insert a follow-up for task. Returns the line number of the new task."""
        return await self.insert_after(task, self.compose(task, due_date), complete_original)

    async def insert_after(self, task: Task, task_line: str, complete_original: bool = False) -> int:
        if task.line is None or task.document is None:
            raise ConsistencyError(
                "Cannot insert follow-up: original task has no line number",
                task.document.id if task.document is not None else None,
                context={"text": task.text},
            )
        document = task.document
        try:
            content = await document.get_content()
        except Exception as e:
            raise FileOperationError(
                f"Failed to read file: {document.path}",
                document.path,
                "read",
                context={"line_number": task.line, "original_error": error_message(e)},
            ) from e

        eol = detect_eol(content)
        lines = content.split(eol)
        if task.line >= len(lines):
            raise ConsistencyError(
                f"Line {task.line} is outside {document.path} ({len(lines)} lines)",
                document.id,
                context={"line_number": task.line},
            )

        if complete_original:
            lines[task.line] = self.mark_complete(lines[task.line])

        source = self.line_parser.parse_line(lines[task.line])
        source_indent = indent_level(source.indentation)
        insert_at = task.line + 1
        while insert_at < len(lines):
            current = lines[insert_at]
            if not current.strip():
                break
            if indent_level(self.line_parser.parse_line(current).indentation) <= source_indent:
                break
            insert_at += 1

        lines.insert(insert_at, f"{source.indentation}{task_line}")
        try:
            await document.set_content(eol.join(lines))
        except Exception as e:
            raise FileOperationError(
                f"Failed to write file: {document.path}",
                document.path,
                "write",
                context={"line_number": task.line, "original_error": error_message(e)},
            ) from e
        log.debug("Inserted follow-up at %s:%d", document.path, insert_at)
        return insert_at


def _strip_prefix(text: str, prefix: str) -> str:
    """Remove an existing prefix so follow-ups of follow-ups don't stack it."""
    trimmed = prefix.strip()
    if not trimmed:
        return text
    if text.startswith(trimmed + " "):
        return text[len(trimmed) + 1:]
    if text.startswith(trimmed):
        return text[len(trimmed):].lstrip()
    return text
