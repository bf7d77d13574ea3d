"""
Parser for task documents.

Main API:
    DocumentParser.parse_content(content, document)  → List[Task]
    await DocumentParser.parse_document(document)     → List[Task]

Every line is split by the line grammar; lines with a recognised checkbox
become tasks. Tasks are then nested by indentation into a forest and only
the roots are returned at top level.

Tree building only looks at task lines. Prose between a parent and a more
deeply indented task neither closes the parent nor becomes a parent itself,
so a task stays nested under its parent across intervening non-task lines.
"""

import logging
import re
from typing import List, Optional, Set

from models.document import Document
from models.settings import TaskPlannerSettings
from models.task import Task
from parsers.line_parser import LineParser
from parsers.status import checkbox_to_status
from utils.errors import ParseError, error_message

log = logging.getLogger(__name__)

_CODE_FENCE_RE = re.compile(r"^\s*```")


def indent_level(indentation: str) -> int:
    """Indentation width: one per space, four per tab."""
    return indentation.count(" ") + indentation.count("\t") * 4


class DocumentParser:
    def __init__(self, settings: Optional[TaskPlannerSettings] = None) -> None:
        self._settings = settings or TaskPlannerSettings()
        self.line_parser = LineParser(self._settings)

    # ------------------------------------------------------------------
    # Single lines
    # ------------------------------------------------------------------

    def parse_task_line(self, line: str, line_number: Optional[int] = None) -> Optional[Task]:
        """Return a Task for a checkbox line, or None."""
        structure = self.line_parser.parse_line(line)
        if not structure.checkbox:
            return None
        status = checkbox_to_status(structure.checkbox)
        if status is None:
            return None
        parsed = self.line_parser.parse_attributes(structure.line)
        return Task(
            status=status,
            text=parsed.text_without_attributes,
            line=line_number,
            attributes=parsed.attributes,
            tags=parsed.tags,
            indent_level=indent_level(structure.indentation),
        )

    # ------------------------------------------------------------------
    # Whole documents
    # ------------------------------------------------------------------

    def parse_content(self, content: str, document: Optional[Document] = None) -> List[Task]:
        lines = content.split("\n")
        tasks: List[Task] = []
        inside_code_block = False

        for line_number, line in enumerate(lines):
            if _CODE_FENCE_RE.match(line):
                inside_code_block = not inside_code_block
                continue
            if inside_code_block:
                continue
            task = self.parse_task_line(line, line_number)
            if task is not None:
                task.document = document
                tasks.append(task)

        self._build_tree(tasks)
        return _roots(tasks)

    def _build_tree(self, tasks: List[Task]) -> None:
        """Attach each task to the nearest preceding task with a smaller indent."""
        ancestors: List[Task] = []
        for task in tasks:
            while ancestors and ancestors[-1].indent_level >= task.indent_level:
                ancestors.pop()
            if ancestors:
                ancestors[-1].subtasks.append(task)
            ancestors.append(task)

    async def parse_document(self, document: Document) -> List[Task]:
        """Read a document and parse it. Raises ParseError if the content can't be read."""
        try:
            content = await document.get_content()
        except Exception as e:
            raise ParseError(
                f"Failed to read file content: {document.path}",
                document.path,
                context={"original_error": error_message(e)},
            ) from e
        return self.parse_content(content, document)


def _roots(tasks: List[Task]) -> List[Task]:
    """Drop every task that is some other task's subtask, keyed by line number."""
    nested: Set[int] = set()
    for task in tasks:
        for child in task.subtasks:
            nested.add(child.line)
    return [t for t in tasks if t.line not in nested]
