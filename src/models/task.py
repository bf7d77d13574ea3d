"""
Core task data models.

A Task is one checkbox line found in a document. Records are rebuilt from
scratch on every reparse of their document; nothing patches them in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, List, Optional, Union

from models.document import Document

AttributeValue = Union[str, bool]


class TaskStatus(IntEnum):
    """Task status. The integer order is relied on by consumers and must not change."""

    ATTENTION_REQUIRED = 0
    TODO = 1
    IN_PROGRESS = 2
    DELEGATED = 3
    COMPLETE = 4
    CANCELED = 5

    @property
    def is_closed(self) -> bool:
        return self in (TaskStatus.COMPLETE, TaskStatus.CANCELED)


@dataclass
class LineStructure:
    """A raw line split into its grammar components."""

    indentation: str = ""
    list_marker: str = ""
    checkbox: str = ""
    date: str = ""
    line: str = ""


@dataclass
class AttributesStructure:
    """A line remainder split into text, inline attributes and hashtags."""

    text_without_attributes: str = ""
    attributes: Dict[str, AttributeValue] = field(default_factory=dict)
    tags: List[str] = field(default_factory=list)


@dataclass(eq=False)
class Task:
    """
    A single task parsed from a document.

    Compared by identity: two records for the same line from different
    parses are distinct objects.
    """

    status: TaskStatus
    text: str
    document: Optional[Document] = None
    line: Optional[int] = None
    attributes: Dict[str, AttributeValue] = field(default_factory=dict)
    tags: List[str] = field(default_factory=list)
    subtasks: List[Task] = field(default_factory=list)
    indent_level: int = 0

    @property
    def task_id(self) -> str:
        doc_id = self.document.id if self.document is not None else ""
        return f"{doc_id}-{self.line or 0}-{self.text}"

    def all_tasks(self) -> List[Task]:
        """Return this task and all descendants as a flat list."""
        result = [self]
        for child in self.subtasks:
            result.extend(child.all_tasks())
        return result


@dataclass
class DocumentEntry:
    """A document and its current top-level task forest."""

    document: Document
    tasks: List[Task] = field(default_factory=list)
