from .document import Document
from .settings import FollowUpSettings, TaskPlannerSettings, UndoSettings
from .task import AttributesStructure, DocumentEntry, LineStructure, Task, TaskStatus

__all__ = [
    "Document",
    "FollowUpSettings",
    "TaskPlannerSettings",
    "UndoSettings",
    "AttributesStructure",
    "DocumentEntry",
    "LineStructure",
    "Task",
    "TaskStatus",
]
