"""
Checkbox token <-> TaskStatus mapping.

Several tokens read as Canceled; writing always emits the canonical one.
"""

from typing import Dict, Optional

from models.task import TaskStatus

# Mark (the character between the brackets, lowercased) -> status.
# "]" is the mark reported for the empty box "[]".
_MARK_STATUS: Dict[str, TaskStatus] = {
    " ": TaskStatus.TODO,
    "x": TaskStatus.COMPLETE,
    ">": TaskStatus.IN_PROGRESS,
    "-": TaskStatus.CANCELED,
    "c": TaskStatus.CANCELED,
    "]": TaskStatus.CANCELED,
    "d": TaskStatus.DELEGATED,
    "!": TaskStatus.ATTENTION_REQUIRED,
}

STATUS_CHECKBOX: Dict[TaskStatus, str] = {
    TaskStatus.TODO: "[ ]",
    TaskStatus.COMPLETE: "[x]",
    TaskStatus.IN_PROGRESS: "[>]",
    TaskStatus.CANCELED: "[-]",
    TaskStatus.DELEGATED: "[d]",
    TaskStatus.ATTENTION_REQUIRED: "[!]",
}


def checkbox_to_status(checkbox: str) -> Optional[TaskStatus]:
    """Return the status for a checkbox token, or None if the line is not a task."""
    if len(checkbox) < 2 or checkbox[0] != "[" or checkbox[-1] != "]":
        return None
    if checkbox == "[]":
        mark = "]"
    elif len(checkbox) == 3:
        mark = checkbox[1].lower()
    else:
        return None
    return _MARK_STATUS.get(mark)


def status_to_checkbox(status: TaskStatus) -> str:
    return STATUS_CHECKBOX.get(status, "")
