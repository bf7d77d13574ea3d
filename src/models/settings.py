"""
Task planner settings.

Settings are an immutable value passed into each component at construction;
nothing reads a global mode switch.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple

from utils.errors import SettingsError

_TRUE = ("true", "1", "yes")
_FALSE = ("false", "0", "no")


@dataclass(frozen=True)
class FollowUpSettings:
    text_prefix: str = "Follow up: "
    copy_tags: bool = True
    copy_priority: bool = True


@dataclass(frozen=True)
class UndoSettings:
    enabled: bool = True
    max_history_size: int = 10
    max_history_age: float = 300.0


@dataclass(frozen=True)
class TaskPlannerSettings:
    use_structured_syntax: bool = False
    ignored_folders: Tuple[str, ...] = ()
    ignore_archived_tasks: bool = True
    due_date_attribute: str = "due"
    completed_date_attribute: str = "completed"
    follow_up: FollowUpSettings = field(default_factory=FollowUpSettings)
    undo: UndoSettings = field(default_factory=UndoSettings)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> TaskPlannerSettings:
        """Build settings from environment variables, falling back to defaults."""
        env = os.environ if environ is None else environ
        defaults = cls()
        follow_defaults = defaults.follow_up
        undo_defaults = defaults.undo
        return cls(
            use_structured_syntax=_parse_bool(
                env, "STRUCTURED_ATTRIBUTES", defaults.use_structured_syntax
            ),
            ignored_folders=parse_list(env.get("IGNORED_FOLDERS", "")),
            ignore_archived_tasks=_parse_bool(
                env, "IGNORE_ARCHIVED", defaults.ignore_archived_tasks
            ),
            due_date_attribute=env.get("DUE_DATE_ATTRIBUTE") or defaults.due_date_attribute,
            completed_date_attribute=(
                env.get("COMPLETED_DATE_ATTRIBUTE") or defaults.completed_date_attribute
            ),
            follow_up=FollowUpSettings(
                text_prefix=env.get("FOLLOW_UP_PREFIX", follow_defaults.text_prefix),
                copy_tags=_parse_bool(env, "FOLLOW_UP_COPY_TAGS", follow_defaults.copy_tags),
                copy_priority=_parse_bool(
                    env, "FOLLOW_UP_COPY_PRIORITY", follow_defaults.copy_priority
                ),
            ),
            undo=UndoSettings(
                enabled=_parse_bool(env, "UNDO_ENABLED", undo_defaults.enabled),
                max_history_size=int(
                    _parse_number(env, "UNDO_HISTORY_SIZE", undo_defaults.max_history_size)
                ),
                max_history_age=_parse_number(
                    env, "UNDO_HISTORY_AGE", undo_defaults.max_history_age
                ),
            ),
        )


def parse_list(raw: str) -> Tuple[str, ...]:
    """Parse a comma-separated list, dropping empty items."""
    return tuple(part.strip() for part in raw.split(",") if part.strip())


def _parse_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise SettingsError(
        f"Invalid boolean for {name}: {raw!r}", context={"variable": name, "value": raw}
    )


def _parse_number(env: Mapping[str, str], name: str, default: float) -> float:
    """Parse a non-negative number."""
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw.strip())
    except ValueError:
        value = None
    if value is None or value < 0:
        raise SettingsError(
            f"Invalid number for {name}: {raw!r}", context={"variable": name, "value": raw}
        )
    return value
