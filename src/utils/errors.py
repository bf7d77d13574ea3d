"""
Tiered error types for the task index.

Every error carries a severity tier. The tier only decides how loudly a
failure is surfaced (see log_error); it never changes control flow.
"""

import logging
from enum import Enum
from typing import Any, Dict, Optional


class ErrorTier(str, Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


_TIER_LEVELS = {
    ErrorTier.CRITICAL: logging.CRITICAL,
    ErrorTier.HIGH: logging.ERROR,
    ErrorTier.MEDIUM: logging.WARNING,
    ErrorTier.LOW: logging.INFO,
}


class TaskPlannerError(Exception):
    """Base class for all task index errors."""

    def __init__(
        self,
        message: str,
        tier: ErrorTier = ErrorTier.MEDIUM,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.tier = tier
        self.context: Dict[str, Any] = dict(context or {})


class FileOperationError(TaskPlannerError):
    """A document read/write/delete/rename failed."""

    def __init__(
        self,
        message: str,
        file_path: str,
        operation: str,
        tier: ErrorTier = ErrorTier.HIGH,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        if operation not in ("read", "write", "delete", "rename"):
            raise ValueError(f"Unknown file operation: {operation}")
        super().__init__(
            message, tier, {**(context or {}), "file_path": file_path, "operation": operation}
        )
        self.file_path = file_path
        self.operation = operation


class ParseError(TaskPlannerError):
    """A document's content could not be turned into tasks."""

    def __init__(
        self,
        message: str,
        file_path: Optional[str] = None,
        line_number: Optional[int] = None,
        tier: ErrorTier = ErrorTier.MEDIUM,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message, tier, {**(context or {}), "file_path": file_path, "line_number": line_number}
        )
        self.file_path = file_path
        self.line_number = line_number


class ConsistencyError(TaskPlannerError):
    """The caller and the index (or a document) disagree about what exists."""

    def __init__(
        self,
        message: str,
        document_id: Optional[str] = None,
        tier: ErrorTier = ErrorTier.HIGH,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, tier, {**(context or {}), "document_id": document_id})
        self.document_id = document_id


class SettingsError(TaskPlannerError):
    """Settings could not be read or persisted."""

    def __init__(
        self,
        message: str,
        tier: ErrorTier = ErrorTier.HIGH,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, tier, context)


def error_message(value: object) -> str:
    """Message text for anything that was raised or rejected."""
    if isinstance(value, BaseException):
        return str(value) or type(value).__name__
    return str(value)


def normalize_error(value: object) -> BaseException:
    """Return value unchanged if it is an exception, else wrap it in a TaskPlannerError."""
    if isinstance(value, BaseException):
        return value
    return TaskPlannerError(str(value), ErrorTier.MEDIUM, {"original_value": repr(value)})


def log_error(logger: logging.Logger, error: object, **context: Any) -> None:
    """Log an error at the level matching its tier, with its context attached."""
    err = normalize_error(error)
    if isinstance(err, TaskPlannerError):
        level = _TIER_LEVELS[err.tier]
        details = {**err.context, **context}
    else:
        level = logging.ERROR
        details = dict(context)
    if details:
        logger.log(level, "%s %s", error_message(err), details)
    else:
        logger.log(level, "%s", error_message(err))
