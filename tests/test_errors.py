"""Tests for utils/errors.py."""

import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from utils.errors import (
    ConsistencyError,
    ErrorTier,
    FileOperationError,
    ParseError,
    SettingsError,
    TaskPlannerError,
    error_message,
    log_error,
    normalize_error,
)

log = logging.getLogger("test_errors")


class TestErrorTypes:
    def test_defaults(self):
        assert TaskPlannerError("x").tier == ErrorTier.MEDIUM
        assert ParseError("x").tier == ErrorTier.MEDIUM
        assert FileOperationError("x", "a.md", "read").tier == ErrorTier.HIGH
        assert ConsistencyError("x").tier == ErrorTier.HIGH
        assert SettingsError("x").tier == ErrorTier.HIGH

    def test_all_subclass_base(self):
        for cls in (ParseError, ConsistencyError, SettingsError):
            assert issubclass(cls, TaskPlannerError)
        assert isinstance(FileOperationError("x", "a.md", "write"), TaskPlannerError)

    def test_context_merged(self):
        err = FileOperationError("x", "a.md", "rename", context={"extra": 1})
        assert err.context == {"extra": 1, "file_path": "a.md", "operation": "rename"}

    def test_parse_error_context(self):
        err = ParseError("x", "a.md", 3)
        assert err.context == {"file_path": "a.md", "line_number": 3}

    def test_invalid_operation(self):
        with pytest.raises(ValueError):
            FileOperationError("x", "a.md", "chmod")

    def test_context_is_copied(self):
        context = {"k": "v"}
        err = TaskPlannerError("x", context=context)
        err.context["k"] = "changed"
        assert context == {"k": "v"}


class TestNormalize:
    def test_exception_passes_through(self):
        err = RuntimeError("boom")
        assert normalize_error(err) is err

    def test_non_exception_wrapped(self):
        err = normalize_error({"code": 7})
        assert isinstance(err, TaskPlannerError)
        assert err.tier == ErrorTier.MEDIUM
        assert err.context["original_value"] == "{'code': 7}"

    def test_error_message(self):
        assert error_message(RuntimeError("boom")) == "boom"
        assert error_message(KeyError()) == "KeyError"
        assert error_message(42) == "42"


class TestLogError:
    @pytest.mark.parametrize(
        "tier,level",
        [
            (ErrorTier.CRITICAL, logging.CRITICAL),
            (ErrorTier.HIGH, logging.ERROR),
            (ErrorTier.MEDIUM, logging.WARNING),
            (ErrorTier.LOW, logging.INFO),
        ],
    )
    def test_level_follows_tier(self, caplog, tier, level):
        with caplog.at_level(logging.DEBUG, logger="test_errors"):
            log_error(log, TaskPlannerError("tiered", tier))
        assert caplog.records[-1].levelno == level
        assert caplog.records[-1].getMessage() == "tiered"

    def test_plain_exception_logged_as_error(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="test_errors"):
            log_error(log, OSError("disk"), file_path="a.md")
        record = caplog.records[-1]
        assert record.levelno == logging.ERROR
        assert "disk" in record.getMessage()
        assert "a.md" in record.getMessage()

    def test_context_in_message(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="test_errors"):
            log_error(log, ConsistencyError("missing", "a.md"), operation="delete")
        message = caplog.records[-1].getMessage()
        assert message.startswith("missing ")
        assert "'document_id': 'a.md'" in message
        assert "'operation': 'delete'" in message
