"""Tests for ErrorWriter reports and notifications."""

import json

import pytest

from spark_daemon.common.errors import ErrorCode, SparkError
from spark_daemon.results import ErrorWriter


@pytest.fixture
def writer(vault):
    return ErrorWriter(vault)


def notifications(writer):
    return [json.loads(line) for line in writer.notifications_path.read_text().splitlines()]


class TestWriteError:
    def test_report_for_spark_error(self, writer, vault):
        error = SparkError("API key not provided", ErrorCode.API_KEY_NOT_SET, {"provider": "claude"})
        report_path = writer.write_error(error, str(vault / "notes/today.md"), 3, "/test it.")

        assert report_path is not None
        assert report_path.startswith(str(vault / ".spark" / "logs" / "error-"))
        report = open(report_path, encoding="utf-8").read()
        assert report.startswith("# Error Report\n")
        assert "**File:** today.md" in report
        assert "**Line:** 3" in report
        assert "## Error\nAPI key not provided" in report
        assert "**Error Code:** API_KEY_NOT_SET" in report
        assert "## Suggestions\n1. Add your API key" in report
        assert "## Command\n```markdown\n/test it.\n```" in report
        assert '"provider": "claude"' in report

    def test_stack_trace_for_raised_errors(self, writer, vault):
        try:
            raise ValueError("boom")
        except ValueError as e:
            report_path = writer.write_error(e, str(vault / "a.md"), context={"mentioned_files": 2})
        report = open(report_path, encoding="utf-8").read()
        assert "## Stack Trace" in report
        assert "ValueError: boom" in report
        assert "**Line:**" not in report
        assert "## Context" in report
        assert '"mentioned_files": 2' in report

    def test_notification_appended(self, writer, vault):
        writer.write_error(SparkError("first"), str(vault / "a.md"), 1)
        writer.write_error(RuntimeError("second"), str(vault / "b.md"))
        entries = notifications(writer)
        assert [e["message"] for e in entries] == ["first", "second"]
        assert entries[0]["type"] == "error"
        assert entries[0]["line"] == 1
        assert "line" not in entries[1]
        assert entries[0]["link"].startswith(".spark/logs/error-")
        assert isinstance(entries[0]["timestamp"], int)

    def test_unwritable_logs_dir_still_notifies(self, writer, vault):
        (vault / ".spark").mkdir()
        (vault / ".spark" / "logs").write_text("not a directory")
        assert writer.write_error(SparkError("oops"), str(vault / "a.md")) is None
        assert [e["message"] for e in notifications(writer)] == ["oops"]
