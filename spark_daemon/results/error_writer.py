"""
Error Writer

Writes a markdown error report to <vault>/.spark/logs/ and appends a compact
notification to <vault>/.spark/notifications.jsonl. Both are side channels:
a failure here is logged and never masks the error being reported.
"""

import json
import logging
import os
import time
import traceback
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel

from ..common.config import LOGS_DIR, NOTIFICATIONS_FILE, SPARK_DIR
from ..common.errors import SparkError, get_suggestions

logger = logging.getLogger("spark.results.error_writer")


class Notification(BaseModel):
    id: str
    type: Literal["success", "error", "warning", "info", "progress"]
    message: str
    timestamp: int  # epoch milliseconds
    file: Optional[str] = None
    line: Optional[int] = None
    link: Optional[str] = None


def error_message(error: BaseException) -> str:
    if isinstance(error, SparkError):
        return error.message
    return str(error) or type(error).__name__


def _json_block(data: Dict[str, Any]) -> List[str]:
    return ["```json", json.dumps(data, indent=2, default=str), "```"]


class ErrorWriter:

    def __init__(self, vault_path):
        self.vault_path = Path(vault_path)

    @property
    def logs_dir(self) -> Path:
        return self.vault_path / SPARK_DIR / LOGS_DIR

    @property
    def notifications_path(self) -> Path:
        return self.vault_path / SPARK_DIR / NOTIFICATIONS_FILE

    def write_error(
        self,
        error: BaseException,
        path: str,
        line: Optional[int] = None,
        command_text: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> Optional[str]:
        """
        Record a failure.

        Returns:
            Path of the written report, or None when it could not be written
        """
        error_id = uuid.uuid4().hex[:9]
        now = datetime.now()
        file_name = f"error-{now.strftime('%Y-%m-%d-%H%M%S')}-{error_id}.md"
        relative = f"{SPARK_DIR}/{LOGS_DIR}/{file_name}"
        report_path: Optional[Path] = self.logs_dir / file_name

        try:
            self.logs_dir.mkdir(parents=True, exist_ok=True)
            report = self.format_report(error, path, line, command_text, context, error_id, now)
            report_path.write_text(report, encoding="utf-8")
        except (OSError, TypeError, ValueError) as e:
            logger.error("Failed to write error log %s: %s", report_path, e)
            report_path = None

        try:
            self.write_notification(Notification(
                id=error_id,
                type="error",
                message=error_message(error),
                timestamp=int(time.time() * 1000),
                file=path,
                line=line,
                link=relative,
            ))
        except OSError as e:
            logger.error("Failed to write notification: %s", e)

        logger.error(
            "Command execution failed [%s] %s:%s - %s (see %s)",
            error_id, path, line, error_message(error), relative,
        )
        return str(report_path) if report_path else None

    def format_report(
        self,
        error: BaseException,
        path: str,
        line: Optional[int],
        command_text: Optional[str],
        context: Optional[Dict[str, Any]],
        error_id: str,
        when: datetime,
    ) -> str:
        lines = [
            "# Error Report",
            "",
            f"**ID:** {error_id}",
            f"**Time:** {when.strftime('%Y-%m-%d %H:%M:%S')}",
            f"**File:** {os.path.basename(path)}",
            f"**Full Path:** {path}",
        ]
        if line is not None:
            lines.append(f"**Line:** {line}")

        lines += ["", "## Error", error_message(error)]

        if isinstance(error, SparkError):
            lines += ["", f"**Error Code:** {error.code.value}"]

        if error.__traceback__ is not None:
            stack = "".join(traceback.format_exception(type(error), error, error.__traceback__))
            lines += ["", "## Stack Trace", "```", stack.rstrip(), "```"]

        if isinstance(error, SparkError):
            suggestions = get_suggestions(error.code)
            if suggestions:
                lines += ["", "## Suggestions"]
                lines += [f"{i}. {step}" for i, step in enumerate(suggestions, 1)]

        if command_text:
            lines += ["", "## Command", "```markdown", command_text, "```"]

        if isinstance(error, SparkError) and error.context:
            lines += ["", "## Details"] + _json_block(error.context)
        elif context:
            lines += ["", "## Context"] + _json_block(context)

        return "\n".join(lines)

    def write_notification(self, notification: Notification) -> None:
        self.notifications_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.notifications_path, "a", encoding="utf-8") as f:
            f.write(notification.model_dump_json(exclude_none=True) + "\n")
