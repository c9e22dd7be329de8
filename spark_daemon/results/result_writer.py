"""
Result Writer

Line-addressed mutation of vault documents. Every write replaces the whole
file atomically (temp file + rename). Results are wrapped in non-rendering
markers so the command detector never re-reads them.

Line numbers can go stale between detection and write-back if the author
keeps typing. When the caller supplies the command text (or chat id), the
addressed line is verified and, if it moved, the target is relocated by
content before splicing.
"""

import logging
import os
import re
import stat
import tempfile
from pathlib import Path
from typing import List, Optional, Tuple

from ..common.errors import ErrorCode, SparkError
from ..parser.command_detector import RESULT_END, RESULT_START
from ..parser.inline_chat_detector import CLOSING_MARKER

logger = logging.getLogger("spark.results.result_writer")

GLYPH_PROCESSING = "⏳"
GLYPH_COMPLETED = "✅"
GLYPH_FAILED = "❌"
GLYPH_WARNING = "⚠️"

_STATUS_PREFIX = re.compile(r"^(?:⏳|✅|❌|⚠️?)\s+")
_SETTLED_PREFIX = re.compile(r"^(?:✅|❌|⚠️?)")


def strip_status(line: str) -> str:
    return _STATUS_PREFIX.sub("", line, count=1)


def is_settled(line: str) -> bool:
    """True when the line already carries a completed, failed or warning glyph"""
    return bool(_SETTLED_PREFIX.match(line.strip()))


def read_lines(path: str) -> List[str]:
    with open(path, encoding="utf-8", newline="") as f:
        return f.read().split("\n")


def atomic_write(path: str, content: str) -> None:
    """Write to a temp file beside the target, then rename over it"""
    target = Path(path)
    fd, temp_path = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}-", suffix=".tmp")
    try:
        with open(fd, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        # mkstemp creates 0600; keep the note's own permissions
        if target.exists():
            os.chmod(temp_path, stat.S_IMODE(target.stat().st_mode))
        os.replace(temp_path, target)
    except BaseException:
        Path(temp_path).unlink(missing_ok=True)
        raise


def _chat_marker(chat_id: str) -> re.Pattern:
    return re.compile(
        r"(<!--\s*spark-inline-chat:)(pending|processing|complete|error)(:" + re.escape(chat_id) + r")(?=[:\s]|-->)"
    )


class ResultWriter:
    """Writes results and status glyphs back into documents"""

    def _locate_command(self, lines: List[str], line: int, command_text: Optional[str]) -> int:
        """
        1-indexed line holding the command, relocated by content when it moved.

        Only unsettled copies (no glyph or ⏳) qualify, so an identical command
        that already finished never receives another command's result.

        Raises:
            SparkError: INVALID_LINE_NUMBER when no unsettled copy remains
        """
        if not command_text:
            return line

        wanted = strip_status(command_text.strip())

        def matches(text: str) -> bool:
            return not is_settled(text) and strip_status(text.strip()) == wanted

        if 1 <= line <= len(lines) and matches(lines[line - 1]):
            return line

        candidates = [i + 1 for i, text in enumerate(lines) if matches(text)]
        if not candidates:
            raise SparkError(
                f"Command no longer present (expected near line {line})",
                ErrorCode.INVALID_LINE_NUMBER,
                {"command": command_text[:100]},
            )

        relocated = min(candidates, key=lambda n: abs(n - line))
        logger.info("Command moved from line %d to %d", line, relocated)
        return relocated

    def write_inline(
        self,
        path: str,
        line: int,
        result: str,
        add_blank_lines: bool = True,
        command_text: Optional[str] = None,
    ) -> None:
        """
        Mark the command completed and insert the result below it.

        Raises:
            SparkError: RESULT_WRITE_ERROR wrapping any failure (invalid line,
                empty line, I/O)
        """
        logger.debug("Writing inline result to %s:%d", path, line)
        try:
            lines = read_lines(path)
            line = self._locate_command(lines, line, command_text)

            if line < 1 or line > len(lines):
                raise SparkError(
                    f"Invalid line number: {line} (file has {len(lines)} lines)",
                    ErrorCode.INVALID_LINE_NUMBER,
                )
            current = lines[line - 1]
            if not current:
                raise SparkError("Command line is empty", ErrorCode.EMPTY_LINE)

            lines[line - 1] = f"{GLYPH_COMPLETED} {strip_status(current)}"
            block = [RESULT_START, result, RESULT_END]
            if add_blank_lines:
                block.insert(0, "")
            lines[line:line] = block

            atomic_write(path, "\n".join(lines))
        except Exception as e:
            logger.error("Failed to write result to %s: %s", path, e)
            raise SparkError(
                "Failed to write result to file",
                ErrorCode.RESULT_WRITE_ERROR,
                {"path": path, "line": line, "original_error": repr(e)},
            ) from e

        logger.info("Result written to %s (%d chars)", path, len(result))

    def update_status(
        self,
        path: str,
        line: int,
        glyph: str,
        command_text: Optional[str] = None,
    ) -> None:
        """Replace the command's status glyph. Failures are logged, never raised."""
        try:
            lines = read_lines(path)
            line = self._locate_command(lines, line, command_text)
            if line < 1 or line > len(lines):
                raise SparkError(
                    f"Invalid line number: {line} (file has {len(lines)} lines)",
                    ErrorCode.INVALID_LINE_NUMBER,
                )
            current = lines[line - 1]
            if not current:
                raise SparkError("Command line is empty", ErrorCode.EMPTY_LINE)

            lines[line - 1] = f"{glyph} {strip_status(current)}"
            atomic_write(path, "\n".join(lines))
            logger.debug("Status %s set on %s:%d", glyph, path, line)
        except Exception as e:
            logger.error("Failed to update status on %s:%d: %s", path, line, e)

    def _locate_chat(self, lines: List[str], chat_id: str, start_line: int, end_line: int) -> Tuple[int, int]:
        marker = _chat_marker(chat_id)
        if 1 <= start_line <= len(lines) and marker.search(lines[start_line - 1]):
            return start_line, end_line

        for i, text in enumerate(lines):
            if marker.search(text):
                for j in range(i + 1, len(lines)):
                    if CLOSING_MARKER.search(lines[j]):
                        logger.info("Inline chat %s moved to lines %d-%d", chat_id, i + 1, j + 1)
                        return i + 1, j + 1
                break
        return start_line, end_line

    def write_inline_chat_response(
        self,
        path: str,
        chat_id: str,
        start_line: int,
        end_line: int,
        response: str,
    ) -> None:
        """
        Replace the whole chat block (markers included) with the response.

        Raises:
            SparkError: RESPONSE_WRITE_ERROR wrapping any failure
        """
        try:
            lines = read_lines(path)
            start_line, end_line = self._locate_chat(lines, chat_id, start_line, end_line)
            if start_line < 1 or end_line > len(lines) or start_line > end_line:
                raise SparkError(
                    f"Invalid line numbers: {start_line}-{end_line} (file has {len(lines)} lines)",
                    ErrorCode.INVALID_LINE_RANGE,
                )

            lines[start_line - 1:end_line] = [response]
            atomic_write(path, "\n".join(lines))
        except Exception as e:
            logger.error("Failed to write inline chat response %s to %s: %s", chat_id, path, e)
            raise SparkError(
                "Failed to write inline chat response",
                ErrorCode.RESPONSE_WRITE_ERROR,
                {"path": path, "chat_id": chat_id, "original_error": repr(e)},
            ) from e

        logger.info("Inline chat %s answered in %s (%d chars)", chat_id, path, len(response))

    def update_inline_chat_status(self, path: str, chat_id: str, status: str) -> None:
        """
        Rewrite the status segment of a chat's opening marker.

        Raises:
            SparkError: STATUS_UPDATE_ERROR when the marker is missing or the
                write fails
        """
        marker = _chat_marker(chat_id)
        try:
            lines = read_lines(path)
            for i, text in enumerate(lines):
                if marker.search(text):
                    lines[i] = marker.sub(lambda m: f"{m.group(1)}{status}{m.group(3)}", text, count=1)
                    break
            else:
                raise SparkError(f"Inline chat {chat_id} not found", ErrorCode.STATUS_UPDATE_ERROR)

            atomic_write(path, "\n".join(lines))
        except Exception as e:
            logger.error("Failed to update inline chat %s status: %s", chat_id, e)
            raise SparkError(
                "Failed to update inline chat status",
                ErrorCode.STATUS_UPDATE_ERROR,
                {"path": path, "chat_id": chat_id, "original_error": repr(e)},
            ) from e

        logger.debug("Inline chat %s marked %s", chat_id, status)
