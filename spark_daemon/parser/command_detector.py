"""
Command Detector

Line-oriented state machine that finds slash commands in a markdown file.

States are mutually exclusive. Only lines seen in the NORMAL state are
evaluated; fenced code, Spark result blocks and inline chat blocks are
skipped entirely so Spark never re-detects its own output.
"""

import logging
import re
from enum import Enum
from typing import List, Optional

from .mention_parser import MentionParser
from .types import Command, CommandStatus, CommandType, Mention, MentionType

logger = logging.getLogger("spark.parser.command_detector")

RESULT_START = "<!-- spark-result-start -->"
RESULT_END = "<!-- spark-result-end -->"

_INLINE_CHAT_OPEN = re.compile(r"<!--\s*spark-inline-chat:")
_INLINE_CHAT_CLOSE = re.compile(r"<!--\s*/spark-inline-chat\s*-->")
_CODE_FENCE = "```"

# "[x]" is tried before the single-character glyphs
_STATUS_GLYPH = re.compile(r"^(\[x\]|✅|✓|❌|✗|⏳|🔄|⚠️)\s*")

GLYPH_STATUS = {
    "✅": CommandStatus.COMPLETED,
    "✓": CommandStatus.COMPLETED,
    "[x]": CommandStatus.COMPLETED,
    "❌": CommandStatus.FAILED,
    "✗": CommandStatus.FAILED,
    "⚠️": CommandStatus.FAILED,
    "⏳": CommandStatus.PROCESSING,
    "🔄": CommandStatus.PROCESSING,
}

SENTENCE_ENDERS = (".", "?", "!")


class ScanState(str, Enum):
    NORMAL = "normal"
    IN_CODE_BLOCK = "in_code_block"
    IN_RESULT_BLOCK = "in_result_block"
    IN_INLINE_CHAT_BLOCK = "in_inline_chat_block"


def is_complete(text: str) -> bool:
    """
    A command is ready once the author has finished the sentence.

    The trimmed text must be non-empty, there must be no trailing whitespace
    (the author is likely still typing) and it must end in . ? or !
    """
    trimmed = text.strip()
    if not trimmed:
        return False
    if text.rstrip() != text:
        return False
    return trimmed.endswith(SENTENCE_ENDERS)


def extract_args(line: str, command_raw: str) -> Optional[str]:
    """Text after the command token, or None when there is none"""
    index = line.find(command_raw)
    if index == -1:
        return None
    after = line[index + len(command_raw):].strip()
    return after or None


class CommandDetector:
    """Detects slash commands in file content"""

    def __init__(self, mention_parser: Optional[MentionParser] = None):
        self.mention_parser = mention_parser or MentionParser()

    def detect_in_file(self, content: str) -> List[Command]:
        commands: List[Command] = []
        state = ScanState.NORMAL

        for index, line in enumerate(content.split("\n")):
            stripped = line.strip()

            if state == ScanState.IN_RESULT_BLOCK:
                if stripped == RESULT_END:
                    state = ScanState.NORMAL
                continue

            if state == ScanState.IN_INLINE_CHAT_BLOCK:
                if _INLINE_CHAT_CLOSE.search(stripped):
                    state = ScanState.NORMAL
                continue

            if state == ScanState.IN_CODE_BLOCK:
                if stripped.startswith(_CODE_FENCE):
                    state = ScanState.NORMAL
                continue

            # NORMAL
            if stripped == RESULT_START:
                state = ScanState.IN_RESULT_BLOCK
                continue
            if stripped == RESULT_END:
                continue
            if _INLINE_CHAT_OPEN.search(stripped):
                # A single-line block opens and closes on the same line
                if not _INLINE_CHAT_CLOSE.search(stripped):
                    state = ScanState.IN_INLINE_CHAT_BLOCK
                continue
            if _INLINE_CHAT_CLOSE.search(stripped):
                continue
            if stripped.startswith(_CODE_FENCE):
                state = ScanState.IN_CODE_BLOCK
                continue

            command = self._evaluate_line(index + 1, line)
            if command is not None:
                commands.append(command)

        return commands

    def _evaluate_line(self, line_number: int, line: str) -> Optional[Command]:
        stripped = line.strip()
        if not stripped:
            return None
        if not self.mention_parser.has_spark_syntax(line):
            return None

        glyph_match = _STATUS_GLYPH.match(stripped)
        if glyph_match:
            glyph = glyph_match.group(1)
            raw = stripped[glyph_match.end():]
            status = GLYPH_STATUS[glyph]
        else:
            glyph = None
            raw = line
            status = CommandStatus.PENDING

        mentions = self.mention_parser.parse_line(raw)
        command_mention = _first_command(mentions)
        # Bare agent mentions belong to inline chat, not this detector
        if command_mention is None:
            return None

        logger.debug("Command /%s at line %d (%s)", command_mention.value, line_number, status.value)
        return Command(
            line=line_number,
            raw=raw,
            type=CommandType.SLASH,
            command=command_mention.value,
            args=extract_args(raw, command_mention.raw),
            mentions=mentions,
            status=status,
            is_complete=is_complete(raw),
            status_glyph=glyph,
        )


def _first_command(mentions: List[Mention]) -> Optional[Mention]:
    for mention in mentions:
        if mention.type == MentionType.COMMAND:
            return mention
    return None
