"""
Mention Parser

Tokenizes Spark syntax in prose: /command, $service, @folder/, @file.md, @agent.

Single pass over the text. At every sigil offset the precedence table is
tried in order and the first matching pattern claims the token; scanning
resumes after the claimed text, so a token is never reported twice and
text inside a claimed token (the "/sub" of "@notes/sub/") is not re-read.
"""

import re
from typing import Dict, List, Pattern, Tuple

from .types import Mention, MentionType

# Precedence table per sigil, highest priority first.
# command (5) > service (4) > folder (3) > file (2) > agent (1)
PRECEDENCE: Dict[str, List[Tuple[MentionType, Pattern]]] = {
    "/": [
        (MentionType.COMMAND, re.compile(r"/([a-z][a-z0-9-]*)", re.IGNORECASE | re.ASCII)),
    ],
    "$": [
        (MentionType.SERVICE, re.compile(r"\$([a-z][a-z0-9-]*)", re.IGNORECASE | re.ASCII)),
    ],
    "@": [
        (MentionType.FOLDER, re.compile(r"@([\w-]+(?:/[\w-]*)*/)", re.ASCII)),
        (MentionType.FILE, re.compile(r"@([\w-]+\.md)", re.ASCII)),
        # Lookahead keeps folder and file references from being read as agents
        (MentionType.AGENT, re.compile(r"@([a-z][a-z0-9-]*)(?![/\w.])", re.IGNORECASE | re.ASCII)),
    ],
}

_SIGILS = re.compile(r"[/$@]")
_SPARK_SYNTAX = re.compile(r"[@/$][a-z0-9-]", re.IGNORECASE)
_COMMAND_START = re.compile(r"^/[a-z][a-z0-9-]*", re.IGNORECASE)
_AGENT_ANYWHERE = re.compile(r"@[a-z][a-z0-9-]*(?![/\w.])", re.IGNORECASE | re.ASCII)


class MentionParser:
    """Parses mentions out of arbitrary text"""

    def parse(self, content: str) -> List[Mention]:
        """
        Parse all mentions in content.

        Returns:
            Mentions in ascending position order; positions are unique.
        """
        mentions: List[Mention] = []
        pos = 0
        length = len(content)

        while pos < length:
            sigil = _SIGILS.search(content, pos)
            if sigil is None:
                break
            start = sigil.start()

            token = self._match_at(content, start)
            if token is None:
                pos = start + 1
                continue

            mentions.append(token)
            pos = start + len(token.raw)

        return mentions

    def parse_line(self, line: str) -> List[Mention]:
        return self.parse(line)

    def has_spark_syntax(self, line: str) -> bool:
        """Cheap pre-filter before running the full scan"""
        return _SPARK_SYNTAX.search(line) is not None

    def is_command_line(self, line: str) -> bool:
        """True when the line starts with /command or contains an @agent mention"""
        trimmed = line.strip()
        if _COMMAND_START.match(trimmed):
            return True
        return _AGENT_ANYWHERE.search(trimmed) is not None

    def _match_at(self, content: str, start: int):
        for mention_type, pattern in PRECEDENCE[content[start]]:
            match = pattern.match(content, start)
            if match:
                return Mention(
                    type=mention_type,
                    raw=match.group(0),
                    value=match.group(1) or "",
                    position=start,
                )
        return None
