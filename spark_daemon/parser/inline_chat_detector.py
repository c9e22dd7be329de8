"""
Inline Chat Detector

Finds conversational turns embedded in a document:

    <!-- spark-inline-chat:{status}:{id}[:{agent}[:{message}]] -->
    ...
    <!-- /spark-inline-chat -->

Newlines inside the embedded message are escaped as a literal backslash-n.
Older documents carry the message on a "User: ..." line inside the block.
"""

import re
from typing import List, Optional

from .mention_parser import MentionParser
from .types import InlineChat, InlineChatStatus

OPENING_MARKER = re.compile(
    r"<!--\s*spark-inline-chat:(pending|processing|complete|error):([a-z0-9-]+)"
    r"(?::([^:]+?))?(?::(.+?))?\s*-->"
)
CLOSING_MARKER = re.compile(r"<!--\s*/spark-inline-chat\s*-->")
_USER_LINE = re.compile(r"^User:\s*(.*)$")


class InlineChatDetector:
    """Extracts paired inline chat blocks; unmatched openings are dropped"""

    def __init__(self, mention_parser: Optional[MentionParser] = None):
        self.mention_parser = mention_parser or MentionParser()

    def detect_in_file(self, content: str) -> List[InlineChat]:
        lines = content.split("\n")
        chats: List[InlineChat] = []
        i = 0

        while i < len(lines):
            opening = OPENING_MARKER.search(lines[i])
            if not opening:
                i += 1
                continue

            end_index = None
            body: List[str] = []
            for j in range(i + 1, len(lines)):
                if lines[j] and CLOSING_MARKER.search(lines[j]):
                    end_index = j
                    break
                body.append(lines[j])

            if end_index is None:
                i += 1
                continue

            chats.append(self._build(opening, lines, i, end_index, body))
            i = end_index + 1

        return chats

    def _build(self, opening, lines: List[str], start: int, end: int, body: List[str]) -> InlineChat:
        status = InlineChatStatus(opening.group(1))
        chat_id = opening.group(2)
        agent = opening.group(3)
        embedded = opening.group(4)

        user_message = ""
        ai_response = None

        if status == InlineChatStatus.COMPLETE:
            ai_response = "\n".join(body).strip()
        elif embedded:
            user_message = embedded.replace("\\n", "\n")
        else:
            first = body[0] if body else ""
            user_line = _USER_LINE.match(first)
            if user_line:
                user_message = user_line.group(1)
            else:
                user_message = "\n".join(body).strip()

        # Synthesize the agent mention so downstream parsing routes to it
        if agent and user_message and not user_message.startswith("@"):
            user_message = f"@{agent} {user_message}"
        elif agent and not user_message:
            user_message = f"@{agent}"

        mentions = self.mention_parser.parse(user_message) if user_message else None

        return InlineChat(
            start_line=start + 1,
            end_line=end + 1,
            id=chat_id,
            status=status,
            user_message=user_message,
            ai_response=ai_response,
            mentions=mentions,
            raw="\n".join(lines[start:end + 1]),
        )

    def has_pending_inline_chats(self, content: str) -> bool:
        return any(chat.status == InlineChatStatus.PENDING for chat in self.detect_in_file(content))

    def get_pending_inline_chats(self, content: str) -> List[InlineChat]:
        return [chat for chat in self.detect_in_file(content) if chat.status == InlineChatStatus.PENDING]

    def is_inside_inline_chat(self, content: str, line_number: int) -> bool:
        """True when a 1-indexed line falls within any chat block"""
        return any(
            chat.start_line <= line_number <= chat.end_line
            for chat in self.detect_in_file(content)
        )
