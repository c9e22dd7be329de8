"""
Parser result types

Mentions, commands and inline chats are ephemeral: they are recomputed on
every parse and never persisted.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional


class MentionType(str, Enum):
    AGENT = "agent"
    FILE = "file"
    FOLDER = "folder"
    SERVICE = "service"
    COMMAND = "command"
    TAG = "tag"


class CommandType(str, Enum):
    SLASH = "slash"
    MENTION_CHAIN = "mention-chain"


class CommandStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class InlineChatStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass
class Mention:
    """A sigil-prefixed reference found in text"""
    type: MentionType
    raw: str
    value: str
    position: int


@dataclass
class Command:
    """An executable directive on a single line (line numbers are 1-indexed)"""
    line: int
    raw: str
    type: CommandType
    command: Optional[str] = None
    args: Optional[str] = None
    mentions: List[Mention] = field(default_factory=list)
    status: CommandStatus = CommandStatus.PENDING
    is_complete: bool = False
    status_glyph: Optional[str] = None


@dataclass
class InlineChat:
    """A paired marker block holding one conversational turn (1-indexed, inclusive lines)"""
    start_line: int
    end_line: int
    id: str
    status: InlineChatStatus
    user_message: str
    ai_response: Optional[str] = None
    raw: str = ""
    mentions: Optional[List[Mention]] = None


@dataclass
class FrontmatterChange:
    field: str
    old_value: Any
    new_value: Any
