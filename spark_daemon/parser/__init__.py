"""
Spark Parser Module

Detection engine: mentions, slash commands, front-matter and inline chats.
"""

from .types import (
    Mention,
    MentionType,
    Command,
    CommandType,
    CommandStatus,
    InlineChat,
    InlineChatStatus,
    FrontmatterChange,
)
from .mention_parser import MentionParser
from .command_detector import CommandDetector, is_complete, extract_args, RESULT_START, RESULT_END
from .frontmatter_parser import FrontmatterParser, split_frontmatter
from .inline_chat_detector import InlineChatDetector
from .file_parser import FileParser, ParsedFile

__all__ = [
    "Mention",
    "MentionType",
    "Command",
    "CommandType",
    "CommandStatus",
    "InlineChat",
    "InlineChatStatus",
    "FrontmatterChange",
    "MentionParser",
    "CommandDetector",
    "is_complete",
    "extract_args",
    "RESULT_START",
    "RESULT_END",
    "FrontmatterParser",
    "split_frontmatter",
    "InlineChatDetector",
    "FileParser",
    "ParsedFile",
]
