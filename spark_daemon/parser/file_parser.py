"""
File Parser

Combines the mention, command, front-matter and inline chat parsers to
analyze a complete document.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .command_detector import CommandDetector
from .frontmatter_parser import FrontmatterParser
from .inline_chat_detector import InlineChatDetector
from .mention_parser import MentionParser
from .types import Command, CommandStatus, InlineChat, InlineChatStatus, Mention


@dataclass
class ParsedFile:
    path: str
    content: str
    frontmatter: Dict[str, Any] = field(default_factory=dict)
    commands: List[Command] = field(default_factory=list)
    inline_chats: List[InlineChat] = field(default_factory=list)
    mentions: List[Mention] = field(default_factory=list)

    @property
    def pending_commands(self) -> List[Command]:
        """Pending commands the author has finished typing"""
        return [c for c in self.commands if c.status == CommandStatus.PENDING and c.is_complete]

    @property
    def pending_inline_chats(self) -> List[InlineChat]:
        return [c for c in self.inline_chats if c.status == InlineChatStatus.PENDING]


class FileParser:
    """Parses a whole document into its directives"""

    def __init__(self, frontmatter_parser: Optional[FrontmatterParser] = None):
        self.mention_parser = MentionParser()
        self.command_detector = CommandDetector(self.mention_parser)
        self.inline_chat_detector = InlineChatDetector(self.mention_parser)
        self.frontmatter_parser = frontmatter_parser or FrontmatterParser()

    def parse_file(self, path: str, content: str) -> ParsedFile:
        frontmatter = self.frontmatter_parser.extract_frontmatter(content)
        body = self.frontmatter_parser.get_content(content)

        return ParsedFile(
            path=path,
            content=content,
            frontmatter=frontmatter,
            commands=self.command_detector.detect_in_file(content),
            inline_chats=self.inline_chat_detector.detect_in_file(content),
            mentions=self.mention_parser.parse(body),
        )

    def has_pending_commands(self, parsed: ParsedFile) -> bool:
        return any(cmd.status == CommandStatus.PENDING for cmd in parsed.commands)
