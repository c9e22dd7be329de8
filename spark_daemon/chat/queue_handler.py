"""
Chat Queue Handler

Alternate entry point: external clients drop requests into
.spark/chat-queue/<queue_id>.md and read answers from
.spark/chat-results/<conversation_id>.jsonl.

Queue file format:

    ---
    conversation_id: conv1
    queue_id: conv1-0001
    active_file: notes/today.md      (optional)
    primary_agent: betty             (optional)
    ---
    <!-- spark-chat-context -->
    ...previous messages...
    <!-- /spark-chat-context -->
    <!-- spark-chat-message -->
    ...the request...
    <!-- /spark-chat-message -->

The queue file is removed once processed, whether or not the call succeeded.
"""

import logging
import os
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel

from ..common.config import CHAT_QUEUE_DIR, CHAT_RESULTS_DIR, SPARK_DIR
from ..common.errors import ErrorCode, SparkError
from ..execution.executor import CommandExecutor
from ..parser.frontmatter_parser import split_frontmatter
from ..parser.mention_parser import MentionParser
from ..parser.types import Command, CommandStatus, CommandType, Mention, MentionType

logger = logging.getLogger("spark.chat.queue_handler")

_MESSAGE_BLOCK = re.compile(r"<!-- spark-chat-message -->\n(.*?)\n<!-- /spark-chat-message -->", re.DOTALL)
_CONTEXT_BLOCK = re.compile(r"<!-- spark-chat-context -->\n(.*?)\n<!-- /spark-chat-context -->", re.DOTALL)

QUEUE_PREFIX = f"{SPARK_DIR}/{CHAT_QUEUE_DIR}/"


class ChatResult(BaseModel):
    """One line of a conversation's results file"""
    conversation_id: str
    queue_id: str
    timestamp: int  # epoch milliseconds
    agent: str
    content: str
    error: Optional[str] = None


@dataclass
class QueuedMessage:
    conversation_id: str
    queue_id: str
    user_message: str
    context: str = ""
    active_file: Optional[str] = None
    primary_agent: Optional[str] = None


def parse_queue_file(content: str) -> QueuedMessage:
    """
    Raises:
        SparkError: INVALID_QUEUE_FILE when required front-matter or the
            message block is missing
    """
    frontmatter, _ = split_frontmatter(content)
    conversation_id = str(frontmatter.get("conversation_id") or "").strip()
    queue_id = str(frontmatter.get("queue_id") or "").strip()
    if not conversation_id or not queue_id:
        raise SparkError(
            "Invalid queue file: missing required front-matter",
            ErrorCode.INVALID_QUEUE_FILE,
            {"required": ["conversation_id", "queue_id"]},
        )

    message = _MESSAGE_BLOCK.search(content)
    if not message or not message.group(1).strip():
        raise SparkError("Invalid queue file: missing chat message", ErrorCode.INVALID_QUEUE_FILE)

    context = _CONTEXT_BLOCK.search(content)
    active_file = frontmatter.get("active_file")
    primary_agent = frontmatter.get("primary_agent")

    return QueuedMessage(
        conversation_id=conversation_id,
        queue_id=queue_id,
        user_message=message.group(1).strip(),
        context=context.group(1).strip() if context else "",
        active_file=str(active_file).strip() if active_file else None,
        primary_agent=str(primary_agent).strip() if primary_agent else None,
    )


class ChatQueueHandler:

    def __init__(self, vault_path, executor: CommandExecutor, mention_parser: Optional[MentionParser] = None):
        self.vault_path = Path(vault_path)
        self.executor = executor
        self.mention_parser = mention_parser or MentionParser()

    @property
    def results_dir(self) -> Path:
        return self.vault_path / SPARK_DIR / CHAT_RESULTS_DIR

    def is_chat_queue_file(self, relative_path: str) -> bool:
        normalized = relative_path.replace(os.sep, "/")
        return normalized.startswith(QUEUE_PREFIX) and normalized.endswith(".md")

    async def process(self, relative_path: str) -> Optional[ChatResult]:
        """Answer one queued request; returns the result line that was written"""
        full_path = self.vault_path / relative_path
        queue_id = Path(relative_path).stem

        try:
            queued = parse_queue_file(full_path.read_text(encoding="utf-8"))
            logger.debug("Parsed chat message %s (conversation %s)", queued.queue_id, queued.conversation_id)

            mentions = self.mention_parser.parse(queued.user_message)
            if queued.primary_agent and not _has_agent(mentions):
                mentions.insert(0, Mention(
                    type=MentionType.AGENT,
                    raw=f"@{queued.primary_agent}",
                    value=queued.primary_agent,
                    position=-1,
                ))
                logger.debug("Injected primary agent @%s", queued.primary_agent)

            prompt = queued.user_message
            if queued.context:
                prompt = f"Context from previous messages:\n{queued.context}\n\n{queued.user_message}"

            command = Command(
                line=0,
                raw=prompt,
                type=CommandType.MENTION_CHAIN,
                mentions=mentions,
                status=CommandStatus.PENDING,
                is_complete=True,
            )
            context_path = (
                str(self.vault_path / queued.active_file) if queued.active_file else str(self.vault_path)
            )

            content = await self.executor.execute_and_return(command, context_path)

            result = ChatResult(
                conversation_id=queued.conversation_id,
                queue_id=queued.queue_id,
                timestamp=_now_ms(),
                agent=_agent_name(mentions, queued.primary_agent),
                content=content,
            )
        except Exception as e:
            logger.error("Chat queue processing failed for %s: %s", relative_path, e)
            result = ChatResult(
                conversation_id=queue_id.split("-")[0] or "unknown",
                queue_id=queue_id,
                timestamp=_now_ms(),
                agent="System",
                content="",
                error=str(e) or type(e).__name__,
            )

        self.write_result(result)
        full_path.unlink(missing_ok=True)
        logger.debug("Queue file processed: %s", relative_path)
        return result

    def write_result(self, result: ChatResult) -> None:
        self.results_dir.mkdir(parents=True, exist_ok=True)
        path = self.results_dir / f"{result.conversation_id}.jsonl"
        with open(path, "a", encoding="utf-8") as f:
            f.write(result.model_dump_json(exclude_none=True) + "\n")


def _has_agent(mentions: List[Mention]) -> bool:
    return any(m.type == MentionType.AGENT for m in mentions)


def _agent_name(mentions: List[Mention], primary_agent: Optional[str]) -> str:
    for mention in mentions:
        if mention.type == MentionType.AGENT:
            return mention.value
    return primary_agent or "Assistant"


def _now_ms() -> int:
    return int(time.time() * 1000)
