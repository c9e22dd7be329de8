"""Tests for the chat queue entry point."""

import json
from unittest.mock import AsyncMock, patch

import pytest

from spark_daemon.chat import ChatQueueHandler, parse_queue_file
from spark_daemon.common.errors import ErrorCode, SparkError
from spark_daemon.daemon import SparkDaemon


QUEUE_FILE = (
    "---\n"
    "conversation_id: conv1\n"
    "queue_id: conv1-0001\n"
    "active_file: notes/today.md\n"
    "primary_agent: betty\n"
    "---\n"
    "<!-- spark-chat-context -->\n"
    "user: earlier question\n"
    "<!-- /spark-chat-context -->\n"
    "<!-- spark-chat-message -->\n"
    "What should I do next?\n"
    "<!-- /spark-chat-message -->\n"
)


@pytest.fixture
def handler(vault, config, stub_registry, secrets):
    return SparkDaemon(vault, config, stub_registry, secrets).chat_queue


def results(vault, conversation_id):
    path = vault / ".spark" / "chat-results" / f"{conversation_id}.jsonl"
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


class TestParseQueueFile:
    def test_full_file(self):
        queued = parse_queue_file(QUEUE_FILE)
        assert queued.conversation_id == "conv1"
        assert queued.queue_id == "conv1-0001"
        assert queued.user_message == "What should I do next?"
        assert queued.context == "user: earlier question"
        assert queued.active_file == "notes/today.md"
        assert queued.primary_agent == "betty"

    def test_missing_frontmatter(self):
        with pytest.raises(SparkError) as exc_info:
            parse_queue_file("<!-- spark-chat-message -->\nhi\n<!-- /spark-chat-message -->")
        assert exc_info.value.code == ErrorCode.INVALID_QUEUE_FILE

    def test_missing_message(self):
        with pytest.raises(SparkError) as exc_info:
            parse_queue_file("---\nconversation_id: c\nqueue_id: c-1\n---\nno markers")
        assert exc_info.value.code == ErrorCode.INVALID_QUEUE_FILE


class TestIsChatQueueFile:
    def test_paths(self, handler):
        assert handler.is_chat_queue_file(".spark/chat-queue/conv1-0001.md")
        assert not handler.is_chat_queue_file(".spark/chat-queue/notes.txt")
        assert not handler.is_chat_queue_file("notes/chat-queue/a.md")


class TestProcess:
    @pytest.mark.asyncio
    async def test_answer_written_and_queue_removed(self, handler, vault, write_file, stub_provider):
        write_file(".spark/agents/betty.md", "You are Betty.")
        write_file("notes/today.md", "today's note")
        queue = write_file(".spark/chat-queue/conv1-0001.md", QUEUE_FILE)
        stub_provider.reply = "Ship it."

        result = await handler.process(".spark/chat-queue/conv1-0001.md")

        assert result.agent == "betty"
        assert result.content == "Ship it."
        assert not queue.exists()
        [entry] = results(vault, "conv1")
        assert entry["queue_id"] == "conv1-0001"
        assert entry["content"] == "Ship it."
        assert "error" not in entry

        prompt = stub_provider.calls[-1]["prompt"]
        assert "<agent_persona>\nYou are Betty.\n</agent_persona>" in prompt
        assert "today's note" in prompt
        assert prompt.endswith(
            "Context from previous messages:\nuser: earlier question\n\nWhat should I do next?"
        )

    @pytest.mark.asyncio
    async def test_explicit_agent_mention_kept(self, handler, vault, write_file, stub_provider):
        content = QUEUE_FILE.replace("What should I do next?", "@jane what next?")
        write_file(".spark/chat-queue/conv1-0002.md", content.replace("conv1-0001", "conv1-0002"))

        result = await handler.process(".spark/chat-queue/conv1-0002.md")

        assert result.agent == "jane"

    @pytest.mark.asyncio
    async def test_backend_failure_recorded(self, handler, vault, write_file, stub_provider):
        queue = write_file(".spark/chat-queue/conv1-0001.md", QUEUE_FILE)
        stub_provider.error = RuntimeError("quota exceeded")

        result = await handler.process(".spark/chat-queue/conv1-0001.md")

        assert result.agent == "System"
        assert "quota exceeded" in result.error
        assert not queue.exists()
        assert results(vault, "conv1")[0]["error"] == result.error

    @pytest.mark.asyncio
    async def test_invalid_queue_file(self, handler, vault, write_file):
        queue = write_file(".spark/chat-queue/conv9-0001.md", "garbage")

        result = await handler.process(".spark/chat-queue/conv9-0001.md")

        assert result.conversation_id == "conv9"
        assert result.error == "Invalid queue file: missing required front-matter"
        assert not queue.exists()

    @pytest.mark.asyncio
    async def test_injected_agent_does_not_share_a_position(self, handler, write_file):
        content = QUEUE_FILE.replace("What should I do next?", "@today.md what next?")
        write_file(".spark/chat-queue/conv1-0003.md", content.replace("conv1-0001", "conv1-0003"))

        with patch.object(handler.executor, "execute_and_return", AsyncMock(return_value="ok")) as run:
            await handler.process(".spark/chat-queue/conv1-0003.md")

        mentions = run.await_args.args[0].mentions
        assert [(m.value, m.position) for m in mentions] == [("betty", -1), ("today.md", 0)]
        positions = [m.position for m in mentions]
        assert positions == sorted(set(positions))
