"""Tests for CommandExecutor against a scripted backend."""

import pytest

from spark_daemon.common.errors import BackendError, ErrorCode, SparkError
from spark_daemon.daemon import SparkDaemon
from spark_daemon.execution.prompts import COMMAND_SYSTEM_PROMPT, INLINE_CHAT_SYSTEM_PROMPT
from spark_daemon.parser import FileParser


@pytest.fixture
def daemon(vault, config, stub_registry, secrets):
    return SparkDaemon(vault, config, stub_registry, secrets)


@pytest.fixture
def executor(daemon):
    return daemon.executor


def parse(path):
    return FileParser().parse_file(str(path), path.read_text(encoding="utf-8"))


def read(path):
    with open(path, encoding="utf-8", newline="") as f:
        return f.read()


CHAT_DOC = (
    "before\n"
    "<!-- spark-inline-chat:pending:abc123:betty:hello -->\n"
    "\n"
    "<!-- /spark-inline-chat -->\n"
    "after"
)


class TestExecute:
    @pytest.mark.asyncio
    async def test_result_written_below_command(self, executor, write_file, stub_provider):
        path = write_file("doc.md", "/test it.\n")
        command = parse(path).pending_commands[0]

        result = await executor.execute(command, str(path))

        assert result.content == "OK"
        assert read(path) == (
            "✅ /test it.\n"
            "\n"
            "<!-- spark-result-start -->\n"
            "OK\n"
            "<!-- spark-result-end -->\n"
        )
        call = stub_provider.calls[-1]
        assert call["system"] == COMMAND_SYSTEM_PROMPT
        assert call["prompt"].endswith("/test it.")
        assert '<file path="%s" note="current file">' % path in call["prompt"]

    @pytest.mark.asyncio
    async def test_blank_line_setting(self, executor, config, write_file):
        config.results.add_blank_lines = False
        path = write_file("doc.md", "/test it.")
        await executor.execute(parse(path).pending_commands[0], str(path))
        assert read(path) == "✅ /test it.\n<!-- spark-result-start -->\nOK\n<!-- spark-result-end -->"

    @pytest.mark.asyncio
    async def test_failure_marks_command_and_logs(self, executor, vault, write_file, stub_provider):
        path = write_file("doc.md", "/test it.\n")
        stub_provider.error = RuntimeError("bad request")

        with pytest.raises(BackendError) as exc_info:
            await executor.execute(parse(path).pending_commands[0], str(path))

        assert exc_info.value.code == ErrorCode.AI_CLIENT_ERROR
        assert read(path) == "❌ /test it.\n"
        reports = list((vault / ".spark" / "logs").glob("error-*.md"))
        assert len(reports) == 1
        assert "**Error Code:** AI_CLIENT_ERROR" in reports[0].read_text(encoding="utf-8")
        assert (vault / ".spark" / "notifications.jsonl").exists()

    @pytest.mark.asyncio
    async def test_missing_key_without_fallback(self, vault, stub_registry, write_file, monkeypatch):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        executor = SparkDaemon(vault, registry=stub_registry, secrets={}).executor
        path = write_file("doc.md", "/test it.")

        with pytest.raises(SparkError) as exc_info:
            await executor.execute(parse(path).pending_commands[0], str(path))

        assert exc_info.value.code == ErrorCode.API_KEY_NOT_SET
        assert read(path) == "❌ /test it."

    @pytest.mark.asyncio
    async def test_fallback_when_primary_cannot_start(
        self, vault, config, stub_registry, write_file, stub_provider, monkeypatch
    ):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        config.ai.providers["claude"].fallback_provider = "backup"
        executor = SparkDaemon(vault, config, stub_registry, {"backup": "sk-backup"}).executor
        path = write_file("doc.md", "/test it.")

        await executor.execute(parse(path).pending_commands[0], str(path))

        assert stub_provider.calls[-1]["provider"] == "backup"
        assert read(path).startswith("✅ /test it.")

    @pytest.mark.asyncio
    async def test_no_fallback_for_call_failures(self, executor, config, write_file, stub_provider):
        config.ai.providers["claude"].fallback_provider = "backup"
        stub_provider.error = ConnectionError("offline")
        path = write_file("doc.md", "/test it.")

        with pytest.raises(BackendError) as exc_info:
            await executor.execute(parse(path).pending_commands[0], str(path))

        assert exc_info.value.code == ErrorCode.AI_NETWORK_ERROR
        assert [c["provider"] for c in stub_provider.calls] == ["claude"]


class TestOptions:
    @pytest.mark.asyncio
    async def test_agent_persona_and_command_definition(self, executor, write_file, stub_provider):
        write_file(".spark/agents/betty.md", "You are Betty, a sharp editor.")
        write_file(".spark/commands/review.md", "---\ndescription: Review\n---\nList three concrete fixes.\n")
        write_file("plan.md", "the plan")
        path = write_file("doc.md", "@betty /review @plan.md now.")

        await executor.execute(parse(path).pending_commands[0], str(path))

        prompt = stub_provider.calls[-1]["prompt"]
        assert "<agent_persona>\nYou are Betty, a sharp editor.\n</agent_persona>" in prompt
        assert "<additional_instructions>\nList three concrete fixes.\n</additional_instructions>" in prompt
        assert '<context priority="high">' in prompt
        assert "the plan" in prompt

    @pytest.mark.asyncio
    async def test_agent_overrides_select_backend(self, executor, write_file, stub_provider):
        write_file(
            ".spark/agents/betty.md",
            "---\nname: Betty\nai:\n  provider: backup\n  model: gpt-4o-mini\n  temperature: 0.2\n---\nEdit.\n",
        )
        path = write_file("doc.md", "@betty /review this.")

        await executor.execute(parse(path).pending_commands[0], str(path))

        call = stub_provider.calls[-1]
        assert (call["provider"], call["model"], call["temperature"]) == ("backup", "gpt-4o-mini", 0.2)

    @pytest.mark.asyncio
    async def test_nearby_files_as_low_priority_summaries(self, executor, write_file, stub_provider):
        write_file("notes/neighbor.md", "neighbor text")
        path = write_file("notes/doc.md", "/test it.")

        await executor.execute(parse(path).pending_commands[0], str(path))

        prompt = stub_provider.calls[-1]["prompt"]
        assert '<context priority="low">' in prompt
        assert 'note="summary, distance 0"' in prompt


class TestExecuteAndReturn:
    @pytest.mark.asyncio
    async def test_returns_text_without_touching_document(self, executor, write_file, stub_provider):
        path = write_file("doc.md", "/test it.")
        stub_provider.reply = "Answer"

        content = await executor.execute_and_return(parse(path).pending_commands[0], str(path))

        assert content == "Answer"
        assert read(path) == "/test it."

    @pytest.mark.asyncio
    async def test_errors_propagate(self, executor, write_file, stub_provider, vault):
        path = write_file("doc.md", "/test it.")
        stub_provider.error = TimeoutError()

        with pytest.raises(BackendError):
            await executor.execute_and_return(parse(path).pending_commands[0], str(path))

        assert read(path) == "/test it."
        assert not (vault / ".spark" / "logs").exists()


class TestInlineChat:
    @pytest.mark.asyncio
    async def test_block_replaced_by_response(self, executor, write_file, stub_provider):
        path = write_file("doc.md", CHAT_DOC)
        stub_provider.reply = "  Hi there!\n"
        chat = parse(path).pending_inline_chats[0]

        await executor.execute_inline_chat(chat, str(path))

        assert read(path) == "before\nHi there!\nafter"
        call = stub_provider.calls[-1]
        assert call["system"] == INLINE_CHAT_SYSTEM_PROMPT
        assert call["prompt"].endswith("@betty hello")

    @pytest.mark.asyncio
    async def test_failure_marks_block_error(self, executor, vault, write_file, stub_provider):
        path = write_file("doc.md", CHAT_DOC)
        stub_provider.error = RuntimeError("rejected")
        chat = parse(path).pending_inline_chats[0]

        with pytest.raises(BackendError):
            await executor.execute_inline_chat(chat, str(path))

        assert "<!-- spark-inline-chat:error:abc123:betty:hello -->" in read(path)
        assert len(list((vault / ".spark" / "logs").glob("error-*.md"))) == 1
