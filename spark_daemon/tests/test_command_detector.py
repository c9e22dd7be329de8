"""Tests for CommandDetector state machine and completeness rules."""

import pytest

from spark_daemon.parser import (
    CommandDetector,
    CommandStatus,
    CommandType,
    MentionType,
    extract_args,
    is_complete,
)


@pytest.fixture
def detector():
    return CommandDetector()


class TestIsComplete:
    def test_sentence_ending_punctuation(self):
        assert is_complete("/summarize this.") is True
        assert is_complete("/summarize this?") is True
        assert is_complete("/summarize this!") is True

    def test_missing_punctuation(self):
        assert is_complete("/summarize this") is False

    def test_trailing_whitespace(self):
        assert is_complete("/summarize this ") is False
        assert is_complete("/summarize this.  ") is False

    def test_empty(self):
        assert is_complete("") is False
        assert is_complete("   ") is False


class TestExtractArgs:
    def test_args_after_command(self):
        assert extract_args("/summarize the meeting.", "/summarize") == "the meeting."

    def test_no_args(self):
        assert extract_args("/summarize", "/summarize") is None

    def test_command_not_in_line(self):
        assert extract_args("hello", "/summarize") is None


class TestDetection:
    def test_detects_slash_command(self, detector):
        commands = detector.detect_in_file("# Title\n\n/summarize this doc.\n")
        assert len(commands) == 1
        cmd = commands[0]
        assert cmd.line == 3
        assert cmd.type == CommandType.SLASH
        assert cmd.command == "summarize"
        assert cmd.args == "this doc."
        assert cmd.status == CommandStatus.PENDING
        assert cmd.is_complete is True
        assert cmd.status_glyph is None

    def test_incomplete_command_still_detected(self, detector):
        commands = detector.detect_in_file("/summarize this")
        assert len(commands) == 1
        assert commands[0].is_complete is False

    def test_bare_agent_mention_ignored(self, detector):
        assert detector.detect_in_file("@betty what do you think?") == []

    def test_command_with_mentions(self, detector):
        commands = detector.detect_in_file("@betty /review @plan.md please.")
        assert len(commands) == 1
        types = [m.type for m in commands[0].mentions]
        assert types == [MentionType.AGENT, MentionType.COMMAND, MentionType.FILE]
        assert commands[0].command == "review"

    def test_plain_prose_skipped(self, detector):
        assert detector.detect_in_file("Just a normal line.\n\nAnother one.") == []


class TestStatusGlyphs:
    @pytest.mark.parametrize("glyph,status", [
        ("✅", CommandStatus.COMPLETED),
        ("✓", CommandStatus.COMPLETED),
        ("[x]", CommandStatus.COMPLETED),
        ("❌", CommandStatus.FAILED),
        ("✗", CommandStatus.FAILED),
        ("⏳", CommandStatus.PROCESSING),
        ("🔄", CommandStatus.PROCESSING),
        ("⚠️", CommandStatus.FAILED),
    ])
    def test_glyph_maps_to_status(self, detector, glyph, status):
        commands = detector.detect_in_file(f"{glyph} /summarize this.")
        assert len(commands) == 1
        assert commands[0].status == status
        assert commands[0].status_glyph == glyph
        assert commands[0].raw == "/summarize this."

    def test_completeness_recomputed_on_clean_text(self, detector):
        commands = detector.detect_in_file("✅ /summarize this.")
        assert commands[0].is_complete is True


class TestSkippedRegions:
    def test_code_block(self, detector):
        content = "```\n/summarize this.\n```\n"
        assert detector.detect_in_file(content) == []

    def test_code_block_with_language(self, detector):
        content = "```bash\n/usr/bin/run now.\n```\n/after fence."
        commands = detector.detect_in_file(content)
        assert [c.command for c in commands] == ["after"]
        assert commands[0].line == 4

    def test_result_block(self, detector):
        content = (
            "✅ /summarize this.\n"
            "\n"
            "<!-- spark-result-start -->\n"
            "/nested command inside result.\n"
            "<!-- spark-result-end -->\n"
        )
        commands = detector.detect_in_file(content)
        assert len(commands) == 1
        assert commands[0].line == 1

    def test_inline_chat_block(self, detector):
        content = (
            "<!-- spark-inline-chat:pending:abc123:betty -->\n"
            "/summarize inside chat.\n"
            "<!-- /spark-inline-chat -->\n"
            "/outside chat.\n"
        )
        commands = detector.detect_in_file(content)
        assert [c.command for c in commands] == ["outside"]
        assert commands[0].line == 4

    def test_result_markers_inside_code_block_do_not_toggle(self, detector):
        content = (
            "```\n"
            "<!-- spark-result-start -->\n"
            "```\n"
            "/visible command.\n"
        )
        commands = detector.detect_in_file(content)
        assert [c.command for c in commands] == ["visible"]

    def test_fence_inside_result_block_ignored(self, detector):
        content = (
            "<!-- spark-result-start -->\n"
            "```\n"
            "<!-- spark-result-end -->\n"
            "/visible command.\n"
        )
        commands = detector.detect_in_file(content)
        assert [c.command for c in commands] == ["visible"]

    def test_never_emits_from_any_skipped_region(self, detector):
        content = "\n".join([
            "/one.",
            "```",
            "/code.",
            "```",
            "<!-- spark-result-start -->",
            "/result.",
            "<!-- spark-result-end -->",
            "<!-- spark-inline-chat:pending:x1 -->",
            "/chat.",
            "<!-- /spark-inline-chat -->",
            "/two.",
        ])
        assert [c.command for c in detector.detect_in_file(content)] == ["one", "two"]
