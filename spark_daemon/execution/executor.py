"""
Command Executor

One core routine, three entry points:
- execute: slash command in a document, result written inline
- execute_and_return: same call, text returned, no document changes
- execute_inline_chat: inline chat block replaced by the response

Core sequence: load context -> select backend -> build completion options ->
call the backend (off the event loop) -> return text and token usage.
Failures are reported (status glyph or marker, error log) and re-raised;
nothing here retries.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..common.config import AIConfig, SparkConfig
from ..common.errors import ErrorCode, SparkError, normalize_error
from ..context.context_loader import ContextLoader, read_text_safe
from ..context.types import LoadedContext
from ..parser.frontmatter_parser import split_frontmatter
from ..parser.types import Command, InlineChat, InlineChatStatus
from ..providers.base import (
    BaseProvider,
    CompletionOptions,
    CompletionResult,
    ContextFile,
    ProviderContext,
)
from ..providers.factory import ProviderFactory
from ..results.error_writer import ErrorWriter
from ..results.result_writer import GLYPH_FAILED, GLYPH_PROCESSING, ResultWriter
from .prompts import COMMAND_SYSTEM_PROMPT, INLINE_CHAT_SYSTEM_PROMPT

logger = logging.getLogger("spark.execution.executor")

# Construction failures that justify switching to the fallback backend
_FALLBACK_CODES = {ErrorCode.API_KEY_NOT_SET, ErrorCode.PROVIDER_INIT_FAILED}


def context_counts(context: Optional[LoadedContext]) -> Dict[str, Any]:
    return {
        "has_agent": bool(context and context.agent),
        "mentioned_files_count": len(context.mentioned_files) if context else 0,
        "nearby_files_count": len(context.nearby_files) if context else 0,
    }


class CommandExecutor:

    def __init__(
        self,
        vault_path,
        config: SparkConfig,
        context_loader: ContextLoader,
        provider_factory: ProviderFactory,
        result_writer: ResultWriter,
        error_writer: ErrorWriter,
    ):
        self.vault_path = Path(vault_path)
        self.config = config
        self.context_loader = context_loader
        self.provider_factory = provider_factory
        self.result_writer = result_writer
        self.error_writer = error_writer

    def update_config(self, config: SparkConfig) -> None:
        """Swap the configuration; runs handed an explicit config keep using it"""
        self.config = config

    def should_execute(self, command: Command) -> bool:
        if not command.is_complete:
            logger.debug("Skipping incomplete command: %s", command.raw[:50])
            return False
        return True

    async def execute(self, command: Command, path: str, config: Optional[SparkConfig] = None) -> CompletionResult:
        """Run a slash command and write the result below it"""
        config = config or self.config
        logger.info("Executing %s in %s:%d", command.raw[:100], path, command.line)

        self.result_writer.update_status(path, command.line, GLYPH_PROCESSING, command.raw)

        context = None
        try:
            context = self.context_loader.load(path, command.mentions, config.context)
            result = await self._complete(
                context, command.raw, COMMAND_SYSTEM_PROMPT, command.command, ai_config=config.ai
            )
            self.result_writer.write_inline(
                path,
                command.line,
                result.content,
                add_blank_lines=config.results.add_blank_lines,
                command_text=command.raw,
            )
        except Exception as e:
            error = normalize_error(e)
            self.result_writer.update_status(path, command.line, GLYPH_FAILED, command.raw)
            self.error_writer.write_error(e, path, command.line, command.raw, context_counts(context))
            if error is e:
                raise
            raise error from e

        logger.info("Result written to %s", path)
        return result

    async def execute_and_return(self, command: Command, path: str, config: Optional[SparkConfig] = None) -> str:
        """Run the core call only; no document is touched"""
        config = config or self.config
        try:
            context = self.context_loader.load(path, command.mentions, config.context)
            result = await self._complete(
                context, command.raw, COMMAND_SYSTEM_PROMPT, command.command, ai_config=config.ai
            )
        except Exception as e:
            error = normalize_error(e)
            if error is e:
                raise
            raise error from e
        return result.content

    async def execute_inline_chat(
        self,
        chat: InlineChat,
        path: str,
        config: Optional[SparkConfig] = None,
    ) -> CompletionResult:
        """Answer an inline chat and replace its block with the response"""
        config = config or self.config
        logger.info("Executing inline chat %s in %s", chat.id, path)
        self._set_chat_status(path, chat.id, InlineChatStatus.PROCESSING)

        context = None
        try:
            context = self.context_loader.load(path, chat.mentions or [], config.context)
            result = await self._complete(
                context, chat.user_message, INLINE_CHAT_SYSTEM_PROMPT, ai_config=config.ai
            )
            self.result_writer.write_inline_chat_response(
                path, chat.id, chat.start_line, chat.end_line, result.content.strip()
            )
        except Exception as e:
            error = normalize_error(e)
            self._set_chat_status(path, chat.id, InlineChatStatus.ERROR)
            self.error_writer.write_error(e, path, chat.start_line, chat.user_message, context_counts(context))
            if error is e:
                raise
            raise error from e

        return result

    def _set_chat_status(self, path: str, chat_id: str, status: InlineChatStatus) -> None:
        try:
            self.result_writer.update_inline_chat_status(path, chat_id, status.value)
        except SparkError as e:
            logger.warning("Could not mark inline chat %s as %s: %s", chat_id, status.value, e)

    def select_provider(self, context: LoadedContext, ai_config: Optional[AIConfig] = None) -> BaseProvider:
        """
        Agent overrides get a fresh instance, otherwise the cached one.

        Falls back to the configured fallback_provider only when the primary
        backend cannot be constructed.
        """
        ai_config = ai_config or self.provider_factory.ai_config
        agent_ai = context.agent.ai_config if context.agent else None
        try:
            return self.provider_factory.create_with_agent_config(agent_ai, ai_config)
        except SparkError as e:
            if e.code not in _FALLBACK_CODES:
                raise
            primary = (agent_ai.provider if agent_ai else None) or ai_config.default_provider
            fallback = self.provider_factory.get_fallback_provider(primary, ai_config)
            if fallback is None:
                raise
            logger.warning("Provider %s unavailable (%s), using fallback %s", primary, e.code.value, fallback.name)
            return fallback

    def build_options(
        self,
        context: LoadedContext,
        prompt: str,
        system_prompt: Optional[str],
        command_name: Optional[str] = None,
    ) -> CompletionOptions:
        files: List[ContextFile] = [
            ContextFile(path=f.path, content=f.content, priority="high")
            for f in context.mentioned_files
        ]
        files.append(ContextFile(
            path=context.current_file.path,
            content=context.current_file.content,
            priority="medium",
            note="current file",
        ))
        files += [
            ContextFile(path=f.path, content=f.summary, priority="low", note=f"summary, distance {f.distance}")
            for f in context.nearby_files
        ]

        return CompletionOptions(
            prompt=prompt,
            system_prompt=system_prompt,
            context=ProviderContext(
                files=files,
                agent_persona=context.agent.persona if context.agent else None,
                additional_instructions=self._command_definition(command_name),
            ),
        )

    def _command_definition(self, name: Optional[str]) -> Optional[str]:
        """Body of .spark/commands/<name>.md when the command is defined"""
        if not name:
            return None
        path = self.context_loader.resolver.resolve_command(name)
        if not path:
            return None
        body = split_frontmatter(read_text_safe(path))[1].strip()
        return body or None

    async def _complete(
        self,
        context: LoadedContext,
        prompt: str,
        system_prompt: Optional[str],
        command_name: Optional[str] = None,
        ai_config: Optional[AIConfig] = None,
    ) -> CompletionResult:
        logger.debug(
            "Context loaded: %d mentioned, %d nearby, agent=%s",
            len(context.mentioned_files),
            len(context.nearby_files),
            context.agent is not None,
        )
        provider = self.select_provider(context, ai_config)
        options = self.build_options(context, prompt, system_prompt, command_name)

        result = await asyncio.to_thread(provider.complete, options)
        logger.info(
            "%s completed (%d input / %d output tokens)",
            provider.name,
            result.usage.input_tokens,
            result.usage.output_tokens,
        )
        return result
