"""
Spark Daemon pipeline

Glue between an external, already-debounced change source and the core:

    ChangeEvent -> FileParser -> pending commands / inline chats
                -> CommandExecutor -> ResultWriter / ErrorWriter

Every service is constructed here and passed by reference; nothing is a
process-wide singleton, so independent daemons (and tests) can run side by
side.
"""

import asyncio
import logging
import time
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

from .chat.queue_handler import ChatQueueHandler
from .common.config import SparkConfig, ensure_directories, load_config, load_secrets
from .common.logging_setup import configure_logging
from .context.context_loader import ContextLoader
from .execution.executor import CommandExecutor
from .parser.file_parser import FileParser, ParsedFile
from .providers.factory import ProviderFactory
from .providers.registry import ProviderRegistry, create_default_registry
from .results.error_writer import ErrorWriter
from .results.result_writer import ResultWriter

logger = logging.getLogger("spark.daemon")


class ChangeType(str, Enum):
    ADD = "add"
    CHANGE = "change"
    UNLINK = "unlink"


@dataclass
class ChangeEvent:
    """A debounced file change; path is relative to the vault"""
    path: str
    type: ChangeType
    timestamp: float = field(default_factory=time.time)


class SparkDaemon:

    def __init__(
        self,
        vault_path,
        config: Optional[SparkConfig] = None,
        registry: Optional[ProviderRegistry] = None,
        secrets: Optional[Dict[str, str]] = None,
    ):
        self.vault_path = Path(vault_path)
        self.config = config or SparkConfig()

        self.file_parser = FileParser()
        self.context_loader = ContextLoader(self.vault_path, self.config.context)
        self.provider_factory = ProviderFactory(
            registry or create_default_registry(),
            self.config.ai,
            secrets,
            self.vault_path,
        )
        self.result_writer = ResultWriter()
        self.error_writer = ErrorWriter(self.vault_path)
        self.executor = CommandExecutor(
            self.vault_path,
            self.config,
            self.context_loader,
            self.provider_factory,
            self.result_writer,
            self.error_writer,
        )
        self.chat_queue = ChatQueueHandler(self.vault_path, self.executor, self.file_parser.mention_parser)

        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Counter = Counter()
        # (path, key) -> runs dispatched and not yet finished; identical
        # commands in one file share a key
        self._in_flight: Counter = Counter()

    @classmethod
    def from_vault(cls, vault_path, secrets_path=None, registry: Optional[ProviderRegistry] = None) -> "SparkDaemon":
        """Load config and secrets for a vault and configure logging"""
        config = load_config(vault_path)
        configure_logging(config.logging, Path(vault_path))
        ensure_directories(vault_path)
        secrets = load_secrets(secrets_path)
        logger.info("Spark daemon configured for %s (provider %s)", vault_path, config.ai.default_provider)
        return cls(vault_path, config, registry, secrets)

    def reload_config(self, config: SparkConfig, secrets: Optional[Dict[str, str]] = None) -> None:
        """
        Whole-state swap. Runs already dispatched keep the config they were
        dispatched with (context, ai and results settings); API keys are
        always read from the current secrets.
        """
        self.config = config
        self.context_loader.config = config.context
        self.executor.update_config(config)
        self.provider_factory.update_config(config.ai, secrets)
        logger.info("Configuration reloaded")

    def _acquire_lock_ref(self, path: str) -> asyncio.Lock:
        lock = self._locks.get(path)
        if lock is None:
            lock = self._locks[path] = asyncio.Lock()
        self._lock_users[path] += 1
        return lock

    def _release_lock_ref(self, path: str) -> None:
        self._lock_users[path] -= 1
        if self._lock_users[path] <= 0:
            del self._lock_users[path]
            del self._locks[path]

    async def handle_change(self, event: ChangeEvent) -> int:
        """
        Process one change event.

        Returns:
            Number of directives dispatched
        """
        full_path = str(self.vault_path / event.path)
        logger.info("File %s: %s", event.type.value, event.path)

        if event.type == ChangeType.UNLINK:
            self.file_parser.frontmatter_parser.clear_cache(full_path)
            logger.debug("File deleted, skipping processing: %s", event.path)
            return 0

        config = self.config

        if self.chat_queue.is_chat_queue_file(event.path):
            if not config.features.chat_queue:
                return 0
            await self.chat_queue.process(event.path)
            return 1

        try:
            with open(full_path, encoding="utf-8") as f:
                content = f.read()
        except (OSError, UnicodeDecodeError) as e:
            logger.error("Error reading %s: %s", event.path, e)
            return 0

        parsed = self.file_parser.parse_file(full_path, content)
        self._log_frontmatter_changes(event.path, full_path, content)

        runs = self._collect_runs(parsed, config)
        if not runs:
            return 0

        logger.info("Dispatching %d directive(s) in %s", len(runs), event.path)
        await asyncio.gather(*(self._run_serialized(full_path, key, run) for key, run in runs))
        return len(runs)

    def _collect_runs(self, parsed: ParsedFile, config: SparkConfig) -> List[Tuple[str, Callable[[], Awaitable]]]:
        runs = []
        path = parsed.path
        # Occurrences seen in this parse, per key
        seen: Counter = Counter()

        def claim(key: str) -> bool:
            seen[key] += 1
            return seen[key] > self._in_flight[(path, key)]

        if config.features.slash_commands:
            for command in parsed.pending_commands:
                if not self.executor.should_execute(command):
                    continue
                key = f"command:{command.raw.strip()}"
                if not claim(key):
                    continue
                logger.debug("Command detected at line %d: /%s", command.line, command.command)
                runs.append((key, lambda c=command: self.executor.execute(c, path, config)))

        if config.features.inline_chat:
            for chat in parsed.pending_inline_chats:
                key = f"chat:{chat.id}"
                if not claim(key):
                    continue
                logger.debug("Inline chat detected at lines %d-%d: %s", chat.start_line, chat.end_line, chat.id)
                runs.append((key, lambda c=chat: self.executor.execute_inline_chat(c, path, config)))

        for key, _ in runs:
            self._in_flight[(path, key)] += 1
        return runs

    async def _run_serialized(self, path: str, key: str, run: Callable[[], Awaitable]) -> None:
        lock = self._acquire_lock_ref(path)
        try:
            async with lock:
                await run()
        except Exception as e:
            # Already reported to the document and error log by the executor
            logger.error("Execution failed for %s (%s): %s", path, key, e)
        finally:
            self._release_lock_ref(path)
            self._in_flight[(path, key)] -= 1
            if self._in_flight[(path, key)] <= 0:
                del self._in_flight[(path, key)]

    def _log_frontmatter_changes(self, relative_path: str, full_path: str, content: str) -> None:
        changes = self.file_parser.frontmatter_parser.detect_changes(full_path, content)
        if not changes:
            return
        logger.info("Found %d front-matter change(s) in %s", len(changes), relative_path)
        for change in changes:
            logger.debug("  %s: %r -> %r", change.field, change.old_value, change.new_value)
