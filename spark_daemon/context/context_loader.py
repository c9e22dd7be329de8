"""
Context Loader

Composes the context bundle for one execution:
1. The current file (best-effort read)
2. Explicitly mentioned agents, files, folders and services
3. Proximity-ranked nearby files, summarized

Context assembly never aborts a run: unreadable files contribute empty
content and unresolvable mentions are left out.
"""

import logging
from typing import Any, Dict, List, Optional

from ..common.config import ContextConfig
from ..parser.frontmatter_parser import split_frontmatter
from ..parser.types import Mention, MentionType
from .path_resolver import PathResolver
from .proximity import ProximityCalculator
from .types import (
    AgentAIConfig,
    AgentContext,
    CurrentFileContext,
    LoadedContext,
    MentionedFile,
    NearbyFile,
    ServiceConnection,
)

logger = logging.getLogger("spark.context.context_loader")

FILE_PRIORITY = 1.0
FOLDER_PRIORITY = 0.9
DEFAULT_ROLE = "a helpful assistant"

# (front-matter key, rendered label)
PERSONA_FIELDS = [
    ("name", "Name"),
    ("role", "Role"),
    ("expertise", "Expertise"),
    ("tools", "Available Tools"),
    ("context_folders", "Context Folders"),
]


def read_text_safe(path: str) -> str:
    """Read a UTF-8 file; failures degrade to an empty string"""
    try:
        with open(path, encoding="utf-8") as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Failed to read file for context %s: %s", path, e)
        return ""


def summarize(content: str, max_chars: int = 500, min_cutoff: int = 100) -> str:
    """
    Short summary of a nearby document.

    Documents that fit are returned unchanged. Longer ones are cut to
    max_chars and, when a sentence or paragraph boundary lies beyond
    min_cutoff, trimmed back to it.
    """
    if len(content) <= max_chars:
        return content

    truncated = content[:max_chars]
    cutoff = max(truncated.rfind("."), truncated.rfind("\n"))
    if cutoff > min_cutoff:
        return truncated[:cutoff + 1] + "..."
    return truncated + "..."


def format_persona(metadata: Dict[str, Any], body: str) -> str:
    parts = []
    for key, label in PERSONA_FIELDS:
        value = metadata.get(key)
        if not value:
            continue
        if isinstance(value, list):
            parts.append(f"{label}: {', '.join(str(v) for v in value)}")
        else:
            parts.append(f"{label}: {value}")

    if parts:
        return "\n".join(parts) + "\n\n" + body
    return body


def parse_agent_ai_config(metadata: Dict[str, Any]) -> Optional[AgentAIConfig]:
    ai = metadata.get("ai")
    if not isinstance(ai, dict):
        return None
    max_tokens = ai.get("maxTokens", ai.get("max_tokens"))
    return AgentAIConfig(
        provider=ai.get("provider"),
        model=ai.get("model"),
        temperature=ai.get("temperature"),
        max_tokens=max_tokens,
    )


class ContextLoader:
    """Builds a LoadedContext for a file and its mentions"""

    def __init__(
        self,
        vault_path,
        config: Optional[ContextConfig] = None,
        resolver: Optional[PathResolver] = None,
        proximity: Optional[ProximityCalculator] = None,
    ):
        self.config = config or ContextConfig()
        self.resolver = resolver or PathResolver(vault_path)
        self.proximity = proximity or ProximityCalculator()

    def load(
        self,
        current_file: str,
        mentions: List[Mention],
        config: Optional[ContextConfig] = None,
    ) -> LoadedContext:
        """Context for one run; config defaults to the loader's current settings"""
        config = config or self.config
        context = LoadedContext(
            current_file=CurrentFileContext(path=current_file, content=read_text_safe(current_file)),
        )

        for mention in mentions:
            self._load_mention(mention, context)

        self._load_nearby_files(current_file, context, config)
        return context

    def _load_mention(self, mention: Mention, context: LoadedContext) -> None:
        if mention.type == MentionType.AGENT:
            self._load_agent(mention.value, context)
        elif mention.type == MentionType.FILE:
            path = self.resolver.resolve_file(mention.value)
            if path:
                self._add_file(context, path, FILE_PRIORITY)
        elif mention.type == MentionType.FOLDER:
            folder = self.resolver.resolve_folder(mention.value)
            if folder:
                for path in self.resolver.get_files_in_folder(folder):
                    self._add_file(context, path, FOLDER_PRIORITY)
        elif mention.type == MentionType.SERVICE:
            if not any(s.name == mention.value for s in context.service_connections):
                context.service_connections.append(
                    ServiceConnection(name=mention.value, target=f"mcp-{mention.value}")
                )
        # Commands are resolved by the executor, not loaded as context

    def _add_file(self, context: LoadedContext, path: str, priority: float) -> None:
        for existing in context.mentioned_files:
            if existing.path == path:
                existing.priority = max(existing.priority, priority)
                return
        context.mentioned_files.append(
            MentionedFile(path=path, content=read_text_safe(path), priority=priority)
        )

    def _load_agent(self, name: str, context: LoadedContext) -> None:
        if context.agent is not None:
            logger.debug("Agent @%s ignored, %s already selected", name, context.agent.path)
            return

        path = self.resolver.resolve_agent(name)
        if not path:
            logger.debug("Agent @%s not found", name)
            return

        content = read_text_safe(path)
        if not content.strip():
            return

        metadata, body = split_frontmatter(content)
        if body == content:
            # Plain agent document without front-matter
            context.agent = AgentContext(path=path, persona=content.strip())
            return

        body = body.strip()
        if not body:
            display_name = metadata.get("name") or name
            role = metadata.get("role") or DEFAULT_ROLE
            body = f"You are {display_name}, {role}."

        context.agent = AgentContext(
            path=path,
            persona=format_persona(metadata, body),
            ai_config=parse_agent_ai_config(metadata),
        )

    def _load_nearby_files(self, current_file: str, context: LoadedContext, config: ContextConfig) -> None:
        excluded = {current_file}
        excluded.update(f.path for f in context.mentioned_files)
        if context.agent:
            excluded.add(context.agent.path)

        candidates = [
            path for path in self.resolver.get_all_vault_files()
            if path not in excluded
        ]
        ranked = self.proximity.rank_files_by_proximity(current_file, candidates)

        for path in ranked[:config.max_nearby_files]:
            context.nearby_files.append(NearbyFile(
                path=path,
                summary=summarize(
                    read_text_safe(path),
                    config.summary_chars,
                    config.summary_min_cutoff,
                ),
                distance=self.proximity.calculate_distance(current_file, path),
            ))
