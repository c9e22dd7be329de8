"""
Spark Context Module

Resolves mentions and assembles relevance-ranked context bundles.
"""

from .types import (
    LoadedContext,
    CurrentFileContext,
    MentionedFile,
    NearbyFile,
    AgentContext,
    AgentAIConfig,
    ServiceConnection,
)
from .path_resolver import PathResolver
from .proximity import ProximityCalculator
from .context_loader import ContextLoader, summarize, read_text_safe

__all__ = [
    "LoadedContext",
    "CurrentFileContext",
    "MentionedFile",
    "NearbyFile",
    "AgentContext",
    "AgentAIConfig",
    "ServiceConnection",
    "PathResolver",
    "ProximityCalculator",
    "ContextLoader",
    "summarize",
    "read_text_safe",
]
