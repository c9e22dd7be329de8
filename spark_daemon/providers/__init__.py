"""
Spark Providers Module

Pluggable language-model backends: registry, factory and the Anthropic,
OpenAI and Google implementations.
"""

from .base import (
    BaseProvider,
    ProviderConfig,
    CompletionOptions,
    CompletionResult,
    ProviderContext,
    ContextFile,
    Usage,
    render_prompt,
)
from .anthropic_provider import AnthropicProvider
from .openai_provider import OpenAIProvider
from .google_provider import GoogleProvider
from .registry import ProviderRegistry, ProviderRegistration, create_default_registry
from .factory import ProviderFactory

__all__ = [
    "BaseProvider",
    "ProviderConfig",
    "CompletionOptions",
    "CompletionResult",
    "ProviderContext",
    "ContextFile",
    "Usage",
    "render_prompt",
    "AnthropicProvider",
    "OpenAIProvider",
    "GoogleProvider",
    "ProviderRegistry",
    "ProviderRegistration",
    "create_default_registry",
    "ProviderFactory",
]
