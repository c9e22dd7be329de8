"""
Base Provider

Backend-neutral completion interface. Concrete providers wrap one vendor
SDK; the shared renderer turns the context bundle into tagged sections
ahead of the prompt so every backend sees the same layout.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from ..common.errors import ErrorCode, SparkError, backend_error_from

logger = logging.getLogger("spark.providers.base")

DEFAULT_MAX_TOKENS = 4096
DEFAULT_TEMPERATURE = 0.7

Priority = Literal["high", "medium", "low"]


class ProviderConfig(BaseModel):
    """Resolved configuration for one provider instance"""
    name: str
    type: str
    model: str
    api_key: Optional[str] = Field(default=None, repr=False)
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None
    system_prompt: Optional[str] = None
    fallback_provider: Optional[str] = None
    options: Dict[str, Any] = Field(default_factory=dict)


class ContextFile(BaseModel):
    path: str
    content: str
    priority: Priority = "medium"
    note: Optional[str] = None


class ProviderContext(BaseModel):
    files: List[ContextFile] = Field(default_factory=list)
    agent_persona: Optional[str] = None
    additional_instructions: Optional[str] = None


class CompletionOptions(BaseModel):
    prompt: str
    system_prompt: Optional[str] = None
    model: Optional[str] = None
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None
    context: ProviderContext = Field(default_factory=ProviderContext)


class Usage(BaseModel):
    input_tokens: int = 0
    output_tokens: int = 0


class CompletionResult(BaseModel):
    content: str
    usage: Usage = Field(default_factory=Usage)


def _render_file(file: ContextFile) -> List[str]:
    note = f' note="{file.note}"' if file.note else ""
    return [f'<file path="{file.path}"{note}>', file.content, "</file>", ""]


def render_prompt(options: CompletionOptions) -> str:
    """
    Lay out persona, instructions and context files ahead of the prompt.

    Files are grouped high, medium, low; empty groups are omitted.
    """
    sections: List[str] = []
    context = options.context

    if context.agent_persona:
        sections += ["<agent_persona>", context.agent_persona, "</agent_persona>", ""]

    if context.additional_instructions:
        sections += [
            "<additional_instructions>",
            context.additional_instructions,
            "</additional_instructions>",
            "",
        ]

    for priority in ("high", "medium", "low"):
        files = [f for f in context.files if f.priority == priority]
        if not files:
            continue
        sections.append(f'<context priority="{priority}">')
        for file in files:
            sections += _render_file(file)
        sections += ["</context>", ""]

    sections.append(options.prompt)
    return "\n".join(sections)


class BaseProvider(ABC):
    """
    Abstract base class for language-model backends.

    Each provider must implement:
    - _create_client: Build the vendor SDK client from an API key
    - _complete: Run one completion and return content plus token usage
    """

    provider_type = "other"
    models: List[str] = []

    def __init__(self, config: ProviderConfig):
        self.config = config
        self.name = config.name

        if not config.api_key:
            raise SparkError(
                f"API key not provided for provider '{config.name}'",
                ErrorCode.API_KEY_NOT_SET,
                {"provider": config.name, "type": config.type},
            )

        self._client = self._create_client(config.api_key)
        logger.debug("%s initialized (model=%s)", self.name, config.model)

    @abstractmethod
    def _create_client(self, api_key: str) -> Any:
        pass

    @abstractmethod
    def _complete(
        self,
        prompt: str,
        system: Optional[str],
        model: str,
        max_tokens: int,
        temperature: float,
    ) -> CompletionResult:
        pass

    def system_prompt_for(self, options: CompletionOptions) -> Optional[str]:
        """Configured system prompt followed by the per-call one"""
        parts = [p for p in (self.config.system_prompt, options.system_prompt) if p]
        return "\n\n".join(parts) or None

    def complete(self, options: CompletionOptions) -> CompletionResult:
        """
        Run a completion. Blocking; callers on the event loop run it in a thread.

        Raises:
            BackendError: SDK failure classified as network, server or client
        """
        model = options.model or self.config.model
        max_tokens = options.max_tokens or self.config.max_tokens or DEFAULT_MAX_TOKENS
        temperature = options.temperature
        if temperature is None:
            temperature = self.config.temperature
        if temperature is None:
            temperature = DEFAULT_TEMPERATURE

        try:
            return self._complete(
                render_prompt(options),
                self.system_prompt_for(options),
                model,
                max_tokens,
                temperature,
            )
        except SparkError:
            raise
        except Exception as e:
            error = backend_error_from(e, self.name)
            logger.warning("%s completion failed (%s): %s", self.name, error.code.value, e)
            raise error from e

    def supports_tools(self) -> bool:
        return False

    def supports_file_operations(self) -> bool:
        return False

    def available_models(self) -> List[str]:
        return list(self.models)

    def supports_fallback(self) -> bool:
        return self.config.fallback_provider is not None

    @property
    def fallback_provider(self) -> Optional[str]:
        return self.config.fallback_provider

    def is_healthy(self) -> bool:
        """Minimal round-trip against the backend"""
        try:
            self._complete("Test", None, self.config.model, 10, 0.0)
            return True
        except Exception as e:
            logger.error("Health check failed for %s: %s", self.name, e)
            return False
