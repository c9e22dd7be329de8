"""
Provider Factory

Turns the ai configuration into provider instances. Instances are cached by
provider name until the cache is cleared or the configuration is swapped;
per-agent overrides always get a fresh, uncached instance.
"""

import logging
from typing import Dict, Optional

from ..common.config import AIConfig, ProviderSettings, resolve_api_key
from ..common.errors import ErrorCode, SparkError
from ..context.types import AgentAIConfig
from .base import BaseProvider, ProviderConfig
from .registry import ProviderRegistry

logger = logging.getLogger("spark.providers.factory")


class ProviderFactory:

    def __init__(
        self,
        registry: ProviderRegistry,
        ai_config: AIConfig,
        secrets: Optional[Dict[str, str]] = None,
        vault_path=None,
    ):
        self.registry = registry
        self.ai_config = ai_config
        self.secrets = secrets or {}
        self.vault_path = vault_path
        self._cache: Dict[str, BaseProvider] = {}

    def get_provider(self, name: str, config: ProviderConfig) -> BaseProvider:
        cached = self._cache.get(name)
        if cached is not None:
            logger.debug("Using cached provider: %s", name)
            return cached

        provider = self.registry.create_provider(name, config)
        self._cache[name] = provider
        return provider

    def _settings(self, ai_config: AIConfig, name: str) -> ProviderSettings:
        settings = ai_config.providers.get(name)
        if settings is None:
            raise SparkError(
                f"Provider '{name}' not configured",
                ErrorCode.PROVIDER_NOT_CONFIGURED,
                {"configured_providers": list(ai_config.providers)},
            )
        return settings

    def convert_configuration(self, name: str, settings: ProviderSettings) -> ProviderConfig:
        """ProviderSettings from the config file plus the API key from secrets or env"""
        options = dict(settings.options)
        if self.vault_path is not None:
            options["vault_path"] = str(self.vault_path)

        return ProviderConfig(
            name=name,
            type=settings.type,
            model=settings.model,
            api_key=resolve_api_key(name, settings.type, self.secrets),
            max_tokens=settings.max_tokens,
            temperature=settings.temperature,
            system_prompt=settings.system_prompt,
            fallback_provider=settings.fallback_provider,
            options=options,
        )

    def create_from_config(self, provider_name: Optional[str] = None) -> BaseProvider:
        ai_config = self.ai_config
        target = provider_name or ai_config.default_provider
        if not target:
            raise SparkError(
                "No provider specified",
                ErrorCode.PROVIDER_NOT_SPECIFIED,
                {"available_providers": self.registry.get_provider_names()},
            )

        settings = self._settings(ai_config, target)
        return self.get_provider(target, self.convert_configuration(target, settings))

    def _get_or_create(self, name: str, config: ProviderConfig, ai_config: AIConfig) -> BaseProvider:
        # The cache only holds instances built from the current ai_config
        if ai_config is self.ai_config:
            return self.get_provider(name, config)
        logger.debug("Creating %s from a superseded configuration (bypassing cache)", name)
        return self.registry.create_provider(name, config)

    def create_with_agent_config(
        self,
        agent_ai: Optional[AgentAIConfig] = None,
        ai_config: Optional[AIConfig] = None,
    ) -> BaseProvider:
        ai_config = ai_config or self.ai_config
        name = (agent_ai.provider if agent_ai else None) or ai_config.default_provider
        logger.debug(
            "Selecting provider %s (agent requested %s, default %s)",
            name,
            agent_ai.provider if agent_ai else None,
            ai_config.default_provider,
        )

        settings = self._settings(ai_config, name)
        config = self.convert_configuration(name, settings)

        if agent_ai is None or not agent_ai.has_overrides:
            return self._get_or_create(name, config, ai_config)

        overridden = config.model_copy(update={
            "model": agent_ai.model or config.model,
            "temperature": agent_ai.temperature if agent_ai.temperature is not None else config.temperature,
            "max_tokens": agent_ai.max_tokens if agent_ai.max_tokens is not None else config.max_tokens,
        })
        logger.debug("Creating %s with agent overrides (bypassing cache)", name)
        return self.registry.create_provider(name, overridden)

    def get_fallback_provider(self, primary_name: str, ai_config: Optional[AIConfig] = None) -> Optional[BaseProvider]:
        ai_config = ai_config or self.ai_config
        primary = ai_config.providers.get(primary_name)
        if primary is None or not primary.fallback_provider:
            return None

        fallback_name = primary.fallback_provider
        fallback = ai_config.providers.get(fallback_name)
        if fallback is None:
            logger.warning("Fallback provider %s for %s not configured", fallback_name, primary_name)
            return None

        try:
            return self._get_or_create(
                fallback_name, self.convert_configuration(fallback_name, fallback), ai_config
            )
        except SparkError as e:
            logger.error("Failed to create fallback provider %s: %s", fallback_name, e)
            return None

    def check_health(self, provider_name: str) -> bool:
        try:
            return self.create_from_config(provider_name).is_healthy()
        except SparkError as e:
            logger.error("Health check failed for %s: %s", provider_name, e)
            return False

    def clear_cache(self) -> None:
        self._cache.clear()
        logger.debug("Provider cache cleared")

    def remove_from_cache(self, name: str) -> bool:
        return self._cache.pop(name, None) is not None

    def update_config(self, ai_config: AIConfig, secrets: Optional[Dict[str, str]] = None) -> None:
        """Swap configuration wholesale; cached instances are dropped"""
        self.ai_config = ai_config
        if secrets is not None:
            self.secrets = secrets
        self.clear_cache()
