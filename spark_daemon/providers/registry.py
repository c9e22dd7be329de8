"""
Provider Registry

Maps provider names and types to factories. Constructed explicitly and
passed to whoever needs it; there is no process-wide instance.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from ..common.errors import ErrorCode, SparkError
from .anthropic_provider import AnthropicProvider
from .base import BaseProvider, ProviderConfig
from .google_provider import GoogleProvider
from .openai_provider import OpenAIProvider

logger = logging.getLogger("spark.providers.registry")

ProviderFactoryFunction = Callable[[ProviderConfig], BaseProvider]


@dataclass
class ProviderRegistration:
    name: str
    type: str
    factory: ProviderFactoryFunction
    default_config: Dict[str, Any] = field(default_factory=dict)


class ProviderRegistry:

    def __init__(self):
        self._registrations: Dict[str, ProviderRegistration] = {}

    def register(self, registration: ProviderRegistration) -> None:
        if registration.name in self._registrations:
            logger.warning("Overwriting existing provider registration: %s", registration.name)
        self._registrations[registration.name] = registration
        logger.debug("Provider registered: %s (%s)", registration.name, registration.type)

    def register_provider(
        self,
        name: str,
        provider_type: str,
        factory: ProviderFactoryFunction,
        default_config: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.register(ProviderRegistration(name, provider_type, factory, default_config or {}))

    def get(self, name: str) -> Optional[ProviderRegistration]:
        return self._registrations.get(name)

    def has(self, name: str) -> bool:
        return name in self._registrations

    def get_provider_names(self) -> List[str]:
        return list(self._registrations)

    def get_providers_by_type(self, provider_type: str) -> List[ProviderRegistration]:
        return [r for r in self._registrations.values() if r.type == provider_type]

    def find(self, name: str, provider_type: Optional[str] = None) -> Optional[ProviderRegistration]:
        """Lookup by name, then by provider type"""
        registration = self.get(name)
        if registration is None and provider_type:
            by_type = self.get_providers_by_type(provider_type)
            registration = by_type[0] if by_type else None
        return registration

    def create_provider(self, name: str, config: ProviderConfig) -> BaseProvider:
        """
        Build a provider instance.

        Registration defaults are filled in under the given config.

        Raises:
            SparkError: PROVIDER_NOT_FOUND when nothing is registered for the
                name or type; PROVIDER_INIT_FAILED when the factory fails for a
                reason other than a SparkError (which passes through)
        """
        registration = self.find(name, config.type)
        if registration is None:
            raise SparkError(
                f"Provider '{name}' not registered",
                ErrorCode.PROVIDER_NOT_FOUND,
                {"available_providers": self.get_provider_names(), "type": config.type},
            )

        merged = {
            **registration.default_config,
            **config.model_dump(exclude_none=True),
            "name": name,
            "type": registration.type,
        }

        try:
            provider = registration.factory(ProviderConfig(**merged))
        except SparkError:
            raise
        except Exception as e:
            logger.error("Failed to create provider %s: %s", name, e)
            raise SparkError(
                f"Failed to create provider '{name}': {e}",
                ErrorCode.PROVIDER_INIT_FAILED,
                {"provider": name, "original_error": repr(e)},
            ) from e

        logger.info("Provider created: %s (%s)", name, registration.type)
        return provider

    def unregister(self, name: str) -> bool:
        return self._registrations.pop(name, None) is not None

    def clear(self) -> None:
        self._registrations.clear()


def create_default_registry() -> ProviderRegistry:
    """Registry with the anthropic, openai and google backends"""
    registry = ProviderRegistry()
    registry.register_provider("anthropic", "anthropic", AnthropicProvider)
    registry.register_provider("openai", "openai", OpenAIProvider)
    registry.register_provider("google", "google", GoogleProvider)
    return registry
