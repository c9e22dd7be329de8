"""
Configuration Management for Spark

Loads configuration from <vault>/.spark/config.yaml, secrets from
~/.spark/secrets.yaml and environment variables.
"""

import os
import logging
from pathlib import Path
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

logger = logging.getLogger("spark.common.config")

# Default paths
SECRETS_DIR = Path.home() / ".spark"
SECRETS_PATH = SECRETS_DIR / "secrets.yaml"

# Vault-relative layout
SPARK_DIR = ".spark"
CONFIG_FILE = "config.yaml"
AGENTS_DIR = "agents"
COMMANDS_DIR = "commands"
INTEGRATIONS_DIR = "integrations"
LOGS_DIR = "logs"
CHAT_QUEUE_DIR = "chat-queue"
CHAT_RESULTS_DIR = "chat-results"
NOTIFICATIONS_FILE = "notifications.jsonl"

DEFAULT_PROVIDER = "claude"
DEFAULT_MODEL = "claude-sonnet-4-5-20250929"

# Provider type -> environment variables holding its API key
PROVIDER_ENV_KEYS = {
    "anthropic": ["ANTHROPIC_API_KEY"],
    "openai": ["OPENAI_API_KEY"],
    "google": ["GOOGLE_API_KEY", "GEMINI_API_KEY"],
}


@dataclass
class ProviderSettings:
    """One named backend in ai.providers"""
    type: str = "anthropic"
    model: str = DEFAULT_MODEL
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None
    system_prompt: Optional[str] = None
    fallback_provider: Optional[str] = None
    options: Dict[str, Any] = field(default_factory=dict)


def _default_providers() -> Dict[str, ProviderSettings]:
    return {
        DEFAULT_PROVIDER: ProviderSettings(
            type="anthropic",
            model=DEFAULT_MODEL,
            max_tokens=4096,
            temperature=0.7,
        )
    }


@dataclass
class AIConfig:
    """Backend selection configuration"""
    default_provider: str = DEFAULT_PROVIDER
    providers: Dict[str, ProviderSettings] = field(default_factory=_default_providers)


@dataclass
class ResultsConfig:
    """How results are written back into documents"""
    add_blank_lines: bool = True


@dataclass
class ContextConfig:
    """Context assembly limits"""
    max_nearby_files: int = 10
    summary_chars: int = 500
    summary_min_cutoff: int = 100


@dataclass
class LoggingConfig:
    """Logging configuration"""
    level: str = "info"
    file: Optional[str] = None
    console: bool = True


@dataclass
class FeaturesConfig:
    """Per-directive kill switches"""
    slash_commands: bool = True
    inline_chat: bool = True
    chat_queue: bool = True


@dataclass
class SparkConfig:
    """Main Spark configuration"""
    ai: AIConfig = field(default_factory=AIConfig)
    results: ResultsConfig = field(default_factory=ResultsConfig)
    context: ContextConfig = field(default_factory=ContextConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    features: FeaturesConfig = field(default_factory=FeaturesConfig)


def _get(data: dict, *keys: str, default: Any = None) -> Any:
    """First present key wins (camelCase and snake_case spellings)"""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def _section(data: dict, key: str) -> dict:
    value = data.get(key)
    return value if isinstance(value, dict) else {}


def _parse_provider_settings(data: dict) -> ProviderSettings:
    """Parse one entry of ai.providers"""
    options = data.get("options")
    return ProviderSettings(
        type=str(data.get("type", "anthropic")),
        model=str(data.get("model", DEFAULT_MODEL)),
        max_tokens=_get(data, "maxTokens", "max_tokens"),
        temperature=_get(data, "temperature"),
        system_prompt=_get(data, "systemPrompt", "system_prompt"),
        fallback_provider=_get(data, "fallbackProvider", "fallback_provider"),
        options=dict(options) if isinstance(options, dict) else {},
    )


def _parse_ai_config(data: dict) -> AIConfig:
    """Parse ai section from config dict"""
    ai_data = _section(data, "ai")
    providers_data = _section(ai_data, "providers")

    providers = {
        name: _parse_provider_settings(settings or {})
        for name, settings in providers_data.items()
    }
    if not providers:
        providers = _default_providers()

    return AIConfig(
        default_provider=_get(ai_data, "defaultProvider", "default_provider", default=DEFAULT_PROVIDER),
        providers=providers,
    )


def _parse_results_config(data: dict) -> ResultsConfig:
    """Parse results section (top-level or under daemon.results)"""
    results_data = _section(data, "results") or _section(_section(data, "daemon"), "results")
    return ResultsConfig(
        add_blank_lines=bool(_get(results_data, "addBlankLines", "add_blank_lines", default=True)),
    )


def _parse_context_config(data: dict) -> ContextConfig:
    """Parse context section from config dict"""
    context_data = _section(data, "context")
    return ContextConfig(
        max_nearby_files=int(_get(context_data, "maxNearbyFiles", "max_nearby_files", default=10)),
        summary_chars=int(_get(context_data, "summaryChars", "summary_chars", default=500)),
        summary_min_cutoff=int(_get(context_data, "summaryMinCutoff", "summary_min_cutoff", default=100)),
    )


def _parse_logging_config(data: dict) -> LoggingConfig:
    """Parse logging section from config dict"""
    logging_data = _section(data, "logging")
    return LoggingConfig(
        level=str(logging_data.get("level", "info")),
        file=logging_data.get("file"),
        console=bool(logging_data.get("console", True)),
    )


def _parse_features_config(data: dict) -> FeaturesConfig:
    """Parse features section from config dict"""
    features_data = _section(data, "features")
    return FeaturesConfig(
        slash_commands=bool(_get(features_data, "slashCommands", "slash_commands", default=True)),
        inline_chat=bool(_get(features_data, "inlineChat", "inline_chat", default=True)),
        chat_queue=bool(_get(features_data, "chatQueue", "chat_queue", default=True)),
    )


def parse_config(data: dict) -> SparkConfig:
    """Build a SparkConfig from an already-loaded mapping"""
    return SparkConfig(
        ai=_parse_ai_config(data),
        results=_parse_results_config(data),
        context=_parse_context_config(data),
        logging=_parse_logging_config(data),
        features=_parse_features_config(data),
    )


def config_path(vault_path: Path) -> Path:
    return Path(vault_path) / SPARK_DIR / CONFIG_FILE


def load_config(vault_path: Path) -> SparkConfig:
    """
    Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables (SPARK_DEFAULT_PROVIDER, SPARK_LOG_LEVEL)
    2. Config file (<vault>/.spark/config.yaml)
    3. Default values
    """
    load_dotenv()
    config = SparkConfig()

    path = config_path(vault_path)
    if path.exists():
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            if isinstance(data, dict):
                config = parse_config(data)
            else:
                logger.warning("Config file %s is not a mapping, using defaults", path)
        except (yaml.YAMLError, OSError, ValueError, TypeError) as e:
            logger.warning("Failed to load config file %s: %s", path, e)

    if os.getenv("SPARK_DEFAULT_PROVIDER"):
        config.ai.default_provider = os.getenv("SPARK_DEFAULT_PROVIDER")
    if os.getenv("SPARK_LOG_LEVEL"):
        config.logging.level = os.getenv("SPARK_LOG_LEVEL")

    return config


def load_secrets(path: Optional[Path] = None) -> Dict[str, str]:
    """
    Load API keys from the secrets file.

    Returns a mapping of provider name to API key. A missing or malformed
    file yields an empty mapping.
    """
    path = Path(path) if path is not None else SECRETS_PATH
    if not path.exists():
        return {}

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (yaml.YAMLError, OSError) as e:
        logger.warning("Failed to load secrets file %s: %s", path, e)
        return {}

    api_keys = data.get("api_keys") if isinstance(data, dict) else None
    if not isinstance(api_keys, dict):
        return {}
    return {str(name): str(key) for name, key in api_keys.items() if key}


def resolve_api_key(provider_name: str, provider_type: str, secrets: Dict[str, str]) -> Optional[str]:
    """Per-name secret first, then the provider type's environment variables"""
    key = secrets.get(provider_name)
    if key:
        return key
    for env_var in PROVIDER_ENV_KEYS.get(provider_type, []):
        val = os.getenv(env_var)
        if val:
            return val
    return None


def ensure_directories(vault_path: Path) -> None:
    """Ensure required .spark directories exist"""
    spark_dir = Path(vault_path) / SPARK_DIR
    for name in (AGENTS_DIR, COMMANDS_DIR, LOGS_DIR, CHAT_QUEUE_DIR, CHAT_RESULTS_DIR):
        (spark_dir / name).mkdir(parents=True, exist_ok=True)
