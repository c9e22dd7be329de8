"""
Spark Common Module

Shared infrastructure: configuration, error taxonomy and logging setup.
"""

from .config import (
    SparkConfig,
    AIConfig,
    ProviderSettings,
    ResultsConfig,
    ContextConfig,
    LoggingConfig,
    FeaturesConfig,
    load_config,
    load_secrets,
    resolve_api_key,
    ensure_directories,
)
from .errors import (
    ErrorCode,
    SparkError,
    BackendError,
    classify_backend_error,
    normalize_error,
    get_suggestions,
)
from .logging_setup import configure_logging

__all__ = [
    "SparkConfig",
    "AIConfig",
    "ProviderSettings",
    "ResultsConfig",
    "ContextConfig",
    "LoggingConfig",
    "FeaturesConfig",
    "load_config",
    "load_secrets",
    "resolve_api_key",
    "ensure_directories",
    "ErrorCode",
    "SparkError",
    "BackendError",
    "classify_backend_error",
    "normalize_error",
    "get_suggestions",
    "configure_logging",
]
