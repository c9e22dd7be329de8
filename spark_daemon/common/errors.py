"""
Error taxonomy for Spark

Every externally visible failure is normalized to a SparkError carrying a
human message, a machine-readable code and optional structured context.
The code drives the remediation suggestions shown in error reports.
"""

from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorCode(str, Enum):
    """Machine-readable error codes"""
    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    API_KEY_NOT_SET = "API_KEY_NOT_SET"
    CONFIG_ERROR = "CONFIG_ERROR"

    # Backend call failures
    AI_ERROR = "AI_ERROR"
    AI_NETWORK_ERROR = "AI_NETWORK_ERROR"
    AI_SERVER_ERROR = "AI_SERVER_ERROR"
    AI_CLIENT_ERROR = "AI_CLIENT_ERROR"

    # Document mutation
    RESULT_WRITE_ERROR = "RESULT_WRITE_ERROR"
    RESPONSE_WRITE_ERROR = "RESPONSE_WRITE_ERROR"
    STATUS_UPDATE_ERROR = "STATUS_UPDATE_ERROR"
    INVALID_LINE_NUMBER = "INVALID_LINE_NUMBER"
    INVALID_LINE_RANGE = "INVALID_LINE_RANGE"
    EMPTY_LINE = "EMPTY_LINE"
    FILE_NOT_FOUND = "FILE_NOT_FOUND"

    # Provider selection
    PROVIDER_NOT_FOUND = "PROVIDER_NOT_FOUND"
    PROVIDER_INIT_FAILED = "PROVIDER_INIT_FAILED"
    PROVIDER_NOT_CONFIGURED = "PROVIDER_NOT_CONFIGURED"
    PROVIDER_NOT_SPECIFIED = "PROVIDER_NOT_SPECIFIED"

    # Chat queue
    INVALID_QUEUE_FILE = "INVALID_QUEUE_FILE"


class SparkError(Exception):
    """Base error with a code and optional structured context"""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "code": self.code.value,
            "context": self.context,
        }


class BackendError(SparkError):
    """
    Failure reported by a language-model backend.

    Only the client class of failure is considered non-retryable. Nothing in
    Spark retries automatically; the flag is guidance for the caller.
    """

    @property
    def retryable(self) -> bool:
        return self.code != ErrorCode.AI_CLIENT_ERROR


def classify_backend_error(exc: BaseException) -> ErrorCode:
    """
    Classify a transport-level exception from any backend SDK.

    The SDKs share naming conventions (APIConnectionError, APITimeoutError)
    and expose the HTTP status as ``status_code`` or ``code``.
    """
    name = type(exc).__name__
    if isinstance(exc, (ConnectionError, TimeoutError)) or "Connection" in name or "Timeout" in name:
        return ErrorCode.AI_NETWORK_ERROR

    status = getattr(exc, "status_code", None)
    if status is None:
        status = getattr(exc, "code", None)
    if isinstance(status, int) and status >= 500:
        return ErrorCode.AI_SERVER_ERROR

    return ErrorCode.AI_CLIENT_ERROR


def backend_error_from(exc: BaseException, provider: str) -> BackendError:
    """Wrap an SDK exception as a classified BackendError"""
    code = classify_backend_error(exc)
    return BackendError(
        f"{provider} API error: {exc}",
        code,
        {"provider": provider, "original_error": repr(exc)},
    )


def normalize_error(error: BaseException) -> SparkError:
    """Normalize any exception to a SparkError"""
    if isinstance(error, SparkError):
        return error
    message = str(error) or type(error).__name__
    return SparkError(message, ErrorCode.UNKNOWN_ERROR, {"original_error": repr(error)})


_CONFIG_STEPS = [
    "Check your .spark/config.yaml file for syntax errors",
    "Ensure ai.providers contains the provider you reference",
    "Set ai.defaultProvider to one of your configured providers",
]

SUGGESTIONS: Dict[ErrorCode, List[str]] = {
    ErrorCode.API_KEY_NOT_SET: [
        "Add your API key to ~/.spark/secrets.yaml under api_keys.<provider-name>",
        "Or export the provider's key variable (ANTHROPIC_API_KEY, OPENAI_API_KEY, GOOGLE_API_KEY)",
        "Get your API key from your AI provider dashboard",
    ],
    ErrorCode.CONFIG_ERROR: _CONFIG_STEPS,
    ErrorCode.AI_NETWORK_ERROR: [
        "Check your internet connection",
        "Verify you can reach the AI provider API endpoint",
        "Check if a firewall or VPN is blocking the connection",
        "Re-save the document to run the command again once connectivity is back",
    ],
    ErrorCode.AI_SERVER_ERROR: [
        "This is a temporary server issue on the provider side",
        "Check your AI provider status page for any outages",
        "Re-save the document to run the command again",
    ],
    ErrorCode.AI_CLIENT_ERROR: [
        "Check your API key is valid and not expired",
        "Verify the configured model name exists for this provider",
        "Ensure the request is not over the provider's token limits",
    ],
    ErrorCode.RESULT_WRITE_ERROR: [
        "Check file permissions in your vault",
        "Ensure the file still exists and is not deleted",
        "Check if the file is open in another application",
        "Verify sufficient disk space is available",
    ],
    ErrorCode.RESPONSE_WRITE_ERROR: [
        "Check file permissions in your vault",
        "Ensure the inline chat block was not removed while the request ran",
    ],
    ErrorCode.EMPTY_LINE: [
        "The command line appears to be empty",
        "Ensure your command includes the full instruction",
    ],
    ErrorCode.FILE_NOT_FOUND: [
        "Verify the file path is correct",
        "Check if the file was moved or deleted",
    ],
    ErrorCode.PROVIDER_NOT_FOUND: [
        "Verify the provider type is one of: anthropic, openai, google",
        "Available providers are listed in the error details",
    ],
    ErrorCode.PROVIDER_INIT_FAILED: [
        "Check the error details for the specific issue",
        "Make sure the provider's SDK package is installed",
        "Add your API key to ~/.spark/secrets.yaml if missing",
    ],
    ErrorCode.PROVIDER_NOT_CONFIGURED: _CONFIG_STEPS,
    ErrorCode.PROVIDER_NOT_SPECIFIED: [
        "Set ai.defaultProvider in .spark/config.yaml",
        "Or specify a provider in the agent's ai: front-matter",
    ],
    ErrorCode.INVALID_QUEUE_FILE: [
        "Queue files need conversation_id and queue_id front-matter",
        "The message must be wrapped in <!-- spark-chat-message --> markers",
    ],
}


def get_suggestions(code: ErrorCode) -> List[str]:
    """Remediation steps for an error code (empty when none apply)"""
    return list(SUGGESTIONS.get(code, []))
