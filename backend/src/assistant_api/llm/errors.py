"""Classification of provider errors into user-facing messages."""

import re
from enum import Enum

from openai import APITimeoutError


class ProviderErrorKind(str, Enum):
    AUTHENTICATION = "authentication"
    MODEL_NOT_FOUND = "model_not_found"
    RATE_LIMITED = "rate_limited"
    TIMEOUT = "timeout"
    AUTHENTICATION_FAILED = "authentication_failed"
    GENERIC = "generic"


ERROR_MESSAGES: dict[ProviderErrorKind, str] = {
    ProviderErrorKind.AUTHENTICATION: (
        "Authentication error: Please check your OpenAI API key configuration."
    ),
    ProviderErrorKind.MODEL_NOT_FOUND: (
        "Model configuration error: The requested model is not available."
    ),
    ProviderErrorKind.RATE_LIMITED: (
        "Rate limit exceeded: Please wait a moment and try again."
    ),
    ProviderErrorKind.TIMEOUT: (
        "Request timeout: The AI service took too long to respond. Please try again."
    ),
    ProviderErrorKind.AUTHENTICATION_FAILED: (
        "Authentication failed: Please verify your API credentials."
    ),
    ProviderErrorKind.GENERIC: (
        "I apologize, but I encountered an error while processing your request. "
        "Please try again."
    ),
}

_MODEL_MISSING_MARKERS = ("not found", "does not exist")
# The model itself is rejected, as opposed to "... is not supported with this model"
_MODEL_UNSUPPORTED = re.compile(r"unsupported model|model\b.*\bnot supported")


def _status_of(error: BaseException) -> int | None:
    status = getattr(error, "status_code", None)
    if status is None:
        status = getattr(error, "status", None)
    return status if isinstance(status, int) else None


def _is_model_missing(message: str) -> bool:
    if "model_not_found" in message:
        return True
    if "model" not in message:
        return False
    if any(m in message for m in _MODEL_MISSING_MARKERS):
        return True
    return _MODEL_UNSUPPORTED.search(message) is not None


def classify_error(error: BaseException) -> ProviderErrorKind:
    """Map an exception to a provider error kind. First match wins."""
    message = str(error).lower()
    status = _status_of(error)

    if "api key" in message or "api_key" in message:
        return ProviderErrorKind.AUTHENTICATION
    if _is_model_missing(message):
        return ProviderErrorKind.MODEL_NOT_FOUND
    if "rate limit" in message or status == 429:
        return ProviderErrorKind.RATE_LIMITED
    if isinstance(error, APITimeoutError) or "timeout" in message or "timed out" in message:
        return ProviderErrorKind.TIMEOUT
    if status == 401:
        return ProviderErrorKind.AUTHENTICATION_FAILED
    return ProviderErrorKind.GENERIC


def user_message_for(error: BaseException) -> str:
    """User-facing message for an exception raised by the provider call."""
    return ERROR_MESSAGES[classify_error(error)]
