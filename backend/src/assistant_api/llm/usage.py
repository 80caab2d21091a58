"""Token usage extraction from provider responses.

The response envelope differs between SDK versions and wrappers, so usage
is looked up by an ordered chain of extractors. Each extractor is a pure
function ``Mapping -> TokenUsage | None``; the first one returning a value
wins. No usage anywhere yields zeros.
"""

from collections.abc import Callable, Mapping
from typing import Any

from assistant_api.core.logging import get_logger
from assistant_api.llm.base import TokenUsage

logger = get_logger(__name__)

UsageExtractor = Callable[[Mapping[str, Any]], TokenUsage | None]

INPUT_KEYS = ("prompt_tokens", "input_tokens", "promptTokens", "inputTokens")
OUTPUT_KEYS = ("completion_tokens", "output_tokens", "completionTokens", "outputTokens")
TOTAL_KEYS = ("total_tokens", "totalTokens")


def as_mapping(raw: Any) -> dict[str, Any]:
    """Normalize an SDK response object (or dict) into a plain dict."""
    if raw is None:
        return {}
    if isinstance(raw, Mapping):
        return dict(raw)
    dump = getattr(raw, "model_dump", None)
    if callable(dump):
        data = dump()
        if isinstance(data, Mapping):
            return dict(data)
    if hasattr(raw, "__dict__"):
        return {k: v for k, v in vars(raw).items() if not k.startswith("_")}
    return {}


def _to_count(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    try:
        count = int(value)
    except (TypeError, ValueError):
        return 0
    return max(count, 0)


def _first_present(data: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


def usage_from_fields(data: Any) -> TokenUsage | None:
    """Read prompt/completion/total counts from a usage-shaped mapping.

    Returns None when none of the known count fields is present.
    """
    data = as_mapping(data)
    raw_input = _first_present(data, INPUT_KEYS)
    raw_output = _first_present(data, OUTPUT_KEYS)
    raw_total = _first_present(data, TOTAL_KEYS)
    if raw_input is None and raw_output is None and raw_total is None:
        return None

    input_tokens = _to_count(raw_input)
    output_tokens = _to_count(raw_output)
    if raw_total is not None:
        total_tokens = _to_count(raw_total)
    else:
        total_tokens = input_tokens + output_tokens
    return TokenUsage(
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        total_tokens=total_tokens,
    )


def _nested(data: Mapping[str, Any], *path: str) -> Any:
    current: Any = data
    for key in path:
        current = as_mapping(current).get(key)
        if current is None:
            return None
    return current


def from_direct_usage(response: Mapping[str, Any]) -> TokenUsage | None:
    """``response.usage`` (OpenAI SDK) or ``response.usage_metadata``."""
    for key in ("usage", "usage_metadata"):
        usage = usage_from_fields(response.get(key)) if response.get(key) else None
        if usage is not None:
            return usage
    return None


def from_response_metadata(response: Mapping[str, Any]) -> TokenUsage | None:
    """Usage nested under ``response_metadata``."""
    for key in ("usage_metadata", "usage", "token_usage"):
        nested = _nested(response, "response_metadata", key)
        if nested:
            usage = usage_from_fields(nested)
            if usage is not None:
                return usage
    return None


def from_legacy_llm_output(response: Mapping[str, Any]) -> TokenUsage | None:
    """Callback-era ``llm_output.token_usage`` / ``llmOutput.tokenUsage``."""
    for path in (("llm_output", "token_usage"), ("llmOutput", "tokenUsage")):
        nested = _nested(response, *path)
        if nested:
            usage = usage_from_fields(nested)
            if usage is not None:
                return usage
    return None


def from_token_like_fields(response: Mapping[str, Any]) -> TokenUsage | None:
    """Last resort: any top-level field whose key mentions "token"."""
    for key, value in response.items():
        if "token" not in key.lower() or not value:
            continue
        if not isinstance(value, Mapping) and not hasattr(value, "model_dump"):
            continue
        usage = usage_from_fields(value)
        if usage is not None:
            return usage
    return None


DEFAULT_EXTRACTORS: tuple[UsageExtractor, ...] = (
    from_direct_usage,
    from_response_metadata,
    from_legacy_llm_output,
    from_token_like_fields,
)


def extract_usage(
    response: Any,
    extractors: tuple[UsageExtractor, ...] = DEFAULT_EXTRACTORS,
) -> TokenUsage:
    """Extract token usage from a provider response.

    Args:
        response: Raw SDK response object or dict.
        extractors: Extractors tried in order.

    Returns:
        TokenUsage from the first extractor that finds data, else zeros.
    """
    data = as_mapping(response)
    for extractor in extractors:
        usage = extractor(data)
        if usage is not None:
            return usage

    logger.debug("token_usage_unavailable", fields=sorted(data))
    return TokenUsage()
