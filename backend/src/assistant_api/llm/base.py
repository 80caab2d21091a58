"""Base classes for the completion client layer."""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass

FINISH_REASON_ERROR = "error"


@dataclass(frozen=True)
class TokenUsage:
    """Token accounting reported by the provider."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0


@dataclass(frozen=True)
class CompletionResult:
    """Model output plus usage and timing metadata.

    On failure ``text`` carries a user-facing message, every count is zero
    and ``finish_reason`` is ``"error"``.
    """

    text: str
    total_tokens: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    response_time_ms: int = 0
    finish_reason: str = "stop"

    @property
    def is_error(self) -> bool:
        return self.finish_reason == FINISH_REASON_ERROR

    @classmethod
    def failure(cls, message: str, response_time_ms: int = 0) -> "CompletionResult":
        """Build an error-flavored result with zeroed usage."""
        return cls(
            text=message,
            response_time_ms=response_time_ms,
            finish_reason=FINISH_REASON_ERROR,
        )


class BaseLLM(ABC):
    """Abstract base class for completion clients.

    ``complete`` never raises; ``stream_completion`` lets provider errors
    propagate so the caller can abort the stream.
    """

    model: str

    @abstractmethod
    async def complete(self, input: str) -> CompletionResult:
        """Turn a prompt into model output plus usage metadata."""

    @abstractmethod
    async def stream_completion(self, input: str) -> AsyncIterator[str]:
        """Stream completion text chunks from the LLM.

        Args:
            input: User prompt text.

        Yields:
            str: Text chunks as produced by the provider.
        """
        pass
        # Make this an async generator
        yield ""  # pragma: no cover
