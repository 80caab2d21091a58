"""OpenAI-compatible completion client implementation."""

import time
from collections.abc import AsyncIterator
from typing import Any

from openai import AsyncOpenAI, OpenAIError

from assistant_api.core.config import Settings
from assistant_api.core.logging import get_logger
from assistant_api.llm.base import BaseLLM, CompletionResult
from assistant_api.llm.errors import classify_error, user_message_for
from assistant_api.llm.usage import as_mapping, extract_usage

logger = get_logger(__name__)


def _elapsed_ms(start_time: float) -> int:
    return int(round((time.perf_counter() - start_time) * 1000))


class OpenAICompatLLM(BaseLLM):
    """OpenAI API-compatible completion client.

    Works against OpenAI and other OpenAI-compatible APIs (Ollama, Groq, ...).
    Every request sends the configured system instruction followed by the
    user input, with a fixed temperature and output cap. The SDK client is
    created on first use with automatic retries disabled.

    Example usage:
        llm = OpenAICompatLLM(Settings(openai_api_key="sk-...", llm_model="gpt-4o-mini"))
        result = await llm.complete("Explain list comprehensions")
    """

    def __init__(self, settings: Settings) -> None:
        """Initialize the client from explicit settings.

        Args:
            settings: Application settings carrying model and credentials.
        """
        self.settings = settings
        self.model = settings.llm_model
        self._client: AsyncOpenAI | None = None

        logger.info(
            "llm_client_initialized",
            model=self.model,
            base_url=settings.openai_base_url,
        )

    @property
    def client(self) -> AsyncOpenAI:
        """Lazily built SDK client.

        Credentials and endpoint come from settings only, never from the
        SDK's own OPENAI_* environment fallbacks.

        Raises:
            OpenAIError: No API key is configured.
        """
        if self._client is None:
            if not self.settings.openai_api_key:
                raise OpenAIError("The api_key client option must be set")
            self._client = AsyncOpenAI(
                api_key=self.settings.openai_api_key,
                base_url=self.settings.openai_base_url,
                timeout=self.settings.llm_timeout_seconds,
                max_retries=0,
            )
        return self._client

    def build_messages(self, input: str) -> list[dict[str, str]]:
        """Messages payload for a single-turn request."""
        return [
            {"role": "system", "content": self.settings.system_prompt},
            {"role": "user", "content": input},
        ]

    async def complete(self, input: str) -> CompletionResult:
        """Run one non-streaming completion.

        Never raises: provider failures come back as an error-flavored
        result (see CompletionResult.failure).

        Args:
            input: User prompt text.

        Returns:
            CompletionResult with text, token usage and timing.
        """
        logger.info("llm_complete_start", model=self.model, input_length=len(input))
        start_time = time.perf_counter()
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=self.build_messages(input),  # type: ignore[arg-type]
                temperature=self.settings.llm_temperature,
                max_tokens=self.settings.llm_max_tokens,
            )
        except Exception as e:
            response_time_ms = _elapsed_ms(start_time)
            kind = classify_error(e)
            logger.error(
                "llm_complete_error",
                model=self.model,
                kind=kind.value,
                error=str(e),
                latency_ms=response_time_ms,
            )
            return CompletionResult.failure(user_message_for(e), response_time_ms)

        response_time_ms = _elapsed_ms(start_time)
        data = as_mapping(response)
        text, finish_reason = _first_choice(data)
        usage = extract_usage(data)

        logger.info(
            "llm_completed",
            model=self.model,
            response_length=len(text),
            latency_ms=response_time_ms,
            total_tokens=usage.total_tokens,
            finish_reason=finish_reason,
        )
        return CompletionResult(
            text=text,
            total_tokens=usage.total_tokens,
            input_tokens=usage.input_tokens,
            output_tokens=usage.output_tokens,
            response_time_ms=response_time_ms,
            finish_reason=finish_reason,
        )

    async def stream_completion(self, input: str) -> AsyncIterator[str]:
        """Stream completion text chunks from the LLM.

        Args:
            input: User prompt text.

        Yields:
            str: Individual text chunks from the LLM response.
        """
        logger.info("llm_stream_start", model=self.model, input_length=len(input))

        stream = await self.client.chat.completions.create(
            model=self.model,
            messages=self.build_messages(input),  # type: ignore[arg-type]
            temperature=self.settings.llm_temperature,
            max_tokens=self.settings.llm_max_tokens,
            stream=True,
        )

        async for chunk in stream:
            if chunk.choices and chunk.choices[0].delta.content:
                yield chunk.choices[0].delta.content


def _first_choice(data: dict[str, Any]) -> tuple[str, str]:
    """Text and finish reason of the first choice, tolerating missing parts."""
    choices = data.get("choices") or []
    if not choices:
        return "", "stop"
    choice = as_mapping(choices[0])
    message = as_mapping(choice.get("message"))
    text = message.get("content") or ""
    finish_reason = choice.get("finish_reason") or "stop"
    return str(text), str(finish_reason)
