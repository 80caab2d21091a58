"""Completion client layer for the assistant."""

from assistant_api.llm.base import BaseLLM, CompletionResult, TokenUsage
from assistant_api.llm.openai_compat import OpenAICompatLLM

__all__ = ["BaseLLM", "CompletionResult", "TokenUsage", "OpenAICompatLLM"]
