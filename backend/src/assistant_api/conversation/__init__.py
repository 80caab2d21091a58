"""Conversation persistence and titling."""

from assistant_api.conversation.store import (
    ChatStats,
    ConversationStore,
    ConversationSummary,
    MessageMetadata,
    MessageUsage,
    Principal,
)
from assistant_api.conversation.titles import generate_conversation_title

__all__ = [
    "ChatStats",
    "ConversationStore",
    "ConversationSummary",
    "MessageMetadata",
    "MessageUsage",
    "Principal",
    "generate_conversation_title",
]
