"""Conversation store: ordered per-conversation message log with titles.

A conversation is the set of chat messages sharing a caller-chosen
conversation id. Every operation takes the request principal explicitly;
``None`` means the caller could not be authenticated.
"""

from dataclasses import dataclass
from datetime import datetime

from sqlmodel import Session

from assistant_api.conversation.titles import generate_conversation_title
from assistant_api.core.errors import (
    InputValidationError,
    NoUserMessagesError,
    NotFoundOrForbiddenError,
    UnauthenticatedError,
)
from assistant_api.core.logging import get_logger
from assistant_api.db.models import MESSAGE_ROLES, ChatMessage, generate_conversation_id
from assistant_api.db.repository import ChatMessageRepository

logger = get_logger(__name__)


@dataclass(frozen=True)
class Principal:
    """Authenticated caller, resolved once per request."""

    user_id: str
    external_id: str


@dataclass(frozen=True)
class MessageUsage:
    tokens_used: int | None = None
    response_time_ms: int | None = None


@dataclass(frozen=True)
class MessageMetadata:
    user_agent: str | None = None
    ip_address: str | None = None
    session_id: str | None = None
    timestamp: int | None = None


@dataclass
class ConversationSummary:
    """Derived view of one conversation.

    ``created_at`` is the timestamp of the most recent message, i.e. the
    last activity; summaries are sorted on it.
    """

    conversation_id: str
    last_message: ChatMessage
    message_count: int
    created_at: datetime


@dataclass(frozen=True)
class ChatStats:
    total_messages: int = 0
    total_conversations: int = 0
    total_tokens_used: int = 0
    average_response_time_ms: float = 0.0
    last_activity: datetime | None = None


def _require(principal: Principal | None) -> Principal:
    if principal is None:
        raise UnauthenticatedError()
    return principal


class ConversationStore:
    """Store operations over chat messages."""

    def __init__(self, session: Session):
        self.messages = ChatMessageRepository(session)

    @staticmethod
    def generate_conversation_id() -> str:
        return generate_conversation_id()

    def append_message(
        self,
        principal: Principal | None,
        role: str,
        content: str,
        conversation_id: str,
        model: str,
        usage: MessageUsage | None = None,
        metadata: MessageMetadata | None = None,
    ) -> int:
        """Append a message to a conversation.

        The first user message of a fresh conversation gets a derived
        title; later messages copy forward the existing title, if any.

        Args:
            principal: Authenticated caller
            role: "user" or "assistant"
            content: Message text
            conversation_id: Conversation identifier
            model: Model identifier
            usage: Optional token/latency figures
            metadata: Optional client metadata

        Returns:
            The new message id

        Raises:
            UnauthenticatedError: No principal.
            InputValidationError: Unknown role or empty conversation id.
        """
        caller = _require(principal)
        if role not in MESSAGE_ROLES:
            raise InputValidationError(f"Invalid role: {role}")
        if not conversation_id:
            raise InputValidationError("Missing conversationId")

        existing = self.messages.list_by_conversation(conversation_id)
        if role == "user" and not existing:
            title = generate_conversation_title(content)
        else:
            title = next(
                (m.conversation_title for m in existing if m.conversation_title),
                None,
            )

        usage = usage or MessageUsage()
        metadata = metadata or MessageMetadata()
        message = self.messages.create(
            ChatMessage(
                user_id=caller.user_id,
                role=role,
                content=content,
                conversation_id=conversation_id,
                conversation_title=title,
                model=model,
                tokens_used=usage.tokens_used,
                response_time_ms=usage.response_time_ms,
                user_agent=metadata.user_agent,
                ip_address=metadata.ip_address,
                session_id=metadata.session_id,
                client_timestamp=metadata.timestamp,
            )
        )
        logger.debug(
            "chat_message_saved",
            message_id=message.id,
            conversation_id=conversation_id,
            role=role,
        )
        return message.id  # type: ignore[return-value]

    def list_conversation_messages(
        self, principal: Principal | None, conversation_id: str
    ) -> list[ChatMessage]:
        """Messages of a conversation, oldest first.

        Raises:
            NotFoundOrForbiddenError: Messages exist but none belong to the caller.
        """
        caller = _require(principal)
        messages = self.messages.list_by_conversation(conversation_id)
        if messages and not any(m.user_id == caller.user_id for m in messages):
            raise NotFoundOrForbiddenError()
        return messages

    def list_user_conversations(
        self, principal: Principal | None
    ) -> list[ConversationSummary]:
        """Summaries of the caller's conversations, most recent activity first."""
        caller = _require(principal)

        summaries: dict[str, ConversationSummary] = {}
        for message in self.messages.list_by_user(caller.user_id):
            summary = summaries.get(message.conversation_id)
            if summary is None:
                summary = ConversationSummary(
                    conversation_id=message.conversation_id,
                    last_message=message,
                    message_count=0,
                    created_at=message.created_at,
                )
                summaries[message.conversation_id] = summary
            summary.message_count += 1

        return sorted(summaries.values(), key=lambda s: s.created_at, reverse=True)

    def delete_conversation(
        self, principal: Principal | None, conversation_id: str
    ) -> int:
        """Delete every message of a conversation the caller takes part in.

        Returns:
            Number of messages deleted

        Raises:
            NotFoundOrForbiddenError: Caller owns no message under the id.
        """
        caller = _require(principal)
        messages = self.messages.list_by_conversation(conversation_id)
        if not any(m.user_id == caller.user_id for m in messages):
            raise NotFoundOrForbiddenError()

        deleted = self.messages.delete_by_conversation(conversation_id)
        logger.info(
            "conversation_deleted", conversation_id=conversation_id, deleted=deleted
        )
        return deleted

    def regenerate_title(
        self, principal: Principal | None, conversation_id: str
    ) -> str:
        """Recompute the title from the first user message and apply it to all messages.

        Raises:
            NotFoundOrForbiddenError: Messages exist but none belong to the caller.
            NoUserMessagesError: Conversation has no user message.
        """
        caller = _require(principal)
        messages = self.messages.list_by_conversation(conversation_id)
        if messages and not any(m.user_id == caller.user_id for m in messages):
            raise NotFoundOrForbiddenError()

        first = self.messages.first_user_message(conversation_id)
        if first is None:
            raise NoUserMessagesError()

        title = generate_conversation_title(first.content)
        self.messages.set_conversation_title(conversation_id, title)
        logger.info("conversation_title_regenerated", conversation_id=conversation_id)
        return title

    def user_chat_stats(self, principal: Principal | None) -> ChatStats:
        """Usage totals across the caller's messages; zeros when unauthenticated."""
        if principal is None:
            return ChatStats()

        messages = self.messages.list_by_user(principal.user_id)
        if not messages:
            return ChatStats()

        timed = [m.response_time_ms for m in messages if m.response_time_ms]
        return ChatStats(
            total_messages=len(messages),
            total_conversations=len({m.conversation_id for m in messages}),
            total_tokens_used=sum(m.tokens_used or 0 for m in messages),
            average_response_time_ms=sum(timed) / len(timed) if timed else 0.0,
            last_activity=max(m.created_at for m in messages),
        )
