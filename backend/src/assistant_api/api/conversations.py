"""Conversation store endpoints consumed by the chat UI."""

from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from assistant_api.api.deps import get_conversation_store, get_current_principal
from assistant_api.conversation import (
    ConversationStore,
    MessageMetadata,
    MessageUsage,
    Principal,
)
from assistant_api.db.models import ChatMessage

router = APIRouter(prefix="/api/conversations", tags=["conversations"])


class MessageMetadataPayload(BaseModel):
    user_agent: str | None = None
    ip_address: str | None = None
    session_id: str | None = None
    timestamp: int | None = None


class AppendMessageRequest(BaseModel):
    """Request model for appending a message."""

    role: Literal["user", "assistant"]
    content: str
    model: str
    tokens_used: int | None = Field(default=None, ge=0)
    response_time_ms: int | None = Field(default=None, ge=0)
    metadata: MessageMetadataPayload | None = None


class MessageResponse(BaseModel):
    """Response model for a message."""

    id: int
    role: str
    content: str
    conversation_id: str
    conversation_title: str | None
    model: str
    tokens_used: int | None
    response_time_ms: int | None
    created_at: datetime

    @classmethod
    def from_message(cls, message: ChatMessage) -> "MessageResponse":
        return cls(
            id=message.id,
            role=message.role,
            content=message.content,
            conversation_id=message.conversation_id,
            conversation_title=message.conversation_title,
            model=message.model,
            tokens_used=message.tokens_used,
            response_time_ms=message.response_time_ms,
            created_at=message.created_at,
        )


class ConversationSummaryResponse(BaseModel):
    """Response model for conversation list item.

    ``created_at`` is the time of the latest message.
    """

    conversation_id: str
    title: str | None
    last_message: MessageResponse
    message_count: int
    created_at: datetime


class ChatStatsResponse(BaseModel):
    total_messages: int
    total_conversations: int
    total_tokens_used: int
    average_response_time_ms: float
    last_activity: datetime | None


class ConversationIdResponse(BaseModel):
    conversation_id: str


class AppendMessageResponse(BaseModel):
    id: int


class DeleteConversationResponse(BaseModel):
    deleted: int


class TitleResponse(BaseModel):
    title: str


@router.post("/ids")
async def create_conversation_id(
    store: ConversationStore = Depends(get_conversation_store),
) -> ConversationIdResponse:
    """Allocate a new conversation id."""
    return ConversationIdResponse(conversation_id=store.generate_conversation_id())


@router.get("")
async def list_conversations(
    principal: Principal | None = Depends(get_current_principal),
    store: ConversationStore = Depends(get_conversation_store),
) -> list[ConversationSummaryResponse]:
    """List the caller's conversations, most recent activity first."""
    return [
        ConversationSummaryResponse(
            conversation_id=summary.conversation_id,
            title=summary.last_message.conversation_title,
            last_message=MessageResponse.from_message(summary.last_message),
            message_count=summary.message_count,
            created_at=summary.created_at,
        )
        for summary in store.list_user_conversations(principal)
    ]


@router.get("/stats")
async def get_chat_stats(
    principal: Principal | None = Depends(get_current_principal),
    store: ConversationStore = Depends(get_conversation_store),
) -> ChatStatsResponse:
    """Usage totals for the caller."""
    stats = store.user_chat_stats(principal)
    return ChatStatsResponse(
        total_messages=stats.total_messages,
        total_conversations=stats.total_conversations,
        total_tokens_used=stats.total_tokens_used,
        average_response_time_ms=stats.average_response_time_ms,
        last_activity=stats.last_activity,
    )


@router.get("/{conversation_id}/messages")
async def list_messages(
    conversation_id: str,
    principal: Principal | None = Depends(get_current_principal),
    store: ConversationStore = Depends(get_conversation_store),
) -> list[MessageResponse]:
    """Messages of a conversation in chronological order."""
    messages = store.list_conversation_messages(principal, conversation_id)
    return [MessageResponse.from_message(msg) for msg in messages]


@router.post("/{conversation_id}/messages")
async def append_message(
    conversation_id: str,
    payload: AppendMessageRequest,
    request: Request,
    principal: Principal | None = Depends(get_current_principal),
    store: ConversationStore = Depends(get_conversation_store),
) -> AppendMessageResponse:
    """Append a message; client metadata defaults to what the request shows."""
    meta = payload.metadata or MessageMetadataPayload()
    message_id = store.append_message(
        principal,
        role=payload.role,
        content=payload.content,
        conversation_id=conversation_id,
        model=payload.model,
        usage=MessageUsage(
            tokens_used=payload.tokens_used,
            response_time_ms=payload.response_time_ms,
        ),
        metadata=MessageMetadata(
            user_agent=meta.user_agent or request.headers.get("user-agent"),
            ip_address=meta.ip_address
            or (request.client.host if request.client else None),
            session_id=meta.session_id,
            timestamp=meta.timestamp,
        ),
    )
    return AppendMessageResponse(id=message_id)


@router.delete("/{conversation_id}")
async def delete_conversation(
    conversation_id: str,
    principal: Principal | None = Depends(get_current_principal),
    store: ConversationStore = Depends(get_conversation_store),
) -> DeleteConversationResponse:
    """Delete a conversation and all its messages."""
    return DeleteConversationResponse(
        deleted=store.delete_conversation(principal, conversation_id)
    )


@router.post("/{conversation_id}/title")
async def regenerate_title(
    conversation_id: str,
    principal: Principal | None = Depends(get_current_principal),
    store: ConversationStore = Depends(get_conversation_store),
) -> TitleResponse:
    """Recompute the conversation title from its first user message."""
    return TitleResponse(title=store.regenerate_title(principal, conversation_id))
