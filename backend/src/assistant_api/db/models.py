"""SQLModel models for chat persistence.

Schema notes:
- Table names: snake_case plural (users, chat_messages)
- A conversation is not a table: it is the set of chat_messages sharing
  a caller-chosen conversation_id.
"""

import secrets
import string
import time
from datetime import datetime, timezone
from typing import Literal
from uuid import uuid4

from sqlalchemy import DateTime
from sqlalchemy.types import TypeDecorator
from sqlmodel import Field, SQLModel

# Type alias for message role
MessageRole = Literal["user", "assistant"]
MESSAGE_ROLES = ("user", "assistant")

_CONVERSATION_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


def generate_id() -> str:
    """Generate a UUID-based ID for database records."""
    return str(uuid4())


def generate_conversation_id() -> str:
    """Generate a URL-safe conversation identifier.

    Format: ``conv_<epoch milliseconds>_<9 random base36 chars>``.
    Uniqueness is probabilistic only.
    """
    suffix = "".join(secrets.choice(_CONVERSATION_SUFFIX_ALPHABET) for _ in range(9))
    return f"conv_{int(time.time() * 1000)}_{suffix}"


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """DateTime column that always hands back timezone-aware UTC values.

    SQLite keeps no offset, so values are stored as naive UTC and UTC is
    re-attached on load.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value


class User(SQLModel, table=True):
    """Local record for an identity-provider principal.

    Attributes:
        id: UUID-based primary key
        external_id: Subject id issued by the identity provider
        name: Display name
        created_at: When the user was first seen
    """

    __tablename__ = "users"
    __table_args__ = {"extend_existing": True}

    id: str = Field(default_factory=generate_id, primary_key=True)
    external_id: str = Field(index=True, unique=True)
    name: str = ""
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTCDateTime)


class ChatMessage(SQLModel, table=True):
    """One turn in a conversation.

    Attributes:
        id: Autoincrement primary key (also breaks created_at ties)
        user_id: Owning user
        role: "user" or "assistant"
        content: Message text
        conversation_id: Caller-chosen conversation identifier
        conversation_title: Title shared by all messages of the conversation
        model: Model identifier that produced (or was asked for) the reply
        tokens_used: Total tokens consumed by the reply
        response_time_ms: Provider latency for the reply
        user_agent, ip_address, session_id, client_timestamp: Client metadata
        created_at: Assigned on insert
    """

    __tablename__ = "chat_messages"
    __table_args__ = {"extend_existing": True}

    id: int | None = Field(default=None, primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True)
    role: str  # "user" or "assistant" - stored as string in DB
    content: str
    conversation_id: str = Field(index=True)
    conversation_title: str | None = None
    model: str
    tokens_used: int | None = None
    response_time_ms: int | None = None
    user_agent: str | None = None
    ip_address: str | None = None
    session_id: str | None = None
    client_timestamp: int | None = None
    created_at: datetime = Field(default_factory=utc_now, index=True, sa_type=UTCDateTime)
