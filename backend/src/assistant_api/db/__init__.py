"""Database module for chat persistence."""

from assistant_api.db.models import ChatMessage, User
from assistant_api.db.repository import (
    ChatMessageRepository,
    UserRepository,
    get_engine,
    get_session,
    init_db,
)

__all__ = [
    "ChatMessage",
    "User",
    "ChatMessageRepository",
    "UserRepository",
    "get_engine",
    "get_session",
    "init_db",
]
