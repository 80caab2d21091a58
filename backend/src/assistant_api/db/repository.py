"""Repository layer for database operations.

Provides data access for User and ChatMessage entities.
Uses SQLite for local persistence (data/assistant.db by default).
"""

from collections.abc import Generator
from pathlib import Path

from sqlalchemy import event
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, SQLModel, create_engine, select

from assistant_api.core.config import get_settings
from assistant_api.db.models import ChatMessage, User, utc_now


def _enable_sqlite_fk(dbapi_connection, connection_record):
    """Enable foreign key constraints for SQLite connections."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


# Module-level engine (initialized on first use)
_engine = None


def get_engine(db_path: Path | None = None):
    """Get or create the database engine.

    Args:
        db_path: Optional custom database path. Defaults to the configured path.

    Returns:
        SQLModel engine instance
    """
    global _engine
    if _engine is None:
        path = db_path or get_settings().database_path
        path.parent.mkdir(parents=True, exist_ok=True)
        database_url = f"sqlite:///{path}"
        _engine = create_engine(
            database_url,
            echo=False,
            connect_args={"check_same_thread": False},
        )
        event.listen(_engine, "connect", _enable_sqlite_fk)
    return _engine


def init_db(db_path: Path | None = None) -> None:
    """Initialize the database by creating all tables.

    Args:
        db_path: Optional custom database path
    """
    engine = get_engine(db_path)
    SQLModel.metadata.create_all(engine)


def get_session() -> Generator[Session, None, None]:
    """Get a database session.

    Yields:
        Database session
    """
    engine = get_engine()
    with Session(engine) as session:
        yield session


class UserRepository:
    """Repository for User lookups."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, user_id: str) -> User | None:
        return self.session.get(User, user_id)

    def get_by_external_id(self, external_id: str) -> User | None:
        """Get a user by identity-provider subject id."""
        statement = select(User).where(User.external_id == external_id)
        return self.session.exec(statement).first()

    def get_or_create(self, external_id: str, name: str = "") -> User:
        """Resolve a subject id to a local user, creating it on first sight.

        Args:
            external_id: Identity-provider subject id
            name: Display name for a newly created user

        Returns:
            Existing or newly created User
        """
        user = self.get_by_external_id(external_id)
        if user is not None:
            return user

        user = User(external_id=external_id, name=name, created_at=utc_now())
        self.session.add(user)
        try:
            self.session.commit()
        except IntegrityError:
            # Another request created the same subject concurrently
            self.session.rollback()
            existing = self.get_by_external_id(external_id)
            if existing is None:
                raise
            return existing
        self.session.refresh(user)
        return user


class ChatMessageRepository:
    """Repository for ChatMessage CRUD operations."""

    def __init__(self, session: Session):
        """Initialize repository with a database session.

        Args:
            session: SQLModel session for database operations
        """
        self.session = session

    def create(self, message: ChatMessage) -> ChatMessage:
        """Insert a message, stamping its creation time.

        Args:
            message: Unsaved ChatMessage

        Returns:
            The persisted ChatMessage with its id assigned
        """
        message.created_at = utc_now()
        self.session.add(message)
        self.session.commit()
        self.session.refresh(message)
        return message

    def get(self, message_id: int) -> ChatMessage | None:
        return self.session.get(ChatMessage, message_id)

    def list_by_conversation(self, conversation_id: str) -> list[ChatMessage]:
        """List messages for a conversation ordered by created_at ascending.

        Args:
            conversation_id: The conversation ID

        Returns:
            List of ChatMessage instances
        """
        statement = (
            select(ChatMessage)
            .where(ChatMessage.conversation_id == conversation_id)
            .order_by(ChatMessage.created_at.asc(), ChatMessage.id.asc())
        )
        return list(self.session.exec(statement).all())

    def list_by_user(self, user_id: str) -> list[ChatMessage]:
        """List all messages of a user, newest first."""
        statement = (
            select(ChatMessage)
            .where(ChatMessage.user_id == user_id)
            .order_by(ChatMessage.created_at.desc(), ChatMessage.id.desc())
        )
        return list(self.session.exec(statement).all())

    def first_user_message(self, conversation_id: str) -> ChatMessage | None:
        """Get the earliest user-authored message of a conversation."""
        statement = (
            select(ChatMessage)
            .where(ChatMessage.conversation_id == conversation_id)
            .where(ChatMessage.role == "user")
            .order_by(ChatMessage.created_at.asc(), ChatMessage.id.asc())
            .limit(1)
        )
        return self.session.exec(statement).first()

    def set_conversation_title(self, conversation_id: str, title: str) -> int:
        """Write a title onto every message of a conversation in one commit.

        Returns:
            Number of messages updated
        """
        messages = self.list_by_conversation(conversation_id)
        try:
            for message in messages:
                message.conversation_title = title
                self.session.add(message)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        return len(messages)

    def delete_by_conversation(self, conversation_id: str) -> int:
        """Delete every message of a conversation in one commit.

        Returns:
            Number of messages deleted
        """
        messages = self.list_by_conversation(conversation_id)
        try:
            for message in messages:
                self.session.delete(message)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        return len(messages)
