"""Integration tests for the conversation store."""

import pytest

from assistant_api.conversation import (
    ConversationStore,
    MessageMetadata,
    MessageUsage,
)
from assistant_api.core.errors import (
    InputValidationError,
    NoUserMessagesError,
    NotFoundOrForbiddenError,
    UnauthenticatedError,
)
from assistant_api.db.repository import ChatMessageRepository

MODEL = "gpt-4o-mini"


@pytest.fixture
def store(session):
    return ConversationStore(session)


class TestAppendMessage:
    """Tests for append_message."""

    def test_requires_principal(self, store):
        with pytest.raises(UnauthenticatedError):
            store.append_message(None, "user", "Hi", "conv_a", MODEL)

    def test_rejects_unknown_role(self, store, alice):
        with pytest.raises(InputValidationError):
            store.append_message(alice, "system", "Hi", "conv_a", MODEL)

    def test_first_user_message_sets_title(self, store, alice):
        message_id = store.append_message(alice, "user", "help me fix a bug", "conv_a", MODEL)

        [message] = store.list_conversation_messages(alice, "conv_a")
        assert message.id == message_id
        assert message.conversation_title == "Help Discussion"
        assert len(message.conversation_title) <= 50
        assert message.conversation_title[-1] not in ".!?"

    def test_second_message_copies_title(self, store, alice):
        store.append_message(alice, "user", "help me fix a bug", "conv_a", MODEL)
        # Would derive a different title if recomputed
        store.append_message(alice, "user", "teach me French", "conv_a", MODEL)
        store.append_message(alice, "assistant", "Sure!", "conv_a", MODEL)

        titles = [m.conversation_title for m in store.list_conversation_messages(alice, "conv_a")]
        assert titles == ["Help Discussion"] * 3

    def test_assistant_first_leaves_title_unset(self, store, alice):
        store.append_message(alice, "assistant", "Welcome!", "conv_a", MODEL)
        store.append_message(alice, "user", "help me", "conv_a", MODEL)

        titles = [m.conversation_title for m in store.list_conversation_messages(alice, "conv_a")]
        assert titles == [None, None]

    def test_stores_usage_and_metadata(self, store, alice):
        store.append_message(
            alice,
            "assistant",
            "Answer",
            "conv_a",
            MODEL,
            usage=MessageUsage(tokens_used=46, response_time_ms=900),
            metadata=MessageMetadata(
                user_agent="pytest",
                ip_address="10.0.0.1",
                session_id="sess_1",
                timestamp=1700000000000,
            ),
        )

        [message] = store.list_conversation_messages(alice, "conv_a")
        assert message.tokens_used == 46
        assert message.response_time_ms == 900
        assert message.user_agent == "pytest"
        assert message.ip_address == "10.0.0.1"
        assert message.session_id == "sess_1"
        assert message.client_timestamp == 1700000000000
        assert message.model == MODEL
        assert message.user_id == alice.user_id


class TestListConversationMessages:
    """Tests for list_conversation_messages."""

    def test_ordered_ascending(self, store, alice):
        for content in ["one", "two", "three"]:
            store.append_message(alice, "user", content, "conv_a", MODEL)

        contents = [m.content for m in store.list_conversation_messages(alice, "conv_a")]
        assert contents == ["one", "two", "three"]

    def test_unknown_conversation_is_empty(self, store, alice):
        assert store.list_conversation_messages(alice, "conv_missing") == []

    def test_foreign_conversation_is_forbidden(self, store, alice, bob):
        store.append_message(alice, "user", "private", "conv_a", MODEL)

        with pytest.raises(NotFoundOrForbiddenError):
            store.list_conversation_messages(bob, "conv_a")


class TestListUserConversations:
    """Tests for list_user_conversations."""

    def test_empty(self, store, alice):
        assert store.list_user_conversations(alice) == []

    def test_requires_principal(self, store):
        with pytest.raises(UnauthenticatedError):
            store.list_user_conversations(None)

    def test_summaries(self, store, alice, bob):
        store.append_message(alice, "user", "first", "conv_a", MODEL)
        store.append_message(alice, "assistant", "reply", "conv_a", MODEL)
        store.append_message(bob, "user", "bob only", "conv_b", MODEL)

        [summary] = store.list_user_conversations(alice)
        assert summary.conversation_id == "conv_a"
        assert summary.message_count == 2
        assert summary.last_message.content == "reply"
        assert summary.created_at == summary.last_message.created_at

    def test_ordered_by_most_recent_activity(self, store, alice):
        # B starts first, A starts later, then B gets the latest message
        store.append_message(alice, "user", "b1", "conv_b", MODEL)
        store.append_message(alice, "user", "a1", "conv_a", MODEL)
        store.append_message(alice, "user", "b2", "conv_b", MODEL)

        ids = [s.conversation_id for s in store.list_user_conversations(alice)]
        assert ids == ["conv_b", "conv_a"]

        # Then A becomes the most recent
        store.append_message(alice, "assistant", "a2", "conv_a", MODEL)
        ids = [s.conversation_id for s in store.list_user_conversations(alice)]
        assert ids == ["conv_a", "conv_b"]


class TestDeleteConversation:
    """Tests for delete_conversation."""

    def test_deletes_all_messages(self, store, alice):
        store.append_message(alice, "user", "q", "conv_a", MODEL)
        store.append_message(alice, "assistant", "a", "conv_a", MODEL)
        store.append_message(alice, "user", "other", "conv_b", MODEL)

        assert store.delete_conversation(alice, "conv_a") == 2
        assert store.list_conversation_messages(alice, "conv_a") == []
        assert len(store.list_conversation_messages(alice, "conv_b")) == 1

    def test_deletes_foreign_messages_under_same_id(self, store, alice, bob):
        store.append_message(alice, "user", "mine", "conv_shared", MODEL)
        store.append_message(bob, "user", "stray", "conv_shared", MODEL)

        assert store.delete_conversation(alice, "conv_shared") == 2
        assert store.messages.list_by_conversation("conv_shared") == []

    def test_not_owned_removes_nothing(self, store, alice, bob):
        store.append_message(alice, "user", "mine", "conv_a", MODEL)

        with pytest.raises(NotFoundOrForbiddenError):
            store.delete_conversation(bob, "conv_a")
        assert len(store.messages.list_by_conversation("conv_a")) == 1

    def test_unknown_conversation(self, store, alice):
        with pytest.raises(NotFoundOrForbiddenError):
            store.delete_conversation(alice, "conv_missing")

    def test_requires_principal(self, store):
        with pytest.raises(UnauthenticatedError):
            store.delete_conversation(None, "conv_a")

    def test_failed_delete_rolls_back(self, store, alice, session, monkeypatch):
        store.append_message(alice, "user", "q", "conv_a", MODEL)
        store.append_message(alice, "assistant", "a", "conv_a", MODEL)

        def fail_commit():
            raise RuntimeError("disk full")

        monkeypatch.setattr(session, "commit", fail_commit)
        with pytest.raises(RuntimeError):
            store.delete_conversation(alice, "conv_a")
        monkeypatch.undo()

        assert len(ChatMessageRepository(session).list_by_conversation("conv_a")) == 2


class TestRegenerateTitle:
    """Tests for regenerate_title."""

    def test_uses_first_user_message_and_patches_all(self, store, alice):
        store.append_message(alice, "assistant", "Welcome!", "conv_a", MODEL)
        store.append_message(alice, "user", "help me fix a bug", "conv_a", MODEL)
        store.append_message(alice, "assistant", "Sure", "conv_a", MODEL)
        store.append_message(alice, "user", "teach me French", "conv_a", MODEL)

        title = store.regenerate_title(alice, "conv_a")

        assert title == "Help Discussion"
        titles = {m.conversation_title for m in store.list_conversation_messages(alice, "conv_a")}
        assert titles == {"Help Discussion"}

    def test_no_user_messages(self, store, alice):
        store.append_message(alice, "assistant", "Welcome!", "conv_a", MODEL)

        with pytest.raises(NoUserMessagesError):
            store.regenerate_title(alice, "conv_a")

    def test_empty_conversation(self, store, alice):
        with pytest.raises(NoUserMessagesError):
            store.regenerate_title(alice, "conv_missing")

    def test_not_owned(self, store, alice, bob):
        store.append_message(alice, "user", "help", "conv_a", MODEL)

        with pytest.raises(NotFoundOrForbiddenError):
            store.regenerate_title(bob, "conv_a")


class TestUserChatStats:
    """Tests for user_chat_stats."""

    def test_unauthenticated_returns_zeros(self, store):
        stats = store.user_chat_stats(None)
        assert stats.total_messages == 0
        assert stats.last_activity is None

    def test_totals(self, store, alice, bob):
        store.append_message(alice, "user", "q1", "conv_a", MODEL)
        store.append_message(
            alice, "assistant", "a1", "conv_a", MODEL,
            usage=MessageUsage(tokens_used=40, response_time_ms=100),
        )
        store.append_message(alice, "user", "q2", "conv_b", MODEL)
        store.append_message(
            alice, "assistant", "a2", "conv_b", MODEL,
            usage=MessageUsage(tokens_used=60, response_time_ms=300),
        )
        store.append_message(bob, "user", "bob", "conv_c", MODEL)

        stats = store.user_chat_stats(alice)
        assert stats.total_messages == 4
        assert stats.total_conversations == 2
        assert stats.total_tokens_used == 100
        assert stats.average_response_time_ms == 200.0
        latest = store.list_user_conversations(alice)[0].created_at
        assert stats.last_activity == latest


class TestGenerateConversationId:
    def test_allocates_distinct_ids(self, store):
        assert store.generate_conversation_id() != store.generate_conversation_id()
