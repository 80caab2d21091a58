"""Shared fixtures: temporary database and a stub completion client."""

from collections.abc import AsyncIterator
from pathlib import Path
from tempfile import TemporaryDirectory

import pytest
from sqlmodel import Session

import assistant_api.db.repository as repo_module
from assistant_api.conversation import Principal
from assistant_api.db.repository import UserRepository, get_engine, init_db
from assistant_api.llm.base import BaseLLM, CompletionResult


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    # Reset the global engine
    original_engine = repo_module._engine
    repo_module._engine = None

    with TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        init_db(db_path)
        engine = get_engine(db_path)
        yield engine
        engine.dispose()

        # Reset engine after test
        repo_module._engine = original_engine


@pytest.fixture
def session(temp_db):
    """Create a database session for testing."""
    with Session(temp_db) as session:
        yield session


def make_principal(session: Session, external_id: str) -> Principal:
    user = UserRepository(session).get_or_create(external_id, name=external_id)
    return Principal(user_id=user.id, external_id=user.external_id)


@pytest.fixture
def alice(session) -> Principal:
    return make_principal(session, "user_alice")


@pytest.fixture
def bob(session) -> Principal:
    return make_principal(session, "user_bob")


class StubLLM(BaseLLM):
    """Completion client double that records every call."""

    def __init__(
        self,
        result: CompletionResult | None = None,
        chunks: list[str] | None = None,
        stream_error: Exception | None = None,
    ) -> None:
        self.model = "stub-model"
        self.result = result or CompletionResult(
            text="Hello from the stub",
            total_tokens=46,
            input_tokens=12,
            output_tokens=34,
            response_time_ms=120,
            finish_reason="stop",
        )
        self.chunks = chunks if chunks is not None else ["Hello", " world"]
        self.stream_error = stream_error
        self.complete_calls: list[str] = []
        self.stream_calls: list[str] = []

    async def complete(self, input: str) -> CompletionResult:
        self.complete_calls.append(input)
        return self.result

    async def stream_completion(self, input: str) -> AsyncIterator[str]:
        self.stream_calls.append(input)
        for chunk in self.chunks:
            yield chunk
        if self.stream_error is not None:
            raise self.stream_error


@pytest.fixture
def stub_llm() -> StubLLM:
    return StubLLM()


@pytest.fixture
def make_stub_llm():
    """Factory for StubLLM instances with custom behaviour."""
    return StubLLM
