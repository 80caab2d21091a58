"""Request-scoped dependencies: database session, principal, services."""

import threading

from fastapi import Depends, Request
from sqlmodel import Session

from assistant_api.conversation import ConversationStore, Principal
from assistant_api.core.config import get_settings
from assistant_api.core.logging import get_logger
from assistant_api.db import UserRepository, get_session
from assistant_api.llm import BaseLLM, OpenAICompatLLM

logger = get_logger(__name__)

# Global LLM service instance (lazy loaded, thread-safe)
_llm_service: BaseLLM | None = None
_llm_service_lock = threading.Lock()


def get_llm_service() -> BaseLLM:
    """Get or create the global LLM service instance (thread-safe)."""
    global _llm_service
    if _llm_service is None:
        with _llm_service_lock:
            # Double-check locking pattern
            if _llm_service is None:
                settings = get_settings()
                logger.info(
                    "initializing_llm_service",
                    base_url=settings.openai_base_url,
                    model=settings.llm_model,
                )
                _llm_service = OpenAICompatLLM(settings)
    return _llm_service


def get_current_principal(
    request: Request,
    session: Session = Depends(get_session),
) -> Principal | None:
    """Resolve the identity-provider subject forwarded by the auth gateway.

    Returns None when the request carries no subject; store operations
    turn that into a 401.
    """
    settings = get_settings()
    external_id = request.headers.get(settings.auth_subject_header, "").strip()
    if not external_id:
        return None

    name = request.headers.get(settings.auth_name_header, "")
    user = UserRepository(session).get_or_create(external_id, name=name)
    return Principal(user_id=user.id, external_id=user.external_id)


def get_conversation_store(
    session: Session = Depends(get_session),
) -> ConversationStore:
    return ConversationStore(session)
