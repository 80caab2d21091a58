"""FastAPI application entry point for the assistant API"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from assistant_api.api.chat import router as chat_router
from assistant_api.api.conversations import router as conversations_router
from assistant_api.core.config import settings
from assistant_api.core.errors import ChatError
from assistant_api.core.logging import configure_logging, get_logger
from assistant_api.db import init_db

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan context manager for startup/shutdown."""
    configure_logging()
    init_db()
    logger.info("database_initialized")
    yield


app = FastAPI(
    title="Assistant API",
    description="Chat assistant backend: completions and conversation history",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=[
        "Content-Type",
        "Authorization",
        "X-Request-ID",
        settings.auth_subject_header,
        settings.auth_name_header,
    ],
    expose_headers=["X-Conversation-ID"],
)


@app.exception_handler(ChatError)
async def chat_error_handler(request: Request, exc: ChatError) -> JSONResponse:
    """Render domain errors as ``{"error": message}``."""
    logger.info(
        "request_rejected",
        path=request.url.path,
        status_code=exc.status_code,
        error=exc.message,
    )
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)


app.include_router(chat_router)
app.include_router(conversations_router)


@app.get("/api/v1/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint.

    Returns:
        dict with status "ok" if the service is healthy.
    """
    return {"status": "ok"}
