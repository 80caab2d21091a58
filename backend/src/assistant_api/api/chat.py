"""Completion endpoints: JSON request/response and chunked text stream."""

import json
from collections.abc import AsyncIterator

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from assistant_api.api.deps import get_llm_service
from assistant_api.core.errors import InputValidationError
from assistant_api.core.logging import get_logger
from assistant_api.db.models import utc_now
from assistant_api.llm import BaseLLM
from assistant_api.llm.base import FINISH_REASON_ERROR

router = APIRouter(prefix="/api/ai", tags=["ai"])
logger = get_logger(__name__)


class ChatRequest(BaseModel):
    """Validated completion request."""

    input: str
    conversation_id: str | None = None


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChatResponse(CamelModel):
    """Successful completion body."""

    text: str
    conversation_id: str | None
    timestamp: str
    model: str
    tokens_used: int
    input_tokens: int
    output_tokens: int
    response_time: int
    finish_reason: str


class ChatErrorResponse(CamelModel):
    """Failed completion body; usage fields are always zero."""

    error: str
    conversation_id: str | None
    timestamp: str
    tokens_used: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    response_time: int = 0
    finish_reason: str = FINISH_REASON_ERROR


async def read_chat_request(request: Request) -> ChatRequest:
    """Parse ``{input, conversationId?}`` leniently.

    Raises:
        InputValidationError: Body is not a JSON object or ``input`` is
            absent, empty or not a string.
    """
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        body = None
    if not isinstance(body, dict):
        body = {}

    text = body.get("input")
    if not isinstance(text, str) or not text:
        raise InputValidationError("Missing input")

    conversation_id = body.get("conversationId")
    if not isinstance(conversation_id, str) or not conversation_id:
        conversation_id = None
    return ChatRequest(input=text, conversation_id=conversation_id)


def _timestamp() -> str:
    return utc_now().isoformat()


@router.post("/chat")
async def chat(request: Request, llm: BaseLLM = Depends(get_llm_service)) -> JSONResponse:
    """Run one completion and return text with usage and timing.

    Any provider failure is reported as a 500 with zeroed usage fields.
    """
    chat_request = await read_chat_request(request)

    try:
        result = await llm.complete(chat_request.input)
    except Exception as e:
        logger.error(
            "chat_unexpected_error",
            conversation_id=chat_request.conversation_id,
            error=str(e),
        )
        error_body = ChatErrorResponse(
            error="Error processing your request",
            conversation_id=chat_request.conversation_id,
            timestamp=_timestamp(),
        )
        return JSONResponse(error_body.model_dump(by_alias=True), status_code=500)

    if result.is_error:
        error_body = ChatErrorResponse(
            error=result.text,
            conversation_id=chat_request.conversation_id,
            timestamp=_timestamp(),
        )
        return JSONResponse(error_body.model_dump(by_alias=True), status_code=500)

    body = ChatResponse(
        text=result.text,
        conversation_id=chat_request.conversation_id,
        timestamp=_timestamp(),
        model=llm.model,
        tokens_used=result.total_tokens,
        input_tokens=result.input_tokens,
        output_tokens=result.output_tokens,
        response_time=result.response_time_ms,
        finish_reason=result.finish_reason,
    )
    return JSONResponse(body.model_dump(by_alias=True))


@router.post("/stream", response_model=None)
async def stream(
    request: Request, llm: BaseLLM = Depends(get_llm_service)
) -> StreamingResponse | PlainTextResponse:
    """Stream completion text as chunked ``text/plain``.

    No usage or timing metadata is available on this path. An upstream
    error after the response started aborts the stream.
    """
    try:
        chat_request = await read_chat_request(request)
    except InputValidationError as e:
        return PlainTextResponse(e.message, status_code=400)

    conversation_id = chat_request.conversation_id or ""
    prompt = (
        f"[Conversation: {conversation_id}]\n{chat_request.input}"
        if conversation_id
        else chat_request.input
    )

    async def body() -> AsyncIterator[str]:
        try:
            async for chunk in llm.stream_completion(prompt):
                yield chunk
        except Exception as e:
            logger.error(
                "llm_stream_error", conversation_id=conversation_id, error=str(e)
            )
            raise

    return StreamingResponse(
        body(),
        media_type="text/plain; charset=utf-8",
        headers={
            "Cache-Control": "no-cache",
            "X-Conversation-ID": conversation_id,
        },
    )
