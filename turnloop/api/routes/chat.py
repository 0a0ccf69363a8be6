"""
OpenAI-compatible chat completion endpoints.

Implements /v1/chat/completions and /v1/models. Each chat completion runs
one multi-turn prompt request: the last message is the prompt, earlier
messages become the history the request appends to.
"""

import json
import logging
import time
import uuid
from typing import Generator, Optional

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse, StreamingResponse

from ...agent import build_default_agent
from ...config import config
from ...errors import MaxDepthError, ProviderError, ToolInvocationError
from ...message import AssistantMessage, Message, ToolResult, UserMessage, message_text
from ...tracing import TracingContext, get_tracing_client
from ..schemas import (
    MODEL_ID,
    ChatCompletionChoice,
    ChatCompletionMessage,
    ChatCompletionRequest,
    ChatCompletionResponse,
    ErrorDetail,
    ErrorResponse,
    HistoryEntry,
    ModelInfo,
    ModelListResponse,
    UsageInfo,
)

logger = logging.getLogger(__name__)

router = APIRouter()

MODEL_CREATED = int(time.time())


@router.get(
    "/v1/models",
    response_model=ModelListResponse,
    summary="List models",
    description="List available models. Returns turnloop as the only model.",
)
def list_models() -> ModelListResponse:
    return ModelListResponse(data=[ModelInfo(id=MODEL_ID, created=MODEL_CREATED)])


@router.get(
    "/v1/models/{model_id}",
    response_model=ModelInfo,
    summary="Get model",
    description="Get information about a specific model.",
)
def get_model(model_id: str) -> ModelInfo:
    if model_id != MODEL_ID:
        raise HTTPException(
            status_code=404,
            detail=f"Model '{model_id}' not found. Available model: {MODEL_ID}",
        )
    return ModelInfo(id=MODEL_ID, created=MODEL_CREATED)


def _create_sse_chunk(
    content: str,
    completion_id: str,
    finish_reason: Optional[str] = None,
) -> str:
    """Create a Server-Sent Events formatted chunk."""
    chunk = {
        "id": completion_id,
        "object": "chat.completion.chunk",
        "created": int(time.time()),
        "model": MODEL_ID,
        "choices": [
            {
                "index": 0,
                "delta": {"content": content} if content else {},
                "finish_reason": finish_reason,
            }
        ],
    }
    return f"data: {json.dumps(chunk)}\n\n"


def _generate_streaming_response(answer: str) -> Generator[str, None, None]:
    """Return the complete answer as one SSE content chunk, then finish."""
    completion_id = f"chatcmpl-{uuid.uuid4().hex[:12]}"
    yield _create_sse_chunk(answer, completion_id)
    yield _create_sse_chunk("", completion_id, finish_reason="stop")
    yield "data: [DONE]\n\n"


def history_entry(message: Message) -> HistoryEntry:
    """Flatten a history message for the JSON response."""
    if isinstance(message, AssistantMessage):
        tool_calls = [
            {"id": call.id, "name": call.function.name, "arguments": call.function.arguments}
            for call in message.tool_calls
        ]
        return HistoryEntry(
            role="assistant",
            content=message_text(message),
            tool_calls=tool_calls or None,
        )
    tool_results = [
        {"id": block.id, "call_id": block.call_id, "output": block.output}
        for block in message.content
        if isinstance(block, ToolResult)
    ]
    return HistoryEntry(
        role="user",
        content=message_text(message),
        tool_results=tool_results or None,
    )


def _error_response(status_code: int, message: str, error_type: str) -> JSONResponse:
    body = ErrorResponse(error=ErrorDetail(message=message, type=error_type))
    return JSONResponse(status_code=status_code, content=body.model_dump())


@router.post(
    "/v1/chat/completions",
    response_model=ChatCompletionResponse,
    responses={
        422: {"model": ErrorResponse, "description": "Turn depth exhausted"},
        502: {"model": ErrorResponse, "description": "Provider or tool failure"},
        500: {"model": ErrorResponse, "description": "Internal server error"},
    },
    summary="Create chat completion",
    description=(
        "Run the last message through a multi-turn prompt request. The model "
        "may call tools for up to max_depth turns before it must answer."
    ),
)
async def create_chat_completion(request: ChatCompletionRequest):
    """Process a chat completion request through a prompt request."""
    conversation = [msg for msg in request.messages if msg.role != "system"]
    if not conversation or conversation[-1].role != "user":
        logger.warning("Last message is not a user message")
        raise HTTPException(
            status_code=400,
            detail="The last non-system message must be a user message.",
        )

    system_parts = [msg.get_text_content() for msg in request.messages if msg.role == "system"]
    preamble = "\n\n".join(system_parts) if system_parts else None

    history: list[Message] = [
        UserMessage.from_text(msg.get_text_content())
        if msg.role == "user"
        else AssistantMessage.from_text(msg.get_text_content())
        for msg in conversation[:-1]
    ]
    query = conversation[-1].get_text_content()
    max_depth = request.max_depth if request.max_depth is not None else config.agent.max_depth

    execution_id = f"exec-{uuid.uuid4().hex[:8]}"
    logger.info("[%s] Processing chat completion (depth %d): %s", execution_id, max_depth, query[:100])

    tracing_context = TracingContext(execution_id=execution_id)
    tracing_context.start_trace(
        name="chat_completion",
        query=query,
        metadata={"model": request.model, "max_depth": max_depth},
    )

    agent = build_default_agent(preamble=preamble)
    try:
        answer = await (
            agent.chat(query, history)
            .multi_turn(max_depth)
            .with_tracing(tracing_context)
        )
    except MaxDepthError as e:
        logger.warning("[%s] %s", execution_id, e)
        _end_trace(tracing_context, str(e), "error")
        return _error_response(
            422,
            f"{e}: unresolved prompt: {message_text(e.prompt)[:200]}",
            "max_depth_exceeded",
        )
    except ToolInvocationError as e:
        logger.error("[%s] %s", execution_id, e)
        _end_trace(tracing_context, str(e), "error")
        return _error_response(502, str(e), "tool_error")
    except ProviderError as e:
        logger.error("[%s] %s", execution_id, e)
        _end_trace(tracing_context, str(e), "error")
        return _error_response(502, str(e), "provider_error")
    except Exception as e:
        logger.exception("[%s] Chat completion failed: %s", execution_id, e)
        _end_trace(tracing_context, str(e), "error")
        return _error_response(500, str(e), "server_error")
    finally:
        close = getattr(agent.model, "close", None)
        if close is not None:
            await close()

    _end_trace(tracing_context, answer, "success", {"history_length": len(history)})

    if request.stream:
        return StreamingResponse(
            _generate_streaming_response(answer),
            media_type="text/event-stream",
        )

    # Rough token estimate; per-turn usage is not aggregated.
    prompt_tokens = sum(len(msg.get_text_content().split()) * 2 for msg in request.messages)
    completion_tokens = len(answer.split()) * 2

    return ChatCompletionResponse(
        choices=[
            ChatCompletionChoice(
                index=0,
                message=ChatCompletionMessage(content=answer),
                finish_reason="stop",
            )
        ],
        usage=UsageInfo(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
        ),
        history=[history_entry(m) for m in history] if request.include_history else None,
    )


def _end_trace(
    tracing_context: TracingContext,
    output: str,
    status: str,
    metadata: Optional[dict] = None,
) -> None:
    tracing_context.end_trace(output=output, status=status, metadata=metadata)
    client = get_tracing_client()
    if client:
        client.flush()
