"""
OpenAI-compatible Pydantic schemas for the API.

These schemas follow the OpenAI Chat API format, extended with the
turn-depth budget and an optional dump of the final conversation history.
"""

import time
import uuid
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

MODEL_ID = "turnloop"


class ContentPart(BaseModel):
    """A single part of multimodal content."""

    type: Literal["text", "image_url"] = Field(
        ..., description="The type of content part"
    )
    text: Optional[str] = Field(default=None, description="Text content (for type='text')")
    image_url: Optional[dict] = Field(
        default=None, description="Image URL object (for type='image_url')"
    )


class ChatMessage(BaseModel):
    """A single message in a chat conversation."""

    role: Literal["system", "user", "assistant"] = Field(
        ..., description="The role of the message author"
    )
    content: Union[str, list[ContentPart]] = Field(
        ..., description="The content of the message (string or list of content parts)"
    )

    @field_validator("content", mode="before")
    @classmethod
    def normalize_content(cls, v):
        """Accept both string and list-of-parts content."""
        if isinstance(v, list):
            return [
                ContentPart(**item) if isinstance(item, dict) else item for item in v
            ]
        return v

    def get_text_content(self) -> str:
        """Extract text content regardless of format."""
        if isinstance(self.content, str):
            return self.content
        return "\n".join(
            part.text for part in self.content if part.type == "text" and part.text
        )


class ChatCompletionRequest(BaseModel):
    """Request body for /v1/chat/completions endpoint."""

    model: str = Field(default=MODEL_ID, description="Model ID (always turnloop)")
    messages: list[ChatMessage] = Field(
        ..., description="Conversation so far; the last message is the prompt", min_length=1
    )
    max_depth: Optional[int] = Field(
        default=None,
        ge=0,
        description="Maximum tool-calling turn depth (server default when omitted)",
    )
    stream: Optional[bool] = Field(
        default=False, description="Return the answer as a single SSE chunk"
    )
    include_history: Optional[bool] = Field(
        default=False, description="Include the final conversation history in the response"
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "model": MODEL_ID,
                "messages": [{"role": "user", "content": "What is 3^8?"}],
                "max_depth": 2,
            }
        }
    }


class HistoryEntry(BaseModel):
    """One message of the conversation history, flattened for JSON."""

    role: Literal["user", "assistant"]
    content: str = ""
    tool_calls: Optional[list[dict[str, Any]]] = None
    tool_results: Optional[list[dict[str, Any]]] = None


class ChatCompletionMessage(BaseModel):
    """Message in a chat completion response."""

    role: Literal["assistant"] = "assistant"
    content: str


class ChatCompletionChoice(BaseModel):
    """A single choice in a chat completion response."""

    index: int = 0
    message: ChatCompletionMessage
    finish_reason: Literal["stop", "length", "error"] = "stop"


class UsageInfo(BaseModel):
    """Token usage information."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ChatCompletionResponse(BaseModel):
    """Response body for /v1/chat/completions endpoint."""

    id: str = Field(default_factory=lambda: f"chatcmpl-{uuid.uuid4().hex[:12]}")
    object: Literal["chat.completion"] = "chat.completion"
    created: int = Field(default_factory=lambda: int(time.time()))
    model: str = MODEL_ID
    choices: list[ChatCompletionChoice]
    usage: UsageInfo = Field(default_factory=UsageInfo)
    history: Optional[list[HistoryEntry]] = Field(
        default=None, description="Final conversation history (when include_history=True)"
    )


class ModelInfo(BaseModel):
    """Information about an available model."""

    id: str
    object: Literal["model"] = "model"
    created: int = Field(default_factory=lambda: int(time.time()))
    owned_by: str = MODEL_ID


class ModelListResponse(BaseModel):
    """Response body for /v1/models endpoint."""

    object: Literal["list"] = "list"
    data: list[ModelInfo]


class HealthResponse(BaseModel):
    """Response body for /health endpoint."""

    status: Literal["healthy", "unhealthy"]
    version: str
    model: str


class ErrorDetail(BaseModel):
    """Error detail in OpenAI format."""

    message: str
    type: str = "server_error"
    code: Optional[str] = None


class ErrorResponse(BaseModel):
    """Error response in OpenAI format."""

    error: ErrorDetail
