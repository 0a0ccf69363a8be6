"""
OpenAI-compatible completion provider.

Works against any endpoint that speaks the chat completions API with
function calling (vLLM with ``--enable-auto-tool-choice``, SGLang, OpenAI).
History is rendered as chat messages; tool results become ``tool`` role
messages keyed by the originating tool call id.
"""

import json
import logging
from typing import Any, Optional

from openai import AsyncOpenAI, OpenAIError

from ..completion import CompletionRequest, CompletionResponse
from ..config import config
from ..errors import ProviderError, ProviderResponseError
from ..message import (
    AssistantContent,
    AssistantMessage,
    Message,
    Text,
    ToolCall,
    ToolFunction,
    ToolResult,
)

logger = logging.getLogger(__name__)

PROVIDER_NAME = "openai"


def _encode_arguments(arguments: Any) -> str:
    if isinstance(arguments, str):
        return arguments
    return json.dumps(arguments)


def _decode_arguments(arguments: Optional[str]) -> Any:
    if not arguments:
        return {}
    try:
        return json.loads(arguments)
    except json.JSONDecodeError:
        logger.warning("Tool call arguments are not valid JSON: %s", arguments[:200])
        return arguments


def message_to_openai(message: Message) -> list[dict]:
    """Render one message as one or more chat completion messages."""
    if isinstance(message, AssistantMessage):
        text = "\n".join(b.text for b in message.content if isinstance(b, Text))
        entry: dict = {"role": "assistant", "content": text or None}
        tool_calls = message.tool_calls
        if tool_calls:
            entry["tool_calls"] = [
                {
                    "id": call.id,
                    "type": "function",
                    "function": {
                        "name": call.function.name,
                        "arguments": _encode_arguments(call.function.arguments),
                    },
                }
                for call in tool_calls
            ]
        return [entry]

    rendered: list[dict] = []
    texts: list[str] = []
    for block in message.content:
        if isinstance(block, ToolResult):
            rendered.append(
                {"role": "tool", "tool_call_id": block.id, "content": block.output}
            )
        else:
            texts.append(block.text)
    if texts:
        rendered.append({"role": "user", "content": "\n".join(texts)})
    return rendered


def request_to_messages(request: CompletionRequest) -> list[dict]:
    """Build the full chat completion message list for a request."""
    messages: list[dict] = []
    if request.preamble:
        messages.append({"role": "system", "content": request.preamble})
    for message in (*request.chat_history, request.prompt):
        messages.extend(message_to_openai(message))
    return messages


def parse_choice(response: Any) -> list[AssistantContent]:
    """Convert a chat completion response into content blocks."""
    if not response.choices:
        raise ProviderResponseError("Response contained no choices", provider=PROVIDER_NAME)

    message = response.choices[0].message
    blocks: list[AssistantContent] = []
    if message.content:
        blocks.append(Text(message.content))
    for call in message.tool_calls or []:
        blocks.append(
            ToolCall(
                id=call.id,
                function=ToolFunction(
                    name=call.function.name,
                    arguments=_decode_arguments(call.function.arguments),
                ),
            )
        )
    return blocks


class OpenAICompletionModel:
    """Completion model backed by ``openai.AsyncOpenAI``."""

    def __init__(
        self,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.model = model or config.provider.model
        self.base_url = base_url or config.provider.base_url
        self._client = client or AsyncOpenAI(
            base_url=self.base_url,
            api_key=api_key or config.provider.api_key,
            timeout=timeout or config.provider.timeout,
        )

    async def completion(self, request: CompletionRequest) -> CompletionResponse:
        create_kwargs: dict = {
            "model": self.model,
            "messages": request_to_messages(request),
        }
        if request.tools:
            create_kwargs["tools"] = list(request.tools)
        if request.temperature is not None:
            create_kwargs["temperature"] = request.temperature
        if request.max_tokens is not None:
            create_kwargs["max_tokens"] = request.max_tokens
        create_kwargs.update(request.additional_params)

        try:
            response = await self._client.chat.completions.create(**create_kwargs)
        except OpenAIError as e:
            logger.error("Completion call to %s failed: %s", self.base_url, e)
            raise ProviderError(
                f"Completion request failed: {e}",
                provider=PROVIDER_NAME,
                original_error=e,
            ) from e

        blocks = parse_choice(response)
        if not blocks:
            raise ProviderResponseError(
                "Response contained no message or tool call", provider=PROVIDER_NAME
            )

        usage = None
        if response.usage:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }
        return CompletionResponse(choice=tuple(blocks), raw_response=response, usage=usage)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.close()
