"""
Completion provider contract.

A provider turns a ``CompletionRequest`` (prompt, prior history, preamble,
tool definitions and sampling settings) into a ``CompletionResponse`` whose
``choice`` is an ordered sequence of assistant content blocks.

Requests are assembled with ``CompletionRequestBuilder``; callers finish
with ``await builder.send()``.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Optional, Protocol, Sequence, runtime_checkable

from .errors import ProviderResponseError
from .message import AssistantContent, Message, Text, ToolCall

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompletionRequest:
    """Everything a provider needs for one completion call."""

    prompt: Message
    chat_history: tuple[Message, ...] = ()
    preamble: Optional[str] = None
    tools: tuple[dict, ...] = ()
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    additional_params: dict = field(default_factory=dict)


@dataclass(frozen=True)
class CompletionResponse:
    """A provider reply.

    Attributes:
        choice: Non-empty ordered sequence of Text / ToolCall blocks.
        raw_response: The provider's native response object, if any.
        usage: Token usage dict, if the provider reports one.
    """

    choice: tuple[AssistantContent, ...]
    raw_response: Any = None
    usage: Optional[dict] = None

    def __post_init__(self):
        choice = tuple(self.choice)
        if not choice:
            raise ProviderResponseError("Response contained no message or tool call")
        for block in choice:
            if not isinstance(block, (Text, ToolCall)):
                raise ProviderResponseError(
                    f"Unsupported response content block: {type(block).__name__}"
                )
        object.__setattr__(self, "choice", choice)


@runtime_checkable
class CompletionModel(Protocol):
    """Protocol for pluggable completion providers.

    Any object with an async ``completion(request)`` method works. Failures
    should be raised as ``ProviderError``.
    """

    async def completion(self, request: CompletionRequest) -> CompletionResponse:
        """Run one completion call."""
        ...


class CompletionRequestBuilder:
    """Fluent builder for a single completion call.

    Usage::

        response = await (
            CompletionRequestBuilder(model, prompt, history)
            .preamble("You are good at using tools.")
            .temperature(0.2)
            .send()
        )
    """

    def __init__(
        self,
        model: CompletionModel,
        prompt: Message,
        chat_history: Sequence[Message] = (),
    ):
        self._model = model
        self._request = CompletionRequest(
            prompt=prompt, chat_history=tuple(chat_history)
        )

    def preamble(self, preamble: Optional[str]) -> "CompletionRequestBuilder":
        self._request = replace(self._request, preamble=preamble)
        return self

    def tools(self, tools: Sequence[dict]) -> "CompletionRequestBuilder":
        self._request = replace(self._request, tools=tuple(tools))
        return self

    def temperature(self, temperature: Optional[float]) -> "CompletionRequestBuilder":
        self._request = replace(self._request, temperature=temperature)
        return self

    def max_tokens(self, max_tokens: Optional[int]) -> "CompletionRequestBuilder":
        self._request = replace(self._request, max_tokens=max_tokens)
        return self

    def additional_params(self, params: Optional[dict]) -> "CompletionRequestBuilder":
        merged = {**self._request.additional_params, **(params or {})}
        self._request = replace(self._request, additional_params=merged)
        return self

    def build(self) -> CompletionRequest:
        return self._request

    async def send(self) -> CompletionResponse:
        """Send the request to the model."""
        request = self.build()
        logger.debug(
            "Sending completion request (history=%d, tools=%d)",
            len(request.chat_history),
            len(request.tools),
        )
        return await self._model.completion(request)
