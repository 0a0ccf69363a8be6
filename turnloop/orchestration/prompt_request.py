"""
Multi-turn prompt requests.

A ``PromptRequest`` drives an agent through as many completion turns as
the model needs to stop calling tools, bounded by a maximum depth:

    1. Take the last message in history as the prompt for this turn
    2. Stop with MaxDepthError if the turn counter exceeds max_depth + 1
    3. Call the model with the prompt and the rest of history as context
    4. Append the full assistant response to history
    5. No tool calls: return the response's text blocks joined by newlines
    6. Otherwise resolve the tool calls, append the results, go to 1

The check in step 2 runs before the counter is incremented, so a depth of
N allows up to N + 2 completion calls, and even depth 0 gets one full
tool round trip.
"""

import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Generator, Optional, Union

from ..errors import MaxDepthError
from ..message import AssistantMessage, Message, Text, ToolCall, as_message, message_text
from ..tracing import SpanContext, TracingContext
from .tool_calls import resolve_tool_calls

if TYPE_CHECKING:
    from ..agent import Agent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PromptRequest:
    """
    An immutable, awaitable description of one prompt request.

    Every configuration method returns a new request; nothing happens
    until the request is awaited (or ``send()`` is called).

    Usage::

        history: list[Message] = []
        answer = await agent.prompt("What is 3^8?").multi_turn(2).with_history(history)

    When ``chat_history`` is set it is borrowed: the request appends the
    prompt and every turn to it and never removes or reorders anything.
    The caller must not modify it while the request runs.
    """

    agent: "Agent"
    prompt: Message
    chat_history: Optional[list[Message]] = None
    max_depth: int = 0
    tracing_context: Optional[TracingContext] = None

    @classmethod
    def new(cls, agent: "Agent", prompt: Union[str, Message]) -> "PromptRequest":
        return cls(agent=agent, prompt=as_message(prompt))

    def multi_turn(self, depth: int) -> "PromptRequest":
        """Set the maximum number of tool-calling turns before giving up."""
        if isinstance(depth, bool) or not isinstance(depth, int) or depth < 0:
            raise ValueError(f"max depth must be a non-negative integer, got {depth!r}")
        return replace(self, max_depth=depth)

    def with_history(self, history: list[Message]) -> "PromptRequest":
        """Attach caller-owned history that the request appends to."""
        return replace(self, chat_history=history)

    def with_tracing(self, tracing_context: Optional[TracingContext]) -> "PromptRequest":
        return replace(self, tracing_context=tracing_context)

    def __await__(self) -> Generator[Any, None, str]:
        return self.send().__await__()

    async def send(self) -> str:
        """
        Run the request to completion.

        Returns:
            Newline-joined text blocks of the first response without tool calls.

        Raises:
            ProviderError: The completion provider failed.
            ToolInvocationError: A tool call failed.
            MaxDepthError: The depth budget ran out first.
        """
        if self.tracing_context is None:
            return await self._run(SpanContext(name="prompt_request"))

        with self.tracing_context.span(
            name="prompt_request",
            metadata={"max_depth": self.max_depth},
            input={"prompt": message_text(self.prompt)},
        ) as request_span:
            try:
                answer = await self._run(request_span)
            except Exception:
                request_span.set_status("error")
                raise
            request_span.set_output({"answer": answer[:500]})
            return answer

    async def _run(self, request_span: SpanContext) -> str:
        agent = self.agent
        if self.chat_history is not None:
            chat_history = self.chat_history
        else:
            chat_history = []
        chat_history.append(self.prompt)

        current_depth = 0
        while True:
            prompt = chat_history[-1]

            if current_depth > self.max_depth + 1:
                break

            current_depth += 1
            if self.max_depth > 1:
                logger.info(
                    "Current conversation depth: %d/%d", current_depth, self.max_depth
                )

            with request_span.generation(
                name=f"turn_{current_depth}",
                model=agent.model_name,
                input={"prompt": message_text(prompt), "history": len(chat_history) - 1},
            ) as generation:
                try:
                    builder = await agent.completion(prompt, chat_history[:-1])
                    response = await builder.send()
                except Exception:
                    generation.set_status("error")
                    raise
                if response.usage:
                    generation.set_usage(
                        prompt_tokens=response.usage.get("prompt_tokens"),
                        completion_tokens=response.usage.get("completion_tokens"),
                        total_tokens=response.usage.get("total_tokens"),
                    )

            tool_calls = [block for block in response.choice if isinstance(block, ToolCall)]
            texts = [block for block in response.choice if not isinstance(block, ToolCall)]

            chat_history.append(AssistantMessage(content=response.choice))

            if not tool_calls:
                merged = "\n".join(block.text for block in texts if isinstance(block, Text))
                if self.max_depth > 1:
                    logger.info("Depth reached: %d/%d", current_depth, self.max_depth)
                return merged

            logger.debug(
                "Turn %d requested %d tool call(s): %s",
                current_depth,
                len(tool_calls),
                ", ".join(call.function.name for call in tool_calls),
            )
            chat_history.append(
                await resolve_tool_calls(tool_calls, agent.tools, span=request_span)
            )

        logger.warning("Max depth (%d) reached without a final answer", self.max_depth)
        raise MaxDepthError(
            max_depth=self.max_depth,
            chat_history=list(chat_history),
            prompt=prompt,
        )
