"""
Error hierarchy for turnloop.

All errors inherit from TurnLoopError so callers can catch the whole
family at once. Three kinds terminate a prompt request:

- ProviderError: raised by the completion provider, surfaced verbatim.
- ToolInvocationError: wraps the first tool failure of a turn.
- MaxDepthError: the turn budget ran out before a text-only response.
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .message import Message


class TurnLoopError(Exception):
    """Base for all turnloop errors."""


class ProviderError(TurnLoopError):
    """The completion provider failed to produce a response.

    Attributes:
        provider: Name of the provider that failed, if known.
        original_error: The underlying SDK or transport exception.
    """

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        original_error: Optional[BaseException] = None,
    ) -> None:
        self.provider = provider
        self.original_error = original_error
        super().__init__(message)


class ProviderResponseError(ProviderError):
    """The provider answered, but the reply could not be interpreted."""


class ToolSetError(TurnLoopError):
    """Base for errors raised by a tool registry call.

    Attributes:
        tool_name: Name of the tool that was being called.
    """

    def __init__(self, tool_name: str, message: str) -> None:
        self.tool_name = tool_name
        super().__init__(message)


class ToolNotFoundError(ToolSetError):
    """No tool with the requested name is registered."""

    def __init__(self, tool_name: str) -> None:
        super().__init__(tool_name, f"Tool '{tool_name}' not found")


class ToolArgumentsError(ToolSetError):
    """Tool arguments were not a JSON object."""

    def __init__(self, tool_name: str, detail: str) -> None:
        super().__init__(tool_name, f"Invalid arguments for tool '{tool_name}': {detail}")


class ToolCallError(ToolSetError):
    """A tool handler raised while executing.

    Attributes:
        original_error: The exception raised by the handler.
    """

    def __init__(self, tool_name: str, original_error: BaseException) -> None:
        self.original_error = original_error
        super().__init__(
            tool_name, f"Tool '{tool_name}' execution error: {original_error}"
        )


class ToolInvocationError(TurnLoopError):
    """A tool call in the current turn failed, aborting the request.

    Attributes:
        error: The first failure in call order.
    """

    def __init__(self, error: ToolSetError) -> None:
        self.error = error
        super().__init__(f"Tool invocation failed: {error}")

    @property
    def tool_name(self) -> str:
        return self.error.tool_name


class MaxDepthError(TurnLoopError):
    """The turn budget was exhausted without a text-only response.

    Not a fault: it carries enough state for the caller to resume, e.g. by
    re-issuing the request with a higher depth against the same history.

    Attributes:
        max_depth: The configured maximum turn depth.
        chat_history: Snapshot of the history when the budget check tripped.
        prompt: The unresolved prompt (the last message in that history).
    """

    def __init__(
        self,
        max_depth: int,
        chat_history: "list[Message]",
        prompt: "Message",
    ) -> None:
        self.max_depth = max_depth
        self.chat_history = chat_history
        self.prompt = prompt
        super().__init__(f"Reached max turn depth ({max_depth})")
