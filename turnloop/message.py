"""
Conversation data model.

Messages are immutable once constructed. A history is a plain
``list[Message]`` that is only ever appended to.

Content blocks form a closed set:

- assistant blocks: ``Text`` or ``ToolCall``
- user blocks: ``Text`` or ``ToolResult``
"""

from dataclasses import dataclass
from typing import Any, Optional, Union


@dataclass(frozen=True)
class Text:
    """A plain text content block."""

    text: str


@dataclass(frozen=True)
class ToolFunction:
    """The function a tool call asks to run.

    ``arguments`` is any JSON value, normally a dict.
    """

    name: str
    arguments: Any


@dataclass(frozen=True)
class ToolCall:
    """A model request to invoke a named tool."""

    id: str
    function: ToolFunction
    # Secondary call-group identifier some providers attach to tool calls.
    call_id: Optional[str] = None


@dataclass(frozen=True)
class ToolResult:
    """The output of a tool call, fed back to the model."""

    id: str
    output: str
    call_id: Optional[str] = None


AssistantContent = Union[Text, ToolCall]
UserContent = Union[Text, ToolResult]

_ASSISTANT_KINDS = (Text, ToolCall)
_USER_KINDS = (Text, ToolResult)


def _freeze_content(message: object, kinds: tuple, role: str) -> None:
    content = tuple(message.content)  # type: ignore[attr-defined]
    if not content:
        raise ValueError(f"{role} message content must not be empty")
    for block in content:
        if not isinstance(block, kinds):
            raise TypeError(
                f"Unsupported {role} content block: {type(block).__name__}"
            )
    object.__setattr__(message, "content", content)


@dataclass(frozen=True)
class UserMessage:
    """A message authored by the user (or carrying tool results)."""

    content: tuple[UserContent, ...]

    def __post_init__(self):
        _freeze_content(self, _USER_KINDS, "user")

    @classmethod
    def from_text(cls, text: str) -> "UserMessage":
        return cls(content=(Text(text),))

    @property
    def role(self) -> str:
        return "user"


@dataclass(frozen=True)
class AssistantMessage:
    """A message produced by the model."""

    content: tuple[AssistantContent, ...]
    id: Optional[str] = None

    def __post_init__(self):
        _freeze_content(self, _ASSISTANT_KINDS, "assistant")

    @classmethod
    def from_text(cls, text: str, id: Optional[str] = None) -> "AssistantMessage":
        return cls(content=(Text(text),), id=id)

    @property
    def role(self) -> str:
        return "assistant"

    @property
    def tool_calls(self) -> list[ToolCall]:
        return [block for block in self.content if isinstance(block, ToolCall)]


Message = Union[UserMessage, AssistantMessage]


def as_message(value: Union[str, Message]) -> Message:
    """Convert a prompt value into a message.

    Strings become single-block user messages; messages pass through.
    """
    if isinstance(value, (UserMessage, AssistantMessage)):
        return value
    if isinstance(value, str):
        return UserMessage.from_text(value)
    raise TypeError(f"Cannot convert {type(value).__name__} into a message")


def message_text(message: Message) -> str:
    """Join the text blocks of a message with newlines."""
    return "\n".join(
        block.text for block in message.content if isinstance(block, Text)
    )
