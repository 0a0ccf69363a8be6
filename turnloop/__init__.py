"""
turnloop - depth-bounded multi-turn tool calling for LLM agents

This package provides:
- A conversation data model (messages, text / tool call / tool result blocks)
- The completion provider contract and an OpenAI-compatible provider
- A tool registry with a built-in calculator tool
- PromptRequest, the multi-turn loop that resolves tool calls until the
  model answers in text or the depth budget runs out
- An OpenAI-compatible HTTP API and an interactive CLI
"""

from .agent import Agent
from .completion import (
    CompletionModel,
    CompletionRequest,
    CompletionRequestBuilder,
    CompletionResponse,
)
from .errors import (
    MaxDepthError,
    ProviderError,
    ToolInvocationError,
    ToolSetError,
    TurnLoopError,
)
from .message import (
    AssistantMessage,
    Message,
    Text,
    ToolCall,
    ToolFunction,
    ToolResult,
    UserMessage,
)
from .orchestration import PromptRequest, resolve_tool_calls
from .tools import ToolDefinition, ToolSet, default_toolset

__all__ = [
    "Agent",
    "AssistantMessage",
    "CompletionModel",
    "CompletionRequest",
    "CompletionRequestBuilder",
    "CompletionResponse",
    "MaxDepthError",
    "Message",
    "PromptRequest",
    "ProviderError",
    "Text",
    "ToolCall",
    "ToolDefinition",
    "ToolFunction",
    "ToolInvocationError",
    "ToolResult",
    "ToolSet",
    "ToolSetError",
    "TurnLoopError",
    "UserMessage",
    "default_toolset",
    "resolve_tool_calls",
]

__version__ = "0.1.0"
