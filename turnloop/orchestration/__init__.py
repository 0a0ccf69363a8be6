"""
Multi-turn orchestration.

``PromptRequest`` runs the depth-bounded completion loop;
``resolve_tool_calls`` executes the tool calls of a single turn.
"""

from .prompt_request import PromptRequest
from .tool_calls import resolve_tool_calls

__all__ = [
    "PromptRequest",
    "resolve_tool_calls",
]
