"""
Tool Registry - the set of tools an agent can call.

Each tool is registered once with its metadata, handler and formatter.
The registry renders OpenAI function-calling definitions for the
provider and dispatches calls by name with JSON-encoded arguments.
"""

import inspect
import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from ..errors import ToolArgumentsError, ToolCallError, ToolNotFoundError

logger = logging.getLogger(__name__)


@dataclass
class ToolDefinition:
    """Metadata for a tool - defined once, used everywhere."""

    name: str
    description: str
    parameters: dict[str, str]  # param_name -> description
    handler: Callable[[dict], Any]
    formatter: Optional[Callable[[Any], str]] = None

    def to_openai(self) -> dict:
        """Render as an OpenAI function-calling tool definition."""
        properties: dict = {}
        required: list[str] = []
        for param_name, param_desc in self.parameters.items():
            properties[param_name] = {
                "type": "string",
                "description": param_desc,
            }
            required.append(param_name)

        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": {
                    "type": "object",
                    "properties": properties,
                    "required": required,
                },
            },
        }

    def format_output(self, output: Any) -> str:
        if self.formatter is not None:
            return self.formatter(output)
        if isinstance(output, str):
            return output
        return json.dumps(output)


class ToolSet:
    """A registry of callable tools."""

    def __init__(self, tools: Optional[list[ToolDefinition]] = None):
        self._tools: dict[str, ToolDefinition] = {}
        for tool in tools or []:
            self.add(tool)

    def register(
        self,
        name: str,
        description: str,
        parameters: dict[str, str],
        handler: Callable[[dict], Any],
        formatter: Optional[Callable[[Any], str]] = None,
    ) -> None:
        """Register a tool with its metadata."""
        self.add(
            ToolDefinition(
                name=name,
                description=description,
                parameters=parameters,
                handler=handler,
                formatter=formatter,
            )
        )

    def add(self, tool: ToolDefinition) -> None:
        """Add a prebuilt tool definition, replacing any tool of the same name."""
        if tool.name in self._tools:
            logger.debug("Replacing registered tool '%s'", tool.name)
        self._tools[tool.name] = tool

    def get(self, name: str) -> Optional[ToolDefinition]:
        """Get a tool by name."""
        return self._tools.get(name)

    def names(self) -> list[str]:
        return list(self._tools)

    def definitions(self) -> list[dict]:
        """OpenAI-format definitions for every registered tool."""
        return [tool.to_openai() for tool in self._tools.values()]

    def get_tools_summary(self) -> str:
        """Get formatted summary of all tools for prompts."""
        lines = []
        for name, tool in self._tools.items():
            lines.append(f"- {name}: {tool.description}")
        return "\n".join(lines)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    async def call(self, name: str, arguments_json: str) -> str:
        """
        Call a tool by name.

        Args:
            name: Registered tool name.
            arguments_json: JSON-encoded arguments object.

        Returns:
            The formatted tool output.

        Raises:
            ToolNotFoundError: No tool with that name.
            ToolArgumentsError: Arguments are not a JSON object.
            ToolCallError: The handler or formatter raised.
        """
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFoundError(name)

        try:
            arguments = json.loads(arguments_json) if arguments_json else {}
        except json.JSONDecodeError as e:
            raise ToolArgumentsError(name, str(e)) from e
        if not isinstance(arguments, dict):
            raise ToolArgumentsError(
                name, f"expected a JSON object, got {type(arguments).__name__}"
            )

        logger.debug("Calling tool '%s' with %s", name, arguments)
        try:
            output = tool.handler(arguments)
            if inspect.isawaitable(output):
                output = await output
            return tool.format_output(output)
        except Exception as e:
            raise ToolCallError(name, e) from e
