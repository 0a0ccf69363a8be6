"""
Tests for the Tool Registry.

Tests cover tool registration, retrieval, definition rendering and dispatch.
"""

import json

import pytest

from turnloop.errors import ToolArgumentsError, ToolCallError, ToolNotFoundError
from turnloop.tools import ToolDefinition, ToolSet


@pytest.fixture
def toolset():
    """A toolset with a sync and an async tool."""
    tools = ToolSet()
    tools.register(
        "add",
        "Add two numbers",
        {"a": "first number", "b": "second number"},
        lambda p: {"sum": int(p["a"]) + int(p["b"])},
    )

    async def shout(params):
        return params["text"].upper()

    tools.register("shout", "Upper-case some text", {"text": "text to shout"}, shout)
    return tools


class TestToolSet:
    """Tests for the ToolSet class."""

    def test_get_existing_tool(self, toolset):
        """Test retrieving an existing tool."""
        tool = toolset.get("add")

        assert tool is not None
        assert tool.name == "add"
        assert "a" in tool.parameters

    def test_get_nonexistent_tool(self, toolset):
        """Test retrieving a nonexistent tool returns None."""
        assert toolset.get("nonexistent_tool") is None

    def test_membership_and_length(self, toolset):
        assert "add" in toolset
        assert "subtract" not in toolset
        assert len(toolset) == 2
        assert toolset.names() == ["add", "shout"]

    def test_register_replaces_same_name(self, toolset):
        toolset.register("add", "Replacement", {}, lambda p: "x")

        assert len(toolset) == 2
        assert toolset.get("add").description == "Replacement"

    def test_get_tools_summary(self, toolset):
        """Test getting a summary of all tools."""
        summary = toolset.get_tools_summary()

        assert "- add: Add two numbers" in summary
        assert "- shout: Upper-case some text" in summary

    def test_definitions_openai_format(self, toolset):
        """Definitions follow the OpenAI function-calling shape."""
        definition = toolset.definitions()[0]

        assert definition["type"] == "function"
        function = definition["function"]
        assert function["name"] == "add"
        assert function["parameters"]["type"] == "object"
        assert function["parameters"]["required"] == ["a", "b"]
        assert function["parameters"]["properties"]["a"] == {
            "type": "string",
            "description": "first number",
        }


class TestToolDefinition:
    """Tests for the ToolDefinition dataclass."""

    def test_format_output_uses_formatter(self):
        tool = ToolDefinition("t", "d", {}, lambda p: 3, formatter=lambda out: f"got {out}")
        assert tool.format_output(3) == "got 3"

    def test_format_output_passes_strings_through(self):
        tool = ToolDefinition("t", "d", {}, lambda p: "x")
        assert tool.format_output("plain") == "plain"

    def test_format_output_json_encodes(self):
        tool = ToolDefinition("t", "d", {}, lambda p: None)
        assert json.loads(tool.format_output({"a": [1, 2]})) == {"a": [1, 2]}


class TestToolSetCall:
    """Tests for ToolSet.call."""

    @pytest.mark.asyncio
    async def test_sync_handler(self, toolset):
        output = await toolset.call("add", '{"a": "2", "b": "3"}')
        assert json.loads(output) == {"sum": 5}

    @pytest.mark.asyncio
    async def test_async_handler(self, toolset):
        """Awaitable handler results are awaited."""
        assert await toolset.call("shout", '{"text": "hi"}') == "HI"

    @pytest.mark.asyncio
    async def test_empty_arguments(self):
        tools = ToolSet()
        tools.register("ping", "Ping", {}, lambda p: "pong")
        assert await tools.call("ping", "") == "pong"

    @pytest.mark.asyncio
    async def test_unknown_tool(self, toolset):
        with pytest.raises(ToolNotFoundError) as exc_info:
            await toolset.call("missing", "{}")
        assert exc_info.value.tool_name == "missing"

    @pytest.mark.asyncio
    async def test_invalid_json(self, toolset):
        with pytest.raises(ToolArgumentsError):
            await toolset.call("add", "{not json")

    @pytest.mark.asyncio
    async def test_non_object_json(self, toolset):
        with pytest.raises(ToolArgumentsError):
            await toolset.call("add", "[1, 2]")

    @pytest.mark.asyncio
    async def test_handler_error_wrapped(self, toolset):
        """Handler exceptions surface as ToolCallError, chained."""
        with pytest.raises(ToolCallError) as exc_info:
            await toolset.call("add", '{"a": "x", "b": "1"}')

        assert exc_info.value.tool_name == "add"
        assert isinstance(exc_info.value.__cause__, ValueError)
