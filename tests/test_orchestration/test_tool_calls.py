"""Tests for resolving the tool calls of a single turn."""

import asyncio
from unittest.mock import MagicMock

import pytest

from turnloop.errors import (
    ToolArgumentsError,
    ToolCallError,
    ToolInvocationError,
    ToolNotFoundError,
)
from turnloop.message import ToolCall, ToolFunction, ToolResult, UserMessage
from turnloop.orchestration import resolve_tool_calls
from turnloop.tools import ToolSet


@pytest.fixture
def recorder():
    """A toolset whose tools record the order they ran in."""
    log: list[str] = []
    toolset = ToolSet()

    def make(name):
        def handler(params):
            log.append(name)
            if params.get("fail"):
                raise RuntimeError(f"{name} failed")
            return f"{name}:{params.get('x', '')}"

        return handler

    for name in ("alpha", "beta", "gamma"):
        toolset.register(name, f"{name} tool", {"x": "value"}, make(name))
    return toolset, log


def _call(call_id, name, **arguments):
    return ToolCall(id=call_id, function=ToolFunction(name=name, arguments=arguments))


class TestResolveToolCalls:
    """Tests for resolve_tool_calls."""

    @pytest.mark.asyncio
    async def test_results_in_call_order(self, recorder):
        """One result per call, in the order the calls were made."""
        toolset, log = recorder
        calls = [_call("1", "gamma", x="c"), _call("2", "alpha", x="a"), _call("3", "beta", x="b")]

        message = await resolve_tool_calls(calls, toolset)

        assert isinstance(message, UserMessage)
        assert message.content == (
            ToolResult(id="1", output="gamma:c"),
            ToolResult(id="2", output="alpha:a"),
            ToolResult(id="3", output="beta:b"),
        )
        assert log == ["gamma", "alpha", "beta"]

    @pytest.mark.asyncio
    async def test_all_calls_attempted_after_failure(self, recorder):
        """A failure does not stop later calls from running."""
        toolset, log = recorder
        calls = [_call("1", "alpha", fail=True), _call("2", "beta"), _call("3", "gamma")]

        with pytest.raises(ToolInvocationError):
            await resolve_tool_calls(calls, toolset)

        assert log == ["alpha", "beta", "gamma"]

    @pytest.mark.asyncio
    async def test_first_failure_is_reported(self, recorder):
        """With several failures, the earliest in call order wins."""
        toolset, _ = recorder
        calls = [
            _call("1", "alpha"),
            _call("2", "beta", fail=True),
            _call("3", "gamma", fail=True),
        ]

        with pytest.raises(ToolInvocationError) as exc_info:
            await resolve_tool_calls(calls, toolset)

        err = exc_info.value
        assert err.tool_name == "beta"
        assert isinstance(err.error, ToolCallError)
        assert err.__cause__ is err.error
        assert "beta failed" in str(err)

    @pytest.mark.asyncio
    async def test_unknown_tool(self, recorder):
        """Unregistered tools fail with ToolNotFoundError inside the wrapper."""
        toolset, _ = recorder

        with pytest.raises(ToolInvocationError) as exc_info:
            await resolve_tool_calls([_call("1", "delta")], toolset)

        assert isinstance(exc_info.value.error, ToolNotFoundError)

    @pytest.mark.asyncio
    async def test_non_object_arguments(self, recorder):
        """Arguments that are not a JSON object are rejected by the registry."""
        toolset, log = recorder
        call = ToolCall(id="1", function=ToolFunction(name="alpha", arguments=[1, 2]))

        with pytest.raises(ToolInvocationError) as exc_info:
            await resolve_tool_calls([call], toolset)

        assert isinstance(exc_info.value.error, ToolArgumentsError)
        assert log == []

    @pytest.mark.asyncio
    async def test_child_span_per_call(self, recorder):
        """Each tool call opens a span on the parent."""
        toolset, _ = recorder
        parent = MagicMock()

        await resolve_tool_calls([_call("1", "alpha"), _call("2", "beta")], toolset, span=parent)

        names = [c.kwargs["name"] for c in parent.span.call_args_list]
        assert names == ["tool:alpha", "tool:beta"]

    @pytest.mark.asyncio
    async def test_unencodable_arguments(self, recorder):
        """Arguments that cannot be JSON-encoded fail that call only."""
        toolset, log = recorder
        calls = [
            ToolCall(id="1", function=ToolFunction(name="alpha", arguments={"x": {1, 2}})),
            _call("2", "beta"),
        ]

        with pytest.raises(ToolInvocationError) as exc_info:
            await resolve_tool_calls(calls, toolset)

        assert isinstance(exc_info.value.error, ToolArgumentsError)
        assert exc_info.value.tool_name == "alpha"
        assert log == ["beta"]

    @pytest.mark.asyncio
    async def test_calls_never_overlap(self):
        """Each call finishes before the next one starts."""
        events: list[str] = []
        in_flight = 0
        max_in_flight = 0

        def make(name):
            async def handler(params):
                nonlocal in_flight, max_in_flight
                in_flight += 1
                max_in_flight = max(max_in_flight, in_flight)
                events.append(f"start {name}")
                await asyncio.sleep(0)
                events.append(f"end {name}")
                in_flight -= 1
                return name

            return handler

        toolset = ToolSet()
        toolset.register("a", "first", {}, make("a"))
        toolset.register("b", "second", {}, make("b"))

        await resolve_tool_calls([_call("1", "a"), _call("2", "b")], toolset)

        assert max_in_flight == 1
        assert events == ["start a", "end a", "start b", "end b"]
