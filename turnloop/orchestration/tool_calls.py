"""
Tool call resolution for one model turn.

Runs the tool calls of a single assistant response strictly in order,
each awaited before the next begins. Every call is attempted even after
an earlier one fails; if any failed, the first failure in call order is
raised and the outputs of the successful calls are dropped.
"""

import json
import logging
from typing import Optional, Sequence

from ..errors import ToolArgumentsError, ToolInvocationError, ToolSetError
from ..message import ToolCall, ToolResult, UserMessage
from ..tools.registry import ToolSet
from ..tracing import SpanContext

logger = logging.getLogger(__name__)


async def resolve_tool_calls(
    tool_calls: Sequence[ToolCall],
    tools: ToolSet,
    span: Optional[SpanContext] = None,
) -> UserMessage:
    """
    Execute tool calls and package their outputs as one user message.

    Args:
        tool_calls: Tool calls from one response, in the order the model
            emitted them. Must not be empty.
        tools: Registry to dispatch calls to.
        span: Optional parent span; each call gets a child span.

    Returns:
        A UserMessage with one ToolResult per tool call, in call order.

    Raises:
        ToolInvocationError: Wrapping the first failing call's error.
    """
    parent = span or SpanContext(name="tool_calls")
    results: list[ToolResult] = []
    first_error: Optional[ToolSetError] = None

    for tool_call in tool_calls:
        name = tool_call.function.name
        try:
            arguments_json = json.dumps(tool_call.function.arguments)
        except (TypeError, ValueError) as e:
            logger.warning("Tool call %s (%s) has unencodable arguments: %s", tool_call.id, name, e)
            if first_error is None:
                first_error = ToolArgumentsError(name, str(e))
            continue

        with parent.span(name=f"tool:{name}", input={"arguments": arguments_json}) as tool_span:
            try:
                output = await tools.call(name, arguments_json)
            except ToolSetError as e:
                logger.warning("Tool call %s (%s) failed: %s", tool_call.id, name, e)
                tool_span.set_status("error")
                if first_error is None:
                    first_error = e
                continue
            tool_span.set_output({"result": output[:500]})

        results.append(
            ToolResult(id=tool_call.id, output=output, call_id=tool_call.call_id)
        )

    if first_error is not None:
        raise ToolInvocationError(first_error) from first_error

    return UserMessage(content=tuple(results))
