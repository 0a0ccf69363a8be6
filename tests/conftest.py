"""
Pytest configuration and fixtures for turnloop tests.
"""

from typing import Callable, Optional

import pytest

from turnloop.agent import Agent
from turnloop.completion import CompletionRequest, CompletionResponse
from turnloop.tools import ToolSet


class ScriptedModel:
    """Completion model double that replays scripted responses.

    Each entry is a list of content blocks, a CompletionResponse, or an
    exception to raise. A ``responder`` callable, when given, answers every
    request instead of the script. Received requests are kept in
    ``requests`` for assertions.
    """

    model = "scripted-model"

    def __init__(
        self,
        responses: Optional[list] = None,
        responder: Optional[Callable[[CompletionRequest], list]] = None,
    ):
        self._responses = list(responses or [])
        self._responder = responder
        self.requests: list[CompletionRequest] = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    async def completion(self, request: CompletionRequest) -> CompletionResponse:
        self.requests.append(request)
        if self._responder is not None:
            item = self._responder(request)
        elif self._responses:
            item = self._responses.pop(0)
        else:
            raise AssertionError("ScriptedModel ran out of responses")

        if isinstance(item, Exception):
            raise item
        if isinstance(item, CompletionResponse):
            return item
        return CompletionResponse(choice=tuple(item))


@pytest.fixture
def make_agent():
    """Factory fixture: build an Agent over a ScriptedModel."""

    def _make(responses=None, responder=None, tools: Optional[ToolSet] = None, **kwargs):
        model = ScriptedModel(responses=responses, responder=responder)
        agent = Agent(model=model, tools=tools if tools is not None else ToolSet(), **kwargs)
        return agent, model

    return _make


@pytest.fixture(autouse=True)
def reset_tracing():
    """Make sure no tracing client leaks between tests."""
    from turnloop.tracing import shutdown_tracing

    shutdown_tracing()
    yield
    shutdown_tracing()
