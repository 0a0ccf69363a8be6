"""Tests for OpenAI-compatible chat endpoints."""

import json
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from turnloop.api.main import app
from turnloop.errors import ProviderError
from turnloop.message import Text, ToolCall, ToolFunction
from turnloop.tools import default_toolset

client = TestClient(app)


def _calculate(call_id, expression):
    return ToolCall(
        id=call_id, function=ToolFunction(name="calculate", arguments={"expression": expression})
    )


@pytest.fixture
def serve(make_agent, monkeypatch):
    """Route chat completions to an agent over a scripted model."""

    def _serve(responses=None, responder=None):
        agent, model = make_agent(
            responses=responses, responder=responder, tools=default_toolset()
        )
        factory = Mock(return_value=agent)
        monkeypatch.setattr("turnloop.api.routes.chat.build_default_agent", factory)
        return factory, model

    return _serve


def _post(messages, **extra):
    return client.post(
        "/v1/chat/completions",
        json={"model": "turnloop", "messages": messages, **extra},
    )


class TestModelsEndpoint:
    """Tests for /v1/models endpoint."""

    def test_list_models(self):
        """Models list should follow OpenAI format."""
        response = client.get("/v1/models")
        assert response.status_code == 200
        data = response.json()
        assert data["object"] == "list"
        assert [m["id"] for m in data["data"]] == ["turnloop"]
        assert data["data"][0]["object"] == "model"

    def test_get_model(self):
        assert client.get("/v1/models/turnloop").status_code == 200

    def test_get_model_not_found(self):
        assert client.get("/v1/models/unknown-model").status_code == 404


class TestChatCompletionsEndpoint:
    """Tests for /v1/chat/completions endpoint."""

    def test_text_answer(self, serve):
        """A text-only reply is returned as the completion content."""
        serve([[Text("The answer is 42")]])

        response = _post([{"role": "user", "content": "What is 6 * 7?"}])

        assert response.status_code == 200
        data = response.json()
        assert data["object"] == "chat.completion"
        assert data["choices"][0]["message"]["content"] == "The answer is 42"
        assert data["choices"][0]["finish_reason"] == "stop"
        assert data["usage"]["total_tokens"] > 0
        assert data["history"] is None

    def test_tool_round_trip_with_history(self, serve):
        """include_history returns every message the request appended."""
        _, model = serve([[_calculate("c1", "6 * 7")], [Text("42")]])

        response = _post(
            [{"role": "user", "content": "What is 6 * 7?"}],
            include_history=True,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["choices"][0]["message"]["content"] == "42"
        assert model.calls == 2
        history = data["history"]
        assert [entry["role"] for entry in history] == ["user", "assistant", "user", "assistant"]
        assert history[1]["tool_calls"][0]["name"] == "calculate"
        assert history[2]["tool_results"][0]["output"] == "6 * 7 = 42"

    def test_system_and_prior_messages(self, serve):
        """System messages become the preamble, earlier turns the history."""
        factory, model = serve([[Text("done")]])

        response = _post(
            [
                {"role": "system", "content": "Be terse."},
                {"role": "user", "content": "Hi"},
                {"role": "assistant", "content": "Hello"},
                {"role": "user", "content": "Bye"},
            ]
        )

        assert response.status_code == 200
        factory.assert_called_once_with(preamble="Be terse.")
        request = model.requests[0]
        assert len(request.chat_history) == 2
        assert request.prompt.content == (Text("Bye"),)

    def test_last_message_must_be_user(self, serve):
        serve([[Text("unused")]])
        response = _post(
            [
                {"role": "user", "content": "Hi"},
                {"role": "assistant", "content": "Hello"},
            ]
        )
        assert response.status_code == 400

    def test_empty_messages_rejected(self):
        assert _post([]).status_code == 400

    def test_negative_depth_rejected(self):
        response = _post([{"role": "user", "content": "Hi"}], max_depth=-1)
        assert response.status_code == 400

    def test_max_depth_exceeded(self, serve):
        """A model that never stops calling tools gets a 422."""
        _, model = serve(responder=lambda request: [_calculate("c", "1 + 1")])

        response = _post([{"role": "user", "content": "loop"}], max_depth=0)

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["type"] == "max_depth_exceeded"
        assert "Reached max turn depth (0)" in error["message"]
        assert model.calls == 2

    def test_tool_error(self, serve):
        serve([[ToolCall(id="c1", function=ToolFunction(name="missing", arguments={}))]])

        response = _post([{"role": "user", "content": "call it"}])

        assert response.status_code == 502
        assert response.json()["error"]["type"] == "tool_error"

    def test_provider_error(self, serve):
        serve([ProviderError("upstream unavailable", provider="openai")])

        response = _post([{"role": "user", "content": "Hi"}])

        assert response.status_code == 502
        error = response.json()["error"]
        assert error["type"] == "provider_error"
        assert "upstream unavailable" in error["message"]

    def test_unexpected_error(self, serve):
        serve([RuntimeError("boom")])

        response = _post([{"role": "user", "content": "Hi"}])

        assert response.status_code == 500
        assert response.json()["error"]["type"] == "server_error"

    def test_streaming(self, serve):
        """Streaming sends the answer as one chunk, then a stop chunk."""
        serve([[Text("streamed answer")]])

        response = _post([{"role": "user", "content": "Hi"}], stream=True)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        events = [line[len("data: "):] for line in response.text.splitlines() if line]
        assert events[-1] == "[DONE]"
        first = json.loads(events[0])
        assert first["object"] == "chat.completion.chunk"
        assert first["choices"][0]["delta"]["content"] == "streamed answer"
        assert json.loads(events[1])["choices"][0]["finish_reason"] == "stop"
