"""
Agent: a completion model paired with a tool registry.

The agent knows how to build a completion request for one turn (preamble,
tool definitions, sampling settings) and hands out ``PromptRequest``
values that run the multi-turn loop.
"""

import logging
from typing import Optional, Sequence, Union

from .completion import CompletionModel, CompletionRequestBuilder
from .message import Message
from .orchestration import PromptRequest
from .tools import ToolSet

logger = logging.getLogger(__name__)


class Agent:
    """
    An LLM agent with tools.

    Usage::

        agent = Agent(OpenAICompletionModel(), tools=default_toolset())
        answer = await agent.prompt("What is 17 * 23?").multi_turn(1)
    """

    def __init__(
        self,
        model: CompletionModel,
        tools: Optional[ToolSet] = None,
        preamble: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        additional_params: Optional[dict] = None,
        default_max_depth: int = 0,
    ):
        self.model = model
        self.tools = tools if tools is not None else ToolSet()
        self.preamble = preamble
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.additional_params = additional_params or {}
        self.default_max_depth = default_max_depth

    @property
    def model_name(self) -> str:
        """Model identifier for tracing, or the provider class name."""
        return getattr(self.model, "model", None) or type(self.model).__name__

    async def completion(
        self, prompt: Message, chat_history: Sequence[Message]
    ) -> CompletionRequestBuilder:
        """
        Build the completion request for one turn.

        Args:
            prompt: The message the model should respond to.
            chat_history: Prior messages, oldest first.

        Returns:
            A builder preloaded with this agent's settings; call ``send()``.
        """
        return (
            CompletionRequestBuilder(self.model, prompt, chat_history)
            .preamble(self.preamble)
            .tools(self.tools.definitions())
            .temperature(self.temperature)
            .max_tokens(self.max_tokens)
            .additional_params(self.additional_params)
        )

    def prompt(self, prompt: Union[str, Message]) -> PromptRequest:
        """Start a prompt request without history."""
        request = PromptRequest.new(self, prompt)
        if self.default_max_depth:
            request = request.multi_turn(self.default_max_depth)
        return request

    def chat(self, prompt: Union[str, Message], chat_history: list[Message]) -> PromptRequest:
        """Start a prompt request that appends to ``chat_history``."""
        return self.prompt(prompt).with_history(chat_history)


def build_default_agent(
    base_url: Optional[str] = None,
    preamble: Optional[str] = None,
    max_depth: Optional[int] = None,
) -> Agent:
    """
    Build an agent from configuration.

    Uses the OpenAI-compatible provider and the built-in toolset.

    Args:
        base_url: Override the configured provider base URL.
        preamble: Override the configured system preamble.
        max_depth: Override the configured default turn depth.
    """
    from .config import config
    from .providers import OpenAICompletionModel
    from .tools import default_toolset

    return Agent(
        model=OpenAICompletionModel(base_url=base_url),
        tools=default_toolset(),
        preamble=preamble if preamble is not None else config.agent.preamble,
        temperature=config.provider.temperature,
        max_tokens=config.provider.max_tokens,
        default_max_depth=max_depth if max_depth is not None else config.agent.max_depth,
    )
