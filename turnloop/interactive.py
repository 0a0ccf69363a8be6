#!/usr/bin/env python3
"""
turnloop Interactive CLI

A command-line chat with an agent that keeps one conversation history
across prompts. Each prompt runs a multi-turn request against that
history, so tool calls and their results stay in context.
"""

import argparse
import asyncio
import logging
import signal
import sys
from typing import Optional

from .agent import Agent, build_default_agent
from .config import config
from .errors import MaxDepthError, ProviderError, ToolInvocationError
from .message import AssistantMessage, Message, ToolResult, message_text

logger = logging.getLogger(__name__)

HELP = """
Available commands:
  /help       - Show this help message
  /history    - Show the conversation history
  /clear      - Clear conversation history
  /depth N    - Set the maximum tool-calling turn depth
  /tools      - List available tools
  /verbose    - Toggle verbose mode
  /quit       - Exit the CLI
"""


def setup_logging(verbose: bool = False) -> None:
    """Configure logging based on verbosity level."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def print_banner() -> None:
    print(
        """
╔════════════════════════════════════════════════════════════════╗
║                     turnloop Interactive                       ║
║                                                                ║
║  Multi-turn tool calling with a persistent conversation        ║
╚════════════════════════════════════════════════════════════════╝"""
    )
    print(HELP)


def format_message(index: int, message: Message) -> str:
    """One-line summary of a history message."""
    if isinstance(message, AssistantMessage):
        parts = [message_text(message)] if message_text(message) else []
        parts += [
            f"<call {call.function.name}({call.function.arguments})>"
            for call in message.tool_calls
        ]
        body = " ".join(parts)
    else:
        results = [b for b in message.content if isinstance(b, ToolResult)]
        if results:
            body = " ".join(f"<result {r.id}: {r.output[:80]}>" for r in results)
        else:
            body = message_text(message)
    return f"{index:3d}. {message.role:<9} {body}"


class InteractiveCLI:
    """Interactive CLI over a single caller-owned history."""

    def __init__(self, agent: Agent, max_depth: int, verbose: bool = False):
        self.agent = agent
        self.max_depth = max_depth
        self.verbose = verbose
        self.history: list[Message] = []
        self._current: Optional[asyncio.Task] = None

    def toggle_verbose(self) -> None:
        self.verbose = not self.verbose
        logging.getLogger("turnloop").setLevel(logging.DEBUG if self.verbose else logging.INFO)
        print(f"\nVerbose mode: {'ON' if self.verbose else 'OFF'}\n")

    def print_history(self) -> None:
        if not self.history:
            print("\nHistory is empty.\n")
            return
        print()
        for i, message in enumerate(self.history, start=1):
            print(format_message(i, message))
        print()

    def set_depth(self, arg: str) -> None:
        try:
            depth = int(arg)
            if depth < 0:
                raise ValueError(arg)
        except ValueError:
            print(f"\nInvalid depth: {arg!r} (expected a non-negative integer)\n")
            return
        self.max_depth = depth
        print(f"\nMax depth set to {depth}\n")

    def handle_command(self, line: str) -> bool:
        """Run a slash command. Returns False when the CLI should exit."""
        command, _, arg = line.partition(" ")
        command = command.lower()
        if command in ("/quit", "/exit", "/q"):
            return False
        if command == "/help":
            print(HELP)
        elif command == "/history":
            self.print_history()
        elif command == "/clear":
            self.history.clear()
            print("\nConversation history cleared.\n")
        elif command == "/depth":
            self.set_depth(arg.strip())
        elif command == "/tools":
            print("\nAvailable Tools:\n" + (self.agent.tools.get_tools_summary() or "(none)") + "\n")
        elif command == "/verbose":
            self.toggle_verbose()
        else:
            print(f"\nUnknown command: {command}. Type /help for commands.\n")
        return True

    async def process_query(self, query: str) -> None:
        """Run one prompt request against the shared history."""
        before = len(self.history)
        request = self.agent.chat(query, self.history).multi_turn(self.max_depth)
        self._current = asyncio.ensure_future(request.send())
        try:
            answer = await self._current
        except asyncio.CancelledError:
            print(
                f"\nRequest cancelled; {len(self.history) - before} message(s) "
                "were kept in history.\n"
            )
            self._warn_unanswered_tool_calls()
            return
        except MaxDepthError as e:
            print(f"\n{e}. Unresolved prompt:\n  {format_message(len(e.chat_history), e.prompt)}")
            print("Raise the limit with /depth N and ask again to continue.\n")
            return
        except ToolInvocationError as e:
            print(f"\nTool failure: {e}\n")
            self._warn_unanswered_tool_calls()
            return
        except ProviderError as e:
            print(f"\nProvider error: {e}\n")
            return
        finally:
            self._current = None

        print("\n" + "═" * 70)
        print(answer)
        print("═" * 70 + "\n")

    def _warn_unanswered_tool_calls(self) -> None:
        last = self.history[-1] if self.history else None
        if isinstance(last, AssistantMessage) and last.tool_calls:
            print("History ends with unanswered tool calls; use /clear before asking again.\n")

    def cancel_current(self) -> None:
        if self._current is not None and not self._current.done():
            self._current.cancel()
        else:
            print("\n(press Ctrl+D or type /quit to exit)")

    async def run(self) -> None:
        loop = asyncio.get_running_loop()
        try:
            loop.add_signal_handler(signal.SIGINT, self.cancel_current)
        except NotImplementedError:
            logger.debug("Signal handlers not supported on this platform")

        print_banner()
        while True:
            try:
                line = await asyncio.to_thread(input, "turnloop> ")
            except EOFError:
                print()
                break
            line = line.strip()
            if not line:
                continue
            if line.startswith("/"):
                if not self.handle_command(line):
                    break
                continue
            await self.process_query(line)

        close = getattr(self.agent.model, "close", None)
        if close is not None:
            await close()
        print("Goodbye!")


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="turnloop interactive CLI")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--max-depth",
        type=int,
        default=config.agent.max_depth,
        help="Maximum tool-calling turn depth (default: %(default)s)",
    )
    parser.add_argument("--base-url", default=None, help="OpenAI-compatible endpoint URL")
    parser.add_argument("--preamble", default=None, help="System preamble for the agent")
    args = parser.parse_args(argv)

    if args.max_depth < 0:
        parser.error("--max-depth must be non-negative")

    setup_logging(args.verbose)
    agent = build_default_agent(base_url=args.base_url, preamble=args.preamble)
    cli = InteractiveCLI(agent, max_depth=args.max_depth, verbose=args.verbose)
    asyncio.run(cli.run())
    return 0


if __name__ == "__main__":
    sys.exit(main())
