"""Completion providers."""

from .openai_compat import OpenAICompletionModel

__all__ = ["OpenAICompletionModel"]
