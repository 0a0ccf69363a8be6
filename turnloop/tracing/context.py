"""
Request-scoped tracing context using Langfuse SDK v3.

Parent-child linking is explicit: every span or generation passes its
trace_id and its own span id to the children it creates, so nesting is
correct regardless of OTEL context state (which matters once several
coroutines share one thread).

All context managers degrade to no-ops when tracing is disabled.
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generator, Optional

from .client import get_tracing_client

if TYPE_CHECKING:
    from langfuse.types import TraceContext

logger = logging.getLogger(__name__)


def _make_trace_context(trace_id: Optional[str], parent_span_id: Optional[str]):
    if not trace_id or not parent_span_id:
        return None
    from langfuse.types import TraceContext

    return TraceContext(trace_id=trace_id, parent_span_id=parent_span_id)


@dataclass
class _Observation:
    """Shared start/end lifecycle of spans and generations."""

    name: str
    enabled: bool = False
    metadata: Optional[dict] = None
    input: Optional[Any] = None
    _context_manager: Any = field(default=None, repr=False)
    _observation: Any = field(default=None, repr=False)
    _start_time: float = field(default=0.0, repr=False)
    _output: Optional[Any] = field(default=None, repr=False)
    _status: str = field(default="success", repr=False)
    _trace_context: Optional[Any] = field(default=None, repr=False)

    def _start_kwargs(self) -> dict:
        return {
            "as_type": "span",
            "name": self.name,
            "metadata": self.metadata,
            "input": self.input,
        }

    def _end_kwargs(self) -> dict:
        update: dict[str, Any] = {
            "metadata": {
                "status": self._status,
                "duration_ms": round((time.time() - self._start_time) * 1000, 2),
            }
        }
        if self._output is not None:
            update["output"] = self._output
        return update

    def start(self) -> None:
        if not self.enabled:
            return
        client = get_tracing_client()
        if not client or not client.client:
            return
        try:
            self._start_time = time.time()
            self._context_manager = client.client.start_as_current_observation(
                trace_context=self._trace_context, **self._start_kwargs()
            )
            self._observation = self._context_manager.__enter__()
        except Exception as e:
            logger.warning("Failed to start observation '%s': %s", self.name, e)
            self._observation = None

    def end(self) -> None:
        if not self.enabled or not self._observation:
            return
        try:
            self._observation.update(**self._end_kwargs())
            self._context_manager.__exit__(None, None, None)
        except Exception as e:
            logger.warning("Failed to end observation '%s': %s", self.name, e)

    def set_output(self, output: Any) -> None:
        self._output = output

    def set_status(self, status: str) -> None:
        self._status = status


@dataclass
class GenerationContext(_Observation):
    """A traced LLM call."""

    model: str = ""
    model_parameters: Optional[dict] = None
    _usage: Optional[dict] = field(default=None, repr=False)

    def _start_kwargs(self) -> dict:
        kwargs = super()._start_kwargs()
        kwargs.update(
            as_type="generation",
            model=self.model,
            model_parameters=self.model_parameters,
        )
        return kwargs

    def _end_kwargs(self) -> dict:
        kwargs = super()._end_kwargs()
        if self._usage:
            kwargs["usage"] = self._usage
        return kwargs

    def set_usage(
        self,
        prompt_tokens: Optional[int] = None,
        completion_tokens: Optional[int] = None,
        total_tokens: Optional[int] = None,
    ) -> None:
        """Set token usage for the generation."""
        self._usage = {}
        if prompt_tokens is not None:
            self._usage["promptTokens"] = prompt_tokens
        if completion_tokens is not None:
            self._usage["completionTokens"] = completion_tokens
        if total_tokens is not None:
            self._usage["totalTokens"] = total_tokens


@dataclass
class SpanContext(_Observation):
    """A traced unit of work that can parent further observations."""

    def _child_trace_context(self) -> Optional[Any]:
        if not self._trace_context:
            return None
        span_id = getattr(self._observation, "id", None)
        if not span_id:
            return self._trace_context
        return _make_trace_context(self._trace_context.get("trace_id"), span_id)

    @contextmanager
    def span(
        self,
        name: str,
        metadata: Optional[dict] = None,
        input: Optional[Any] = None,
    ) -> Generator["SpanContext", None, None]:
        """Create a child span with this span as parent."""
        child = SpanContext(
            name=name,
            enabled=self.enabled,
            metadata=metadata,
            input=input,
            _trace_context=self._child_trace_context(),
        )
        try:
            child.start()
            yield child
        finally:
            child.end()

    @contextmanager
    def generation(
        self,
        name: str,
        model: str,
        input: Optional[Any] = None,
        metadata: Optional[dict] = None,
        model_parameters: Optional[dict] = None,
    ) -> Generator[GenerationContext, None, None]:
        """Create a generation with this span as parent."""
        gen = GenerationContext(
            name=name,
            model=model,
            enabled=self.enabled,
            metadata=metadata,
            input=input,
            model_parameters=model_parameters,
            _trace_context=self._child_trace_context(),
        )
        try:
            gen.start()
            yield gen
        finally:
            gen.end()


@dataclass
class TracingContext:
    """
    Request-scoped tracing context.

    Manages the lifecycle of one trace: a root span opened by
    ``start_trace`` and closed by ``end_trace``, with child spans and
    generations created through ``span`` and ``generation``.
    """

    execution_id: str
    session_id: Optional[str] = None
    user_id: Optional[str] = None
    _context_manager: Any = field(default=None, repr=False)
    _root_span: Any = field(default=None, repr=False)
    _enabled: bool = field(default=False, repr=False)
    _start_time: float = field(default_factory=time.time, repr=False)
    _trace_id: Optional[str] = field(default=None, repr=False)
    _root_span_id: Optional[str] = field(default=None, repr=False)

    def __post_init__(self):
        client = get_tracing_client()
        self._enabled = client is not None and client.enabled

    @property
    def enabled(self) -> bool:
        return self._enabled

    def start_trace(
        self,
        name: str = "api_request",
        query: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> None:
        """Open the root span for this request."""
        if not self._enabled:
            return
        client = get_tracing_client()
        if not client or not client.client:
            return

        try:
            trace_metadata = {"execution_id": self.execution_id, **(metadata or {})}
            self._context_manager = client.client.start_as_current_observation(
                as_type="span",
                name=name,
                input={"query": query} if query else None,
                metadata=trace_metadata,
            )
            self._root_span = self._context_manager.__enter__()
            self._trace_id = getattr(self._root_span, "trace_id", None)
            self._root_span_id = getattr(self._root_span, "id", None)
            self._root_span.update_trace(
                user_id=self.user_id,
                session_id=self.session_id,
            )
            self._start_time = time.time()
        except Exception as e:
            logger.warning("[%s] Failed to start trace: %s", self.execution_id, e)
            self._root_span = None

    def get_trace_context(self) -> Optional["TraceContext"]:
        """TraceContext that makes new observations children of the root span."""
        return _make_trace_context(self._trace_id, self._root_span_id)

    def end_trace(
        self,
        output: Optional[str] = None,
        status: str = "success",
        metadata: Optional[dict] = None,
    ) -> None:
        """Close the root span."""
        if not self._enabled or not self._root_span:
            return
        try:
            self._root_span.update(
                output=output,
                metadata={
                    "status": status,
                    "duration_ms": round((time.time() - self._start_time) * 1000, 2),
                    **(metadata or {}),
                },
            )
            if self._context_manager:
                self._context_manager.__exit__(None, None, None)
        except Exception as e:
            logger.warning("[%s] Failed to end trace: %s", self.execution_id, e)

    @contextmanager
    def span(
        self,
        name: str,
        metadata: Optional[dict] = None,
        input: Optional[Any] = None,
    ) -> Generator[SpanContext, None, None]:
        """Create a span directly under the root span."""
        span_ctx = SpanContext(
            name=name,
            enabled=self._enabled,
            metadata=metadata,
            input=input,
            _trace_context=self.get_trace_context(),
        )
        try:
            span_ctx.start()
            yield span_ctx
        finally:
            span_ctx.end()
