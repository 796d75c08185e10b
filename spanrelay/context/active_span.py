"""Active span registry, handles and continuations.

An :class:`ActiveSpanSource` binds spans to the current execution context.
Every span it adopts gets a :class:`RefCount` that is shared by the first
:class:`ActiveSpan` handle and any :class:`Continuation` forked from it with
:meth:`ActiveSpan.defer`. The span is finished by whichever release brings the
count to zero.

Callers own two contracts the registry cannot enforce:

- deactivate each handle exactly once;
- activate or release each continuation exactly once. A dropped continuation
  keeps its reference and the span never finishes.
"""

from __future__ import annotations

import logging
from contextvars import Token
from typing import Any, Mapping, Optional, TYPE_CHECKING

from spanrelay.context import context
from spanrelay.context.refcount import RefCount

if TYPE_CHECKING:
    from spanrelay.tracer.span import Span
    from spanrelay.tracer.span_context import SpanContext

logger = logging.getLogger(__name__)


def _release(span: "Span", ref_count: RefCount) -> None:
    """Drop one reference; finish the span when it was the last one."""
    if ref_count.decrement() == 0:
        logger.debug("Last reference to span '%s' released, finishing", span.operation_name)
        span.finish()


class ActiveSpan:
    """
    Handle for a span bound to the current execution context.

    Span mutators are plain pass-through. Calling :meth:`finish` directly skips
    the reference count, so a later :meth:`deactivate` of a sibling handle
    would finish the span again.
    """

    def __init__(self, source: "ActiveSpanSource", span: "Span", ref_count: RefCount) -> None:
        if span is None:
            raise ValueError("ActiveSpan requires a span")
        self._source = source
        self._span = span
        self._ref_count = ref_count
        self._token: Optional[Token] = None

    @property
    def span(self) -> "Span":
        return self._span

    @property
    def source(self) -> "ActiveSpanSource":
        return self._source

    def _bind(self) -> "ActiveSpan":
        self._token = context.push_active(self._source.slot, self)
        return self

    def deactivate(self) -> None:
        """Restore the previously active span, then release this reference."""
        if self._token is not None:
            context.pop_active(self._token)
            self._token = None
        _release(self._span, self._ref_count)

    def close(self) -> None:
        self.deactivate()

    def defer(self) -> "Continuation":
        """Take another reference and return it as a dormant continuation."""
        self._ref_count.increment()
        return self._source.make_continuation(self._span, self._ref_count)

    # Pass-through to the wrapped span

    @property
    def context(self) -> "SpanContext":
        return self._span.context

    @property
    def operation_name(self) -> str:
        return self._span.operation_name

    def set_operation_name(self, operation_name: str) -> "ActiveSpan":
        self._span.set_operation_name(operation_name)
        return self

    def set_tag(self, key: str, value: Any) -> "ActiveSpan":
        self._span.set_tag(key, value)
        return self

    def log_kv(self, fields: Mapping[str, Any], timestamp_ns: Optional[int] = None) -> "ActiveSpan":
        self._span.log_kv(fields, timestamp_ns)
        return self

    def log_event(self, event: str, payload: Any = None, timestamp_ns: Optional[int] = None) -> "ActiveSpan":
        self._span.log_event(event, payload, timestamp_ns)
        return self

    def set_baggage_item(self, key: str, value: str) -> "ActiveSpan":
        self._span.set_baggage_item(key, value)
        return self

    def get_baggage_item(self, key: str) -> Optional[str]:
        return self._span.get_baggage_item(key)

    def finish(self, finish_time_ns: Optional[int] = None) -> None:
        self._span.finish(finish_time_ns)

    # Context manager support

    def _on_error(self, exc: BaseException) -> None:
        self._span.set_tag("error", True)
        self._span.log_kv({
            "event": "error",
            "error.kind": type(exc).__name__,
            "message": str(exc),
        })

    def __enter__(self) -> "ActiveSpan":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        try:
            if exc:
                self._on_error(exc)
        finally:
            self.deactivate()
        return False

    async def __aenter__(self) -> "ActiveSpan":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        return self.__exit__(exc_type, exc, tb)

    def __repr__(self) -> str:
        return f"ActiveSpan({self._span!r}, refs={self._ref_count.value})"


class Continuation:
    """
    Dormant reference to a span, meant to be activated on another execution
    context (thread, task, callback).
    """

    def __init__(self, source: "ActiveSpanSource", span: "Span", ref_count: RefCount) -> None:
        if span is None:
            raise ValueError("Continuation requires a span")
        self._source = source
        self._span = span
        self._ref_count = ref_count

    @property
    def span(self) -> "Span":
        return self._span

    def activate(self) -> ActiveSpan:
        """Bind the span on the calling execution context and return its handle."""
        return ActiveSpan(self._source, self._span, self._ref_count)._bind()

    def release(self) -> None:
        """Give the reference back without ever activating it."""
        _release(self._span, self._ref_count)

    def __repr__(self) -> str:
        return f"Continuation({self._span!r}, refs={self._ref_count.value})"


class ActiveSpanSource:
    """Registry binding spans to the current execution context."""

    def __init__(self, name: str = "spanrelay-active-span") -> None:
        self.slot = context.create_slot(name)

    def active_span(self) -> Optional[ActiveSpan]:
        """Return the handle bound on this execution context, if any."""
        return context.get_active(self.slot)

    def adopt(self, span: "Span") -> ActiveSpan:
        """Start tracking ``span`` with a single reference and activate it."""
        logger.debug("Adopting span '%s'", span.operation_name)
        return self.make_continuation(span, RefCount(1)).activate()

    def make_continuation(self, span: "Span", ref_count: RefCount) -> Continuation:
        return Continuation(self, span, ref_count)
