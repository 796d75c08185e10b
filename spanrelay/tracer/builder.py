"""Span builder: parent resolution, baggage merge and trace-state hooks."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple, TYPE_CHECKING

from spanrelay.context.active_span import ActiveSpan, ActiveSpanSource
from spanrelay.errors import SpanBuilderError
from spanrelay.tracer.factory import DefaultSpanFactory, NoopSpanFactory, SpanFactory
from spanrelay.tracer.noop import NOOP_SPAN
from spanrelay.tracer.span import Reference, ReferenceType
from spanrelay.tracer.span_context import NOOP_SPAN_CONTEXT, SpanContext

if TYPE_CHECKING:
    from spanrelay.tracer.tracer import Tracer

logger = logging.getLogger(__name__)


def resolve_context(parent: Any) -> Optional[SpanContext]:
    """Resolve a span, active span, context or builder to a SpanContext."""
    if parent is None:
        return None
    if isinstance(parent, SpanContext):
        return parent
    if isinstance(parent, SpanBuilder):
        return parent.parent_context
    return getattr(parent, "context", None)


class SpanBuilder:
    """
    Collects everything needed to start one span.

    Parents are recorded as given and resolved at :meth:`start` time, so
    baggage set on a parent span after ``as_child_of`` is still inherited.
    The first ``child_of`` parent is the primary parent; the first reference
    of any type is used when no ``child_of`` was declared.

    A builder starts exactly one span.
    """

    def __init__(
        self,
        operation_name: str,
        tracer: Optional["Tracer"] = None,
        factory: Optional[SpanFactory] = None,
        source: Optional[ActiveSpanSource] = None,
        ignore_active_span: bool = False,
    ) -> None:
        self.operation_name = operation_name
        self._tracer = tracer
        if factory is None:
            factory = tracer.factory if tracer is not None else DefaultSpanFactory()
        if source is None and tracer is not None:
            source = tracer.source
        self._factory = factory
        self._source = source
        self._references: List[Tuple[ReferenceType, Any]] = []
        self._baggage: Dict[str, str] = {}
        self._state_items: Dict[str, Any] = {}
        self._tags: Dict[str, Any] = {}
        self._start_time_ns: Optional[int] = None
        self._ignore_active_span = ignore_active_span
        self._started = False

    @property
    def parent_context(self) -> Optional[SpanContext]:
        """Context of the primary parent, or None when no parent was declared."""
        fallback = None
        for reference_type, parent in self._references:
            ctx = resolve_context(parent)
            if ctx is None:
                continue
            if reference_type == ReferenceType.CHILD_OF:
                return ctx
            if fallback is None:
                fallback = ctx
        return fallback

    def as_child_of(self, parent: Any) -> "SpanBuilder":
        return self.add_reference(ReferenceType.CHILD_OF, parent)

    def follows_from(self, parent: Any) -> "SpanBuilder":
        return self.add_reference(ReferenceType.FOLLOWS_FROM, parent)

    def add_reference(self, reference_type: ReferenceType, parent: Any) -> "SpanBuilder":
        if parent is not None:
            self._references.append((ReferenceType(reference_type), parent))
        return self

    def ignore_active_span(self) -> "SpanBuilder":
        self._ignore_active_span = True
        return self

    def with_baggage_item(self, key: str, value: str) -> "SpanBuilder":
        self._baggage[key] = value
        return self

    def with_state_item(self, key: str, value: Any) -> "SpanBuilder":
        """Stage a trace-state candidate; the factory classifies it at start()."""
        self._state_items[key] = value
        return self

    def with_tag(self, key: str, value: Any) -> "SpanBuilder":
        self._tags[key] = value
        return self

    def with_start_timestamp(self, start_time_ns: int) -> "SpanBuilder":
        self._start_time_ns = start_time_ns
        return self

    def _resolve_references(self) -> List[Reference]:
        references = []
        for reference_type, parent in self._references:
            ctx = resolve_context(parent)
            if ctx is not None:
                references.append(Reference(reference_type, ctx))
        return references

    def start(self):
        """Start the span. Returns the shared no-op span when the parent says "don't trace"."""
        if self._started:
            raise SpanBuilderError(
                "Span builder already started a span",
                {"operation_name": self.operation_name},
            )
        self._started = True

        references = self._resolve_references()
        primary = self.parent_context
        if primary is None and not self._ignore_active_span and self._source is not None:
            active = self._source.active_span()
            if active is not None:
                primary = active.context
                references.insert(0, Reference(ReferenceType.CHILD_OF, primary))

        if primary is NOOP_SPAN_CONTEXT:
            logger.debug("Parent of '%s' is the no-op context, not tracing", self.operation_name)
            return NOOP_SPAN

        baggage: Dict[str, str] = {}
        trace_state: Dict[str, str] = {}
        if primary is not None:
            baggage.update(primary.baggage)
            trace_state.update(primary.trace_state)

        for key, value in self._state_items.items():
            if self._factory.is_trace_state(key, value):
                trace_state[key] = str(value)
            else:
                baggage[key] = str(value)
        baggage.update(self._baggage)

        return self._factory.create_span(
            self._tracer,
            self.operation_name,
            primary,
            references,
            baggage,
            trace_state,
            dict(self._tags),
            self._start_time_ns,
        )

    def start_active(self) -> ActiveSpan:
        """Start the span and adopt it as the active span of this execution context."""
        span = self.start()
        if self._source is None:
            raise SpanBuilderError(
                "Span builder has no active span source",
                {"operation_name": self.operation_name},
            )
        return self._source.adopt(span)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(operation_name={self.operation_name!r})"


class NoopSpanBuilder(SpanBuilder):
    """Shared "nothing to trace" builder. Stages nothing; always starts the no-op span."""

    def __init__(self) -> None:
        super().__init__(
            "noop",
            factory=NoopSpanFactory(),
            source=ActiveSpanSource("spanrelay-noop-active-span"),
        )

    @property
    def parent_context(self) -> SpanContext:
        return NOOP_SPAN_CONTEXT

    def add_reference(self, reference_type: ReferenceType, parent: Any) -> "NoopSpanBuilder":
        return self

    def ignore_active_span(self) -> "NoopSpanBuilder":
        return self

    def with_baggage_item(self, key: str, value: str) -> "NoopSpanBuilder":
        return self

    def with_state_item(self, key: str, value: Any) -> "NoopSpanBuilder":
        return self

    def with_tag(self, key: str, value: Any) -> "NoopSpanBuilder":
        return self

    def with_start_timestamp(self, start_time_ns: int) -> "NoopSpanBuilder":
        return self

    def start(self):
        return NOOP_SPAN


NOOP_SPAN_BUILDER = NoopSpanBuilder()
