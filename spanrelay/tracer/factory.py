"""Span factories: the capability set a concrete tracer plugs into the builder.

The builder owns the shared lifecycle (parent resolution, baggage merge,
start-once); a factory decides what a span is, which items count as trace
state, and how trace state maps to and from a :class:`SpanContext`.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, TYPE_CHECKING

from spanrelay.tracer.noop import NOOP_SPAN
from spanrelay.tracer.span import Reference, Span
from spanrelay.tracer.span_context import (
    IDENTITY_KEYS,
    SAMPLED_KEY,
    SPAN_ID_KEY,
    TRACE_ID_KEY,
    SpanContext,
)
from spanrelay.utils.helpers import (
    format_span_id,
    format_trace_id,
    generate_span_id,
    generate_trace_id,
    parse_span_id,
    parse_trace_id,
)

if TYPE_CHECKING:
    from spanrelay.tracer.tracer import Tracer

logger = logging.getLogger(__name__)

DEFAULT_STATE_KEYS = ("sampling.priority",)


class SpanFactory:
    """Base span factory interface."""

    def create_span(
        self,
        tracer: Optional["Tracer"],
        operation_name: str,
        parent: Optional[SpanContext],
        references: List[Reference],
        baggage: Dict[str, str],
        trace_state: Dict[str, str],
        tags: Dict[str, Any],
        start_time_ns: Optional[int],
    ):
        raise NotImplementedError

    def is_trace_state(self, key: str, value: Any) -> bool:
        """Whether ``key``/``value`` goes to the trace-state channel instead of baggage."""
        return False

    def trace_state(self, span_context: SpanContext) -> Dict[str, str]:
        """Snapshot of everything that should propagate for ``span_context``."""
        return {}

    def context_from_state(
        self, state: Mapping[str, str], baggage: Mapping[str, str]
    ) -> Optional[SpanContext]:
        """Rebuild a parent context from decoded items, or None when there is no identity."""
        return None


class DefaultSpanFactory(SpanFactory):
    """
    Creates in-memory :class:`Span` objects with random OpenTelemetry ids.

    Identity keys (``trace-id``, ``span-id``, ``sampled``) and the configured
    ``state_keys`` are trace state; everything else is baggage.
    """

    def __init__(self, state_keys: Iterable[str] = DEFAULT_STATE_KEYS) -> None:
        self.state_keys = frozenset(state_keys) | IDENTITY_KEYS

    def create_span(
        self,
        tracer: Optional["Tracer"],
        operation_name: str,
        parent: Optional[SpanContext],
        references: List[Reference],
        baggage: Dict[str, str],
        trace_state: Dict[str, str],
        tags: Dict[str, Any],
        start_time_ns: Optional[int],
    ) -> Span:
        if parent is not None and parent.is_valid():
            trace_id = parent.trace_id
            trace_flags = parent.trace_flags
            parent_span_id: Optional[str] = parent.span_id
        else:
            trace_id = generate_trace_id()
            trace_flags = 1
            parent_span_id = None

        # Identity is carried by the context fields, never by the state map
        state = {k: v for k, v in trace_state.items() if k not in IDENTITY_KEYS}
        context = SpanContext(
            trace_id=trace_id,
            span_id=generate_span_id(),
            trace_flags=trace_flags,
            baggage=dict(baggage),
            trace_state=state,
        )
        return Span(
            operation_name,
            context,
            tracer=tracer,
            parent_span_id=parent_span_id,
            references=references,
            tags=tags,
            start_time_ns=start_time_ns,
        )

    def is_trace_state(self, key: str, value: Any) -> bool:
        return key in self.state_keys

    def trace_state(self, span_context: SpanContext) -> Dict[str, str]:
        if not span_context.is_valid():
            return {}
        snapshot = dict(span_context.baggage)
        snapshot.update(span_context.trace_state)
        snapshot[TRACE_ID_KEY] = span_context.trace_id
        snapshot[SPAN_ID_KEY] = span_context.span_id
        snapshot[SAMPLED_KEY] = "1" if span_context.trace_flags & 1 else "0"
        return snapshot

    def context_from_state(
        self, state: Mapping[str, str], baggage: Mapping[str, str]
    ) -> Optional[SpanContext]:
        try:
            trace_id = parse_trace_id(state.get(TRACE_ID_KEY, ""))
            span_id = parse_span_id(state.get(SPAN_ID_KEY, ""))
        except ValueError:
            logger.debug("Malformed span identity in carrier: %r", state)
            return None
        # Zero is the invalid id; ids wider than their field are unusable too
        if not 0 < trace_id < 1 << 128 or not 0 < span_id < 1 << 64:
            return None
        return SpanContext(
            trace_id=format_trace_id(trace_id),
            span_id=format_span_id(span_id),
            trace_flags=0 if state.get(SAMPLED_KEY) == "0" else 1,
            baggage=dict(baggage),
            trace_state={k: v for k, v in state.items() if k not in IDENTITY_KEYS},
        )


class NoopSpanFactory(SpanFactory):
    """Factory behind the no-op builder: every span is the shared no-op span."""

    def create_span(self, tracer, operation_name, parent, references, baggage, trace_state, tags, start_time_ns):
        return NOOP_SPAN
