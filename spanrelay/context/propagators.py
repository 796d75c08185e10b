"""Propagation formats and the built-in codecs.

A codec moves a trace-state snapshot (a flat ``str -> str`` mapping holding
the span identity, trace state and baggage) in and out of a carrier. The
tracer decides which decoded items are trace state and which are baggage.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Mapping, MutableMapping

from opentelemetry import baggage as baggage_api
from opentelemetry.baggage.propagation import W3CBaggagePropagator
from opentelemetry.trace import NonRecordingSpan, get_current_span, set_span_in_context
from opentelemetry.trace import SpanContext as OTelSpanContext, TraceFlags
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

from spanrelay.tracer.span_context import IDENTITY_KEYS, SAMPLED_KEY, SPAN_ID_KEY, TRACE_ID_KEY
from spanrelay.utils.helpers import format_span_id, format_trace_id, parse_span_id, parse_trace_id


class Format:
    """Well-known propagation format keys."""

    TEXT_MAP = "text_map"
    HTTP_HEADERS = "http_headers"
    BINARY = "binary"


class Codec:
    """
    Inject/extract strategy for one propagation format.

    Subclasses may implement only one side; the other raises
    ``NotImplementedError``, which the tracer reports as an unsupported format.
    """

    def inject(self, trace_state: Mapping[str, str], carrier: MutableMapping[str, str]) -> None:
        raise NotImplementedError

    def extract(self, carrier: Mapping[str, str]) -> Dict[str, str]:
        raise NotImplementedError


class TextMapCodec(Codec):
    """Writes every item as its own prefixed carrier key."""

    def __init__(self, prefix: str = "ot-") -> None:
        if not prefix:
            raise ValueError("prefix must not be empty")
        self.prefix = prefix.lower()

    def inject(self, trace_state: Mapping[str, str], carrier: MutableMapping[str, str]) -> None:
        for key, value in trace_state.items():
            carrier[f"{self.prefix}{key}"] = str(value)

    def extract(self, carrier: Mapping[str, str]) -> Dict[str, str]:
        items = {}
        for key, value in carrier.items():
            # HTTP stacks are free to change header case
            lowered = key.lower()
            if lowered.startswith(self.prefix):
                items[lowered[len(self.prefix):]] = value
        return items


class TraceContextCodec(Codec):
    """
    W3C Trace Context codec using OpenTelemetry's standard propagators.

    Identity goes to ``traceparent``; everything else rides in ``baggage``.
    """

    def __init__(self) -> None:
        self._trace_propagator = TraceContextTextMapPropagator()
        self._baggage_propagator = W3CBaggagePropagator()

    def inject(self, trace_state: Mapping[str, str], carrier: MutableMapping[str, str]) -> None:
        trace_id = parse_trace_id(trace_state.get(TRACE_ID_KEY, ""))
        span_id = parse_span_id(trace_state.get(SPAN_ID_KEY, ""))
        if not trace_id or not span_id:
            return

        sampled = trace_state.get(SAMPLED_KEY, "1") == "1"
        otel_context = OTelSpanContext(
            trace_id=trace_id,
            span_id=span_id,
            is_remote=False,
            trace_flags=TraceFlags(TraceFlags.SAMPLED if sampled else TraceFlags.DEFAULT),
        )
        ctx = set_span_in_context(NonRecordingSpan(otel_context))
        for key, value in trace_state.items():
            if key not in IDENTITY_KEYS:
                ctx = baggage_api.set_baggage(key, str(value), context=ctx)

        self._trace_propagator.inject(carrier, context=ctx)
        self._baggage_propagator.inject(carrier, context=ctx)

    def extract(self, carrier: Mapping[str, str]) -> Dict[str, str]:
        ctx = self._trace_propagator.extract(carrier)
        ctx = self._baggage_propagator.extract(carrier, context=ctx)

        items: Dict[str, str] = {}
        otel_context = get_current_span(context=ctx).get_span_context()
        if otel_context.is_valid:
            items[TRACE_ID_KEY] = format_trace_id(otel_context.trace_id)
            items[SPAN_ID_KEY] = format_span_id(otel_context.span_id)
            items[SAMPLED_KEY] = "1" if otel_context.trace_flags.sampled else "0"
        for key, value in baggage_api.get_all(context=ctx).items():
            items[key] = str(value)
        return items


BUILTIN_CODECS: Dict[str, Callable[[Any], Codec]] = {
    Format.TEXT_MAP: lambda settings: TextMapCodec(prefix=settings.text_map_prefix),
    Format.HTTP_HEADERS: lambda settings: TraceContextCodec(),
}
"""Codec builders for the built-in formats; each takes the propagation settings."""
