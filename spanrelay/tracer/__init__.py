"""Tracer components for spanrelay."""

from spanrelay.tracer.span_context import NOOP_SPAN_CONTEXT, SpanContext
from spanrelay.tracer.span import LogEntry, Reference, ReferenceType, Span
from spanrelay.tracer.noop import NOOP_SPAN, NoopSpan
from spanrelay.tracer.factory import DefaultSpanFactory, NoopSpanFactory, SpanFactory
from spanrelay.tracer.builder import NOOP_SPAN_BUILDER, NoopSpanBuilder, SpanBuilder
from spanrelay.tracer.formats import FormatRegistry
from spanrelay.tracer.provider import SpanProcessor, TracerProvider
from spanrelay.tracer.tracer import Tracer

__all__ = [
    "SpanContext",
    "NOOP_SPAN_CONTEXT",
    "Span",
    "LogEntry",
    "Reference",
    "ReferenceType",
    "NoopSpan",
    "NOOP_SPAN",
    "SpanFactory",
    "DefaultSpanFactory",
    "NoopSpanFactory",
    "SpanBuilder",
    "NoopSpanBuilder",
    "NOOP_SPAN_BUILDER",
    "FormatRegistry",
    "SpanProcessor",
    "TracerProvider",
    "Tracer",
]
