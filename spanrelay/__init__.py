"""spanrelay: active span lifecycle, continuations and context propagation."""

from spanrelay.tracer import (
    NOOP_SPAN,
    NOOP_SPAN_BUILDER,
    NOOP_SPAN_CONTEXT,
    ReferenceType,
    Span,
    SpanBuilder,
    SpanContext,
    SpanProcessor,
    Tracer,
    TracerProvider,
)
from spanrelay.context import (
    ActiveSpan,
    ActiveSpanSource,
    Codec,
    Continuation,
    Format,
    TextMapCodec,
    TraceContextCodec,
)
from spanrelay.errors import ConfigError, SpanBuilderError, SpanRelayError, UnsupportedFormatError
from spanrelay.sdk import get_tracer, get_tracer_provider, init, shutdown

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "init",
    "shutdown",
    "get_tracer",
    "get_tracer_provider",
    "Tracer",
    "TracerProvider",
    "SpanProcessor",
    "Span",
    "SpanBuilder",
    "SpanContext",
    "ReferenceType",
    "ActiveSpan",
    "ActiveSpanSource",
    "Continuation",
    "Codec",
    "Format",
    "TextMapCodec",
    "TraceContextCodec",
    "NOOP_SPAN",
    "NOOP_SPAN_BUILDER",
    "NOOP_SPAN_CONTEXT",
    "SpanRelayError",
    "ConfigError",
    "UnsupportedFormatError",
    "SpanBuilderError",
]
