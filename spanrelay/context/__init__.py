"""Active span registry and context propagation codecs."""

from spanrelay.context.active_span import ActiveSpan, ActiveSpanSource, Continuation
from spanrelay.context.propagators import (
    Codec,
    Format,
    TextMapCodec,
    TraceContextCodec,
)
from spanrelay.context.refcount import RefCount

__all__ = [
    "ActiveSpan",
    "ActiveSpanSource",
    "Continuation",
    "RefCount",
    "Codec",
    "Format",
    "TextMapCodec",
    "TraceContextCodec",
]
