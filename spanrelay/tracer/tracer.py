"""Tracer: composes the span builder, the active span registry and the format registry."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, MutableMapping, Optional, TYPE_CHECKING

from spanrelay.config import SpanRelayConfig
from spanrelay.context.active_span import ActiveSpan, ActiveSpanSource
from spanrelay.context.propagators import BUILTIN_CODECS, Codec
from spanrelay.errors import UnsupportedFormatError
from spanrelay.tracer.builder import NOOP_SPAN_BUILDER, SpanBuilder, resolve_context
from spanrelay.tracer.factory import DefaultSpanFactory, SpanFactory
from spanrelay.tracer.formats import FormatRegistry
from spanrelay.tracer.span_context import NOOP_SPAN_CONTEXT

if TYPE_CHECKING:
    from spanrelay.tracer.provider import SpanProcessor

logger = logging.getLogger(__name__)

EXTRACTED_OPERATION_NAME = "extracted"


def _builtin_codec(format: str, config: SpanRelayConfig) -> Codec:
    build = BUILTIN_CODECS.get(format)
    if build is None:
        raise UnsupportedFormatError(format, "register")
    return build(config.propagation)


class Tracer:
    """
    Entry point for creating, activating and propagating spans.

    Args:
        name: Instrumentation scope name
        factory: Span factory; defaults to in-memory spans
        source: Active span registry; tracers sharing one see the same active span
        config: Effective configuration; built-in codecs are registered from it
        processors: Span processors run on every finished span
    """

    def __init__(
        self,
        name: str = "spanrelay",
        factory: Optional[SpanFactory] = None,
        source: Optional[ActiveSpanSource] = None,
        config: Optional[SpanRelayConfig] = None,
        processors: Optional[List["SpanProcessor"]] = None,
    ) -> None:
        self.name = name
        self.config = config or SpanRelayConfig()
        self.factory = factory or DefaultSpanFactory(self.config.propagation.state_keys)
        self.source = source or ActiveSpanSource()
        self._processors: List["SpanProcessor"] = processors if processors is not None else []
        self._formats = FormatRegistry()
        for format in self.config.propagation.formats:
            self.register(format, _builtin_codec(format, self.config))

    def build_span(self, operation_name: str) -> SpanBuilder:
        return SpanBuilder(
            operation_name,
            tracer=self,
            ignore_active_span=self.config.tracer.ignore_active_span,
        )

    @property
    def active_span(self) -> Optional[ActiveSpan]:
        """The span bound to the calling execution context, if any."""
        return self.source.active_span()

    def adopt(self, span) -> ActiveSpan:
        return self.source.adopt(span)

    def register(self, format: str, codec: Codec) -> None:
        self._formats.register(format, codec)

    def formats(self) -> List[str]:
        return self._formats.formats()

    def inject(self, span_context: Any, format: str, carrier: MutableMapping[str, str]) -> None:
        """
        Write ``span_context`` into ``carrier`` using the codec registered for ``format``.

        Accepts a SpanContext or anything exposing one (span, active span).

        Raises:
            UnsupportedFormatError: no codec (or no injector) for ``format``
        """
        codec = self._formats.injector(format)
        context = resolve_context(span_context) or NOOP_SPAN_CONTEXT
        trace_state = self.factory.trace_state(context)
        try:
            codec.inject(trace_state, carrier)
        except NotImplementedError as exc:
            raise UnsupportedFormatError(format, "inject") from exc

    def extract(
        self,
        format: str,
        carrier: Mapping[str, str],
        operation_name: str = EXTRACTED_OPERATION_NAME,
    ) -> SpanBuilder:
        """
        Decode a parent from ``carrier`` and return a builder seeded with it.

        Returns NOOP_SPAN_BUILDER when the carrier holds no usable parent identity.

        Raises:
            UnsupportedFormatError: no codec (or no extractor) for ``format``
        """
        codec = self._formats.extractor(format)
        try:
            items = codec.extract(carrier)
        except NotImplementedError as exc:
            raise UnsupportedFormatError(format, "extract") from exc

        state: Dict[str, str] = {}
        baggage: Dict[str, str] = {}
        for key, value in items.items():
            if self.factory.is_trace_state(key, value):
                state[key] = value
            else:
                baggage[key] = value

        parent = self.factory.context_from_state(state, baggage)
        if parent is None:
            logger.debug("Nothing to extract from carrier for format '%s'", format)
            return NOOP_SPAN_BUILDER
        return self.build_span(operation_name).as_child_of(parent)

    def add_span_processor(self, processor: "SpanProcessor") -> None:
        self._processors.append(processor)

    def _run_span_processors(self, span) -> None:
        """Called by Span.finish()."""
        for processor in self._processors:
            try:
                processor.on_finish(span)
            except Exception:
                # Processors should not crash tracing
                logger.exception("Span processor %s failed", type(processor).__name__)

    def __repr__(self) -> str:
        return f"Tracer(name={self.name!r}, formats={self.formats()})"
