"""TracerProvider: shared configuration, registry and processors for named tracers."""

from __future__ import annotations

import logging
import threading
from typing import Dict, List, Optional, TYPE_CHECKING

from spanrelay.config import SpanRelayConfig
from spanrelay.context.active_span import ActiveSpanSource

if TYPE_CHECKING:
    from spanrelay.tracer.tracer import Tracer

logger = logging.getLogger(__name__)


class SpanProcessor:
    """
    Base span processor interface.

    ``on_finish`` runs synchronously inside ``Span.finish()``, on the execution
    context that released the last reference.
    """

    def on_finish(self, span) -> None:
        """
        Called when a span finishes.

        Args:
            span: the finished Span
        """
        pass

    def shutdown(self) -> None:
        """Shutdown the processor."""
        pass


class TracerProvider:
    """
    Hands out named tracers that share one active span registry, so a span
    activated through one tracer is the implicit parent for all of them.
    """

    def __init__(self, config: Optional[SpanRelayConfig] = None) -> None:
        self.config = config or SpanRelayConfig()
        self.source = ActiveSpanSource()
        self._processors: List[SpanProcessor] = []
        self._tracers: Dict[str, "Tracer"] = {}
        self._lock = threading.Lock()

        if self.config.logging.debug:
            logging.getLogger("spanrelay").setLevel(logging.DEBUG)
        if self.config.logging.log_spans:
            from spanrelay.processors.logging_processor import LoggingSpanProcessor

            self.add_span_processor(LoggingSpanProcessor())

    def get_tracer(self, name: str) -> "Tracer":
        """
        Get a tracer by name.

        Args:
            name: Instrumentation scope name
        """
        with self._lock:
            tracer = self._tracers.get(name)
            if tracer is None:
                from spanrelay.tracer.tracer import Tracer

                tracer = Tracer(
                    name,
                    source=self.source,
                    config=self.config,
                    processors=self._processors,
                )
                self._tracers[name] = tracer
            return tracer

    def add_span_processor(self, processor: SpanProcessor) -> None:
        with self._lock:
            self._processors.append(processor)

    @property
    def span_processors(self) -> List[SpanProcessor]:
        return list(self._processors)

    def shutdown(self) -> None:
        """Shutdown all processors."""
        for processor in self._processors:
            try:
                processor.shutdown()
            except Exception:
                logger.exception("Failed to shut down span processor %s", type(processor).__name__)
