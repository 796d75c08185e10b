"""Span processor that logs spans when they finish."""

from __future__ import annotations

import logging
from typing import Optional

from spanrelay.tracer.provider import SpanProcessor


class LoggingSpanProcessor(SpanProcessor):
    """Logs span summary on finish using the standard logging module."""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self.logger = logger or logging.getLogger("spanrelay.spans")

    def on_finish(self, span) -> None:
        self.logger.info(
            "[span] name=%s trace_id=%s span_id=%s parent_id=%s duration_ns=%s tags=%s baggage=%s",
            span.operation_name,
            span.context.trace_id,
            span.context.span_id,
            span.parent_span_id,
            span.duration_ns,
            span.tags,
            span.baggage,
        )
