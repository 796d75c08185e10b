"""Null-object span shared by everything that decides not to trace."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from spanrelay.tracer.span_context import NOOP_SPAN_CONTEXT, SpanContext


class NoopSpan:
    """Span stand-in that records nothing."""

    operation_name = "noop"
    parent_span_id = None
    tracer = None
    finished = False

    @property
    def context(self) -> SpanContext:
        return NOOP_SPAN_CONTEXT

    @property
    def baggage(self) -> dict:
        return {}

    def set_operation_name(self, operation_name: str) -> "NoopSpan":
        return self

    def set_tag(self, key: str, value: Any) -> "NoopSpan":
        return self

    def log_kv(self, fields: Mapping[str, Any], timestamp_ns: Optional[int] = None) -> "NoopSpan":
        return self

    def log_event(self, event: str, payload: Any = None, timestamp_ns: Optional[int] = None) -> "NoopSpan":
        return self

    def set_baggage_item(self, key: str, value: str) -> "NoopSpan":
        return self

    def get_baggage_item(self, key: str) -> Optional[str]:
        return None

    def set_trace_state_item(self, key: str, value: str) -> "NoopSpan":
        return self

    def finish(self, finish_time_ns: Optional[int] = None) -> None:
        pass

    def __repr__(self) -> str:
        return "NoopSpan"


NOOP_SPAN = NoopSpan()
