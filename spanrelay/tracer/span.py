"""Span implementation - an in-flight unit of traced work."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Mapping, NamedTuple, Optional, TYPE_CHECKING

from spanrelay.tracer.span_context import SpanContext

if TYPE_CHECKING:
    from spanrelay.tracer.tracer import Tracer

logger = logging.getLogger(__name__)


class ReferenceType(str, Enum):
    CHILD_OF = "child_of"
    FOLLOWS_FROM = "follows_from"


class Reference(NamedTuple):
    type: ReferenceType
    referenced_context: SpanContext


@dataclass(frozen=True)
class LogEntry:
    timestamp_ns: int
    fields: Dict[str, Any] = field(default_factory=dict)


class Span:
    """
    Mutable span owned by its creator until ``finish()``.

    Once finished, every mutator is accepted and ignored.
    """

    def __init__(
        self,
        operation_name: str,
        context: SpanContext,
        tracer: Optional["Tracer"] = None,
        parent_span_id: Optional[str] = None,
        references: Optional[List[Reference]] = None,
        tags: Optional[Mapping[str, Any]] = None,
        start_time_ns: Optional[int] = None,
    ) -> None:
        self.operation_name = operation_name
        self.context = context
        self.tracer = tracer
        self.parent_span_id = parent_span_id
        self.references: List[Reference] = list(references or [])
        self.tags: Dict[str, Any] = dict(tags or {})
        self.logs: List[LogEntry] = []
        self.start_time_ns = start_time_ns if start_time_ns is not None else time.time_ns()
        self.finish_time_ns: Optional[int] = None

    @property
    def finished(self) -> bool:
        return self.finish_time_ns is not None

    @property
    def duration_ns(self) -> Optional[int]:
        """Get span duration in nanoseconds."""
        if self.finish_time_ns is None:
            return None
        return self.finish_time_ns - self.start_time_ns

    @property
    def baggage(self) -> Dict[str, str]:
        return self.context.baggage_items()

    def set_operation_name(self, operation_name: str) -> "Span":
        if not self.finished:
            self.operation_name = operation_name
        return self

    def set_tag(self, key: str, value: Any) -> "Span":
        if not self.finished:
            self.tags[key] = value
        return self

    def log_kv(self, fields: Mapping[str, Any], timestamp_ns: Optional[int] = None) -> "Span":
        """Record a structured log entry on the span."""
        if not self.finished:
            ts = timestamp_ns if timestamp_ns is not None else time.time_ns()
            self.logs.append(LogEntry(ts, dict(fields)))
        return self

    def log_event(self, event: str, payload: Any = None, timestamp_ns: Optional[int] = None) -> "Span":
        fields: Dict[str, Any] = {"event": event}
        if payload is not None:
            fields["payload"] = payload
        return self.log_kv(fields, timestamp_ns)

    def set_baggage_item(self, key: str, value: str) -> "Span":
        # SpanContext is immutable: swap in a copy carrying the new item
        if not self.finished:
            self.context = self.context.with_baggage_item(key, value)
        return self

    def get_baggage_item(self, key: str) -> Optional[str]:
        return self.context.get_baggage_item(key)

    def set_trace_state_item(self, key: str, value: str) -> "Span":
        if not self.finished:
            state = dict(self.context.trace_state)
            state[key] = value
            self.context = replace(self.context, trace_state=state)
        return self

    def finish(self, finish_time_ns: Optional[int] = None) -> None:
        """
        Finish the span.

        Callers must not finish a span twice; a repeated call is ignored.
        """
        if self.finished:
            logger.debug("Span '%s' (%s) already finished", self.operation_name, self.context.span_id)
            return

        self.finish_time_ns = finish_time_ns if finish_time_ns is not None else time.time_ns()
        if self.tracer is not None:
            self.tracer._run_span_processors(self)

    def __repr__(self) -> str:
        return (
            f"Span(operation_name={self.operation_name!r}, trace_id={self.context.trace_id}, "
            f"span_id={self.context.span_id}, finished={self.finished})"
        )
