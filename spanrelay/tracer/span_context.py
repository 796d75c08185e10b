"""Immutable, propagatable span identity."""

from dataclasses import dataclass, field, replace
from typing import Dict, Mapping, Optional

TRACE_ID_KEY = "trace-id"
SPAN_ID_KEY = "span-id"
SAMPLED_KEY = "sampled"

IDENTITY_KEYS = frozenset({TRACE_ID_KEY, SPAN_ID_KEY, SAMPLED_KEY})


@dataclass(frozen=True)
class SpanContext:
    trace_id: str
    span_id: str
    trace_flags: int = 1  # 1 = sampled, 0 = not sampled
    baggage: Mapping[str, str] = field(default_factory=dict)
    trace_state: Mapping[str, str] = field(default_factory=dict)

    def is_valid(self) -> bool:
        return bool(self.trace_id and self.span_id)

    def get_baggage_item(self, key: str) -> Optional[str]:
        return self.baggage.get(key)

    def baggage_items(self) -> Dict[str, str]:
        """Return a snapshot copy of the baggage."""
        return dict(self.baggage)

    def with_baggage_item(self, key: str, value: str) -> "SpanContext":
        baggage = dict(self.baggage)
        baggage[key] = value
        return replace(self, baggage=baggage)


# Parent sentinel meaning "do not trace this".
NOOP_SPAN_CONTEXT = SpanContext(trace_id="", span_id="", trace_flags=0)
