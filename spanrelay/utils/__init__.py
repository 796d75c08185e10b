"""Utility functions for spanrelay."""

from spanrelay.utils.helpers import (
    format_trace_id,
    format_span_id,
    generate_span_id,
    generate_trace_id,
    parse_trace_id,
    parse_span_id,
)

__all__ = [
    "format_trace_id",
    "format_span_id",
    "generate_span_id",
    "generate_trace_id",
    "parse_trace_id",
    "parse_span_id",
]
