"""Id generation and formatting helpers."""

from __future__ import annotations

from opentelemetry.sdk.trace.id_generator import RandomIdGenerator

_id_generator = RandomIdGenerator()


def generate_trace_id() -> str:
    """Return a new random trace id as a 32-character hex string."""
    return format_trace_id(_id_generator.generate_trace_id())


def generate_span_id() -> str:
    """Return a new random span id as a 16-character hex string."""
    return format_span_id(_id_generator.generate_span_id())


def format_trace_id(trace_id: int) -> str:
    """
    Format an integer trace id to hex string.

    Args:
        trace_id: trace id as a 128-bit integer

    Returns:
        32-character hex string
    """
    return format(trace_id, '032x')


def format_span_id(span_id: int) -> str:
    """
    Format an integer span id to hex string.

    Args:
        span_id: span id as a 64-bit integer

    Returns:
        16-character hex string
    """
    return format(span_id, '016x')


def parse_trace_id(hex_string: str) -> int:
    """Parse a hex trace id. Empty input yields the invalid id 0."""
    if not hex_string:
        return 0
    return int(hex_string, 16)


def parse_span_id(hex_string: str) -> int:
    """Parse a hex span id. Empty input yields the invalid id 0."""
    if not hex_string:
        return 0
    return int(hex_string, 16)
