"""Execution-context slot for the active span - using OpenTelemetry context directly.

OpenTelemetry context is backed by ``contextvars``, so every thread and every
asyncio task sees its own binding.
"""

from contextvars import Token
from typing import Any, Optional

from opentelemetry import context as context_api


def create_slot(name: str) -> str:
    """Return a new, unique context key for an active-span slot."""
    return context_api.create_key(name)


def get_active(slot: str) -> Optional[Any]:
    """Return whatever is bound to ``slot`` on the current execution context."""
    return context_api.get_value(slot)


def push_active(slot: str, value: Any) -> Token:
    """
    Bind ``value`` to ``slot`` and make it current.

    Returns:
        Token needed to restore the previous state
    """
    ctx = context_api.set_value(slot, value)
    return context_api.attach(ctx)


def pop_active(token: Token) -> None:
    """
    Restore the binding that was current before the matching ``push_active``.

    Args:
        token: Token returned by push_active()
    """
    context_api.detach(token)
