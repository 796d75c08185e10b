"""Process-wide tracer provider lifecycle."""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Optional

from spanrelay.config import load_config
from spanrelay.tracer.provider import TracerProvider
from spanrelay.tracer.tracer import Tracer

logger = logging.getLogger(__name__)

_provider: Optional[TracerProvider] = None
_lock = threading.Lock()


def init(
    config_file: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> TracerProvider:
    """
    Load configuration and install the global tracer provider.

    Calling init() again returns the installed provider unchanged; call
    shutdown() first to re-initialize.

    Raises:
        ConfigError: if the configuration is invalid
    """
    global _provider
    with _lock:
        if _provider is not None:
            logger.warning("spanrelay is already initialized; call shutdown() before init() to reconfigure")
            return _provider
        config = load_config(config_file=config_file, overrides=overrides)
        _provider = TracerProvider(config)
        logger.debug("Initialized spanrelay with formats %s", config.propagation.formats)
        return _provider


def get_tracer_provider() -> TracerProvider:
    """Return the global provider, creating a default one on first use."""
    global _provider
    with _lock:
        if _provider is None:
            _provider = TracerProvider()
        return _provider


def get_tracer(name: str = "spanrelay") -> Tracer:
    return get_tracer_provider().get_tracer(name)


def shutdown() -> None:
    """Shut down the global provider and forget it."""
    global _provider
    with _lock:
        provider, _provider = _provider, None
    if provider is not None:
        provider.shutdown()
