"""Format-keyed registry of propagation codecs."""

from __future__ import annotations

import logging
import threading
from typing import Dict, List

from spanrelay.context.propagators import Codec
from spanrelay.errors import UnsupportedFormatError

logger = logging.getLogger(__name__)


class FormatRegistry:
    """
    Maps a propagation format key to its codec.

    Written at configuration time, read on every inject/extract. The last
    registration for a format wins; there is no deregistration.
    """

    def __init__(self) -> None:
        self._codecs: Dict[str, Codec] = {}
        self._lock = threading.Lock()

    def register(self, format: str, codec: Codec) -> None:
        with self._lock:
            replaced = format in self._codecs
            self._codecs[format] = codec
        logger.debug(
            "%s codec %s for format '%s'",
            "Replaced" if replaced else "Registered",
            type(codec).__name__,
            format,
        )

    def injector(self, format: str) -> Codec:
        """Return the codec that injects ``format`` or raise UnsupportedFormatError."""
        return self._lookup(format, "inject")

    def extractor(self, format: str) -> Codec:
        """Return the codec that extracts ``format`` or raise UnsupportedFormatError."""
        return self._lookup(format, "extract")

    def _lookup(self, format: str, operation: str) -> Codec:
        codec = self._codecs.get(format)
        if codec is None:
            raise UnsupportedFormatError(format, operation)
        return codec

    def formats(self) -> List[str]:
        return sorted(self._codecs)

    def __contains__(self, format: str) -> bool:
        return format in self._codecs
