import os

import pytest

from spanrelay.tracer.provider import SpanProcessor
from spanrelay.tracer.tracer import Tracer


class RecordingProcessor(SpanProcessor):
    """Keeps every finished span, in finish order."""

    def __init__(self):
        self.finished = []
        self.shut_down = False

    def on_finish(self, span):
        self.finished.append(span)

    def shutdown(self):
        self.shut_down = True


@pytest.fixture
def recorder():
    return RecordingProcessor()


@pytest.fixture
def tracer(recorder):
    return Tracer("test", processors=[recorder])


@pytest.fixture
def isolated_env(tmp_path, monkeypatch):
    """No ambient config file or SPANRELAY_* variables."""
    for key in list(os.environ):
        if key.startswith("SPANRELAY_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    return tmp_path
