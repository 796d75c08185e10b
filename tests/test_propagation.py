"""Tests for the format registry and the built-in codecs."""

import pytest

from spanrelay.config import PropagationSettings, SpanRelayConfig
from spanrelay.context.propagators import BUILTIN_CODECS, Codec, Format, TextMapCodec, TraceContextCodec
from spanrelay.errors import UnsupportedFormatError
from spanrelay.tracer.builder import NOOP_SPAN_BUILDER
from spanrelay.tracer.formats import FormatRegistry
from spanrelay.tracer.noop import NOOP_SPAN
from spanrelay.tracer.span_context import NOOP_SPAN_CONTEXT, SpanContext
from spanrelay.tracer.tracer import Tracer

TRACE_ID = "4bf92f3577b34da6a3ce929d0e0e4736"
SPAN_ID = "00f067aa0ba902b7"


class MarkerCodec(Codec):
    """Inject-only codec writing the span id under a fixed key."""

    def inject(self, trace_state, carrier):
        carrier["test-marker"] = trace_state["span-id"]


class TestFormatRegistry:
    def test_unknown_format_raises(self):
        registry = FormatRegistry()
        with pytest.raises(UnsupportedFormatError) as excinfo:
            registry.injector("carrier-pigeon")
        assert excinfo.value.format == "carrier-pigeon"
        assert excinfo.value.details["operation"] == "inject"
        assert "carrier-pigeon" in str(excinfo.value)

        with pytest.raises(UnsupportedFormatError) as excinfo:
            registry.extractor("carrier-pigeon")
        assert excinfo.value.details["operation"] == "extract"

    def test_last_registration_wins(self):
        registry = FormatRegistry()
        first, second = TextMapCodec(), TextMapCodec(prefix="x-")
        registry.register(Format.TEXT_MAP, first)
        registry.register(Format.TEXT_MAP, second)
        assert registry.injector(Format.TEXT_MAP) is second
        assert registry.extractor(Format.TEXT_MAP) is second
        assert Format.TEXT_MAP in registry
        assert registry.formats() == [Format.TEXT_MAP]

    def test_tracer_registers_builtin_formats(self, tracer):
        assert tracer.formats() == [Format.HTTP_HEADERS, Format.TEXT_MAP]


class TestUnsupportedFormat:
    def test_inject_unregistered_format(self, tracer):
        span = tracer.build_span("op").start()
        carrier = {}
        with pytest.raises(UnsupportedFormatError) as excinfo:
            tracer.inject(span.context, Format.BINARY, carrier)
        assert carrier == {}
        assert excinfo.value.details == {"format": Format.BINARY, "operation": "inject"}

    def test_extract_unregistered_format(self, tracer):
        carrier = {"ot-trace-id": TRACE_ID}
        with pytest.raises(UnsupportedFormatError):
            tracer.extract(Format.BINARY, carrier)
        assert carrier == {"ot-trace-id": TRACE_ID}

    def test_tracer_without_formats(self):
        tracer = Tracer("bare", config=SpanRelayConfig(propagation=PropagationSettings(formats=[])))
        assert tracer.formats() == []
        with pytest.raises(UnsupportedFormatError):
            tracer.inject(NOOP_SPAN_CONTEXT, Format.TEXT_MAP, {})

    def test_missing_extractor_is_unsupported(self, tracer):
        tracer.register("marker", MarkerCodec())
        carrier = {"test-marker": SPAN_ID}
        with pytest.raises(UnsupportedFormatError) as excinfo:
            tracer.extract("marker", carrier)
        assert excinfo.value.details["operation"] == "extract"
        assert carrier == {"test-marker": SPAN_ID}


class TestInject:
    def test_inject_custom_codec(self, tracer):
        tracer.register(Format.TEXT_MAP, MarkerCodec())
        span = tracer.build_span("test-inject-span").start()
        carrier = {}
        tracer.inject(span.context, Format.TEXT_MAP, carrier)
        assert carrier == {"test-marker": span.context.span_id}

    def test_inject_text_map(self, tracer):
        span = (
            tracer.build_span("op")
            .with_baggage_item("bag", "val")
            .with_state_item("sampling.priority", 1)
            .start()
        )
        carrier = {}
        tracer.inject(span.context, Format.TEXT_MAP, carrier)
        assert carrier == {
            "ot-trace-id": span.context.trace_id,
            "ot-span-id": span.context.span_id,
            "ot-sampled": "1",
            "ot-bag": "val",
            "ot-sampling.priority": "1",
        }

    def test_inject_accepts_span_and_active_span(self, tracer):
        with tracer.build_span("op").start_active() as active:
            from_handle, from_span = {}, {}
            tracer.inject(active, Format.TEXT_MAP, from_handle)
            tracer.inject(active.span, Format.TEXT_MAP, from_span)
        assert from_handle == from_span
        assert from_handle["ot-span-id"] == active.context.span_id

    def test_inject_noop_context_writes_nothing(self, tracer):
        carrier = {}
        tracer.inject(NOOP_SPAN_CONTEXT, Format.TEXT_MAP, carrier)
        tracer.inject(NOOP_SPAN, Format.HTTP_HEADERS, carrier)
        assert carrier == {}

    def test_inject_http_headers(self, tracer):
        parent = SpanContext(trace_id=TRACE_ID, span_id=SPAN_ID, baggage={"bag": "val"})
        carrier = {}
        tracer.inject(parent, Format.HTTP_HEADERS, carrier)
        assert carrier["traceparent"] == f"00-{TRACE_ID}-{SPAN_ID}-01"
        assert carrier["baggage"] == "bag=val"


class TestExtract:
    def test_empty_extract_returns_noop_builder(self, tracer):
        builder = tracer.extract(Format.TEXT_MAP, {"garbageEntry": "garbageVal"})
        assert builder is NOOP_SPAN_BUILDER
        assert builder == NOOP_SPAN_BUILDER

    def test_empty_http_extract_returns_noop_builder(self, tracer):
        assert tracer.extract(Format.HTTP_HEADERS, {}) is NOOP_SPAN_BUILDER
        assert tracer.extract(Format.HTTP_HEADERS, {"traceparent": "garbage"}) is NOOP_SPAN_BUILDER

    def test_baggage_without_identity_is_nothing(self, tracer):
        assert tracer.extract(Format.TEXT_MAP, {"ot-bag": "val"}) is NOOP_SPAN_BUILDER

    def test_extract_seeds_parent(self, tracer):
        carrier = {"ot-trace-id": TRACE_ID, "ot-span-id": SPAN_ID, "ot-bag": "val"}
        builder = tracer.extract(Format.TEXT_MAP, carrier)
        assert builder is not NOOP_SPAN_BUILDER
        assert builder.parent_context.trace_id == TRACE_ID
        assert builder.parent_context.span_id == SPAN_ID

        span = builder.start()
        assert span is not NOOP_SPAN
        assert span.operation_name == "extracted"
        assert span.parent_span_id == SPAN_ID
        assert span.get_baggage_item("bag") == "val"

    def test_extracted_builder_as_parent(self, tracer):
        carrier = {"ot-trace-id": TRACE_ID, "ot-span-id": SPAN_ID}
        parent = tracer.extract(Format.TEXT_MAP, carrier)
        child = tracer.build_span("child").as_child_of(parent).start()
        assert child is not NOOP_SPAN
        assert child.context.trace_id == TRACE_ID
        assert child.parent_span_id == SPAN_ID

    def test_extract_operation_name(self, tracer):
        carrier = {"ot-trace-id": TRACE_ID, "ot-span-id": SPAN_ID}
        span = tracer.extract(Format.TEXT_MAP, carrier, operation_name="handle-request").start()
        assert span.operation_name == "handle-request"

    def test_text_map_prefix_is_case_insensitive(self, tracer):
        carrier = {"OT-trace-id": TRACE_ID, "Ot-span-id": SPAN_ID}
        span = tracer.extract(Format.TEXT_MAP, carrier).start()
        assert span.context.trace_id == TRACE_ID

    def test_text_map_canonicalised_header_keys(self, tracer):
        original = tracer.build_span("client").with_baggage_item("bag", "val").start()
        carrier = {}
        tracer.inject(original.context, Format.TEXT_MAP, carrier)
        canonical = {"-".join(part.capitalize() for part in key.split("-")): value for key, value in carrier.items()}
        assert "Ot-Trace-Id" in canonical

        span = tracer.extract(Format.TEXT_MAP, canonical).start()
        assert span is not NOOP_SPAN
        assert span.context.trace_id == original.context.trace_id
        assert span.parent_span_id == original.context.span_id
        assert span.get_baggage_item("bag") == "val"

    @pytest.mark.parametrize(
        "trace_id, span_id",
        [
            ("garbage", "garbage"),
            (TRACE_ID, "not-hex"),
            ("0" * 32, SPAN_ID),
            (TRACE_ID, "0" * 16),
            ("f" * 33, SPAN_ID),
        ],
    )
    def test_unusable_ids_extract_to_noop_builder(self, tracer, trace_id, span_id):
        carrier = {"ot-trace-id": trace_id, "ot-span-id": span_id}
        assert tracer.extract(Format.TEXT_MAP, carrier) is NOOP_SPAN_BUILDER

    def test_extracted_ids_are_normalised(self, tracer):
        carrier = {"ot-trace-id": TRACE_ID.upper(), "ot-span-id": "f067aa0ba902b7"}
        parent = tracer.extract(Format.TEXT_MAP, carrier).parent_context
        assert parent.trace_id == TRACE_ID
        assert parent.span_id == SPAN_ID

        # normalised ids survive a switch to W3C headers
        headers = {}
        tracer.inject(parent, Format.HTTP_HEADERS, headers)
        assert headers["traceparent"] == f"00-{TRACE_ID}-{SPAN_ID}-01"


class TestRoundTrip:
    @pytest.mark.parametrize("format", [Format.TEXT_MAP, Format.HTTP_HEADERS])
    def test_round_trip_keeps_trace_identity(self, tracer, format):
        original = tracer.build_span("client").with_baggage_item("bag", "val").start()
        carrier = {}
        tracer.inject(original.context, format, carrier)

        child = tracer.build_span("server").as_child_of(tracer.extract(format, carrier)).start()
        assert child is not NOOP_SPAN
        assert child.context.trace_id == original.context.trace_id
        assert child.parent_span_id == original.context.span_id
        assert child.get_baggage_item("bag") == "val"

    @pytest.mark.parametrize("format", [Format.TEXT_MAP, Format.HTTP_HEADERS])
    def test_round_trip_keeps_trace_state(self, tracer, format):
        original = tracer.build_span("client").with_state_item("sampling.priority", 2).start()
        carrier = {}
        tracer.inject(original.context, format, carrier)

        child = tracer.extract(format, carrier).start()
        assert child.context.trace_state == {"sampling.priority": "2"}
        assert child.get_baggage_item("sampling.priority") is None

    def test_round_trip_keeps_unsampled_flag(self, tracer):
        parent = SpanContext(trace_id=TRACE_ID, span_id=SPAN_ID, trace_flags=0)
        carrier = {}
        tracer.inject(parent, Format.HTTP_HEADERS, carrier)
        assert carrier["traceparent"].endswith("-00")

        child = tracer.extract(Format.HTTP_HEADERS, carrier).start()
        assert child.context.trace_flags == 0

    def test_custom_prefix(self):
        config = SpanRelayConfig(propagation=PropagationSettings(formats=["text_map"], text_map_prefix="x-"))
        tracer = Tracer("prefixed", config=config)
        span = tracer.build_span("op").start()
        carrier = {}
        tracer.inject(span.context, Format.TEXT_MAP, carrier)
        assert set(carrier) == {"x-trace-id", "x-span-id", "x-sampled"}
        assert tracer.extract(Format.TEXT_MAP, carrier).parent_context.span_id == span.context.span_id


class TestCodecs:
    def test_builtin_codecs_follow_settings(self):
        settings = PropagationSettings(text_map_prefix="x-")
        text_map = BUILTIN_CODECS[Format.TEXT_MAP](settings)
        assert isinstance(text_map, TextMapCodec)
        assert text_map.prefix == "x-"
        assert isinstance(BUILTIN_CODECS[Format.HTTP_HEADERS](settings), TraceContextCodec)

    def test_text_map_codec_requires_prefix(self):
        with pytest.raises(ValueError):
            TextMapCodec(prefix="")

    def test_trace_context_codec_skips_invalid_identity(self):
        carrier = {}
        TraceContextCodec().inject({"bag": "val"}, carrier)
        assert carrier == {}

    def test_trace_context_codec_extract(self):
        carrier = {"traceparent": f"00-{TRACE_ID}-{SPAN_ID}-01", "baggage": "bag=val"}
        items = TraceContextCodec().extract(carrier)
        assert items == {"trace-id": TRACE_ID, "span-id": SPAN_ID, "sampled": "1", "bag": "val"}
