import io

import pytest

from skernel.runtime.kernel.results import FunctionResult
from skernel.runtime.kernel.telemetry import (
    ConsoleTelemetryClient,
    NoOpTelemetryClient,
    RecordingTelemetryClient,
    TelemetryClient,
)


def test_span_records_duration_and_success():
    client = RecordingTelemetryClient()

    with client.span("work", attributes={"items": 2}) as span:
        span.set_attribute("stage", "one")
        span.set_attributes(extra=True)

    name, attrs = client.spans[-1]
    assert name == "work"
    assert attrs["items"] == 2
    assert attrs["stage"] == "one"
    assert attrs["extra"] is True
    assert attrs["success"] is True
    assert attrs["duration_ms"] >= 0.0


def test_span_marks_errors_and_reraises():
    client = RecordingTelemetryClient()

    with pytest.raises(KeyError):
        with client.span("work"):
            raise KeyError("missing")

    _, attrs = client.spans[-1]
    assert attrs["success"] is False
    assert attrs["error_type"] == "KeyError"


def test_recording_client_is_bounded():
    client = RecordingTelemetryClient(max_spans=2)
    for index in range(3):
        with client.span(f"span-{index}"):
            pass

    assert [name for name, _ in client.spans] == ["span-1", "span-2"]
    client.clear()
    assert len(client.spans) == 0


def test_console_client_writes_sorted_payload():
    stream = io.StringIO()
    client = ConsoleTelemetryClient(stream=stream)

    client.emit_span("kernel.invoke", {"b": 2, "a": 1})

    assert stream.getvalue() == "kernel.invoke a=1 b=2\n"


def test_noop_client_accepts_spans():
    with NoOpTelemetryClient().span("ignored") as span:
        span.set_attribute("x", 1)


class UnreachableExporter(TelemetryClient):
    def emit_span(self, name, attributes):
        raise ConnectionError("exporter down")


def test_failing_sink_is_contained_and_logged(caplog):
    client = UnreachableExporter()

    with caplog.at_level("WARNING", logger="skernel.runtime.kernel.telemetry"):
        with client.span("kernel.invoke") as span:
            span.set_attribute("plugin", "Math")

    assert client.deliver("kernel.invoke", {}) is False
    assert "exporter down" in caplog.text
    assert RecordingTelemetryClient().deliver("kernel.invoke", {}) is True


def test_failing_sink_does_not_mask_body_errors():
    with pytest.raises(KeyError):
        with UnreachableExporter().span("kernel.invoke"):
            raise KeyError("missing")


def test_invocation_span_describes_call_and_outcome():
    client = RecordingTelemetryClient()

    with client.invocation_span("Math", "add", "native", ["b", "a"]) as span:
        span.record_result(FunctionResult(success=False, error="Math.add: boom", usage=2))

    name, attrs = client.spans[-1]
    assert name == "kernel.invoke"
    assert attrs["plugin"] == "Math"
    assert attrs["function"] == "add"
    assert attrs["function_type"] == "native"
    assert attrs["context_keys"] == ["a", "b"]
    assert attrs["success"] is False
    assert attrs["error"] == "Math.add: boom"
    assert attrs["output_chars"] == 0
    assert attrs["usage"] == 2
    assert "error_type" not in attrs
