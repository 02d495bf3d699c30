import pytest

from skernel.config.settings import KernelSettings
from skernel.runtime.kernel.builder import KernelBuilder
from skernel.runtime.kernel.chat_service import CallableChatService
from skernel.runtime.kernel.errors import DuplicateRegistrationError
from skernel.runtime.kernel.events import EventDispatcher
from skernel.runtime.kernel.functions import KernelFunction
from skernel.runtime.kernel.kernel import Kernel
from skernel.runtime.kernel.memory_store import VolatileMemoryStore
from skernel.runtime.kernel.plugins import KernelPlugin
from skernel.runtime.kernel.telemetry import RecordingTelemetryClient


class Greeter:
    def hello(self, name: str = "there") -> str:
        """Say hello."""
        return f"Hello {name}"


def test_builder_assembles_working_kernel():
    telemetry = RecordingTelemetryClient()
    dispatcher = EventDispatcher()
    kernel = (
        Kernel.create_builder()
        .with_chat_service(CallableChatService(lambda prompt: prompt.upper(), service_name="upper"))
        .with_event_dispatcher(dispatcher)
        .with_telemetry(telemetry)
        .with_native_function("Math", "add", lambda a, b: a + b, "Adds")
        .with_prompt_function("Writer", "shout", "{{input}}")
        .with_plugin_from_object("Greeter", Greeter())
        .with_middleware("after", lambda result, p, f: result.with_metadata(via="builder"))
        .build()
    )

    assert isinstance(kernel, Kernel)
    assert kernel.event_dispatcher is dispatcher
    assert kernel.telemetry is telemetry
    assert kernel.run("Math.add", {"a": 3, "b": 5}).text == "8"
    assert kernel.run("Writer.shout", {"input": "quiet"}).text == "QUIET"
    assert kernel.run("Greeter.hello").get_metadata("via") == "builder"
    assert len(telemetry.spans) == 3
    assert kernel.get_stats()["chat_service"] == "upper"


def test_builder_memory_options():
    assert isinstance(KernelBuilder().build().memory_store, VolatileMemoryStore)
    assert KernelBuilder().without_memory().build().memory_store is None

    store = VolatileMemoryStore()
    assert KernelBuilder().with_memory_store(store).build().memory_store is store


def test_builder_respects_settings():
    settings = KernelSettings.model_validate(
        {"memory": {"default_store": "none"}, "execution": {"reject_duplicate_functions": True}}
    )
    builder = KernelBuilder.create().with_settings(settings).with_native_function("P", "f", lambda: "x")

    with pytest.raises(DuplicateRegistrationError):
        builder.with_native_function("P", "f", lambda: "y")
    kernel = builder.build()
    assert kernel.memory_store is None
    assert kernel.settings is settings


def test_builder_plugin_alias_and_bad_stage():
    kernel = KernelBuilder().with_plugin(KernelPlugin("Original"), "Alias").build()

    assert kernel.has_plugin("Alias")
    with pytest.raises(ValueError):
        KernelBuilder().with_middleware("sideways", lambda *a: None)


def test_builder_reads_environment_settings(monkeypatch):
    monkeypatch.setenv("APP_MEMORY__DEFAULT_STORE", "none")
    monkeypatch.setenv("APP_EXECUTION__SEQUENCE_INPUT_KEY", "text")

    kernel = KernelBuilder().with_environment_settings("APP_").build()

    assert kernel.memory_store is None
    assert kernel.settings.execution.sequence_input_key == "text"


def test_builder_duplicate_function_policy_applies_when_settings_come_last():
    settings = KernelSettings.model_validate({"execution": {"reject_duplicate_functions": True}})
    kernel = KernelBuilder().with_native_function("P", "f", lambda: "x").with_settings(settings).build()

    with pytest.raises(DuplicateRegistrationError):
        kernel.get_plugin("P").add_function(KernelFunction.from_native("f", lambda: "y"))
