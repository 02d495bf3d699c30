import pytest

from skernel.runtime.kernel.chat_service import CallableChatService
from skernel.runtime.kernel.context import ContextVariables
from skernel.runtime.kernel.functions import KernelFunction, ParameterSpec, coerce_value
from skernel.runtime.kernel.kernel import Kernel
from skernel.runtime.kernel.results import FunctionResult


def test_native_function_coerces_declared_types():
    def add(a: int, b: int) -> int:
        return a + b

    fn = KernelFunction.from_native("add", add, "Adds two numbers")
    result = fn.invoke(ContextVariables(a="3", b="5"))

    assert result.success
    assert result.text == "8"


def test_native_function_uses_defaults_for_missing_optional_params():
    def greet(name: str = "world") -> str:
        return f"Hello {name}"

    fn = KernelFunction.from_native("greet", greet)

    assert fn.invoke(ContextVariables()).text == "Hello world"
    assert fn.invoke(ContextVariables(name="kernel")).text == "Hello kernel"


def test_native_function_receives_context_and_kernel():
    seen = {}

    def inspect_call(context: ContextVariables, kernel=None):
        seen["keys"] = list(context.keys())
        seen["kernel"] = kernel
        return None

    kernel = Kernel()
    fn = KernelFunction.from_native("inspect", inspect_call)
    result = fn.invoke(ContextVariables(x=1), kernel)

    assert result.success
    assert result.text == ""
    assert seen == {"keys": ["x"], "kernel": kernel}
    assert fn.parameters == ()


def test_native_function_exception_becomes_failure():
    def explode():
        raise RuntimeError("bad input")

    result = KernelFunction.from_native("explode", explode).invoke(ContextVariables())

    assert not result.success
    assert result.error == "Native function 'explode' failed: bad input"
    assert result.get_metadata("error_type") == "RuntimeError"


def test_native_function_coercion_error_becomes_failure():
    def square(n: int) -> int:
        return n * n

    result = KernelFunction.from_native("square", square).invoke(ContextVariables(n="abc"))

    assert not result.success
    assert "Native function 'square' failed" in result.error


def test_native_function_result_passes_through():
    expected = FunctionResult.ok("done", usage=7)
    fn = KernelFunction.from_native("direct", lambda: expected)

    assert fn.invoke(ContextVariables()) is expected


def test_declared_parameters_override_signature():
    fn = KernelFunction.from_native(
        "echo",
        lambda value: value,
        parameters=[ParameterSpec(name="value", type="int", required=False, default=4)],
    )

    assert fn.invoke(ContextVariables()).text == "4"
    assert fn.invoke(ContextVariables(value="12")).text == "12"


def test_non_callable_native_target_is_rejected():
    with pytest.raises(TypeError):
        KernelFunction.from_native("bad", "not callable")  # type: ignore[arg-type]


def test_empty_function_name_is_rejected():
    with pytest.raises(ValueError):
        KernelFunction.from_prompt("", "Hello")


def test_prompt_function_without_chat_service_fails_explicitly():
    fn = KernelFunction.from_prompt("summarize", "Summarize: {{input}}")
    result = fn.invoke(ContextVariables(input="text"), Kernel())

    assert not result.success
    assert "requires a chat service" in result.error
    assert result.get_metadata("error_type") == "ChatServiceNotConfiguredError"


def test_prompt_function_renders_and_calls_service():
    prompts = []

    def fake_generate(prompt: str) -> str:
        prompts.append(prompt)
        return "summary"

    kernel = Kernel(chat_service=CallableChatService(fake_generate, service_name="fake"))
    fn = KernelFunction.from_prompt("summarize", "Summarize {{ input }} for {{audience}}.")
    result = fn.invoke(ContextVariables(input="the report"), kernel)

    assert result.success
    assert result.text == "summary"
    assert prompts == ["Summarize the report for ."]
    assert result.get_metadata("rendered_prompt") == "Summarize the report for ."


def test_prompt_function_service_error_becomes_failure():
    service = CallableChatService(lambda prompt: prompt, available=False)
    kernel = Kernel(chat_service=service)
    result = KernelFunction.from_prompt("ask", "{{q}}").invoke(ContextVariables(q="hi"), kernel)

    assert not result.success
    assert result.error.startswith("Prompt function 'ask' failed:")


def test_describe_reports_parameters():
    def search(query: str, limit: int = 5):
        return query

    native = KernelFunction.from_native("search", search, "Search docs").describe()
    prompt = KernelFunction.from_prompt("chat", "{{a}} {{b}} {{a}}").describe()

    assert native.type == "native"
    assert [(p.name, p.type, p.required) for p in native.parameters] == [
        ("query", "str", True),
        ("limit", "int", False),
    ]
    assert native.parameters[1].default == 5
    assert prompt.type == "prompt"
    assert [p.name for p in prompt.parameters] == ["a", "b"]
    assert prompt.prompt_template == "{{a}} {{b}} {{a}}"


def test_prompt_function_from_file(tmp_path):
    template = tmp_path / "joke.skprompt.txt"
    template.write_text("  Tell a joke about {{topic}}\n", encoding="utf-8")

    fn = KernelFunction.from_prompt_file("joke", template)

    assert fn.template == "Tell a joke about {{topic}}"
    with pytest.raises(FileNotFoundError):
        KernelFunction.from_prompt_file("missing", tmp_path / "missing.txt")


def test_coerce_value_primitives():
    assert coerce_value("yes", "bool") is True
    assert coerce_value("off", "bool") is False
    assert coerce_value("2.0", "int") == 2
    assert coerce_value("1.5", "float") == 1.5
    assert coerce_value("a", "list") == ["a"]
    assert coerce_value((1, 2), "list") == [1, 2]
    assert coerce_value(None, "int") is None
    assert coerce_value(3, "str") == "3"


def test_native_function_tolerates_unevaluable_annotations():
    def scale(n: "int[", factor: "pytest.NotAThing" = 2):  # noqa: F821
        return int(n) * int(factor)

    fn = KernelFunction.from_native("scale", scale)

    assert [p.name for p in fn.parameters] == ["n", "factor"]
    assert fn.invoke(ContextVariables(n="4")).text == "8"
