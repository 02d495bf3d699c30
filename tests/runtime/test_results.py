import pytest

from skernel.runtime.kernel.results import FunctionResult


def test_ok_result_has_no_error():
    result = FunctionResult.ok("8", usage=3, metadata={"source": "math"})

    assert result.success
    assert result.error is None
    assert not result.is_error
    assert result.usage == 3
    assert result.get_metadata("source") == "math"
    assert str(result) == "8"


def test_failure_result_requires_message():
    result = FunctionResult.failure("boom")

    assert result.is_error
    assert result.text == ""
    assert str(result) == "boom"
    with pytest.raises(ValueError):
        FunctionResult(success=False, error="")
    with pytest.raises(ValueError):
        FunctionResult(text="x", success=True, error="oops")


def test_result_is_immutable():
    result = FunctionResult.ok("a", metadata={"k": 1})

    with pytest.raises(AttributeError):
        result.text = "b"  # type: ignore[misc]
    with pytest.raises(TypeError):
        result.metadata["k"] = 2  # type: ignore[index]


def test_with_metadata_returns_copy():
    result = FunctionResult.ok("a", metadata={"k": 1})
    tagged = result.with_metadata(stage="after")

    assert tagged.get_metadata("stage") == "after"
    assert tagged.get_metadata("k") == 1
    assert result.get_metadata("stage") is None


def test_to_dict_uses_empty_error_string_on_success():
    payload = FunctionResult.ok("hi").to_dict()

    assert payload == {"text": "hi", "success": True, "error": "", "usage": 0, "metadata": {}}


def test_non_string_text_is_coerced():
    assert FunctionResult.ok(8).text == "8"  # type: ignore[arg-type]
    assert FunctionResult(text=None).text == ""  # type: ignore[arg-type]
    assert FunctionResult.failure("boom").text == ""


def test_results_are_hashable_by_value():
    first = FunctionResult.ok("a", metadata={"k": 1})
    second = FunctionResult.ok("a", metadata={"k": 1})

    assert hash(first) == hash(second)
    assert hash(FunctionResult.ok("a", metadata={"k": 2})) == hash(first)
    assert len({first, second}) == 1
