import logging

import pytest

from skernel.runtime.kernel.context import ContextVariables
from skernel.runtime.kernel.events import (
    FUNCTION_INVOKED,
    FUNCTION_INVOKING,
    EventDispatcher,
    FunctionInvokedEvent,
    FunctionInvokingEvent,
    GenericKernelEvent,
)
from skernel.runtime.kernel.results import FunctionResult


def _invoking() -> FunctionInvokingEvent:
    return FunctionInvokingEvent(plugin_name="Math", function_name="add", context=ContextVariables(a=1))


def test_dispatch_in_subscription_order():
    dispatcher = EventDispatcher()
    calls = []
    dispatcher.subscribe(FUNCTION_INVOKING, lambda e: calls.append("first"))
    dispatcher.subscribe(FUNCTION_INVOKING, lambda e: calls.append("second"))

    delivered = dispatcher.dispatch(_invoking())

    assert delivered == 2
    assert calls == ["first", "second"]


def test_failing_handler_is_isolated(caplog):
    dispatcher = EventDispatcher()
    calls = []

    def broken(event):
        raise RuntimeError("handler broke")

    dispatcher.subscribe(FUNCTION_INVOKING, broken)
    dispatcher.subscribe(FUNCTION_INVOKING, lambda e: calls.append(e.qualified_name))

    with caplog.at_level(logging.ERROR):
        delivered = dispatcher.dispatch(_invoking())

    assert delivered == 1
    assert calls == ["Math.add"]
    assert "handler broke" in caplog.text


def test_dispatch_without_listeners_is_noop():
    assert EventDispatcher().dispatch(_invoking()) == 0


def test_unsubscribe_removes_one_registration():
    dispatcher = EventDispatcher()
    calls = []

    def handler(event):
        calls.append(event.event_type)

    dispatcher.subscribe(FUNCTION_INVOKED, handler).subscribe(FUNCTION_INVOKED, handler)
    dispatcher.unsubscribe(FUNCTION_INVOKED, handler)
    assert dispatcher.get_listener_count(FUNCTION_INVOKED) == 1

    dispatcher.unsubscribe(FUNCTION_INVOKED, handler)
    assert not dispatcher.has_listeners(FUNCTION_INVOKED)
    assert dispatcher.get_event_types() == []


def test_handler_may_unsubscribe_itself_during_dispatch():
    dispatcher = EventDispatcher()
    calls = []

    def once(event):
        calls.append("once")
        dispatcher.unsubscribe(FUNCTION_INVOKING, once)

    dispatcher.subscribe(FUNCTION_INVOKING, once)
    dispatcher.subscribe(FUNCTION_INVOKING, lambda e: calls.append("always"))
    dispatcher.dispatch(_invoking())
    dispatcher.dispatch(_invoking())

    assert calls == ["once", "always", "always"]


def test_subscribe_rejects_non_callable():
    with pytest.raises(TypeError):
        EventDispatcher().subscribe(FUNCTION_INVOKING, "nope")  # type: ignore[arg-type]


def test_stats_and_clear():
    dispatcher = EventDispatcher()
    dispatcher.subscribe(FUNCTION_INVOKING, print).subscribe(FUNCTION_INVOKED, print)
    dispatcher.subscribe(FUNCTION_INVOKED, repr)

    stats = dispatcher.get_stats()
    assert stats["event_types_count"] == 2
    assert stats["total_listeners"] == 3
    assert stats["listeners_by_type"] == {FUNCTION_INVOKING: 1, FUNCTION_INVOKED: 2}

    dispatcher.unsubscribe_all(FUNCTION_INVOKED)
    assert dispatcher.get_event_types() == [FUNCTION_INVOKING]
    dispatcher.clear_listeners()
    assert dispatcher.get_stats()["total_listeners"] == 0


def test_events_carry_identity_and_ordering():
    first = _invoking()
    second = _invoking()

    assert first.event_id != second.event_id
    assert first.event_id.startswith("evt_")
    assert second.sequence > first.sequence
    assert first.to_dict()["event_type"] == FUNCTION_INVOKING


def test_invoked_event_reports_result():
    event = FunctionInvokedEvent(
        plugin_name="Math",
        function_name="add",
        result=FunctionResult.failure("nope"),
        duration_ms=1.5,
    )
    payload = event.to_dict()

    assert event.success is False
    assert payload["execution_time_ms"] == 1.5
    assert payload["error"] == "nope"
    assert payload["event_type"] == FUNCTION_INVOKED


def test_generic_event_uses_its_name_as_type():
    dispatcher = EventDispatcher()
    received = []
    dispatcher.subscribe("PlanCreated", received.append)

    dispatcher.dispatch(GenericKernelEvent(name="PlanCreated", data={"steps": 3}))

    assert received[0].to_dict()["data"] == {"steps": 3}
    assert received[0].event_type == "PlanCreated"
