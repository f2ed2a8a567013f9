import pytest

from errors import BusinessRuleError
from lifecycle import (
    cancel_payment_event,
    is_cancellable,
    order_event_for,
    order_machine,
    order_payment_machine,
    payment_machine,
)


def test_order_happy_path():
    state = "pending"
    for event, expected in [("confirm", "confirmed"), ("process", "processing"),
                            ("ship", "shipped"), ("deliver", "delivered")]:
        state = order_machine.fire(state, event)
        assert state == expected


@pytest.mark.parametrize("state, cancellable", [
    ("pending", True),
    ("confirmed", True),
    ("processing", False),
    ("shipped", False),
    ("delivered", False),
    ("cancelled", False),
])
def test_only_pending_or_confirmed_orders_cancel(state, cancellable):
    assert is_cancellable(state) is cancellable


def test_illegal_order_transition_is_rejected():
    with pytest.raises(BusinessRuleError) as exc:
        order_machine.fire("delivered", "cancel")
    assert "delivered" in exc.value.message

    with pytest.raises(BusinessRuleError):
        order_machine.fire("pending", "ship")


def test_refund_closes_an_order_from_any_state():
    for state in ["pending", "confirmed", "processing", "shipped", "delivered", "cancelled"]:
        assert order_machine.fire(state, "refund") == "cancelled"


def test_order_payment_status():
    assert order_payment_machine.fire("pending", "pay") == "paid"
    assert order_payment_machine.fire("paid", "refund") == "refunded"
    with pytest.raises(BusinessRuleError):
        order_payment_machine.fire("pending", "refund")


def test_payment_transitions():
    assert payment_machine.fire("pending", "process") == "processing"
    assert payment_machine.fire("processing", "complete") == "completed"
    assert payment_machine.fire("pending", "fail") == "failed"
    assert payment_machine.fire("completed", "refund") == "refunded"
    for state in ["pending", "processing", "failed", "cancelled", "refunded"]:
        assert not payment_machine.can(state, "refund")
    assert not payment_machine.can("failed", "complete")


@pytest.mark.parametrize("state, event", [
    ("pending", "cancel"),
    ("processing", "void"),
    ("failed", "void"),
    ("completed", "void"),
    ("cancelled", None),
    ("refunded", None),
])
def test_cancel_payment_event(state, event):
    assert cancel_payment_event(state) == event


def test_status_requests_map_to_events():
    assert order_event_for("shipped") == "ship"
    assert order_event_for("cancelled") == "cancel"
    with pytest.raises(BusinessRuleError):
        order_event_for("pending")
    with pytest.raises(BusinessRuleError):
        order_event_for("lost")
