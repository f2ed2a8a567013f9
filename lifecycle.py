"""
Order and payment state machines.

Every status change made by the order services goes through one of the
machines below, so an illegal move is a BusinessRuleError rather than
whatever the last handler happened to write.
"""
import logging
from typing import Dict, Literal, Optional, Tuple

from errors import BusinessRuleError

logger = logging.getLogger(__name__)

OrderStatus = Literal["pending", "confirmed", "processing", "shipped", "delivered", "cancelled"]
OrderPaymentStatus = Literal["pending", "paid", "failed", "refunded"]
PaymentStatus = Literal["pending", "processing", "completed", "failed", "cancelled", "refunded"]


class StateMachine:
    def __init__(self, name: str, transitions: Dict[Tuple[str, str], str]):
        self.name = name
        self.transitions = dict(transitions)

    def target(self, state: str, event: str) -> Optional[str]:
        return self.transitions.get((state, event))

    def can(self, state: str, event: str) -> bool:
        return (state, event) in self.transitions

    def fire(self, state: str, event: str) -> str:
        new_state = self.target(state, event)
        if new_state is None:
            raise BusinessRuleError(f"Cannot {event} {self.name} in status '{state}'")
        logger.debug("%s: %s --%s--> %s", self.name, state, event, new_state)
        return new_state


def _table(*rows):
    table = {}
    for sources, event, target in rows:
        for source in sources:
            table[(source, event)] = target
    return table


order_machine = StateMachine(
    "order",
    _table(
        (["pending"], "confirm", "confirmed"),
        (["confirmed"], "process", "processing"),
        (["processing"], "ship", "shipped"),
        (["shipped"], "deliver", "delivered"),
        (["pending", "confirmed"], "cancel", "cancelled"),
        # A refund always closes the order, including one already cancelled
        (["pending", "confirmed", "processing", "shipped", "delivered", "cancelled"], "refund", "cancelled"),
    ),
)

order_payment_machine = StateMachine(
    "order payment",
    _table(
        (["pending"], "pay", "paid"),
        (["paid"], "refund", "refunded"),
    ),
)

payment_machine = StateMachine(
    "payment",
    _table(
        (["pending"], "process", "processing"),
        (["pending", "processing"], "complete", "completed"),
        (["pending", "processing"], "fail", "failed"),
        (["pending"], "cancel", "cancelled"),
        # Order cancellation voids the payment whatever it reached; no refund is issued
        (["processing", "failed", "completed"], "void", "cancelled"),
        (["completed"], "refund", "refunded"),
    ),
)

# update-order-status requests name a target status; this is the event that reaches it
ORDER_STATUS_EVENTS = {
    "confirmed": "confirm",
    "processing": "process",
    "shipped": "ship",
    "delivered": "deliver",
    "cancelled": "cancel",
}


def order_event_for(status: str) -> str:
    try:
        return ORDER_STATUS_EVENTS[status]
    except KeyError:
        raise BusinessRuleError(f"Orders cannot be moved to status '{status}'")


def is_cancellable(order_status: str) -> bool:
    return order_machine.can(order_status, "cancel")


def cancel_payment_event(payment_status: str) -> Optional[str]:
    """Event used to cancel a payment alongside its order, None if already closed."""
    if payment_machine.can(payment_status, "cancel"):
        return "cancel"
    if payment_machine.can(payment_status, "void"):
        return "void"
    return None
