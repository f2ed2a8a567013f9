"""
Order and payment lifecycle operations.

Each function is one sequential unit of work against MongoDB. Nothing here
is transactional: an order and its payment are two separate writes, and
concurrent requests against the same order are last-write-wins. Status
changes are validated by the machines in lifecycle.py before anything is
written.
"""
import logging
import time
from typing import Any, Dict, List, Optional, Tuple

import pydantic
from pymongo.database import Database

import gateway
from cart import SHIPPING_FEE, TAX_RATE, compute_totals
from database import create_document, get_documents, next_sequence, oid, serialize_doc, update_document, utcnow
from errors import BusinessRuleError, NotFoundError, ValidationError
from lifecycle import (
    cancel_payment_event,
    order_event_for,
    order_machine,
    order_payment_machine,
    payment_machine,
)
from schemas import (
    GatewayResponse,
    Order as OrderSchema,
    OrderItem,
    OrderPaymentDetails,
    Payment as PaymentSchema,
    RefundDetails,
    ShippingAddress,
)

logger = logging.getLogger(__name__)

TOTAL_TOLERANCE = 0.01


def _load(db: Database, collection: str, _id: str, label: str) -> Dict[str, Any]:
    doc = db[collection].find_one({"_id": oid(_id)})
    if not doc:
        raise NotFoundError(f"{label} not found")
    return doc


def _payment_for_order(db: Database, order_id: str) -> Optional[Dict[str, Any]]:
    return db["payment"].find_one({"order_id": order_id})


def _order_number(db: Database) -> str:
    return f"SQ-{utcnow().year}-{next_sequence(db, 'order'):05d}"


def _ms() -> int:
    return int(time.time() * 1000)


# ----------------------
# Creation and reads
# ----------------------

def create_order(
    db: Database,
    user_id: str,
    items: List[OrderItem],
    payment_method: str,
    shipping_address: ShippingAddress,
    subtotal: Optional[float] = None,
    shipping: Optional[float] = None,
    tax: Optional[float] = None,
    total: Optional[float] = None,
    notes: Optional[str] = None,
) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Create a pending order together with its pending payment.

    Money fields the caller leaves out are derived from the items: flat
    shipping, tax on the subtotal, and total as their sum. A supplied total
    must agree with subtotal + shipping + tax.
    """
    if not items:
        raise ValidationError("Order must contain at least one item")
    if not db["user"].find_one({"_id": oid(user_id)}):
        raise ValidationError("Unknown user")

    if subtotal is None:
        subtotal = compute_totals(items).subtotal
    if shipping is None:
        shipping = SHIPPING_FEE
    if tax is None:
        tax = subtotal * TAX_RATE
    if total is None:
        total = subtotal + shipping + tax
    elif abs(total - (subtotal + shipping + tax)) > TOTAL_TOLERANCE:
        raise ValidationError("Total does not equal subtotal + shipping + tax")

    # The order number is drawn only once the order validates
    try:
        order = OrderSchema(
            user_id=user_id,
            order_number="",
            items=items,
            subtotal=subtotal,
            shipping=shipping,
            tax=tax,
            total=total,
            payment_method=payment_method,
            shipping_address=shipping_address,
            notes=notes or "",
        )
    except pydantic.ValidationError as exc:
        raise ValidationError(f"Invalid order: {exc.errors()[0]['msg']}")
    order = order.model_copy(update={"order_number": _order_number(db)})
    order_id = create_document(db, "order", order)

    # Second write; if it fails the order stays without a payment record
    payment = PaymentSchema(
        order_id=str(order_id),
        user_id=user_id,
        amount=total,
        payment_method=payment_method,
    )
    payment_id = create_document(db, "payment", payment)
    logger.info("order %s (%s) created for user %s, total %.2f", order_id, order.order_number, user_id, total)

    return (
        serialize_doc(db["order"].find_one({"_id": order_id})),
        serialize_doc(db["payment"].find_one({"_id": payment_id})),
    )


def get_order(db: Database, order_id: str) -> Dict[str, Any]:
    return serialize_doc(_load(db, "order", order_id, "Order"))


def get_orders_for_user(db: Database, user_id: str) -> List[Dict[str, Any]]:
    return get_documents(db, "order", {"user_id": user_id})


def get_payment(db: Database, payment_id: str) -> Dict[str, Any]:
    payment = serialize_doc(_load(db, "payment", payment_id, "Payment"))
    payment["order"] = serialize_doc(db["order"].find_one({"_id": oid(payment["order_id"])}))
    return payment


def get_payments_for_user(db: Database, user_id: str) -> List[Dict[str, Any]]:
    payments = get_documents(db, "payment", {"user_id": user_id})
    for p in payments:
        p["order"] = serialize_doc(db["order"].find_one({"_id": oid(p["order_id"])}))
    return payments


def get_payment_for_order(db: Database, order_id: str) -> Dict[str, Any]:
    payment = _payment_for_order(db, order_id)
    if not payment:
        raise NotFoundError("Payment record not found")
    return serialize_doc(payment)


# ----------------------
# Transitions
# ----------------------

def update_order_status(db: Database, order_id: str, status: str) -> Dict[str, Any]:
    event = order_event_for(status)
    if event == "cancel":
        return cancel_order(db, order_id)
    order = _load(db, "order", order_id, "Order")
    new_status = order_machine.fire(order["status"], event)
    updated = update_document(db, "order", order["_id"], {"status": new_status})
    logger.info("order %s: %s -> %s", order_id, order["status"], new_status)
    return serialize_doc(updated)


def process_payment(db: Database, order_id: str, payment_method: str,
                    payment_details: Optional[Dict[str, Any]] = None) -> gateway.GatewayResult:
    """Run the order's payment through the simulated gateway.

    A declined payment is still recorded: the payment becomes `failed` and
    the order is left as it was.
    """
    order = _load(db, "order", order_id, "Order")
    payment = _payment_for_order(db, str(order["_id"]))
    if not payment:
        raise NotFoundError("Payment record not found")

    order_status = order_machine.fire(order["status"], "confirm")
    order_payment_status = order_payment_machine.fire(order["payment_status"], "pay")
    state = payment["status"]
    if payment_machine.can(state, "process"):
        state = payment_machine.fire(state, "process")
    if not payment_machine.can(state, "complete"):
        raise BusinessRuleError(f"Payment is already {payment['status']}")

    details = gateway.parse_details(payment_method, payment_details)
    result = gateway.charge(details)
    now = utcnow()

    if not result.success:
        update_document(db, "payment", payment["_id"], {
            "status": payment_machine.fire(state, "fail"),
            "gateway_response": GatewayResponse(
                response_code=gateway.FAILURE_CODE,
                response_message=result.message,
            ).model_dump(),
        })
        logger.warning("payment for order %s failed: %s", order_id, result.message)
        return result

    update_document(db, "payment", payment["_id"], {
        "status": payment_machine.fire(state, "complete"),
        "gateway_response": GatewayResponse(
            transaction_id=result.transaction_id,
            gateway=payment_method,
            response_code=gateway.SUCCESS_CODE,
            response_message=result.message,
        ).model_dump(),
        "payment_details": gateway.stored_details(details),
        "processed_at": now,
    })
    update_document(db, "order", order["_id"], {
        "status": order_status,
        "payment_status": order_payment_status,
        "payment_details": OrderPaymentDetails(
            transaction_id=result.transaction_id,
            payment_gateway=payment_method,
            paid_at=now,
        ).model_dump(),
    })
    logger.info("payment for order %s completed: %s", order_id, result.transaction_id)
    return result


def cancel_order(db: Database, order_id: str, reason: Optional[str] = None) -> Dict[str, Any]:
    """Cancel a pending or confirmed order.

    Non-COD payments are cancelled with the order, including completed ones;
    no refund is issued here.
    """
    order = _load(db, "order", order_id, "Order")
    new_status = order_machine.fire(order["status"], "cancel")
    notes = f"Cancelled: {reason}" if reason else "Order cancelled"
    updated = update_document(db, "order", order["_id"], {"status": new_status, "notes": notes})

    if order["payment_method"] != "cod":
        payment = _payment_for_order(db, str(order["_id"]))
        event = cancel_payment_event(payment["status"]) if payment else None
        if event:
            update_document(db, "payment", payment["_id"], {
                "status": payment_machine.fire(payment["status"], event),
            })

    logger.info("order %s cancelled (%s)", order_id, notes)
    return serialize_doc(updated)


def refund_payment(db: Database, payment_id: str, reason: Optional[str] = None,
                   amount: Optional[float] = None) -> Dict[str, Any]:
    payment = _load(db, "payment", payment_id, "Payment")
    if payment["status"] != "completed":
        raise BusinessRuleError("Only completed payments can be refunded")

    refund_amount = amount or payment["amount"]
    if refund_amount < 0 or refund_amount > payment["amount"]:
        raise ValidationError("Refund amount must be between 0 and the payment amount")

    order = db["order"].find_one({"_id": oid(payment["order_id"])})
    order_changes = None
    if order:
        order_changes = {
            "payment_status": order_payment_machine.fire(order["payment_status"], "refund"),
            "status": order_machine.fire(order["status"], "refund"),
        }

    refund_id = f"REF-{_ms()}"
    update_document(db, "payment", payment["_id"], {
        "status": payment_machine.fire(payment["status"], "refund"),
        "refund_details": RefundDetails(
            refund_id=refund_id,
            refund_amount=refund_amount,
            refund_reason=reason or "Customer request",
            refunded_at=utcnow(),
        ).model_dump(),
    })
    if order_changes:
        update_document(db, "order", order["_id"], order_changes)

    logger.info("payment %s refunded %.2f as %s", payment_id, refund_amount, refund_id)
    return {
        "success": True,
        "refund_id": refund_id,
        "refund_amount": refund_amount,
        "message": "Refund processed successfully",
    }
