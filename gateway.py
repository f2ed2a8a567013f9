"""
Simulated payment gateway.

No network calls: the outcome depends only on the payment method and the
details supplied with it. Each method has its own details model and the
models are joined into one discriminated union on `method`.
"""
import logging
import time
from typing import Annotated, Any, Dict, Literal, Optional, Union

import pydantic
from pydantic import BaseModel, Field, TypeAdapter

from errors import ValidationError

logger = logging.getLogger(__name__)

PaymentMethod = Literal["cod", "card", "upi", "netbanking", "wallet"]
PAYMENT_METHODS = ("cod", "card", "upi", "netbanking", "wallet")

SUCCESS_CODE = "00"
FAILURE_CODE = "01"


class CodDetails(BaseModel):
    method: Literal["cod"] = "cod"


class CardDetails(BaseModel):
    method: Literal["card"] = "card"
    card_number: Optional[str] = None
    expiry_date: Optional[str] = None
    cvv: Optional[str] = None
    card_brand: Optional[str] = None


class UpiDetails(BaseModel):
    method: Literal["upi"] = "upi"
    upi_id: Optional[str] = None


class NetbankingDetails(BaseModel):
    method: Literal["netbanking"] = "netbanking"
    bank_name: Optional[str] = None


class WalletDetails(BaseModel):
    method: Literal["wallet"] = "wallet"
    wallet_provider: Optional[str] = None


PaymentDetails = Annotated[
    Union[CodDetails, CardDetails, UpiDetails, NetbankingDetails, WalletDetails],
    Field(discriminator="method"),
]

_details_adapter = TypeAdapter(PaymentDetails)


class GatewayResult(BaseModel):
    success: bool
    transaction_id: Optional[str] = None
    message: str


def parse_details(method: str, raw: Optional[Dict[str, Any]]) -> Optional[PaymentDetails]:
    """Build the details variant for `method`; None for an unknown method."""
    if method not in PAYMENT_METHODS:
        return None
    data = {k: v for k, v in (raw or {}).items() if v is not None}
    data["method"] = method
    try:
        return _details_adapter.validate_python(data)
    except pydantic.ValidationError:
        raise ValidationError(f"Invalid payment details for {method}")


def _transaction_id(prefix: str) -> str:
    return f"{prefix}-{int(time.time() * 1000)}"


def charge(details: Optional[PaymentDetails]) -> GatewayResult:
    if isinstance(details, CodDetails):
        result = GatewayResult(success=True, transaction_id=_transaction_id("COD"),
                               message="Cash on Delivery confirmed")
    elif isinstance(details, CardDetails):
        if details.card_number and len(details.card_number) >= 16:
            result = GatewayResult(success=True, transaction_id=_transaction_id("CARD"),
                                   message="Payment successful")
        else:
            result = GatewayResult(success=False, message="Invalid card details")
    elif isinstance(details, UpiDetails):
        if details.upi_id and "@" in details.upi_id:
            result = GatewayResult(success=True, transaction_id=_transaction_id("UPI"),
                                   message="UPI payment successful")
        else:
            result = GatewayResult(success=False, message="Invalid UPI ID")
    elif isinstance(details, NetbankingDetails):
        result = GatewayResult(success=True, transaction_id=_transaction_id("NB"),
                               message="Net banking payment successful")
    elif isinstance(details, WalletDetails):
        result = GatewayResult(success=True, transaction_id=_transaction_id("WALLET"),
                               message="Wallet payment successful")
    else:
        result = GatewayResult(success=False, message="Invalid payment method")

    logger.info("gateway %s: success=%s %s", getattr(details, "method", "unknown"),
                result.success, result.transaction_id or result.message)
    return result


def stored_details(details: Optional[PaymentDetails]) -> Dict[str, Any]:
    """The part of the payment details that may be persisted. Never the full card number or CVV."""
    if isinstance(details, CardDetails):
        stored = {"card_brand": details.card_brand}
        if details.card_number:
            stored["card_last4"] = details.card_number.replace(" ", "")[-4:]
        return stored
    if isinstance(details, UpiDetails):
        return {"upi_id": details.upi_id}
    if isinstance(details, NetbankingDetails):
        return {"bank_name": details.bank_name}
    if isinstance(details, WalletDetails):
        return {"wallet_provider": details.wallet_provider}
    return {}
