"""
Shopping cart reducers.

A Cart is an immutable value held on the user's session document. Each
operation takes a cart and returns a new one; routes load the session,
apply one reducer and save the result.
"""
from typing import Iterable, Tuple

from pydantic import BaseModel, ConfigDict

from errors import BusinessRuleError, ValidationError
from schemas import CartLine, Product

SHIPPING_FEE = 5.99
TAX_RATE = 0.08


class Cart(BaseModel):
    model_config = ConfigDict(frozen=True)

    lines: Tuple[CartLine, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def find(self, product_id: str):
        return next((line for line in self.lines if line.product_id == product_id), None)


class CheckoutTotals(BaseModel):
    subtotal: float
    shipping: float
    tax: float
    total: float


def add_item(cart: Cart, product: Product, quantity: int = 1) -> Cart:
    if quantity < 1:
        raise ValidationError("Quantity must be at least 1")
    if not product.in_stock:
        raise BusinessRuleError(f"{product.name} is out of stock")
    if cart.find(product.id) is None:
        line = CartLine(product_id=product.id, name=product.name, price=product.price,
                        quantity=quantity, image=product.image)
        return Cart(lines=cart.lines + (line,))
    return Cart(lines=tuple(
        l.model_copy(update={"quantity": l.quantity + quantity}) if l.product_id == product.id else l
        for l in cart.lines
    ))


def update_quantity(cart: Cart, product_id: str, quantity: int) -> Cart:
    """Set a line's quantity; zero or less removes the line."""
    if quantity <= 0:
        return remove_item(cart, product_id)
    if cart.find(product_id) is None:
        return cart
    return Cart(lines=tuple(
        l.model_copy(update={"quantity": quantity}) if l.product_id == product_id else l
        for l in cart.lines
    ))


def remove_item(cart: Cart, product_id: str) -> Cart:
    return Cart(lines=tuple(l for l in cart.lines if l.product_id != product_id))


def clear(cart: Cart) -> Cart:
    return Cart()


def compute_totals(lines: Iterable) -> CheckoutTotals:
    """Subtotal of price x quantity, flat shipping, tax on the subtotal."""
    subtotal = float(sum(l.price * l.quantity for l in lines))
    tax = subtotal * TAX_RATE
    return CheckoutTotals(subtotal=subtotal, shipping=SHIPPING_FEE, tax=tax,
                          total=subtotal + SHIPPING_FEE + tax)


def totals(cart: Cart) -> CheckoutTotals:
    return compute_totals(cart.lines)
