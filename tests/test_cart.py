import pydantic
import pytest

import cart as carts
from catalog import get_product
from errors import BusinessRuleError, NotFoundError, ValidationError

LIME = get_product("4")
POTASH = get_product("3")


def test_add_item_snapshots_name_and_price():
    cart = carts.add_item(carts.Cart(), LIME)
    assert len(cart.lines) == 1
    line = cart.lines[0]
    assert (line.product_id, line.name, line.price, line.quantity) == ("4", "pH Balancer - Lime", 15.99, 1)


def test_adding_the_same_product_merges_lines():
    cart = carts.add_item(carts.Cart(), LIME)
    cart = carts.add_item(cart, LIME, 2)
    assert len(cart.lines) == 1
    assert cart.find("4").quantity == 3


def test_reducers_do_not_touch_the_input():
    empty = carts.Cart()
    one = carts.add_item(empty, LIME)
    carts.add_item(one, POTASH)
    carts.update_quantity(one, "4", 7)
    assert empty.is_empty
    assert [l.quantity for l in one.lines] == [1]


def test_cart_is_frozen():
    with pytest.raises(pydantic.ValidationError):
        carts.Cart().lines = ()


def test_update_quantity():
    cart = carts.add_item(carts.add_item(carts.Cart(), LIME), POTASH)
    cart = carts.update_quantity(cart, "3", 4)
    assert cart.find("3").quantity == 4
    cart = carts.update_quantity(cart, "3", 0)
    assert cart.find("3") is None
    assert carts.update_quantity(cart, "99", 2) == cart


def test_remove_and_clear():
    cart = carts.add_item(carts.add_item(carts.Cart(), LIME), POTASH)
    cart = carts.remove_item(cart, "4")
    assert [l.product_id for l in cart.lines] == ["3"]
    assert carts.clear(cart).is_empty


def test_out_of_stock_and_bad_quantities():
    with pytest.raises(BusinessRuleError):
        carts.add_item(carts.Cart(), get_product("6"))
    with pytest.raises(ValidationError):
        carts.add_item(carts.Cart(), LIME, 0)
    with pytest.raises(NotFoundError):
        get_product("404")


def test_totals():
    cart = carts.add_item(carts.Cart(), LIME, 2)
    totals = carts.totals(cart)
    assert totals.subtotal == pytest.approx(31.98)
    assert totals.shipping == carts.SHIPPING_FEE
    assert totals.tax == pytest.approx(31.98 * 0.08)
    assert totals.total == pytest.approx(totals.subtotal + totals.shipping + totals.tax)
