"""Shared BDD fixtures and step definitions for checkout and shipping."""

import pytest
from ordering.checkout.pricing import CartItem
from ordering.checkout.service import CheckoutService
from ordering.checkout.session import CheckoutForm
from ordering.order.order import Order
from ordering.product.product import Product
from protean import current_domain
from pytest_bdd import given, parsers, then


@pytest.fixture()
def checkout():
    """Mutable state carried between steps of one scenario."""
    return {"session": None, "result": None, "order_ids": [], "shipment": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse("the catalogue has a mug with {stock:d} in stock"))
def _(stock):
    current_domain.repository_for(Product).add(
        Product(id="prod-mug", name="Stoneware Mug", price_cents=1200, weight=350, weight_unit="g", stock_quantity=stock)
    )


@given(parsers.cfparse("a cart with {quantity:d} mugs at {price:d} cents"), target_fixture="cart")
def _(quantity, price):
    return [CartItem(product_id="prod-mug", name="Stoneware Mug", unit_price_cents=price, quantity=quantity)]


@given(
    parsers.cfparse('the buyer ships to "{street}" in {city} {state} {postal_code}'),
    target_fixture="form",
)
def _(street, city, state, postal_code):
    return CheckoutForm(
        email="ada@example.com",
        shipping_first_name="Ada",
        shipping_last_name="Lovelace",
        shipping_address1=street,
        shipping_city=city,
        shipping_state=state,
        shipping_postal_code=postal_code,
        shipping_country="US",
    )


@given(parsers.cfparse('the street "{street}" needs a unit number'))
def _(carrier, street):
    carrier.mark_multi_unit(street)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order payment status is "{status}"'))
def _(checkout, status):
    order = current_domain.repository_for(Order).get(checkout["order_ids"][-1])
    assert order.payment_status == status


@then(parsers.cfparse("the mug has {stock:d} in stock"))
def _(stock):
    assert current_domain.repository_for(Product).get("prod-mug").stock_quantity == stock



@given(parsers.cfparse("shipping costs {cents:d} cents"), target_fixture="shipping_cents")
def _(cents):
    return cents
