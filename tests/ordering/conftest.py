"""Adapters and checkout fixtures shared by the ordering tests."""

import pytest
from protean import current_domain

from ordering.carrier import reset_carrier, set_carrier
from ordering.carrier.mock_adapter import MockCarrier
from ordering.checkout.pricing import CartItem
from ordering.checkout.service import CheckoutService
from ordering.checkout.session import CheckoutForm
from ordering.config import OriginAddress, Settings, reset_settings, set_settings
from ordering.gateway import reset_gateway, set_gateway
from ordering.gateway.fake_adapter import FakeGateway
from ordering.notification import reset_mailer, set_mailer
from ordering.notification.fake_email import FakeEmailAdapter
from ordering.product.product import Product

SHIPPO_SECRET = "shippo-hook-secret"
STRIPE_SECRET = "whsec_test"


@pytest.fixture(autouse=True)
def settings():
    test_settings = Settings(
        environment="test",
        payment_gateway="fake",
        stripe_webhook_secret=STRIPE_SECRET,
        carrier_adapter="mock",
        shippo_webhook_secret=SHIPPO_SECRET,
        email_adapter="fake",
        origin=OriginAddress(
            name="Ordering Warehouse",
            address1="500 Dock Street",
            city="Portland",
            state="OR",
            postal_code="97209",
        ),
    )
    set_settings(test_settings)
    yield test_settings
    reset_settings()


@pytest.fixture(autouse=True)
def gateway(settings):
    fake = FakeGateway(webhook_secret=STRIPE_SECRET)
    set_gateway(fake)
    yield fake
    reset_gateway()


@pytest.fixture(autouse=True)
def carrier(settings):
    mock = MockCarrier()
    set_carrier(mock)
    yield mock
    reset_carrier()


@pytest.fixture(autouse=True)
def mailer(settings):
    fake = FakeEmailAdapter()
    set_mailer(fake)
    yield fake
    reset_mailer()


@pytest.fixture()
def products():
    repo = current_domain.repository_for(Product)
    mug = Product(id="prod-mug", name="Stoneware Mug", price_cents=1200, weight=350, weight_unit="g", stock_quantity=10)
    poster = Product(id="prod-poster", name="Poster", price_cents=1500, weight=8, weight_unit="oz", stock_quantity=1)
    repo.add(mug)
    repo.add(poster)
    return {"mug": mug, "poster": poster}


@pytest.fixture()
def cart():
    return [
        CartItem(product_id="prod-mug", name="Stoneware Mug", unit_price_cents=1200, quantity=2),
        CartItem(product_id="prod-poster", name="Poster", unit_price_cents=1500, quantity=1),
    ]


@pytest.fixture()
def form():
    return CheckoutForm(
        email="ada@example.com",
        phone="+1 (512) 555-0100",
        shipping_first_name="Ada",
        shipping_last_name="Lovelace",
        shipping_address1="12 Analytical Way",
        shipping_city="Austin",
        shipping_state="TX",
        shipping_postal_code="78701",
        shipping_country="US",
    )


@pytest.fixture()
def paid_session(gateway, cart, form):
    """A checkout session whose payment has succeeded but is not yet finalized."""
    service = CheckoutService()
    session = service.begin(cart, form, shipping_cost_cents=500)
    session, _ = service.validate_address(session)
    session = service.start_payment(session)
    gateway.set_status(session.payment_intent_id, "succeeded")
    return session


@pytest.fixture()
def place_order(gateway, cart, form):
    """Run a full checkout and return the new order id."""

    def _place(intent_status="succeeded", checkout_form=None, auth_user_id=None):
        service = CheckoutService()
        session = service.begin(cart, checkout_form or form, shipping_cost_cents=500, auth_user_id=auth_user_id)
        session, _ = service.validate_address(session)
        session = service.start_payment(session)
        gateway.set_status(session.payment_intent_id, intent_status)
        return service.finalize(session).order_id

    return _place
