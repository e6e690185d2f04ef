"""Application tests for the buyer-side checkout steps."""

import pytest
from ordering.checkout.service import CheckoutService
from ordering.checkout.session import AddressState
from ordering.customer.customer import Customer
from ordering.customer.resolution import SIGN_IN_MESSAGE
from ordering.errors import UpstreamRejected
from protean import current_domain
from protean.exceptions import ValidationError


class TestBeginCheckout:
    def test_computes_costs_and_key(self, cart, form):
        session = CheckoutService().begin(cart, form, shipping_cost_cents=500)

        assert session.costs.total_cents == 4712
        assert session.currency == "usd"
        assert session.address_state == AddressState.UNCHECKED
        assert len(session.idempotency_key) == 32

    def test_rejects_invalid_form(self, cart, form):
        with pytest.raises(ValidationError):
            CheckoutService().begin(cart, form.model_copy(update={"email": "nope"}))


class TestAddressStep:
    def test_clean_address_is_valid(self, cart, form):
        service = CheckoutService()
        session, result = service.validate_address(service.begin(cart, form))

        assert result.passed
        assert session.address_state == AddressState.VALID

    def test_incomplete_address_needs_confirmation(self, carrier, cart, form):
        carrier.mark_multi_unit(form.shipping_address1)
        service = CheckoutService()

        session, result = service.validate_address(service.begin(cart, form))

        assert session.address_state == AddressState.NEEDS_CONFIRMATION
        assert result.suggested is not None
        assert not session.address_cleared

    def test_accepting_suggestion_replaces_address(self, carrier, cart, form):
        carrier.mark_multi_unit(form.shipping_address1)
        service = CheckoutService()
        session, result = service.validate_address(service.begin(cart, form))

        session = service.accept_suggestion(session, result.suggested)

        assert session.address_state == AddressState.CONFIRMED
        assert session.form.shipping_postal_code == "78701-0001"

    def test_invalid_address(self, cart, form):
        service = CheckoutService()
        session = service.begin(cart, form.model_copy(update={"shipping_state": ""}))

        session, result = service.validate_address(session)

        assert session.address_state == AddressState.INVALID
        assert not result.is_valid


class TestStartPayment:
    def test_requires_cleared_address(self, cart, form):
        service = CheckoutService()
        with pytest.raises(ValidationError) as exc:
            service.start_payment(service.begin(cart, form))
        assert "shipping_address" in exc.value.messages

    def test_creates_intent_with_session_key(self, gateway, cart, form):
        service = CheckoutService()
        session, _ = service.validate_address(service.begin(cart, form))

        session = service.start_payment(session)

        intent = gateway.intents[session.payment_intent_id]
        assert intent.amount_cents == 4212
        assert intent.metadata["checkout_key"] == session.idempotency_key
        assert session.client_secret == intent.client_secret
        assert gateway.create_calls[0]["idempotency_key"] == session.idempotency_key

    def test_repeat_reuses_intent(self, gateway, cart, form):
        service = CheckoutService()
        session, _ = service.validate_address(service.begin(cart, form))
        session = service.start_payment(session)

        again = service.start_payment(session)

        assert again.payment_intent_id == session.payment_intent_id
        assert len(gateway.intents) == 1

    def test_guest_collision_stops_before_intent(self, gateway, cart, form):
        current_domain.repository_for(Customer).add(Customer.create(email="ADA@example.com"))
        service = CheckoutService()
        session, _ = service.validate_address(service.begin(cart, form))

        with pytest.raises(ValidationError) as exc:
            service.start_payment(session)

        assert exc.value.messages["email"] == [SIGN_IN_MESSAGE]
        assert gateway.create_calls == []

    def test_phone_collision_also_stops_guest(self, gateway, cart, form):
        current_domain.repository_for(Customer).add(Customer.create(email="other@example.com", phone="+1 512 555 0100"))
        service = CheckoutService()
        session, _ = service.validate_address(service.begin(cart, form))

        with pytest.raises(ValidationError):
            service.start_payment(session)

    def test_signed_in_buyer_skips_collision_check(self, gateway, cart, form):
        current_domain.repository_for(Customer).add(Customer.create(email="ada@example.com", auth_user_id="user-1"))
        service = CheckoutService()
        session, _ = service.validate_address(service.begin(cart, form, auth_user_id="user-1"))

        assert service.start_payment(session).payment_intent_id

    def test_declined_intent(self, gateway, cart, form):
        gateway.configure(should_succeed=False)
        service = CheckoutService()
        session, _ = service.validate_address(service.begin(cart, form))

        with pytest.raises(UpstreamRejected):
            service.start_payment(session)

    def test_confirmed_address_may_pay(self, carrier, cart, form):
        carrier.mark_multi_unit(form.shipping_address1)
        service = CheckoutService()
        session, _ = service.validate_address(service.begin(cart, form))

        session = service.start_payment(service.confirm_address(session))

        assert session.payment_intent_id is not None
