"""Application tests for turning a settled payment into an order."""

from dataclasses import replace
from unittest.mock import patch

import pytest
from ordering.checkout.service import CheckoutService
from ordering.customer.customer import Customer
from ordering.errors import PaymentCapturedOrderFailed, StateConflict, UpstreamUnavailable
from ordering.order.order import Order
from ordering.product.product import Product
from protean import current_domain
from protean.exceptions import ValidationError


def _orders():
    return current_domain.repository_for(Order)._dao.query.all().items


class TestFinalizeHappyPath:
    def test_order_written_with_snapshot(self, products, paid_session):
        session = CheckoutService().finalize(paid_session)

        order = current_domain.repository_for(Order).get(session.order_id)
        assert order.payment_reference == paid_session.payment_intent_id
        assert order.payment_status == "paid"
        assert order.order_status == "pending_fulfillment"
        assert order.shipping_status == "not_shipped"
        assert order.total_cents == 4712
        assert order.tax_cents == 312
        assert len(order.line_items) == 2
        assert order.shipping_detail.postal_code == "78701"
        assert order.shipping_detail.address_overridden is False
        assert order.billing_address.city == "Austin"

    def test_guest_customer_created(self, products, paid_session):
        session = CheckoutService().finalize(paid_session)

        order = current_domain.repository_for(Order).get(session.order_id)
        customer = current_domain.repository_for(Customer).get(order.customer_id)
        assert customer.email == "ada@example.com"
        assert customer.phone == "+15125550100"
        assert customer.is_guest is True

    def test_stock_decremented_once_paid(self, products, paid_session):
        CheckoutService().finalize(paid_session)

        repo = current_domain.repository_for(Product)
        assert repo.get("prod-mug").stock_quantity == 8
        assert repo.get("prod-poster").stock_quantity == 0

    def test_missing_product_does_not_block_order(self, paid_session):
        session = CheckoutService().finalize(paid_session)
        assert current_domain.repository_for(Order).get(session.order_id) is not None

    def test_authenticated_customer_reused(self, products, gateway, cart, form):
        existing = Customer.create(email="ada@example.com", first_name="Ada", auth_user_id="user-1")
        current_domain.repository_for(Customer).add(existing)
        service = CheckoutService()
        session, _ = service.validate_address(service.begin(cart, form, auth_user_id="user-1"))
        session = service.start_payment(session)
        gateway.set_status(session.payment_intent_id, "succeeded")

        session = service.finalize(session)

        order = current_domain.repository_for(Order).get(session.order_id)
        assert str(order.customer_id) == str(existing.id)
        assert len(current_domain.repository_for(Customer)._dao.query.all().items) == 1


class TestFinalizeIdempotency:
    def test_replay_returns_same_order(self, products, paid_session):
        service = CheckoutService()
        first = service.finalize(paid_session)
        second = service.finalize(paid_session)

        assert first.order_id == second.order_id
        assert len(_orders()) == 1

    def test_replay_does_not_touch_stock_again(self, products, paid_session):
        service = CheckoutService()
        service.finalize(paid_session)
        service.finalize(paid_session)

        assert current_domain.repository_for(Product).get("prod-mug").stock_quantity == 8

    def test_replay_after_customer_exists(self, products, paid_session):
        # The guest record created by the first call must not trip the collision check
        service = CheckoutService()
        first = service.finalize(paid_session)

        assert service.finalize(paid_session).order_id == first.order_id


class TestFinalizePaymentStatus:
    @pytest.mark.parametrize("status", ["processing", "requires_capture"])
    def test_unsettled_payment_leaves_order_pending(self, products, place_order, status):
        order_id = place_order(intent_status=status)

        order = current_domain.repository_for(Order).get(order_id)
        assert order.payment_status == "pending"
        assert order.order_status == "pending_payment"
        assert current_domain.repository_for(Product).get("prod-mug").stock_quantity == 10

    @pytest.mark.parametrize("status", ["requires_payment_method", "requires_action", "canceled"])
    def test_unfinished_payment_rejected(self, gateway, paid_session, status):
        gateway.set_status(paid_session.payment_intent_id, status)

        with pytest.raises(StateConflict):
            CheckoutService().finalize(paid_session)
        assert _orders() == []

    def test_amount_mismatch_rejected(self, gateway, paid_session):
        intent = gateway.intents[paid_session.payment_intent_id]
        gateway.intents[intent.intent_id] = replace(intent, amount_cents=intent.amount_cents - 1)

        with pytest.raises(ValidationError) as exc:
            CheckoutService().finalize(paid_session)
        assert "total_cents" in exc.value.messages
        assert _orders() == []

    def test_tampered_costs_rejected(self, paid_session):
        costs = paid_session.costs.model_copy(update={"tax_cents": 0, "total_cents": 4400})
        with pytest.raises(ValidationError):
            CheckoutService().finalize(paid_session.model_copy(update={"costs": costs}))

    def test_requires_payment_intent(self, cart, form):
        service = CheckoutService()
        with pytest.raises(ValidationError) as exc:
            service.finalize(service.begin(cart, form))
        assert "payment_intent_id" in exc.value.messages


class TestFinalizeAddressGate:
    def test_incomplete_address_refused(self, carrier, paid_session):
        carrier.mark_multi_unit(paid_session.form.shipping_address1)

        with pytest.raises(ValidationError) as exc:
            CheckoutService().finalize(paid_session)

        assert "shipping_address" in exc.value.messages
        assert _orders() == []

    def test_confirmed_address_is_not_revalidated(self, carrier, paid_session):
        carrier.mark_multi_unit(paid_session.form.shipping_address1)
        session = CheckoutService().confirm_address(paid_session)

        session = CheckoutService().finalize(session)

        order = current_domain.repository_for(Order).get(session.order_id)
        assert order.shipping_detail.address_overridden is True

    def test_validation_outage_is_retryable(self, carrier, paid_session):
        carrier.configure(unavailable=True)

        with pytest.raises(UpstreamUnavailable):
            CheckoutService().finalize(paid_session)
        assert _orders() == []


class TestFinalizeCustomerRules:
    def test_guest_attached_to_customer_created_after_payment(self, paid_session):
        existing = Customer.create(email="ada@example.com", auth_user_id="user-9")
        current_domain.repository_for(Customer).add(existing)

        session = CheckoutService().finalize(paid_session)

        order = current_domain.repository_for(Order).get(session.order_id)
        assert str(order.customer_id) == str(existing.id)
        assert len(current_domain.repository_for(Customer)._dao.query.all().items) == 1

    def test_two_paid_guest_sessions_both_become_orders(self, gateway, cart, form):
        service = CheckoutService()
        sessions = []
        for _ in range(2):
            session, _ = service.validate_address(service.begin(cart, form, shipping_cost_cents=500))
            session = service.start_payment(session)
            gateway.set_status(session.payment_intent_id, "succeeded")
            sessions.append(session)

        order_ids = [service.finalize(session).order_id for session in sessions]

        assert len(set(order_ids)) == 2
        orders = [current_domain.repository_for(Order).get(order_id) for order_id in order_ids]
        assert orders[0].customer_id == orders[1].customer_id


class TestFinalizeWriteFailure:
    def test_write_failure_reports_payment_reference(self, paid_session):
        with patch("ordering.order.finalization.resolve_customer", side_effect=RuntimeError("database down")):
            with pytest.raises(PaymentCapturedOrderFailed) as exc:
                CheckoutService().finalize(paid_session)

        assert exc.value.payment_reference == paid_session.payment_intent_id
        assert _orders() == []

    def test_rejected_write_reports_payment_reference(self, paid_session):
        rejection = ValidationError({"line_items": ["An order needs at least one line item"]})
        with patch("ordering.order.finalization.Order.place", side_effect=rejection):
            with pytest.raises(PaymentCapturedOrderFailed) as exc:
                CheckoutService().finalize(paid_session)

        assert exc.value.payment_reference == paid_session.payment_intent_id
        assert _orders() == []


class TestConcurrentFinalize:
    def test_losing_writer_returns_committed_order(self, paid_session):
        first = CheckoutService().finalize(paid_session)
        repo_cls = type(current_domain.repository_for(Order))
        real_lookup = repo_cls.find_by_payment_reference
        lookups = []

        def lookup_before_commit_seen(self, payment_reference):
            # The first lookup runs before the other writer's commit is visible
            lookups.append(payment_reference)
            return None if len(lookups) == 1 else real_lookup(self, payment_reference)

        with patch.object(repo_cls, "find_by_payment_reference", lookup_before_commit_seen):
            second = CheckoutService().finalize(paid_session)

        assert second.order_id == first.order_id
        assert len(lookups) == 2
        assert len(_orders()) == 1
