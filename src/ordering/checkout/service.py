"""Checkout orchestration from the buyer's side.

    begin -> validate_address -> [accept_suggestion | confirm_address]
          -> start_payment -> (buyer confirms, possibly via redirect)
          -> finalize

Each step takes a ``CheckoutSession`` and returns an updated copy; the
client stores it between steps and across payment redirects.
"""

import structlog
from protean.exceptions import ValidationError

from ordering.address.validator import AddressValidationResult, AddressValidator, get_address_validator
from ordering.carrier.port import Address
from ordering.checkout.pricing import CartItem, CostBreakdown
from ordering.checkout.session import AddressState, CheckoutForm, CheckoutSession
from ordering.config import get_settings
from ordering.customer.resolution import assert_guest_allowed
from ordering.gateway import get_gateway
from ordering.gateway.port import PaymentGateway
from ordering.order.finalization import OrderFinalizer

logger = structlog.get_logger(__name__)


class CheckoutService:
    def __init__(self, gateway: PaymentGateway | None = None, validator: AddressValidator | None = None):
        self.gateway = gateway or get_gateway()
        self.validator = validator or get_address_validator()

    def begin(
        self,
        cart: list[CartItem],
        form: CheckoutForm,
        discount_cents: int = 0,
        shipping_cost_cents: int = 0,
        auth_user_id: str | None = None,
        is_training: bool = False,
    ) -> CheckoutSession:
        form.verify()
        costs = CostBreakdown.compute(cart, discount_cents, shipping_cost_cents)
        session = CheckoutSession(
            cart=cart,
            costs=costs,
            form=form,
            currency=get_settings().currency,
            auth_user_id=auth_user_id,
            is_training=is_training,
        )
        logger.info("checkout_started", idempotency_key=session.idempotency_key, total_cents=costs.total_cents)
        return session

    def validate_address(self, session: CheckoutSession) -> tuple[CheckoutSession, AddressValidationResult]:
        result = self.validator.validate(session.form.shipping_address())
        if result.passed:
            state = AddressState.VALID
        elif result.is_valid:
            state = AddressState.NEEDS_CONFIRMATION
        else:
            state = AddressState.INVALID
        return session.model_copy(update={"address_state": state}), result

    def accept_suggestion(self, session: CheckoutSession, suggested: Address) -> CheckoutSession:
        """Replace the shipping address with the provider's candidate."""
        form = session.form.with_shipping_address(suggested)
        return session.model_copy(update={"form": form, "address_state": AddressState.CONFIRMED})

    def confirm_address(self, session: CheckoutSession) -> CheckoutSession:
        """Keep the address as entered despite the provider's verdict."""
        logger.info("address_confirmed_as_entered", idempotency_key=session.idempotency_key)
        return session.model_copy(update={"address_state": AddressState.CONFIRMED})

    def start_payment(self, session: CheckoutSession) -> CheckoutSession:
        """Create (or re-fetch) the payment intent for this session."""
        if not session.address_cleared:
            raise ValidationError(
                {"shipping_address": ["Validate the shipping address, or confirm it, before paying"]}
            )
        if session.payment_intent_id:
            return session

        session.costs.verify(session.cart)
        if not session.auth_user_id:
            assert_guest_allowed(session.form.email, session.form.phone)

        intent = self.gateway.create_intent(
            amount_cents=session.costs.total_cents,
            currency=session.currency,
            metadata={
                "checkout_key": session.idempotency_key,
                "email": session.form.email,
                "is_training": str(session.is_training).lower(),
            },
            idempotency_key=session.idempotency_key,
        )
        logger.info("payment_intent_created", intent_id=intent.intent_id, idempotency_key=session.idempotency_key)
        return session.model_copy(update={"payment_intent_id": intent.intent_id, "client_secret": intent.client_secret})

    def finalize(self, session: CheckoutSession) -> CheckoutSession:
        if not session.payment_intent_id:
            raise ValidationError({"payment_intent_id": ["Start payment before finalizing the checkout"]})

        order_id = OrderFinalizer(gateway=self.gateway, validator=self.validator).finalize(
            payment_reference=session.payment_intent_id,
            form=session.form,
            cart=session.cart,
            costs=session.costs,
            auth_user_id=session.auth_user_id,
            address_confirmed=session.address_confirmed,
            is_training=session.is_training,
            currency=session.currency,
        )
        return session.model_copy(update={"order_id": order_id})
