"""Order finalization: turn a confirmed payment into an order.

``OrderFinalizer.finalize`` is the single entry point. It runs after money
may already have been captured, so it follows three rules:

1. The same payment reference always yields the same order. An existing
   order is returned without writing anything or touching stock again.
2. Everything that can be refused (inputs, payment status, address) is
   checked before the first write.
3. If the write itself fails, the failure is logged at critical level with
   the payment reference and surfaced as ``PaymentCapturedOrderFailed`` so
   that support can reconcile the charge by hand.

The customer, order, line items and shipping detail are written by the
``PlaceOrder`` handler in a single unit of work. Stock is decremented
afterwards by ``StockEventHandler`` when the order is paid.
"""

import json

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Boolean, Integer, String, Text
from protean.utils.globals import current_domain

from ordering.address.validator import AddressValidator, get_address_validator
from ordering.checkout.pricing import CartItem, CostBreakdown
from ordering.checkout.session import CheckoutForm
from ordering.customer.customer import Customer
from ordering.customer.resolution import resolve_customer
from ordering.domain import ordering
from ordering.errors import PaymentCapturedOrderFailed, StateConflict, UpstreamUnavailable
from ordering.gateway import get_gateway
from ordering.gateway.port import PaymentGateway
from ordering.order.order import TERMINAL_PAYMENT_STATUSES, Order

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class PlaceOrder:
    payment_reference = String(required=True, max_length=255)
    intent_status = String(required=True, max_length=50)
    email = String(required=True, max_length=254)
    phone = String(max_length=40)
    first_name = String(max_length=100)
    last_name = String(max_length=100)
    auth_user_id = String(max_length=255)
    items = Text(required=True)  # JSON: list of line item dicts
    shipping = Text(required=True)  # JSON: shipping detail dict
    billing = Text(required=True)  # JSON: billing address dict
    subtotal_cents = Integer(required=True)
    discount_cents = Integer(default=0)
    tax_cents = Integer(default=0)
    shipping_cost_cents = Integer(default=0)
    total_cents = Integer(required=True)
    currency = String(max_length=3, default="usd")
    is_training = Boolean(default=False)


@ordering.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        customer = resolve_customer(
            email=command.email,
            phone=command.phone,
            first_name=command.first_name,
            last_name=command.last_name,
            auth_user_id=command.auth_user_id,
        )

        costs = CostBreakdown(
            subtotal_cents=command.subtotal_cents,
            discount_cents=command.discount_cents or 0,
            tax_cents=command.tax_cents or 0,
            shipping_cost_cents=command.shipping_cost_cents or 0,
            total_cents=command.total_cents,
        )
        order = Order.place(
            customer_id=str(customer.id),
            payment_reference=command.payment_reference,
            intent_status=command.intent_status,
            costs=costs,
            items=json.loads(command.items),
            shipping=json.loads(command.shipping),
            billing=json.loads(command.billing),
            currency=command.currency,
            is_training=command.is_training,
        )

        current_domain.repository_for(Customer).add(customer)
        current_domain.repository_for(Order).add(order)
        return str(order.id)


class OrderFinalizer:
    def __init__(self, gateway: PaymentGateway | None = None, validator: AddressValidator | None = None):
        self.gateway = gateway or get_gateway()
        self.validator = validator or get_address_validator()

    def finalize(
        self,
        payment_reference: str,
        form: CheckoutForm,
        cart: list[CartItem],
        costs: CostBreakdown,
        auth_user_id: str | None = None,
        address_confirmed: bool = False,
        is_training: bool = False,
        currency: str = "usd",
    ) -> str:
        """Create the order for a settled payment and return its id."""
        if not payment_reference:
            raise ValidationError({"payment_reference": ["A payment reference is required"]})

        existing = current_domain.repository_for(Order).find_by_payment_reference(payment_reference)
        if existing is not None:
            logger.info("finalize_replayed", order_id=str(existing.id), payment_reference=payment_reference)
            return str(existing.id)

        form.verify()
        costs.verify(cart)

        intent = self.gateway.retrieve_intent(payment_reference)
        if intent.status not in TERMINAL_PAYMENT_STATUSES:
            logger.warning(
                "finalize_payment_not_settled",
                payment_reference=payment_reference,
                status=intent.status,
            )
            raise StateConflict(
                f"Payment is not complete (status: {intent.status})",
                payment_reference=payment_reference,
                status=intent.status,
            )
        if intent.amount_cents != costs.total_cents:
            logger.warning(
                "finalize_amount_mismatch",
                payment_reference=payment_reference,
                charged=intent.amount_cents,
                total=costs.total_cents,
            )
            raise ValidationError({"total_cents": ["The payment amount does not match the order total"]})

        self._check_address(form, address_confirmed, payment_reference)

        command = PlaceOrder(
            payment_reference=payment_reference,
            intent_status=intent.status,
            email=form.email,
            phone=form.phone,
            first_name=form.shipping_first_name,
            last_name=form.shipping_last_name,
            auth_user_id=auth_user_id,
            items=json.dumps(
                [
                    {
                        "product_id": item.product_id,
                        "product_name": item.name,
                        "quantity": item.quantity,
                        "unit_price_cents": item.unit_price_cents,
                    }
                    for item in cart
                ]
            ),
            shipping=json.dumps(form.shipping_detail(confirmed=address_confirmed)),
            billing=json.dumps(form.billing_snapshot()),
            subtotal_cents=costs.subtotal_cents,
            discount_cents=costs.discount_cents,
            tax_cents=costs.tax_cents,
            shipping_cost_cents=costs.shipping_cost_cents,
            total_cents=costs.total_cents,
            currency=currency,
            is_training=is_training,
        )

        try:
            order_id = current_domain.process(command, asynchronous=False)
        except ValidationError as exc:
            if "payment_reference" in exc.messages:
                # A concurrent finalize for the same payment committed first
                existing = current_domain.repository_for(Order).find_by_payment_reference(payment_reference)
                if existing is not None:
                    logger.info("finalize_replayed", order_id=str(existing.id), payment_reference=payment_reference)
                    return str(existing.id)
            logger.critical(
                "partial_failure_order_rejected",
                payment_reference=payment_reference,
                email=form.email,
                total_cents=costs.total_cents,
                errors=exc.messages,
            )
            raise PaymentCapturedOrderFailed(
                "Payment was captured but the order was rejected",
                payment_reference=payment_reference,
            ) from exc
        except Exception as exc:
            logger.critical(
                "partial_failure_order_not_created",
                payment_reference=payment_reference,
                email=form.email,
                total_cents=costs.total_cents,
                exc_info=True,
            )
            raise PaymentCapturedOrderFailed(
                "Payment was captured but the order could not be created",
                payment_reference=payment_reference,
            ) from exc

        logger.info(
            "order_finalized",
            order_id=order_id,
            payment_reference=payment_reference,
            payment_status=intent.status,
        )
        return order_id

    def _check_address(self, form: CheckoutForm, confirmed: bool, payment_reference: str) -> None:
        if confirmed:
            return

        result = self.validator.validate(form.shipping_address())
        if result.passed:
            return
        if result.retryable:
            raise UpstreamUnavailable(
                "Address validation is temporarily unavailable, please try again",
                "address-validation",
                payment_reference=payment_reference,
            )

        messages = list(result.messages)
        if result.is_valid:
            messages.append("Address is incomplete: accept the suggested correction or confirm it as entered")
        else:
            messages.append("Address could not be validated")
        logger.info("finalize_address_refused", payment_reference=payment_reference)
        raise ValidationError({"shipping_address": messages})
