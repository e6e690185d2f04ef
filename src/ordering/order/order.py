"""Order aggregate: the record written once a checkout's payment is confirmed.

The monetary breakdown is fixed when the order is placed and is never
recomputed. Status fields change only through the methods below, each of
which asks the state machine in ``ordering.order.status`` for permission.
"""

from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    HasMany,
    HasOne,
    Identifier,
    Integer,
    String,
    ValueObject,
)

from ordering.domain import ordering
from ordering.order.events import (
    OrderCancelled,
    OrderPaid,
    OrderPlaced,
    OrderRefunded,
    ShippingStatusChanged,
)
from ordering.order.status import (
    OrderStatus,
    PaymentStatus,
    ShippingStatus,
    assert_transition,
)

# Payment-intent statuses a checkout may be finalized from
TERMINAL_PAYMENT_STATUSES = frozenset({"succeeded", "processing", "requires_capture"})


@ordering.value_object(part_of="Order")
class BillingAddress:
    """Billing address snapshot taken at checkout."""

    name = String(max_length=200)
    address1 = String(required=True, max_length=255)
    address2 = String(max_length=255)
    city = String(required=True, max_length=100)
    state = String(max_length=100)
    postal_code = String(required=True, max_length=20)
    country = String(required=True, max_length=2)


@ordering.entity(part_of="Order")
class LineItem:
    """One product on the order, priced from the cart snapshot at checkout."""

    product_id = Identifier(required=True)
    product_name = String(max_length=255)
    quantity = Integer(required=True, min_value=1)
    unit_price_cents = Integer(required=True, min_value=0)

    @property
    def line_total_cents(self) -> int:
        return self.quantity * self.unit_price_cents


@ordering.entity(part_of="Order")
class ShippingDetail:
    """Where the order ships: the validated (or explicitly overridden) address."""

    recipient_name = String(required=True, max_length=200)
    email = String(max_length=254)
    phone = String(max_length=40)
    address1 = String(required=True, max_length=255)
    address2 = String(max_length=255)
    city = String(required=True, max_length=100)
    state = String(max_length=100)
    postal_code = String(required=True, max_length=20)
    country = String(required=True, max_length=2)
    address_overridden = Boolean(default=False)


@ordering.aggregate
class Order:
    customer_id = Identifier(required=True)
    payment_reference = String(required=True, max_length=255, unique=True)

    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    order_status = String(choices=OrderStatus, default=OrderStatus.PENDING_PAYMENT.value)
    shipping_status = String(choices=ShippingStatus, default=ShippingStatus.NOT_SHIPPED.value)

    subtotal_cents = Integer(required=True, min_value=0)
    discount_cents = Integer(default=0, min_value=0)
    tax_cents = Integer(default=0, min_value=0)
    shipping_cost_cents = Integer(default=0, min_value=0)
    total_cents = Integer(required=True, min_value=0)
    refunded_cents = Integer(default=0, min_value=0)
    currency = String(max_length=3, default="usd")

    line_items = HasMany(LineItem)
    shipping_detail = HasOne(ShippingDetail)
    billing_address = ValueObject(BillingAddress)

    is_training = Boolean(default=False)
    cancellation_reason = String(max_length=500)
    placed_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def total_matches_breakdown(self):
        expected = (self.subtotal_cents or 0) - (self.discount_cents or 0) + (self.tax_cents or 0)
        expected += self.shipping_cost_cents or 0
        if self.total_cents != expected:
            raise ValidationError(
                {"total_cents": [f"Total {self.total_cents} does not equal the cost breakdown ({expected})"]}
            )

    @invariant.post
    def refunds_cannot_exceed_total(self):
        if (self.refunded_cents or 0) > (self.total_cents or 0):
            raise ValidationError({"refunded_cents": ["Refunds cannot exceed the order total"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        customer_id,
        payment_reference,
        intent_status,
        costs,
        items,
        shipping,
        billing,
        currency="usd",
        is_training=False,
    ):
        """Build a new order from a confirmed checkout.

        ``intent_status`` is the payment processor's status for the intent and
        must be one of ``TERMINAL_PAYMENT_STATUSES``. A ``succeeded`` intent
        produces a paid order waiting for fulfillment; ``processing`` and
        ``requires_capture`` leave the order waiting for the payment webhook.
        """
        if intent_status not in TERMINAL_PAYMENT_STATUSES:
            raise ValidationError({"payment_reference": [f"Payment is not settled (status: {intent_status})"]})
        if not items:
            raise ValidationError({"line_items": ["An order needs at least one line item"]})

        now = datetime.now(UTC)
        order = cls(
            customer_id=customer_id,
            payment_reference=payment_reference,
            subtotal_cents=costs.subtotal_cents,
            discount_cents=costs.discount_cents,
            tax_cents=costs.tax_cents,
            shipping_cost_cents=costs.shipping_cost_cents,
            total_cents=costs.total_cents,
            currency=currency,
            billing_address=BillingAddress(**billing),
            is_training=is_training,
            placed_at=now,
            updated_at=now,
        )
        for item in items:
            order.add_line_items(LineItem(**item))
        order.shipping_detail = ShippingDetail(**shipping)

        settled = intent_status == "succeeded"
        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                customer_id=str(customer_id),
                payment_reference=payment_reference,
                payment_status=(PaymentStatus.PAID if settled else PaymentStatus.PENDING).value,
                total_cents=order.total_cents,
                currency=currency,
                is_training=is_training,
                placed_at=now,
            )
        )
        if settled:
            order.mark_paid()
        return order

    # -------------------------------------------------------------------
    # Payment axis
    # -------------------------------------------------------------------
    def mark_paid(self):
        """Record a settled charge and release the order for fulfillment."""
        self.payment_status = assert_transition(
            PaymentStatus(self.payment_status), PaymentStatus.PAID, order_id=str(self.id)
        ).value
        if self.order_status == OrderStatus.PENDING_PAYMENT.value:
            self.order_status = assert_transition(
                OrderStatus.PENDING_PAYMENT, OrderStatus.PENDING_FULFILLMENT, order_id=str(self.id)
            ).value

        now = datetime.now(UTC)
        self.updated_at = now
        self.raise_(OrderPaid(order_id=str(self.id), payment_reference=self.payment_reference, paid_at=now))

    def check_refund(self, amount_cents: int) -> PaymentStatus:
        """Return the payment status a refund of ``amount_cents`` would lead to.

        Raises without touching the order when the refund is not allowed.
        """
        if amount_cents is None or amount_cents <= 0:
            raise ValidationError({"amount_cents": ["Refund amount must be positive"]})
        refunded = (self.refunded_cents or 0) + amount_cents
        if refunded > self.total_cents:
            raise ValidationError({"amount_cents": ["Refund would exceed the order total"]})

        current = PaymentStatus(self.payment_status)
        target = PaymentStatus.REFUNDED if refunded == self.total_cents else PaymentStatus.PARTIALLY_REFUNDED
        if target != current:
            assert_transition(current, target, order_id=str(self.id))
        return target

    def record_refund(self, amount_cents: int):
        target = self.check_refund(amount_cents)
        refunded = (self.refunded_cents or 0) + amount_cents

        now = datetime.now(UTC)
        self.payment_status = target.value
        self.refunded_cents = refunded
        self.updated_at = now
        self.raise_(
            OrderRefunded(
                order_id=str(self.id),
                amount_cents=amount_cents,
                refunded_cents=refunded,
                payment_status=target.value,
                refunded_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Fulfillment axis
    # -------------------------------------------------------------------
    def cancel(self, reason: str | None = None):
        self.order_status = assert_transition(
            OrderStatus(self.order_status), OrderStatus.CANCELLED, order_id=str(self.id)
        ).value
        now = datetime.now(UTC)
        self.cancellation_reason = reason
        self.updated_at = now
        self.raise_(OrderCancelled(order_id=str(self.id), reason=reason, cancelled_at=now))

    def assert_shippable(self):
        """Raise ``StateConflict`` unless a new shipment may be attached to this order.

        A first shipment needs a paid order waiting for fulfillment. Further
        shipments (extra packages, relabels) are accepted while the order is
        fulfilled and its shipping status is still ``shipped``.
        """
        order_status = OrderStatus(self.order_status)
        shipping_status = ShippingStatus(self.shipping_status)

        if shipping_status == ShippingStatus.NOT_SHIPPED:
            assert_transition(order_status, OrderStatus.FULFILLED, order_id=str(self.id))
            return
        if not (order_status == OrderStatus.FULFILLED and shipping_status == ShippingStatus.SHIPPED):
            assert_transition(shipping_status, ShippingStatus.SHIPPED, order_id=str(self.id))

    def mark_shipped(self):
        """Attach a shipment: ``not_shipped -> shipped`` and ``pending_fulfillment -> fulfilled``."""
        self.assert_shippable()
        if self.shipping_status == ShippingStatus.NOT_SHIPPED.value:
            self.order_status = OrderStatus.FULFILLED.value
            self.advance_shipping(ShippingStatus.SHIPPED)

    # -------------------------------------------------------------------
    # Shipping axis
    # -------------------------------------------------------------------
    def advance_shipping(self, target: ShippingStatus):
        previous = ShippingStatus(self.shipping_status)
        self.shipping_status = assert_transition(previous, target, order_id=str(self.id)).value

        now = datetime.now(UTC)
        self.updated_at = now
        self.raise_(
            ShippingStatusChanged(
                order_id=str(self.id),
                previous_status=previous.value,
                new_status=target.value,
                changed_at=now,
            )
        )

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.line_items or [])
