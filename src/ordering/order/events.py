"""Domain events for the Order aggregate."""

from protean.fields import Boolean, DateTime, Identifier, Integer, String

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderPlaced:
    """A paid (or payment-processing) checkout was written as an order."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    payment_reference = String(required=True)
    payment_status = String(required=True)
    total_cents = Integer(required=True)
    currency = String(required=True)
    is_training = Boolean(default=False)
    placed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderPaid:
    """The payment processor settled the charge for an order."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    payment_reference = String(required=True)
    paid_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderCancelled:
    __version__ = "v1"

    order_id = Identifier(required=True)
    reason = String(max_length=500)
    cancelled_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderRefunded:
    __version__ = "v1"

    order_id = Identifier(required=True)
    amount_cents = Integer(required=True)
    refunded_cents = Integer(required=True)
    payment_status = String(required=True)
    refunded_at = DateTime(required=True)


@ordering.event(part_of="Order")
class ShippingStatusChanged:
    """The order's shipping status moved one step along its axis."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    changed_at = DateTime(required=True)
