"""Order status state machine.

An order moves along three independent axes: payment, fulfillment and
shipping. Each axis has its own enum and its own transition table, and every
status write on an ``Order`` goes through ``assert_transition``.
"""

from enum import Enum

import structlog

from ordering.errors import StateConflict

logger = structlog.get_logger(__name__)


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"


class OrderStatus(Enum):
    PENDING_PAYMENT = "pending_payment"
    PENDING_FULFILLMENT = "pending_fulfillment"
    FULFILLED = "fulfilled"
    CANCELLED = "cancelled"


class ShippingStatus(Enum):
    NOT_SHIPPED = "not_shipped"
    SHIPPED = "shipped"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    LOST = "lost"
    RETURNED = "returned"


_PAYMENT_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.PAID},
    PaymentStatus.PAID: {PaymentStatus.REFUNDED, PaymentStatus.PARTIALLY_REFUNDED},
    PaymentStatus.PARTIALLY_REFUNDED: {PaymentStatus.REFUNDED},
    PaymentStatus.REFUNDED: set(),  # terminal
}

_ORDER_TRANSITIONS = {
    # Cancelling before payment is the only exit that never passes through "paid"
    OrderStatus.PENDING_PAYMENT: {OrderStatus.PENDING_FULFILLMENT, OrderStatus.CANCELLED},
    OrderStatus.PENDING_FULFILLMENT: {OrderStatus.FULFILLED, OrderStatus.CANCELLED},
    OrderStatus.FULFILLED: set(),  # terminal; returns are handled elsewhere
    OrderStatus.CANCELLED: set(),  # terminal
}

_SHIPPING_TRANSITIONS = {
    ShippingStatus.NOT_SHIPPED: {ShippingStatus.SHIPPED},
    ShippingStatus.SHIPPED: {
        ShippingStatus.IN_TRANSIT,
        ShippingStatus.DELIVERED,
        ShippingStatus.LOST,
        ShippingStatus.RETURNED,
    },
    ShippingStatus.IN_TRANSIT: {ShippingStatus.DELIVERED, ShippingStatus.LOST, ShippingStatus.RETURNED},
    ShippingStatus.DELIVERED: set(),
    ShippingStatus.LOST: set(),
    ShippingStatus.RETURNED: set(),
}

_TABLES = {
    PaymentStatus: _PAYMENT_TRANSITIONS,
    OrderStatus: _ORDER_TRANSITIONS,
    ShippingStatus: _SHIPPING_TRANSITIONS,
}

_AXIS_NAMES = {
    PaymentStatus: "payment_status",
    OrderStatus: "order_status",
    ShippingStatus: "shipping_status",
}


def allowed_targets(current: Enum) -> frozenset:
    """Statuses reachable in one step from ``current`` on its own axis."""
    return frozenset(_TABLES[type(current)][current])


def can_transition(current: Enum, target: Enum) -> bool:
    if type(current) is not type(target):
        return False
    return target in _TABLES[type(current)][current]


def assert_transition(current: Enum, target: Enum, **context) -> Enum:
    """Return ``target`` when the move is legal, raise ``StateConflict`` otherwise."""
    if can_transition(current, target):
        return target

    axis = _AXIS_NAMES.get(type(current), type(current).__name__)
    message = f"Cannot move {axis} from {current.value} to {target.value}"
    logger.warning("illegal_status_transition", axis=axis, current=current.value, target=target.value, **context)
    raise StateConflict(message, axis=axis, current=current.value, target=target.value, **context)
