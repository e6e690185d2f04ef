"""Ordering API package."""

from ordering.api.errors import register_exception_handlers
from ordering.api.routes import (
    checkout_router,
    order_router,
    payment_router,
    shipment_router,
    shipping_router,
)

routers = [checkout_router, order_router, shipping_router, shipment_router, payment_router]

__all__ = [
    "checkout_router",
    "order_router",
    "payment_router",
    "register_exception_handlers",
    "routers",
    "shipment_router",
    "shipping_router",
]
