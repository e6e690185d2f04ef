"""Customer notifications driven by order and shipment events.

A notification that cannot be delivered never affects the order: the
failure is logged as a partial failure and the event is considered handled.
"""

import structlog
from protean import current_domain
from protean.utils.mixins import handle

from ordering.customer.customer import Customer
from ordering.domain import ordering
from ordering.notification import get_mailer
from ordering.notification.templates import (
    OrderConfirmationTemplate,
    ShippingStatusTemplate,
    ShippingUpdateTemplate,
)
from ordering.order.events import OrderPlaced, ShippingStatusChanged
from ordering.order.order import Order
from ordering.order.status import ShippingStatus
from ordering.shipment.events import LabelPurchased, ManualShipmentRecorded
from ordering.shipment.shipment import Shipment

logger = structlog.get_logger(__name__)


def _recipient(order_id: str) -> str | None:
    order = current_domain.repository_for(Order).get(order_id)
    if order.shipping_detail is not None and order.shipping_detail.email:
        return order.shipping_detail.email
    return current_domain.repository_for(Customer).get(order.customer_id).email


def notify(order_id: str, template, context: dict) -> bool:
    """Render and send one email; report delivery problems without raising."""
    try:
        to = _recipient(order_id)
        if not to:
            logger.warning("notification_no_recipient", order_id=order_id)
            return False
        message = template.render({"order_id": order_id, **context})
        result = get_mailer().send(to=to, subject=message["subject"], body=message["body"])
    except Exception:
        logger.critical("partial_failure_notification", order_id=order_id, template=template.__name__, exc_info=True)
        return False

    if result.get("status") != "sent":
        logger.critical(
            "partial_failure_notification",
            order_id=order_id,
            template=template.__name__,
            error=result.get("error"),
        )
        return False
    logger.info("notification_sent", order_id=order_id, template=template.__name__)
    return True


@ordering.event_handler(part_of=Order)
class OrderNotificationHandler:
    @handle(OrderPlaced)
    def on_order_placed(self, event: OrderPlaced) -> None:
        total = f"{event.total_cents / 100:.2f} {event.currency.upper()}"
        notify(event.order_id, OrderConfirmationTemplate, {"total": total})

    @handle(ShippingStatusChanged)
    def on_shipping_status_changed(self, event: ShippingStatusChanged) -> None:
        # The move to "shipped" is announced with tracking details by the shipment handler
        if event.new_status == ShippingStatus.SHIPPED.value:
            return
        notify(event.order_id, ShippingStatusTemplate, {"status": event.new_status})


@ordering.event_handler(part_of=Shipment)
class ShipmentNotificationHandler:
    @handle(LabelPurchased)
    def on_label_purchased(self, event: LabelPurchased) -> None:
        notify(
            event.order_id,
            ShippingUpdateTemplate,
            {
                "carrier": event.carrier,
                "tracking_number": event.tracking_number,
                "tracking_url": event.tracking_url,
            },
        )

    @handle(ManualShipmentRecorded)
    def on_manual_shipment(self, event: ManualShipmentRecorded) -> None:
        notify(
            event.order_id,
            ShippingUpdateTemplate,
            {
                "carrier": event.carrier,
                "tracking_number": event.tracking_number,
                "tracking_url": event.tracking_url,
            },
        )
