"""Carrier tracking updates: move an order's shipping status from webhook data."""

import structlog
from protean import handle
from protean.fields import String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order
from ordering.order.status import ShippingStatus
from ordering.shipment.shipment import Shipment

logger = structlog.get_logger(__name__)

# Carrier tracking status -> order shipping status. PRE_TRANSIT and UNKNOWN carry no move.
TRACKING_STATUS_MAP = {
    "TRANSIT": ShippingStatus.IN_TRANSIT,
    "DELIVERED": ShippingStatus.DELIVERED,
    "RETURNED": ShippingStatus.RETURNED,
    "FAILURE": ShippingStatus.LOST,
}


@ordering.command(part_of="Shipment")
class ApplyTrackingUpdate:
    tracking_status = String(required=True, max_length=50)
    transaction_id = String(max_length=255)
    tracking_number = String(max_length=255)


@ordering.command_handler(part_of=Shipment)
class TrackingHandler:
    @handle(ApplyTrackingUpdate)
    def apply_tracking_update(self, command):
        """Return the order's new shipping status, or None when nothing changed."""
        target = TRACKING_STATUS_MAP.get((command.tracking_status or "").upper())
        if target is None:
            return None

        shipment = current_domain.repository_for(Shipment).find_by_carrier_reference(
            transaction_id=command.transaction_id,
            tracking_number=command.tracking_number,
        )
        if shipment is None:
            logger.info(
                "tracking_update_unmatched",
                transaction_id=command.transaction_id,
                tracking_number=command.tracking_number,
            )
            return None

        orders = current_domain.repository_for(Order)
        order = orders.get(shipment.order_id)
        if order.shipping_status == target.value:
            return None

        order.advance_shipping(target)
        orders.add(order)
        logger.info("shipping_status_updated", order_id=str(order.id), status=target.value)
        return target.value
