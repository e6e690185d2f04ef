"""Shipment commands and handler.

Carrier calls happen before these commands are processed (see
``ShipmentManager``); the handler only writes the outcome. Each command
touches the shipment and its order in one unit of work, so the shipping
status and the shipment row never disagree.
"""

import structlog
from protean import handle
from protean.fields import Boolean, Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from ordering.carrier.port import PurchasedLabel
from ordering.domain import ordering
from ordering.order.order import Order
from ordering.order.status import ShippingStatus
from ordering.shipment.shipment import Shipment

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Shipment")
class RecordLabelPurchase:
    """Persist a label that the carrier has already sold us."""

    order_id = Identifier(required=True)
    rate_id = String(required=True, max_length=255)
    idempotency_key = String(required=True, max_length=255)
    transaction_id = String(required=True, max_length=255)
    carrier = String(required=True, max_length=100)
    service = String(max_length=200)
    tracking_number = String(max_length=255)
    tracking_url = String(max_length=1000)
    label_url = String(max_length=1000)
    amount_cents = Integer(default=0)
    currency = String(max_length=3)
    package_id = String(max_length=100)
    weight_g = Float()


@ordering.command(part_of="Shipment")
class RecordManualShipment:
    order_id = Identifier(required=True)
    carrier = String(required=True, max_length=100)
    service = String(max_length=200)
    tracking_number = String(max_length=255)
    tracking_url = String(max_length=1000)
    delivered = Boolean(default=False)


@ordering.command(part_of="Shipment")
class MarkShipmentVoided:
    """The carrier accepted the void; record it on the shipment."""

    shipment_id = Identifier(required=True)


@ordering.command(part_of="Shipment")
class ClearShipmentTracking:
    shipment_id = Identifier(required=True)


@ordering.command_handler(part_of=Shipment)
class ShipmentRecordingHandler:
    @handle(RecordLabelPurchase)
    def record_label_purchase(self, command):
        shipments = current_domain.repository_for(Shipment)
        existing = shipments.find_by_idempotency_key(command.order_id, command.idempotency_key)
        if existing is not None:
            # A concurrent attempt with the same key got here first
            logger.warning(
                "label_purchase_already_recorded",
                order_id=command.order_id,
                shipment_id=str(existing.id),
                transaction_id=command.transaction_id,
            )
            return str(existing.id)

        orders = current_domain.repository_for(Order)
        order = orders.get(command.order_id)
        order.mark_shipped()

        label = PurchasedLabel(
            transaction_id=command.transaction_id,
            label_url=command.label_url,
            tracking_number=command.tracking_number,
            tracking_url=command.tracking_url,
            carrier=command.carrier,
            service=command.service,
            amount_cents=command.amount_cents,
            currency=command.currency,
        )
        shipment = Shipment.purchased(
            order_id=command.order_id,
            label=label,
            rate_id=command.rate_id,
            idempotency_key=command.idempotency_key,
            package_id=command.package_id,
            weight_g=command.weight_g,
        )

        orders.add(order)
        shipments.add(shipment)
        return str(shipment.id)

    @handle(RecordManualShipment)
    def record_manual_shipment(self, command):
        orders = current_domain.repository_for(Order)
        order = orders.get(command.order_id)
        order.mark_shipped()
        if command.delivered:
            order.advance_shipping(ShippingStatus.DELIVERED)

        shipment = Shipment.manual(
            order_id=command.order_id,
            carrier=command.carrier,
            tracking_number=command.tracking_number,
            tracking_url=command.tracking_url,
            service=command.service,
            delivered=command.delivered,
        )

        orders.add(order)
        current_domain.repository_for(Shipment).add(shipment)
        return str(shipment.id)

    @handle(MarkShipmentVoided)
    def mark_voided(self, command):
        repo = current_domain.repository_for(Shipment)
        shipment = repo.get(command.shipment_id)
        shipment.void()
        repo.add(shipment)
        return str(shipment.id)

    @handle(ClearShipmentTracking)
    def clear_tracking(self, command):
        repo = current_domain.repository_for(Shipment)
        shipment = repo.get(command.shipment_id)
        shipment.clear_tracking()
        repo.add(shipment)
        return str(shipment.id)
