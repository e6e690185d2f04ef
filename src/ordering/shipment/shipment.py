"""Shipment aggregate: one package sent (or to be sent) for an order.

Rows are never overwritten or deleted. Relabels, extra packages and provider
retries each add a row; voiding and tracking corrections only change fields
on the existing row.

Status:
    purchased  a label was bought from a carrier
    voided     a purchased label was cancelled with the carrier
    created    tracking entered by hand; there is no label to void
"""

from datetime import UTC, datetime
from enum import Enum

import structlog
from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String

from ordering.domain import ordering
from ordering.errors import StateConflict
from ordering.shipment.events import (
    LabelPurchased,
    LabelVoided,
    ManualShipmentRecorded,
    TrackingCleared,
)

logger = structlog.get_logger(__name__)


class ShipmentStatus(Enum):
    CREATED = "created"
    PURCHASED = "purchased"
    VOIDED = "voided"


@ordering.aggregate
class Shipment:
    order_id = Identifier(required=True)
    status = String(choices=ShipmentStatus, default=ShipmentStatus.CREATED.value)
    carrier = String(required=True, max_length=100)
    service = String(max_length=200)
    tracking_number = String(max_length=255)
    tracking_url = String(max_length=1000)
    label_url = String(max_length=1000)
    transaction_id = String(max_length=255)
    rate_id = String(max_length=255)
    amount_cents = Integer(min_value=0)
    currency = String(max_length=3)
    idempotency_key = String(max_length=255)
    package_id = String(max_length=100)
    weight_g = Float(min_value=0.0)
    is_manual = Boolean(default=False)
    created_at = DateTime()
    voided_at = DateTime()

    @classmethod
    def purchased(cls, order_id, label, rate_id, idempotency_key, package_id=None, weight_g=None):
        """Record a label bought from a carrier."""
        now = datetime.now(UTC)
        shipment = cls(
            order_id=order_id,
            status=ShipmentStatus.PURCHASED.value,
            carrier=label.carrier,
            service=label.service,
            tracking_number=label.tracking_number,
            tracking_url=label.tracking_url,
            label_url=label.label_url,
            transaction_id=label.transaction_id,
            rate_id=rate_id,
            amount_cents=label.amount_cents,
            currency=label.currency,
            idempotency_key=idempotency_key,
            package_id=package_id,
            weight_g=weight_g,
            created_at=now,
        )
        shipment.raise_(
            LabelPurchased(
                shipment_id=str(shipment.id),
                order_id=str(order_id),
                carrier=label.carrier,
                service=label.service,
                tracking_number=label.tracking_number,
                tracking_url=label.tracking_url,
                label_url=label.label_url,
                amount_cents=label.amount_cents,
                purchased_at=now,
            )
        )
        return shipment

    @classmethod
    def manual(cls, order_id, carrier, tracking_number=None, tracking_url=None, service=None, delivered=False):
        """Record a package shipped outside automated rate shopping."""
        now = datetime.now(UTC)
        shipment = cls(
            order_id=order_id,
            status=ShipmentStatus.CREATED.value,
            carrier=carrier,
            service=service,
            tracking_number=tracking_number,
            tracking_url=tracking_url,
            is_manual=True,
            created_at=now,
        )
        shipment.raise_(
            ManualShipmentRecorded(
                shipment_id=str(shipment.id),
                order_id=str(order_id),
                carrier=carrier,
                service=service,
                tracking_number=tracking_number,
                tracking_url=tracking_url,
                delivered=delivered,
                recorded_at=now,
            )
        )
        return shipment

    def assert_voidable(self):
        if self.status != ShipmentStatus.PURCHASED.value:
            logger.warning("void_rejected", shipment_id=str(self.id), status=self.status)
            raise StateConflict(
                f"Only purchased shipments can be voided (status: {self.status})",
                shipment_id=str(self.id),
                status=self.status,
            )
        if not self.transaction_id:
            raise StateConflict("Shipment has no carrier transaction to void", shipment_id=str(self.id))

    def void(self):
        self.assert_voidable()
        now = datetime.now(UTC)
        self.status = ShipmentStatus.VOIDED.value
        self.voided_at = now
        self.raise_(
            LabelVoided(
                shipment_id=str(self.id),
                order_id=str(self.order_id),
                transaction_id=self.transaction_id,
                voided_at=now,
            )
        )

    def clear_tracking(self):
        """Null the tracking fields, keeping the row and its label history."""
        previous = self.tracking_number
        self.tracking_number = None
        self.tracking_url = None
        self.raise_(
            TrackingCleared(
                shipment_id=str(self.id),
                order_id=str(self.order_id),
                previous_tracking_number=previous,
                cleared_at=datetime.now(UTC),
            )
        )


@ordering.repository(part_of=Shipment)
class ShipmentRepository:
    def for_order(self, order_id: str) -> list[Shipment]:
        """All shipments of an order, oldest first."""
        return self._dao.query.filter(order_id=order_id).order_by("created_at").all().items

    def find_by_idempotency_key(self, order_id: str, idempotency_key: str) -> Shipment | None:
        return self._dao.query.filter(order_id=order_id, idempotency_key=idempotency_key).all().first

    def find_by_carrier_reference(self, transaction_id=None, tracking_number=None) -> Shipment | None:
        """The live shipment a carrier event refers to. Voided labels never match."""
        live = self._dao.query.exclude(status=ShipmentStatus.VOIDED.value)
        if transaction_id:
            shipment = live.filter(transaction_id=transaction_id).all().first
            if shipment is not None:
                return shipment
        if tracking_number:
            return live.filter(tracking_number=tracking_number).all().first
        return None

    def active_label(self, order_id: str) -> Shipment | None:
        """The most recent non-voided shipment carrying a label URL."""
        with_labels = [
            s for s in self.for_order(order_id) if s.label_url and s.status != ShipmentStatus.VOIDED.value
        ]
        return with_labels[-1] if with_labels else None
