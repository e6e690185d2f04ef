"""Domain events for the Shipment aggregate."""

from protean.fields import Boolean, DateTime, Identifier, Integer, String

from ordering.domain import ordering


@ordering.event(part_of="Shipment")
class LabelPurchased:
    """A carrier label was bought for an order."""

    __version__ = "v1"

    shipment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    carrier = String(required=True)
    service = String()
    tracking_number = String()
    tracking_url = String()
    label_url = String()
    amount_cents = Integer()
    purchased_at = DateTime(required=True)


@ordering.event(part_of="Shipment")
class ManualShipmentRecorded:
    """Staff entered tracking for a package shipped outside rate shopping."""

    __version__ = "v1"

    shipment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    carrier = String(required=True)
    service = String()
    tracking_number = String()
    tracking_url = String()
    delivered = Boolean(default=False)
    recorded_at = DateTime(required=True)


@ordering.event(part_of="Shipment")
class LabelVoided:
    __version__ = "v1"

    shipment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    transaction_id = String(required=True)
    voided_at = DateTime(required=True)


@ordering.event(part_of="Shipment")
class TrackingCleared:
    __version__ = "v1"

    shipment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    previous_tracking_number = String()
    cleared_at = DateTime(required=True)
