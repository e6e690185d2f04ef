"""ShipmentManager: rate shopping, label purchase and void for placed orders.

Every carrier call is made before any write. A failed carrier call leaves
no shipment row and no status change behind. A carrier call that succeeds
but cannot be recorded is voided again where possible and reported loudly.
"""

import structlog
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from ordering.carrier import get_carrier
from ordering.carrier.parcel import build_parcel
from ordering.carrier.port import Address, CarrierPort, Parcel, Rate
from ordering.config import ConfigurationError, Settings, get_settings
from ordering.errors import PartialFailure, StateConflict, UpstreamError
from ordering.order.order import Order
from ordering.shipment.recording import (
    ClearShipmentTracking,
    MarkShipmentVoided,
    RecordLabelPurchase,
    RecordManualShipment,
)
from ordering.shipment.shipment import Shipment

logger = structlog.get_logger(__name__)


def sort_rates(rates: list[Rate]) -> list[Rate]:
    """Cheapest first; ties broken on carrier, service and rate id so order is stable."""
    return sorted(rates, key=lambda r: (r.amount_cents, r.carrier, r.service, r.rate_id))


def destination_for(order: Order) -> Address:
    detail = order.shipping_detail
    if detail is None:
        raise ValidationError({"order_id": ["Order has no shipping address"]})
    return Address(
        name=detail.recipient_name,
        address1=detail.address1,
        address2=detail.address2,
        city=detail.city,
        state=detail.state,
        postal_code=detail.postal_code,
        country=detail.country,
        phone=detail.phone,
        email=detail.email,
    )


class ShipmentManager:
    def __init__(self, carrier: CarrierPort | None = None, settings: Settings | None = None):
        self.carrier = carrier or get_carrier()
        self.settings = settings or get_settings()

    def _origin(self) -> Address:
        origin = self.settings.origin
        if origin is None:
            raise ConfigurationError("Ship-from origin address is not configured")
        return Address(
            name=origin.name,
            address1=origin.address1,
            address2=origin.address2,
            city=origin.city,
            state=origin.state,
            postal_code=origin.postal_code,
            country=origin.country,
            phone=origin.phone,
            email=origin.email,
        )

    def parcel_for(self, order: Order, package_id: str | None = None) -> Parcel:
        try:
            preset = self.settings.package(package_id)
        except KeyError:
            raise ValidationError({"package_id": [f"Unknown package preset: {package_id}"]}) from None
        return build_parcel(order.line_items, preset)

    def get_rates(self, order_id: str, package_id: str | None = None) -> list[Rate]:
        """Quote rates for a placed order, rebuilt from its persisted line items."""
        order = current_domain.repository_for(Order).get(order_id)
        parcel = self.parcel_for(order, package_id)
        rates = self.carrier.get_rates(destination_for(order), self._origin(), parcel)
        logger.info("rates_fetched", order_id=order_id, count=len(rates), weight_g=parcel.weight_g)
        return sort_rates(rates)

    def purchase(
        self,
        order_id: str,
        rate_id: str,
        idempotency_key: str | None = None,
        package_id: str | None = None,
    ) -> Shipment:
        """Buy the label for ``rate_id`` at most once per idempotency key.

        Without an explicit key, the order and rate together form the key.
        """
        if not rate_id:
            raise ValidationError({"rate_id": ["A rate must be selected"]})
        key = idempotency_key or f"{order_id}:{rate_id}"
        shipments = current_domain.repository_for(Shipment)

        existing = shipments.find_by_idempotency_key(order_id, key)
        if existing is not None:
            logger.info("label_purchase_replayed", order_id=order_id, shipment_id=str(existing.id))
            return existing

        order = current_domain.repository_for(Order).get(order_id)
        order.assert_shippable()
        parcel = self.parcel_for(order, package_id)

        label = self.carrier.purchase_label(rate_id)
        logger.info(
            "label_purchased",
            order_id=order_id,
            carrier=label.carrier,
            transaction_id=label.transaction_id,
            idempotency_key=key,
        )

        try:
            shipment_id = current_domain.process(
                RecordLabelPurchase(
                    order_id=order_id,
                    rate_id=rate_id,
                    idempotency_key=key,
                    transaction_id=label.transaction_id,
                    carrier=label.carrier,
                    service=label.service,
                    tracking_number=label.tracking_number,
                    tracking_url=label.tracking_url,
                    label_url=label.label_url,
                    amount_cents=label.amount_cents,
                    currency=label.currency,
                    package_id=package_id,
                    weight_g=parcel.weight_g,
                ),
                asynchronous=False,
            )
        except StateConflict:
            self._void_unrecorded(order_id, label.transaction_id)
            raise
        except Exception as exc:
            logger.critical(
                "partial_failure_label_unrecorded",
                order_id=order_id,
                transaction_id=label.transaction_id,
                tracking_number=label.tracking_number,
                exc_info=True,
            )
            self._void_unrecorded(order_id, label.transaction_id)
            raise PartialFailure(
                "Label was purchased but could not be recorded",
                order_id=order_id,
                transaction_id=label.transaction_id,
            ) from exc

        shipment = shipments.get(shipment_id)
        if shipment.transaction_id != label.transaction_id:
            # Lost a race with a concurrent purchase under the same key
            self._void_unrecorded(order_id, label.transaction_id)
        return shipment

    def _void_unrecorded(self, order_id: str, transaction_id: str) -> None:
        try:
            self.carrier.void_label(transaction_id)
            logger.warning("unrecorded_label_voided", order_id=order_id, transaction_id=transaction_id)
        except UpstreamError:
            logger.critical("partial_failure_label_not_voided", order_id=order_id, transaction_id=transaction_id)

    def void(self, shipment_id: str) -> Shipment:
        repo = current_domain.repository_for(Shipment)
        shipment = repo.get(shipment_id)
        shipment.assert_voidable()

        result = self.carrier.void_label(shipment.transaction_id)
        logger.info("label_voided", shipment_id=shipment_id, carrier_status=result.status)

        current_domain.process(MarkShipmentVoided(shipment_id=shipment_id), asynchronous=False)
        return repo.get(shipment_id)

    def record_manual(
        self,
        order_id: str,
        carrier: str,
        tracking_number: str | None = None,
        tracking_url: str | None = None,
        service: str | None = None,
        delivered: bool = False,
    ) -> Shipment:
        if not (carrier or "").strip():
            raise ValidationError({"carrier": ["Carrier is required"]})
        shipment_id = current_domain.process(
            RecordManualShipment(
                order_id=order_id,
                carrier=carrier.strip(),
                tracking_number=(tracking_number or "").strip() or None,
                tracking_url=(tracking_url or "").strip() or None,
                service=service,
                delivered=delivered,
            ),
            asynchronous=False,
        )
        return current_domain.repository_for(Shipment).get(shipment_id)

    def clear_tracking(self, shipment_id: str) -> Shipment:
        current_domain.process(ClearShipmentTracking(shipment_id=shipment_id), asynchronous=False)
        return current_domain.repository_for(Shipment).get(shipment_id)
