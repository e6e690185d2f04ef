"""Tests for the Shipment aggregate."""

import pytest
from ordering.carrier.port import PurchasedLabel
from ordering.errors import StateConflict
from ordering.shipment.events import LabelPurchased, LabelVoided, ManualShipmentRecorded, TrackingCleared
from ordering.shipment.shipment import Shipment, ShipmentStatus


def _label():
    return PurchasedLabel(
        transaction_id="tx_001",
        label_url="https://labels.test/tx_001.pdf",
        tracking_number="TRACK001",
        tracking_url="https://track.test/TRACK001",
        carrier="USPS",
        service="Priority Mail",
        amount_cents=1095,
        currency="USD",
    )


def _purchased():
    return Shipment.purchased(order_id="ord-001", label=_label(), rate_id="rate_1", idempotency_key="ord-001:rate_1")


class TestPurchasedShipment:
    def test_records_label(self):
        shipment = _purchased()

        assert shipment.status == ShipmentStatus.PURCHASED.value
        assert shipment.transaction_id == "tx_001"
        assert shipment.is_manual is False
        assert isinstance(shipment._events[0], LabelPurchased)

    def test_void(self):
        shipment = _purchased()
        shipment._events.clear()

        shipment.void()

        assert shipment.status == ShipmentStatus.VOIDED.value
        assert shipment.voided_at is not None
        assert isinstance(shipment._events[0], LabelVoided)

    def test_cannot_void_twice(self):
        shipment = _purchased()
        shipment.void()
        with pytest.raises(StateConflict):
            shipment.void()


class TestManualShipment:
    def test_records_tracking_without_label(self):
        shipment = Shipment.manual(order_id="ord-001", carrier="DHL", tracking_number="JD0001")

        assert shipment.status == ShipmentStatus.CREATED.value
        assert shipment.is_manual is True
        assert shipment.label_url is None
        assert isinstance(shipment._events[0], ManualShipmentRecorded)

    def test_manual_shipment_cannot_be_voided(self):
        shipment = Shipment.manual(order_id="ord-001", carrier="DHL")
        with pytest.raises(StateConflict):
            shipment.assert_voidable()


class TestClearTracking:
    def test_clears_tracking_keeps_label(self):
        shipment = _purchased()
        shipment._events.clear()

        shipment.clear_tracking()

        assert shipment.tracking_number is None
        assert shipment.tracking_url is None
        assert shipment.label_url == "https://labels.test/tx_001.pdf"
        assert shipment._events[0].previous_tracking_number == "TRACK001"
        assert isinstance(shipment._events[0], TrackingCleared)
