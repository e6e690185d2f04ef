"""Shippo adapter: the primary carrier aggregator.

Shippo takes grams and centimetres directly, quotes amounts as decimal
strings, and reports label purchase success through the transaction
``status`` field rather than the HTTP status code.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

import structlog

from ordering.carrier.http import JsonApi
from ordering.carrier.port import (
    Address,
    AddressVerification,
    CarrierPort,
    Parcel,
    PurchasedLabel,
    Rate,
    VoidResult,
)
from ordering.errors import UpstreamRejected

logger = structlog.get_logger(__name__)

SHIPPO_API_URL = "https://api.goshippo.com"


def to_cents(amount) -> int:
    """Convert a decimal amount (``"7.45"`` or ``7.45``) to integer cents."""
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError):
        return 0
    return int((value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _address_payload(address: Address) -> dict:
    payload = {
        "name": address.name or "",
        "street1": address.address1,
        "street2": address.address2 or "",
        "city": address.city,
        "state": address.state,
        "zip": address.postal_code,
        "country": address.country,
    }
    if address.phone:
        payload["phone"] = address.phone
    if address.email:
        payload["email"] = address.email
    return payload


def _parcel_payload(parcel: Parcel) -> dict:
    return {
        "length": f"{round(parcel.length_cm, 1)}",
        "width": f"{round(parcel.width_cm, 1)}",
        "height": f"{round(parcel.height_cm, 1)}",
        "distance_unit": "cm",
        "weight": f"{max(1, round(parcel.weight_g))}",
        "mass_unit": "g",
    }


def _messages(items) -> tuple[str, ...]:
    texts = []
    for item in items or []:
        if isinstance(item, dict):
            text = item.get("text") or item.get("message")
            if text:
                texts.append(str(text))
    return tuple(texts)


class ShippoCarrier(CarrierPort):
    name = "shippo"

    def __init__(self, api_token: str, timeout: float = 20.0, base_url: str = SHIPPO_API_URL, session=None):
        self.api = JsonApi(
            provider=self.name,
            base_url=base_url,
            headers={"Authorization": f"ShippoToken {api_token}"},
            timeout=timeout,
            session=session,
        )

    def verify_address(self, address: Address) -> AddressVerification:
        data = self.api.post("/addresses/", {**_address_payload(address), "validate": True}, action="address validation")

        results = data.get("validation_results") or {}
        candidate = Address(
            name=address.name,
            address1=data.get("street1") or "",
            address2=data.get("street2") or None,
            city=data.get("city") or "",
            state=data.get("state") or "",
            postal_code=data.get("zip") or "",
            country=data.get("country") or address.country,
        )
        return AddressVerification(
            is_valid=bool(results.get("is_valid")),
            is_complete=bool(data.get("is_complete")),
            messages=_messages(results.get("messages")),
            candidate=candidate,
        )

    def get_rates(self, to: Address, from_: Address, parcel: Parcel) -> list[Rate]:
        payload = {
            "address_from": _address_payload(from_),
            "address_to": _address_payload(to),
            "parcels": [_parcel_payload(parcel)],
            "async": False,
        }
        data = self.api.post("/shipments/", payload, action="rate request")

        rates = []
        for raw in data.get("rates") or []:
            servicelevel = raw.get("servicelevel") or {}
            rates.append(
                Rate(
                    rate_id=str(raw.get("object_id") or ""),
                    carrier=str(raw.get("provider") or ""),
                    service=str(servicelevel.get("name") or servicelevel.get("token") or ""),
                    amount_cents=to_cents(raw.get("amount")),
                    currency=str(raw.get("currency") or "USD"),
                    estimated_days=raw.get("estimated_days"),
                )
            )
        logger.debug("shippo_rates", count=len(rates))
        return rates

    def purchase_label(self, rate_id: str) -> PurchasedLabel:
        tx = self.api.post("/transactions/", {"rate": rate_id, "async": False}, action="label purchase")

        status = str(tx.get("status") or "").upper()
        if status and status != "SUCCESS":
            reasons = _messages(tx.get("messages"))
            message = reasons[0] if reasons else "Label purchase not successful"
            logger.info("shippo_label_declined", rate_id=rate_id, status=status, message=message)
            raise UpstreamRejected(f"shippo label purchase failed: {message}", self.name)

        rate = tx.get("rate") or {}
        if isinstance(rate, str):
            rate = {}
        servicelevel = rate.get("servicelevel") or {}
        return PurchasedLabel(
            transaction_id=str(tx.get("object_id") or ""),
            label_url=tx.get("label_url"),
            tracking_number=tx.get("tracking_number"),
            tracking_url=tx.get("tracking_url_provider"),
            carrier=str(rate.get("provider") or tx.get("carrier") or ""),
            service=str(servicelevel.get("name") or ""),
            amount_cents=to_cents(rate.get("amount")),
            currency=str(rate.get("currency") or "USD"),
        )

    def void_label(self, transaction_id: str) -> VoidResult:
        data = self.api.post("/refunds/", {"transaction": transaction_id, "async": False}, action="label void")

        status = str(data.get("status") or "QUEUED").upper()
        if status == "ERROR":
            raise UpstreamRejected("shippo label void failed: refund request was declined", self.name)
        return VoidResult(transaction_id=transaction_id, status=status.lower())
