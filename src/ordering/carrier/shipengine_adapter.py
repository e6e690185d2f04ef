"""ShipEngine adapter: the secondary carrier aggregator.

ShipEngine wants weights in ounces and needs the connected carrier ids on
every rate request. Carrier ids come from configuration, or are listed from
the account when none are configured.
"""

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
from ordering.carrier.shippo_adapter import to_cents
from ordering.errors import UpstreamRejected

logger = structlog.get_logger(__name__)

SHIPENGINE_API_URL = "https://api.shipengine.com"

GRAMS_PER_OUNCE = 28.3495


def grams_to_ounces(weight_g: float) -> int:
    """Whole ounces for a weight in grams; never less than one."""
    return max(1, round(weight_g / GRAMS_PER_OUNCE))


def _address_payload(address: Address) -> dict:
    payload = {
        "name": address.name or None,
        "phone": address.phone or None,
        "address_line1": address.address1,
        "address_line2": address.address2 or None,
        "city_locality": address.city,
        "state_province": address.state,
        "postal_code": address.postal_code,
        "country_code": address.country,
    }
    return {key: value for key, value in payload.items() if value is not None}


class ShipEngineCarrier(CarrierPort):
    name = "shipengine"

    def __init__(
        self,
        api_key: str,
        carrier_ids: tuple[str, ...] = (),
        timeout: float = 20.0,
        base_url: str = SHIPENGINE_API_URL,
        session=None,
    ):
        self.carrier_ids = tuple(carrier_ids)
        self.api = JsonApi(
            provider=self.name,
            base_url=base_url,
            headers={"API-Key": api_key},
            timeout=timeout,
            session=session,
        )

    def _carrier_ids(self) -> list[str]:
        if self.carrier_ids:
            return list(self.carrier_ids)

        data = self.api.get("/v1/carriers", action="carrier listing")
        carriers = data.get("carriers", []) if isinstance(data, dict) else data
        ids = [c["carrier_id"] for c in carriers or [] if c.get("carrier_id")]
        if not ids:
            raise UpstreamRejected(
                "No ShipEngine carriers connected. Set SHIPENGINE_CARRIER_IDS or connect a carrier.",
                self.name,
            )
        return ids

    def verify_address(self, address: Address) -> AddressVerification:
        data = self.api.post("/v1/addresses/validate", [_address_payload(address)], action="address validation")
        result = data[0] if isinstance(data, list) and data else {}

        status = result.get("status")
        matched = result.get("matched_address") or {}
        candidate = None
        if matched:
            candidate = Address(
                name=address.name,
                address1=matched.get("address_line1") or "",
                address2=matched.get("address_line2") or None,
                city=matched.get("city_locality") or "",
                state=matched.get("state_province") or "",
                postal_code=matched.get("postal_code") or "",
                country=matched.get("country_code") or address.country,
            )
        messages = tuple(m["message"] for m in result.get("messages") or [] if m.get("message"))
        return AddressVerification(
            is_valid=status in ("verified", "warning"),
            is_complete=status == "verified",
            messages=messages,
            candidate=candidate,
        )

    def get_rates(self, to: Address, from_: Address, parcel: Parcel) -> list[Rate]:
        payload = {
            "shipment": {
                "ship_to": _address_payload(to),
                "ship_from": _address_payload(from_),
                "packages": [
                    {
                        "weight": {"value": grams_to_ounces(parcel.weight_g), "unit": "ounce"},
                        "dimensions": {
                            "unit": "centimeter",
                            "length": parcel.length_cm,
                            "width": parcel.width_cm,
                            "height": parcel.height_cm,
                        },
                    }
                ],
            },
            "rate_options": {"carrier_ids": self._carrier_ids()},
        }
        data = self.api.post("/v1/rates", payload, action="rate request")

        rates = []
        for raw in (data.get("rate_response") or {}).get("rates") or []:
            amount = raw.get("shipping_amount") or {}
            days = raw.get("delivery_days")
            rates.append(
                Rate(
                    rate_id=str(raw.get("rate_id") or ""),
                    carrier=str(raw.get("carrier_friendly_name") or raw.get("carrier_id") or ""),
                    service=str(raw.get("service_type") or raw.get("service_code") or ""),
                    amount_cents=to_cents(amount.get("amount", 0)),
                    currency=str(amount.get("currency") or "usd").upper(),
                    estimated_days=days if isinstance(days, int) else None,
                )
            )
        logger.debug("shipengine_rates", count=len(rates))
        return rates

    def purchase_label(self, rate_id: str) -> PurchasedLabel:
        data = self.api.post(f"/v1/labels/rates/{rate_id}", {"label_format": "pdf"}, action="label purchase")

        download = data.get("label_download") or {}
        cost = data.get("shipment_cost") or {}
        return PurchasedLabel(
            transaction_id=str(data.get("label_id") or ""),
            label_url=download.get("href") or download.get("pdf"),
            tracking_number=data.get("tracking_number"),
            tracking_url=data.get("tracking_url"),
            carrier=str(data.get("carrier_code") or data.get("carrier_id") or ""),
            service=str(data.get("service_code") or ""),
            amount_cents=to_cents(cost.get("amount", 0)),
            currency=str(cost.get("currency") or "usd").upper(),
        )

    def void_label(self, transaction_id: str) -> VoidResult:
        data = self.api.put(f"/v1/labels/{transaction_id}/void", action="label void")

        if not data.get("approved"):
            raise UpstreamRejected(
                f"shipengine label void failed: {data.get('message') or 'void was not approved'}",
                self.name,
            )
        return VoidResult(transaction_id=transaction_id, status="voided")
