"""Mock carrier: deterministic rates and labels without carrier credentials.

Enabled only by ``CARRIER_ADAPTER=mock`` outside production. Rates follow a
fixed formula on the parcel weight; labels get sequential ``MOCK`` tracking
numbers. Failure modes are switchable for testing.
"""

import structlog

from ordering.carrier.port import (
    Address,
    AddressVerification,
    CarrierPort,
    Parcel,
    PurchasedLabel,
    Rate,
    VoidResult,
)
from ordering.carrier.shipengine_adapter import grams_to_ounces
from ordering.errors import UpstreamRejected, UpstreamUnavailable

logger = structlog.get_logger(__name__)

# (service code, service name, surcharge in cents, transit days)
_SERVICES = (
    ("usps_first_class_mail", "USPS First Class", 325, 5),
    ("usps_priority_mail", "USPS Priority Mail", 795, 3),
)


class MockCarrier(CarrierPort):
    name = "mock"

    def __init__(self, carrier_name: str = "USPS"):
        self.carrier_name = carrier_name
        self.should_succeed = True
        self.unavailable = False
        self.failure_reason = "Carrier declined the request"
        self.multi_unit_streets: set[str] = set()
        self.purchased: list[PurchasedLabel] = []
        self.voided: list[str] = []
        self._rates: dict[str, Rate] = {}
        self._sequence = 0

    def configure(self, should_succeed: bool = True, failure_reason: str = "Carrier declined the request", unavailable: bool = False):
        """Configure the mock carrier behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.unavailable = unavailable

    def mark_multi_unit(self, street: str) -> None:
        """Treat ``street`` as a building whose addresses need a unit number."""
        self.multi_unit_streets.add(street.strip().lower())

    def _check(self, action: str) -> None:
        if self.unavailable:
            raise UpstreamUnavailable(f"mock {action} timed out", self.name)
        if not self.should_succeed:
            raise UpstreamRejected(f"mock {action} failed: {self.failure_reason}", self.name)

    def verify_address(self, address: Address) -> AddressVerification:
        self._check("address validation")

        missing = [
            label
            for label, value in (
                ("street", address.address1),
                ("city", address.city),
                ("state", address.state),
                ("postal code", address.postal_code),
            )
            if not (value or "").strip()
        ]
        if missing or len(address.country or "") != 2:
            messages = tuple(f"Missing {label}" for label in missing) or ("Unsupported country",)
            return AddressVerification(is_valid=False, is_complete=False, messages=messages)

        candidate = Address(
            name=address.name,
            address1=address.address1.strip().upper(),
            address2=(address.address2 or "").strip().upper() or None,
            city=address.city.strip().upper(),
            state=address.state.strip().upper(),
            postal_code=address.postal_code.strip(),
            country=address.country.upper(),
        )

        needs_unit = address.address1.strip().lower() in self.multi_unit_streets and not address.address2
        if needs_unit:
            zip5 = candidate.postal_code[:5]
            candidate = Address(
                name=candidate.name,
                address1=candidate.address1,
                address2=None,
                city=candidate.city,
                state=candidate.state,
                postal_code=f"{zip5}-0001",
                country=candidate.country,
            )
            return AddressVerification(
                is_valid=True,
                is_complete=False,
                messages=("Address is missing a secondary unit (apartment, suite or unit number)",),
                candidate=candidate,
            )

        return AddressVerification(is_valid=True, is_complete=True, candidate=candidate)

    def get_rates(self, to: Address, from_: Address, parcel: Parcel) -> list[Rate]:
        self._check("rate request")

        ounces = grams_to_ounces(parcel.weight_g)
        base_cents = max(3, round(ounces / 8)) * 100
        rates = []
        for code, service, surcharge, days in _SERVICES:
            rate = Rate(
                rate_id=f"mock_{code}_{ounces}oz_{to.postal_code}",
                carrier=self.carrier_name,
                service=service,
                amount_cents=base_cents + surcharge,
                currency="USD",
                estimated_days=days,
            )
            self._rates[rate.rate_id] = rate
            rates.append(rate)
        return rates

    def purchase_label(self, rate_id: str) -> PurchasedLabel:
        self._check("label purchase")

        rate = self._rates.get(rate_id)
        if rate is None:
            raise UpstreamRejected(f"mock label purchase failed: rate {rate_id} is unknown or expired", self.name)

        self._sequence += 1
        tracking = f"MOCK{self._sequence:010d}"
        label = PurchasedLabel(
            transaction_id=f"mock_tx_{self._sequence:06d}",
            label_url=f"https://labels.mock-carrier.test/{tracking}.pdf",
            tracking_number=tracking,
            tracking_url=f"https://tracking.mock-carrier.test/{tracking}",
            carrier=rate.carrier,
            service=rate.service,
            amount_cents=rate.amount_cents,
            currency=rate.currency,
        )
        self.purchased.append(label)
        logger.debug("mock_label_purchased", rate_id=rate_id, tracking_number=tracking)
        return label

    def void_label(self, transaction_id: str) -> VoidResult:
        self._check("label void")

        if not any(label.transaction_id == transaction_id for label in self.purchased):
            raise UpstreamRejected(f"mock label void failed: unknown transaction {transaction_id}", self.name)
        self.voided.append(transaction_id)
        return VoidResult(transaction_id=transaction_id, status="voided")
