"""Carrier port: the one interface every shipping provider is reached through.

Callers hand over addresses in the shapes below and receive rates, labels
and address verdicts in the same shapes, whatever the provider. Unit
conversion and payload shaping happen inside each adapter. Adapters report
failures only as ``UpstreamUnavailable`` or ``UpstreamRejected``.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class Address:
    address1: str
    city: str
    state: str
    postal_code: str
    country: str
    name: str | None = None
    address2: str | None = None
    phone: str | None = None
    email: str | None = None


@dataclass(frozen=True)
class Parcel:
    """A package to ship. Weight in grams, dimensions in centimetres."""

    weight_g: float
    length_cm: float
    width_cm: float
    height_cm: float


@dataclass(frozen=True)
class Rate:
    rate_id: str
    carrier: str
    service: str
    amount_cents: int
    currency: str
    estimated_days: int | None = None


@dataclass(frozen=True)
class PurchasedLabel:
    transaction_id: str
    label_url: str | None
    tracking_number: str | None
    tracking_url: str | None
    carrier: str
    service: str
    amount_cents: int
    currency: str


@dataclass(frozen=True)
class VoidResult:
    transaction_id: str
    status: str


@dataclass(frozen=True)
class AddressVerification:
    """The provider's verdict on an address and its own best candidate for it."""

    is_valid: bool
    is_complete: bool
    messages: tuple[str, ...] = field(default_factory=tuple)
    candidate: Address | None = None


class CarrierPort(ABC):
    """Abstract interface for carrier adapters."""

    name: str = "carrier"

    @abstractmethod
    def get_rates(self, to: Address, from_: Address, parcel: Parcel) -> list[Rate]:
        """Quote every service the provider offers for this parcel and address pair."""
        ...

    @abstractmethod
    def purchase_label(self, rate_id: str) -> PurchasedLabel:
        """Buy the label for a previously quoted rate."""
        ...

    @abstractmethod
    def void_label(self, transaction_id: str) -> VoidResult:
        """Cancel a purchased label so it is not billed."""
        ...

    @abstractmethod
    def verify_address(self, address: Address) -> AddressVerification:
        """Ask the provider to validate and normalize a postal address."""
        ...
