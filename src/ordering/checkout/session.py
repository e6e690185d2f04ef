"""Resumable checkout session.

Everything needed to finish a checkout after the buyer has left the site
for a wallet or bank redirect: the idempotency key, the cart and cost
snapshot, the checkout form and the payment intent. A session serializes to
JSON and is reloaded with ``CheckoutSession.resume``.
"""

import re
from enum import Enum
from uuid import uuid4

from protean.exceptions import ValidationError
from pydantic import BaseModel, Field

from ordering.carrier.port import Address
from ordering.checkout.pricing import CartItem, CostBreakdown

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class AddressState(Enum):
    UNCHECKED = "unchecked"
    VALID = "valid"
    NEEDS_CONFIRMATION = "needs_confirmation"
    INVALID = "invalid"
    CONFIRMED = "confirmed"


class CheckoutForm(BaseModel):
    email: str
    phone: str | None = None
    shipping_first_name: str
    shipping_last_name: str
    shipping_address1: str
    shipping_address2: str | None = None
    shipping_city: str
    shipping_state: str
    shipping_postal_code: str
    shipping_country: str = "US"
    billing_same_as_shipping: bool = True
    billing_name: str | None = None
    billing_address1: str | None = None
    billing_address2: str | None = None
    billing_city: str | None = None
    billing_state: str | None = None
    billing_postal_code: str | None = None
    billing_country: str | None = None

    @property
    def recipient_name(self) -> str:
        return f"{self.shipping_first_name} {self.shipping_last_name}".strip()

    def verify(self) -> None:
        errors = {}
        if not _EMAIL_PATTERN.match(self.email or ""):
            errors["email"] = ["Enter a valid email address"]
        for name in ("shipping_first_name", "shipping_last_name", "shipping_address1", "shipping_city", "shipping_postal_code"):
            if not (getattr(self, name) or "").strip():
                errors[name] = ["This field is required"]
        if len((self.shipping_country or "").strip()) != 2:
            errors["shipping_country"] = ["Use a two-letter ISO country code"]
        if not self.billing_same_as_shipping:
            for name in ("billing_address1", "billing_city", "billing_postal_code", "billing_country"):
                if not (getattr(self, name) or "").strip():
                    errors[name] = ["This field is required"]
        if errors:
            raise ValidationError(errors)

    def shipping_address(self) -> Address:
        return Address(
            name=self.recipient_name,
            address1=self.shipping_address1.strip(),
            address2=(self.shipping_address2 or "").strip() or None,
            city=self.shipping_city.strip(),
            state=self.shipping_state.strip(),
            postal_code=self.shipping_postal_code.strip(),
            country=self.shipping_country.strip().upper(),
            phone=self.phone,
            email=self.email,
        )

    def with_shipping_address(self, address: Address) -> "CheckoutForm":
        return self.model_copy(
            update={
                "shipping_address1": address.address1,
                "shipping_address2": address.address2,
                "shipping_city": address.city,
                "shipping_state": address.state,
                "shipping_postal_code": address.postal_code,
                "shipping_country": address.country,
            }
        )

    def shipping_detail(self, confirmed: bool = False) -> dict:
        address = self.shipping_address()
        return {
            "recipient_name": self.recipient_name,
            "email": self.email,
            "phone": self.phone,
            "address1": address.address1,
            "address2": address.address2,
            "city": address.city,
            "state": address.state,
            "postal_code": address.postal_code,
            "country": address.country,
            "address_overridden": confirmed,
        }

    def billing_snapshot(self) -> dict:
        if self.billing_same_as_shipping:
            address = self.shipping_address()
            return {
                "name": self.recipient_name,
                "address1": address.address1,
                "address2": address.address2,
                "city": address.city,
                "state": address.state,
                "postal_code": address.postal_code,
                "country": address.country,
            }
        return {
            "name": self.billing_name or self.recipient_name,
            "address1": self.billing_address1,
            "address2": self.billing_address2,
            "city": self.billing_city,
            "state": self.billing_state,
            "postal_code": self.billing_postal_code,
            "country": (self.billing_country or "").upper(),
        }


class CheckoutSession(BaseModel):
    idempotency_key: str = Field(default_factory=lambda: uuid4().hex)
    cart: list[CartItem]
    costs: CostBreakdown
    form: CheckoutForm
    currency: str = "usd"
    auth_user_id: str | None = None
    is_training: bool = False
    address_state: AddressState = AddressState.UNCHECKED
    payment_intent_id: str | None = None
    client_secret: str | None = None
    order_id: str | None = None

    @property
    def address_cleared(self) -> bool:
        """The buyer may pay: the address validated clean or was explicitly confirmed."""
        return self.address_state in (AddressState.VALID, AddressState.CONFIRMED)

    @property
    def address_confirmed(self) -> bool:
        return self.address_state == AddressState.CONFIRMED

    def dump(self) -> str:
        return self.model_dump_json()

    @classmethod
    def resume(cls, raw: str) -> "CheckoutSession":
        return cls.model_validate_json(raw)
