"""Payment gateway port (abstract interface).

Defines the contract every payment processor adapter implements, so that the
checkout flow runs unchanged against FakeGateway in tests and StripeGateway
in production.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from protean.exceptions import ValidationError


@dataclass(frozen=True)
class PaymentIntent:
    """A processor-side payment intent as the checkout flow sees it."""

    intent_id: str
    status: str
    amount_cents: int
    currency: str
    client_secret: str | None = None
    metadata: dict = field(default_factory=dict)


@dataclass(frozen=True)
class WebhookEvent:
    """A verified processor webhook event."""

    event_id: str
    type: str
    payload: dict = field(default_factory=dict)


@dataclass(frozen=True)
class Refund:
    """A refund accepted by the processor against a captured intent."""

    refund_id: str
    intent_id: str
    amount_cents: int
    status: str


def check_intent_request(amount_cents, currency: str, idempotency_key: str) -> None:
    errors = {}
    if not isinstance(amount_cents, int) or isinstance(amount_cents, bool) or amount_cents <= 0:
        errors["amount_cents"] = ["Amount must be a positive whole number of cents"]
    if not currency or len(currency) != 3:
        errors["currency"] = ["Currency must be a three-letter ISO code"]
    if not idempotency_key:
        errors["idempotency_key"] = ["An idempotency key is required"]
    if errors:
        raise ValidationError(errors)


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    name: str = "gateway"

    @abstractmethod
    def create_intent(
        self,
        amount_cents: int,
        currency: str,
        metadata: dict,
        idempotency_key: str,
    ) -> PaymentIntent:
        """Create a payment intent; the same key always yields the same intent."""
        ...

    @abstractmethod
    def retrieve_intent(self, intent_id: str) -> PaymentIntent:
        """Fetch the current state of an intent from the processor."""
        ...

    @abstractmethod
    def create_refund(self, intent_id: str, amount_cents: int, idempotency_key: str) -> Refund:
        """Return ``amount_cents`` of a captured intent to the buyer.

        Retrying with the same key never refunds twice.
        """
        ...

    @abstractmethod
    def parse_webhook(self, payload: bytes, signature: str) -> WebhookEvent:
        """Verify a webhook signature and return the event it carries.

        Raises ``WebhookSignatureError`` when verification fails.
        """
        ...

    def get_status(self, intent_id: str) -> str:
        return self.retrieve_intent(intent_id).status
