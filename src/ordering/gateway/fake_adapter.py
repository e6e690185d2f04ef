"""Fake payment gateway: an in-memory processor for development and tests.

Intents are keyed by idempotency key, so re-submitting the same checkout
returns the original intent just like the real processor. Webhooks are
signed with HMAC-SHA256 over the raw body using the configured secret.
"""

import hashlib
import hmac
import json
from uuid import uuid4

from ordering.errors import UpstreamRejected, UpstreamUnavailable, WebhookSignatureError
from ordering.gateway.port import PaymentGateway, PaymentIntent, Refund, WebhookEvent, check_intent_request


class FakeGateway(PaymentGateway):
    """Fake gateway whose intents succeed unless told otherwise."""

    name = "fake"

    def __init__(self, webhook_secret: str = "whsec_test"):
        self.webhook_secret = webhook_secret
        self.should_succeed = True
        self.unavailable = False
        self.failure_reason = "Your card was declined."
        self.intents: dict[str, PaymentIntent] = {}
        self.create_calls: list[dict] = []
        self._by_key: dict[str, str] = {}
        self.refunds: list[Refund] = []
        self._refunds_by_key: dict[str, Refund] = {}

    def configure(self, should_succeed: bool = True, failure_reason: str = "Your card was declined.", unavailable: bool = False):
        """Configure the fake gateway behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.unavailable = unavailable

    def create_intent(self, amount_cents, currency, metadata, idempotency_key) -> PaymentIntent:
        check_intent_request(amount_cents, currency, idempotency_key)
        self.create_calls.append({"amount_cents": amount_cents, "idempotency_key": idempotency_key})

        if self.unavailable:
            raise UpstreamUnavailable("Payment processor unavailable: timed out", self.name)
        if not self.should_succeed:
            raise UpstreamRejected(self.failure_reason, self.name)

        if idempotency_key in self._by_key:
            return self.intents[self._by_key[idempotency_key]]

        intent_id = f"pi_fake_{uuid4().hex[:16]}"
        intent = PaymentIntent(
            intent_id=intent_id,
            status="requires_payment_method",
            amount_cents=amount_cents,
            currency=currency.lower(),
            client_secret=f"{intent_id}_secret_{uuid4().hex[:8]}",
            metadata=dict(metadata or {}),
        )
        self.intents[intent_id] = intent
        self._by_key[idempotency_key] = intent_id
        return intent

    def retrieve_intent(self, intent_id: str) -> PaymentIntent:
        if self.unavailable:
            raise UpstreamUnavailable("Payment processor unavailable: timed out", self.name)
        try:
            return self.intents[intent_id]
        except KeyError:
            raise UpstreamRejected(f"No such payment_intent: '{intent_id}'", self.name) from None

    def set_status(self, intent_id: str, status: str) -> PaymentIntent:
        """Move an intent to ``status``, as the buyer's confirmation would."""
        current = self.intents[intent_id]
        updated = PaymentIntent(
            intent_id=current.intent_id,
            status=status,
            amount_cents=current.amount_cents,
            currency=current.currency,
            client_secret=current.client_secret,
            metadata=current.metadata,
        )
        self.intents[intent_id] = updated
        return updated

    def create_refund(self, intent_id: str, amount_cents: int, idempotency_key: str) -> Refund:
        if self.unavailable:
            raise UpstreamUnavailable("Payment processor unavailable: timed out", self.name)
        if idempotency_key in self._refunds_by_key:
            return self._refunds_by_key[idempotency_key]
        if intent_id not in self.intents:
            raise UpstreamRejected(f"No such payment_intent: '{intent_id}'", self.name)
        if not self.should_succeed:
            raise UpstreamRejected(self.failure_reason, self.name)

        refund = Refund(
            refund_id=f"re_fake_{uuid4().hex[:16]}",
            intent_id=intent_id,
            amount_cents=amount_cents,
            status="succeeded",
        )
        self._refunds_by_key[idempotency_key] = refund
        self.refunds.append(refund)
        return refund

    def sign(self, payload: bytes) -> str:
        return hmac.new(self.webhook_secret.encode(), payload, hashlib.sha256).hexdigest()

    def parse_webhook(self, payload: bytes, signature: str) -> WebhookEvent:
        if not signature or not hmac.compare_digest(self.sign(payload), signature):
            raise WebhookSignatureError("Invalid webhook signature")
        try:
            event = json.loads(payload)
            return WebhookEvent(event_id=event["id"], type=event["type"], payload=event["data"]["object"])
        except (ValueError, KeyError, TypeError) as exc:
            raise WebhookSignatureError("Malformed webhook payload") from exc
