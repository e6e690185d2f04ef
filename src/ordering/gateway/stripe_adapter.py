"""Stripe payment gateway adapter.

Uses the stripe-python SDK to create and read PaymentIntents and to verify
webhook signatures. Stripe exceptions are translated at this boundary:
connection problems, rate limiting and 5xx responses become
``UpstreamUnavailable``; card declines and invalid requests become
``UpstreamRejected``.
"""

import json

import stripe
import structlog

from ordering.errors import UpstreamRejected, UpstreamUnavailable, WebhookSignatureError
from ordering.gateway.port import PaymentGateway, PaymentIntent, Refund, WebhookEvent, check_intent_request

logger = structlog.get_logger(__name__)


def _to_intent(obj: stripe.PaymentIntent) -> PaymentIntent:
    data = obj.to_dict()
    return PaymentIntent(
        intent_id=data["id"],
        status=data["status"],
        amount_cents=int(data["amount"]),
        currency=data["currency"],
        client_secret=data.get("client_secret"),
        metadata=dict(data.get("metadata") or {}),
    )


class StripeGateway(PaymentGateway):
    """Production Stripe gateway adapter."""

    name = "stripe"

    def __init__(self, api_key: str, webhook_secret: str | None = None, timeout: float = 15.0) -> None:
        self.api_key = api_key
        self.webhook_secret = webhook_secret
        stripe.default_http_client = stripe.RequestsClient(timeout=timeout)

    def _translate(self, exc: stripe.StripeError, action: str):
        message = exc.user_message or str(exc) or f"{action} failed"
        if isinstance(exc, (stripe.APIConnectionError, stripe.RateLimitError, stripe.APIError)):
            logger.warning("stripe_unavailable", action=action, error=message, request_id=exc.request_id)
            return UpstreamUnavailable(f"Payment processor unavailable: {message}", self.name)
        logger.info("stripe_rejected", action=action, error=message, code=exc.code)
        return UpstreamRejected(message, self.name, code=exc.code)

    def create_intent(
        self,
        amount_cents: int,
        currency: str,
        metadata: dict,
        idempotency_key: str,
    ) -> PaymentIntent:
        check_intent_request(amount_cents, currency, idempotency_key)
        try:
            intent = stripe.PaymentIntent.create(
                amount=amount_cents,
                currency=currency.lower(),
                metadata=metadata or {},
                automatic_payment_methods={"enabled": True},
                idempotency_key=idempotency_key,
                api_key=self.api_key,
            )
        except stripe.StripeError as exc:
            raise self._translate(exc, "create intent") from exc
        return _to_intent(intent)

    def retrieve_intent(self, intent_id: str) -> PaymentIntent:
        try:
            intent = stripe.PaymentIntent.retrieve(intent_id, api_key=self.api_key)
        except stripe.StripeError as exc:
            raise self._translate(exc, "retrieve intent") from exc
        return _to_intent(intent)

    def create_refund(self, intent_id: str, amount_cents: int, idempotency_key: str) -> Refund:
        try:
            refund = stripe.Refund.create(
                payment_intent=intent_id,
                amount=amount_cents,
                idempotency_key=idempotency_key,
                api_key=self.api_key,
            )
        except stripe.StripeError as exc:
            raise self._translate(exc, "create refund") from exc
        data = refund.to_dict()
        return Refund(
            refund_id=data["id"],
            intent_id=intent_id,
            amount_cents=int(data["amount"]),
            status=data["status"],
        )

    def parse_webhook(self, payload: bytes, signature: str) -> WebhookEvent:
        if not self.webhook_secret:
            raise WebhookSignatureError("Webhook secret is not configured")
        try:
            stripe.WebhookSignature.verify_header(payload, signature, self.webhook_secret)
        except stripe.SignatureVerificationError as exc:
            raise WebhookSignatureError("Invalid webhook signature") from exc

        # Parsed as plain JSON once verified; handlers work on dicts, not SDK objects
        try:
            event = json.loads(payload)
            return WebhookEvent(event_id=event["id"], type=event["type"], payload=event["data"]["object"])
        except (ValueError, KeyError, TypeError) as exc:
            raise WebhookSignatureError("Malformed webhook payload") from exc
