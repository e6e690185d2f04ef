"""Payment processor webhook events applied to orders."""

import structlog
from protean import current_domain

from ordering.errors import StateConflict
from ordering.gateway.port import WebhookEvent
from ordering.order.order import Order
from ordering.order.payment import ConfirmOrderPayment, FailOrderPayment, RecordRefund
from ordering.webhook.receipt import already_processed, mark_processed

logger = structlog.get_logger(__name__)

SOURCE = "payments"


def _apply_refund(payment_reference: str, refunded_total_cents: int):
    order = current_domain.repository_for(Order).find_by_payment_reference(payment_reference)
    if order is None:
        return None
    delta = refunded_total_cents - (order.refunded_cents or 0)
    if delta <= 0:
        return str(order.id)
    return current_domain.process(RecordRefund(order_id=str(order.id), amount_cents=delta), asynchronous=False)


def handle_payment_event(event: WebhookEvent) -> str:
    """Apply a verified event once; return "processed", "duplicate" or "ignored"."""
    if already_processed(SOURCE, event.event_id):
        logger.info("webhook_duplicate", source=SOURCE, event_id=event.event_id)
        return "duplicate"

    obj = event.payload
    outcome = "processed"
    try:
        if event.type == "payment_intent.succeeded":
            current_domain.process(ConfirmOrderPayment(payment_reference=obj["id"]), asynchronous=False)
        elif event.type == "payment_intent.payment_failed":
            error = obj.get("last_payment_error") or {}
            current_domain.process(
                FailOrderPayment(payment_reference=obj["id"], reason=error.get("message") or "Payment failed"),
                asynchronous=False,
            )
        elif event.type == "charge.refunded":
            if obj.get("payment_intent"):
                _apply_refund(obj["payment_intent"], int(obj.get("amount_refunded") or 0))
        else:
            outcome = "ignored"
    except StateConflict as exc:
        # The order has moved past what the event describes; redelivery cannot change that
        logger.warning(
            "payment_webhook_state_conflict", event_id=event.event_id, type=event.type, error=exc.message
        )
        outcome = "ignored"

    mark_processed(SOURCE, event.event_id, event.type)
    logger.info("webhook_handled", source=SOURCE, event_id=event.event_id, type=event.type, outcome=outcome)
    return outcome
