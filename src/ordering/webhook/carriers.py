"""Carrier tracking webhook events applied to shipments and orders."""

import hmac

import structlog
from protean import current_domain

from ordering.errors import StateConflict, WebhookSignatureError
from ordering.shipment.tracking import ApplyTrackingUpdate
from ordering.webhook.receipt import already_processed, mark_processed

logger = structlog.get_logger(__name__)

SOURCE = "carrier"


def verify_shared_secret(expected: str | None, provided: str | None) -> None:
    if not expected or not provided or not hmac.compare_digest(expected, provided):
        raise WebhookSignatureError("Invalid carrier webhook secret")


def handle_tracking_event(payload: dict) -> str:
    """Apply a ``track_updated`` payload; return "processed", "duplicate" or "ignored"."""
    data = payload.get("data") or {}
    status = (data.get("tracking_status") or {}).get("status")
    event_id = payload.get("event_id") or payload.get("id")
    if not event_id:
        event_id = f"{data.get('tracking_number')}:{status}:{(data.get('tracking_status') or {}).get('status_date')}"

    if already_processed(SOURCE, event_id):
        return "duplicate"
    if payload.get("event") != "track_updated" or not status:
        return "ignored"

    try:
        new_status = current_domain.process(
            ApplyTrackingUpdate(
                tracking_status=status,
                transaction_id=data.get("transaction"),
                tracking_number=data.get("tracking_number"),
            ),
            asynchronous=False,
        )
    except StateConflict as exc:
        logger.warning("tracking_update_out_of_order", event_id=event_id, status=status, error=exc.message)
        new_status = None

    mark_processed(SOURCE, event_id, payload.get("event"))
    return "processed" if new_status else "ignored"
