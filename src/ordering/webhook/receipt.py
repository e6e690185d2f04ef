"""Webhook receipts: remember processed provider event ids."""

from datetime import UTC, datetime

from protean import current_domain
from protean.fields import DateTime, String

from ordering.domain import ordering


@ordering.aggregate
class WebhookReceipt:
    source = String(required=True, max_length=50)
    event_id = String(required=True, max_length=255, unique=True)
    event_type = String(max_length=100)
    received_at = DateTime()


def already_processed(source: str, event_id: str) -> bool:
    repo = current_domain.repository_for(WebhookReceipt)
    return repo._dao.query.filter(source=source, event_id=event_id).all().first is not None


def mark_processed(source: str, event_id: str, event_type: str | None = None) -> None:
    current_domain.repository_for(WebhookReceipt).add(
        WebhookReceipt(source=source, event_id=event_id, event_type=event_type, received_at=datetime.now(UTC))
    )
