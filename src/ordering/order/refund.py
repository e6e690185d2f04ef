"""Refunds initiated from the ordering side.

The refund is checked against the order, sent to the payment processor, and
only then recorded. A refund the processor accepted but the order could not
record is a partial failure: money has moved, so it is logged at critical
level with the processor's refund id.
"""

import structlog
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from ordering.errors import PartialFailure, StateConflict
from ordering.gateway import get_gateway
from ordering.gateway.port import PaymentGateway
from ordering.order.order import Order
from ordering.order.payment import RecordRefund
from ordering.webhook.receipt import already_processed, mark_processed

logger = structlog.get_logger(__name__)

SOURCE = "refunds"


def default_refund_key(order: Order, amount_cents: int) -> str:
    return f"refund:{order.id}:{order.refunded_cents or 0}:{amount_cents}"


class OrderRefunder:
    def __init__(self, gateway: PaymentGateway | None = None):
        self.gateway = gateway or get_gateway()

    def refund(self, order_id: str, amount_cents: int, idempotency_key: str | None = None) -> str:
        """Refund part or all of an order through the processor; return the order id.

        Retrying with the same key reaches the same processor refund, and a
        refund id that was already recorded is not applied twice.
        """
        order = current_domain.repository_for(Order).get(order_id)
        order.check_refund(amount_cents)
        key = idempotency_key or default_refund_key(order, amount_cents)

        refund = self.gateway.create_refund(order.payment_reference, amount_cents, key)
        logger.info(
            "refund_accepted",
            order_id=str(order.id),
            refund_id=refund.refund_id,
            amount_cents=refund.amount_cents,
        )
        if already_processed(SOURCE, refund.refund_id):
            return str(order.id)

        try:
            current_domain.process(
                RecordRefund(order_id=str(order.id), amount_cents=refund.amount_cents),
                asynchronous=False,
            )
        except (ValidationError, StateConflict) as exc:
            logger.critical(
                "partial_failure_refund_unrecorded",
                order_id=str(order.id),
                refund_id=refund.refund_id,
                amount_cents=refund.amount_cents,
                error=str(exc),
            )
            raise PartialFailure(
                "The refund was sent to the payment processor but could not be recorded",
                order_id=str(order.id),
                refund_id=refund.refund_id,
            ) from exc
        mark_processed(SOURCE, refund.refund_id, "refund.created")
        return str(order.id)
