"""Payment, refund and cancellation commands for placed orders."""

import structlog
from protean import handle
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order
from ordering.order.status import OrderStatus, PaymentStatus

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class ConfirmOrderPayment:
    """The processor reports the intent behind an order as succeeded."""

    payment_reference = String(required=True, max_length=255)


@ordering.command(part_of="Order")
class FailOrderPayment:
    payment_reference = String(required=True, max_length=255)
    reason = String(max_length=500)


@ordering.command(part_of="Order")
class RecordRefund:
    order_id = Identifier(required=True)
    amount_cents = Integer(required=True)


@ordering.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    reason = String(max_length=500)


@ordering.command_handler(part_of=Order)
class OrderPaymentHandler:
    @handle(ConfirmOrderPayment)
    def confirm_payment(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.find_by_payment_reference(command.payment_reference)
        if order is None:
            # Finalize has not run yet; it will read the settled status itself
            logger.info("payment_confirmed_before_order", payment_reference=command.payment_reference)
            return None
        if order.payment_status != PaymentStatus.PENDING.value:
            return str(order.id)

        order.mark_paid()
        repo.add(order)
        logger.info("order_paid", order_id=str(order.id), payment_reference=command.payment_reference)
        return str(order.id)

    @handle(FailOrderPayment)
    def fail_payment(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.find_by_payment_reference(command.payment_reference)
        if order is None or order.order_status != OrderStatus.PENDING_PAYMENT.value:
            return None

        order.cancel(command.reason or "Payment failed")
        repo.add(order)
        logger.info("order_cancelled_payment_failed", order_id=str(order.id))
        return str(order.id)

    @handle(RecordRefund)
    def record_refund(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.record_refund(command.amount_cents)
        repo.add(order)
        return str(order.id)

    @handle(CancelOrder)
    def cancel_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.cancel(command.reason)
        repo.add(order)
        return str(order.id)
