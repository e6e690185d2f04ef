"""Stock ledger: decrement product stock once an order is paid.

The decrement is bookkeeping, not a reservation. It runs after the order has
been committed, tolerates lost updates between concurrent orders, and never
undoes an order when it fails; failures are logged for reconciliation.
"""

import structlog
from protean import current_domain
from protean.exceptions import ObjectNotFoundError
from protean.utils.mixins import handle

from ordering.domain import ordering
from ordering.order.events import OrderPaid
from ordering.order.order import Order
from ordering.product.product import Product

logger = structlog.get_logger(__name__)


class StockLedger:
    """Applies an order's line items to product stock counters."""

    def decrement_for(self, order: Order) -> list[str]:
        """Decrement stock for every line item; return the product ids that failed."""
        repo = current_domain.repository_for(Product)
        failed = []

        for item in order.line_items:
            try:
                product = repo.get(item.product_id)
                shortfall = product.decrement_stock(item.quantity)
                repo.add(product)
            except ObjectNotFoundError:
                logger.warning(
                    "stock_product_missing",
                    order_id=str(order.id),
                    product_id=item.product_id,
                )
                failed.append(item.product_id)
                continue
            except Exception:
                logger.exception(
                    "stock_decrement_error",
                    order_id=str(order.id),
                    product_id=item.product_id,
                )
                failed.append(item.product_id)
                continue

            if shortfall:
                logger.warning(
                    "stock_oversold",
                    order_id=str(order.id),
                    product_id=item.product_id,
                    shortfall=shortfall,
                )

        return failed


@ordering.event_handler(part_of=Order)
class StockEventHandler:
    """Decrements stock when an order's payment settles."""

    @handle(OrderPaid)
    def on_order_paid(self, event: OrderPaid) -> None:
        try:
            order = current_domain.repository_for(Order).get(event.order_id)
            failed = StockLedger().decrement_for(order)
        except Exception:
            logger.critical(
                "partial_failure_stock",
                order_id=event.order_id,
                payment_reference=event.payment_reference,
                exc_info=True,
            )
            return

        if failed:
            logger.critical(
                "partial_failure_stock",
                order_id=event.order_id,
                payment_reference=event.payment_reference,
                product_ids=failed,
            )
        else:
            logger.info("stock_decremented", order_id=event.order_id)
