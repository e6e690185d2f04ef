from ordering.domain import ordering
from ordering.order.order import Order


@ordering.repository(part_of=Order)
class OrderRepository:
    def find_by_payment_reference(self, payment_reference: str) -> Order | None:
        """The order written for a payment intent, if finalization already ran."""
        return self._dao.query.filter(payment_reference=payment_reference).all().first
