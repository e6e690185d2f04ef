"""Customer email templates."""


class OrderConfirmationTemplate:
    @staticmethod
    def render(context: dict) -> dict:
        order_id = context.get("order_id", "N/A")
        total = context.get("total", "")
        return {
            "subject": "Order Confirmed",
            "body": (
                f"Thank you for your order #{order_id}.\n\n"
                f"Total charged: {total}\n\n"
                "We'll email you again as soon as it ships."
            ),
        }


class ShippingUpdateTemplate:
    """Sent when a label is bought or tracking is entered by hand."""

    @staticmethod
    def render(context: dict) -> dict:
        order_id = context.get("order_id", "N/A")
        carrier = context.get("carrier") or "the carrier"
        tracking_number = context.get("tracking_number") or "N/A"
        tracking_url = context.get("tracking_url")
        body = (
            f"Great news! Your order #{order_id} has shipped.\n\n"
            f"Carrier: {carrier}\n"
            f"Tracking Number: {tracking_number}\n"
        )
        if tracking_url:
            body += f"Track your package: {tracking_url}\n"
        return {"subject": "Your Order Has Shipped!", "body": body}


class ShippingStatusTemplate:
    _HEADLINES = {
        "in_transit": "is on its way",
        "delivered": "has been delivered",
        "lost": "has been reported lost by the carrier; our team will contact you",
        "returned": "is being returned to us",
    }

    @classmethod
    def render(cls, context: dict) -> dict:
        order_id = context.get("order_id", "N/A")
        status = context.get("status", "")
        headline = cls._HEADLINES.get(status, f"is now {status.replace('_', ' ')}")
        return {
            "subject": f"Order #{order_id} update",
            "body": f"Your order #{order_id} {headline}.",
        }
