"""Failure categories for the checkout-to-fulfillment pipeline.

Malformed input is reported with ``protean.exceptions.ValidationError`` and
unknown ids with ``protean.exceptions.ObjectNotFoundError``, as everywhere
else in the domain. The classes here cover the remaining outcomes: talking
to payment and carrier services, status-transition violations, and money
captured without every downstream write succeeding.
"""


class OrderingError(Exception):
    """Base class for pipeline failures that carry a human-readable message."""

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        return self.message


class UpstreamError(OrderingError):
    """A payment processor or carrier call did not produce a usable answer."""

    def __init__(self, message: str, provider: str, **context):
        super().__init__(message, provider=provider, **context)
        self.provider = provider


class UpstreamUnavailable(UpstreamError):
    """Network failure, timeout or 5xx. The caller may offer a retry."""


class UpstreamRejected(UpstreamError):
    """The provider understood the request and declined it. Never retried automatically."""


class StateConflict(OrderingError):
    """The requested operation is not legal from the current status."""


class PartialFailure(OrderingError):
    """Money was captured but a downstream write did not complete."""


class PaymentCapturedOrderFailed(PartialFailure):
    """The payment succeeded but no order record could be written for it."""

    def __init__(self, message: str, payment_reference: str, **context):
        super().__init__(message, payment_reference=payment_reference, **context)
        self.payment_reference = payment_reference


class WebhookSignatureError(OrderingError):
    """An inbound webhook failed signature or shared-secret verification."""
