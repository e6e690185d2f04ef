"""Payment gateway factory.

Provides get_gateway() / set_gateway() to swap implementations:
- StripeGateway when ``PAYMENT_GATEWAY=stripe`` (the default)
- FakeGateway when ``PAYMENT_GATEWAY=fake``, for development and testing
"""

from ordering.config import ConfigurationError, Settings, get_settings
from ordering.gateway.port import PaymentGateway

_current_gateway: PaymentGateway | None = None


def build_gateway(settings: Settings) -> PaymentGateway:
    if settings.payment_gateway == "fake":
        if settings.is_production:
            raise ConfigurationError("The fake payment gateway cannot be used in production")
        from ordering.gateway.fake_adapter import FakeGateway

        return FakeGateway(webhook_secret=settings.stripe_webhook_secret or "whsec_test")

    if not settings.stripe_secret_key:
        raise ConfigurationError("STRIPE_SECRET_KEY is not configured")
    from ordering.gateway.stripe_adapter import StripeGateway

    return StripeGateway(
        settings.stripe_secret_key,
        webhook_secret=settings.stripe_webhook_secret,
        timeout=settings.stripe_timeout_seconds,
    )


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway."""
    global _current_gateway
    if _current_gateway is None:
        _current_gateway = build_gateway(get_settings())
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Reset to default gateway."""
    global _current_gateway
    _current_gateway = None
