"""Email adapter registry.

``EMAIL_ADAPTER=fake`` records messages in memory (development and tests);
``EMAIL_ADAPTER=brevo`` sends through the Brevo transactional API.
"""

from ordering.config import ConfigurationError, Settings, get_settings
from ordering.notification.email_port import EmailPort

_mailer: EmailPort | None = None


def build_mailer(settings: Settings) -> EmailPort:
    if settings.email_adapter == "brevo":
        if not settings.brevo_api_key:
            raise ConfigurationError("BREVO_API_KEY is not configured")
        from ordering.notification.brevo_email import BrevoEmailAdapter

        return BrevoEmailAdapter(settings.brevo_api_key, settings.email_sender, timeout=settings.email_timeout_seconds)
    if settings.email_adapter == "fake":
        from ordering.notification.fake_email import FakeEmailAdapter

        return FakeEmailAdapter()
    raise ConfigurationError(f"Unknown email adapter: {settings.email_adapter}")


def get_mailer() -> EmailPort:
    global _mailer
    if _mailer is None:
        _mailer = build_mailer(get_settings())
    return _mailer


def set_mailer(mailer: EmailPort) -> None:
    global _mailer
    _mailer = mailer


def reset_mailer() -> None:
    global _mailer
    _mailer = None
