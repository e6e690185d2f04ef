"""Process-wide settings for the ordering service.

Settings are read from the environment once, at startup, and handed to the
payment gateway and carrier adapters through their constructors. Domain
logic never consults ``os.environ`` directly.
"""

import json
import os
from dataclasses import dataclass, field

CARRIER_ADAPTERS = ("primary", "secondary", "mock")
PAYMENT_GATEWAYS = ("stripe", "fake")


class ConfigurationError(Exception):
    """Raised at startup when required settings are missing or contradictory."""


@dataclass(frozen=True)
class PackagePreset:
    """A box size staff can ship in. Dimensions are centimetres, weight grams."""

    id: str
    name: str
    length_cm: float = 10.0
    width_cm: float = 10.0
    height_cm: float = 5.0
    weight_g: float = 0.0
    is_default: bool = False


@dataclass(frozen=True)
class OriginAddress:
    """Ship-from address printed on every label."""

    name: str
    address1: str
    city: str
    state: str
    postal_code: str
    country: str = "US"
    address2: str | None = None
    phone: str | None = None
    email: str | None = None


DEFAULT_PACKAGES = (
    PackagePreset(
        id="small-box",
        name="Small box",
        length_cm=20.0,
        width_cm=15.0,
        height_cm=10.0,
        weight_g=120.0,
        is_default=True,
    ),
    PackagePreset(
        id="padded-mailer",
        name="Padded mailer",
        length_cm=30.0,
        width_cm=23.0,
        height_cm=3.0,
        weight_g=40.0,
    ),
)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw in (None, ""):
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc


def _parse_packages(raw: str | None) -> tuple[PackagePreset, ...]:
    if not raw:
        return DEFAULT_PACKAGES
    try:
        items = json.loads(raw)
        return tuple(PackagePreset(**item) for item in items)
    except (ValueError, TypeError) as exc:
        raise ConfigurationError(f"SHIPPING_PACKAGES is not a valid preset list: {exc}") from exc


@dataclass(frozen=True)
class Settings:
    environment: str = "development"
    currency: str = "usd"

    payment_gateway: str = "stripe"
    stripe_secret_key: str | None = None
    stripe_webhook_secret: str | None = None
    stripe_timeout_seconds: float = 15.0

    carrier_adapter: str = "primary"
    carrier_timeout_seconds: float = 20.0
    shippo_api_token: str | None = None
    shippo_webhook_secret: str | None = None
    shipengine_api_key: str | None = None
    shipengine_carrier_ids: tuple[str, ...] = ()

    email_adapter: str = "fake"
    brevo_api_key: str | None = None
    email_sender: str = "orders@example.com"
    email_timeout_seconds: float = 10.0

    origin: OriginAddress | None = None
    packages: tuple[PackagePreset, ...] = field(default=DEFAULT_PACKAGES)

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @classmethod
    def from_env(cls) -> "Settings":
        origin = None
        if os.getenv("SHIP_FROM_ADDRESS1"):
            origin = OriginAddress(
                name=os.getenv("SHIP_FROM_NAME", ""),
                address1=os.environ["SHIP_FROM_ADDRESS1"],
                address2=os.getenv("SHIP_FROM_ADDRESS2") or None,
                city=os.getenv("SHIP_FROM_CITY", ""),
                state=os.getenv("SHIP_FROM_STATE", ""),
                postal_code=os.getenv("SHIP_FROM_POSTAL_CODE", ""),
                country=os.getenv("SHIP_FROM_COUNTRY", "US"),
                phone=os.getenv("SHIP_FROM_PHONE") or None,
                email=os.getenv("SHIP_FROM_EMAIL") or None,
            )

        carrier_ids = tuple(
            part.strip() for part in os.getenv("SHIPENGINE_CARRIER_IDS", "").split(",") if part.strip()
        )

        return cls(
            environment=(os.getenv("PROTEAN_ENV") or "development").lower(),
            currency=os.getenv("CURRENCY", "usd").lower(),
            payment_gateway=os.getenv("PAYMENT_GATEWAY", "stripe").lower(),
            stripe_secret_key=os.getenv("STRIPE_SECRET_KEY") or None,
            stripe_webhook_secret=os.getenv("STRIPE_WEBHOOK_SECRET") or None,
            stripe_timeout_seconds=_env_float("STRIPE_TIMEOUT_SECONDS", 15.0),
            carrier_adapter=os.getenv("CARRIER_ADAPTER", "primary").lower(),
            carrier_timeout_seconds=_env_float("CARRIER_TIMEOUT_SECONDS", 20.0),
            shippo_api_token=os.getenv("SHIPPO_API_TOKEN") or None,
            shippo_webhook_secret=os.getenv("SHIPPO_WEBHOOK_SECRET") or None,
            shipengine_api_key=os.getenv("SHIPENGINE_API_KEY") or None,
            shipengine_carrier_ids=carrier_ids,
            email_adapter=os.getenv("EMAIL_ADAPTER", "fake").lower(),
            brevo_api_key=os.getenv("BREVO_API_KEY") or None,
            email_sender=os.getenv("EMAIL_SENDER", "orders@example.com"),
            email_timeout_seconds=_env_float("EMAIL_TIMEOUT_SECONDS", 10.0),
            origin=origin,
            packages=_parse_packages(os.getenv("SHIPPING_PACKAGES")),
        )

    def validate(self) -> "Settings":
        """Fail fast on missing credentials for the adapters that are switched on."""
        problems = []

        if self.carrier_adapter not in CARRIER_ADAPTERS:
            problems.append(f"CARRIER_ADAPTER must be one of {', '.join(CARRIER_ADAPTERS)}")
        if self.carrier_adapter == "mock" and self.is_production:
            problems.append("The mock carrier cannot be enabled in production")
        if self.carrier_adapter == "primary" and not self.shippo_api_token:
            problems.append("SHIPPO_API_TOKEN is required for the primary carrier")
        if self.carrier_adapter == "secondary" and not self.shipengine_api_key:
            problems.append("SHIPENGINE_API_KEY is required for the secondary carrier")

        if self.payment_gateway not in PAYMENT_GATEWAYS:
            problems.append(f"PAYMENT_GATEWAY must be one of {', '.join(PAYMENT_GATEWAYS)}")
        if self.payment_gateway == "fake" and self.is_production:
            problems.append("The fake payment gateway cannot be enabled in production")
        if self.payment_gateway == "stripe" and not self.stripe_secret_key:
            problems.append("STRIPE_SECRET_KEY is required for the stripe gateway")

        if self.is_production:
            if not self.stripe_webhook_secret:
                problems.append("STRIPE_WEBHOOK_SECRET is required")
            if not self.shippo_webhook_secret:
                problems.append("SHIPPO_WEBHOOK_SECRET is required")
            if self.origin is None:
                problems.append("SHIP_FROM_* origin address is required")
            if self.email_adapter == "fake":
                problems.append("EMAIL_ADAPTER=fake cannot be used in production")

        if self.email_adapter == "brevo" and not self.brevo_api_key:
            problems.append("BREVO_API_KEY is required for the brevo email adapter")

        if not self.packages:
            problems.append("At least one package preset is required")
        elif sum(1 for p in self.packages if p.is_default) > 1:
            problems.append("Only one package preset may be the default")

        if problems:
            raise ConfigurationError("; ".join(problems))
        return self

    def package(self, package_id: str | None = None) -> PackagePreset:
        """Return the requested preset, or the default one when no id is given."""
        if package_id:
            for preset in self.packages:
                if preset.id == package_id:
                    return preset
            raise KeyError(package_id)
        for preset in self.packages:
            if preset.is_default:
                return preset
        return self.packages[0]


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def set_settings(settings: Settings) -> None:
    global _settings
    _settings = settings


def reset_settings() -> None:
    global _settings
    _settings = None
