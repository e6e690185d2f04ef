"""Carrier adapter factory.

The adapter is chosen by ``Settings.carrier_adapter``:
- ``primary``: Shippo
- ``secondary``: ShipEngine
- ``mock``: deterministic MockCarrier, never in production
"""

from ordering.carrier.port import CarrierPort
from ordering.config import ConfigurationError, Settings, get_settings

_carrier_instance: CarrierPort | None = None


def build_carrier(settings: Settings) -> CarrierPort:
    """Construct the adapter the settings select, refusing unusable combinations."""
    adapter = settings.carrier_adapter
    if adapter == "primary":
        if not settings.shippo_api_token:
            raise ConfigurationError("SHIPPO_API_TOKEN is not configured")
        from ordering.carrier.shippo_adapter import ShippoCarrier

        return ShippoCarrier(settings.shippo_api_token, timeout=settings.carrier_timeout_seconds)
    if adapter == "secondary":
        if not settings.shipengine_api_key:
            raise ConfigurationError("SHIPENGINE_API_KEY is not configured")
        from ordering.carrier.shipengine_adapter import ShipEngineCarrier

        return ShipEngineCarrier(
            settings.shipengine_api_key,
            carrier_ids=settings.shipengine_carrier_ids,
            timeout=settings.carrier_timeout_seconds,
        )
    if adapter == "mock":
        if settings.is_production:
            raise ConfigurationError("The mock carrier cannot be used in production")
        from ordering.carrier.mock_adapter import MockCarrier

        return MockCarrier()
    raise ConfigurationError(f"Unknown carrier adapter: {adapter}")


def get_carrier() -> CarrierPort:
    """Return the configured carrier adapter (singleton)."""
    global _carrier_instance
    if _carrier_instance is None:
        _carrier_instance = build_carrier(get_settings())
    return _carrier_instance


def set_carrier(carrier: CarrierPort) -> None:
    global _carrier_instance
    _carrier_instance = carrier


def reset_carrier() -> None:
    """Reset the carrier singleton (useful for testing)."""
    global _carrier_instance
    _carrier_instance = None
