"""Tests for settings loading, validation and adapter selection."""

import pytest
from ordering.carrier import build_carrier
from ordering.carrier.mock_adapter import MockCarrier
from ordering.carrier.shipengine_adapter import ShipEngineCarrier
from ordering.carrier.shippo_adapter import ShippoCarrier
from ordering.config import ConfigurationError, OriginAddress, Settings
from ordering.gateway import build_gateway
from ordering.gateway.fake_adapter import FakeGateway
from ordering.notification import build_mailer
from ordering.notification.brevo_email import BrevoEmailAdapter


def _production(**overrides):
    data = {
        "environment": "production",
        "payment_gateway": "stripe",
        "stripe_secret_key": "sk_live_x",
        "stripe_webhook_secret": "whsec_x",
        "carrier_adapter": "primary",
        "shippo_api_token": "shippo_live_x",
        "shippo_webhook_secret": "hook",
        "email_adapter": "brevo",
        "brevo_api_key": "xkeysib",
        "origin": OriginAddress(name="Warehouse", address1="1 Dock St", city="Portland", state="OR", postal_code="97209"),
    }
    data.update(overrides)
    return Settings(**data)


class TestFromEnv:
    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("PROTEAN_ENV", "staging")
        monkeypatch.setenv("CARRIER_ADAPTER", "secondary")
        monkeypatch.setenv("SHIPENGINE_API_KEY", "se_key")
        monkeypatch.setenv("SHIPENGINE_CARRIER_IDS", "se-1, se-2")
        monkeypatch.setenv("CARRIER_TIMEOUT_SECONDS", "7.5")
        monkeypatch.setenv("SHIP_FROM_NAME", "Warehouse")
        monkeypatch.setenv("SHIP_FROM_ADDRESS1", "1 Dock St")
        monkeypatch.setenv("SHIP_FROM_CITY", "Portland")
        monkeypatch.setenv("SHIP_FROM_STATE", "OR")
        monkeypatch.setenv("SHIP_FROM_POSTAL_CODE", "97209")

        settings = Settings.from_env()

        assert settings.environment == "staging"
        assert settings.carrier_adapter == "secondary"
        assert settings.shipengine_carrier_ids == ("se-1", "se-2")
        assert settings.carrier_timeout_seconds == 7.5
        assert settings.origin.city == "Portland"

    def test_package_presets_from_json(self, monkeypatch):
        monkeypatch.setenv("SHIPPING_PACKAGES", '[{"id": "tube", "name": "Poster tube", "weight_g": 90, "is_default": true}]')

        settings = Settings.from_env()

        assert settings.package().id == "tube"
        assert settings.package().length_cm == 10.0

    def test_malformed_presets(self, monkeypatch):
        monkeypatch.setenv("SHIPPING_PACKAGES", "not json")
        with pytest.raises(ConfigurationError):
            Settings.from_env()

    def test_non_numeric_timeout(self, monkeypatch):
        monkeypatch.setenv("STRIPE_TIMEOUT_SECONDS", "soon")
        with pytest.raises(ConfigurationError):
            Settings.from_env()


class TestValidate:
    def test_complete_production_settings(self):
        assert _production().validate().is_production

    def test_mock_carrier_refused_in_production(self):
        with pytest.raises(ConfigurationError) as exc:
            _production(carrier_adapter="mock").validate()
        assert "mock carrier" in str(exc.value)

    def test_fake_gateway_refused_in_production(self):
        with pytest.raises(ConfigurationError):
            _production(payment_gateway="fake").validate()

    def test_missing_credentials_are_listed(self):
        with pytest.raises(ConfigurationError) as exc:
            _production(stripe_secret_key=None, shippo_api_token=None).validate()
        assert "STRIPE_SECRET_KEY" in str(exc.value)
        assert "SHIPPO_API_TOKEN" in str(exc.value)

    def test_unknown_package(self):
        with pytest.raises(KeyError):
            Settings().package("crate")


class TestAdapterSelection:
    def test_primary_carrier(self):
        assert isinstance(build_carrier(Settings(shippo_api_token="t")), ShippoCarrier)

    def test_secondary_carrier(self):
        assert isinstance(build_carrier(Settings(carrier_adapter="secondary", shipengine_api_key="k")), ShipEngineCarrier)

    def test_missing_credential_never_falls_back_to_mock(self):
        with pytest.raises(ConfigurationError):
            build_carrier(Settings(carrier_adapter="primary"))

    def test_mock_only_outside_production(self):
        assert isinstance(build_carrier(Settings(carrier_adapter="mock")), MockCarrier)
        with pytest.raises(ConfigurationError):
            build_carrier(Settings(environment="production", carrier_adapter="mock"))

    def test_fake_gateway(self):
        assert isinstance(build_gateway(Settings(payment_gateway="fake")), FakeGateway)

    def test_stripe_gateway_needs_key(self):
        with pytest.raises(ConfigurationError):
            build_gateway(Settings(payment_gateway="stripe"))

    def test_brevo_mailer(self):
        assert isinstance(build_mailer(Settings(email_adapter="brevo", brevo_api_key="k")), BrevoEmailAdapter)
