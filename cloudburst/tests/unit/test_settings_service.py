"""
Unit tests for threshold and system settings persistence
"""
import pytest

from cloudburst.core.error_handling import ValidationError
from cloudburst.models.settings import AlertThresholds, SystemSettings
from cloudburst.services.settings.settings_service import (
    SettingsService,
    validate_system,
    validate_thresholds,
)
from cloudburst.store import InMemoryStore


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def settings(store):
    return SettingsService(store)


def thresholds_document(**signals):
    document = AlertThresholds().to_document()
    for name, values in signals.items():
        document[name].update(values)
    return document


class TestDefaults:

    @pytest.mark.unit
    def test_empty_store_loads_defaults(self, settings):
        snapshot = settings.load()

        assert snapshot.thresholds.pressure_drop.value == 5
        assert snapshot.thresholds.pressure_drop.time_window == 30
        assert snapshot.thresholds.humidity.threshold == 90
        assert snapshot.thresholds.temperature_drop.enabled is False
        assert snapshot.thresholds.rainfall.amount == 50
        assert snapshot.system.update_interval == 10
        assert snapshot.system.data_retention == 7
        assert snapshot.system.map_provider == "leaflet"
        assert snapshot.last_saved is None

    @pytest.mark.unit
    def test_document_uses_camel_case(self):
        document = AlertThresholds().to_document()
        assert set(document) == {"pressureDrop", "humidity", "temperatureDrop", "rainfall"}
        assert document["rainfall"]["timeWindow"] == 60

    @pytest.mark.unit
    def test_partial_stored_signal_keeps_other_defaults(self, settings, store):
        store.set("settings/thresholds/humidity", {"enabled": False, "threshold": 80, "severity": "warning"})

        snapshot = settings.load()
        assert snapshot.thresholds.humidity.threshold == 80
        assert snapshot.thresholds.pressure_drop.value == 5

    @pytest.mark.unit
    def test_malformed_store_falls_back(self, settings, store):
        store.set("settings/system", {"updateInterval": "often"})
        assert settings.load().system.update_interval == 10


class TestThresholdValidation:

    @pytest.mark.unit
    @pytest.mark.parametrize("signals,message", [
        ({"pressureDrop": {"value": 0}}, "Pressure drop must be between 0 and 50 hPa"),
        ({"pressureDrop": {"value": 51}}, "Pressure drop must be between 0 and 50 hPa"),
        ({"pressureDrop": {"timeWindow": 121}}, "Pressure drop time window must be between 1 and 120 minutes"),
        ({"humidity": {"threshold": 0}}, "Humidity threshold must be between 0 and 100%"),
        ({"rainfall": {"amount": 501}}, "Rainfall amount must be between 0 and 500 mm"),
        ({"temperatureDrop": {"enabled": True, "value": 60}}, "Temperature drop must be between 0 and 50°C"),
    ])
    def test_out_of_range(self, signals, message):
        thresholds = AlertThresholds.model_validate(thresholds_document(**signals))
        assert message in validate_thresholds(thresholds)

    @pytest.mark.unit
    def test_disabled_signal_not_checked(self):
        thresholds = AlertThresholds.model_validate(
            thresholds_document(pressureDrop={"enabled": False, "value": 999})
        )
        assert validate_thresholds(thresholds) == []

    @pytest.mark.unit
    def test_boundaries_accepted(self):
        thresholds = AlertThresholds.model_validate(thresholds_document(
            pressureDrop={"value": 50, "timeWindow": 1},
            humidity={"threshold": 100},
            rainfall={"amount": 500, "timeWindow": 120},
        ))
        assert validate_thresholds(thresholds) == []


class TestSystemValidation:

    @pytest.mark.unit
    @pytest.mark.parametrize("values,message", [
        ({"updateInterval": 4}, "Update interval must be between 5 and 60 seconds"),
        ({"updateInterval": 61}, "Update interval must be between 5 and 60 seconds"),
        ({"dataRetention": 0}, "Data retention must be between 1 and 90 days"),
        ({"dataRetention": 91}, "Data retention must be between 1 and 90 days"),
        ({"mapProvider": "google"}, "API Key is required for google"),
        ({"mapProvider": "mapbox", "mapApiKey": "   "}, "API Key is required for mapbox"),
    ])
    def test_invalid(self, values, message):
        assert message in validate_system(SystemSettings.model_validate(values))

    @pytest.mark.unit
    def test_keyed_provider_with_key(self):
        system = SystemSettings.model_validate({"mapProvider": "google", "mapApiKey": "abc"})
        assert validate_system(system) == []


class TestSave:

    @pytest.mark.unit
    def test_save_thresholds(self, settings, store):
        snapshot = settings.save_thresholds(thresholds_document(rainfall={"amount": 75}))

        assert snapshot.thresholds.rainfall.amount == 75
        assert store.get("settings/thresholds/rainfall/amount") == 75
        assert snapshot.last_saved is not None
        assert settings.last_saved() == snapshot.last_saved

    @pytest.mark.unit
    def test_invalid_thresholds_write_nothing(self, settings, store):
        with pytest.raises(ValidationError) as exc_info:
            settings.save_thresholds(thresholds_document(humidity={"threshold": 150}))

        assert exc_info.value.message == "Humidity threshold must be between 0 and 100%"
        assert store.get("settings") is None

    @pytest.mark.unit
    def test_unparseable_value(self, settings, store):
        with pytest.raises(ValidationError) as exc_info:
            settings.save_system({"updateInterval": "often"})

        assert exc_info.value.message.startswith("Invalid setting updateInterval")
        assert store.get("settings") is None

    @pytest.mark.unit
    def test_save_system(self, settings):
        snapshot = settings.save_system({"updateInterval": 30, "dataRetention": 30})

        assert snapshot.system.update_interval == 30
        assert snapshot.system.data_retention == 30

    @pytest.mark.unit
    def test_short_retention_warns(self, settings, caplog):
        with caplog.at_level("WARNING"):
            settings.save_system({"dataRetention": 3})
        assert "Data retention reduced to 3 day(s)" in caplog.text

    @pytest.mark.unit
    def test_last_write_wins(self, settings):
        settings.save_system({"updateInterval": 20})
        snapshot = settings.save_system({"dataRetention": 14})

        assert snapshot.system.update_interval == 10
        assert snapshot.system.data_retention == 14
