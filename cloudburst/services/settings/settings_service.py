"""
Settings Service
Loads, validates and saves alert thresholds and system settings under ``settings/``
"""
import logging
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from cloudburst.core.error_handling import ValidationError
from cloudburst.core.timeutils import current_millis
from cloudburst.models.settings import (
    AlertThresholds,
    MapProvider,
    SettingsSnapshot,
    SystemSettings,
)
from cloudburst.store.base import RealtimeStore

logger = logging.getLogger(__name__)

SETTINGS_PATH = "settings"

# Reducing retention below this is allowed but worth a warning
RETENTION_WARNING_DAYS = 7

_KEYED_PROVIDERS = (MapProvider.GOOGLE.value, MapProvider.MAPBOX.value)


def _in_range(value: float, low: float, high: float, low_inclusive: bool = True) -> bool:
    above_low = value >= low if low_inclusive else value > low
    return above_low and value <= high


def validate_thresholds(thresholds: AlertThresholds) -> List[str]:
    """Range errors for enabled thresholds; disabled ones are not checked"""
    errors = []

    pressure = thresholds.pressure_drop
    if pressure.enabled:
        if not _in_range(pressure.value, 0, 50, low_inclusive=False):
            errors.append("Pressure drop must be between 0 and 50 hPa")
        if not _in_range(pressure.time_window, 1, 120):
            errors.append("Pressure drop time window must be between 1 and 120 minutes")

    humidity = thresholds.humidity
    if humidity.enabled and not _in_range(humidity.threshold, 0, 100, low_inclusive=False):
        errors.append("Humidity threshold must be between 0 and 100%")

    temperature = thresholds.temperature_drop
    if temperature.enabled:
        if not _in_range(temperature.value, 0, 50, low_inclusive=False):
            errors.append("Temperature drop must be between 0 and 50°C")
        if not _in_range(temperature.time_window, 1, 120):
            errors.append("Temperature drop time window must be between 1 and 120 minutes")

    rainfall = thresholds.rainfall
    if rainfall.enabled:
        if not _in_range(rainfall.amount, 0, 500, low_inclusive=False):
            errors.append("Rainfall amount must be between 0 and 500 mm")
        if not _in_range(rainfall.time_window, 1, 120):
            errors.append("Rainfall time window must be between 1 and 120 minutes")

    return errors


def validate_system(system: SystemSettings) -> List[str]:
    errors = []

    if not _in_range(system.update_interval, 5, 60):
        errors.append("Update interval must be between 5 and 60 seconds")

    if not _in_range(system.data_retention, 1, 90):
        errors.append("Data retention must be between 1 and 90 days")

    if system.map_provider in _KEYED_PROVIDERS and not system.map_api_key.strip():
        errors.append(f"API Key is required for {system.map_provider}")

    return errors


class SettingsService:
    """
    Whole-object settings persistence (last write wins).

    Nothing reads the thresholds to raise alerts; they are kept for operators.
    """

    def __init__(self, store: RealtimeStore):
        self.store = store

    def load(self) -> SettingsSnapshot:
        """Stored settings layered over the defaults, one signal at a time"""
        stored = self.store.get(SETTINGS_PATH) or {}

        thresholds = AlertThresholds().to_document()
        thresholds.update(stored.get("thresholds") or {})

        system = SystemSettings().to_document()
        system.update(stored.get("system") or {})

        try:
            return SettingsSnapshot(
                thresholds=AlertThresholds.model_validate(thresholds),
                system=SystemSettings.model_validate(system),
                last_saved=stored.get("lastSaved"),
            )
        except PydanticValidationError as e:
            logger.error(f"Stored settings are malformed, using defaults: {e}")
            return SettingsSnapshot(last_saved=stored.get("lastSaved"))

    def save_thresholds(
        self, thresholds: Union[AlertThresholds, Dict[str, Any]]
    ) -> SettingsSnapshot:
        """
        Validate and store the complete threshold configuration.

        Raises:
            ValidationError: First range error (all errors in ``details``)
        """
        thresholds = self._parse(AlertThresholds, thresholds)
        errors = validate_thresholds(thresholds)
        if errors:
            raise ValidationError(errors[0], details={"errors": errors})

        self.store.set(f"{SETTINGS_PATH}/thresholds", thresholds.to_document())
        self._touch()
        logger.info("Alert thresholds saved")
        return self.load()

    def save_system(self, system: Union[SystemSettings, Dict[str, Any]]) -> SettingsSnapshot:
        """
        Validate and store the system settings.

        Raises:
            ValidationError: First range error (all errors in ``details``)
        """
        system = self._parse(SystemSettings, system)
        errors = validate_system(system)
        if errors:
            raise ValidationError(errors[0], details={"errors": errors})

        if system.data_retention < RETENTION_WARNING_DAYS:
            logger.warning(
                f"Data retention reduced to {system.data_retention} day(s); "
                f"older history will be lost on the next cleanup"
            )

        self.store.set(f"{SETTINGS_PATH}/system", system.to_document())
        self._touch()
        logger.info("System settings saved")
        return self.load()

    def last_saved(self) -> Optional[int]:
        return self.store.get(f"{SETTINGS_PATH}/lastSaved")

    def _touch(self) -> None:
        self.store.set(f"{SETTINGS_PATH}/lastSaved", current_millis())

    @staticmethod
    def _parse(model, value):
        if isinstance(value, model):
            return value
        try:
            return model.model_validate(value or {})
        except PydanticValidationError as e:
            first = e.errors()[0]
            location = ".".join(str(part) for part in first["loc"])
            raise ValidationError(
                f"Invalid setting {location}: {first['msg']}",
                details={"errors": [str(error["msg"]) for error in e.errors()]}
            ) from None
