"""
Settings Models
Alert-threshold and system configuration persisted under ``settings/``
"""
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from cloudburst.models.alert import Severity


class MapProvider(str, Enum):
    LEAFLET = "leaflet"
    GOOGLE = "google"
    MAPBOX = "mapbox"


class _SettingsModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)


class PressureDropThreshold(_SettingsModel):
    enabled: bool = True
    value: float = 5
    time_window: int = Field(30, alias="timeWindow")
    severity: Severity = Severity.CRITICAL


class HumidityThreshold(_SettingsModel):
    enabled: bool = True
    threshold: float = 90
    severity: Severity = Severity.WARNING


class TemperatureDropThreshold(_SettingsModel):
    enabled: bool = False
    value: float = 5
    time_window: int = Field(30, alias="timeWindow")
    severity: Severity = Severity.WARNING


class RainfallThreshold(_SettingsModel):
    enabled: bool = True
    amount: float = 50
    time_window: int = Field(60, alias="timeWindow")
    severity: Severity = Severity.CRITICAL


class AlertThresholds(_SettingsModel):
    """
    Alert trigger configuration.

    Stored for operators; no component evaluates these against readings.
    """

    pressure_drop: PressureDropThreshold = Field(
        default_factory=PressureDropThreshold, alias="pressureDrop"
    )
    humidity: HumidityThreshold = Field(default_factory=HumidityThreshold)
    temperature_drop: TemperatureDropThreshold = Field(
        default_factory=TemperatureDropThreshold, alias="temperatureDrop"
    )
    rainfall: RainfallThreshold = Field(default_factory=RainfallThreshold)

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class SystemSettings(_SettingsModel):
    update_interval: int = Field(10, alias="updateInterval")  # seconds
    data_retention: int = Field(7, alias="dataRetention")  # days
    map_provider: MapProvider = Field(MapProvider.LEAFLET, alias="mapProvider")
    map_api_key: str = Field("", alias="mapApiKey")

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class SettingsSnapshot(_SettingsModel):
    thresholds: AlertThresholds = Field(default_factory=AlertThresholds)
    system: SystemSettings = Field(default_factory=SystemSettings)
    last_saved: Optional[int] = Field(None, alias="lastSaved")
