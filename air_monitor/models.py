# file: air_monitor/models.py

import unicodedata
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

import pytz
from pydantic import BaseModel, ConfigDict, Field, computed_field


class AirQualityLevel(str, Enum):
    """Air quality category published by GIOŚ, ordered from best to worst."""

    VERY_GOOD = "VERY_GOOD"
    GOOD = "GOOD"
    MODERATE = "MODERATE"
    SUFFICIENT = "SUFFICIENT"
    BAD = "BAD"
    VERY_BAD = "VERY_BAD"

    @property
    def severity(self) -> int:
        """0 for the best category, 5 for the worst."""
        return _SEVERITY[self]

    @classmethod
    def from_label(cls, label: str | None) -> Optional["AirQualityLevel"]:
        """Parse a display label ("Bardzo dobry", "Very good", ...). Unknown labels give None."""
        if label is None:
            return None
        return _LEVELS_BY_LABEL.get(_normalize_label(label))

    def is_good(self) -> bool:
        return self in (AirQualityLevel.VERY_GOOD, AirQualityLevel.GOOD)

    def is_better_than(self, other: "AirQualityLevel") -> bool:
        return self.severity < other.severity

    def is_worse_than(self, other: "AirQualityLevel") -> bool:
        return self.severity > other.severity


def _normalize_label(label: str) -> str:
    return unicodedata.normalize("NFC", label).strip().casefold()


_SEVERITY = {level: severity for severity, level in enumerate(AirQualityLevel)}

# Polish names come from the GIOŚ API, English ones from its translated endpoints
_LEVEL_LABELS = {
    AirQualityLevel.VERY_GOOD: ("Bardzo dobry", "Very good"),
    AirQualityLevel.GOOD: ("Dobry", "Good"),
    AirQualityLevel.MODERATE: ("Umiarkowany", "Moderate"),
    AirQualityLevel.SUFFICIENT: ("Dostateczny", "Sufficient"),
    AirQualityLevel.BAD: ("Zły", "Bad"),
    AirQualityLevel.VERY_BAD: ("Bardzo zły", "Very bad"),
}

_LEVELS_BY_LABEL = {
    _normalize_label(label): level
    for level, labels in _LEVEL_LABELS.items()
    for label in labels
}


class Station(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int = Field(..., description="GIOŚ station identifier")
    name: str | None = Field(None, description="Display name of the station")
    city: str = Field("", description="City the station belongs to")
    address: str | None = Field(None, description="Street address")
    latitude: float = Field(0.0, description="WGS84 latitude in degrees")
    longitude: float = Field(0.0, description="WGS84 longitude in degrees")


class AirQualityIndex(BaseModel):
    """Live index for a station. Level names are the raw upstream labels."""

    model_config = ConfigDict(frozen=True)

    station_id: int
    calculation_date: datetime
    overall_level: str | None = None
    so2_level: str | None = None
    no2_level: str | None = None
    pm10_level: str | None = None


class Reading(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: datetime
    value: float | None = None


class SensorMeasurement(BaseModel):
    model_config = ConfigDict(frozen=True)

    sensor_id: int
    param_code: str = Field(..., description="Pollutant code, e.g. PM10, PM2.5, NO2")
    param_name: str = Field(..., description="Pollutant display name")
    readings: List[Reading] = Field(default_factory=list)


class Measurement(BaseModel):
    """Canonical snapshot persisted once per station and sync pass."""

    model_config = ConfigDict(frozen=True)

    id: str | None = Field(None, description="Opaque identifier assigned by the store")
    station_id: int
    station_name: str | None = None
    measurement_date: datetime

    overall_index_level: AirQualityLevel | None = None
    so2_index_level: AirQualityLevel | None = None
    no2_index_level: AirQualityLevel | None = None
    pm10_index_level: AirQualityLevel | None = None
    pm25_index_level: AirQualityLevel | None = None

    pm10_value: float | None = Field(None, description="PM10 concentration (µg/m³)")
    pm25_value: float | None = Field(None, description="PM2.5 concentration (µg/m³)")
    so2_value: float | None = Field(None, description="SO2 concentration (µg/m³)")
    no2_value: float | None = Field(None, description="NO2 concentration (µg/m³)")
    co_value: float | None = Field(None, description="CO concentration (µg/m³)")
    o3_value: float | None = Field(None, description="O3 concentration (µg/m³)")

    created_at: datetime = Field(default_factory=lambda: datetime.now(pytz.utc))

    @classmethod
    def create(cls, station_id: int, station_name: str | None, index: AirQualityIndex,
               sensor_values: Dict[str, float]) -> "Measurement":
        """Build a measurement from a live index and the latest value of each pollutant code."""
        return cls(
            station_id=station_id,
            station_name=station_name,
            measurement_date=index.calculation_date,
            overall_index_level=AirQualityLevel.from_label(index.overall_level),
            so2_index_level=AirQualityLevel.from_label(index.so2_level),
            no2_index_level=AirQualityLevel.from_label(index.no2_level),
            pm10_index_level=AirQualityLevel.from_label(index.pm10_level),
            pm10_value=sensor_values.get("PM10"),
            pm25_value=sensor_values.get("PM2.5"),
            so2_value=sensor_values.get("SO2"),
            no2_value=sensor_values.get("NO2"),
            co_value=sensor_values.get("CO"),
            o3_value=sensor_values.get("O3"),
        )

    def has_good_air_quality(self) -> bool:
        return self.overall_index_level is not None and self.overall_index_level.is_good()


class PollutantSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    avg: float
    min: float
    max: float


class Statistics(BaseModel):
    model_config = ConfigDict(frozen=True)

    station_id: int
    station_name: str | None = None
    period_start: datetime
    period_end: datetime
    measurement_count: int

    pm10: PollutantSummary | None = None
    pm25: PollutantSummary | None = None
    so2_avg: float | None = None
    no2_avg: float | None = None
    co_avg: float | None = None
    o3_avg: float | None = None

    level_counts: Dict[AirQualityLevel, int] = Field(
        default_factory=lambda: {level: 0 for level in AirQualityLevel}
    )

    @computed_field
    @property
    def most_common_level(self) -> AirQualityLevel | None:
        """Most frequent overall level; equal counts go to the better level."""
        best = None
        for level in AirQualityLevel:
            count = self.level_counts.get(level, 0)
            if count > 0 and (best is None or count > self.level_counts[best]):
                best = level
        return best


class Ranking(BaseModel):
    model_config = ConfigDict(frozen=True)

    rank: int = Field(..., ge=1)
    station: Station
    average_score: float | None = None
    dominant_quality_level: AirQualityLevel | None = None
    measurement_count: int = 0

    def has_good_air_quality(self) -> bool:
        return self.dominant_quality_level is not None and self.dominant_quality_level.is_good()


class Distance(BaseModel):
    model_config = ConfigDict(frozen=True)

    station: Station
    distance_km: float = Field(..., ge=0, description="Great-circle distance in kilometers")
