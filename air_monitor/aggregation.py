# file: air_monitor/aggregation.py

"""
Statistics and station ranking over stored measurements.

Both store implementations fetch the raw series for the requested window and
hand it to these functions, so the aggregate semantics are defined once:

- averages, minima and maxima only consider non-null samples; a pollutant
  with no samples is reported as None, a genuine 0.0 average stays 0.0
- the level histogram counts only non-null overall index levels
- ranking orders stations by (PM10 average, PM2.5 average), missing values
  last, and assigns dense ranks; stations with neither average are left out
"""

from collections import Counter
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional

from air_monitor.models import (
    AirQualityLevel,
    Measurement,
    PollutantSummary,
    Ranking,
    Station,
    Statistics,
)


def _values(measurements: Iterable[Measurement], getter: Callable[[Measurement], Optional[float]]) -> List[float]:
    return [value for value in map(getter, measurements) if value is not None]


def average(values: List[float]) -> Optional[float]:
    return sum(values) / len(values) if values else None


def summarize(values: List[float]) -> Optional[PollutantSummary]:
    if not values:
        return None
    return PollutantSummary(avg=sum(values) / len(values), min=min(values), max=max(values))


def level_histogram(measurements: Iterable[Measurement]) -> Dict[AirQualityLevel, int]:
    counts = Counter(m.overall_index_level for m in measurements if m.overall_index_level is not None)
    return {level: counts.get(level, 0) for level in AirQualityLevel}


def calculate_statistics(station_id: int, start: datetime, end: datetime,
                         measurements: List[Measurement]) -> Optional[Statistics]:
    """Aggregate one station's measurements; None when the window is empty."""
    if not measurements:
        return None

    return Statistics(
        station_id=station_id,
        station_name=measurements[0].station_name,
        period_start=start,
        period_end=end,
        measurement_count=len(measurements),
        pm10=summarize(_values(measurements, lambda m: m.pm10_value)),
        pm25=summarize(_values(measurements, lambda m: m.pm25_value)),
        so2_avg=average(_values(measurements, lambda m: m.so2_value)),
        no2_avg=average(_values(measurements, lambda m: m.no2_value)),
        co_avg=average(_values(measurements, lambda m: m.co_value)),
        o3_avg=average(_values(measurements, lambda m: m.o3_value)),
        level_counts=level_histogram(measurements),
    )


class _StationWindow:
    """Running aggregate of one station inside the ranking window."""

    def __init__(self, station_id: int, station_name: Optional[str]) -> None:
        self.station_id = station_id
        self.station_name = station_name
        self.pm10: List[float] = []
        self.pm25: List[float] = []
        self.dominant_level: Optional[AirQualityLevel] = None
        self.count = 0

    def add(self, measurement: Measurement) -> None:
        self.count += 1
        if measurement.pm10_value is not None:
            self.pm10.append(measurement.pm10_value)
        if measurement.pm25_value is not None:
            self.pm25.append(measurement.pm25_value)
        # first level seen in the window, not a mode
        if self.dominant_level is None:
            self.dominant_level = measurement.overall_index_level

    @property
    def pm10_avg(self) -> Optional[float]:
        return average(self.pm10)

    @property
    def pm25_avg(self) -> Optional[float]:
        return average(self.pm25)

    @property
    def score(self) -> Optional[float]:
        if self.pm10_avg is not None and self.pm25_avg is not None:
            return (self.pm10_avg + self.pm25_avg) / 2.0
        if self.pm10_avg is not None:
            return self.pm10_avg
        return self.pm25_avg

    def sort_key(self):
        return (self.pm10_avg is None, self.pm10_avg or 0.0, self.pm25_avg is None, self.pm25_avg or 0.0)


def rank_stations(measurements: Iterable[Measurement], limit: int) -> List[Ranking]:
    """Rank stations from cleanest to dirtiest. Expects measurements oldest first."""
    windows: Dict[int, _StationWindow] = {}
    for measurement in measurements:
        window = windows.get(measurement.station_id)
        if window is None:
            window = windows[measurement.station_id] = _StationWindow(
                measurement.station_id, measurement.station_name
            )
        window.add(measurement)

    scored = sorted((w for w in windows.values() if w.score is not None), key=_StationWindow.sort_key)

    rankings = []
    rank = 0
    previous_key = None
    for window in scored:
        key = window.sort_key()
        if key != previous_key:
            rank += 1
            previous_key = key
        rankings.append(Ranking(
            rank=rank,
            # geographic fields are not re-fetched for rankings
            station=Station(id=window.station_id, name=window.station_name, city="", address="",
                            latitude=0.0, longitude=0.0),
            average_score=window.score,
            dominant_quality_level=window.dominant_level,
            measurement_count=window.count,
        ))
    return rankings[:max(limit, 0)]
