# file: air_monitor/utils.py

import math
from datetime import date, datetime, time
from typing import Tuple

import pytz

from air_monitor.errors import InvalidDateRangeError

EARTH_RADIUS_KM = 6371.0


def get_current_time() -> datetime:
    """Get current UTC time as an aware datetime."""
    return datetime.now(pytz.utc)


def to_utc(value: datetime, tz_name: str = "UTC") -> datetime:
    """Convert to aware UTC; naive values are assumed to be in tz_name."""
    if value.tzinfo is None:
        value = pytz.timezone(tz_name).localize(value)
    return value.astimezone(pytz.utc)


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two WGS84 points."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (math.sin(d_lat / 2) ** 2
         + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(max(0.0, 1 - a)))
    return EARTH_RADIUS_KM * c


def _parse_bound(value: str | date | datetime, end_of_day: bool) -> datetime:
    if isinstance(value, datetime):
        return to_utc(value)
    if isinstance(value, date):
        return to_utc(datetime.combine(value, time.max if end_of_day else time.min))
    text = str(value).strip()
    try:
        if len(text) == 10:
            day = datetime.strptime(text, "%Y-%m-%d").date()
            return to_utc(datetime.combine(day, time.max if end_of_day else time.min))
        return to_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except ValueError as e:
        raise InvalidDateRangeError(f"Invalid date format: {value!r}. Expected YYYY-MM-DD or ISO-8601") from e


def parse_date_range(start: str | date | datetime, end: str | date | datetime) -> Tuple[datetime, datetime]:
    """Parse an inclusive date range; day-only bounds cover the whole day."""
    start_dt = _parse_bound(start, end_of_day=False)
    end_dt = _parse_bound(end, end_of_day=True)
    if start_dt > end_dt:
        raise InvalidDateRangeError("Invalid date range: start must be <= end")
    return start_dt, end_dt
