# file: air_monitor/errors.py


class AirMonitorError(Exception):
    """Base error for the air quality monitor."""


class UpstreamUnavailableError(AirMonitorError):
    """Raised when the GIOŚ API cannot be reached or returns something unusable."""


class DataNotFoundError(AirMonitorError):
    """Raised when a station has no data for the requested lookup."""

    def __init__(self, station_id: int, what: str = "air quality data") -> None:
        super().__init__(f"No {what} found for station with ID {station_id}.")
        self.station_id = station_id


class InvalidInputError(AirMonitorError, ValueError):
    """Raised for caller input that cannot be clamped into range."""


class InvalidDateRangeError(InvalidInputError):
    """Raised when a date range is unparsable or inverted."""
