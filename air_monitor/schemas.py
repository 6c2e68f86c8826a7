# file: air_monitor/schemas.py

"""Raw GIOŚ payload shapes.

The GIOŚ API has changed field names between versions and publishes them in
Polish and English. Every known spelling is listed here, in lookup order, so
a new upstream variant only needs one more entry.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Tuple

from pydantic import AliasChoices, AliasPath, BaseModel, ConfigDict, Field, field_validator

from air_monitor.utils import to_utc

GIOS_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

MISSING = object()


@dataclass(frozen=True)
class ContainerKeys:
    """Keys under which each kind of list or object has been published, tried in order."""

    stations: Tuple[str, ...] = ("Lista stacji pomiarowych", "lista", "list", "data")
    index: Tuple[str, ...] = ("AqIndex", "Indeks jakości powietrza")
    sensors: Tuple[str, ...] = (
        "Lista stanowisk pomiarowych dla podanej stacji",
        "Lista stanowisk pomiarowych",
        "Lista stanowisk",
    )
    readings: Tuple[str, ...] = (
        "Lista danych pomiarowych",
        "values",
        "Dane pomiarowe",
        "lista",
        "data",
    )


def find_path(node: Any, key: str) -> Any:
    """Depth-first search for the first value stored under key, or MISSING."""
    if isinstance(node, dict):
        for name, value in node.items():
            if name == key:
                return value
            found = find_path(value, key)
            if found is not MISSING:
                return found
    elif isinstance(node, list):
        for item in node:
            found = find_path(item, key)
            if found is not MISSING:
                return found
    return MISSING


def resolve_container(root: Any, keys: Iterable[str]) -> Any:
    """Return the value under the first key that resolves anywhere in root, or MISSING."""
    for key in keys:
        node = find_path(root, key)
        if node is not MISSING:
            return node
    return MISSING


def parse_gios_datetime(value: str, tz_name: str) -> datetime:
    """Parse an upstream timestamp into aware UTC. Raises ValueError when unparsable."""
    text = value.strip()
    try:
        parsed = datetime.strptime(text, GIOS_DATE_FORMAT)
    except ValueError:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    return to_utc(parsed, tz_name)


def parse_coordinate(value: Any) -> float:
    """Coordinates may come as numbers or strings with a decimal comma; 0.0 if unusable."""
    if value is None:
        return 0.0
    try:
        return float(str(value).strip().replace(",", "."))
    except ValueError:
        return 0.0


def _lenient_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def _lenient_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(str(value).strip().replace(",", "."))
    except ValueError:
        return None


def _text(value: Any) -> str | None:
    if value is None or isinstance(value, (dict, list)):
        return None
    return str(value)


class _GiosDto(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)


class GiosStationDto(_GiosDto):
    id: int | None = Field(None, validation_alias=AliasChoices("id", "Identyfikator stacji"))
    station_name: str | None = Field(None, validation_alias=AliasChoices("stationName", "Nazwa stacji"))
    gegr_lat: Any = Field(None, validation_alias=AliasChoices("gegrLat", "WGS84 φ N"))
    gegr_lon: Any = Field(None, validation_alias=AliasChoices("gegrLon", "WGS84 λ E"))
    city_name: str | None = Field(
        None, validation_alias=AliasChoices("cityName", "Nazwa miasta", AliasPath("city", "name"))
    )
    address_street: str | None = Field(None, validation_alias=AliasChoices("addressStreet", "Ulica"))

    @field_validator("id", mode="before")
    @classmethod
    def parse_id(cls, v: Any) -> int | None:
        return _lenient_int(v)

    @field_validator("station_name", "city_name", "address_street", mode="before")
    @classmethod
    def parse_text(cls, v: Any) -> str | None:
        return _text(v)


class GiosIndexDto(_GiosDto):
    id: int | None = Field(None, validation_alias=AliasChoices("id", "Identyfikator stacji pomiarowej"))
    st_calc_date: str | None = Field(
        None, validation_alias=AliasChoices("stCalcDate", "Data obliczenia", "Data wykonania obliczeń indeksu")
    )
    st_index_level: str | None = Field(
        None, validation_alias=AliasChoices("stIndexLevel", "Indeks ogólny", "Nazwa kategorii indeksu")
    )
    so2_index_level: str | None = Field(
        None,
        validation_alias=AliasChoices("so2IndexLevel", "Indeks SO2", "Nazwa kategorii indeksu dla wskażnika SO2"),
    )
    no2_index_level: str | None = Field(
        None,
        validation_alias=AliasChoices("no2IndexLevel", "Indeks NO2", "Nazwa kategorii indeksu dla wskażnika NO2"),
    )
    pm10_index_level: str | None = Field(
        None,
        validation_alias=AliasChoices("pm10IndexLevel", "Indeks PM10", "Nazwa kategorii indeksu dla wskażnika PM10"),
    )

    @field_validator("id", mode="before")
    @classmethod
    def parse_id(cls, v: Any) -> int | None:
        return _lenient_int(v)

    @field_validator("st_index_level", "so2_index_level", "no2_index_level", "pm10_index_level", mode="before")
    @classmethod
    def parse_level_name(cls, v: Any) -> str | None:
        # the legacy API nests the label: {"id": 1, "indexLevelName": "Dobry"}
        if isinstance(v, dict):
            v = v.get("indexLevelName")
        return _text(v)

    @field_validator("st_calc_date", mode="before")
    @classmethod
    def parse_calc_date(cls, v: Any) -> str | None:
        return _text(v)


class GiosSensorDto(_GiosDto):
    id: int | None = Field(
        None, validation_alias=AliasChoices("Identyfikator stanowiska", "id", "Identyfikator")
    )
    param_code: str | None = Field(
        None,
        validation_alias=AliasChoices("Wskaźnik - kod", "paramCode", "Kod wskaźnika", AliasPath("param", "paramCode")),
    )
    param_name: str | None = Field(
        None,
        validation_alias=AliasChoices(
            "Wskaźnik", "Nazwa parametru", "paramName", "Wskaźnik - nazwa", AliasPath("param", "paramName")
        ),
    )

    @field_validator("id", mode="before")
    @classmethod
    def parse_id(cls, v: Any) -> int | None:
        return _lenient_int(v)

    @field_validator("param_code", "param_name", mode="before")
    @classmethod
    def parse_text(cls, v: Any) -> str | None:
        return _text(v)


class GiosDataValueDto(_GiosDto):
    date: str | None = Field(None, validation_alias=AliasChoices("data", "date", "Data"))
    value: float | None = Field(None, validation_alias=AliasChoices("wartość", "value", "Wartość"))

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, v: Any) -> str | None:
        return _text(v)

    @field_validator("value", mode="before")
    @classmethod
    def parse_value(cls, v: Any) -> float | None:
        return _lenient_float(v)
