"""
Data models for Scottish air quality locations and measurements.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

from .exceptions import FormatError

if TYPE_CHECKING:
    import pandas as pd


@dataclass(frozen=True)
class Parameter:
    """A pollutant as the data selector knows it."""

    code: str  # backend code, sent in f_parameter_id[]
    name: str  # normalized name, e.g. 'pm10'
    aliases: Tuple[str, ...] = ()

    def matches(self, text: str) -> bool:
        label = text.strip().upper()
        return label == self.code.upper() or label in (a.upper() for a in self.aliases)


# The site calls "PM10 particulate matter (Hourly measured)" GE10
PARAMETERS: Tuple[Parameter, ...] = (
    Parameter("PM25", "pm25", ("PM2.5",)),
    Parameter("GE10", "pm10", ("PM10",)),
    Parameter("NO2", "no2"),
    Parameter("SO2", "so2"),
    Parameter("O3", "o3"),
    Parameter("CO", "co"),
    Parameter("BC", "bc"),
)


def find_parameter(text: str) -> Optional[Parameter]:
    """Return the parameter a column header refers to, if any."""
    for parameter in PARAMETERS:
        if parameter.matches(text):
            return parameter
    return None


def _require_text(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Location {field_name} must be a non-empty string, got {value!r}")
    return value


def _require_finite(value: Any, field_name: str) -> float:
    if isinstance(value, bool):
        raise ValueError(f"Location {field_name} must be a number, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Location {field_name} must be a number, got {value!r}") from e
    if not math.isfinite(number):
        raise ValueError(f"Location {field_name} must be finite, got {value!r}")
    return number


@dataclass(frozen=True)
class Location:
    """A monitoring site from the interactive map."""

    id: str
    name: str
    lat: float
    long: float

    def __post_init__(self) -> None:
        _require_text(self.id, "id")
        _require_text(self.name, "name")
        object.__setattr__(self, "lat", _require_finite(self.lat, "lat"))
        object.__setattr__(self, "long", _require_finite(self.long, "long"))

    @classmethod
    def from_map_data(cls, item: Dict[str, Any]) -> "Location":
        """
        Build a Location from one map-data entry.

        Entries look like::

            {"site_id": "ABD1", "site_name": "Aberdeen Anderson Dr",
             "latitude": "57.128567", "longitude": "-2.125447",
             "pollutant_id": "NO2,PM10", "last_updated": "06/06/2020 15:00"}
        """
        return cls(
            id=item.get("site_id"),  # type: ignore[arg-type]
            name=item.get("site_name"),  # type: ignore[arg-type]
            lat=item.get("latitude"),  # type: ignore[arg-type]
            long=item.get("longitude"),  # type: ignore[arg-type]
        )


@dataclass
class QuerySession:
    """One stored query on the data selector, built step by step."""

    query_id: int
    steps_completed: int = 0

    TOTAL_STEPS = 6

    def advance(self) -> None:
        if self.steps_completed >= self.TOTAL_STEPS:
            raise RuntimeError(
                f"Query {self.query_id} already completed all {self.TOTAL_STEPS} steps"
            )
        self.steps_completed += 1

    @property
    def is_complete(self) -> bool:
        return self.steps_completed == self.TOTAL_STEPS


@dataclass(frozen=True)
class ColumnGroup:
    """A run of table columns under one row-0 header cell."""

    label: str
    first_index: int
    last_index: int

    def contains(self, index: int) -> bool:
        return self.first_index <= index <= self.last_index

    @property
    def width(self) -> int:
        return self.last_index - self.first_index + 1


class ColumnKind(Enum):
    PERIOD_DATE = "period_date"
    PERIOD_TIME = "period_time"
    PARAMETER_VALUE = "parameter_value"
    UNIT_LABEL = "unit_label"
    IGNORED = "ignored"


@dataclass
class TableColumn:
    """
    Role of one result table column.

    For PARAMETER_VALUE columns ``unit_index`` points at the UNIT_LABEL column
    whose cell holds the unit for each data row.
    """

    index: int
    kind: ColumnKind
    group: ColumnGroup
    parameter: Optional[Parameter] = None
    unit_index: Optional[int] = None

    @property
    def location_label(self) -> str:
        return self.group.label


@dataclass(frozen=True)
class MeasurementRecord:
    """A single hourly reading decoded from the result table."""

    location_id: str
    location_name: str
    parameter_code: str
    parameter: str
    unit: str
    value: float
    timestamp_utc: datetime
    timestamp_local: datetime
    coordinates: Dict[str, float]
    column_group: str = ""
    averaging_period_hours: int = 1

    def to_dict(self) -> Dict[str, Any]:
        """Measurement in the flat shape used by OpenAQ-style consumers."""
        return {
            "location": self.location_name,
            "parameter": self.parameter,
            "unit": self.unit,
            "value": self.value,
            "averagingPeriod": {"value": self.averaging_period_hours, "unit": "hours"},
            "coordinates": {
                "latitude": self.coordinates["lat"],
                "longitude": self.coordinates["long"],
            },
            "date": {
                "utc": self.timestamp_utc.strftime("%Y-%m-%dT%H:%M:%S.000Z"),
                "local": self.timestamp_local.isoformat(),
            },
            "country": "gb",
        }


@dataclass
class LocationFailure:
    """A location whose measurements could not be fetched."""

    location: Location
    error_type: str
    message: str


@dataclass
class FetchResult:
    """Outcome of fetching measurements for a batch of locations."""

    measurements: List[MeasurementRecord] = field(default_factory=list)
    failures: List[LocationFailure] = field(default_factory=list)
    skipped: List[Tuple[Location, FormatError]] = field(default_factory=list)
    locations_attempted: int = 0

    @property
    def locations_succeeded(self) -> int:
        return self.locations_attempted - len(self.failures)

    def to_measurements(
        self, source_name: str, source_url: str, source_type: str = "government"
    ) -> List[Dict[str, Any]]:
        """
        Merge every measurement with run-level source metadata.

        Args:
            source_name: Name credited in the attribution
            source_url: URL credited in the attribution
            source_type: Kind of data provider

        Returns:
            List of measurement dictionaries
        """
        base = {
            "attribution": [{"name": source_name, "url": source_url}],
            "sourceName": source_name,
            "sourceType": source_type,
            "mobile": False,
        }
        return [{**record.to_dict(), **base} for record in self.measurements]

    def to_pandas(self) -> "pd.DataFrame":
        """Measurements as a DataFrame, one row per record."""
        import pandas as pd

        columns = [
            "location_id",
            "location_name",
            "parameter_code",
            "parameter",
            "unit",
            "value",
            "timestamp_utc",
            "timestamp_local",
            "latitude",
            "longitude",
            "column_group",
        ]
        rows = [
            {
                "location_id": r.location_id,
                "location_name": r.location_name,
                "parameter_code": r.parameter_code,
                "parameter": r.parameter,
                "unit": r.unit,
                "value": r.value,
                "timestamp_utc": r.timestamp_utc,
                "timestamp_local": r.timestamp_local,
                "latitude": r.coordinates["lat"],
                "longitude": r.coordinates["long"],
                "column_group": r.column_group,
            }
            for r in self.measurements
        ]
        return pd.DataFrame(rows, columns=columns)
