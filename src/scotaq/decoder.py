"""
Decoding of the data selector's results table.

The results table has no thead/tbody and no machine-readable column ids. Its
layout changes with the parameters a site monitors:

    row 0   | Measurement Period |      Aberdeen Anderson Dr       |
    row 1   | Date     | Time    | NO2      | PM10     | Units      |
    row 2+  | 06/06/20 | 09:00   | 34       | 12       | µg/m3      |

Row 0 groups columns by colspan, row 1 names the columns within each group,
and a trailing "Units" column holds the unit for every parameter column to
its left in the same group. Decoding is two passes over the headers (groups,
then column roles) followed by one pass over the data rows.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional, Sequence
from zoneinfo import ZoneInfo

from bs4 import BeautifulSoup

from .config import ClientConfig
from .exceptions import FormatError, LayoutError
from .models import (
    ColumnGroup,
    ColumnKind,
    Location,
    MeasurementRecord,
    TableColumn,
    find_parameter,
)

logger = logging.getLogger(__name__)

CELL_TAGS = ["td", "th"]
PERIOD_LABEL = "Measurement Period"


@dataclass
class DecodedTable:
    """Records decoded from one results table, plus what had to be skipped."""

    records: List[MeasurementRecord] = field(default_factory=list)
    skipped: List[FormatError] = field(default_factory=list)
    columns: List[TableColumn] = field(default_factory=list)


def _cells(row: Any) -> List[Any]:
    return row.find_all(CELL_TAGS, recursive=False)


def _text(cell: Any) -> str:
    return cell.get_text(" ", strip=True)


def _colspan(cell: Any) -> Optional[int]:
    try:
        span = int(cell.get("colspan"))
    except (TypeError, ValueError):
        return None
    return span if span > 0 else None


def _own_rows(table: Any) -> List[Any]:
    # rows of nested tables belong to those tables
    return [row for row in table.find_all("tr") if row.find_parent("table") is table]


def find_result_rows(html: str, period_label: str = PERIOD_LABEL) -> List[Any]:
    """
    Return the rows of the results table.

    The results table is the one whose first header cell is the measurement
    period; layout and summary tables around it are passed over.
    """
    soup = BeautifulSoup(html, "html.parser")
    for table in soup.find_all("table"):
        rows = _own_rows(table)
        if len(rows) < 2:
            continue
        header = _cells(rows[0])
        if header and _text(header[0]).lower() == period_label.lower():
            return rows
    raise LayoutError(f"No results table headed '{period_label}' in response")


def build_column_groups(header_cells: Sequence[Any], period_columns: int = 2) -> List[ColumnGroup]:
    """
    Map each row-0 header cell to the range of columns it spans.

    The first cell is always the measurement period group starting at column 0.
    """
    if not header_cells:
        raise LayoutError("Group header row is empty")

    groups: List[ColumnGroup] = []
    for position, cell in enumerate(header_cells):
        span = _colspan(cell)
        if position == 0:
            span = span or period_columns
            if span < 2:
                raise LayoutError(
                    "Measurement period group must span date and time columns",
                    {"colspan": span},
                )
            first = 0
        else:
            span = span or 1
            first = groups[-1].last_index + 1
        groups.append(ColumnGroup(_text(cell), first, first + span - 1))
    return groups


def build_columns(groups: Sequence[ColumnGroup], header_cells: Sequence[Any]) -> List[TableColumn]:
    """
    Work out the role of every column from the row-1 header cells.

    Raises:
        LayoutError: If a column lies outside every group, or a parameter
            column has no units column after it in its group
    """
    period = groups[0]
    columns: List[TableColumn] = []

    for index, cell in enumerate(header_cells):
        group = next((g for g in groups if g.contains(index)), None)
        if group is None:
            raise LayoutError("Column is outside every header group", {"index": index})

        text = _text(cell)
        if group is period:
            kind = {0: ColumnKind.PERIOD_DATE, 1: ColumnKind.PERIOD_TIME}.get(
                index, ColumnKind.IGNORED
            )
            columns.append(TableColumn(index, kind, group))
            continue

        parameter = find_parameter(text)
        if parameter is not None:
            columns.append(
                TableColumn(index, ColumnKind.PARAMETER_VALUE, group, parameter=parameter)
            )
        elif "units" in text.lower():
            columns.append(TableColumn(index, ColumnKind.UNIT_LABEL, group))
            for column in columns:
                if (
                    column.kind is ColumnKind.PARAMETER_VALUE
                    and column.group == group
                    and column.unit_index is None
                ):
                    column.unit_index = index
        else:
            logger.debug(f"Ignoring column {index} '{text}' in group '{group.label}'")
            columns.append(TableColumn(index, ColumnKind.IGNORED, group))

    unresolved = [
        c for c in columns if c.kind is ColumnKind.PARAMETER_VALUE and c.unit_index is None
    ]
    if unresolved:
        raise LayoutError(
            "Parameter columns without a units column",
            {
                "group": unresolved[0].location_label,
                "parameters": [c.parameter.code for c in unresolved if c.parameter],
            },
        )
    return columns


class TableDecoder:
    """Turns a results page into MeasurementRecords for one location."""

    def __init__(self, config: Optional[ClientConfig] = None):
        self.config = config or ClientConfig()
        self.tz = ZoneInfo(self.config.timezone)
        self.no_data_markers = {m.lower() for m in self.config.no_data_markers}

    def parse_timestamp(self, date_text: str, time_text: str) -> datetime:
        """
        Parse a row's date and time cells as local time.

        The site writes the last hour of the day as 24:00.

        Raises:
            FormatError: If the cells do not match the configured formats
        """
        date_text = date_text.strip()
        time_text = time_text.strip()
        rollover = time_text == "24:00"
        if rollover:
            time_text = "00:00"
        try:
            naive = datetime.strptime(
                f"{date_text} {time_text}",
                f"{self.config.date_format} {self.config.time_format}",
            )
        except ValueError as e:
            raise FormatError(
                "Unparsable measurement period",
                {"date": date_text, "time": time_text},
            ) from e
        if rollover:
            naive += timedelta(days=1)
        return naive.replace(tzinfo=self.tz)

    def parse_value(self, text: str) -> Optional[float]:
        """
        Parse a measurement cell; None means the hour has no reading.

        Raises:
            FormatError: If the cell holds something other than a number
        """
        text = text.strip()
        if not text or text.lower() in self.no_data_markers:
            return None
        try:
            value = float(text)
        except ValueError as e:
            raise FormatError("Unparsable measurement value", {"value": text}) from e
        if not math.isfinite(value):
            raise FormatError("Non-finite measurement value", {"value": text})
        return value

    def decode(self, html: str, location: Location) -> DecodedTable:
        """
        Decode the results table for a location.

        Rows with an unparsable date or time and cells with an unparsable value
        are skipped and collected in ``DecodedTable.skipped``.

        Args:
            html: Final step response from the data selector
            location: The location the query was built for

        Returns:
            DecodedTable with records in row, then column order

        Raises:
            LayoutError: If the header rows cannot be resolved into columns
        """
        rows = find_result_rows(html)
        groups = build_column_groups(_cells(rows[0]), self.config.period_columns)
        if len(groups) < 2:
            raise LayoutError("Results table has no location group", {"location": location.id})
        columns = build_columns(groups, _cells(rows[1]))
        value_columns = [c for c in columns if c.kind is ColumnKind.PARAMETER_VALUE]
        if not value_columns:
            raise LayoutError(
                "Results table has no parameter columns",
                {"location": location.id, "groups": [g.label for g in groups[1:]]},
            )
        coordinates = {"lat": location.lat, "long": location.long}

        result = DecodedTable(columns=columns)
        for row_number, row in enumerate(rows[2:], start=2):
            cells = [_text(cell) for cell in _cells(row)]
            if not any(cells):
                continue

            try:
                if len(cells) < 2:
                    raise FormatError("Row has no measurement period", {"row": row_number})
                local = self.parse_timestamp(cells[0], cells[1])
            except FormatError as e:
                logger.debug(f"{location.id}: skipping row {row_number}: {e}")
                result.skipped.append(e)
                continue
            utc = local.astimezone(timezone.utc)

            for column in value_columns:
                raw = cells[column.index] if column.index < len(cells) else ""
                try:
                    value = self.parse_value(raw)
                    if value is None:
                        continue
                    unit = cells[column.unit_index] if column.unit_index < len(cells) else ""
                    if not unit:
                        raise FormatError("Measurement has no unit", {"value": raw})
                except FormatError as e:
                    e.details.update(row=row_number, column=column.index)
                    logger.debug(f"{location.id}: skipping cell: {e}")
                    result.skipped.append(e)
                    continue

                result.records.append(
                    MeasurementRecord(
                        location_id=location.id,
                        location_name=location.name,
                        parameter_code=column.parameter.code,
                        parameter=column.parameter.name,
                        unit=unit,
                        value=value,
                        timestamp_utc=utc,
                        timestamp_local=local,
                        coordinates=dict(coordinates),
                        column_group=column.location_label,
                    )
                )

        logger.debug(
            f"{location.id}: decoded {len(result.records)} records, "
            f"skipped {len(result.skipped)}"
        )
        return result
