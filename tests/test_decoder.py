"""
Tests for results table decoding.
"""

from datetime import datetime, timezone

import pytest

from scotaq.config import ClientConfig
from scotaq.decoder import TableDecoder, build_column_groups, find_result_rows
from scotaq.exceptions import FormatError, LayoutError
from scotaq.models import ColumnKind

from conftest import RESULT_HTML, result_table

HEADER = ["Date", "Time", "NO2", "PM10", "Units"]


@pytest.fixture
def decoder():
    return TableDecoder()


class TestColumnGroups:
    def test_groups_follow_colspans(self):
        rows = find_result_rows(
            result_table(
                HEADER + ["O3", "Units"],
                groups=[("Measurement Period", 2), ("Site A", 3), ("Site B", 2)],
            )
        )
        groups = build_column_groups(rows[0].find_all("td"))

        assert [(g.label, g.first_index, g.last_index) for g in groups] == [
            ("Measurement Period", 0, 1),
            ("Site A", 2, 4),
            ("Site B", 5, 6),
        ]

    def test_missing_colspan_falls_back(self):
        rows = find_result_rows(
            "<table><tr><td>Measurement Period</td><td>Site</td></tr>"
            "<tr><td>Date</td><td>Time</td><td>NO2</td></tr></table>"
        )
        groups = build_column_groups(rows[0].find_all("td"), period_columns=2)

        assert (groups[0].first_index, groups[0].last_index) == (0, 1)
        assert (groups[1].first_index, groups[1].last_index) == (2, 2)

    def test_period_group_too_narrow(self):
        rows = find_result_rows(
            result_table(["Date", "NO2", "Units"], groups=[("Measurement Period", 1), ("Site", 2)])
        )
        with pytest.raises(LayoutError):
            build_column_groups(rows[0].find_all("td"))

    def test_no_table(self):
        with pytest.raises(LayoutError):
            find_result_rows("<html><body><p>No data found for your query</p></body></html>")


class TestTableDecoder:
    def test_aberdeen_table(self, decoder, aberdeen):
        records = decoder.decode(RESULT_HTML, aberdeen).records

        assert [(r.parameter, r.value, r.unit) for r in records] == [
            ("no2", 34.0, "µg/m3"),
            ("pm10", 12.0, "µg/m3"),
        ]
        no2, pm10 = records
        assert no2.parameter_code == "NO2"
        assert pm10.parameter_code == "GE10"
        assert no2.location_id == "ABD1"
        assert no2.location_name == "Aberdeen Anderson Dr"
        assert no2.column_group == "Aberdeen Anderson Dr"
        assert no2.coordinates == {"lat": 57.128567, "long": -2.125447}
        assert no2.timestamp_local.replace(tzinfo=None) == datetime(2020, 6, 6, 9, 0)
        assert no2.timestamp_local.utcoffset().total_seconds() == 3600
        assert no2.timestamp_utc == datetime(2020, 6, 6, 8, 0, tzinfo=timezone.utc)

    def test_unit_applies_to_preceding_columns_only(self, decoder, aberdeen):
        html = result_table(
            ["Date", "Time", "NO2", "Units", "CO", "Units"],
            ["06/06/2020", "10:00", "20", "ppb", "0.3", "mg/m3"],
            groups=[("Measurement Period", 2), ("Site", 4)],
        )
        records = decoder.decode(html, aberdeen).records

        assert [(r.parameter, r.unit) for r in records] == [("no2", "ppb"), ("co", "mg/m3")]

    def test_unit_resolution_per_group(self, decoder, aberdeen):
        html = result_table(
            ["Date", "Time", "NO2", "PM10", "Units"],
            ["06/06/2020", "11:00", "34", "12", "µg/m3"],
            groups=[("Measurement Period", 2), ("Site A", 3)],
        )
        result = decoder.decode(html, aberdeen)

        value_columns = [c for c in result.columns if c.kind is ColumnKind.PARAMETER_VALUE]
        assert [c.unit_index for c in value_columns] == [4, 4]
        assert {r.unit for r in result.records} == {"µg/m3"}

    def test_group_without_units_column(self, decoder, aberdeen):
        html = result_table(
            ["Date", "Time", "NO2", "PM10", "Units", "O3", "SO2"],
            ["06/06/2020", "09:00", "34", "12", "µg/m3", "40", "3"],
            groups=[("Measurement Period", 2), ("Site A", 3), ("Site B", 2)],
        )

        with pytest.raises(LayoutError) as excinfo:
            decoder.decode(html, aberdeen)

        assert excinfo.value.details["group"] == "Site B"
        assert excinfo.value.details["parameters"] == ["O3", "SO2"]

    def test_units_before_parameter_does_not_count(self, decoder, aberdeen):
        html = result_table(
            ["Date", "Time", "Units", "NO2"],
            ["06/06/2020", "09:00", "µg/m3", "34"],
            groups=[("Measurement Period", 2), ("Site", 2)],
        )
        with pytest.raises(LayoutError):
            decoder.decode(html, aberdeen)

    def test_column_outside_groups(self, decoder, aberdeen):
        html = result_table(
            ["Date", "Time", "NO2", "Units", "O3"],
            groups=[("Measurement Period", 2), ("Site", 2)],
        )
        with pytest.raises(LayoutError):
            decoder.decode(html, aberdeen)

    def test_unknown_header_is_ignored(self, decoder, aberdeen):
        html = result_table(
            ["Date", "Time", "NO2", "Status", "Units"],
            ["06/06/2020", "09:00", "34", "R", "µg/m3"],
        )
        records = decoder.decode(html, aberdeen).records

        assert [(r.parameter, r.value) for r in records] == [("no2", 34.0)]

    def test_decoding_is_idempotent(self, decoder, aberdeen):
        html = result_table(
            HEADER,
            ["06/06/2020", "09:00", "34", "12", "µg/m3"],
            ["06/06/2020", "10:00", "30", "No data", "µg/m3"],
            ["06/06/2020", "11:00", "28", "9", "µg/m3"],
        )
        first = decoder.decode(html, aberdeen).records
        second = decoder.decode(html, aberdeen).records

        assert first == second
        assert len(first) == 5

    def test_bad_date_skips_only_that_row(self, decoder, aberdeen):
        html = result_table(
            HEADER,
            ["6th June", "09:00", "34", "12", "µg/m3"],
            ["06/06/2020", "10:00", "30", "11", "µg/m3"],
        )
        result = decoder.decode(html, aberdeen)

        assert [r.value for r in result.records] == [30.0, 11.0]
        assert all(r.timestamp_local.hour == 10 for r in result.records)
        assert len(result.skipped) == 1
        assert isinstance(result.skipped[0], FormatError)

    def test_bad_value_skips_only_that_cell(self, decoder, aberdeen):
        html = result_table(
            HEADER,
            ["06/06/2020", "09:00", "34", "twelve", "µg/m3"],
        )
        result = decoder.decode(html, aberdeen)

        assert [(r.parameter, r.value) for r in result.records] == [("no2", 34.0)]
        assert result.skipped[0].details["column"] == 3

    @pytest.mark.parametrize("marker", ["", "-", "--", "n/a", "No data", "NODATA"])
    def test_no_data_markers(self, decoder, aberdeen, marker):
        html = result_table(HEADER, ["06/06/2020", "09:00", marker, "12", "µg/m3"])
        result = decoder.decode(html, aberdeen)

        assert [r.parameter for r in result.records] == ["pm10"]
        assert result.skipped == []

    def test_missing_unit_cell(self, decoder, aberdeen):
        html = result_table(HEADER, ["06/06/2020", "09:00", "34", "12", ""])
        result = decoder.decode(html, aberdeen)

        assert result.records == []
        assert len(result.skipped) == 2

    def test_midnight_written_as_24(self, decoder, aberdeen):
        html = result_table(HEADER, ["06/06/2020", "24:00", "34", "12", "µg/m3"])
        record = decoder.decode(html, aberdeen).records[0]

        assert record.timestamp_local.replace(tzinfo=None) == datetime(2020, 6, 7, 0, 0)
        assert record.timestamp_utc == datetime(2020, 6, 6, 23, 0, tzinfo=timezone.utc)

    def test_winter_time_offset(self, decoder, aberdeen):
        html = result_table(HEADER, ["06/01/2020", "09:00", "34", "12", "µg/m3"])
        record = decoder.decode(html, aberdeen).records[0]

        assert record.timestamp_utc == datetime(2020, 1, 6, 9, 0, tzinfo=timezone.utc)

    def test_blank_rows_are_ignored(self, decoder, aberdeen):
        html = result_table(HEADER, ["", "", "", "", ""], ["06/06/2020", "09:00", "34", "12", "µg/m3"])
        result = decoder.decode(html, aberdeen)

        assert len(result.records) == 2
        assert result.skipped == []

    def test_header_aliases_and_codes(self, decoder, aberdeen):
        html = result_table(
            ["Date", "Time", "PM2.5", "GE10", "Units"],
            ["06/06/2020", "09:00", "5", "12", "µg/m3"],
        )
        records = decoder.decode(html, aberdeen).records

        assert [(r.parameter_code, r.parameter) for r in records] == [
            ("PM25", "pm25"),
            ("GE10", "pm10"),
        ]

    def test_custom_no_data_markers(self, aberdeen):
        decoder = TableDecoder(ClientConfig(no_data_markers=frozenset({"", "missing"})))
        html = result_table(HEADER, ["06/06/2020", "09:00", "Missing", "-", "µg/m3"])
        result = decoder.decode(html, aberdeen)

        assert result.records == []
        assert len(result.skipped) == 1

    def test_blank_cell_without_blank_marker(self, aberdeen):
        decoder = TableDecoder(ClientConfig(no_data_markers=frozenset({"missing"})))
        html = result_table(HEADER, ["06/06/2020", "09:00", "", "12", "µg/m3"])
        result = decoder.decode(html, aberdeen)

        assert [(r.parameter, r.value) for r in result.records] == [("pm10", 12.0)]
        assert result.skipped == []

    def test_period_only_table(self, decoder, aberdeen):
        html = result_table(
            ["Date", "Time"],
            ["06/06/2020", "09:00"],
            groups=[("Measurement Period", 2)],
        )
        with pytest.raises(LayoutError, match="no location group"):
            decoder.decode(html, aberdeen)

    def test_no_parameter_columns(self, decoder, aberdeen):
        html = result_table(
            ["Date", "Time", "Status"],
            ["06/06/2020", "09:00", "R"],
            groups=[("Measurement Period", 2), ("Site", 1)],
        )
        with pytest.raises(LayoutError, match="no parameter columns"):
            decoder.decode(html, aberdeen)


class TestResultPageShapes:
    RESULTS = (
        '<table class="data">'
        '<tr><td colspan="2">Measurement Period</td><td colspan="3">Aberdeen Anderson Dr</td></tr>'
        "<tr><td>Date</td><td>Time</td><td>NO2</td><td>PM10</td><td>Units</td></tr>"
        "<tr><td>06/06/2020</td><td>09:00</td><td>34</td><td>12</td><td>µg/m3</td></tr>"
        "</table>"
    )

    def test_results_nested_in_layout_table(self, decoder, aberdeen):
        html = (
            "<html><body><table>"
            "<tr><td>Step 6 of 6</td></tr>"
            f"<tr><td>{self.RESULTS}</td></tr>"
            "</table></body></html>"
        )
        records = decoder.decode(html, aberdeen).records

        assert [(r.parameter, r.value) for r in records] == [("no2", 34.0), ("pm10", 12.0)]

    def test_summary_table_before_results(self, decoder, aberdeen):
        html = (
            "<html><body>"
            "<table><tr><td>Site</td><td>Aberdeen Anderson Dr</td></tr>"
            "<tr><td>Parameters</td><td>NO2, PM10</td></tr></table>"
            f"{self.RESULTS}"
            "</body></html>"
        )
        records = decoder.decode(html, aberdeen).records

        assert [(r.parameter, r.value) for r in records] == [("no2", 34.0), ("pm10", 12.0)]

    def test_only_rows_of_results_table_are_read(self):
        html = (
            "<table>"
            '<tr><td colspan="2">Measurement Period</td><td colspan="2">Site</td></tr>'
            "<tr><td>Date</td><td>Time</td><td>NO2</td><td>Units</td></tr>"
            "<tr><td><table><tr><td>inner</td></tr></table></td></tr>"
            "</table>"
        )
        rows = find_result_rows(html)

        assert len(rows) == 3
