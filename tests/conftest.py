"""
Shared fixtures for scotaq tests.
"""

import itertools
from typing import Dict, List, Optional, Tuple
from unittest.mock import AsyncMock, Mock

import pytest

from scotaq.client import ScotAQClient
from scotaq.config import ClientConfig
from scotaq.models import Location

STEP0_HTML = """
<html><body>
<form method="get" action="/data/data-selector">
  <input type="hidden" name="f_group_id" value="4">
  <input type="hidden" name="f_query_id" value="4821">
  <input type="submit" name="go" value="Step 2">
</form>
</body></html>
"""

STEP_HTML = "<html><body><form><input type='hidden' name='f_query_id' value='4821'></form></body></html>"

RESULT_HTML = """
<html><body>
<h2>Measured data</h2>
<table class="data">
  <tr><td colspan="2">Measurement Period</td><td colspan="3">Aberdeen Anderson Dr</td></tr>
  <tr><td>Date</td><td>Time</td><td>NO2</td><td>PM10</td><td>Units</td></tr>
  <tr><td>06/06/2020</td><td>09:00</td><td>34</td><td>12</td><td>µg/m3</td></tr>
</table>
</body></html>
"""


def result_table(*rows: List[str], groups: Optional[List[Tuple[str, int]]] = None) -> str:
    """Build a results page; the first two rows are the header rows."""
    groups = groups or [("Measurement Period", 2), ("Aberdeen Anderson Dr", 3)]
    group_row = "".join(f'<td colspan="{span}">{label}</td>' for label, span in groups)
    body = "".join(
        "<tr>" + "".join(f"<td>{cell}</td>" for cell in row) + "</tr>" for row in rows
    )
    return f"<html><body><table><tr>{group_row}</tr>{body}</table></body></html>"


def parse_query(url: str) -> List[Tuple[str, str]]:
    """Split a data selector URL into its (name, value) pairs."""
    query = url.split("?", 1)[1]
    return [tuple(part.split("=", 1)) for part in query.split("&")]  # type: ignore[misc]


def make_response(text: str = "", json_data=None) -> Mock:
    response = Mock()
    response.text = text
    response.raise_for_status.return_value = None
    response.json.return_value = json_data
    return response


class FakeDataSelector:
    """
    Stands in for the data selector: hands out query ids, remembers which site
    each stored query was built for, and renders that site's table at the end.
    """

    def __init__(self, tables: Dict[str, str]):
        self.tables = tables
        self.sites: Dict[int, str] = {}
        self.requests: List[str] = []
        self._ids = itertools.count(5000)

    async def get(self, url: str) -> Mock:
        self.requests.append(url)
        fields = parse_query(url)
        action = dict(fields)["action"]
        if action == "step1":
            query_id = next(self._ids)
            return make_response(
                f"<form><input type='hidden' name='f_query_id' value='{query_id}'></form>"
            )
        query_id = int(dict(fields)["f_query_id"])
        if action == "step5":
            self.sites[query_id] = dict(fields)["f_site_id[]"]
        if action == "step6":
            return make_response(self.tables[self.sites[query_id]])
        return make_response(STEP_HTML)


@pytest.fixture
def aberdeen():
    return Location(id="ABD1", name="Aberdeen Anderson Dr", lat=57.128567, long=-2.125447)


@pytest.fixture
def edinburgh():
    return Location(id="ED3", name="Edinburgh St Leonards", lat=55.945589, long=-3.182186)


@pytest.fixture
def config():
    return ClientConfig(timeout=5)


@pytest.fixture
def client(config):
    """ScotAQClient whose HTTP client is replaced by an AsyncMock."""
    client = ScotAQClient(config=config)
    client._client = AsyncMock()
    return client
