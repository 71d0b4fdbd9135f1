"""
Driver for the data selector's six-step query wizard.

The "Measurement And Annual Statistics" data selector builds a stored query on
the server through a series of form submissions. Each submission after the
first names the query by the id handed out in step 0, and the rendered results
table only appears in the response to the last step:

    0  Init                  -> response carries the new query id
    1  SetParameters         all monitored pollutants
    2  SetRegionAndStatType  all regions, measured data
    3  SetDatePreset         today
    4  SetSite               the location's site id
    5  Submit                blank email address -> results table

The same URL also serves a second, unrelated set of forms, so every request
repeats the "automatic monitoring" parameter group.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple

from bs4 import BeautifulSoup

from .client import ScotAQClient
from .exceptions import ProtocolError, RequestTimeoutError
from .models import PARAMETERS, Location, QuerySession
from .querystring import to_query_string

logger = logging.getLogger(__name__)

# Form field names
PARAMETER_GROUP_INPUT_NAME = "f_group_id"
QUERY_ID_INPUT_NAME = "f_query_id"
PARAMETERS_INPUT_NAME = "f_parameter_id"
REGIONS_INPUT_NAME = "f_sub_region_id"
STAT_TYPE_INPUT_NAME = "f_statistic_type_id"
DATE_PRESET_INPUT_NAME = "f_preset_date"
SITE_ID_INPUT_NAME = "f_site_id"
EMAIL_INPUT_NAME = "f_email"

# Form field values
PARAMETER_GROUP_AUTOMATIC_MONITORING = "4"
PARAMETERS_VALUE_ALL = [p.code for p in PARAMETERS]
REGIONS_VALUE_ALL = ["9999"]
STAT_TYPE_MEASURED_DATA = "9999"
DATE_PRESET_TODAY = "1"

STEP_NAMES: Tuple[str, ...] = (
    "Init",
    "SetParameters",
    "SetRegionAndStatType",
    "SetDatePreset",
    "SetSite",
    "Submit",
)


def extract_query_id(html: str) -> int:
    """
    Read the stored query id from the hidden form field in a step 0 response.

    Raises:
        ProtocolError: If the field is missing or not an integer
    """
    soup = BeautifulSoup(html, "html.parser")
    field = soup.find(attrs={"name": QUERY_ID_INPUT_NAME})
    if field is None:
        raise ProtocolError(f"No '{QUERY_ID_INPUT_NAME}' field in data selector response")

    value = field.get("value")
    if isinstance(value, list):
        value = value[0] if value else None
    try:
        return int(str(value).strip())
    except (TypeError, ValueError) as e:
        raise ProtocolError(
            f"'{QUERY_ID_INPUT_NAME}' is not an integer",
            {"value": value},
        ) from e


def build_step_fields(
    step: int, fields: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Wrap step-specific fields with the parameter group and wizard navigation.

    The wizard's buttons are labelled one ahead of the zero-based step index:
    step 0 presses "Step 1", and so on.
    """
    return {
        PARAMETER_GROUP_INPUT_NAME: PARAMETER_GROUP_AUTOMATIC_MONITORING,
        **(fields or {}),
        "go": f"Step {step + 1}",
        "action": f"step{step + 1}",
    }


class SessionDriver:
    """Runs the query wizard for one location at a time."""

    def __init__(self, client: ScotAQClient):
        self.client = client
        self.step_timeout = client.config.step_timeout

    async def _submit(self, step: int, fields: Optional[Dict[str, Any]] = None) -> str:
        query = to_query_string(build_step_fields(step, fields))
        request = self.client.get_data_selector(query)
        if self.step_timeout is None:
            return await request
        try:
            return await asyncio.wait_for(request, timeout=self.step_timeout)
        except asyncio.TimeoutError as e:
            raise RequestTimeoutError(
                f"Step {step} ({STEP_NAMES[step]}) exceeded {self.step_timeout}s"
            ) from e

    async def start(self) -> QuerySession:
        """Run step 0 and return a session holding the new query id."""
        html = await self._submit(0)
        session = QuerySession(query_id=extract_query_id(html))
        session.advance()
        logger.debug(f"Started query {session.query_id}")
        return session

    def _step_fields(self, location: Location) -> List[Dict[str, Any]]:
        return [
            {PARAMETERS_INPUT_NAME: PARAMETERS_VALUE_ALL},
            {
                REGIONS_INPUT_NAME: REGIONS_VALUE_ALL,
                STAT_TYPE_INPUT_NAME: STAT_TYPE_MEASURED_DATA,
            },
            {DATE_PRESET_INPUT_NAME: DATE_PRESET_TODAY},
            {SITE_ID_INPUT_NAME: [location.id]},
            {EMAIL_INPUT_NAME: ""},
        ]

    async def run(self, location: Location) -> str:
        """
        Build and submit a stored query for one location.

        Args:
            location: The monitoring site to query

        Returns:
            HTML of the final step, containing the results table

        Raises:
            NetworkError: If any step's request fails or times out
            ProtocolError: If step 0 does not hand out a query id
        """
        session = await self.start()
        html = ""
        for step, fields in enumerate(self._step_fields(location), start=1):
            logger.debug(
                f"{location.id}: query {session.query_id} step {step} ({STEP_NAMES[step]})"
            )
            html = await self._submit(
                step, {QUERY_ID_INPUT_NAME: session.query_id, **fields}
            )
            session.advance()
        return html
