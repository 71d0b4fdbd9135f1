"""
Fetching measurements for many locations at once.

Every location gets its own stored query on the data selector, so sessions
are independent and run concurrently. The number of sessions in flight is
capped by ``ClientConfig.max_concurrent`` to stay within what the site will
tolerate from one address.

A location that fails (network trouble, a missing query id, or a table whose
headers cannot be resolved) is recorded in ``FetchResult.failures`` and the
run carries on with the others.
"""

import asyncio
import logging
from typing import List, Optional, Sequence, Tuple, Union

from .client import ScotAQClient
from .decoder import DecodedTable, TableDecoder
from .exceptions import ScotAQError
from .locations import fetch_locations
from .models import FetchResult, Location, LocationFailure, MeasurementRecord
from .session import SessionDriver
from .utils import add_sync_version

logger = logging.getLogger(__name__)

LocationOutcome = Union[DecodedTable, LocationFailure]


@add_sync_version
async def fetch_location_table(
    location: Location,
    client: Optional[ScotAQClient] = None,
) -> DecodedTable:
    """
    Run the wizard for a single location and decode its results table.

    Args:
        location: Monitoring site to query
        client: Optional ScotAQClient instance (creates one if None)

    Returns:
        DecodedTable with the records and the rows or cells that were skipped

    Raises:
        NetworkError: If any wizard step fails or times out
        ProtocolError: If the wizard does not hand out a query id
        LayoutError: If the results table headers cannot be resolved
    """
    if client is None:
        async with ScotAQClient() as temp_client:
            return await fetch_location_table(location, client=temp_client)

    html = await SessionDriver(client).run(location)
    return TableDecoder(client.config).decode(html, location)


@add_sync_version
async def fetch_location_measurements(
    location: Location,
    client: Optional[ScotAQClient] = None,
) -> List[MeasurementRecord]:
    """Fetch today's hourly measurements for a single location, in table order."""
    return (await fetch_location_table(location, client=client)).records


async def _fetch_guarded(
    location: Location,
    client: ScotAQClient,
    semaphore: asyncio.Semaphore,
) -> LocationOutcome:
    async with semaphore:
        try:
            return await fetch_location_table(location, client=client)
        except ScotAQError as e:
            logger.warning(f"Failed to fetch {location.id} ({location.name}): {e}")
            return LocationFailure(location, type(e).__name__, str(e))


async def _gather_all(
    tasks: List["asyncio.Future[LocationOutcome]"],
) -> List[LocationOutcome]:
    # an unexpected error in one session cancels the rest before propagating
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


@add_sync_version
async def fetch_measurements(
    locations: Optional[Sequence[Location]] = None,
    client: Optional[ScotAQClient] = None,
    limit: Optional[int] = None,
) -> FetchResult:
    """
    Fetch today's hourly measurements for many locations.

    Args:
        locations: Locations to fetch; all locations on the map if None
        client: Optional ScotAQClient instance (creates one if None)
        limit: Only fetch the first ``limit`` locations

    Returns:
        FetchResult with measurements in location order, a failure entry
        for every location that could not be fetched, and the rows or cells
        each location skipped

    Raises:
        NetworkError: If the location list itself cannot be downloaded
        ProtocolError: If the location list is malformed

    Example:
        >>> async with ScotAQClient() as client:
        ...     result = await fetch_measurements(client=client, limit=5)
        >>> df = result.to_pandas()
    """
    if client is None:
        async with ScotAQClient() as temp_client:
            return await fetch_measurements(locations, client=temp_client, limit=limit)

    if locations is None:
        locations = await fetch_locations(client=client)
    targets: Tuple[Location, ...] = tuple(locations if limit is None else locations[:limit])

    logger.info(
        f"Fetching measurements for {len(targets)} locations "
        f"(max {client.config.max_concurrent} at a time)"
    )
    semaphore = asyncio.Semaphore(client.config.max_concurrent)
    tasks = [
        asyncio.ensure_future(_fetch_guarded(location, client, semaphore))
        for location in targets
    ]
    outcomes = await _gather_all(tasks)

    result = FetchResult(locations_attempted=len(targets))
    for location, outcome in zip(targets, outcomes):
        if isinstance(outcome, LocationFailure):
            result.failures.append(outcome)
            continue
        result.measurements.extend(outcome.records)
        result.skipped.extend((location, error) for error in outcome.skipped)

    logger.info(
        f"Fetched {len(result.measurements)} measurements from "
        f"{result.locations_succeeded}/{result.locations_attempted} locations"
        f" ({len(result.skipped)} rows or cells skipped)"
    )
    return result
