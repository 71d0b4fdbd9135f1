"""
Monitoring site discovery from the interactive map's data feed.
"""

import logging
from typing import List, Optional

from .client import ScotAQClient
from .exceptions import ProtocolError
from .models import Location
from .utils import add_sync_version

logger = logging.getLogger(__name__)


@add_sync_version
async def fetch_locations(client: Optional[ScotAQClient] = None) -> List[Location]:
    """
    Get every monitoring site shown on the interactive map.

    Entries with a missing id or name, or unusable coordinates, are logged and
    left out.

    Args:
        client: Optional ScotAQClient instance (creates one if None)

    Returns:
        List of Location objects in feed order

    Raises:
        NetworkError: If the map data cannot be downloaded
        ProtocolError: If the map data is not a JSON array
    """
    if client is None:
        async with ScotAQClient() as temp_client:
            return await fetch_locations(client=temp_client)

    data = await client.get_json(client.config.map_data_url)
    if not isinstance(data, list):
        raise ProtocolError(
            "Map data is not a JSON array",
            {"type": type(data).__name__},
        )

    locations = []
    for item in data:
        if not isinstance(item, dict):
            logger.debug(f"Skipping non-object map data entry: {item!r}")
            continue
        try:
            locations.append(Location.from_map_data(item))
        except ValueError as e:
            logger.warning(f"Skipping map data entry {item.get('site_id')!r}: {e}")

    logger.debug(f"Found {len(locations)} locations in map data")
    return locations
