"""
Python client for hourly measurements from the Scottish Air Quality website.

The site offers no API, so measurements are pulled through its data selector
query wizard and decoded from the rendered HTML results table.
"""

try:
    from importlib import metadata

    __version__ = metadata.version(__name__)
except Exception:
    __version__ = "unknown"

from .client import ScotAQClient
from .config import ClientConfig
from .decoder import DecodedTable, TableDecoder
from .exceptions import (
    FormatError,
    LayoutError,
    NetworkError,
    ProtocolError,
    RequestTimeoutError,
    ScotAQError,
)
from .fetch import fetch_location_measurements, fetch_location_table, fetch_measurements
from .locations import fetch_locations
from .models import (
    PARAMETERS,
    ColumnGroup,
    ColumnKind,
    FetchResult,
    Location,
    LocationFailure,
    MeasurementRecord,
    Parameter,
    QuerySession,
    TableColumn,
)
from .querystring import to_query_string
from .session import SessionDriver, extract_query_id
from .sync import AsyncSyncBridge, fetch_locations_sync, fetch_measurements_sync

__all__ = [
    # Client and configuration
    "ScotAQClient",
    "ClientConfig",
    # Query wizard and table decoding
    "SessionDriver",
    "extract_query_id",
    "to_query_string",
    "TableDecoder",
    "DecodedTable",
    # Models
    "Location",
    "QuerySession",
    "ColumnGroup",
    "ColumnKind",
    "TableColumn",
    "MeasurementRecord",
    "LocationFailure",
    "FetchResult",
    "Parameter",
    "PARAMETERS",
    # Exceptions
    "ScotAQError",
    "NetworkError",
    "RequestTimeoutError",
    "ProtocolError",
    "LayoutError",
    "FormatError",
    # Async functions
    "fetch_locations",
    "fetch_location_measurements",
    "fetch_location_table",
    "fetch_measurements",
    # Sync functions
    "AsyncSyncBridge",
    "fetch_locations_sync",
    "fetch_measurements_sync",
]
