"""
dClimate Client Configuration and Constants

This module centralizes all configuration parameters, constants, and default values
for better maintainability and consistency across the codebase.
"""

import os

# ============================================================================
# Network Endpoints
# ============================================================================

# Users can override each endpoint via environment variables
DEFAULT_IPFS_GATEWAY = os.environ.get(
    "DCLIMATE_IPFS_GATEWAY", "https://ipfs-gateway.dclimate.net"
).rstrip("/")

DEFAULT_STAC_SERVER_URL = os.environ.get(
    "DCLIMATE_STAC_SERVER_URL", "https://api.stac.dclimate.net"
).rstrip("/")

# Base of the historical per-dataset lookup endpoints ({base}/{dataset_key})
DEFAULT_DATASET_API_ENDPOINT = os.environ.get(
    "DCLIMATE_DATASET_API_ENDPOINT", f"{DEFAULT_IPFS_GATEWAY}/datasets"
).rstrip("/")

# Path on the gateway that returns {"cid": <root catalog cid>}
STAC_ROOT_PATH = "stac"

IPFS_SCHEME = "ipfs://"

# ============================================================================
# Network Behaviour
# ============================================================================

DEFAULT_HTTP_TIMEOUT = 30.0
DEFAULT_CATALOG_TTL_SECONDS = 3600.0
STAC_SEARCH_LIMIT = 100

# ============================================================================
# Catalog Conventions
# ============================================================================

# Item ids follow {collection}-{dataset}-{variant}
ITEM_ID_SEPARATOR = "-"
DEFAULT_VARIANT_NAME = "default"
DATA_ASSET_KEY = "data"

# Preferred variant when the caller does not name one
VARIANT_PREFERENCE = ("default", "final", "finalized", "latest")

# Vendor keys found on STAC links and item properties
STAC_KEY_ID = "dclimate:id"
STAC_KEY_COLLECTIONS = "dclimate:collections"
STAC_KEY_DATASETS = "dclimate:datasets"
STAC_KEY_VARIANT = "dclimate:variant"
STAC_KEY_CONCAT_PRIORITY = "dclimate:concatPriority"
STAC_KEY_CONCAT_DIMENSION = "dclimate:concatDimension"

# ============================================================================
# Dimension Names
# ============================================================================

LAT_DIM = "latitude"
LON_DIM = "longitude"
TIME_DIM = "time"
POINT_DIM = "point"
DEFAULT_CONCAT_DIM = TIME_DIM

LATITUDE_ALIASES = (LAT_DIM, "lat", "y")
LONGITUDE_ALIASES = (LON_DIM, "lon", "lng", "x")
TIME_ALIASES = (TIME_DIM, "t", "date", "datetime")

# ============================================================================
# Geometry
# ============================================================================

EARTH_RADIUS_KM = 6371.0
LATITUDE_BOUNDS = (-90.0, 90.0)
LONGITUDE_BOUNDS = (-180.0, 180.0)

# Only the native WGS84 system is supported for point input
DEFAULT_EPSG = 4326
DEFAULT_POINT_TOLERANCE = 10e-5

# ============================================================================
# Historical Dataset Keys
# ============================================================================

# Flat keys served by per-dataset lookup endpoints before the STAC catalog
LEGACY_DATASET_KEYS = (
    "fpar",
    "aifs-single-precip",
    "aifs-single-temperature",
    "aifs-single-wind-u",
    "aifs-single-wind-v",
    "aifs-single-solar-radiation",
    "aifs-ensemble-precip",
    "aifs-ensemble-temperature",
    "aifs-ensemble-wind-u",
    "aifs-ensemble-wind-v",
    "aifs-ensemble-solar-radiation",
    "ifs-precip",
    "ifs-temperature",
    "ifs-wind-u",
    "ifs-wind-v",
    "ifs-soil-moisture-l3",
    "ifs-solar-radiation",
)

# ============================================================================
# Helper Functions
# ============================================================================

def gateway_ipfs_url(cid: str, gateway_url: str = DEFAULT_IPFS_GATEWAY) -> str:
    """Build the HTTP URL serving ``cid`` through ``gateway_url``."""
    return f"{gateway_url.rstrip('/')}/ipfs/{cid}"


def strip_ipfs_scheme(href: str) -> str:
    """Remove a leading ``ipfs://`` from an asset href."""
    if href.startswith(IPFS_SCHEME):
        return href[len(IPFS_SCHEME):]
    return href
