"""
dClimate Client - A Python package for loading dClimate geospatial datasets.

This package resolves dataset requests (organization, collection, dataset,
variant) to content identifiers through the dClimate STAC catalog, opens the
Zarr stores behind them from IPFS as xarray datasets, and provides point,
multi-point, circle, rectangle and time-range selections over the result.

Key Features:
- Multi-source resolution: explicit CID, STAC server, IPFS catalog, legacy map
- In-memory catalog cache with a configurable lifetime
- Automatic concatenation of finalized and provisional variants
- Great-circle and bounding-box spatial selection
- Time ranges accepted as strings, datetimes or numbers

Quick Start:
    >>> import dclimate_client as dc
    >>> ds = dc.open_dclimate_dataset("2m_temperature", collection="era5", variant="finalized")
    >>>
    >>> # Async interface with selections
    >>> async with dc.DClimateClient() as client:
    ...     view, metadata = await client.load_dataset(
    ...         dc.DatasetRequest("2m_temperature", collection="era5", variant="finalized"))
    ...     nyc = view.circle(40.7128, -74.0060, radius_km=50)
"""

__version__ = "0.1.0"
__author__ = "dClimate Client Development Team"

# Import main interface
from .client import (
    DClimateClient,
    open_dclimate_dataset,
)
from .geotemporal import GeoTemporalDataset

# Import catalog resolution
from .catalog import (
    CatalogResolver,
    CatalogCache,
    LegacyCatalog,
    get_dataset_endpoint,
    list_dataset_keys,
)

# Import parameter and result classes
from .core.core_types import (
    DatasetRequest,
    LoadOptions,
    PointOptions,
    TimeRange,
    PointSelection,
    GeoSelection,
    ResolvedSource,
    ResolutionMethod,
    DatasetMetadata,
    CidSource,
    EndpointSource,
    ConcatenableVariant,
    CatalogCollectionEntry,
    CatalogDatasetEntry,
    DatasetVariantConfig,
)

# Import processing and utility functions
from .processing import concatenate_variants
from .utils import (
    haversine,
    get_coordinate_info,
    get_spatial_info,
    get_time_info,
    list_catalog_paths,
)

# Import configuration for advanced users
from .core.config import (
    DEFAULT_IPFS_GATEWAY,
    DEFAULT_STAC_SERVER_URL,
    DEFAULT_DATASET_API_ENDPOINT,
    DEFAULT_CATALOG_TTL_SECONDS,
    VARIANT_PREFERENCE,
)

# Import exceptions for error handling
from .core.exceptions import (
    DClimateClientError,
    DatasetNotFoundError,
    OrganizationNotFoundError,
    CollectionNotFoundError,
    VariantNotFoundError,
    AmbiguousResolutionError,
    VariantRequiredAmbiguousError,
    CatalogUnavailableError,
    ResolutionCancelledError,
    InvalidSelectionError,
    NoDataFoundError,
    ConcatenationError,
    EmptyVariantSetError,
    MissingCoordinateDimensionError,
)

# Import logging configuration
from .core.logging_config import setup_logging, set_log_level

# Define what gets imported with "from dclimate_client import *"
__all__ = [
    # Version info
    '__version__',

    # Main interface
    'DClimateClient',
    'open_dclimate_dataset',
    'GeoTemporalDataset',

    # Catalog resolution
    'CatalogResolver',
    'CatalogCache',
    'LegacyCatalog',
    'get_dataset_endpoint',
    'list_dataset_keys',

    # Parameter and result classes
    'DatasetRequest',
    'LoadOptions',
    'PointOptions',
    'TimeRange',
    'PointSelection',
    'GeoSelection',
    'ResolvedSource',
    'ResolutionMethod',
    'DatasetMetadata',
    'CidSource',
    'EndpointSource',
    'ConcatenableVariant',
    'CatalogCollectionEntry',
    'CatalogDatasetEntry',
    'DatasetVariantConfig',

    # Processing and utility functions
    'concatenate_variants',
    'haversine',
    'get_coordinate_info',
    'get_spatial_info',
    'get_time_info',
    'list_catalog_paths',

    # Configuration constants
    'DEFAULT_IPFS_GATEWAY',
    'DEFAULT_STAC_SERVER_URL',
    'DEFAULT_DATASET_API_ENDPOINT',
    'DEFAULT_CATALOG_TTL_SECONDS',
    'VARIANT_PREFERENCE',

    # Exception classes
    'DClimateClientError',
    'DatasetNotFoundError',
    'OrganizationNotFoundError',
    'CollectionNotFoundError',
    'VariantNotFoundError',
    'AmbiguousResolutionError',
    'VariantRequiredAmbiguousError',
    'CatalogUnavailableError',
    'ResolutionCancelledError',
    'InvalidSelectionError',
    'NoDataFoundError',
    'ConcatenationError',
    'EmptyVariantSetError',
    'MissingCoordinateDimensionError',

    # Logging configuration
    'setup_logging',
    'set_log_level',
]

import logging
_logger = logging.getLogger(__name__)
_logger.addHandler(logging.NullHandler())
