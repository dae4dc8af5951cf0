"""
dClimate Client Catalog Resolution

This package resolves dataset requests to content identifiers through the
STAC server, the IPFS-hosted STAC catalog and the legacy flat map.
"""

# Resolver
from .resolver import (
    CatalogResolver,
    Resolution,
    build_catalog_listing,
    concatenable_variants_in_catalog,
    locate_collection,
    resolve_in_catalog,
    select_variant_item,
)

# Catalog tree
from .cache import CatalogCache
from .schema import (
    CatalogOrganization,
    StacCatalog,
    StacCollection,
    StacItem,
    StacLink,
    parse_item_id,
)
from .stac_loader import StacCatalogLoader, load_stac_catalog, resolve_ipfs_uri
from .stac_server import resolve_from_stac_server

# Legacy map
from .legacy import (
    LegacyCatalog,
    build_candidate_keys,
    get_dataset_endpoint,
    list_dataset_keys,
    resolve_variant_source,
)

# HTTP
from .http import create_http_client

__all__ = [
    # Resolver
    "CatalogResolver",
    "Resolution",
    "build_catalog_listing",
    "concatenable_variants_in_catalog",
    "locate_collection",
    "resolve_in_catalog",
    "select_variant_item",
    # Catalog tree
    "CatalogCache",
    "CatalogOrganization",
    "StacCatalog",
    "StacCollection",
    "StacItem",
    "StacLink",
    "parse_item_id",
    "StacCatalogLoader",
    "load_stac_catalog",
    "resolve_ipfs_uri",
    "resolve_from_stac_server",
    # Legacy map
    "LegacyCatalog",
    "build_candidate_keys",
    "get_dataset_endpoint",
    "list_dataset_keys",
    "resolve_variant_source",
    # HTTP
    "create_http_client",
]
