"""
dClimate Client Catalog Resolver

This module turns a DatasetRequest into a content identifier. Sources are
consulted in a fixed order:

1. Explicit CID on the request: no lookups at all.
2. Auto-concatenation (opt-in, no variant given): when two or more items of
   the dataset carry concatenation metadata, they are returned as a list
   of ConcatenableVariant for the caller to merge.
3. STAC server search: a latency shortcut for requests that name no
   organization; every failure falls through.
4. Hierarchical STAC catalog on IPFS: authoritative, with descriptive
   not-found / ambiguity errors.
5. Legacy flat map: used for requests without a collection, and as a last
   resort when the hierarchical catalog misses or is unavailable.
"""

import asyncio
import logging
import time
from typing import Dict, List, Optional, Tuple, Union

import httpx

from ..core.config import (
    DEFAULT_CATALOG_TTL_SECONDS,
    DEFAULT_IPFS_GATEWAY,
    DEFAULT_STAC_SERVER_URL,
    VARIANT_PREFERENCE,
)
from ..core.core_types import (
    CatalogCollectionEntry,
    CatalogDatasetEntry,
    CatalogListing,
    ConcatenableVariant,
    DatasetRequest,
    DatasetVariantConfig,
    ResolutionMethod,
    ResolvedSource,
    build_path,
    normalize_segment,
)
from ..core.exceptions import (
    CatalogUnavailableError,
    CollectionNotFoundError,
    DatasetNotFoundError,
    OrganizationNotFoundError,
    ResolutionCancelledError,
    VariantNotFoundError,
    VariantRequiredAmbiguousError,
)
from .cache import CatalogCache, Clock
from .http import create_http_client
from .legacy import LegacyCatalog, legacy_not_found, resolve_variant_source
from .schema import CatalogOrganization, StacCatalog, StacCollection, StacItem
from .stac_loader import StacCatalogLoader
from .stac_server import resolve_from_stac_server

logger = logging.getLogger('dclimate_client.catalog.resolver')

Resolution = Union[ResolvedSource, List[ConcatenableVariant]]

# Failures of the STAC server lookup that demote to the next source
_FAST_PATH_ERRORS = (httpx.HTTPError, ValueError, TypeError, LookupError, DatasetNotFoundError)

# ============================================================================
# Catalog Tree Queries
# ============================================================================

def locate_collection(
    catalog: StacCatalog,
    collection: str,
    organization: Optional[str] = None,
) -> Tuple[Optional[CatalogOrganization], StacCollection]:
    """
    Find a collection and the organization that owns it.

    Without an explicit organization, owners declaring the collection (or a
    dataset slug prefixed with it) are tried first, then every loaded
    collection including those linked directly from the root.

    Raises:
        OrganizationNotFoundError: Named organization absent
        CollectionNotFoundError: Collection absent (lists available ids)
    """
    if organization:
        org = catalog.find_organization(organization)
        if org is None:
            raise OrganizationNotFoundError(organization, catalog.organization_ids())
        for candidate in org.collections:
            if candidate.id == collection:
                return org, candidate
        raise CollectionNotFoundError(collection, org.collection_ids())

    for org in catalog.organizations:
        if not org.owns_collection(collection):
            continue
        for candidate in org.collections:
            if candidate.id == collection:
                return org, candidate

    for org, candidate in catalog.iter_collections():
        if candidate.id == collection:
            return org, candidate

    raise CollectionNotFoundError(collection, catalog.collection_ids())


def select_variant_item(items: List[StacItem], variant: Optional[str], path: str) -> StacItem:
    """
    Choose one item among the variants of a dataset.

    A requested variant must match exactly. Otherwise a lone item wins,
    then the first variant in VARIANT_PREFERENCE that exists.

    Raises:
        VariantNotFoundError: Requested variant absent
        VariantRequiredAmbiguousError: Several variants, none preferred
    """
    available = [item.variant for item in items]
    if variant:
        for item in items:
            if item.variant == variant:
                return item
        raise VariantNotFoundError(variant, path, available)

    if len(items) == 1:
        return items[0]

    for preferred in VARIANT_PREFERENCE:
        for item in items:
            if item.variant == preferred:
                return item

    raise VariantRequiredAmbiguousError(path, available)


def resolve_in_catalog(catalog: StacCatalog, request: DatasetRequest) -> ResolvedSource:
    """
    Resolve a request against a loaded catalog tree.

    Args:
        catalog: Loaded tree
        request: Request with at least a collection and dataset

    Returns:
        ResolvedSource: Result tagged ``hierarchical_catalog``

    Raises:
        DatasetNotFoundError: Organization, collection, dataset or variant absent
        VariantRequiredAmbiguousError: No variant given and none preferred
    """
    collection_id = normalize_segment(request.collection)
    dataset = request.dataset_slug
    variant = normalize_segment(request.variant) if request.variant else None
    organization = normalize_segment(request.organization) if request.organization else None

    owner, collection = locate_collection(catalog, collection_id, organization)

    items = collection.items_for(dataset)
    if not items:
        raise DatasetNotFoundError(
            f'Dataset "{dataset}" not found in collection "{collection.id}".',
            collection.dataset_names(),
        )

    item = select_variant_item(items, variant, build_path(collection.id, dataset))
    if not item.cid:
        raise DatasetNotFoundError(f'No data asset found for item "{item.id}"')

    return ResolvedSource(
        cid=item.cid,
        collection=collection.id,
        dataset=dataset,
        variant=item.variant,
        method=ResolutionMethod.HIERARCHICAL_CATALOG,
        path=build_path(collection.id, dataset, item.variant),
        organization=owner.id if owner else None,
    )


def concatenable_variants_in_catalog(
    catalog: StacCatalog,
    collection: str,
    dataset: str,
    organization: Optional[str] = None,
) -> List[ConcatenableVariant]:
    """Items of a dataset that carry concatenation metadata and a CID."""
    _, found = locate_collection(catalog, collection, organization)
    variants = []
    for item in found.items_for(dataset):
        if not item.has_concat_metadata or not item.cid:
            continue
        variants.append(ConcatenableVariant(
            variant=item.variant,
            cid=item.cid,
            priority=item.concat_priority if item.concat_priority is not None else 0,
            dimension=item.dimension,
        ))
    return variants


def build_catalog_listing(catalog: StacCatalog) -> CatalogListing:
    """Group every collection's items by dataset, with their variants."""
    listing: CatalogListing = []
    for org, collection in catalog.iter_collections():
        datasets: Dict[str, CatalogDatasetEntry] = {}
        for item in collection.items:
            if not item.cid:
                continue
            entry = datasets.setdefault(item.dataset, CatalogDatasetEntry(dataset=item.dataset))
            entry.variants.append(DatasetVariantConfig(
                variant=item.variant,
                cid=item.cid,
                concat_priority=item.concat_priority,
                concat_dimension=item.concat_dimension,
            ))
        if datasets:
            listing.append(CatalogCollectionEntry(
                collection=collection.id,
                organization=org.id if org else None,
                datasets=list(datasets.values()),
            ))
    return listing

# ============================================================================
# Resolver
# ============================================================================

class CatalogResolver:
    """
    Multi-source dataset resolver with an instance-owned catalog cache.

    Args:
        gateway_url: IPFS gateway serving catalog documents
        stac_server_url: STAC server used for the fast lookup
        http_client: Shared async client; one is created (and owned) when omitted
        legacy_catalog: Flat fallback map; the historical endpoint registry by default
        cache: Catalog cache; built from ``cache_ttl``/``clock`` when omitted
        cache_ttl: Catalog lifetime in seconds
        clock: Monotonic time source for the cache
        use_fast_path: Query the STAC server before the full catalog

    Examples:
        >>> async with CatalogResolver() as resolver:
        ...     source = await resolver.resolve(
        ...         DatasetRequest("2m_temperature", collection="era5", variant="finalized"))
        >>> source.path
        'era5-2m_temperature-finalized'
    """

    def __init__(
        self,
        gateway_url: str = DEFAULT_IPFS_GATEWAY,
        stac_server_url: str = DEFAULT_STAC_SERVER_URL,
        http_client: Optional[httpx.AsyncClient] = None,
        legacy_catalog: Optional[LegacyCatalog] = None,
        cache: Optional[CatalogCache] = None,
        cache_ttl: float = DEFAULT_CATALOG_TTL_SECONDS,
        clock: Clock = time.monotonic,
        use_fast_path: bool = True,
    ):
        self.gateway_url = gateway_url.rstrip("/")
        self.stac_server_url = stac_server_url.rstrip("/")
        self._owns_client = http_client is None
        self.http_client = http_client if http_client is not None else create_http_client()
        self.legacy_catalog = legacy_catalog if legacy_catalog is not None else LegacyCatalog()
        self.cache = cache if cache is not None else CatalogCache(cache_ttl, clock)
        self.use_fast_path = use_fast_path

    async def aclose(self) -> None:
        if self._owns_client:
            await self.http_client.aclose()

    async def __aenter__(self) -> "CatalogResolver":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # ------------------------------------------------------------------------
    # Catalog access
    # ------------------------------------------------------------------------

    async def get_catalog(
        self,
        gateway_url: Optional[str] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> StacCatalog:
        """Cached catalog tree for a gateway, loading it on a miss or after expiry."""
        gateway = (gateway_url or self.gateway_url).rstrip("/")
        catalog = self.cache.get(gateway)
        if catalog is not None:
            logger.debug("Using cached STAC catalog for %s", gateway)
            return catalog

        catalog = await StacCatalogLoader(self.http_client, gateway).load(cancel_event=cancel_event)
        self.cache.set(gateway, catalog)
        return catalog

    async def list_available_datasets(
        self,
        gateway_url: Optional[str] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> CatalogListing:
        """Every collection, dataset and variant in the hierarchical catalog."""
        catalog = await self.get_catalog(gateway_url, cancel_event)
        return build_catalog_listing(catalog)

    async def get_concatenable_variants(
        self,
        request: DatasetRequest,
        gateway_url: Optional[str] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> List[ConcatenableVariant]:
        """Variants of the requested dataset carrying concatenation metadata."""
        if not request.collection:
            return []
        catalog = await self.get_catalog(gateway_url, cancel_event)
        return concatenable_variants_in_catalog(
            catalog,
            normalize_segment(request.collection),
            request.dataset_slug,
            normalize_segment(request.organization) if request.organization else None,
        )

    # ------------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------------

    async def resolve(
        self,
        request: DatasetRequest,
        *,
        auto_concatenate: bool = False,
        gateway_url: Optional[str] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> Resolution:
        """
        Resolve a request to a ResolvedSource, or to concatenable variants.

        Args:
            request: What the caller wants
            auto_concatenate: Look for concatenable variants when no variant is given
            gateway_url: Gateway override for this call
            cancel_event: Aborts pending fetches when set

        Returns:
            ResolvedSource, or a list of two or more ConcatenableVariant

        Raises:
            DatasetNotFoundError: Nothing matched (lists valid alternatives)
            VariantRequiredAmbiguousError: Several variants, none preferred
            CatalogUnavailableError: Catalog unreachable and no legacy entry
            ResolutionCancelledError: ``cancel_event`` was set
        """
        dataset = request.dataset_slug
        if not dataset:
            raise DatasetNotFoundError("Dataset name must be provided.")

        if request.cid:
            logger.debug("Using explicit CID %s for %s", request.cid, dataset)
            return ResolvedSource(
                cid=request.cid,
                collection=request.collection or "",
                dataset=request.dataset,
                variant=request.variant or "",
                method=ResolutionMethod.EXPLICIT,
                path=dataset,
                organization=request.organization,
            )

        if auto_concatenate and not request.variant and request.collection:
            variants = await self._try_concatenable(request, gateway_url, cancel_event)
            if len(variants) >= 2:
                logger.info(
                    "Found %d concatenable variants for %s",
                    len(variants), build_path(normalize_segment(request.collection), dataset)
                )
                return variants

        if not request.collection:
            hit = await self._resolve_legacy(request, cancel_event)
            if hit is None:
                raise legacy_not_found(request, self.legacy_catalog)
            return hit

        # The search API cannot confirm which organization owns a collection
        if self.use_fast_path and not request.organization:
            fast = await self._try_fast_path(request, cancel_event)
            if fast is not None:
                return fast

        try:
            catalog = await self.get_catalog(gateway_url, cancel_event)
            return resolve_in_catalog(catalog, request)
        except (DatasetNotFoundError, CatalogUnavailableError) as e:
            hit = await self._resolve_legacy(request, cancel_event)
            if hit is not None:
                logger.info("Resolved %s from legacy map after: %s", dataset, e.message)
                return hit
            raise

    async def _try_concatenable(self, request, gateway_url, cancel_event) -> List[ConcatenableVariant]:
        try:
            return await self.get_concatenable_variants(request, gateway_url, cancel_event)
        except (DatasetNotFoundError, CatalogUnavailableError) as e:
            logger.info("Auto-concatenation lookup failed, resolving a single variant: %s", e.message)
            return []

    async def _try_fast_path(self, request, cancel_event) -> Optional[ResolvedSource]:
        collection = normalize_segment(request.collection)
        try:
            return await resolve_from_stac_server(
                self.http_client,
                collection,
                request.dataset_slug,
                normalize_segment(request.variant) if request.variant else None,
                server_url=self.stac_server_url,
                cancel_event=cancel_event,
            )
        except ResolutionCancelledError:
            raise
        except _FAST_PATH_ERRORS as e:
            logger.debug("STAC server lookup failed, falling back to catalog: %s", e)
            return None

    async def _resolve_legacy(self, request, cancel_event) -> Optional[ResolvedSource]:
        hit = self.legacy_catalog.lookup(request)
        if hit is None:
            return None
        key, source = hit
        try:
            cid = await resolve_variant_source(source, self.http_client, cancel_event)
        except (httpx.HTTPError, ValueError) as e:
            raise CatalogUnavailableError(
                f'Unable to retrieve CID for dataset key "{key}"', e
            ) from e

        return ResolvedSource(
            cid=cid,
            collection=normalize_segment(request.collection) if request.collection else "",
            dataset=request.dataset_slug,
            variant=normalize_segment(request.variant) if request.variant else "",
            method=ResolutionMethod.LEGACY_MAP,
            path=key,
            organization=normalize_segment(request.organization) if request.organization else None,
        )
