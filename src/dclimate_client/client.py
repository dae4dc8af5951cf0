"""
dClimate Client Main Interface

This module provides the DClimateClient facade: resolve a dataset request
through the catalog, open the store(s) behind it, merge concatenable
variants and hand back a GeoTemporalDataset with its metadata. A blocking
``open_dclimate_dataset`` helper covers scripts that do not run an event
loop.
"""

import asyncio
import dataclasses
import logging
import time
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple, Union
import httpx
import xarray as xr

from .catalog import CatalogResolver, LegacyCatalog
from .catalog.cache import Clock
from .core.config import (
    DEFAULT_CATALOG_TTL_SECONDS,
    DEFAULT_IPFS_GATEWAY,
    DEFAULT_STAC_SERVER_URL,
)
from .core.core_types import (
    CatalogListing,
    ConcatenableVariant,
    DatasetMetadata,
    DatasetRequest,
    GeoSelection,
    LoadOptions,
    ResolutionMethod,
    build_path,
    normalize_segment,
)
from .core.exceptions import DatasetNotFoundError
from .geotemporal import GeoTemporalDataset
from .io.dataset_loader import CID_ATTR, DatasetOpener, open_dataset_async, open_dataset_from_cid
from .processing import concatenate_variants, sort_by_priority

logger = logging.getLogger('dclimate_client.client')

LoadResult = Tuple[Union[GeoTemporalDataset, xr.Dataset], DatasetMetadata]

CONCATENATED_CID = "concatenated"


def _now() -> datetime:
    return datetime.now(timezone.utc)

# ============================================================================
# Client
# ============================================================================

class DClimateClient:
    """
    Entry point for loading dClimate datasets.

    Args:
        gateway_url: IPFS gateway for catalog documents and Zarr stores
        stac_server_url: STAC server used for fast CID lookups
        resolver: Pre-built resolver; built from the remaining arguments when omitted
        http_client: Async HTTP client shared with the resolver
        opener: Blocking ``(cid, gateway_url) -> xr.Dataset`` callable
        legacy_catalog: Flat fallback map for historical dataset keys
        cache_ttl: Catalog cache lifetime in seconds
        clock: Monotonic time source for the catalog cache
        use_fast_path: Query the STAC server before the full catalog

    Examples:
        >>> async with DClimateClient() as client:
        ...     view, metadata = await client.load_dataset(
        ...         DatasetRequest("2m_temperature", collection="era5", variant="finalized"))
        ...     series = view.point(40.7128, -74.0060)
    """

    def __init__(
        self,
        gateway_url: str = DEFAULT_IPFS_GATEWAY,
        stac_server_url: str = DEFAULT_STAC_SERVER_URL,
        *,
        resolver: Optional[CatalogResolver] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        opener: DatasetOpener = open_dataset_from_cid,
        legacy_catalog: Optional[LegacyCatalog] = None,
        cache_ttl: float = DEFAULT_CATALOG_TTL_SECONDS,
        clock: Clock = time.monotonic,
        use_fast_path: bool = True,
    ):
        self.gateway_url = gateway_url.rstrip("/")
        self.opener = opener
        self._owns_resolver = resolver is None
        self.resolver = resolver if resolver is not None else CatalogResolver(
            gateway_url=self.gateway_url,
            stac_server_url=stac_server_url,
            http_client=http_client,
            legacy_catalog=legacy_catalog,
            cache_ttl=cache_ttl,
            clock=clock,
            use_fast_path=use_fast_path,
        )

    async def aclose(self) -> None:
        if self._owns_resolver:
            await self.resolver.aclose()

    async def __aenter__(self) -> "DClimateClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # ========================================================================
    # Catalog
    # ========================================================================

    async def list_available_datasets(self, gateway_url: Optional[str] = None) -> CatalogListing:
        """Every collection, dataset and variant in the STAC catalog."""
        return await self.resolver.list_available_datasets(gateway_url or self.gateway_url)

    # ========================================================================
    # Loading
    # ========================================================================

    async def load_dataset(
        self,
        request: DatasetRequest,
        options: Optional[LoadOptions] = None,
    ) -> LoadResult:
        """
        Resolve and open a dataset.

        Args:
            request: Dataset to load
            options: CID override, gateway override, auto-concatenation,
                bare xarray return and cancellation

        Returns:
            Tuple: (GeoTemporalDataset or xr.Dataset, DatasetMetadata)

        Raises:
            DatasetNotFoundError: Nothing matched the request
            VariantRequiredAmbiguousError: Several variants, none preferred
            CatalogUnavailableError: Catalog unreachable and no fallback
            ResolutionCancelledError: ``options.cancel_event`` was set
            ConcatenationError: Variants could not be merged

        Examples:
            >>> view, metadata = await client.load_dataset(
            ...     DatasetRequest("2m_temperature", collection="era5"),
            ...     LoadOptions(auto_concatenate=True))
            >>> metadata.concatenated_variants
            ('finalized', 'non-finalized')
        """
        options = options or LoadOptions()
        if not request.dataset_slug:
            raise DatasetNotFoundError("Dataset name must be provided.")

        gateway = options.effective_gateway(self.gateway_url)
        if options.cid and not request.cid:
            request = dataclasses.replace(request, cid=options.cid)

        resolution = await self.resolver.resolve(
            request,
            auto_concatenate=options.auto_concatenate,
            gateway_url=gateway,
            cancel_event=options.cancel_event,
        )

        if isinstance(resolution, list):
            dataset, metadata = await self._load_and_concatenate_variants(
                request, resolution, gateway
            )
        else:
            logger.info("Resolved %s via %s: %s", resolution.path, resolution.method.value, resolution.cid)
            dataset = await open_dataset_async(resolution.cid, gateway, self.opener)
            metadata = DatasetMetadata.from_resolved(resolution, fetched_at=_now())

        if options.return_xarray:
            return dataset, metadata
        return GeoTemporalDataset(dataset, metadata), metadata

    async def select_dataset(
        self,
        request: DatasetRequest,
        selection: GeoSelection,
        options: Optional[LoadOptions] = None,
    ) -> LoadResult:
        """
        Load a dataset and apply a point and/or time-range selection.

        The selection follows GeoTemporalDataset.select, including its
        point-only fallback.
        """
        options = options or LoadOptions()
        view_options = dataclasses.replace(options, return_xarray=False)
        view, metadata = await self.load_dataset(request, view_options)
        selected = view.select(selection)
        if options.return_xarray:
            return selected.data, metadata
        return selected, metadata

    async def _load_and_concatenate_variants(
        self,
        request: DatasetRequest,
        variants: Sequence[ConcatenableVariant],
        gateway_url: str,
    ) -> Tuple[xr.Dataset, DatasetMetadata]:
        """Open every variant concurrently and merge them in priority order."""
        logger.info(
            "Loading %d variants for concatenation: %s",
            len(variants), ", ".join(v.variant for v in variants)
        )
        datasets = await asyncio.gather(
            *(open_dataset_async(v.cid, gateway_url, self.opener) for v in variants)
        )
        pairs = list(zip(variants, datasets))
        ordered: List[str] = [config.variant for config, _ in sort_by_priority(pairs)]
        combined = concatenate_variants(pairs)

        collection = normalize_segment(request.collection) if request.collection else None
        dataset = request.dataset_slug
        metadata = DatasetMetadata(
            dataset=dataset,
            path=build_path(collection, dataset),
            cid=combined.attrs.get(CID_ATTR) or CONCATENATED_CID,
            source=ResolutionMethod.CONCATENATED.value,
            fetched_at=_now(),
            collection=collection,
            variant=None,
            organization=normalize_segment(request.organization) if request.organization else None,
            concatenated_variants=tuple(ordered),
        )
        return combined, metadata

# ============================================================================
# Blocking Convenience Function
# ============================================================================

def open_dclimate_dataset(
    dataset: str,
    *,
    collection: Optional[str] = None,
    variant: Optional[str] = None,
    organization: Optional[str] = None,
    cid: Optional[str] = None,
    gateway_url: str = DEFAULT_IPFS_GATEWAY,
    auto_concatenate: bool = False,
) -> xr.Dataset:
    """
    Load a dataset as a plain ``xr.Dataset`` without managing an event loop.

    Must not be called from inside a running event loop; use
    ``DClimateClient.load_dataset`` there.

    Examples:
        >>> ds = open_dclimate_dataset("2m_temperature", collection="era5", variant="finalized")

        >>> # Merge finalized and provisional data into one series
        >>> ds = open_dclimate_dataset("2m_temperature", collection="era5", auto_concatenate=True)
    """
    request = DatasetRequest(
        dataset=dataset,
        collection=collection,
        variant=variant,
        organization=organization,
        cid=cid,
    )
    options = LoadOptions(auto_concatenate=auto_concatenate, return_xarray=True)

    async def _run() -> xr.Dataset:
        async with DClimateClient(gateway_url) as client:
            ds, _ = await client.load_dataset(request, options)
            return ds

    return asyncio.run(_run())
