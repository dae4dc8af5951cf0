"""
dClimate Client Legacy Dataset Map

Flat, case-insensitive ``name -> source`` table for historical dataset keys
that predate the STAC catalog. A source is either a CID or an HTTP endpoint
answering ``{"cid": ...}``.
"""

import asyncio
import logging
from typing import Dict, List, Mapping, Optional, Tuple

import httpx

from ..core.config import DEFAULT_DATASET_API_ENDPOINT, ITEM_ID_SEPARATOR, LEGACY_DATASET_KEYS
from ..core.core_types import CidSource, DatasetRequest, EndpointSource, VariantSource, normalize_segment
from ..core.exceptions import DatasetNotFoundError
from .http import fetch_cid

logger = logging.getLogger('dclimate_client.catalog.legacy')

# ============================================================================
# Historical Endpoint Registry
# ============================================================================

def list_dataset_keys() -> List[str]:
    """Keys served by the historical per-dataset lookup endpoints."""
    return list(LEGACY_DATASET_KEYS)


def get_dataset_endpoint(key: str, base_url: str = DEFAULT_DATASET_API_ENDPOINT) -> Optional[str]:
    """
    Lookup endpoint for a historical dataset key.

    Returns:
        str or None: ``{base_url}/{key}``, or None for an unknown key

    Examples:
        >>> get_dataset_endpoint("ifs-precip").endswith("/ifs-precip")
        True
        >>> get_dataset_endpoint("nope") is None
        True
    """
    normalized = key.strip().lower()
    if normalized not in LEGACY_DATASET_KEYS:
        return None
    return f"{base_url.rstrip('/')}/{normalized}"


def default_legacy_entries(base_url: str = DEFAULT_DATASET_API_ENDPOINT) -> Dict[str, VariantSource]:
    return {key: EndpointSource(get_dataset_endpoint(key, base_url)) for key in LEGACY_DATASET_KEYS}

# ============================================================================
# Candidate Keys
# ============================================================================

def _normalize_path(value: str) -> str:
    return value.strip().strip("/").lower()


def build_candidate_keys(request: DatasetRequest) -> List[str]:
    """
    Keys a request may be registered under, most general first.

    Order: dataset, collection-dataset, dataset-variant,
    collection-dataset-variant. A dataset already carrying the collection
    prefix is not prefixed again.

    Examples:
        >>> build_candidate_keys(DatasetRequest("precip", collection="ifs", variant="final"))
        ['precip', 'ifs-precip', 'precip-final', 'ifs-precip-final']
    """
    dataset = request.dataset_slug
    collection = normalize_segment(request.collection) if request.collection else None
    variant = normalize_segment(request.variant) if request.variant else None

    with_collection = None
    if collection:
        prefix = f"{collection}{ITEM_ID_SEPARATOR}"
        with_collection = dataset if dataset.startswith(prefix) else prefix + dataset

    raw_candidates = [dataset, with_collection]
    if variant:
        raw_candidates.append(f"{dataset}{ITEM_ID_SEPARATOR}{variant}")
        if with_collection:
            raw_candidates.append(f"{with_collection}{ITEM_ID_SEPARATOR}{variant}")

    candidates: List[str] = []
    for candidate in raw_candidates:
        if not candidate:
            continue
        normalized = _normalize_path(candidate)
        if normalized and normalized not in candidates:
            candidates.append(normalized)
    return candidates

# ============================================================================
# Legacy Catalog
# ============================================================================

class LegacyCatalog:
    """
    Case-insensitive flat dataset map.

    Args:
        entries: ``name -> VariantSource`` (or bare CID strings); the
            historical endpoint registry is used when omitted
    """

    def __init__(self, entries: Optional[Mapping[str, object]] = None):
        if entries is None:
            entries = default_legacy_entries()
        self._entries: Dict[str, VariantSource] = {}
        for key, source in entries.items():
            if isinstance(source, str):
                source = CidSource(source)
            if not isinstance(source, (CidSource, EndpointSource)):
                raise TypeError(f"Unsupported legacy source for '{key}': {source!r}")
            self._entries[key.strip().lower()] = source

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key.strip().lower() in self._entries

    def keys(self) -> List[str]:
        return list(self._entries)

    def get(self, key: str) -> Optional[VariantSource]:
        return self._entries.get(key.strip().lower())

    def lookup(self, request: DatasetRequest) -> Optional[Tuple[str, VariantSource]]:
        """First (key, source) matching the request's candidate keys, if any."""
        for candidate in build_candidate_keys(request):
            source = self._entries.get(candidate)
            if source is not None:
                logger.debug("Legacy map hit: %s", candidate)
                return candidate, source
        return None


async def resolve_variant_source(
    source: VariantSource,
    client: httpx.AsyncClient,
    cancel_event: Optional[asyncio.Event] = None,
) -> str:
    """
    Turn a VariantSource into a CID.

    Raises:
        httpx.HTTPError, ValueError: Endpoint lookup failed
        TypeError: Unknown source type
    """
    if isinstance(source, CidSource):
        return source.cid
    if isinstance(source, EndpointSource):
        return await fetch_cid(client, source.url, cancel_event=cancel_event)
    raise TypeError(f"Unsupported variant source: {source!r}")


def legacy_not_found(request: DatasetRequest, catalog: LegacyCatalog) -> DatasetNotFoundError:
    candidates = build_candidate_keys(request)
    return DatasetNotFoundError(
        f'Dataset "{request.dataset}" could not be resolved from catalog '
        f"(tried: {', '.join(candidates)}).",
        sorted(catalog.keys()),
    )
