"""
dClimate Client Type Definitions and Data Classes

This module defines all data structures and type aliases used throughout the codebase
for better type safety and code clarity.
"""

from __future__ import annotations
import asyncio
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple, Union, List
import numpy as np

from .config import (
    DEFAULT_CONCAT_DIM, DEFAULT_IPFS_GATEWAY, LATITUDE_BOUNDS, LONGITUDE_BOUNDS,
)

# ============================================================================
# Type Aliases
# ============================================================================

TimeValue = Union[str, datetime, np.datetime64, int, float]
CoordinateValue = Union[str, int, float, datetime, np.datetime64]
LatLon = Tuple[float, float]

# ============================================================================
# Validation Utilities (Module Level)
# ============================================================================

def normalize_segment(value: str) -> str:
    """Lower-case, trim and underscore-join a catalog name segment."""
    return re.sub(r"\s+", "_", str(value).strip().lower())


def _validate_latitude(name: str, value: float) -> None:
    """Validate a single latitude value."""
    lo, hi = LATITUDE_BOUNDS
    if not lo <= value <= hi:
        raise ValueError(f"{name} must be between {lo} and {hi}, got {value}")


def _validate_longitude(name: str, value: float) -> None:
    """Validate a single longitude value."""
    lo, hi = LONGITUDE_BOUNDS
    if not lo <= value <= hi:
        raise ValueError(f"{name} must be between {lo} and {hi}, got {value}")

# ============================================================================
# Requests
# ============================================================================

@dataclass(frozen=True)
class DatasetRequest:
    """
    Logical request for a dataset.

    Attributes:
        dataset: Dataset name (e.g. "2m_temperature")
        collection: Collection id (e.g. "era5")
        variant: Variant name (e.g. "finalized"); resolved by preference when omitted
        organization: Organization owning the collection; discovered when omitted
        cid: Explicit content identifier, bypasses every catalog lookup
    """
    dataset: str
    collection: Optional[str] = None
    variant: Optional[str] = None
    organization: Optional[str] = None
    cid: Optional[str] = None

    @property
    def dataset_slug(self) -> str:
        return normalize_segment(self.dataset) if self.dataset else ""

# ============================================================================
# Resolution Results
# ============================================================================

class ResolutionMethod(str, Enum):
    """How a content identifier was found."""
    EXPLICIT = "explicit"
    FAST_PATH = "fast_path"
    HIERARCHICAL_CATALOG = "hierarchical_catalog"
    LEGACY_MAP = "legacy_map"
    CONCATENATED = "concatenated"


def build_path(*segments: Optional[str]) -> str:
    """Join the non-empty canonical segments into a catalog path."""
    return "-".join(s for s in segments if s)


@dataclass(frozen=True)
class ResolvedSource:
    """
    Immutable outcome of a catalog resolution.

    Attributes:
        cid: Content identifier of the dataset (never empty)
        collection: Canonical collection id
        dataset: Canonical dataset name
        variant: Canonical variant name ("" when not applicable)
        method: Resolution method that produced the CID
        path: Canonical slug, e.g. "era5-2m_temperature-finalized"
        organization: Canonical organization id, if known
    """
    cid: str
    collection: str
    dataset: str
    variant: str
    method: ResolutionMethod
    path: str
    organization: Optional[str] = None

    def __post_init__(self):
        if not self.cid:
            raise ValueError("ResolvedSource requires a non-empty cid")


@dataclass(frozen=True)
class CidSource:
    """Variant source addressed directly by content identifier."""
    cid: str


@dataclass(frozen=True)
class EndpointSource:
    """Variant source looked up through an HTTP endpoint returning {"cid": ...}."""
    url: str


VariantSource = Union[CidSource, EndpointSource]


@dataclass(frozen=True)
class ConcatenableVariant:
    """
    One variant taking part in auto-concatenation.

    Lower ``priority`` loads first and wins overlapping coordinate ranges.
    """
    variant: str
    cid: str
    priority: Optional[int] = 0
    dimension: str = DEFAULT_CONCAT_DIM

# ============================================================================
# Dataset Metadata
# ============================================================================

@dataclass(frozen=True)
class DatasetMetadata:
    """
    User-facing provenance for a loaded dataset.

    Created once at load time and shared, unchanged, by every derived view.
    """
    dataset: str
    path: str
    cid: str
    source: str
    fetched_at: datetime
    collection: Optional[str] = None
    variant: Optional[str] = None
    organization: Optional[str] = None
    concatenated_variants: Optional[Tuple[str, ...]] = None

    @classmethod
    def from_resolved(cls, resolved: ResolvedSource, fetched_at: datetime) -> "DatasetMetadata":
        return cls(
            dataset=resolved.dataset,
            path=resolved.path,
            cid=resolved.cid,
            source=resolved.method.value,
            fetched_at=fetched_at,
            collection=resolved.collection or None,
            variant=resolved.variant or None,
            organization=resolved.organization,
        )

# ============================================================================
# Selection Parameters
# ============================================================================

@dataclass(frozen=True)
class PointOptions:
    """
    Point query options.

    Attributes:
        method: "nearest" (default) or "exact"
        tolerance: Maximum coordinate distance accepted by the lookup
        latitude_key: Explicit latitude coordinate name
        longitude_key: Explicit longitude coordinate name
    """
    method: str = "nearest"
    tolerance: Optional[float] = None
    latitude_key: Optional[str] = None
    longitude_key: Optional[str] = None

    def __post_init__(self):
        if self.method not in ("nearest", "exact"):
            raise ValueError(f"method must be 'nearest' or 'exact', got {self.method!r}")
        if self.tolerance is not None and self.tolerance < 0:
            raise ValueError("tolerance must be non-negative")


@dataclass(frozen=True)
class TimeRange:
    """Caller supplied time window; order of the endpoints is not required."""
    start: TimeValue
    end: TimeValue


@dataclass(frozen=True)
class PointSelection:
    """Single point for combined selection."""
    latitude: float
    longitude: float
    options: PointOptions = field(default_factory=PointOptions)

    def __post_init__(self):
        _validate_latitude("latitude", self.latitude)
        _validate_longitude("longitude", self.longitude)


@dataclass(frozen=True)
class GeoSelection:
    """Combined point and time-range selection."""
    point: Optional[PointSelection] = None
    time_range: Optional[TimeRange] = None

    @property
    def has_selection(self) -> bool:
        return self.point is not None or self.time_range is not None

# ============================================================================
# Load Options
# ============================================================================

@dataclass
class LoadOptions:
    """
    Options for loading a dataset.

    Attributes:
        cid: Explicit CID, bypasses catalog resolution
        gateway_url: Gateway override for this call
        auto_concatenate: Merge concatenable variants when no variant is given
        return_xarray: Return the bare xarray.Dataset instead of a view
        cancel_event: Set to abort an in-flight resolution
    """
    cid: Optional[str] = None
    gateway_url: Optional[str] = None
    auto_concatenate: bool = False
    return_xarray: bool = False
    cancel_event: Optional[asyncio.Event] = None

    def effective_gateway(self, default: str = DEFAULT_IPFS_GATEWAY) -> str:
        return (self.gateway_url or default).rstrip("/")

# ============================================================================
# Catalog Listing
# ============================================================================

@dataclass
class DatasetVariantConfig:
    """A variant listed by the catalog."""
    variant: str
    cid: str
    concat_priority: Optional[int] = None
    concat_dimension: Optional[str] = None


@dataclass
class CatalogDatasetEntry:
    """A dataset and its variants."""
    dataset: str
    variants: List[DatasetVariantConfig] = field(default_factory=list)

    @property
    def variant_names(self) -> List[str]:
        return [v.variant for v in self.variants]


@dataclass
class CatalogCollectionEntry:
    """A collection and its datasets."""
    collection: str
    organization: Optional[str] = None
    datasets: List[CatalogDatasetEntry] = field(default_factory=list)


CatalogListing = List[CatalogCollectionEntry]

