"""
dClimate Client Custom Exception Classes

This module defines all custom exception classes for better error handling
and more informative error messages.
"""

from typing import Optional, Sequence

# ============================================================================
# Base Exception
# ============================================================================

class DClimateClientError(Exception):
    """Base exception class for all dClimate client related errors."""

    def __init__(self, message: str, details: Optional[str] = None):
        self.message = message
        self.details = details
        full_message = f"{message}\nDetails: {details}" if details else message
        super().__init__(full_message)

# ============================================================================
# Resolution Errors
# ============================================================================

def _format_available(label: str, available: Optional[Sequence[str]]) -> Optional[str]:
    if not available:
        return None
    return f"Available {label}: {', '.join(available)}"


class DatasetNotFoundError(DClimateClientError):
    """A collection, dataset or variant is absent from the consulted catalog."""

    label = "datasets"

    def __init__(self, message: str, available: Optional[Sequence[str]] = None):
        super().__init__(message, _format_available(self.label, available))
        self.available = list(available) if available else None


class OrganizationNotFoundError(DatasetNotFoundError):
    """Requested organization is not in the catalog."""

    label = "organizations"

    def __init__(self, organization: str, available: Optional[Sequence[str]] = None):
        super().__init__(f'Organization "{organization}" not found in STAC catalog.', available)
        self.organization = organization


class CollectionNotFoundError(DatasetNotFoundError):
    """Requested collection is not in the catalog."""

    label = "collections"

    def __init__(self, collection: str, available: Optional[Sequence[str]] = None):
        super().__init__(f'Collection "{collection}" not found in STAC catalog.', available)
        self.collection = collection


class VariantNotFoundError(DatasetNotFoundError):
    """Requested variant does not exist for the dataset."""

    label = "variants"

    def __init__(self, variant: str, path: str, available: Optional[Sequence[str]] = None):
        super().__init__(f'Variant "{variant}" not found for dataset "{path}".', available)
        self.variant = variant
        self.path = path


class AmbiguousResolutionError(DClimateClientError):
    """Multiple equally valid matches and no default to pick."""

    def __init__(self, message: str, available: Optional[Sequence[str]] = None):
        super().__init__(
            message,
            f"Please specify one of: {', '.join(available)}" if available else None
        )
        self.available = list(available) if available else None


class VariantRequiredAmbiguousError(AmbiguousResolutionError):
    """Several variants exist, none of them preferred; the caller must pick one."""

    def __init__(self, path: str, available: Sequence[str]):
        super().__init__(f'Multiple variants available for "{path}".', available)
        self.path = path


class CatalogUnavailableError(DClimateClientError):
    """Catalog transport or parse failure with no fallback remaining."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message, str(cause) if cause is not None else None)
        self.cause = cause


class ResolutionCancelledError(DClimateClientError):
    """A resolution was cancelled through its cancel event."""

    def __init__(self, url: Optional[str] = None):
        super().__init__(
            "Dataset resolution was cancelled",
            f"Aborted while fetching {url}" if url else None
        )
        self.url = url

# ============================================================================
# Selection Errors
# ============================================================================

class InvalidSelectionError(DClimateClientError):
    """Malformed geometry, bad bounds, missing axis or unsupported CRS."""


class NoDataFoundError(DClimateClientError):
    """A well-formed selection matched no data points."""

# ============================================================================
# Concatenation Errors
# ============================================================================

class ConcatenationError(DClimateClientError):
    """Base class for variant concatenation failures."""


class EmptyVariantSetError(ConcatenationError):
    """Nothing to concatenate."""

    def __init__(self):
        super().__init__("Cannot concatenate empty variants array")


class MissingCoordinateDimensionError(ConcatenationError):
    """A variant lacks the concatenation dimension."""

    def __init__(self, variant: str, dimension: str):
        super().__init__(
            f"Variant '{variant}' has no coordinates for dimension '{dimension}'"
        )
        self.variant = variant
        self.dimension = dimension
