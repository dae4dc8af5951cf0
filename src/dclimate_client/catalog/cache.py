"""
dClimate Client Catalog Cache

In-memory time-to-live cache for loaded catalog trees, keyed by gateway URL.
Each resolver owns one instance; the clock is injectable so expiry can be
tested without sleeping.
"""

import logging
import time
from typing import Callable, Dict, Optional, Tuple

from ..core.config import DEFAULT_CATALOG_TTL_SECONDS
from .schema import StacCatalog

logger = logging.getLogger('dclimate_client.catalog.cache')

Clock = Callable[[], float]


class CatalogCache:
    """
    Gateway URL -> (catalog, stored_at) with expiry checked on access.

    Not synchronized; concurrent writers simply overwrite each other.

    Args:
        ttl_seconds: Lifetime of an entry
        clock: Monotonic time source in seconds
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_CATALOG_TTL_SECONDS,
        clock: Clock = time.monotonic,
    ):
        if ttl_seconds < 0:
            raise ValueError("ttl_seconds must be non-negative")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, Tuple[StacCatalog, float]] = {}

    def get(self, key: str) -> Optional[StacCatalog]:
        entry = self._entries.get(key)
        if entry is None:
            return None

        catalog, stored_at = entry
        if self._clock() - stored_at > self.ttl_seconds:
            logger.debug("Catalog cache entry for %s expired", key)
            del self._entries[key]
            return None
        return catalog

    def set(self, key: str, catalog: StacCatalog) -> None:
        self._entries[key] = (catalog, self._clock())

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._entries)
