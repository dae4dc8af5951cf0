"""
dClimate Client STAC Document Schema

This module parses the STAC documents of the IPFS-hosted catalog with
pystac and lifts them into typed records. Vendor specific keys
("dclimate:*") are read once, here, from ``Link.extra_fields`` and
``Item.properties`` into named fields; nothing downstream inspects raw
link or property dictionaries.

Document hierarchy:
    root Catalog -> organization Catalogs -> Collections -> Items

A root may also link straight to collections; those belong to no
organization.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Type, TypeVar

import pystac
from pystac.errors import STACError, STACTypeError
from pystac.serialization import identify_stac_object_type

from ..core.config import (
    DATA_ASSET_KEY,
    DEFAULT_CONCAT_DIM,
    DEFAULT_VARIANT_NAME,
    ITEM_ID_SEPARATOR,
    STAC_KEY_COLLECTIONS,
    STAC_KEY_CONCAT_DIMENSION,
    STAC_KEY_CONCAT_PRIORITY,
    STAC_KEY_DATASETS,
    STAC_KEY_ID,
    STAC_KEY_VARIANT,
    strip_ipfs_scheme,
)
from ..core.core_types import normalize_segment

# What pystac raises on a structurally broken document
_PYSTAC_ERRORS = (KeyError, TypeError, AttributeError, STACError, STACTypeError)

# Link relations that make up the catalog tree
_TREE_RELS = (pystac.RelType.CHILD, pystac.RelType.ITEM)

S = TypeVar('S')

# ============================================================================
# Parsing Utilities
# ============================================================================

def _require_mapping(raw: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(raw, Mapping):
        raise ValueError(f"{what} must be a JSON object, got {type(raw).__name__}")
    return raw


def read_stac(stac_type: Type[S], raw: Any, what: str) -> S:
    """
    Parse a raw document with ``stac_type.from_dict``.

    Args:
        stac_type: pystac class (Catalog, Collection, Item, ItemCollection, Link)
        raw: Decoded JSON
        what: Description used in error messages

    Raises:
        ValueError: Not a mapping, wrong STAC type, or missing required fields
    """
    raw = _require_mapping(raw, what)
    try:
        return stac_type.from_dict(dict(raw))
    except _PYSTAC_ERRORS as e:
        raise ValueError(f"Malformed {what}: {e!r}") from e


def document_type(raw: Any) -> Optional[pystac.STACObjectType]:
    """STAC object type of a raw document (CATALOG, COLLECTION, ITEM), or None."""
    raw = _require_mapping(raw, "STAC document")
    try:
        return identify_stac_object_type(dict(raw))
    except _PYSTAC_ERRORS as e:
        raise ValueError(f"Unrecognized STAC document: {e!r}") from e


def _optional_priority(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"Invalid concat priority: {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid concat priority: {value!r}")


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def _string_list(raw: Mapping[str, Any], key: str) -> Tuple[str, ...]:
    """
    Collect a vendor list declared either as ``key: [..]`` / ``key: "a,b"``
    or as individual ``key:<name>`` entries.
    """
    names: List[str] = []
    value = raw.get(key)
    if isinstance(value, str):
        names.extend(v for v in value.split(",") if v.strip())
    elif isinstance(value, (list, tuple)):
        names.extend(str(v) for v in value)
    elif value is not None:
        raise ValueError(f"'{key}' must be a list or string")

    prefix = f"{key}:"
    for raw_key, flag in raw.items():
        if raw_key.startswith(prefix) and flag:
            names.append(raw_key[len(prefix):])

    seen = []
    for name in (normalize_segment(n) for n in names):
        if name and name not in seen:
            seen.append(name)
    return tuple(seen)


def parse_item_id(item_id: str, collection_id: str) -> Optional[Tuple[str, str]]:
    """
    Split ``{collection}-{dataset}-{variant}`` into (dataset, variant).

    The variant defaults to "default" when absent. Returns None when the
    id does not carry the collection prefix.

    Examples:
        >>> parse_item_id("era5-2m_temperature-finalized", "era5")
        ('2m_temperature', 'finalized')
        >>> parse_item_id("era5-total_precipitation", "era5")
        ('total_precipitation', 'default')
    """
    if not isinstance(item_id, str):
        return None
    prefix = f"{collection_id}{ITEM_ID_SEPARATOR}"
    if not item_id.startswith(prefix):
        return None
    remainder = item_id[len(prefix):]
    dataset, _, variant = remainder.partition(ITEM_ID_SEPARATOR)
    if not dataset:
        return None
    return dataset, variant or DEFAULT_VARIANT_NAME


def data_asset_cid(item: pystac.Item) -> Optional[str]:
    """CID behind the item's ``data`` asset, or None when it has none."""
    asset = item.assets.get(DATA_ASSET_KEY)
    if asset is None or not asset.href:
        return None
    if not isinstance(asset.href, str):
        raise ValueError(f"Item '{item.id}' has a non-string data asset href")
    return strip_ipfs_scheme(asset.href)


def item_variant(item: pystac.Item, collection_id: str) -> Optional[str]:
    """Variant of an item: the vendor property, else parsed from the id."""
    variant = item.properties.get(STAC_KEY_VARIANT)
    if variant:
        return normalize_segment(str(variant))
    parsed = parse_item_id(item.id, collection_id)
    return parsed[1] if parsed else None

# ============================================================================
# Links
# ============================================================================

@dataclass(frozen=True)
class StacLink:
    """
    A STAC tree link with its vendor annotations.

    Attributes:
        rel: Link relation ("child" or "item")
        href: Target, usually ``ipfs://<cid>``
        dclimate_id: Identifier of the target (organization, collection or item)
        collections: Collection ids an organization link declares
        datasets: Dataset slugs ("{collection}-{dataset}") an organization declares
        concat_priority: Concatenation priority carried by an item link
        concat_dimension: Concatenation dimension carried by an item link
    """
    rel: str
    href: str
    title: Optional[str] = None
    dclimate_id: Optional[str] = None
    collections: Tuple[str, ...] = ()
    datasets: Tuple[str, ...] = ()
    concat_priority: Optional[int] = None
    concat_dimension: Optional[str] = None

    @classmethod
    def from_pystac(cls, link: pystac.Link) -> "StacLink":
        href = link.get_href(transform_href=False)
        if not isinstance(href, str) or not href:
            raise ValueError(f"STAC '{link.rel}' link is missing an 'href' string")
        extra = link.extra_fields
        dclimate_id = extra.get(STAC_KEY_ID)
        return cls(
            rel=str(link.rel),
            href=href,
            title=_optional_str(link.title),
            dclimate_id=normalize_segment(str(dclimate_id)) if dclimate_id else None,
            collections=_string_list(extra, STAC_KEY_COLLECTIONS),
            datasets=_string_list(extra, STAC_KEY_DATASETS),
            concat_priority=_optional_priority(extra.get(STAC_KEY_CONCAT_PRIORITY)),
            concat_dimension=_optional_str(extra.get(STAC_KEY_CONCAT_DIMENSION)),
        )

    @classmethod
    def from_dict(cls, raw: Any) -> "StacLink":
        return cls.from_pystac(read_stac(pystac.Link, raw, "STAC link"))


def _tree_links(stac_object: pystac.STACObject) -> Tuple[StacLink, ...]:
    """Child and item links of a parsed catalog or collection."""
    return tuple(
        StacLink.from_pystac(link) for link in stac_object.links if link.rel in _TREE_RELS
    )

# ============================================================================
# Items
# ============================================================================

@dataclass
class StacItem:
    """
    A catalog item: one variant of one dataset.

    ``concat_priority``/``concat_dimension`` keep whether the metadata was
    present at all; use ``dimension`` for the effective value.
    """
    id: str
    collection: str
    dataset: str
    variant: str
    cid: Optional[str] = None
    concat_priority: Optional[int] = None
    concat_dimension: Optional[str] = None
    properties: Dict[str, Any] = field(default_factory=dict)

    @property
    def has_concat_metadata(self) -> bool:
        return self.concat_priority is not None or self.concat_dimension is not None

    @property
    def dimension(self) -> str:
        return self.concat_dimension or DEFAULT_CONCAT_DIM

    @classmethod
    def from_pystac(
        cls,
        item: pystac.Item,
        collection_id: str,
        link: Optional[StacLink] = None,
    ) -> Optional["StacItem"]:
        """
        Lift a parsed item into a record.

        Item properties take precedence over the annotations on the parent
        collection's link. Returns None for items whose id is not in
        ``collection_id``.
        """
        parsed = parse_item_id(item.id, collection_id)
        if parsed is None:
            return None
        dataset, variant = parsed

        properties = dict(item.properties)
        priority = _optional_priority(properties.get(STAC_KEY_CONCAT_PRIORITY))
        dimension = _optional_str(properties.get(STAC_KEY_CONCAT_DIMENSION))
        if link is not None:
            priority = priority if priority is not None else link.concat_priority
            dimension = dimension or link.concat_dimension

        return cls(
            id=item.id,
            collection=collection_id,
            dataset=dataset,
            variant=item_variant(item, collection_id) or variant,
            cid=data_asset_cid(item),
            concat_priority=priority,
            concat_dimension=dimension,
            properties=properties,
        )

    @classmethod
    def from_dict(
        cls,
        raw: Any,
        collection_id: str,
        link: Optional[StacLink] = None,
    ) -> Optional["StacItem"]:
        return cls.from_pystac(read_stac(pystac.Item, raw, "STAC item"), collection_id, link)

# ============================================================================
# Collections, Organizations, Root
# ============================================================================

@dataclass
class StacCollection:
    """A STAC collection with its loaded items."""
    id: str
    title: Optional[str] = None
    links: Tuple[StacLink, ...] = ()
    items: List[StacItem] = field(default_factory=list)

    @classmethod
    def from_dict(cls, raw: Any, fallback_id: Optional[str] = None) -> "StacCollection":
        collection = read_stac(pystac.Collection, raw, "STAC collection")
        raw_id = collection.id or fallback_id
        if not raw_id:
            raise ValueError("STAC collection is missing an 'id' string")
        return cls(
            id=normalize_segment(str(raw_id)),
            title=_optional_str(collection.title),
            links=_tree_links(collection),
        )

    def item_links(self) -> List[StacLink]:
        return [link for link in self.links if link.rel == pystac.RelType.ITEM]

    def items_for(self, dataset: str) -> List[StacItem]:
        return [item for item in self.items if item.dataset == dataset]

    def dataset_names(self) -> List[str]:
        names: List[str] = []
        for item in self.items:
            if item.dataset not in names:
                names.append(item.dataset)
        return names

    def check_unique_variants(self) -> None:
        """Raise ValueError when a dataset lists the same variant twice."""
        seen = set()
        for item in self.items:
            key = (item.dataset, item.variant)
            if key in seen:
                raise ValueError(
                    f"Duplicate variant '{item.variant}' for dataset "
                    f"'{self.id}{ITEM_ID_SEPARATOR}{item.dataset}'"
                )
            seen.add(key)


@dataclass
class CatalogOrganization:
    """
    An organization node.

    ``declared_collections`` and ``declared_datasets`` come from the root
    link and let the resolver pick an owner without loading every subtree.
    """
    id: str
    title: Optional[str] = None
    declared_collections: Tuple[str, ...] = ()
    declared_datasets: Tuple[str, ...] = ()
    links: Tuple[StacLink, ...] = ()
    collections: List[StacCollection] = field(default_factory=list)

    @classmethod
    def from_dict(cls, raw: Any, link: StacLink) -> "CatalogOrganization":
        catalog = read_stac(pystac.Catalog, raw, "STAC organization")
        raw_id = link.dclimate_id or catalog.id
        if not raw_id:
            raise ValueError("STAC organization is missing an 'id' string")
        return cls(
            id=normalize_segment(str(raw_id)),
            title=_optional_str(catalog.title) or link.title,
            declared_collections=link.collections,
            declared_datasets=link.datasets,
            links=_tree_links(catalog),
        )

    def owns_collection(self, collection: str) -> bool:
        if collection in self.declared_collections:
            return True
        prefix = f"{collection}{ITEM_ID_SEPARATOR}"
        if any(slug.startswith(prefix) for slug in self.declared_datasets):
            return True
        return any(c.id == collection for c in self.collections)

    def collection_ids(self) -> List[str]:
        ids = [c.id for c in self.collections]
        ids.extend(c for c in self.declared_collections if c not in ids)
        return ids


@dataclass
class StacCatalog:
    """Root catalog with the whole loaded tree."""
    id: str
    root_cid: Optional[str] = None
    links: Tuple[StacLink, ...] = ()
    organizations: List[CatalogOrganization] = field(default_factory=list)
    collections: List[StacCollection] = field(default_factory=list)

    @classmethod
    def from_dict(cls, raw: Any, root_cid: Optional[str] = None) -> "StacCatalog":
        catalog = read_stac(pystac.Catalog, raw, "STAC root catalog")
        return cls(
            id=str(catalog.id or "root"),
            root_cid=root_cid,
            links=_tree_links(catalog),
        )

    def child_links(self) -> List[StacLink]:
        return [link for link in self.links if link.rel == pystac.RelType.CHILD]

    def iter_collections(self) -> Iterator[Tuple[Optional[CatalogOrganization], StacCollection]]:
        """Yield (organization, collection) pairs; direct collections have no organization."""
        for org in self.organizations:
            for collection in org.collections:
                yield org, collection
        for collection in self.collections:
            yield None, collection

    def organization_ids(self) -> List[str]:
        return [org.id for org in self.organizations]

    def find_organization(self, organization: str) -> Optional[CatalogOrganization]:
        for org in self.organizations:
            if org.id == organization:
                return org
        return None

    def collection_ids(self) -> List[str]:
        ids: List[str] = []
        for _, collection in self.iter_collections():
            if collection.id not in ids:
                ids.append(collection.id)
        return ids
