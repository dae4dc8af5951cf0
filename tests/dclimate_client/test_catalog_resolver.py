import asyncio

import pytest

from conftest import (
    GATEWAY,
    STAC_SERVER,
    FakeCatalogServer,
    catalog_documents,
    search_payload,
    stac_item,
)

from dclimate_client.catalog import CatalogResolver, LegacyCatalog
from dclimate_client.catalog.stac_loader import gather_children
from dclimate_client.core.core_types import (
    ConcatenableVariant,
    DatasetRequest,
    EndpointSource,
    ResolutionMethod,
)
from dclimate_client.core.exceptions import (
    CatalogUnavailableError,
    CollectionNotFoundError,
    DatasetNotFoundError,
    OrganizationNotFoundError,
    ResolutionCancelledError,
    VariantNotFoundError,
    VariantRequiredAmbiguousError,
)

ROOT_CID_URL = f"{GATEWAY}/stac"
ROOT_URL = f"{GATEWAY}/ipfs/root-cid"


def make_resolver(server, **kwargs):
    kwargs.setdefault("use_fast_path", False)
    kwargs.setdefault("legacy_catalog", LegacyCatalog({}))
    return CatalogResolver(GATEWAY, STAC_SERVER, http_client=server.client(), **kwargs)


def resolve(resolver, request, **kwargs):
    return asyncio.run(resolver.resolve(request, **kwargs))


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


# ============================================================================
# Hierarchical catalog
# ============================================================================

def test_resolves_explicit_variant(catalog_server):
    resolver = make_resolver(catalog_server)

    source = resolve(resolver, DatasetRequest("2m_temperature", collection="era5", variant="finalized"))

    assert source.cid == "cid-t2m-finalized"
    assert source.method == ResolutionMethod.HIERARCHICAL_CATALOG
    assert source.path == "era5-2m_temperature-finalized"
    assert source.organization == "ecmwf"


def test_request_names_are_normalized(catalog_server):
    resolver = make_resolver(catalog_server)

    source = resolve(resolver, DatasetRequest(
        " 2M_Temperature ", collection="ERA5", variant="Non-Finalized", organization="ECMWF",
    ))

    assert source.cid == "cid-t2m-non-finalized"
    assert source.variant == "non-finalized"


def test_variant_preference_picks_finalized(catalog_server):
    resolver = make_resolver(catalog_server)
    source = resolve(resolver, DatasetRequest("2m_temperature", collection="era5"))
    assert source.variant == "finalized"


def test_no_preferred_variant_is_ambiguous(catalog_server):
    resolver = make_resolver(catalog_server)

    with pytest.raises(VariantRequiredAmbiguousError) as excinfo:
        resolve(resolver, DatasetRequest("total_precipitation", collection="era5"))

    assert sorted(excinfo.value.available) == ["deterministic", "ensemble"]


def test_unknown_variant_lists_alternatives(catalog_server):
    resolver = make_resolver(catalog_server)

    with pytest.raises(VariantNotFoundError) as excinfo:
        resolve(resolver, DatasetRequest("2m_temperature", collection="era5", variant="preliminary"))

    assert excinfo.value.available == ["finalized", "non-finalized"]


def test_unknown_dataset_lists_alternatives(catalog_server):
    resolver = make_resolver(catalog_server)

    with pytest.raises(DatasetNotFoundError) as excinfo:
        resolve(resolver, DatasetRequest("humidity", collection="era5"))

    assert excinfo.value.available == ["2m_temperature", "total_precipitation"]
    assert 'not found in collection "era5"' in str(excinfo.value)


def test_unknown_collection_lists_alternatives(catalog_server):
    resolver = make_resolver(catalog_server)

    with pytest.raises(CollectionNotFoundError) as excinfo:
        resolve(resolver, DatasetRequest("2m_temperature", collection="merra2"))

    assert set(excinfo.value.available) == {"era5", "cpc"}


def test_unknown_organization(catalog_server):
    resolver = make_resolver(catalog_server)

    with pytest.raises(OrganizationNotFoundError) as excinfo:
        resolve(resolver, DatasetRequest("2m_temperature", collection="era5", organization="noaa"))

    assert excinfo.value.available == ["ecmwf"]


def test_collection_linked_from_root_has_no_organization(catalog_server):
    resolver = make_resolver(catalog_server)

    source = resolve(resolver, DatasetRequest("precip_conus", collection="cpc"))

    assert source.cid == "cid-cpc-precip"
    assert source.organization is None
    assert source.variant == "default"


def test_unreachable_child_is_skipped():
    documents = catalog_documents()
    del documents[f"{GATEWAY}/ipfs/coll-cpc"]
    server = FakeCatalogServer(documents)
    resolver = make_resolver(server)

    source = resolve(resolver, DatasetRequest("2m_temperature", collection="era5", variant="finalized"))
    assert source.cid == "cid-t2m-finalized"

    with pytest.raises(CollectionNotFoundError):
        resolve(resolver, DatasetRequest("precip_conus", collection="cpc"))


def test_duplicate_variants_make_catalog_unavailable():
    documents = catalog_documents()
    documents[f"{GATEWAY}/ipfs/coll-era5"]["links"].append(
        {"rel": "item", "href": "ipfs://item-t2m-finalized"}
    )
    resolver = make_resolver(FakeCatalogServer(documents))

    with pytest.raises(CatalogUnavailableError):
        resolve(resolver, DatasetRequest("2m_temperature", collection="era5"))


def test_empty_dataset_name_is_rejected(catalog_server):
    resolver = make_resolver(catalog_server)

    with pytest.raises(DatasetNotFoundError, match="must be provided"):
        resolve(resolver, DatasetRequest("  ", collection="era5"))
    assert catalog_server.total_calls == 0

# ============================================================================
# Caching
# ============================================================================

def test_catalog_is_fetched_once_while_cached(catalog_server):
    resolver = make_resolver(catalog_server)

    resolve(resolver, DatasetRequest("2m_temperature", collection="era5", variant="finalized"))
    resolve(resolver, DatasetRequest("precip_conus", collection="cpc"))

    assert catalog_server.count(ROOT_CID_URL) == 1
    assert catalog_server.count(ROOT_URL) == 1


def test_catalog_is_refetched_after_ttl(catalog_server):
    clock = FakeClock()
    resolver = make_resolver(catalog_server, cache_ttl=60, clock=clock)
    request = DatasetRequest("2m_temperature", collection="era5", variant="finalized")

    resolve(resolver, request)
    clock.now = 60.5
    resolve(resolver, request)

    assert catalog_server.count(ROOT_CID_URL) == 2


def test_caches_are_per_resolver(catalog_server):
    request = DatasetRequest("2m_temperature", collection="era5", variant="finalized")

    resolve(make_resolver(catalog_server), request)
    resolve(make_resolver(catalog_server), request)

    assert catalog_server.count(ROOT_CID_URL) == 2

# ============================================================================
# Explicit CID and fast path
# ============================================================================

def test_explicit_cid_skips_every_lookup(catalog_server):
    resolver = make_resolver(catalog_server, use_fast_path=True)

    source = resolve(resolver, DatasetRequest("anything", collection="era5", cid="bafy-explicit"))

    assert source.cid == "bafy-explicit"
    assert source.method == ResolutionMethod.EXPLICIT
    assert catalog_server.total_calls == 0


def test_fast_path_skips_catalog():
    server = FakeCatalogServer(search_response=search_payload(
        stac_item("era5-2m_temperature-finalized", "fast-cid"),
        stac_item("era5-2m_temperature_max-finalized", "other"),
    ))
    resolver = make_resolver(server, use_fast_path=True)

    source = resolve(resolver, DatasetRequest("2m_temperature", collection="era5"))

    assert source.cid == "fast-cid"
    assert source.method == ResolutionMethod.FAST_PATH
    assert source.variant == "finalized"
    assert source.organization is None
    assert server.count(ROOT_CID_URL) == 0
    assert server.search_bodies == [{"limit": 100, "collections": ["era5"]}]


def test_fast_path_reads_variant_property():
    server = FakeCatalogServer(search_response=search_payload(
        stac_item("era5-2m_temperature-a", "cid-a", {"dclimate:variant": "Latest"}),
        stac_item("era5-2m_temperature-b", "cid-b"),
    ))
    resolver = make_resolver(server, use_fast_path=True)

    source = resolve(resolver, DatasetRequest("2m_temperature", collection="era5"))

    assert source.cid == "cid-a"
    assert source.variant == "latest"


def _broken_feature(**changes):
    feature = stac_item("era5-2m_temperature-finalized", "fast-cid")
    feature.update(changes)
    return feature


@pytest.mark.parametrize("search_response", [
    503,
    "<html>not json</html>",
    ["not", "an", "object"],
    {"type": "FeatureCollection"},
    {"features": []},
    search_payload(stac_item("era5-2m_temperature-finalized")),
    search_payload("not-a-feature"),
    search_payload(_broken_feature(assets={"data": "ipfs://x"})),
    search_payload(_broken_feature(properties=["x"])),
])
def test_fast_path_failures_fall_through_to_catalog(search_response):
    server = FakeCatalogServer(search_response=search_response)
    resolver = make_resolver(server, use_fast_path=True)

    source = resolve(resolver, DatasetRequest("2m_temperature", collection="era5", variant="finalized"))

    assert source.cid == "cid-t2m-finalized"
    assert source.method == ResolutionMethod.HIERARCHICAL_CATALOG
    assert server.count(f"{STAC_SERVER}/search") == 1


def test_fast_path_skipped_when_organization_named():
    server = FakeCatalogServer(search_response=search_payload(
        stac_item("era5-2m_temperature-finalized", "fast-cid"),
    ))
    resolver = make_resolver(server, use_fast_path=True)
    request = DatasetRequest("2m_temperature", collection="era5", variant="finalized")

    with pytest.raises(OrganizationNotFoundError):
        resolve(resolver, DatasetRequest(
            "2m_temperature", collection="era5", variant="finalized", organization="noaa",
        ))

    source = resolve(resolver, DatasetRequest(
        "2m_temperature", collection="era5", variant="finalized", organization="ecmwf",
    ))
    assert source.method == ResolutionMethod.HIERARCHICAL_CATALOG
    assert source.organization == "ecmwf"
    assert server.count(f"{STAC_SERVER}/search") == 0

    assert resolve(resolver, request).method == ResolutionMethod.FAST_PATH

# ============================================================================
# Cancellation
# ============================================================================

def test_cancel_before_start_makes_no_requests(catalog_server):
    resolver = make_resolver(catalog_server)

    async def scenario():
        event = asyncio.Event()
        event.set()
        await resolver.resolve(DatasetRequest("2m_temperature", collection="era5"), cancel_event=event)

    with pytest.raises(ResolutionCancelledError):
        asyncio.run(scenario())
    assert catalog_server.total_calls == 0


def test_cancel_during_fetch_aborts_resolution():
    server = FakeCatalogServer()
    state = {}
    sync_handler = server.handler

    async def slow_handler(request):
        if str(request.url) == ROOT_URL:
            state["event"].set()
            await asyncio.sleep(30)
        return sync_handler(request)

    server.handler = slow_handler
    resolver = make_resolver(server)

    async def scenario():
        state["event"] = asyncio.Event()
        await resolver.resolve(
            DatasetRequest("2m_temperature", collection="era5"), cancel_event=state["event"]
        )

    with pytest.raises(ResolutionCancelledError):
        asyncio.run(scenario())
    assert resolver.cache.get(GATEWAY) is None


def test_sibling_loads_finish_before_cancellation_is_raised():
    state = {}

    async def cancelled_now():
        raise ResolutionCancelledError("ipfs://item-a")

    async def cancelled_later():
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        state["later"] = "finished"
        raise ResolutionCancelledError("ipfs://item-b")

    async def failing():
        raise ValueError("bad document")

    async def scenario():
        with pytest.raises(ResolutionCancelledError, match="item-a"):
            await gather_children([failing(), cancelled_now(), cancelled_later()])
        return dict(state)

    assert asyncio.run(scenario()) == {"later": "finished"}


def test_gather_children_returns_results_in_order():
    async def value(v):
        await asyncio.sleep(0)
        return v

    assert asyncio.run(gather_children([value(1), value(None), value(3)])) == [1, None, 3]

# ============================================================================
# Legacy map
# ============================================================================

def test_legacy_map_used_when_catalog_unreachable():
    documents = catalog_documents()
    documents[ROOT_CID_URL] = 500
    legacy = LegacyCatalog({"era5-2m_temperature": "cid-legacy"})
    resolver = make_resolver(FakeCatalogServer(documents), legacy_catalog=legacy)

    source = resolve(resolver, DatasetRequest("2m_temperature", collection="era5"))

    assert source.cid == "cid-legacy"
    assert source.method == ResolutionMethod.LEGACY_MAP
    assert source.path == "era5-2m_temperature"


def test_catalog_unavailable_without_legacy_entry():
    documents = catalog_documents()
    documents[ROOT_CID_URL] = 500
    resolver = make_resolver(FakeCatalogServer(documents))

    with pytest.raises(CatalogUnavailableError):
        resolve(resolver, DatasetRequest("2m_temperature", collection="era5"))


def test_legacy_endpoint_source_without_collection():
    documents = {"https://api.test/fpar": {"cid": "cid-fpar"}}
    server = FakeCatalogServer(documents)
    legacy = LegacyCatalog({"fpar": EndpointSource("https://api.test/fpar")})
    resolver = make_resolver(server, legacy_catalog=legacy)

    source = resolve(resolver, DatasetRequest("FPAR"))

    assert source.cid == "cid-fpar"
    assert source.path == "fpar"
    assert server.count(ROOT_CID_URL) == 0


def test_legacy_endpoint_failure_is_catalog_unavailable():
    server = FakeCatalogServer({"https://api.test/fpar": {"no": "cid"}})
    legacy = LegacyCatalog({"fpar": EndpointSource("https://api.test/fpar")})
    resolver = make_resolver(server, legacy_catalog=legacy)

    with pytest.raises(CatalogUnavailableError, match="fpar"):
        resolve(resolver, DatasetRequest("fpar"))


def test_no_collection_and_no_legacy_entry(catalog_server):
    resolver = make_resolver(catalog_server, legacy_catalog=LegacyCatalog({"fpar": "cid-fpar"}))

    with pytest.raises(DatasetNotFoundError) as excinfo:
        resolve(resolver, DatasetRequest("2m_temperature"))

    assert excinfo.value.available == ["fpar"]
    assert catalog_server.total_calls == 0

# ============================================================================
# Auto-concatenation and listing
# ============================================================================

def test_auto_concatenate_returns_prioritized_variants(catalog_server):
    resolver = make_resolver(catalog_server)

    variants = resolve(
        resolver, DatasetRequest("2m_temperature", collection="era5"), auto_concatenate=True
    )

    assert variants == [
        ConcatenableVariant("finalized", "cid-t2m-finalized", 1, "time"),
        ConcatenableVariant("non-finalized", "cid-t2m-non-finalized", 2, "time"),
    ]


def test_auto_concatenate_ignored_when_variant_given(catalog_server):
    resolver = make_resolver(catalog_server)

    source = resolve(
        resolver,
        DatasetRequest("2m_temperature", collection="era5", variant="non-finalized"),
        auto_concatenate=True,
    )
    assert source.cid == "cid-t2m-non-finalized"


def test_auto_concatenate_needs_two_variants(catalog_server):
    resolver = make_resolver(catalog_server)

    source = resolve(resolver, DatasetRequest("precip_conus", collection="cpc"), auto_concatenate=True)
    assert source.cid == "cid-cpc-precip"


def test_list_available_datasets(catalog_server):
    resolver = make_resolver(catalog_server)

    listing = asyncio.run(resolver.list_available_datasets())

    by_collection = {entry.collection: entry for entry in listing}
    assert set(by_collection) == {"era5", "cpc"}
    assert by_collection["era5"].organization == "ecmwf"
    assert by_collection["cpc"].organization is None

    datasets = {d.dataset: d for d in by_collection["era5"].datasets}
    assert datasets["2m_temperature"].variant_names == ["finalized", "non-finalized"]
    assert datasets["2m_temperature"].variants[1].concat_priority == 2
