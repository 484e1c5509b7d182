"""Tests for the site fallback chain."""

from datetime import timedelta

import pytest

from netresolve.models import Site, Station
from netresolve.resolvers.site import SiteResolver, fallback_site_name
from netresolve.services.cache import TTLKeyedCache
from netresolve.services.errors import ServiceError

TARGET_ID = "c7395471-aa5c-46dc-9211-3ed24c5789bd"


@pytest.fixture
def resolver(api, clock) -> SiteResolver:
    cache = TTLKeyedCache(
        "sites",
        loader=api.fetch_sites,
        key_of=lambda site: site.id,
        freshness=timedelta(minutes=5),
        max_attempts=3,
        timeout=1.0,
        clock=clock,
    )
    return SiteResolver(api, cache, timeout=1.0)


def test_fallback_site_name_is_deterministic():
    assert fallback_site_name(TARGET_ID) == "Site C7395471"
    assert fallback_site_name("nodash") == "Site NODASH"
    assert fallback_site_name("") == "N/A"


@pytest.mark.asyncio
async def test_resolves_from_bulk_load(api, resolver):
    api.sites = [Site(id="site-1", name="HQ", siteName="Headquarters")]

    assert await resolver.resolve_site_name("site-1") == "Headquarters"
    assert await resolver.resolve_site_name("site-1") == "Headquarters"
    assert api.count("fetch_sites") == 1
    assert api.count("fetch_site_by_id") == 0


@pytest.mark.asyncio
async def test_empty_bulk_response_yields_placeholder(api, resolver):
    api.sites = []

    assert await resolver.resolve_site_name(TARGET_ID) == "Site C7395471"
    assert await resolver.resolve_site_name(TARGET_ID) == "Site C7395471"

    resolver.invalidate()
    await resolver.ensure_loaded()
    assert resolver.cache.budget.attempts == 0


@pytest.mark.asyncio
async def test_individual_lookup_is_cached_without_touching_budget(api, resolver):
    api.sites = [Site(id="site-1", name="HQ")]
    api.sites_by_id = {"site-new": Site(id="site-new", name="New Branch")}

    assert await resolver.resolve_site_name("site-new") == "New Branch"
    assert resolver.cache.get("site-new").name == "New Branch"
    assert resolver.cache.budget.attempts == 0

    assert await resolver.resolve_site_name("site-new") == "New Branch"
    assert api.count("fetch_site_by_id") == 1


@pytest.mark.asyncio
async def test_derived_extraction_from_stations(api, resolver):
    api.sites = []
    api.stations = [
        {"macAddress": "aa:bb:cc:00:00:01", "siteId": "site-x"},
        {"macAddress": "aa:bb:cc:00:00:02", "siteId": "site-x", "siteName": "Warehouse"},
    ]

    assert await resolver.resolve_site_name("site-x") == "Warehouse"
    assert api.count("fetch_site_by_id") == 1
    assert resolver.cache.get("site-x").display_name == "Warehouse"


@pytest.mark.asyncio
async def test_observed_stations_are_scanned_before_fetching(api, resolver):
    api.sites = []
    resolver.observe_stations(
        [Station(macAddress="aa:bb:cc:00:00:03", siteId="site-y", site="Depot")]
    )

    assert await resolver.resolve_site_name("site-y") == "Depot"
    assert api.count("fetch_stations") == 0


@pytest.mark.asyncio
async def test_individual_failure_falls_through_to_stations(api, resolver):
    api.sites = ServiceError("HTTP 500", service_id="fake")
    api.site_by_id_error = ServiceError("HTTP 500", service_id="fake")
    api.stations = [{"macAddress": "aa", "siteId": "site-z", "siteName": "Garage"}]

    assert await resolver.resolve_site_name("site-z") == "Garage"


@pytest.mark.asyncio
async def test_everything_failing_returns_placeholder(api, resolver):
    api.sites = ServiceError("HTTP 500", service_id="fake")
    api.site_by_id_error = ServiceError("timeout", service_id="fake")
    api.stations = ServiceError("HTTP 502", service_id="fake")

    assert await resolver.resolve_site_name(TARGET_ID) == "Site C7395471"
    assert await resolver.resolve_site_name(TARGET_ID) == "Site C7395471"


@pytest.mark.asyncio
async def test_later_stages_skipped_when_bulk_has_site(api, resolver):
    api.sites = [Site(id="site-1", name="HQ")]
    api.sites_by_id = {"site-1": Site(id="site-1", name="Other")}

    assert await resolver.resolve_site_name("site-1") == "HQ"
    assert api.count("fetch_site_by_id") == 0
    assert api.count("fetch_stations") == 0


@pytest.mark.asyncio
async def test_get_site_reloads_once_then_hits_cache(api, resolver):
    api.sites = [Site(id="site-1", name="HQ")]

    site = await resolver.get_site("site-1")
    again = await resolver.get_site("site-1")

    assert site.name == "HQ"
    assert again is site
    assert api.count("fetch_sites") == 1
    assert await resolver.get_site("missing") is None
    assert await resolver.get_site("") is None
    assert api.count("fetch_site_by_id") == 0


@pytest.mark.asyncio
async def test_empty_id(api, resolver):
    assert await resolver.resolve_site_name("") == "N/A"
    assert api.calls == {}


@pytest.mark.asyncio
async def test_refresh_resets_exhausted_budget(api, resolver):
    api.sites = ServiceError("HTTP 500", service_id="fake")
    for _ in range(3):
        await resolver.ensure_loaded()
    assert resolver.cache.budget.exhausted

    api.sites = [Site(id="site-1", name="HQ")]
    await resolver.refresh()

    assert [s.id for s in resolver.all_sites()] == ["site-1"]
    assert resolver.status()["load_attempts"] == 0
