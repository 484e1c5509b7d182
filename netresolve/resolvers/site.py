"""
Site name resolution.

A site id is resolved through an escalating chain, each stage tried only
after the previous one came up empty:

1. cache lookup
2. bulk reload of the site list, then cache lookup
3. single-site lookup
4. extraction from station records that carry an inline site name
5. a placeholder derived from the id
"""

from typing import Any, Iterable

from loguru import logger

from netresolve.datasource.base import BaseNetworkApi
from netresolve.models import Site, Station
from netresolve.services.cache import TTLKeyedCache
from netresolve.services.deadline import with_timeout
from netresolve.utils import absorb_errors

UNKNOWN_LABEL = "N/A"


def fallback_site_name(site_id: str) -> str:
    """Deterministic placeholder: first dash-delimited segment, uppercased."""
    if not site_id:
        return UNKNOWN_LABEL
    return f"Site {site_id.split('-')[0].upper()}"


class SiteResolver:
    """Resolves site ids to display names, backed by a TTLKeyedCache of sites."""

    def __init__(
        self,
        api: BaseNetworkApi,
        cache: TTLKeyedCache[Site],
        timeout: float = 5.0,
    ):
        self.api = api
        self.cache = cache
        self._timeout = timeout
        self._known_stations: list[Station] = []

    def observe_stations(self, stations: Iterable[Station]) -> None:
        """Remember the station records the caller already has loaded."""
        self._known_stations = list(stations)

    @absorb_errors(lambda self, site_id: fallback_site_name(site_id))
    async def resolve_site_name(self, site_id: str) -> str:
        """Resolve ``site_id`` to a display name. Never raises."""
        if not site_id:
            return UNKNOWN_LABEL

        site = self.cache.get(site_id)
        if site is None:
            await self.cache.ensure_loaded()
            site = self.cache.get(site_id)

        if site is None:
            logger.debug(
                f"Site {site_id} not among {len(self.cache)} cached sites, "
                f"trying individual lookup"
            )
            site = await self._lookup_individual(site_id)

        if site is None:
            site = await self._extract_from_stations(site_id)

        if site is not None and site.display_name:
            return site.display_name

        return fallback_site_name(site_id)

    async def _lookup_individual(self, site_id: str) -> Site | None:
        try:
            site = await with_timeout(
                self.api.fetch_site_by_id(site_id), self._timeout, self.api.service_id
            )
        except Exception as e:
            logger.warning(f"Individual site lookup failed for {site_id}: {e}")
            return None

        if site is None:
            return None
        logger.info(f"Found site via individual lookup: {site_id} -> {site.display_name}")
        self.cache.upsert(site_id, site)
        return site

    async def _extract_from_stations(self, site_id: str) -> Site | None:
        name = self._find_inline_site_name(self._known_stations, site_id)
        if name is None:
            try:
                stations = await with_timeout(
                    self.api.fetch_station_records(), self._timeout, self.api.service_id
                )
            except Exception as e:
                logger.warning(f"Site name extraction from stations failed for {site_id}: {e}")
                return None
            name = self._find_inline_site_name(stations, site_id)

        if name is None:
            return None

        logger.info(f"Extracted site name from station data: {site_id} -> {name}")
        site = Site(id=site_id, name=name, siteName=name)
        self.cache.upsert(site_id, site)
        return site

    @staticmethod
    def _find_inline_site_name(stations: Iterable[Station], site_id: str) -> str | None:
        for station in stations:
            if station.site_id == site_id and station.inline_site_name:
                return station.inline_site_name
        return None

    async def get_site(self, site_id: str) -> Site | None:
        """Cached site for ``site_id``, reloading the list once if needed."""
        if not site_id:
            return None
        site = self.cache.get(site_id)
        if site is None:
            await self.cache.ensure_loaded()
            site = self.cache.get(site_id)
        return site

    async def ensure_loaded(self) -> None:
        await self.cache.ensure_loaded()

    def all_sites(self) -> list[Site]:
        return self.cache.values()

    async def refresh(self) -> None:
        """Manual refresh: drop the cache and reload it immediately."""
        self.cache.invalidate()
        await self.cache.ensure_loaded()

    def invalidate(self) -> None:
        self.cache.invalidate()

    def status(self) -> dict[str, Any]:
        return self.cache.status()
