"""
Query context for the advisory/chat subsystem.

Holds one snapshot of access points, stations, sites, services, global
settings and first-page traffic. A refresh gathers every source at once; a
source that fails keeps its previous value.
"""

import asyncio
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable

from loguru import logger

from netresolve.datasource.base import BaseNetworkApi
from netresolve.models import AccessPoint, QueryContext, Service, Site, Station
from netresolve.resolvers.service_role import ServiceRoleResolver
from netresolve.resolvers.site import SiteResolver
from netresolve.resolvers.traffic import TrafficAggregator
from netresolve.services.deadline import with_timeout


def correlate_station_sites(
    stations: list[Station], access_points: list[AccessPoint]
) -> list[Station]:
    """Fill each station's site name from its access point's host site."""
    ap_sites = {
        ap.serial_number: ap.host_site
        for ap in access_points
        if ap.serial_number and ap.host_site
    }
    if not ap_sites:
        return stations

    correlated = []
    for station in stations:
        host_site = ap_sites.get(station.access_point_serial or "")
        if host_site:
            station = station.model_copy(update={"site_name": host_site})
        correlated.append(station)
    return correlated


class QueryContextCache:
    """Process-wide context snapshot, refreshed on demand."""

    def __init__(
        self,
        api: BaseNetworkApi,
        sites: SiteResolver,
        service_roles: ServiceRoleResolver,
        traffic: TrafficAggregator,
        traffic_limit: int = 50,
        timeout: float = 10.0,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.api = api
        self.sites = sites
        self.service_roles = service_roles
        self.traffic = traffic
        self._traffic_limit = traffic_limit
        self._timeout = timeout
        self._clock = clock
        self._context = QueryContext()
        self._initialized = False
        self._refresh_lock = asyncio.Lock()

    @property
    def context(self) -> QueryContext:
        return self._context

    async def initialize(self) -> None:
        if self._initialized:
            return
        await self.refresh()

    async def snapshot(self, max_age: timedelta | None = None) -> QueryContext:
        """Current snapshot, refreshed first if never loaded or older than ``max_age``."""
        refreshed_at = self._context.refreshed_at
        if (
            not self._initialized
            or refreshed_at is None
            or (max_age is not None and self._clock() - refreshed_at > max_age)
        ):
            await self.refresh()
        return self._context

    async def refresh(self) -> QueryContext:
        """Re-gather every source. Never raises."""
        async with self._refresh_lock:
            try:
                await self._refresh()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Failed to refresh query context: {e}")
            self._initialized = True
            return self._context

    async def _refresh(self) -> None:
        previous = self._context
        access_points, stations, sites, services, global_settings = await asyncio.gather(
            self._guard("access points", self.api.fetch_access_points()),
            self._guard("stations", self.api.fetch_station_records()),
            self._guard("sites", self._load_sites()),
            self._guard("services", self._load_services()),
            self._guard("global settings", self.api.fetch_global_settings()),
        )

        if access_points is None:
            access_points = previous.access_points
        if stations is None:
            stations = previous.stations
        else:
            stations = correlate_station_sites(stations, access_points)
            self.sites.observe_stations(stations)

        traffic = await self.traffic.load_traffic_for_page(
            stations, limit=self._traffic_limit, offset=0
        )

        self._context = QueryContext(
            access_points=access_points,
            stations=stations,
            sites=sites if sites is not None else previous.sites,
            services=services if services is not None else previous.services,
            global_settings=(
                global_settings if global_settings is not None else previous.global_settings
            ),
            traffic=traffic,
            refreshed_at=self._clock(),
        )
        logger.info(f"Query context refreshed: {self.summary()}")

    async def _guard(self, label: str, awaitable: Awaitable[Any]) -> Any:
        try:
            return await with_timeout(awaitable, self._timeout, label)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Query context source '{label}' unavailable: {e}")
            return None

    async def _load_sites(self) -> list[Site]:
        await self.sites.ensure_loaded()
        return self.sites.all_sites()

    async def _load_services(self) -> list[Service]:
        await self.service_roles.ensure_loaded()
        return self.service_roles.all_services()

    def find_site_by_name(self, name: str) -> Site | None:
        needle = name.strip().lower()
        if not needle:
            return None
        for site in self._context.sites:
            if (site.display_name or "").lower() == needle:
                return site
        for site in self._context.sites:
            if needle in (site.display_name or "").lower():
                return site
        return None

    def stations_for_site(self, site: Site) -> list[Station]:
        names = {n for n in (site.name, site.site_name) if n}
        return [
            s
            for s in self._context.stations
            if s.site_id == site.id or (s.inline_site_name in names)
        ]

    def access_points_for_site(self, site: Site) -> list[AccessPoint]:
        names = {n for n in (site.name, site.site_name) if n}
        return [
            ap
            for ap in self._context.access_points
            if ap.site_id == site.id or (ap.host_site in names)
        ]

    def summary(self) -> dict[str, Any]:
        ctx = self._context
        return {
            "access_points": len(ctx.access_points),
            "stations": len(ctx.stations),
            "sites": len(ctx.sites),
            "services": len(ctx.services),
            "traffic_records": len(ctx.traffic),
            "has_global_settings": ctx.global_settings is not None,
            "refreshed_at": ctx.refreshed_at.isoformat() if ctx.refreshed_at else None,
        }
