"""
Composition root.

Builds one instance of every cache and resolver from Settings and exposes
the operations the dashboard calls. Nothing in the package keeps module-level
cache state; whoever owns the container owns the caches.
"""

from datetime import datetime, timedelta
from typing import Any, Callable

import httpx
from loguru import logger

from netresolve.datasource.base import BaseNetworkApi
from netresolve.datasource.campus import CampusControllerApi
from netresolve.models import ServiceDetails, Site, Station, TrafficRecord
from netresolve.resolvers.query_context import QueryContextCache
from netresolve.resolvers.service_role import ServiceRoleResolver
from netresolve.resolvers.site import SiteResolver
from netresolve.resolvers.traffic import TrafficAggregator
from netresolve.services.cache import TTLKeyedCache
from netresolve.services.client import ServiceClient
from netresolve.settings import Settings


class ResolverContainer:
    """
    Owns the API client, caches and resolvers for one dashboard session.

    Usage:
        async with ResolverContainer.from_settings(load_settings()) as container:
            name = await container.resolve_site_name(station.site_id)
    """

    def __init__(
        self,
        api: BaseNetworkApi,
        settings: Settings | None = None,
        client: ServiceClient | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.settings = settings or Settings()
        self.api = api
        self._client = client

        s = self.settings
        self.site_cache: TTLKeyedCache[Site] = TTLKeyedCache(
            "sites",
            loader=api.fetch_sites,
            key_of=lambda site: site.id,
            freshness=timedelta(seconds=s.cache_freshness_seconds),
            max_attempts=s.cache_max_load_attempts,
            timeout=s.sites_request_timeout * 2,
            clock=clock,
            debug=s.cache_debug,
        )
        self.sites = SiteResolver(api, self.site_cache, timeout=s.request_timeout)
        self.service_roles = ServiceRoleResolver(
            api, timeout=s.request_timeout, debug=s.cache_debug
        )
        self.traffic = TrafficAggregator(
            api,
            timeout=s.request_timeout,
            fallback_cap=s.traffic_fallback_cap,
            fallback_concurrency=s.traffic_fallback_concurrency,
        )
        self.query_context = QueryContextCache(
            api,
            self.sites,
            self.service_roles,
            self.traffic,
            traffic_limit=s.context_traffic_limit,
            timeout=s.sites_request_timeout * 2,
            clock=clock,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "ResolverContainer":
        client = ServiceClient(
            base_url=settings.campus_base_url,
            token=settings.campus_api_token,
            service_id=CampusControllerApi.SERVICE_ID,
            default_timeout=settings.request_timeout,
            verify=settings.campus_verify_tls,
            transport=transport,
            debug=settings.cache_debug,
        )
        api = CampusControllerApi(
            client,
            sites_timeout=settings.sites_request_timeout,
            request_timeout=settings.request_timeout,
        )
        return cls(api, settings=settings, client=client)

    # Dashboard-facing operations

    async def resolve_site_name(self, site_id: str) -> str:
        return await self.sites.resolve_site_name(site_id)

    async def resolve_service_details(self, service_id: str) -> ServiceDetails:
        return await self.service_roles.resolve_service_details(service_id)

    async def resolve_role_name(self, role_id: str) -> str:
        return await self.service_roles.resolve_role_name(role_id)

    async def load_traffic_for_page(
        self, stations: list[Station], limit: int, offset: int = 0
    ) -> dict[str, TrafficRecord]:
        self.sites.observe_stations(stations)
        return await self.traffic.load_traffic_for_page(stations, limit, offset)

    def invalidate_site_cache(self) -> None:
        self.sites.invalidate()

    def invalidate_service_role_cache(self) -> None:
        self.service_roles.invalidate()

    def get_health_status(self) -> dict[str, Any]:
        return {
            "sites": self.sites.status(),
            "site_cache": self.site_cache.get_stats().to_dict(),
            "service_roles": self.service_roles.status(),
            "query_context": self.query_context.summary(),
        }

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
        logger.debug("ResolverContainer closed")

    async def __aenter__(self) -> "ResolverContainer":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
