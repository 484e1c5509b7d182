import asyncio
from datetime import datetime, timedelta
from typing import Any

import pytest

from netresolve.datasource.base import BaseNetworkApi
from netresolve.models import AccessPoint, Role, Service, Site


class FakeClock:
    """Manually advanced clock for freshness tests."""

    def __init__(self, start: datetime = datetime(2026, 1, 1, 12, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def _outcome(value: Any) -> Any:
    if isinstance(value, BaseException):
        raise value
    return value


class FakeNetworkApi(BaseNetworkApi):
    """
    In-memory network API.

    Every attribute can hold either the value to return or an exception to
    raise. ``calls`` counts invocations per method.
    """

    def __init__(self):
        self.sites: list[Site] | BaseException = []
        self.sites_by_id: dict[str, Site] = {}
        self.site_by_id_error: BaseException | None = None
        self.stations: list[dict[str, Any]] | BaseException = []
        self.traffic: dict[str, dict[str, Any] | BaseException] = {}
        self.services: list[Service] | BaseException = []
        self.roles: list[Role] | BaseException = []
        self.access_points: list[AccessPoint] | BaseException = []
        self.global_settings: dict[str, Any] | None | BaseException = None
        self.delay = 0.0
        self.calls: dict[str, int] = {}
        self.station_queries: list[dict[str, Any]] = []

    @property
    def service_id(self) -> str:
        return "fake"

    async def _enter(self, name: str) -> None:
        self.calls[name] = self.calls.get(name, 0) + 1
        if self.delay:
            await asyncio.sleep(self.delay)
        else:
            await asyncio.sleep(0)

    def count(self, name: str) -> int:
        return self.calls.get(name, 0)

    async def fetch_sites(self) -> list[Site]:
        await self._enter("fetch_sites")
        return list(_outcome(self.sites))

    async def fetch_site_by_id(self, site_id: str) -> Site | None:
        await self._enter("fetch_site_by_id")
        if self.site_by_id_error is not None:
            raise self.site_by_id_error
        return self.sites_by_id.get(site_id)

    async def fetch_stations(self, fields=None, limit=None, offset=None):
        await self._enter("fetch_stations")
        self.station_queries.append({"fields": fields, "limit": limit, "offset": offset})
        return list(_outcome(self.stations))

    async def fetch_station_traffic(self, mac_address: str):
        await self._enter("fetch_station_traffic")
        return _outcome(self.traffic.get(mac_address))

    async def fetch_services(self) -> list[Service]:
        await self._enter("fetch_services")
        return list(_outcome(self.services))

    async def fetch_roles(self) -> list[Role]:
        await self._enter("fetch_roles")
        return list(_outcome(self.roles))

    async def fetch_access_points(self) -> list[AccessPoint]:
        await self._enter("fetch_access_points")
        return list(_outcome(self.access_points))

    async def fetch_global_settings(self):
        await self._enter("fetch_global_settings")
        return _outcome(self.global_settings)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def api() -> FakeNetworkApi:
    return FakeNetworkApi()
