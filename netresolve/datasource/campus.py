"""
Campus Controller management API.

Controllers in the field run different API versions, so the site endpoints
are probed in order until one answers with data.
"""

from typing import Any, TypeVar
from urllib.parse import quote

from loguru import logger
from pydantic import BaseModel, ValidationError

from netresolve.datasource.base import BaseNetworkApi
from netresolve.models import AccessPoint, Role, Service, Site
from netresolve.services.client import ServiceClient
from netresolve.services.errors import NotFoundError, ResponseShapeError, ServiceError

M = TypeVar("M", bound=BaseModel)

SITE_LIST_ENDPOINTS = [
    "/v3/sites",
    "/v1/sites",
    "/sites",
    "/v2/sites",
    "/v1/sites/all",
]

SITE_DETAIL_ENDPOINTS = [
    "/v3/sites/{site_id}",
    "/v1/sites/{site_id}",
    "/sites/{site_id}",
    "/v2/sites/{site_id}",
]


class CampusControllerApi(BaseNetworkApi):
    """
    Campus Controller implementation of the network API collaborator.

    All HTTP goes through ServiceClient; this class only knows endpoints and
    response shapes.
    """

    SERVICE_ID = "campus"

    def __init__(
        self,
        client: ServiceClient,
        sites_timeout: float = 10.0,
        request_timeout: float = 5.0,
    ):
        self.client = client
        self.sites_timeout = sites_timeout
        self.request_timeout = request_timeout

    @property
    def service_id(self) -> str:
        return self.SERVICE_ID

    async def fetch_sites(self) -> list[Site]:
        """
        Fetch the site list, probing each known endpoint in turn.

        A 404, an empty list or an unparseable body moves on to the next
        endpoint. Returns an empty list when at least one endpoint answered
        but none had sites; raises the last error when every endpoint failed.
        """
        last_error: ServiceError | None = None
        answered = False

        for endpoint in SITE_LIST_ENDPOINTS:
            try:
                data = await self.client.get_json(endpoint, timeout=self.sites_timeout)
                sites = self._parse_list(data, Site, endpoint)
            except NotFoundError:
                logger.debug(f"Sites endpoint {endpoint} not found, trying next")
                continue
            except ServiceError as e:
                logger.warning(f"Failed to load sites from {endpoint}: {e}")
                last_error = e
                continue

            answered = True
            if sites:
                logger.info(f"Fetched {len(sites)} sites from {endpoint}")
                return sites
            logger.warning(f"{endpoint} returned no sites, trying next")

        if not answered and last_error is not None:
            raise last_error
        return []

    async def fetch_site_by_id(self, site_id: str) -> Site | None:
        """
        Look up one site on the per-site endpoints, trying each in turn.

        Returns None when every endpoint answered 404. Raises the last error
        when no endpoint returned the site and at least one failed otherwise.
        """
        last_error: ServiceError | None = None

        for template in SITE_DETAIL_ENDPOINTS:
            endpoint = template.format(site_id=quote(site_id, safe=""))
            try:
                data = await self.client.get_json(endpoint, timeout=self.request_timeout)
                return self._parse_one(data, Site, endpoint)
            except NotFoundError:
                continue
            except ServiceError as e:
                logger.debug(f"Site lookup on {endpoint} failed, trying next: {e}")
                last_error = e

        if last_error is not None:
            raise last_error
        return None

    async def fetch_stations(
        self,
        fields: list[str] | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[dict[str, Any]]:
        params: dict[str, Any] = {}
        if fields:
            params["fields"] = ",".join(fields)
        if limit is not None:
            params["limit"] = limit
        if offset is not None:
            params["offset"] = offset

        data = await self.client.get_json(
            "/v1/stations", params=params or None, timeout=self.request_timeout
        )
        if not isinstance(data, list):
            raise ResponseShapeError(
                "Stations response is not a list", service_id=self.SERVICE_ID
            )
        return [item for item in data if isinstance(item, dict)]

    async def fetch_station_traffic(self, mac_address: str) -> dict[str, Any] | None:
        endpoint = f"/v1/stations/{quote(mac_address, safe='')}"
        try:
            data = await self.client.get_json(endpoint, timeout=self.request_timeout)
        except NotFoundError:
            return None
        if not isinstance(data, dict):
            raise ResponseShapeError(
                f"Traffic response for {mac_address} is not an object",
                service_id=self.SERVICE_ID,
            )
        return data

    async def fetch_services(self) -> list[Service]:
        data = await self.client.get_json("/v1/services", timeout=self.request_timeout)
        return self._parse_list(data, Service, "/v1/services")

    async def fetch_roles(self) -> list[Role]:
        data = await self.client.get_json("/v3/roles", timeout=self.request_timeout)
        return self._parse_list(data, Role, "/v3/roles")

    async def fetch_access_points(self) -> list[AccessPoint]:
        data = await self.client.get_json("/v1/aps", timeout=self.request_timeout)
        return self._parse_list(data, AccessPoint, "/v1/aps")

    async def fetch_global_settings(self) -> dict[str, Any] | None:
        try:
            data = await self.client.get_json(
                "/v1/globalsettings", timeout=self.request_timeout
            )
        except NotFoundError:
            return None
        return data if isinstance(data, dict) else None

    def _parse_list(self, data: Any, model: type[M], endpoint: str) -> list[M]:
        if not isinstance(data, list):
            raise ResponseShapeError(
                f"{endpoint} response is not a list", service_id=self.SERVICE_ID
            )
        try:
            return [model.model_validate(item) for item in data]
        except ValidationError as e:
            raise ResponseShapeError(
                f"Unexpected item shape from {endpoint}: {e.error_count()} errors",
                service_id=self.SERVICE_ID,
            ) from e

    def _parse_one(self, data: Any, model: type[M], endpoint: str) -> M:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise ResponseShapeError(
                f"Unexpected shape from {endpoint}: {e.error_count()} errors",
                service_id=self.SERVICE_ID,
            ) from e
