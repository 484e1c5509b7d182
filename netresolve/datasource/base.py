"""
Base network API interface.
"""

from abc import ABC, abstractmethod
from typing import Any

from netresolve.models import AccessPoint, Role, Service, Site, Station


class BaseNetworkApi(ABC):
    """
    Abstract collaborator that the resolvers fetch from.

    Implementations should:
    - Raise a ServiceError subclass on transport, HTTP or shape failures
    - Return an empty list for a successful but empty response
    - Return None from single-entity lookups when the entity does not exist
    """

    @property
    @abstractmethod
    def service_id(self) -> str:
        """Identifier used in logs and errors."""
        ...

    @abstractmethod
    async def fetch_sites(self) -> list[Site]: ...

    @abstractmethod
    async def fetch_site_by_id(self, site_id: str) -> Site | None: ...

    @abstractmethod
    async def fetch_stations(
        self,
        fields: list[str] | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[dict[str, Any]]:
        """Raw station records, optionally projected to ``fields`` and paged."""
        ...

    @abstractmethod
    async def fetch_station_traffic(self, mac_address: str) -> dict[str, Any] | None:
        """Raw traffic record for one station, or None if unknown."""
        ...

    @abstractmethod
    async def fetch_services(self) -> list[Service]: ...

    @abstractmethod
    async def fetch_roles(self) -> list[Role]: ...

    async def fetch_access_points(self) -> list[AccessPoint]:
        return []

    async def fetch_global_settings(self) -> dict[str, Any] | None:
        return None

    async def fetch_station_records(self) -> list[Station]:
        """All stations as models."""
        return [Station.model_validate(raw) for raw in await self.fetch_stations()]
