"""
Service and role resolution.

Services and roles are configuration that effectively never changes during a
session, so both lists are fetched together once. After that first attempt,
successful or not, lookups are served from the snapshot until invalidate().
"""

import asyncio
from types import MappingProxyType
from typing import Any, Mapping

from loguru import logger

from netresolve.datasource.base import BaseNetworkApi
from netresolve.models import Role, Service, ServiceDetails
from netresolve.services.deadline import with_timeout
from netresolve.services.single_flight import SingleFlight
from netresolve.utils import absorb_errors

UNKNOWN_LABEL = "N/A"


def fallback_service_details(service_id: str) -> ServiceDetails:
    if not service_id:
        return ServiceDetails.unavailable()
    short_id = service_id[:8]
    return ServiceDetails(
        ssid=f"Service {short_id}",
        network_name=f"Service {short_id}",
        vlan=UNKNOWN_LABEL,
    )


def fallback_role_name(role_id: str) -> str:
    if not role_id:
        return UNKNOWN_LABEL
    return f"Role {role_id[:8]}"


def service_details(service: Service) -> ServiceDetails:
    vlan = service.vlan if service.vlan not in (None, "") else service.dot1d_port_number
    return ServiceDetails(
        ssid=service.ssid or UNKNOWN_LABEL,
        network_name=service.name or UNKNOWN_LABEL,
        vlan=str(vlan) if vlan not in (None, "") else UNKNOWN_LABEL,
    )


class ServiceRoleResolver:
    """Load-once resolver for service and role ids."""

    def __init__(self, api: BaseNetworkApi, timeout: float = 5.0, debug: bool = False):
        self.api = api
        self._timeout = timeout
        self._flight = SingleFlight("service-roles", debug=debug)
        self._loaded = False
        self._services: Mapping[str, Service] = MappingProxyType({})
        self._details: Mapping[str, ServiceDetails] = MappingProxyType({})
        self._roles: Mapping[str, str] = MappingProxyType({})

    @property
    def loaded(self) -> bool:
        return self._loaded

    @absorb_errors(lambda self, service_id: fallback_service_details(service_id))
    async def resolve_service_details(self, service_id: str) -> ServiceDetails:
        """Resolve ``service_id`` to ssid / network name / vlan. Never raises."""
        if not service_id:
            return ServiceDetails.unavailable()

        details = self._details.get(service_id)
        if details is None and not self._loaded:
            await self.ensure_loaded()
            details = self._details.get(service_id)

        return details or fallback_service_details(service_id)

    @absorb_errors(lambda self, role_id: fallback_role_name(role_id))
    async def resolve_role_name(self, role_id: str) -> str:
        """Resolve ``role_id`` to a role name. Never raises."""
        if not role_id:
            return UNKNOWN_LABEL

        name = self._roles.get(role_id)
        if name is None and not self._loaded:
            await self.ensure_loaded()
            name = self._roles.get(role_id)

        return name or fallback_role_name(role_id)

    async def ensure_loaded(self) -> None:
        """Run the combined load unless it already ran."""
        if self._loaded:
            return
        await self._flight.run("load", self._load)

    async def _load(self) -> None:
        if self._loaded:
            return

        services, roles = await asyncio.gather(
            with_timeout(self.api.fetch_services(), self._timeout, "services"),
            with_timeout(self.api.fetch_roles(), self._timeout, "roles"),
            return_exceptions=True,
        )

        if isinstance(services, BaseException):
            logger.warning(f"Services not available for mapping: {services}")
        else:
            self._store_services(services)
            logger.info(f"Loaded {len(self._services)} services for mapping")

        if isinstance(roles, BaseException):
            # Some controllers have no roles endpoint at all
            logger.debug(f"Roles not available for mapping: {roles}")
        else:
            self._store_roles(roles)
            logger.info(f"Loaded {len(self._roles)} roles for mapping")

        self._loaded = True

    def _store_services(self, services: list[Service]) -> None:
        by_id = {service.id: service for service in services if service.id}
        self._services = MappingProxyType(by_id)
        self._details = MappingProxyType(
            {service_id: service_details(s) for service_id, s in by_id.items()}
        )

    def _store_roles(self, roles: list[Role]) -> None:
        self._roles = MappingProxyType(
            {role.id: role.name for role in roles if role.id and role.name}
        )

    def all_services(self) -> list[Service]:
        return list(self._services.values())

    def all_roles(self) -> dict[str, str]:
        return dict(self._roles)

    def invalidate(self) -> None:
        """Forget everything; the next lookup loads again."""
        self._services = MappingProxyType({})
        self._details = MappingProxyType({})
        self._roles = MappingProxyType({})
        self._loaded = False
        logger.info("Service/role mapping invalidated")

    def status(self) -> dict[str, Any]:
        return {
            "loaded": self._loaded,
            "services_count": len(self._services),
            "roles_count": len(self._roles),
        }
