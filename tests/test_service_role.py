import asyncio

import pytest

from netresolve.models import Role, Service, ServiceDetails
from netresolve.resolvers.service_role import ServiceRoleResolver
from netresolve.services.errors import NotFoundError, ServiceError

SERVICE_ID = "5f0c1d2e-1111-2222-3333-444455556666"
ROLE_ID = "9a8b7c6d-aaaa-bbbb-cccc-ddddeeeeffff"


@pytest.fixture
def resolver(api) -> ServiceRoleResolver:
    return ServiceRoleResolver(api, timeout=1.0)


@pytest.mark.asyncio
async def test_resolves_service_details(api, resolver):
    api.services = [Service(id=SERVICE_ID, name="Corp WLAN", ssid="corp", vlan=20)]

    details = await resolver.resolve_service_details(SERVICE_ID)

    assert details == ServiceDetails(ssid="corp", network_name="Corp WLAN", vlan="20")


@pytest.mark.asyncio
async def test_vlan_falls_back_to_port_number(api, resolver):
    api.services = [Service(id=SERVICE_ID, name="Guest", dot1dPortNumber=7)]

    details = await resolver.resolve_service_details(SERVICE_ID)

    assert details.ssid == "N/A"
    assert details.vlan == "7"


@pytest.mark.asyncio
async def test_one_combined_load_for_both_kinds(api, resolver):
    api.services = [Service(id=SERVICE_ID, name="Corp", ssid="corp")]
    api.roles = [Role(id=ROLE_ID, name="Employee")]

    assert await resolver.resolve_role_name(ROLE_ID) == "Employee"
    assert (await resolver.resolve_service_details(SERVICE_ID)).ssid == "corp"
    await resolver.resolve_role_name("unknown-role-id")

    assert api.count("fetch_services") == 1
    assert api.count("fetch_roles") == 1


@pytest.mark.asyncio
async def test_concurrent_first_calls_share_one_load(api, resolver):
    api.delay = 0.01
    api.services = [Service(id=SERVICE_ID, name="Corp", ssid="corp")]

    await asyncio.gather(
        *(resolver.resolve_service_details(SERVICE_ID) for _ in range(10)),
        *(resolver.resolve_role_name(ROLE_ID) for _ in range(10)),
    )

    assert api.count("fetch_services") == 1
    assert api.count("fetch_roles") == 1


@pytest.mark.asyncio
async def test_missing_roles_endpoint_does_not_block_services(api, resolver):
    api.services = [Service(id=SERVICE_ID, name="Corp", ssid="corp")]
    api.roles = NotFoundError("fake", "/v3/roles")

    assert (await resolver.resolve_service_details(SERVICE_ID)).ssid == "corp"
    assert await resolver.resolve_role_name(ROLE_ID) == "Role 9a8b7c6d"


@pytest.mark.asyncio
async def test_failed_load_is_not_retried(api, resolver):
    api.services = ServiceError("HTTP 500", service_id="fake")
    api.roles = ServiceError("HTTP 500", service_id="fake")

    first = await resolver.resolve_service_details(SERVICE_ID)
    api.services = [Service(id=SERVICE_ID, name="Corp", ssid="corp")]
    second = await resolver.resolve_service_details(SERVICE_ID)

    assert first == second
    assert first.ssid == "Service 5f0c1d2e"
    assert first.network_name == "Service 5f0c1d2e"
    assert first.vlan == "N/A"
    assert resolver.loaded
    assert api.count("fetch_services") == 1


@pytest.mark.asyncio
async def test_invalidate_allows_reload(api, resolver):
    api.services = ServiceError("HTTP 500", service_id="fake")
    await resolver.resolve_service_details(SERVICE_ID)

    api.services = [Service(id=SERVICE_ID, name="Corp", ssid="corp")]
    resolver.invalidate()

    assert (await resolver.resolve_service_details(SERVICE_ID)).ssid == "corp"
    assert api.count("fetch_services") == 2


@pytest.mark.asyncio
async def test_empty_ids(api, resolver):
    assert await resolver.resolve_service_details("") == ServiceDetails.unavailable()
    assert await resolver.resolve_role_name("") == "N/A"
    assert api.calls == {}


@pytest.mark.asyncio
async def test_roles_without_name_are_ignored(api, resolver):
    api.roles = [Role(id=ROLE_ID), Role(id="other-role", name="Contractor")]

    assert await resolver.resolve_role_name(ROLE_ID) == "Role 9a8b7c6d"
    assert resolver.all_roles() == {"other-role": "Contractor"}
    assert resolver.status() == {"loaded": True, "services_count": 0, "roles_count": 1}
