"""
Resolvers - turn controller ids and MAC addresses into presentable values.
"""

from netresolve.resolvers.site import SiteResolver, fallback_site_name
from netresolve.resolvers.service_role import (
    ServiceRoleResolver,
    fallback_role_name,
    fallback_service_details,
)
from netresolve.resolvers.traffic import TrafficAggregator
from netresolve.resolvers.query_context import QueryContextCache

__all__ = [
    "SiteResolver",
    "fallback_site_name",
    "ServiceRoleResolver",
    "fallback_role_name",
    "fallback_service_details",
    "TrafficAggregator",
    "QueryContextCache",
]
