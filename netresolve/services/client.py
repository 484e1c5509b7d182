"""
ServiceClient - Async HTTP client for the Campus Controller management API.

Combines:
- Bearer-token authentication and a shared base URL
- Per-request timeouts
- SingleFlight for identical concurrent GET requests
- Mapping of httpx failures onto the service error taxonomy
"""

from typing import Any

import httpx
from loguru import logger

from netresolve.services.errors import (
    NotFoundError,
    RequestTimeoutError,
    ResponseShapeError,
    ServiceError,
)
from netresolve.services.single_flight import SingleFlight


class ServiceClient:
    """
    HTTP client with authentication, timeouts and GET deduplication.

    Usage:
        client = ServiceClient(
            base_url="https://controller:443/management",
            token="...",
        )

        sites = await client.get_json("/v3/sites", timeout=10.0)
    """

    def __init__(
        self,
        base_url: str,
        token: str = "",
        service_id: str = "campus",
        default_timeout: float = 5.0,
        verify: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
        debug: bool = False,
    ):
        self.base_url = base_url.rstrip("/")
        self.service_id = service_id
        self._token = token
        self._default_timeout = default_timeout
        self._verify = verify
        self._transport = transport
        self._flight = SingleFlight(f"{service_id}-http", debug=debug)

        # HTTP client (lazy initialization)
        self._http_client: httpx.AsyncClient | None = None

    def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            headers = {"Accept": "application/json"}
            if self._token:
                headers["Authorization"] = f"Bearer {self._token}"
            self._http_client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=headers,
                timeout=httpx.Timeout(self._default_timeout),
                verify=self._verify,
                transport=self._transport,
                follow_redirects=True,
            )
        return self._http_client

    async def get_json(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> Any:
        """
        GET ``path`` and decode its JSON body.

        Identical concurrent calls (same path and params) share one request.

        Raises:
            NotFoundError: On HTTP 404
            RequestTimeoutError: If the request times out
            ResponseShapeError: If the body is not JSON
            ServiceError: For other HTTP or transport errors
        """
        key = path
        if params:
            key += "?" + "&".join(f"{k}={v}" for k, v in sorted(params.items()))

        async def do_request() -> Any:
            return await self._execute_request(path, params, timeout)

        return await self._flight.run(key, do_request)

    async def _execute_request(
        self,
        path: str,
        params: dict[str, Any] | None,
        timeout: float | None,
    ) -> Any:
        client = self._get_http_client()
        req_timeout = timeout or self._default_timeout

        try:
            response = await client.get(path, params=params, timeout=req_timeout)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(self.service_id, req_timeout) from e
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                raise NotFoundError(self.service_id, path) from e
            raise ServiceError(
                f"HTTP {e.response.status_code}: {e.response.text[:200]}",
                service_id=self.service_id,
                status_code=e.response.status_code,
            ) from e
        except httpx.RequestError as e:
            raise ServiceError(str(e), service_id=self.service_id) from e

        try:
            return response.json()
        except ValueError as e:
            raise ResponseShapeError(
                f"Invalid JSON from {path}: {e}", service_id=self.service_id
            ) from e

    async def close(self) -> None:
        """Close the HTTP client and cancel in-flight requests."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

        await self._flight.cancel_all()
        logger.debug(f"ServiceClient '{self.service_id}' closed")

    async def __aenter__(self) -> "ServiceClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
