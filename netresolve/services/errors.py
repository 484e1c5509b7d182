"""
Service layer exceptions.

These are raised by the HTTP client and the API collaborator. Resolvers catch
them at their own boundary; nothing here is ever surfaced to the dashboard.
"""


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(
        self,
        message: str,
        service_id: str | None = None,
        status_code: int | None = None,
    ):
        self.service_id = service_id
        self.status_code = status_code
        super().__init__(message)


class RequestTimeoutError(ServiceError):
    """Request timed out."""

    def __init__(self, service_id: str, timeout: float):
        self.timeout = timeout
        super().__init__(
            f"Request to service '{service_id}' timed out after {timeout}s",
            service_id=service_id,
        )


class NotFoundError(ServiceError):
    """Endpoint or entity does not exist (HTTP 404)."""

    def __init__(self, service_id: str, path: str):
        self.path = path
        super().__init__(
            f"{path} not found on service '{service_id}'",
            service_id=service_id,
            status_code=404,
        )


class ResponseShapeError(ServiceError):
    """Response body did not have the expected shape."""

    pass
