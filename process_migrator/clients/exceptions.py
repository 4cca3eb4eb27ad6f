"""Common exceptions for all client modules."""


class ClientError(Exception):
    """Base exception for all client errors."""


class ClientConnectionError(ClientError):
    """Error when connection to a service fails (reset, refused or timed out)."""


class AuthenticationError(ClientError):
    """Error when authentication fails."""


class ResourceNotFoundError(ClientError):
    """Error when a resource is not found."""


class JsonParseError(ClientError):
    """Error when parsing JSON output."""


class ApiError(ClientError):
    """General API error carrying the HTTP status and the service message."""

    def __init__(self, message: str, status_code: int | None = None, detail: str | None = None) -> None:
        """Initialize an API error with optional HTTP status code and remote detail."""
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail
