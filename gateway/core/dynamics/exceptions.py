"""Dynamics-specific exceptions for error handling."""


class DynamicsError(Exception):
    """Base exception for all Dynamics operations."""
    pass


class DynamicsAPIError(DynamicsError):
    """HTTP error from the Dynamics Web API or the token endpoint.

    Attributes:
        status_code: HTTP status code (0 when no response was received)
        message: Error message from response
        endpoint: API endpoint that failed
    """

    def __init__(self, status_code: int, message: str, endpoint: str):
        self.status_code = status_code
        self.message = message
        self.endpoint = endpoint
        super().__init__(f"[{status_code}] {endpoint}: {message}")


class AuthError(DynamicsAPIError):
    """Client-credentials token exchange failed."""
    pass


class CrmWriteError(DynamicsError):
    """Entity creation, update or delete failed.

    The string form is the client-visible message, e.g.
    "Failed to create contacts: A record with matching key values already exists."
    """

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class LocationHeaderError(CrmWriteError):
    """Creation succeeded upstream but the record id could not be read from Location."""
    pass


class CrmQueryError(DynamicsError):
    """Read query (fetchXml) failed."""
    pass
