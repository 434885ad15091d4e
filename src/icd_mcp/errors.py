"""Exceptions raised by the WHO ICD-API client."""


class ICDError(Exception):
    """Base class for ICD MCP server errors."""


class ConfigurationError(ICDError):
    """Client credentials are missing."""


class ApiError(ICDError):
    """The ICD-API answered with a non-success status."""

    def __init__(self, status: int, body: str = "", message: str | None = None):
        self.status = status
        self.body = body
        super().__init__(message or f"API request failed: {status} - {body}")


class AuthenticationError(ApiError):
    """The token endpoint rejected the credentials, or a refreshed token was still refused."""

    def __init__(self, status: int, body: str = ""):
        super().__init__(status, body, f"Authentication failed: {status} - {body}")


class RateLimitError(ApiError):
    """HTTP 429 from the ICD-API. Not retried."""

    def __init__(self, body: str = ""):
        super().__init__(429, body, "Rate limit exceeded. Please try again later.")


class MissingArgumentError(ICDError):
    """A tool action was called without one of its required arguments."""
