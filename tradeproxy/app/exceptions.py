"""Custom exceptions for the proxy application."""


class ProxyException(Exception):
    """Base class for proxy exceptions with HTTP status code.

    All custom exceptions inherit from this class and define their
    status_code for consistent HTTP response handling.
    """
    status_code: int = 500

    def __init__(self, message: str = "Proxy error"):
        self.message = message
        super().__init__(message)

    def to_response(self) -> dict:
        return {"error": self.message}


class QueryRequiredError(ProxyException):
    """Raised when a search request carries no query.

    Raised before any rate gate or upstream interaction.
    Maps to HTTP 400 Bad Request.
    """
    status_code = 400

    def __init__(self, message: str = "Query is required"):
        super().__init__(message)


class UpstreamError(ProxyException):
    """Base class for failures of the upstream trade API."""

    def __init__(self, message: str, upstream_status: int | None = None):
        self.upstream_status = upstream_status
        super().__init__(message)

    def to_response(self) -> dict:
        body = {"error": self.message}
        if self.upstream_status is not None:
            body["status"] = self.upstream_status
        return body


class UpstreamRejectedError(UpstreamError):
    """The upstream answered with a non-2xx status other than 403.

    The upstream status code is reproduced in the response.
    """

    def __init__(self, upstream_status: int, message: str | None = None):
        super().__init__(
            message or f"PoE API returned {upstream_status}",
            upstream_status=upstream_status,
        )
        self.status_code = upstream_status


class UpstreamBlockedError(UpstreamRejectedError):
    """The upstream answered 403: the caller is blocked or rate limited.

    Maps to HTTP 403 Forbidden.
    """

    def __init__(self, message: str | None = None):
        super().__init__(403, message)


class UpstreamUnreachableError(UpstreamError):
    """The upstream call raised (network error, timeout, undecodable body).

    Maps to HTTP 502 Bad Gateway.
    """
    status_code = 502

    def __init__(self, message: str = "PoE API unreachable"):
        super().__init__(message)
