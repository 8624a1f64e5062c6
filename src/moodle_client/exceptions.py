"""
Exception hierarchy for the Moodle client library.

Every failure the client can report is a subclass of MoodleClientError.
Errors detected before any network I/O (missing origin, token or
credentials, unsupported method) are raised immediately; errors coming
back from the server preserve the HTTP status, the Moodle error code and
the diagnostic fields of the response.
"""

from typing import Any, Dict, Optional


class MoodleClientError(Exception):
    """
    Base exception for all Moodle client errors.

    Attributes:
        message: Human-readable error message
        status_code: HTTP status code (if applicable)
        error_code: Moodle error code (e.g., "invalidtoken")
        details: Additional error details from the response
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}

    def __str__(self) -> str:
        parts = [self.message]
        if self.error_code:
            parts.insert(0, f"[{self.error_code}]")
        if self.status_code:
            parts.append(f"(HTTP {self.status_code})")
        return " ".join(parts)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"status_code={self.status_code}, "
            f"error_code={self.error_code!r})"
        )


# =============================================================================
# Caller Errors (raised before any network I/O)
# =============================================================================


class ConfigurationError(MoodleClientError):
    """
    The client is not set up for the requested operation.

    Raised when:
    - No wwwroot was configured
    - No token is held when calling a web service function
    - Neither a token nor a username/password pair was supplied
    """

    def __init__(
        self,
        message: str = "Client is not configured",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details=details)


class UnsupportedMethodError(MoodleClientError):
    """Only GET and POST can be used to call web service functions."""

    def __init__(
        self,
        method: str,
        *,
        message: Optional[str] = None,
    ):
        super().__init__(
            message or f"Unsupported protocol method: {method} (only GET and POST supported)",
            details={"method": method},
        )
        self.method = method


# =============================================================================
# Transport Errors
# =============================================================================


class TransportError(MoodleClientError):
    """
    The HTTP exchange itself failed.

    Either the server answered with an unexpected status code, or the
    request never completed. The underlying httpx exception, if any, is
    chained as __cause__.
    """

    def __init__(
        self,
        message: str = "Unexpected response status code",
        *,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message,
            status_code=status_code,
            details=details,
        )


class NetworkError(TransportError):
    """
    Network-level error occurred.

    Raised when there's a connection problem, DNS failure, or other
    network-related issues.
    """

    def __init__(
        self,
        message: str = "Network error",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details=details)


class TimeoutError(NetworkError):
    """Request timed out."""

    def __init__(
        self,
        message: str = "Request timed out",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details=details)


# =============================================================================
# Response Errors
# =============================================================================


class ParseError(MoodleClientError):
    """The response body could not be decoded as JSON."""

    def __init__(
        self,
        message: str = "Unable to parse server response",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details=details)


class UnexpectedResponseError(ParseError):
    """The response was valid JSON but not of the expected shape."""

    def __init__(
        self,
        message: str = "Unexpected response format",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details=details)


class AuthenticationError(MoodleClientError):
    """
    The token endpoint rejected the credentials.

    Moodle reports login failures with HTTP 200 and an "error" member in
    the body, e.g. "The username was not found in the database".
    """

    def __init__(
        self,
        message: str = "Authentication failed",
        *,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message,
            error_code=error_code,
            details=details,
        )

    @property
    def debuginfo(self) -> Optional[str]:
        return self.details.get("debuginfo")


class RemoteExecutionError(MoodleClientError):
    """
    A web service function raised an exception on the server.

    Attributes:
        exception: Moodle exception class (e.g., "moodle_exception")
        message: Exception message
        errorcode: Moodle error code
        debuginfo: Optional debugging information; diagnostic only
    """

    def __init__(
        self,
        exception: str,
        message: str,
        errorcode: Optional[str] = None,
        *,
        debuginfo: Optional[str] = None,
    ):
        details: Dict[str, Any] = {"exception": exception}
        if debuginfo:
            details["debuginfo"] = debuginfo
        super().__init__(
            message,
            error_code=errorcode,
            details=details,
        )
        self.exception = exception
        self.errorcode = errorcode
        self.debuginfo = debuginfo

    def __str__(self) -> str:
        return f"{self.exception}: {self.message} [{self.errorcode}]"

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "RemoteExecutionError":
        """Build the error from a decoded Moodle exception body."""
        return cls(
            str(payload.get("exception")),
            str(payload.get("message", "")),
            payload.get("errorcode"),
            debuginfo=payload.get("debuginfo"),
        )
