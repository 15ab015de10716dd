"""Custom exception hierarchy for pyavail."""

from __future__ import annotations


class AvailError(Exception):
    """Base exception for all pyavail errors."""


class AvailConfigError(AvailError):
    """Invalid or missing configuration."""


class AvailValidationError(AvailError):
    """Request is missing a field required before dispatch."""


class AvailAuthenticationError(AvailError):
    """Login to a vendor portal failed.

    This is the only error kind allowed to abort a resolve call.
    """

    def __init__(self, message: str, *, vendor: str = "") -> None:
        self.vendor = vendor
        super().__init__(message)


class AvailSessionInvalidError(AvailError):
    """Cached session is absent, undecodable, or rejected by the portal.

    Raised by adapters when the portal answers with an auth-required
    response.  The client catches this to trigger re-authentication.
    """

    def __init__(self, message: str, *, vendor: str = "") -> None:
        self.vendor = vendor
        super().__init__(message)


class AvailTransportError(AvailError):
    """HTTP-level failure (network, unexpected status)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        url: str = "",
    ) -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(message)


class AvailTimeoutError(AvailTransportError):
    """A network call, browser step, or bounded loop ran out of time or attempts."""


class AvailParseError(AvailError):
    """Vendor response body did not have the expected shape."""


class AvailNotFoundError(AvailError):
    """No record, row, or usable availability value was found."""
