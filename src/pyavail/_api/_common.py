"""Shared base for vendor availability adapters.

This module centralizes the contract every adapter honours: transport,
parse, timeout, and not-found failures come back as a human-readable
answer string instead of an exception.  Only session rejection escapes,
so the client can re-authenticate.

It is internal to pyavail and may change at any time.
"""

from __future__ import annotations

import abc
import logging
from typing import ClassVar

from pyavail._transport import HttpResponse, Transport
from pyavail.config import AvailConfig
from pyavail.exceptions import (
    AvailError,
    AvailSessionInvalidError,
    AvailTimeoutError,
    AvailTransportError,
)
from pyavail.models.request import AvailabilityRequest, Manufacturer

_logger = logging.getLogger(__name__)

#: Statuses portals use to reject a stale cookie set.
AUTH_REJECTED_STATUSES: frozenset[int] = frozenset({401, 403})


def safe_header(name: str, value: str) -> str:
    """Return *value* if it can be sent as an HTTP header value."""
    if "\r" in value or "\n" in value:
        raise AvailTransportError(f"Failed to create {name} header: value contains a line break")
    return value


def raise_for_status(
    response: HttpResponse,
    *,
    vendor: Manufacturer,
    action: str,
) -> None:
    """Map auth-rejecting and error statuses to pyavail exceptions."""
    if response.status in AUTH_REJECTED_STATUSES:
        raise AvailSessionInvalidError(
            f"{vendor.value} portal rejected the session while trying to {action} (HTTP {response.status})",
            vendor=vendor.value,
        )
    if response.status >= 400:
        raise AvailTransportError(
            f"Failed to {action}: HTTP {response.status}: {response.text[:200]}",
            status_code=response.status,
            url=response.url,
        )


class VendorAdapter(abc.ABC):
    """One vendor's availability protocol.

    Subclasses implement :meth:`query`; callers use :meth:`availability`.
    """

    vendor: ClassVar[Manufacturer]
    #: Whether the adapter needs a cached portal session.
    requires_session: ClassVar[bool] = True

    def __init__(self, config: AvailConfig, transport: Transport) -> None:
        self._config = config
        self._transport = transport

    @abc.abstractmethod
    async def query(self, request: AvailabilityRequest, cookie_header: str) -> str:
        """Run the vendor protocol, raising pyavail errors on failure."""

    async def availability(self, request: AvailabilityRequest, cookie_header: str) -> str:
        """Run :meth:`query` and turn recoverable failures into the answer string.

        Raises
        ------
        AvailSessionInvalidError
            If the portal rejected *cookie_header*.
        """
        try:
            return await self.query(request, cookie_header)
        except AvailSessionInvalidError:
            raise
        except AvailTimeoutError as exc:
            _logger.warning("%s availability timed out: %s", self.vendor.value, exc)
            return str(exc)
        except AvailError as exc:
            _logger.info("%s availability failed: %s", self.vendor.value, exc)
            return str(exc)
        except Exception as exc:
            _logger.exception("Unexpected error querying %s availability", self.vendor.value)
            return f"Unexpected error querying {self.vendor.value} availability: {exc}"
