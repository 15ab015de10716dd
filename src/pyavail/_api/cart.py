"""SubZero ordering portal availability via its server-side cart.

Endpoints (all on the WebDispatcher servlet):
  - mode=view     (render the cart)
  - mode=delete   (remove the first cart line)
  - mode=suggest  (autosuggest catalog lookup)
  - mode=add      (add an item, re-render the cart)

The portal only shows a ship date once an item sits in the cart, so the
adapter empties the cart, adds the requested model and reads the date off
the rendered cart table.  The cart is shared by everyone using the same
portal session, so the whole sequence runs under a per-session lock.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import weakref

from bs4 import BeautifulSoup

from pyavail._api._common import VendorAdapter, raise_for_status, safe_header
from pyavail._constants import (
    SUBZERO_AVAILABILITY_CELL,
    SUBZERO_CART_TABLE,
    SUBZERO_DISPATCHER,
    SUBZERO_LOGON_PAGE_SELECTOR,
    SUBZERO_NOT_FOUND,
)
from pyavail._transport import HttpResponse, Transport
from pyavail.config import AvailConfig
from pyavail.exceptions import AvailNotFoundError, AvailSessionInvalidError, AvailTimeoutError
from pyavail.models.request import AvailabilityRequest, Manufacturer

_logger = logging.getLogger(__name__)

_FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


def is_logon_page(html: str) -> bool:
    """Whether *html* is the portal's logon page rather than the requested view."""
    if "mode=logon" in html.lower():
        return True
    soup = BeautifulSoup(html, "html.parser")
    return soup.select_one(SUBZERO_LOGON_PAGE_SELECTOR) is not None


def count_cart_rows(html: str) -> int:
    """Number of ``tr`` rows in the cart table; 0 when no table is rendered."""
    soup = BeautifulSoup(html, "html.parser")
    table = soup.select_one(SUBZERO_CART_TABLE)
    if table is None:
        return 0
    return len(table.find_all("tr"))


def parse_cart_availability(html: str) -> str | None:
    """Ship-availability date from the rendered cart, if any.

    Reads the 8th cell of the cart body rows; the last row carrying one
    wins.  ``html.parser`` does not synthesize ``tbody``, so a table
    without one is read directly.
    """
    soup = BeautifulSoup(html, "html.parser")
    table = soup.select_one(SUBZERO_CART_TABLE)
    if table is None:
        return None
    body = table.find("tbody") or table
    availability: str | None = None
    for row in body.find_all("tr"):
        cells = row.find_all("td")
        if len(cells) > SUBZERO_AVAILABILITY_CELL:
            availability = cells[SUBZERO_AVAILABILITY_CELL].get_text(strip=True)
    return availability


def parse_suggestion(body: str) -> str | None:
    """Extract the suggested model number from an autosuggest response.

    The endpoint answers with a bare item token followed by a JSON-ish
    trailer, which is not valid JSON as a whole::

        response   := suggestion [ trailer ]
        suggestion := { any char except "{", CR, LF }   (not starting with "<")
        trailer    := ( "{" | CR | LF ) { any char }

    The suggestion is trimmed of surrounding whitespace.  An empty
    suggestion (the body starts with the trailer) means the catalog had
    no match and yields ``None``.  A suggestion starting with ``<`` is
    markup, not a catalog item, and also yields ``None``.
    """
    end = len(body)
    for terminator in ("{", "\r", "\n"):
        index = body.find(terminator)
        if index != -1:
            end = min(end, index)
    suggestion = body[:end].strip()
    if not suggestion or suggestion.startswith("<"):
        return None
    return suggestion


class CartAdapter(VendorAdapter):
    """Stateful cart workflow: Idle -> Drained -> Validated -> Added -> Result."""

    vendor = Manufacturer.SUBZERO

    def __init__(self, config: AvailConfig, transport: Transport) -> None:
        super().__init__(config, transport)
        self._session_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def session_lock(self, cookie_header: str) -> asyncio.Lock:
        """Lock guarding the remote cart of the session behind *cookie_header*.

        A lock lives only while some caller holds it, so sessions that are
        no longer used do not accumulate.
        """
        key = hashlib.sha256(cookie_header.encode("utf-8")).hexdigest()
        lock = self._session_locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._session_locks[key] = lock
        return lock

    def _headers(self, cookie_header: str, **extra: str) -> dict[str, str]:
        headers = {"cookie": safe_header("cookie", cookie_header)}
        headers.update(extra)
        return headers

    def _check(self, response: HttpResponse, *, action: str) -> None:
        raise_for_status(response, vendor=self.vendor, action=action)
        if is_logon_page(response.text):
            raise AvailSessionInvalidError(
                f"SubZero portal answered with its logon page while trying to {action}",
                vendor=self.vendor.value,
            )

    async def count_items(self, cookie_header: str) -> int:
        response = await self._transport.request(
            "GET",
            SUBZERO_DISPATCHER,
            params={"mode": "view", "error": "0"},
            headers=self._headers(cookie_header),
        )
        self._check(response, action="view the SubZero cart")
        return count_cart_rows(response.text)

    async def remove_first_item(self, cookie_header: str) -> None:
        form = {"mode": "delete", "index": "0", "x": "3", "y": "9"}
        response = await self._transport.request(
            "POST",
            SUBZERO_DISPATCHER,
            params=form,
            data=form,
            headers=self._headers(cookie_header, **{"content-type": _FORM_CONTENT_TYPE}),
        )
        self._check(response, action="remove item from cart")

    async def drain(self, cookie_header: str) -> int:
        """Delete cart lines until the portal reports an empty cart.

        Returns the number of delete calls issued.

        Raises
        ------
        AvailTimeoutError
            If the cart is still not empty after
            ``config.max_cart_drain_attempts`` deletes.
        """
        max_attempts = self._config.max_cart_drain_attempts
        deletes = 0
        count = await self.count_items(cookie_header)
        while count > 0:
            if deletes >= max_attempts:
                raise AvailTimeoutError(
                    f"SubZero cart still holds {count} item(s) after {deletes} delete attempts",
                    url=SUBZERO_DISPATCHER,
                )
            await self.remove_first_item(cookie_header)
            deletes += 1
            count = await self.count_items(cookie_header)
        _logger.debug("SubZero cart drained with %d delete(s)", deletes)
        return deletes

    async def validate_model_number(self, model_number: str, cookie_header: str) -> str:
        response = await self._transport.request(
            "GET",
            SUBZERO_DISPATCHER,
            params={"mode": "suggest", "type": "advanced", "search": model_number},
            headers=self._headers(cookie_header, accept="*/*"),
        )
        self._check(response, action="get suggested items")
        suggestion = parse_suggestion(response.text)
        if suggestion is None:
            raise AvailNotFoundError(f"Model number {model_number} not found in the SubZero catalog.")
        return suggestion

    async def add_item(self, model_number: str, cookie_header: str) -> str:
        response = await self._transport.request(
            "POST",
            SUBZERO_DISPATCHER,
            params={"mode": "add"},
            data={"item": model_number, "quantity": "1"},
            headers=self._headers(cookie_header, **{"content-type": _FORM_CONTENT_TYPE}),
        )
        self._check(response, action="add item to cart")
        availability = parse_cart_availability(response.text)
        if not availability:
            raise AvailNotFoundError(SUBZERO_NOT_FOUND)
        return availability

    async def query(self, request: AvailabilityRequest, cookie_header: str) -> str:
        _, model_number = request.require_dispatchable()
        async with self.session_lock(cookie_header):
            await self.drain(cookie_header)
            validated = await self.validate_model_number(model_number, cookie_header)
            _logger.debug("SubZero suggested %s for %s", validated, model_number)
            return await self.add_item(validated, cookie_header)
