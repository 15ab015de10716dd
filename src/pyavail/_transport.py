"""HTTP transport with per-call timeouts and Set-Cookie harvesting."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from email.utils import parsedate_to_datetime
from http.cookies import Morsel, SimpleCookie
from typing import Any, Protocol

import aiohttp

from pyavail._constants import USER_AGENT
from pyavail.exceptions import AvailTimeoutError, AvailTransportError
from pyavail.session import Cookie

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HttpResponse:
    """Fully-read HTTP response.

    ``headers`` keys are lower-cased.  ``cookies`` holds the cookies set
    by this response only, in header order.
    """

    status: int
    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""
    cookies: tuple[Cookie, ...] = ()
    encoding: str = "utf-8"

    @property
    def text(self) -> str:
        return self.body.decode(self.encoding, errors="replace")

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 400


class Transport(Protocol):
    """Structural transport interface used by the adapters and authenticators.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (`HttpTransport`) concrete.
    """

    async def request(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        params: Mapping[str, str] | None = None,
        data: Mapping[str, str] | str | None = None,
        json_body: Any = None,
        allow_redirects: bool = True,
    ) -> HttpResponse: ...


def _morsel_expiry(morsel: Morsel[str], now: float) -> float | None:
    """Absolute expiry (epoch seconds) of a cookie; ``Max-Age`` wins over ``Expires``."""
    max_age = morsel["max-age"]
    if max_age:
        try:
            return now + int(max_age)
        except ValueError:
            _logger.debug("Ignoring malformed Max-Age %r", max_age)
    expires = morsel["expires"]
    if expires:
        try:
            return parsedate_to_datetime(expires).timestamp()
        except (TypeError, ValueError):
            _logger.debug("Ignoring malformed Expires %r", expires)
    return None


def parse_set_cookie_headers(
    raw_headers: list[str],
    default_domain: str = "",
    *,
    now: float | None = None,
) -> tuple[Cookie, ...]:
    """Parse ``Set-Cookie`` header values into cookies, keeping order.

    ``now`` is the epoch time ``Max-Age`` is counted from.
    """
    if now is None:
        now = time.time()
    cookies: list[Cookie] = []
    for raw in raw_headers:
        jar: SimpleCookie = SimpleCookie()
        try:
            jar.load(raw)
        except Exception:
            _logger.debug("Skipping unparsable Set-Cookie header", exc_info=True)
            continue
        for key, morsel in jar.items():
            cookies.append(
                Cookie(
                    name=key,
                    value=morsel.value,
                    domain=morsel["domain"] or default_domain,
                    path=morsel["path"] or "/",
                    expires=_morsel_expiry(morsel, now),
                )
            )
    return tuple(cookies)


class HttpTransport:
    """aiohttp-backed transport.

    Cookies are never stored in the aiohttp jar; every vendor call carries
    its session explicitly in a ``Cookie`` header.
    """

    def __init__(self, http_session: aiohttp.ClientSession, *, timeout: float) -> None:
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def request(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        params: Mapping[str, str] | None = None,
        data: Mapping[str, str] | str | None = None,
        json_body: Any = None,
        allow_redirects: bool = True,
    ) -> HttpResponse:
        merged_headers: dict[str, str] = {"user-agent": USER_AGENT}
        if headers:
            merged_headers.update({k.lower(): v for k, v in headers.items()})

        _logger.debug("%s %s", method, url)

        try:
            async with self._http.request(
                method,
                url,
                headers=merged_headers,
                params=params,
                data=data,
                json=json_body,
                allow_redirects=allow_redirects,
                timeout=self._timeout,
            ) as resp:
                body = await resp.read()
                response = HttpResponse(
                    status=resp.status,
                    url=str(resp.url),
                    headers={k.lower(): v for k, v in resp.headers.items()},
                    body=body,
                    cookies=parse_set_cookie_headers(
                        resp.headers.getall("Set-Cookie", []),
                        default_domain=resp.url.host or "",
                    ),
                    encoding=resp.get_encoding() if body else "utf-8",
                )
        except asyncio.TimeoutError as exc:
            raise AvailTimeoutError(f"{method} {url} timed out", url=url) from exc
        except aiohttp.ClientError as exc:
            raise AvailTransportError(f"{method} {url} failed: {exc}", url=url) from exc

        _logger.debug("%s %s -> HTTP %d (%d bytes)", method, url, response.status, len(response.body))
        return response
