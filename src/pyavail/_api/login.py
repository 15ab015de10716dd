"""Vendor portal logins.

Two ways of obtaining a session cookie jar:

* :class:`BrowserAuthenticator` drives a headless Chromium through the
  portal's login page (BSH, whose login is a JavaScript application).
* :class:`FormAuthenticator` posts the portal's plain logon form and
  harvests the ``Set-Cookie`` headers (SubZero).

Both persist the harvested session through the token cache, replacing
any previous record for the vendor.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright
from pydantic import ValidationError

from pyavail._constants import (
    BSH_LOGIN_URL,
    BSH_PASSWORD_SELECTOR,
    BSH_READY_SELECTOR,
    BSH_SUBMIT_SELECTOR,
    BSH_USERNAME_SELECTOR,
    SUBZERO_DISPATCHER,
    SUBZERO_LOGON_FORM,
)
from pyavail._redact import redact_for_log
from pyavail._transport import Transport
from pyavail.config import AvailConfig, VendorCredentials
from pyavail.exceptions import AvailAuthenticationError, AvailTransportError
from pyavail.models.request import Manufacturer
from pyavail.session import Cookie, SessionRecord
from pyavail.token_cache import TokenCache

_logger = logging.getLogger(__name__)


class Authenticator(Protocol):
    """Structural login interface used by the client."""

    async def login(self, vendor: Manufacturer, credentials: VendorCredentials) -> SessionRecord: ...


@dataclass(frozen=True)
class BrowserLoginFlow:
    """Selectors driving one portal's login page."""

    login_url: str
    username_selector: str
    password_selector: str
    submit_selector: str
    ready_selector: str
    #: Origin whose cookies make up the session; defaults to the post-login page URL.
    cookie_url: str | None = None


@dataclass(frozen=True)
class FormLoginFlow:
    """Field names of one portal's logon form."""

    url: str
    username_field: str
    password_field: str
    extra_fields: Mapping[str, str] = field(default_factory=dict)


BROWSER_LOGIN_FLOWS: dict[Manufacturer, BrowserLoginFlow] = {
    Manufacturer.BSH: BrowserLoginFlow(
        login_url=BSH_LOGIN_URL,
        username_selector=BSH_USERNAME_SELECTOR,
        password_selector=BSH_PASSWORD_SELECTOR,
        submit_selector=BSH_SUBMIT_SELECTOR,
        ready_selector=BSH_READY_SELECTOR,
    ),
}

FORM_LOGIN_FLOWS: dict[Manufacturer, FormLoginFlow] = {
    Manufacturer.SUBZERO: FormLoginFlow(
        url=SUBZERO_DISPATCHER,
        username_field="user",
        password_field="psswd",
        extra_fields=SUBZERO_LOGON_FORM,
    ),
}


async def _persist(token_cache: TokenCache, record: SessionRecord) -> None:
    try:
        await asyncio.to_thread(token_cache.put, record)
    except OSError as exc:
        raise AvailAuthenticationError(
            f"Failed to write {record.vendor.value} session file: {exc}",
            vendor=record.vendor.value,
        ) from exc


class BrowserAuthenticator:
    """Headless-browser login.

    Every call launches its own browser; browser, context, and page are
    closed on every exit path and never shared between logins.
    """

    def __init__(
        self,
        config: AvailConfig,
        token_cache: TokenCache,
        *,
        flows: Mapping[Manufacturer, BrowserLoginFlow] | None = None,
        playwright_factory: Callable[[], Any] = async_playwright,
    ) -> None:
        self._config = config
        self._token_cache = token_cache
        self._flows = dict(flows) if flows is not None else dict(BROWSER_LOGIN_FLOWS)
        self._playwright_factory = playwright_factory

    async def login(self, vendor: Manufacturer, credentials: VendorCredentials) -> SessionRecord:
        flow = self._flows.get(vendor)
        if flow is None:
            raise AvailAuthenticationError(f"No browser login flow for {vendor.value}", vendor=vendor.value)

        _logger.info("Logging in to %s portal with headless browser", vendor.value)
        try:
            raw_cookies = await self._harvest_cookies(flow, credentials)
        except PlaywrightTimeoutError as exc:
            raise AvailAuthenticationError(
                f"Timed out logging in to {vendor.value} portal: {exc}",
                vendor=vendor.value,
            ) from exc
        except PlaywrightError as exc:
            raise AvailAuthenticationError(
                f"Failed to log in to {vendor.value} portal: {exc}",
                vendor=vendor.value,
            ) from exc

        _logger.debug("Browser returned cookies=%s", redact_for_log(raw_cookies))
        try:
            cookies = tuple(Cookie.from_browser(raw) for raw in raw_cookies)
            record = SessionRecord(vendor=vendor, cookies=cookies)
        except ValidationError as exc:
            raise AvailAuthenticationError(
                f"No usable cookies produced by {vendor.value} login",
                vendor=vendor.value,
            ) from exc

        await _persist(self._token_cache, record)
        return record

    async def _harvest_cookies(
        self,
        flow: BrowserLoginFlow,
        credentials: VendorCredentials,
    ) -> list[dict[str, Any]]:
        timeout_ms = self._config.browser_timeout * 1000
        async with contextlib.AsyncExitStack() as stack:
            playwright = await stack.enter_async_context(self._playwright_factory())
            browser = await playwright.chromium.launch(headless=self._config.headless, timeout=timeout_ms)
            stack.push_async_callback(browser.close)
            context = await browser.new_context()
            stack.push_async_callback(context.close)
            page = await context.new_page()
            stack.push_async_callback(page.close)
            page.set_default_timeout(timeout_ms)

            await page.goto(flow.login_url)
            await page.fill(flow.username_selector, credentials.username)
            await page.fill(flow.password_selector, credentials.password)
            await page.click(flow.submit_selector)
            await page.wait_for_selector(flow.ready_selector)

            cookies: list[dict[str, Any]] = await context.cookies([flow.cookie_url or page.url])
            return cookies


class FormAuthenticator:
    """Logon-form login over plain HTTP."""

    def __init__(
        self,
        transport: Transport,
        token_cache: TokenCache,
        *,
        flows: Mapping[Manufacturer, FormLoginFlow] | None = None,
    ) -> None:
        self._transport = transport
        self._token_cache = token_cache
        self._flows = dict(flows) if flows is not None else dict(FORM_LOGIN_FLOWS)

    async def login(self, vendor: Manufacturer, credentials: VendorCredentials) -> SessionRecord:
        flow = self._flows.get(vendor)
        if flow is None:
            raise AvailAuthenticationError(f"No logon form for {vendor.value}", vendor=vendor.value)

        form = {
            flow.username_field: credentials.username,
            flow.password_field: credentials.password,
            **flow.extra_fields,
        }
        _logger.info("Logging in to %s portal with logon form", vendor.value)
        _logger.debug("Logon form=%s", redact_for_log(form))
        try:
            # Session cookies are set on the logon response itself, not on the redirect target.
            response = await self._transport.request(
                "POST",
                flow.url,
                data=form,
                headers={
                    "content-type": "application/x-www-form-urlencoded",
                    "access-control-allow-credentials": "true",
                },
                allow_redirects=False,
            )
        except AvailTransportError as exc:
            raise AvailAuthenticationError(
                f"Failed to send {vendor.value} login request: {exc}",
                vendor=vendor.value,
            ) from exc

        if response.status >= 400:
            raise AvailAuthenticationError(
                f"{vendor.value} login rejected: HTTP {response.status}",
                vendor=vendor.value,
            )
        if not response.cookies:
            raise AvailAuthenticationError(
                f"No cookies produced by {vendor.value} login",
                vendor=vendor.value,
            )

        _logger.debug("Logon set cookies=%s", redact_for_log(list(response.cookies)))
        record = SessionRecord(vendor=vendor, cookies=response.cookies)
        await _persist(self._token_cache, record)
        return record
