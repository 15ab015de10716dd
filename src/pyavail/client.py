"""High-level async client answering appliance availability questions."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from typing import Any

import aiohttp

from pyavail._api._common import VendorAdapter
from pyavail._api.cart import CartAdapter
from pyavail._api.login import Authenticator, BrowserAuthenticator, FormAuthenticator
from pyavail._api.odata import ODataAdapter
from pyavail._api.spreadsheet import SpreadsheetAdapter
from pyavail._transport import HttpTransport, Transport
from pyavail.config import AvailConfig, VendorCredentials, credentials_from_env
from pyavail.enrich import prepare_request
from pyavail.exceptions import (
    AvailAuthenticationError,
    AvailError,
    AvailSessionInvalidError,
    AvailTimeoutError,
    AvailValidationError,
)
from pyavail.models.request import AvailabilityRequest, Manufacturer, RequestUser
from pyavail.session import SessionRecord
from pyavail.token_cache import TokenCache

_logger = logging.getLogger(__name__)


class AvailabilityClient:
    """Async client resolving availability across the vendor portals.

    Usage::

        async with AvailabilityClient(AvailConfig.from_env()) as client:
            answer = await client.resolve(request, credentials)
    """

    def __init__(
        self,
        config: AvailConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
        token_cache: TokenCache | None = None,
        authenticators: Mapping[Manufacturer, Authenticator] | None = None,
        adapters: Mapping[Manufacturer, VendorAdapter] | None = None,
        credentials: Mapping[Manufacturer, VendorCredentials] | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._transport = transport
        self._token_cache = token_cache
        self._authenticators: dict[Manufacturer, Authenticator] = dict(authenticators or {})
        self._adapters: dict[Manufacturer, VendorAdapter] = dict(adapters or {})
        self._credentials: dict[Manufacturer, VendorCredentials] = dict(credentials or {})
        self._login_locks: dict[Manufacturer, asyncio.Lock] = {}

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> AvailabilityClient:
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = HttpTransport(self._http_session, timeout=self._config.request_timeout)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    # ------------------------------------------------------------------
    # Component lookup
    # ------------------------------------------------------------------

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise AvailError("Client not initialized. Use 'async with AvailabilityClient(...) as client:'")
        return self._transport

    def _require_token_cache(self) -> TokenCache:
        if self._token_cache is None:
            self._token_cache = TokenCache.from_config(self._config)
        return self._token_cache

    def _adapter_for(self, vendor: Manufacturer) -> VendorAdapter:
        adapter = self._adapters.get(vendor)
        if adapter is None:
            transport = self._require_transport()
            if vendor is Manufacturer.BSH:
                adapter = ODataAdapter(self._config, transport)
            elif vendor is Manufacturer.SUBZERO:
                adapter = CartAdapter(self._config, transport)
            else:
                adapter = SpreadsheetAdapter(self._config, transport)
            self._adapters[vendor] = adapter
        return adapter

    def _authenticator_for(self, vendor: Manufacturer) -> Authenticator:
        authenticator = self._authenticators.get(vendor)
        if authenticator is None:
            if vendor is Manufacturer.SUBZERO:
                authenticator = FormAuthenticator(self._require_transport(), self._require_token_cache())
            else:
                authenticator = BrowserAuthenticator(self._config, self._require_token_cache())
            self._authenticators[vendor] = authenticator
        return authenticator

    def _credentials_for(self, vendor: Manufacturer, explicit: VendorCredentials | None) -> VendorCredentials:
        credentials = explicit or self._credentials.get(vendor) or credentials_from_env(vendor)
        if credentials is None:
            raise AvailAuthenticationError(f"No credentials available for {vendor.value}", vendor=vendor.value)
        return credentials

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def ensure_session(
        self,
        vendor: Manufacturer,
        credentials: VendorCredentials | None = None,
        *,
        rejected: SessionRecord | None = None,
    ) -> SessionRecord | None:
        """Return a cached session, logging in when there is none.

        Logins are single-flight per vendor: concurrent callers wait for
        the first login and reuse its result.  Passing *rejected* forces
        a new login unless another caller already replaced that session.

        Raises
        ------
        AvailAuthenticationError
            If the login itself fails.
        """
        cache = self._require_token_cache()
        lock = self._login_locks.setdefault(vendor, asyncio.Lock())
        async with lock:
            record = await asyncio.to_thread(cache.get, vendor)
            if record is not None and (rejected is None or record != rejected):
                return record
            if rejected is not None:
                await asyncio.to_thread(cache.invalidate, vendor)

            creds = self._credentials_for(vendor, credentials)
            await self._authenticator_for(vendor).login(vendor, creds)
            record = await asyncio.to_thread(cache.get, vendor)
            if record is None:
                _logger.warning("Login to %s succeeded but no session could be read back", vendor.value)
            return record

    # ------------------------------------------------------------------
    # Resolve
    # ------------------------------------------------------------------

    async def resolve(
        self,
        request: AvailabilityRequest,
        credentials: VendorCredentials | None = None,
        *,
        timeout: float | None = None,
    ) -> str:
        """Answer "when is this model available at this warehouse".

        Always returns a human-readable string, including for vendor-side
        failures.

        Raises
        ------
        AvailAuthenticationError
            If a required portal login fails.
        AvailTimeoutError
            If *timeout* seconds elapse before an answer is available.
        """
        try:
            async with asyncio.timeout(timeout):
                return await self._resolve(request, credentials)
        except TimeoutError as exc:
            raise AvailTimeoutError(f"Resolving availability timed out after {timeout}s") from exc

    async def _resolve(self, request: AvailabilityRequest, credentials: VendorCredentials | None) -> str:
        try:
            vendor, model_number = request.require_dispatchable()
        except AvailValidationError as exc:
            return str(exc)

        adapter = self._adapter_for(vendor)
        _logger.debug("Resolving %s %s at warehouse=%s", vendor.value, model_number, request.warehouse)
        if not adapter.requires_session:
            return await adapter.availability(request, "")

        session = await self.ensure_session(vendor, credentials)
        if session is None:
            return f"Failed to get {vendor.value} session token."

        try:
            return await adapter.availability(request, session.cookie_header())
        except AvailSessionInvalidError as exc:
            _logger.info("%s rejected cached session (%s); logging in again", vendor.value, exc)

        session = await self.ensure_session(vendor, credentials, rejected=session)
        if session is None:
            return f"Failed to get {vendor.value} session token."
        try:
            return await adapter.availability(request, session.cookie_header())
        except AvailSessionInvalidError as exc:
            return f"{vendor.value} portal rejected a fresh session: {exc}"

    async def check_availability(
        self,
        manufacturer: str | Manufacturer | None,
        showroom: str | None,
        model_number: str | None,
        *,
        user: RequestUser | None = None,
        credentials: VendorCredentials | None = None,
        timeout: float | None = None,
    ) -> AvailabilityRequest:
        """Enrich the raw inputs, resolve, and return the answered request."""
        request = prepare_request(manufacturer, showroom, model_number, user=user)
        availability = await self.resolve(request, credentials, timeout=timeout)
        return request.evolve(availability=availability)
