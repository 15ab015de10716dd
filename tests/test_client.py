from __future__ import annotations

import asyncio
import io
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

import pytest
from openpyxl import Workbook

from pyavail._api._common import VendorAdapter
from pyavail._crypto import SessionTokenCodec
from pyavail._transport import HttpResponse
from pyavail.client import AvailabilityClient
from pyavail.config import AvailConfig, VendorCredentials
from pyavail.exceptions import (
    AvailAuthenticationError,
    AvailError,
    AvailSessionInvalidError,
    AvailTimeoutError,
)
from pyavail.models.request import AvailabilityRequest, Manufacturer
from pyavail.session import Cookie, SessionRecord
from pyavail.token_cache import TokenCache

pytestmark = pytest.mark.e2e

CREDS = VendorCredentials(username="buyer@example.com", password="hunter2")


@dataclass
class FakePortalLogin:
    """Issues a new session cookie per login and remembers which are live."""

    token_cache: TokenCache
    fail: bool = False
    delay: float = 0.0
    logins: int = 0
    live: set[str] = field(default_factory=set)

    async def login(self, vendor: Manufacturer, credentials: VendorCredentials) -> SessionRecord:
        await asyncio.sleep(self.delay)
        if self.fail:
            raise AvailAuthenticationError(f"{vendor.value} login rejected", vendor=vendor.value)
        self.logins += 1
        value = f"session-{self.logins}"
        self.live.add(f"SID={value}; ")
        record = SessionRecord(vendor=vendor, cookies=(Cookie(name="SID", value=value),))
        self.token_cache.put(record)
        return record


class FakeBshAdapter(VendorAdapter):
    vendor = Manufacturer.BSH

    def __init__(self, portal: FakePortalLogin, *, delay: float = 0.0, reject_all: bool = False) -> None:
        self._portal = portal
        self._delay = delay
        self._reject_all = reject_all
        self.seen: list[str] = []

    async def query(self, request: AvailabilityRequest, cookie_header: str) -> str:
        self.seen.append(cookie_header)
        await asyncio.sleep(self._delay)
        if self._reject_all or cookie_header not in self._portal.live:
            raise AvailSessionInvalidError("token fetch answered Required", vendor="bsh")
        return f"{request.model_number} ships 12/31/2024"


class FakeMieleAdapter(VendorAdapter):
    vendor = Manufacturer.MIELE
    requires_session = False

    def __init__(self) -> None:
        self.seen: list[str] = []

    async def query(self, request: AvailabilityRequest, cookie_header: str) -> str:
        self.seen.append(cookie_header)
        return f"Found: {request.model_number}, Available: 01/15/2025"


class ExplodingAdapter(VendorAdapter):
    vendor = Manufacturer.BSH

    async def query(self, request: AvailabilityRequest, cookie_header: str) -> str:
        raise KeyError("AvailBackorder")


class UnusedTransport:
    async def request(self, method: str, url: str, **kwargs: Any) -> Any:
        raise AssertionError("adapters are injected; no HTTP expected")


@pytest.fixture
def token_cache(tmp_path: Path) -> TokenCache:
    return TokenCache(tmp_path / "cookies", SessionTokenCodec("unit-test-secret"))


@pytest.fixture
def portal(token_cache: TokenCache) -> FakePortalLogin:
    return FakePortalLogin(token_cache)


def _client(
    tmp_path: Path,
    token_cache: TokenCache,
    portal: FakePortalLogin,
    adapter: VendorAdapter,
    **kwargs: Any,
) -> AvailabilityClient:
    config = AvailConfig(cache_dir=tmp_path / "cookies", data_dir=tmp_path / "data")
    return AvailabilityClient(
        config,
        transport=UnusedTransport(),
        token_cache=token_cache,
        authenticators={Manufacturer.BSH: portal},
        adapters={adapter.vendor: adapter},
        **kwargs,
    )


def _bsh_request(model: str = "SHX78CM5N") -> AvailabilityRequest:
    return AvailabilityRequest(manufacturer="bsh", showroom="houston", model_number=model, warehouse="US00002148")


@pytest.mark.asyncio
async def test_cache_miss_logs_in_once_then_reuses_session(
    tmp_path: Path, token_cache: TokenCache, portal: FakePortalLogin
) -> None:
    adapter = FakeBshAdapter(portal)
    async with _client(tmp_path, token_cache, portal, adapter) as client:
        first = await client.resolve(_bsh_request(), CREDS)
        second = await client.resolve(_bsh_request("SHE3AR75UC"), CREDS)

    assert first == "SHX78CM5N ships 12/31/2024"
    assert second == "SHE3AR75UC ships 12/31/2024"
    assert portal.logins == 1
    assert adapter.seen == ["SID=session-1; ", "SID=session-1; "]


@pytest.mark.asyncio
async def test_rejected_cached_session_triggers_one_relogin(
    tmp_path: Path, token_cache: TokenCache, portal: FakePortalLogin
) -> None:
    token_cache.put(SessionRecord(vendor=Manufacturer.BSH, cookies=(Cookie(name="SID", value="stale"),)))
    adapter = FakeBshAdapter(portal)

    async with _client(tmp_path, token_cache, portal, adapter) as client:
        answer = await client.resolve(_bsh_request(), CREDS)

    assert answer == "SHX78CM5N ships 12/31/2024"
    assert portal.logins == 1
    assert adapter.seen == ["SID=stale; ", "SID=session-1; "]
    cached = token_cache.get(Manufacturer.BSH)
    assert cached is not None and cached.cookie_header() == "SID=session-1; "


@pytest.mark.asyncio
async def test_fresh_session_rejected_again_is_reported(
    tmp_path: Path, token_cache: TokenCache, portal: FakePortalLogin
) -> None:
    adapter = FakeBshAdapter(portal, reject_all=True)

    async with _client(tmp_path, token_cache, portal, adapter) as client:
        answer = await client.resolve(_bsh_request(), CREDS)

    assert answer.startswith("bsh portal rejected a fresh session")
    assert portal.logins == 2
    assert len(adapter.seen) == 2


@pytest.mark.asyncio
async def test_login_failure_propagates(tmp_path: Path, token_cache: TokenCache, portal: FakePortalLogin) -> None:
    portal.fail = True
    async with _client(tmp_path, token_cache, portal, FakeBshAdapter(portal)) as client:
        with pytest.raises(AvailAuthenticationError):
            await client.resolve(_bsh_request(), CREDS)


@pytest.mark.asyncio
async def test_missing_credentials_is_an_authentication_error(
    tmp_path: Path,
    token_cache: TokenCache,
    portal: FakePortalLogin,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.delenv("AVAIL_BSH_USERNAME", raising=False)
    monkeypatch.delenv("AVAIL_BSH_PASSWORD", raising=False)
    async with _client(tmp_path, token_cache, portal, FakeBshAdapter(portal)) as client:
        with pytest.raises(AvailAuthenticationError, match="No credentials"):
            await client.resolve(_bsh_request())
    assert portal.logins == 0


@pytest.mark.asyncio
async def test_configured_credentials_are_used(
    tmp_path: Path, token_cache: TokenCache, portal: FakePortalLogin
) -> None:
    adapter = FakeBshAdapter(portal)
    client = _client(tmp_path, token_cache, portal, adapter, credentials={Manufacturer.BSH: CREDS})
    async with client:
        answer = await client.resolve(_bsh_request())
    assert answer == "SHX78CM5N ships 12/31/2024"


@pytest.mark.asyncio
async def test_concurrent_resolves_share_one_login(
    tmp_path: Path, token_cache: TokenCache, portal: FakePortalLogin
) -> None:
    portal.delay = 0.01
    adapter = FakeBshAdapter(portal)

    async with _client(tmp_path, token_cache, portal, adapter) as client:
        answers = await asyncio.gather(*(client.resolve(_bsh_request(), CREDS) for _ in range(5)))

    assert answers == ["SHX78CM5N ships 12/31/2024"] * 5
    assert portal.logins == 1


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("request_kwargs", "expected"),
    [
        ({"manufacturer": "whirlpool", "model_number": "WRF555"}, "No supported manufacturer provided."),
        ({"manufacturer": "bsh", "model_number": ""}, "No model number provided."),
    ],
)
async def test_validation_failures_are_answers(
    tmp_path: Path,
    token_cache: TokenCache,
    portal: FakePortalLogin,
    request_kwargs: dict[str, str],
    expected: str,
) -> None:
    async with _client(tmp_path, token_cache, portal, FakeBshAdapter(portal)) as client:
        assert await client.resolve(AvailabilityRequest(**request_kwargs), CREDS) == expected
    assert portal.logins == 0


@pytest.mark.asyncio
async def test_sessionless_vendor_skips_login(
    tmp_path: Path, token_cache: TokenCache, portal: FakePortalLogin
) -> None:
    adapter = FakeMieleAdapter()

    async with _client(tmp_path, token_cache, portal, adapter) as client:
        answered = await client.check_availability("Miele", "Houston", "HBLP651RUC")

    assert answered.warehouse == "Forest Park, IL"
    assert answered.availability == "Found: HBLP651RUC, Available: 01/15/2025"
    assert answered.utc_time is not None
    assert adapter.seen == [""]
    assert portal.logins == 0


@pytest.mark.asyncio
async def test_unexpected_adapter_error_becomes_answer(
    tmp_path: Path, token_cache: TokenCache, portal: FakePortalLogin
) -> None:
    async with _client(tmp_path, token_cache, portal, ExplodingAdapter(object(), object())) as client:  # type: ignore[arg-type]
        answer = await client.resolve(_bsh_request(), CREDS)
    assert answer.startswith("Unexpected error querying bsh availability")


@pytest.mark.asyncio
async def test_overall_deadline(tmp_path: Path, token_cache: TokenCache, portal: FakePortalLogin) -> None:
    adapter = FakeBshAdapter(portal, delay=1.0)

    async with _client(tmp_path, token_cache, portal, adapter) as client:
        with pytest.raises(AvailTimeoutError):
            await client.resolve(_bsh_request(), CREDS, timeout=0.05)


@pytest.mark.asyncio
async def test_resolve_requires_context_manager(tmp_path: Path, token_cache: TokenCache) -> None:
    client = AvailabilityClient(AvailConfig(cache_dir=tmp_path, data_dir=tmp_path), token_cache=token_cache)
    with pytest.raises(AvailError, match="Client not initialized"):
        await client.resolve(_bsh_request(), CREDS)


class WorkbookDownload:
    def __init__(self, body: bytes) -> None:
        self.body = body
        self.calls = 0

    async def request(self, method: str, url: str, **kwargs: Any) -> HttpResponse:
        self.calls += 1
        return HttpResponse(status=200, url=url, body=self.body)


def _miele_workbook() -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "Forest Park, IL"
    sheet.append(["Model Number", "Description", "Next Available Date"])
    sheet.append(["G7000SCU", "Dishwasher", datetime(2024, 6, 1)])
    sheet.append(["HBLP651RUC", "Combi oven", datetime(2024, 12, 31)])
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


@pytest.mark.asyncio
async def test_miele_resolves_through_real_spreadsheet_adapter(tmp_path: Path) -> None:
    download = WorkbookDownload(_miele_workbook())
    config = AvailConfig(cache_dir=tmp_path / "cookies", data_dir=tmp_path / "data")
    request = AvailabilityRequest(
        manufacturer="miele",
        showroom="houston",
        model_number="HBLP%20651RUC",
        warehouse="Forest Park, IL",
    )

    async with AvailabilityClient(config, transport=download) as client:
        answer = await client.resolve(request)

    assert answer == "Found: HBLP651RUC, Available: 12/31/2024"
    assert download.calls == 1
    assert not (tmp_path / "cookies").exists()
