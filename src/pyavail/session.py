"""Session records harvested from vendor logins."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pyavail.models.request import Manufacturer


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Cookie(BaseModel):
    """A single cookie of a logged-in portal session."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = Field(min_length=1)
    value: str
    domain: str = ""
    path: str = "/"
    expires: float | None = None

    @field_validator("expires", mode="before")
    @classmethod
    def _session_cookie_expiry(cls, value: Any) -> Any:
        # Browsers report session cookies with expires=-1.
        if value in (None, "", -1, -1.0):
            return None
        return value

    @classmethod
    def from_browser(cls, raw: Mapping[str, Any]) -> Cookie:
        """Build from a playwright ``BrowserContext.cookies()`` entry."""
        return cls.model_validate(raw)


class SessionRecord(BaseModel):
    """Cached authenticated cookie set for one vendor.

    Parameters
    ----------
    vendor : Manufacturer
        Vendor whose portal issued the cookies.
    cookies : tuple[Cookie, ...]
        Cookie jar in the order the portal/browser reported it.
    issued_at : datetime
        When the login that produced the cookies happened (UTC).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    vendor: Manufacturer
    cookies: tuple[Cookie, ...] = Field(min_length=1)
    issued_at: datetime = Field(default_factory=_utcnow)

    def cookie_header(self) -> str:
        """Cookie header value for vendor requests."""
        return build_cookie_header(self.cookies)

    @property
    def age(self) -> float:
        """Seconds since the session was issued."""
        return (_utcnow() - self.issued_at).total_seconds()


def build_cookie_header(cookies: Iterable[Cookie]) -> str:
    """Concatenate ``name=value; `` pairs in jar order.

    The trailing separator is kept; both portals accept it.
    """
    return "".join(f"{cookie.name}={cookie.value}; " for cookie in cookies)
