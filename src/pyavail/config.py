"""Client configuration for pyavail."""

from __future__ import annotations

import dataclasses
import os
from pathlib import Path
from typing import Any

from pyavail.exceptions import AvailConfigError
from pyavail.models.request import Manufacturer


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class VendorCredentials:
    """Username/password pair for one vendor portal."""

    username: str
    password: str

    def __repr__(self) -> str:
        return f"VendorCredentials(username={self.username!r}, password='<redacted>')"


@dataclasses.dataclass(frozen=True)
class AvailConfig:
    """Client configuration.

    Parameters
    ----------
    cache_dir : Path
        Directory holding one signed session file per vendor.
    data_dir : Path
        Directory the downloaded Miele workbook is written to.
    session_secret : str or None
        Secret used to sign and encrypt cached session records.  Any
        string is accepted; a Fernet key is derived from it.
    session_max_age : float or None
        Seconds after which a cached session is treated as absent even
        if the portal would still accept it.  ``None`` disables the
        proactive check so sessions are only renewed when a portal
        rejects them.
    request_timeout : float
        Total timeout in seconds for each vendor HTTP call.
    browser_timeout : float
        Timeout in seconds for each headless-browser login step.
    max_cart_drain_attempts : int
        Upper bound on delete round trips when emptying the SubZero cart.
    headless : bool
        Launch the login browser without a window.
    bsh_sold_to : str
        BSH sold-to account number sent with every simulate order.
    """

    cache_dir: Path = Path("/easfiles/appliances/cookies")
    data_dir: Path = Path("/easfiles/appliances/data")
    session_secret: str | None = None
    session_max_age: float | None = None
    request_timeout: float = 30.0
    browser_timeout: float = 30.0
    max_cart_drain_attempts: int = 25
    headless: bool = True
    bsh_sold_to: str = "5010011875"

    def __post_init__(self) -> None:
        if self.request_timeout <= 0:
            raise AvailConfigError("request_timeout must be positive")
        if self.browser_timeout <= 0:
            raise AvailConfigError("browser_timeout must be positive")
        if self.max_cart_drain_attempts < 1:
            raise AvailConfigError("max_cart_drain_attempts must be at least 1")

    @classmethod
    def from_env(cls, **overrides: Any) -> AvailConfig:
        """Create configuration from ``AVAIL_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ

        config_kwargs: dict[str, Any] = {}

        cache_dir = env.get("AVAIL_CACHE_DIR")
        if cache_dir is not None:
            config_kwargs["cache_dir"] = Path(cache_dir)
        data_dir = env.get("AVAIL_DATA_DIR")
        if data_dir is not None:
            config_kwargs["data_dir"] = Path(data_dir)

        secret = env.get("AVAIL_SESSION_SECRET")
        if secret is not None:
            config_kwargs["session_secret"] = secret

        sold_to = env.get("AVAIL_BSH_SOLD_TO")
        if sold_to is not None:
            config_kwargs["bsh_sold_to"] = sold_to

        # numeric fields
        _ENV_FLOAT_MAP = {
            "AVAIL_SESSION_MAX_AGE": "session_max_age",
            "AVAIL_REQUEST_TIMEOUT": "request_timeout",
            "AVAIL_BROWSER_TIMEOUT": "browser_timeout",
        }
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                try:
                    config_kwargs[field_name] = float(val)
                except ValueError as exc:
                    raise AvailConfigError(f"{env_key} must be a number, got {val!r}") from exc

        attempts_env = env.get("AVAIL_MAX_CART_DRAIN_ATTEMPTS")
        if attempts_env is not None and "max_cart_drain_attempts" not in overrides:
            try:
                config_kwargs["max_cart_drain_attempts"] = int(attempts_env)
            except ValueError as exc:
                raise AvailConfigError(
                    f"AVAIL_MAX_CART_DRAIN_ATTEMPTS must be an integer, got {attempts_env!r}"
                ) from exc

        if "headless" not in overrides:
            config_kwargs["headless"] = _env_bool(env.get("AVAIL_HEADLESS"), True)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)


def credentials_from_env(vendor: Manufacturer) -> VendorCredentials | None:
    """Read ``AVAIL_<VENDOR>_USERNAME`` / ``AVAIL_<VENDOR>_PASSWORD``.

    Returns ``None`` when either variable is unset.
    """
    prefix = f"AVAIL_{vendor.value.upper()}"
    username = os.environ.get(f"{prefix}_USERNAME")
    password = os.environ.get(f"{prefix}_PASSWORD")
    if not username or password is None:
        return None
    return VendorCredentials(username=username, password=password)
