"""Masking of credentials and session material in debug logs.

Vendor calls carry portal passwords, cookie jars, ``Cookie`` headers and
anti-forgery tokens.  :func:`redact_for_log` keeps the shape of what is
logged (which fields, which cookie names) and hides the values.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel

REDACTED = "<redacted>"

#: Key fragments whose values are always hidden (matched case-insensitively).
_SECRET_KEY_PARTS: tuple[str, ...] = (
    "pass",
    "psswd",
    "secret",
    "token",
    "authorization",
)

#: Keys whose value is a ``name=value; `` cookie string.
_COOKIE_HEADER_KEYS: frozenset[str] = frozenset({"cookie", "set-cookie"})


def _is_secret_key(key: str) -> bool:
    lowered = key.lower()
    return any(part in lowered for part in _SECRET_KEY_PARTS)


def mask_cookie_header(header: str) -> str:
    """``"SID=abc; LB=n2; "`` -> ``"SID=<redacted>; LB=<redacted>; "``."""
    masked = []
    for pair in header.split(";"):
        name, sep, _ = pair.strip().partition("=")
        if name:
            masked.append(f"{name}={REDACTED}; " if sep else f"{name}; ")
    return "".join(masked)


def _is_cookie_entry(value: Mapping[Any, Any]) -> bool:
    return "name" in value and "value" in value


def redact_for_log(value: Any, *, max_string: int = 512, _depth: int = 0) -> Any:
    """Return a copy of *value* that is safe to put in a DEBUG log line."""
    if _depth > 20:
        return "<max-depth>"

    if isinstance(value, BaseModel):
        value = value.model_dump()

    if isinstance(value, str):
        return value if len(value) <= max_string else f"{value[:max_string]}…<truncated>"
    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}b>"
    if value is None or isinstance(value, (bool, int, float)):
        return value

    if isinstance(value, Mapping):
        if _is_cookie_entry(value):
            return {**{str(k): v for k, v in value.items()}, "value": REDACTED}
        redacted: dict[str, Any] = {}
        for key, item in value.items():
            name = str(key)
            if _is_secret_key(name):
                redacted[name] = REDACTED
            elif name.lower() in _COOKIE_HEADER_KEYS and isinstance(item, str):
                redacted[name] = mask_cookie_header(item)
            else:
                redacted[name] = redact_for_log(item, max_string=max_string, _depth=_depth + 1)
        return redacted

    if isinstance(value, (list, tuple, set, frozenset)):
        return [redact_for_log(item, max_string=max_string, _depth=_depth + 1) for item in value]

    return repr(value)
