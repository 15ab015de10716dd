"""Per-vendor persisted session cache.

One file per vendor, ``<cache_dir>/<vendor>_cookies.json``, holding a
single ``token`` field.  The token is a signed blob whose payload is the
vendor name and the ordered cookie jar of the last successful login.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from pyavail._crypto.tokens import SessionTokenCodec
from pyavail._files import atomic_write_bytes
from pyavail.config import AvailConfig
from pyavail.exceptions import AvailConfigError, AvailSessionInvalidError
from pyavail.models.request import Manufacturer
from pyavail.session import SessionRecord

_logger = logging.getLogger(__name__)


class TokenCache:
    """Read, write, and invalidate cached vendor sessions."""

    def __init__(self, cache_dir: Path, codec: SessionTokenCodec) -> None:
        self._cache_dir = Path(cache_dir)
        self._codec = codec

    @classmethod
    def from_config(cls, config: AvailConfig) -> TokenCache:
        if not config.session_secret:
            raise AvailConfigError("session_secret is required to cache vendor sessions (set AVAIL_SESSION_SECRET)")
        codec = SessionTokenCodec(config.session_secret, max_age=config.session_max_age)
        return cls(config.cache_dir, codec)

    def path_for(self, vendor: Manufacturer) -> Path:
        return self._cache_dir / f"{vendor.value}_cookies.json"

    def get(self, vendor: Manufacturer) -> SessionRecord | None:
        """Return the cached session for *vendor*, or ``None``.

        Any I/O, decode, signature, or shape problem yields ``None``.
        """
        path = self.path_for(vendor)
        try:
            return self._load(vendor, path)
        except FileNotFoundError:
            _logger.debug("No cached session for %s at %s", vendor.value, path)
        except (OSError, AvailSessionInvalidError) as exc:
            _logger.warning("Cached session for %s unusable: %s", vendor.value, exc)
        return None

    def _load(self, vendor: Manufacturer, path: Path) -> SessionRecord:
        raw = path.read_bytes()
        try:
            document = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise AvailSessionInvalidError(f"{path.name} is not JSON", vendor=vendor.value) from exc

        token = document.get("token") if isinstance(document, dict) else None
        if not isinstance(token, str) or not token:
            raise AvailSessionInvalidError(f"{path.name} has no token field", vendor=vendor.value)

        payload, issued_at = self._codec.decode(token)
        return self._record_from_payload(vendor, payload, issued_at)

    @staticmethod
    def _record_from_payload(vendor: Manufacturer, payload: Any, issued_at: Any) -> SessionRecord:
        if not isinstance(payload, dict):
            raise AvailSessionInvalidError("session payload is not an object", vendor=vendor.value)
        if payload.get("vendor") != vendor.value:
            raise AvailSessionInvalidError(
                f"session payload belongs to {payload.get('vendor')!r}",
                vendor=vendor.value,
            )
        try:
            return SessionRecord(vendor=vendor, cookies=payload.get("cookies"), issued_at=issued_at)
        except ValidationError as exc:
            raise AvailSessionInvalidError(
                f"session payload malformed: {exc.error_count()} error(s)",
                vendor=vendor.value,
            ) from exc

    def put(self, record: SessionRecord) -> None:
        """Persist *record*, atomically replacing any previous one."""
        payload = {
            "vendor": record.vendor.value,
            "cookies": [cookie.model_dump(exclude_none=True) for cookie in record.cookies],
        }
        token = self._codec.encode(payload, issued_at=record.issued_at)
        document = json.dumps({"token": token}).encode("utf-8")
        path = self.path_for(record.vendor)
        atomic_write_bytes(path, document)
        _logger.debug("Cached %d cookie(s) for %s at %s", len(record.cookies), record.vendor.value, path)

    def invalidate(self, vendor: Manufacturer) -> None:
        """Forget the cached session for *vendor*."""
        try:
            self.path_for(vendor).unlink()
        except FileNotFoundError:
            return
        _logger.debug("Invalidated cached session for %s", vendor.value)
