"""Signed, encrypted session tokens.

Session records are stored as Fernet tokens: AES-128-CBC with an
HMAC-SHA256 signature over the ciphertext and the issue timestamp.
"""

from __future__ import annotations

import base64
import hashlib
import json
from datetime import UTC, datetime
from typing import Any

from cryptography.fernet import Fernet, InvalidToken

from pyavail.exceptions import AvailConfigError, AvailSessionInvalidError


def derive_fernet_key(secret: str) -> bytes:
    """Derive a Fernet key as ``urlsafe_b64encode(SHA256(secret))``."""
    if not secret:
        raise AvailConfigError("session secret must be non-empty")
    digest = hashlib.sha256(secret.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest)


class SessionTokenCodec:
    """Encode/decode JSON payloads as signed tokens.

    Parameters
    ----------
    secret : str
        Passphrase the Fernet key is derived from.
    max_age : float or None
        When set, tokens older than this many seconds fail to decode.
    """

    def __init__(self, secret: str, *, max_age: float | None = None) -> None:
        self._fernet = Fernet(derive_fernet_key(secret))
        self._max_age = max_age

    def encode(self, payload: Any, *, issued_at: datetime | None = None) -> str:
        data = json.dumps(payload, separators=(",", ":")).encode("utf-8")
        if issued_at is None:
            return self._fernet.encrypt(data).decode("ascii")
        return self._fernet.encrypt_at_time(data, int(issued_at.timestamp())).decode("ascii")

    def decode(self, token: str) -> tuple[Any, datetime]:
        """Verify *token* and return ``(payload, issued_at)``.

        Raises
        ------
        AvailSessionInvalidError
            If the signature, timestamp, or JSON payload is invalid.
        """
        raw = token.encode("ascii", errors="replace")
        ttl = int(self._max_age) if self._max_age is not None else None
        try:
            data = self._fernet.decrypt(raw, ttl=ttl)
            issued_ts = self._fernet.extract_timestamp(raw)
        except InvalidToken as exc:
            raise AvailSessionInvalidError("session token signature invalid or expired") from exc
        try:
            payload = json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise AvailSessionInvalidError("session token payload is not JSON") from exc
        return payload, datetime.fromtimestamp(issued_ts, tz=UTC)
