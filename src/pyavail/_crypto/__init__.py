"""Cryptographic primitives for cached session records."""

from __future__ import annotations

from pyavail._crypto.tokens import SessionTokenCodec, derive_fernet_key

__all__ = [
    "SessionTokenCodec",
    "derive_fernet_key",
]
