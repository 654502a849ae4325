# -*- coding: utf-8 -*-
"""
Dependency-injection Protocols for the primitives the envelope pipeline consumes:
keyed hash, stream-like cipher and secure random source.

Design notes:
- Protocols are @runtime_checkable to allow isinstance checks in tests.
- Minimal method sets; fakes in tests only need to provide these members.
- Implementations must be safe to call concurrently from several threads.
"""

from __future__ import annotations

from typing import Protocol, Union, runtime_checkable

BytesLike = Union[bytes, bytearray]


@runtime_checkable
class KeyedHashProtocol(Protocol):
    """HMAC with a fixed hash algorithm and fixed output length."""

    @property
    def digest_size(self) -> int:
        """Output length in bytes."""
        ...

    def hmac(self, message: BytesLike, key: BytesLike) -> bytes:
        """
        Compute a keyed hash.

        Args:
            message: data to authenticate.
            key: HMAC key of any length.

        Returns:
            Tag of exactly ``digest_size`` bytes.
        """
        ...


@runtime_checkable
class StreamCipherProtocol(Protocol):
    """Block cipher in a feedback streaming mode (ciphertext length == plaintext length)."""

    @property
    def key_length(self) -> int:
        """Cipher key length in bytes."""
        ...

    @property
    def iv_length(self) -> int:
        """Initialisation vector length in bytes."""
        ...

    def encrypt(self, plaintext: BytesLike, key: bytes, iv: bytes) -> bytes:
        """Encrypt ``plaintext``; raises on provider failure."""
        ...

    def decrypt(self, ciphertext: BytesLike, key: bytes, iv: bytes) -> bytes:
        """Decrypt ``ciphertext``; raises on provider failure."""
        ...


@runtime_checkable
class RandomSourceProtocol(Protocol):
    """Cryptographically secure random byte source."""

    def random_bytes(self, n: int) -> bytes:
        """
        Return ``n`` random bytes of cryptographic quality.

        Raises:
            InsufficientEntropyError: if bytes cannot be produced or fail quality checks.
        """
        ...


__all__ = [
    "BytesLike",
    "KeyedHashProtocol",
    "StreamCipherProtocol",
    "RandomSourceProtocol",
]
