# -*- coding: utf-8 -*-
"""
Default implementations of the capability Protocols, backed by the
``cryptography`` package and the OS random source.

- HmacSha256: HMAC-SHA256 (32-byte tags).
- AesCfbCipher: AES-128 in CFB128 mode, no padding, 16-byte IV.
- SystemRandomSource: OS CSPRNG with output sanity checks.

Algorithm availability is probed when the objects are built, so an
unsupported host fails with ConfigurationError before any data is touched.
Objects hold no mutable state and may be shared between threads.
"""

from __future__ import annotations

import logging
from typing import Final

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.decrepit.ciphers.modes import CFB
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives import hmac as crypto_hmac
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms

from pwseal.exceptions import ConfigurationError, InsufficientEntropyError
from pwseal.protocols import BytesLike
from pwseal.utils import generate_random_bytes

_LOGGER: Final = logging.getLogger(__name__)

AES128_KEY_LEN: Final[int] = 16


class HmacSha256:
    """HMAC-SHA256 keyed hash."""

    __slots__ = ()

    def __init__(self) -> None:
        try:
            probe = crypto_hmac.HMAC(b"", hashes.SHA256())
            probe.update(b"")
            size = len(probe.finalize())
        except UnsupportedAlgorithm as exc:
            _LOGGER.error("HMAC-SHA256 unavailable: %s", exc.__class__.__name__)
            raise ConfigurationError(
                "Could not determine authentication algorithm output size"
            ) from exc
        if size != hashes.SHA256.digest_size:
            raise ConfigurationError(
                "Could not determine authentication algorithm output size"
            )

    @property
    def digest_size(self) -> int:
        return hashes.SHA256.digest_size

    def hmac(self, message: BytesLike, key: BytesLike) -> bytes:
        h = crypto_hmac.HMAC(bytes(key), hashes.SHA256())
        h.update(bytes(message))
        return h.finalize()


class AesCfbCipher:
    """
    AES-128 in cipher feedback mode (CFB128).

    CFB turns AES into a self-synchronising stream cipher, so ciphertext length
    equals plaintext length and no padding is needed.

    Examples:
        >>> cipher = AesCfbCipher()
        >>> ct = cipher.encrypt(b"hello", b"k" * 16, b"i" * 16)
        >>> cipher.decrypt(ct, b"k" * 16, b"i" * 16)
        b'hello'
    """

    __slots__ = ()

    def __init__(self) -> None:
        try:
            Cipher(
                algorithms.AES(b"\x00" * AES128_KEY_LEN),
                CFB(b"\x00" * self.iv_length),
            ).encryptor()
        except UnsupportedAlgorithm as exc:
            _LOGGER.error("AES-128-CFB unavailable: %s", exc.__class__.__name__)
            raise ConfigurationError("Cipher method AES-128-CFB not available") from exc

    @property
    def key_length(self) -> int:
        return AES128_KEY_LEN

    @property
    def iv_length(self) -> int:
        return algorithms.AES.block_size // 8

    def encrypt(self, plaintext: BytesLike, key: bytes, iv: bytes) -> bytes:
        encryptor = Cipher(algorithms.AES(bytes(key)), CFB(bytes(iv))).encryptor()
        return encryptor.update(bytes(plaintext)) + encryptor.finalize()

    def decrypt(self, ciphertext: BytesLike, key: bytes, iv: bytes) -> bytes:
        decryptor = Cipher(algorithms.AES(bytes(key)), CFB(bytes(iv))).decryptor()
        return decryptor.update(bytes(ciphertext)) + decryptor.finalize()


class SystemRandomSource:
    """OS CSPRNG (``secrets``) with repetition and proportion sanity checks."""

    __slots__ = ()

    def random_bytes(self, n: int) -> bytes:
        try:
            return generate_random_bytes(n)
        except ValueError as exc:
            raise InsufficientEntropyError("Could not read random data") from exc


__all__ = [
    "AES128_KEY_LEN",
    "HmacSha256",
    "AesCfbCipher",
    "SystemRandomSource",
]
