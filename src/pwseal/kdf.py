# -*- coding: utf-8 -*-
"""
Key derivation (PBKDF2, single block) and key expansion (HKDF-Expand) built on
an injected keyed hash.

PBKDF2 (RFC 2898 section 5.2) is restricted to one output block: the derived
key length equals the HMAC output size; further blocks are
not supported.

HKDF (RFC 5869) is used for its expand step only; the PBKDF2 output already
serves as the pseudorandom key, so the extract step is skipped.
"""
from __future__ import annotations

import logging
from typing import Final, Optional, Union

from pwseal.exceptions import (
    InvalidKeyLengthError,
    InvalidOutputLengthError,
    KDFParameterError,
)
from pwseal.primitives import HmacSha256
from pwseal.protocols import BytesLike, KeyedHashProtocol

_LOGGER: Final = logging.getLogger(__name__)

PBKDF2_BLOCK_INDEX: Final[int] = 1
MAX_ITERATIONS_LOG2: Final[int] = 31
HKDF_MAX_BLOCKS: Final[int] = 255

CIPHER_KEY_INFO: Final[str] = "EncryptionKey"
HMAC_KEY_INFO: Final[str] = "AuthenticationKey"


class Pbkdf2KeyDeriver:
    """
    PBKDF2 with ``2 ** iterations_log2`` iterations and a single output block.

    Examples:
        >>> kdf = Pbkdf2KeyDeriver(HmacSha256())
        >>> len(kdf.derive_key(b"password", b"s" * 16, 4))
        32
    """

    __slots__ = ("_prf",)

    def __init__(self, prf: KeyedHashProtocol) -> None:
        self._prf = prf

    @property
    def key_length(self) -> int:
        return self._prf.digest_size

    def derive_key(
        self, password: BytesLike, salt: BytesLike, iterations_log2: int
    ) -> bytearray:
        """
        Derive a key from a password.

        Args:
            password: password bytes (HMAC key).
            salt: salt bytes.
            iterations_log2: log2 of the iteration count (0..31).

        Returns:
            Derived key as a bytearray so the caller can wipe it after use.

        Raises:
            KDFParameterError: on wrong argument types or cost out of range.
        """
        if not isinstance(password, (bytes, bytearray)):
            raise KDFParameterError("Password must be bytes")
        if not isinstance(salt, (bytes, bytearray)):
            raise KDFParameterError("Salt must be bytes")
        if (
            isinstance(iterations_log2, bool)
            or not isinstance(iterations_log2, int)
            or not 0 <= iterations_log2 <= MAX_ITERATIONS_LOG2
        ):
            raise KDFParameterError(
                f"PBKDF2 iterations_log2 must be between 0 and {MAX_ITERATIONS_LOG2}"
            )

        pw = bytes(password)
        iteration_count = 1 << iterations_log2

        last = self._prf.hmac(bytes(salt) + PBKDF2_BLOCK_INDEX.to_bytes(4, "big"), pw)
        acc = int.from_bytes(last, "big")
        for _ in range(iteration_count - 1):
            last = self._prf.hmac(last, pw)
            acc ^= int.from_bytes(last, "big")

        _LOGGER.debug("PBKDF2 derivation completed (iterations=2^%d)", iterations_log2)
        return bytearray(acc.to_bytes(len(last), "big"))


class HkdfExpander:
    """
    HKDF-Expand: stretch a pseudorandom key into ``length`` bytes bound to ``info``.

    Examples:
        >>> hkdf = HkdfExpander(HmacSha256())
        >>> prk = b"k" * 32
        >>> hkdf.expand(prk, 16, "EncryptionKey") == hkdf.expand(prk, 40, "EncryptionKey")[:16]
        True
    """

    __slots__ = ("_prf",)

    def __init__(self, prf: KeyedHashProtocol) -> None:
        self._prf = prf

    @property
    def max_length(self) -> int:
        return HKDF_MAX_BLOCKS * self._prf.digest_size

    def expand(
        self,
        pseudo_random_key: BytesLike,
        length: int,
        info: Union[str, bytes] = b"",
    ) -> bytes:
        """
        Expand a pseudorandom key.

        Args:
            pseudo_random_key: key of at least the hash output size.
            length: desired output length in bytes (0..255 * hash size).
            info: context label; str labels are UTF-8 encoded.

        Returns:
            Output keying material of exactly ``length`` bytes.

        Raises:
            InvalidKeyLengthError: if the key is shorter than the hash output.
            InvalidOutputLengthError: if length is negative or too large.
        """
        hash_len = self._prf.digest_size
        if len(pseudo_random_key) < hash_len:
            raise InvalidKeyLengthError("Pseudorandom key is of incorrect length")
        if (
            isinstance(length, bool)
            or not isinstance(length, int)
            or length < 0
            or length > self.max_length
        ):
            raise InvalidOutputLengthError(
                f"length argument must be between 0 and {self.max_length}"
            )

        info_bytes = info.encode("utf-8") if isinstance(info, str) else bytes(info)
        prk = bytes(pseudo_random_key)
        okm = bytearray()
        last = b""
        counter = 1
        while len(okm) < length:
            last = self._prf.hmac(last + info_bytes + bytes([counter]), prk)
            okm.extend(last)
            counter += 1
        return bytes(okm[:length])


def derive_key(
    password: Union[str, BytesLike],
    salt: BytesLike,
    iterations_log2: int,
    *,
    prf: Optional[KeyedHashProtocol] = None,
) -> bytes:
    """
    Functional PBKDF2 helper; str passwords are UTF-8 encoded.

    Example:
        >>> import hashlib
        >>> derive_key("pw", b"salt" * 4, 3) == hashlib.pbkdf2_hmac("sha256", b"pw", b"salt" * 4, 8)
        True
    """
    pw = password.encode("utf-8") if isinstance(password, str) else password
    deriver = Pbkdf2KeyDeriver(prf or HmacSha256())
    return bytes(deriver.derive_key(pw, salt, iterations_log2))


def hkdf_expand(
    pseudo_random_key: BytesLike,
    length: int,
    info: Union[str, bytes] = b"",
    *,
    prf: Optional[KeyedHashProtocol] = None,
) -> bytes:
    """Functional HKDF-Expand helper over HMAC-SHA256 by default."""
    return HkdfExpander(prf or HmacSha256()).expand(pseudo_random_key, length, info)


__all__ = [
    "PBKDF2_BLOCK_INDEX",
    "MAX_ITERATIONS_LOG2",
    "CIPHER_KEY_INFO",
    "HMAC_KEY_INFO",
    "Pbkdf2KeyDeriver",
    "HkdfExpander",
    "derive_key",
    "hkdf_expand",
]
