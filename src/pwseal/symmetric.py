# -*- coding: utf-8 -*-
"""
Password-based authenticated encryption (encrypt-then-MAC envelope).

Pipeline:
- PBKDF2-HMAC-SHA256 turns password + random salt into a derived key, with a
  cost of 2^iterations_log2 HMAC evaluations.
- HKDF-Expand splits the derived key into an AES-128 key ("EncryptionKey")
  and an HMAC-SHA256 key ("AuthenticationKey").
- AES-128-CFB encrypts under a fresh random IV.
- HMAC-SHA256 authenticates salt | cost | iv | ciphertext.

Decryption checks the embedded cost against the configured maximum before any
derivation work, and verifies the tag in constant time before the cipher is
ever invoked.

Thread-safety:
- Instances hold only immutable configuration and injected capabilities; one
  instance may be shared across threads without locking.
- Derived keys live for the duration of one call and are wiped best-effort.

Security notes:
- No passwords, keys, salts, tags or plaintext fragments are logged.
- The envelope carries no algorithm identifier; both sides must use the same
  fixed construction.
"""

from __future__ import annotations

import logging
from typing import Final, Optional, Tuple, Union

from pwseal.config import DEFAULT_ITERATIONS_LOG2, EncryptionConfig
from pwseal.envelope import SALT_LEN, Envelope, pack_iterations
from pwseal.exceptions import (
    AuthenticationFailedError,
    ConfigurationError,
    CryptoError,
    DecryptionFailedError,
    EncryptionError,
    InsufficientEntropyError,
    IterationsOutOfBoundsError,
    MalformedEnvelopeError,
)
from pwseal.kdf import CIPHER_KEY_INFO, HMAC_KEY_INFO, HkdfExpander, Pbkdf2KeyDeriver
from pwseal.primitives import AesCfbCipher, HmacSha256, SystemRandomSource
from pwseal.protocols import (
    BytesLike,
    KeyedHashProtocol,
    RandomSourceProtocol,
    StreamCipherProtocol,
)
from pwseal.result import Outcome
from pwseal.utils import constant_time_equals, zero_memory

_LOGGER: Final = logging.getLogger(__name__)

HMAC_KEY_LEN: Final[int] = 32

Password = Union[str, bytes, bytearray]


def _password_bytes(password: Password) -> bytes:
    if isinstance(password, str):
        return password.encode("utf-8")
    if isinstance(password, (bytes, bytearray)):
        return bytes(password)
    raise TypeError("password must be str, bytes or bytearray")


def _positive_length(value: object, message: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigurationError(message)
    return value


class SymmetricEncryption:
    """
    Encrypt and authenticate data with a password.

    Args:
        config: EncryptionConfig, or a bare iterations_log2 integer.
        keyed_hash: HMAC capability (default HMAC-SHA256).
        cipher: stream-like cipher capability (default AES-128-CFB).
        random_source: secure random capability (default OS CSPRNG).

    Raises:
        ConfigurationError: if a capability is unavailable or reports unusable lengths.

    Examples:
        >>> crypto = SymmetricEncryption(12)
        >>> blob = crypto.encrypt(b"Never roll your own crypto.", "correct horse battery staple")
        >>> crypto.decrypt(blob, "correct horse battery staple")
        b'Never roll your own crypto.'
    """

    __slots__ = (
        "_config",
        "_hash",
        "_cipher",
        "_random",
        "_kdf",
        "_hkdf",
        "_iv_length",
        "_hmac_length",
        "_cipher_key_length",
    )

    def __init__(
        self,
        config: Union[EncryptionConfig, int] = DEFAULT_ITERATIONS_LOG2,
        *,
        keyed_hash: Optional[KeyedHashProtocol] = None,
        cipher: Optional[StreamCipherProtocol] = None,
        random_source: Optional[RandomSourceProtocol] = None,
    ) -> None:
        if not isinstance(config, EncryptionConfig):
            config = EncryptionConfig(iterations_log2=config)
        self._config = config
        self._hash: KeyedHashProtocol = keyed_hash if keyed_hash is not None else HmacSha256()
        self._cipher: StreamCipherProtocol = cipher if cipher is not None else AesCfbCipher()
        self._random: RandomSourceProtocol = (
            random_source if random_source is not None else SystemRandomSource()
        )

        try:
            iv_length = self._cipher.iv_length
            key_length = self._cipher.key_length
        except Exception as exc:
            _LOGGER.error("Cipher length query failed: %s", exc.__class__.__name__)
            raise ConfigurationError("Could not determine IV size") from exc
        try:
            hmac_length = self._hash.digest_size
        except Exception as exc:
            _LOGGER.error("Keyed hash length query failed: %s", exc.__class__.__name__)
            raise ConfigurationError(
                "Could not determine authentication algorithm output size"
            ) from exc

        self._iv_length = _positive_length(iv_length, "Could not determine IV size")
        self._cipher_key_length = _positive_length(
            key_length, "Could not determine cipher key size"
        )
        self._hmac_length = _positive_length(
            hmac_length, "Could not determine authentication algorithm output size"
        )

        self._kdf = Pbkdf2KeyDeriver(self._hash)
        self._hkdf = HkdfExpander(self._hash)
        if max(self._cipher_key_length, HMAC_KEY_LEN) > self._hkdf.max_length:
            raise ConfigurationError("Key lengths exceed what HKDF-Expand can produce")

        _LOGGER.debug(
            "SymmetricEncryption ready (iterations=2^%d, iv=%d, tag=%d)",
            self._config.iterations_log2,
            self._iv_length,
            self._hmac_length,
        )

    @property
    def config(self) -> EncryptionConfig:
        return self._config

    @property
    def iterations_log2(self) -> int:
        return self._config.iterations_log2

    @property
    def iv_length(self) -> int:
        return self._iv_length

    @property
    def hmac_length(self) -> int:
        return self._hmac_length

    @property
    def minimum_envelope_length(self) -> int:
        return Envelope.minimum_length(self._iv_length, self._hmac_length)

    def encrypt(self, plaintext: BytesLike, password: Password) -> bytes:
        """
        Encrypt and authenticate plaintext.

        Args:
            plaintext: data to encrypt (may be empty).
            password: str (UTF-8 encoded) or bytes.

        Returns:
            Envelope bytes: salt | iterations_log2 | iv | ciphertext | tag.

        Raises:
            InsufficientEntropyError: if the random source fails.
            EncryptionError: if the cipher fails.
        """
        if not isinstance(plaintext, (bytes, bytearray)):
            raise TypeError("plaintext must be bytes")
        pw = _password_bytes(password)
        iterations_log2 = self._config.iterations_log2

        # step 1: derive a key from the password
        salt = self._fetch_random_bytes(SALT_LEN)
        # step 2: stretch derived key for encryption and authentication
        cipher_key, mac_key = self._derive_keys(pw, salt, iterations_log2)

        # step 3: encrypt the data
        iv = self._fetch_random_bytes(self._iv_length)
        try:
            ciphertext = self._cipher.encrypt(bytes(plaintext), cipher_key, iv)
        except Exception as exc:
            _LOGGER.error("Encryption failed: %s", exc.__class__.__name__)
            raise EncryptionError("Failed encrypting the plain text") from exc

        # step 4: authenticate salt, cost, IV and ciphertext
        data = salt + pack_iterations(iterations_log2) + iv + ciphertext
        tag = self._hash.hmac(data, mac_key)

        _LOGGER.debug(
            "Encrypted %d bytes (iterations=2^%d)", len(plaintext), iterations_log2
        )
        return data + tag

    def decrypt(self, envelope: BytesLike, password: Password) -> bytes:
        """
        Verify and decrypt an envelope.

        Args:
            envelope: bytes produced by encrypt().
            password: str (UTF-8 encoded) or bytes.

        Returns:
            Plaintext bytes.

        Raises:
            MalformedEnvelopeError: if the envelope is too short.
            IterationsOutOfBoundsError: if the embedded cost is negative or above the maximum.
            AuthenticationFailedError: on wrong password or tampered data.
            DecryptionFailedError: if the cipher rejects authenticated data.
        """
        if not isinstance(envelope, (bytes, bytearray)):
            raise TypeError("envelope must be bytes")
        pw = _password_bytes(password)
        raw = bytes(envelope)

        if len(raw) < self.minimum_envelope_length:
            raise MalformedEnvelopeError("Envelope is too short")

        # step 1: check the cost before doing any work it dictates
        iterations_log2 = Envelope.peek_iterations(raw)
        if not 0 <= iterations_log2 <= self._config.iterations_log2:
            _LOGGER.warning(
                "Rejected envelope cost 2^%d (maximum 2^%d)",
                iterations_log2,
                self._config.iterations_log2,
            )
            raise IterationsOutOfBoundsError("PBKDF2 iterations out of bounds")

        parsed = Envelope.parse(raw, self._iv_length, self._hmac_length)

        # step 2: re-derive and stretch the keys
        cipher_key, mac_key = self._derive_keys(pw, parsed.salt, iterations_log2)

        # step 3: verify the authentication
        authenticated_data = raw[: len(raw) - self._hmac_length]
        expected = self._hash.hmac(authenticated_data, mac_key)
        if not constant_time_equals(parsed.tag, expected):
            _LOGGER.warning("Envelope authentication failed")
            raise AuthenticationFailedError("Signature verification failed")

        # step 4: decrypt the data
        try:
            plaintext = self._cipher.decrypt(parsed.ciphertext, cipher_key, parsed.iv)
        except Exception as exc:
            _LOGGER.error("Decryption failed: %s", exc.__class__.__name__)
            raise DecryptionFailedError("Failed decrypting the cipher text") from exc

        _LOGGER.debug("Decrypted %d bytes", len(plaintext))
        return plaintext

    def try_encrypt(self, plaintext: BytesLike, password: Password) -> Outcome[bytes]:
        """encrypt() returning an Outcome instead of raising CryptoError."""
        try:
            return Outcome.success(self.encrypt(plaintext, password))
        except CryptoError as exc:
            return Outcome.failure(exc)

    def try_decrypt(self, envelope: BytesLike, password: Password) -> Outcome[bytes]:
        """decrypt() returning an Outcome instead of raising CryptoError."""
        try:
            return Outcome.success(self.decrypt(envelope, password))
        except CryptoError as exc:
            return Outcome.failure(exc)

    def _derive_keys(
        self, password: bytes, salt: bytes, iterations_log2: int
    ) -> Tuple[bytes, bytes]:
        derived = self._kdf.derive_key(password, salt, iterations_log2)
        try:
            cipher_key = self._hkdf.expand(
                derived, self._cipher_key_length, CIPHER_KEY_INFO
            )
            mac_key = self._hkdf.expand(derived, HMAC_KEY_LEN, HMAC_KEY_INFO)
        finally:
            zero_memory(derived)
        return cipher_key, mac_key

    def _fetch_random_bytes(self, length: int) -> bytes:
        try:
            data = self._random.random_bytes(length)
        except InsufficientEntropyError:
            _LOGGER.error("Random source reported insufficient entropy")
            raise
        except Exception as exc:
            _LOGGER.error("Random source failed: %s", exc.__class__.__name__)
            raise InsufficientEntropyError("Could not read random data") from exc
        if not isinstance(data, (bytes, bytearray)) or len(data) != length:
            raise InsufficientEntropyError("Could not read random data")
        return bytes(data)


def encrypt_with_password(
    plaintext: BytesLike,
    password: Password,
    *,
    iterations_log2: int = DEFAULT_ITERATIONS_LOG2,
) -> bytes:
    """
    Functional helper over a default SymmetricEncryption instance.

    Example:
        >>> blob = encrypt_with_password(b"hi", "pw")
        >>> decrypt_with_password(blob, "pw")
        b'hi'
    """
    return SymmetricEncryption(iterations_log2).encrypt(plaintext, password)


def decrypt_with_password(
    envelope: BytesLike,
    password: Password,
    *,
    max_iterations_log2: int = DEFAULT_ITERATIONS_LOG2,
) -> bytes:
    """Functional helper; envelopes costlier than max_iterations_log2 are rejected."""
    return SymmetricEncryption(max_iterations_log2).decrypt(envelope, password)


__all__ = [
    "HMAC_KEY_LEN",
    "SymmetricEncryption",
    "encrypt_with_password",
    "decrypt_with_password",
]
