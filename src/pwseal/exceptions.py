# -*- coding: utf-8 -*-
"""
Exception hierarchy for password-based envelope encryption.

Every failure the library can report maps onto one ErrorKind, so callers can
either catch narrow subclasses or branch on ``exc.kind`` / ``Outcome.kind``.

Guidelines:
- Do not put secrets (passwords, keys, salts, tags, plaintexts) in messages.
- Raise the most specific subclass at the call site.
- Keep messages operational (what failed), not forensic.
"""

from __future__ import annotations

from enum import Enum
from typing import ClassVar, Optional


class ErrorKind(str, Enum):
    """Failure taxonomy shared by exceptions and Outcome values."""

    CONFIGURATION = "configuration"
    INSUFFICIENT_ENTROPY = "insufficient_entropy"
    CIPHER_FAILURE = "cipher_failure"
    MALFORMED_ENVELOPE = "malformed_envelope"
    ITERATIONS_OUT_OF_BOUNDS = "iterations_out_of_bounds"
    AUTHENTICATION_FAILED = "authentication_failed"
    DECRYPTION_FAILED = "decryption_failed"
    INVALID_KEY_LENGTH = "invalid_key_length"
    INVALID_OUTPUT_LENGTH = "invalid_output_length"
    KDF_PARAMETER = "kdf_parameter"


class CryptoError(Exception):
    """Base exception for all pwseal failures."""

    kind: ClassVar[ErrorKind]

    def __init__(
        self, message: str = "", *, cause: Optional[BaseException] = None
    ) -> None:
        super().__init__(message)
        self.__cause__ = cause


class ConfigurationError(CryptoError):
    """Raised when an instance cannot be built (unsupported algorithm, bad lengths)."""

    kind = ErrorKind.CONFIGURATION


class InsufficientEntropyError(CryptoError):
    """Raised when the random source fails or its output fails quality checks."""

    kind = ErrorKind.INSUFFICIENT_ENTROPY


class EncryptionError(CryptoError):
    """Raised when the underlying cipher fails during encryption."""

    kind = ErrorKind.CIPHER_FAILURE


class DecryptionError(CryptoError):
    """Base class for everything that can go wrong while opening an envelope."""

    kind = ErrorKind.DECRYPTION_FAILED


class MalformedEnvelopeError(DecryptionError):
    """Raised when the envelope is shorter than the smallest possible envelope."""

    kind = ErrorKind.MALFORMED_ENVELOPE


class IterationsOutOfBoundsError(DecryptionError):
    """Raised when the embedded cost parameter is outside the accepted range."""

    kind = ErrorKind.ITERATIONS_OUT_OF_BOUNDS


class AuthenticationFailedError(DecryptionError):
    """Raised when the authentication tag does not match (wrong password or tampering)."""

    kind = ErrorKind.AUTHENTICATION_FAILED


class DecryptionFailedError(DecryptionError):
    """Raised when the cipher rejects an already authenticated ciphertext."""

    kind = ErrorKind.DECRYPTION_FAILED


# KDF
class KdfError(CryptoError):
    """Base class for key-derivation and key-expansion failures."""

    kind = ErrorKind.KDF_PARAMETER


class KDFParameterError(KdfError):
    """Raised on invalid PBKDF2 inputs (types, cost out of range)."""

    kind = ErrorKind.KDF_PARAMETER


class InvalidKeyLengthError(KdfError):
    """Raised when the HKDF pseudorandom key is shorter than the hash output."""

    kind = ErrorKind.INVALID_KEY_LENGTH


class InvalidOutputLengthError(KdfError):
    """Raised when the requested HKDF output length is out of range."""

    kind = ErrorKind.INVALID_OUTPUT_LENGTH


__all__ = [
    "ErrorKind",
    "CryptoError",
    "ConfigurationError",
    "InsufficientEntropyError",
    "EncryptionError",
    "DecryptionError",
    "MalformedEnvelopeError",
    "IterationsOutOfBoundsError",
    "AuthenticationFailedError",
    "DecryptionFailedError",
    "KdfError",
    "KDFParameterError",
    "InvalidKeyLengthError",
    "InvalidOutputLengthError",
]
