"""
pwseal: password-based authenticated encryption.

One class turns a plaintext and a password into a self-describing envelope
(salt, PBKDF2 cost, IV, AES-128-CFB ciphertext, HMAC-SHA256 tag) and back.
Callers never pick algorithms, modes, key sizes or iteration counts.

Example:
    from pwseal import SymmetricEncryption
    crypto = SymmetricEncryption(16)
    blob = crypto.encrypt(b"Never roll your own crypto.", "correct horse battery staple")
    crypto.decrypt(blob, "correct horse battery staple")
"""

from .config import CostProfile, EncryptionConfig
from .envelope import Envelope
from .exceptions import (
    AuthenticationFailedError,
    ConfigurationError,
    CryptoError,
    DecryptionError,
    DecryptionFailedError,
    EncryptionError,
    ErrorKind,
    InsufficientEntropyError,
    InvalidKeyLengthError,
    InvalidOutputLengthError,
    IterationsOutOfBoundsError,
    KDFParameterError,
    KdfError,
    MalformedEnvelopeError,
)
from .health import crypto_health_check
from .kdf import HkdfExpander, Pbkdf2KeyDeriver, derive_key, hkdf_expand
from .primitives import AesCfbCipher, HmacSha256, SystemRandomSource
from .protocols import KeyedHashProtocol, RandomSourceProtocol, StreamCipherProtocol
from .result import Outcome
from .symmetric import SymmetricEncryption, decrypt_with_password, encrypt_with_password
from .utils import constant_time_equals

__all__ = [
    # Envelope encryption
    "SymmetricEncryption",
    "encrypt_with_password",
    "decrypt_with_password",
    "Envelope",
    "Outcome",
    # Configuration
    "EncryptionConfig",
    "CostProfile",
    # Key derivation
    "Pbkdf2KeyDeriver",
    "HkdfExpander",
    "derive_key",
    "hkdf_expand",
    # Primitives
    "HmacSha256",
    "AesCfbCipher",
    "SystemRandomSource",
    "KeyedHashProtocol",
    "StreamCipherProtocol",
    "RandomSourceProtocol",
    "constant_time_equals",
    "crypto_health_check",
    # Errors
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
