# -*- coding: utf-8 -*-
"""
Startup self-test: verify the primitives are available and the PBKDF2 /
HKDF-Expand implementations agree with independent reference implementations.
"""
from __future__ import annotations

import hashlib
import logging
from typing import Final

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDFExpand

_LOGGER: Final = logging.getLogger(__name__)

_PROBE_SALT: Final[bytes] = bytes(range(16))
_PROBE_PASSWORD: Final[bytes] = b"health-check"


def crypto_health_check() -> dict[str, bool]:
    """
    Verify availability and correctness of every building block.

    Returns:
        Dictionary mapping check names to status (True = OK).

    Examples:
        >>> results = crypto_health_check()
        >>> assert all(results.values()), "pwseal unhealthy!"
        >>> sorted(results)
        ['aes-128-cfb', 'envelope', 'hkdf-expand', 'hmac-sha256', 'pbkdf2']
    """
    results: dict[str, bool] = {
        "hmac-sha256": _test_hmac(),
        "aes-128-cfb": _test_cipher(),
        "pbkdf2": _test_pbkdf2(),
        "hkdf-expand": _test_hkdf_expand(),
        "envelope": _test_envelope(),
    }

    failed = [k for k, v in results.items() if not v]
    if failed:
        _LOGGER.error("Crypto health check FAILED for: %s", ", ".join(failed))
    else:
        _LOGGER.info("Crypto health check PASSED")

    return results


def _test_hmac() -> bool:
    try:
        from .primitives import HmacSha256

        tag = HmacSha256().hmac(b"data", b"key")
        return len(tag) == 32
    except Exception as exc:
        _LOGGER.warning("HMAC-SHA256 check failed: %s", exc.__class__.__name__)
        return False


def _test_cipher() -> bool:
    try:
        from .primitives import AesCfbCipher

        cipher = AesCfbCipher()
        key = b"\x01" * cipher.key_length
        iv = b"\x02" * cipher.iv_length
        ct = cipher.encrypt(b"probe", key, iv)
        return len(ct) == 5 and cipher.decrypt(ct, key, iv) == b"probe"
    except Exception as exc:
        _LOGGER.warning("AES-128-CFB check failed: %s", exc.__class__.__name__)
        return False


def _test_pbkdf2() -> bool:
    try:
        from .kdf import derive_key

        ours = derive_key(_PROBE_PASSWORD, _PROBE_SALT, 4)
        reference = hashlib.pbkdf2_hmac("sha256", _PROBE_PASSWORD, _PROBE_SALT, 16)
        return ours == reference
    except Exception as exc:
        _LOGGER.warning("PBKDF2 check failed: %s", exc.__class__.__name__)
        return False


def _test_hkdf_expand() -> bool:
    try:
        from .kdf import hkdf_expand

        prk = hashlib.sha256(_PROBE_SALT).digest()
        ours = hkdf_expand(prk, 80, b"probe")
        reference = HKDFExpand(
            algorithm=hashes.SHA256(), length=80, info=b"probe"
        ).derive(prk)
        return ours == reference
    except Exception as exc:
        _LOGGER.warning("HKDF-Expand check failed: %s", exc.__class__.__name__)
        return False


def _test_envelope() -> bool:
    try:
        from .symmetric import SymmetricEncryption

        crypto = SymmetricEncryption(12)
        blob = crypto.encrypt(b"probe", _PROBE_PASSWORD)
        return crypto.decrypt(blob, _PROBE_PASSWORD) == b"probe"
    except Exception as exc:
        _LOGGER.warning("Envelope round trip failed: %s", exc.__class__.__name__)
        return False


__all__ = ["crypto_health_check"]
