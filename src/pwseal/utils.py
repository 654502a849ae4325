# -*- coding: utf-8 -*-
"""
Low-level helpers: OS random bytes with sanity checks, best-effort zeroization
of mutable buffers and constant-time byte comparison.
"""
from __future__ import annotations

import logging
import secrets
from collections import Counter
from typing import Final, Optional, Union

from pwseal.exceptions import InsufficientEntropyError

_LOGGER: Final = logging.getLogger(__name__)

_MAX_RANDOM_BYTES: Final[int] = 10 * 1024 * 1024
_SMALL_APT_MIN_N: Final[int] = 32
_RCT_MIN_N: Final[int] = 8
_APT_MAX_PROPORTION: Final[float] = 0.80


def generate_random_bytes(n: int) -> bytes:
    """
    Generate cryptographically secure random bytes with output sanity checks.

    Args:
        n: number of bytes to generate (1..10MiB).

    Returns:
        Random bytes of requested length.

    Raises:
        ValueError: if n is out of range.
        InsufficientEntropyError: if the OS source fails or the output is degenerate.
    """
    if not isinstance(n, int) or n <= 0 or n > _MAX_RANDOM_BYTES:
        raise ValueError("Requested random size must be in 1..10MiB")

    try:
        out = secrets.token_bytes(n)
    except OSError as exc:
        _LOGGER.error("OS random source failed: %s", exc.__class__.__name__)
        raise InsufficientEntropyError("Could not read random data") from exc

    if len(out) != n:
        raise InsufficientEntropyError("Could not read random data")
    _rct_apt_checks(out)

    _LOGGER.debug("Generated %d random bytes", n)
    return out


def _rct_apt_checks(data: bytes) -> None:
    """
    Repetition Count Test (RCT) and Adaptive Proportion Test (APT) sanity checks.

    Args:
        data: random bytes to check.

    Raises:
        InsufficientEntropyError: if data fails basic entropy sanity checks.
    """
    if not data:
        raise InsufficientEntropyError("Empty data for entropy checks")
    if len(data) >= _RCT_MIN_N and all(b == data[0] for b in data):
        raise InsufficientEntropyError(
            "Quality of random data is not sufficient for cryptographic use"
        )
    if len(data) >= _SMALL_APT_MIN_N:
        freq: Counter[int] = Counter(data)
        max_prop = max(freq.values()) / float(len(data))
        if max_prop > _APT_MAX_PROPORTION:
            raise InsufficientEntropyError(
                "Quality of random data is not sufficient for cryptographic use"
            )


def zero_memory(buf: Optional[bytearray]) -> None:
    """
    Best-effort zeroization of a mutable buffer.

    Args:
        buf: bytearray to wipe (None is silently ignored).

    Notes:
        - Only works on bytearray; bytes objects cannot be wiped.
        - The garbage collector and interpreter copies mean this is a
          mitigation against casual memory dumps, not true secure erasure.
    """
    if buf is None:
        return
    for i in range(len(buf)):
        buf[i] = 0


def constant_time_equals(
    a: Union[bytes, bytearray], b: Union[bytes, bytearray]
) -> bool:
    """
    Compare two byte strings without an early exit.

    The accumulator starts with ``len(a) ^ len(b)`` and ORs in the XOR of every
    byte pair. Both inputs are zero-padded to the longer length, so the loop
    always runs ``max(len(a), len(b))`` times whatever the contents are.

    Args:
        a: first bytes sequence.
        b: second bytes sequence.

    Returns:
        True if both sequences have the same length and content.
    """
    len_a = len(a)
    len_b = len(b)
    width = max(len_a, len_b)
    left = bytes(a).ljust(width, b"\x00")
    right = bytes(b).ljust(width, b"\x00")

    result = len_a ^ len_b
    for x, y in zip(left, right):
        result |= x ^ y
    return result == 0


__all__ = [
    "generate_random_bytes",
    "zero_memory",
    "constant_time_equals",
]
