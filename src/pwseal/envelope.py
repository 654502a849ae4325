# -*- coding: utf-8 -*-
"""
Binary envelope layout.

    salt (16) | iterations_log2 (int16, little-endian) | iv | ciphertext | tag

Field widths are fixed or implied by the trailing tag length; there are no
length prefixes and no algorithm identifier. The iteration field is pinned to
little-endian so envelopes are portable across hosts and byte-compatible with
envelopes written by little-endian machines before the order was fixed.
"""
from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Final

from pwseal.exceptions import MalformedEnvelopeError
from pwseal.protocols import BytesLike

SALT_LEN: Final[int] = 16
ITERATIONS_FORMAT: Final[str] = "<h"
ITERATIONS_LEN: Final[int] = struct.calcsize(ITERATIONS_FORMAT)
ITERATIONS_MIN: Final[int] = -(1 << 15)
ITERATIONS_MAX: Final[int] = (1 << 15) - 1
HEADER_LEN: Final[int] = SALT_LEN + ITERATIONS_LEN


def pack_iterations(iterations_log2: int) -> bytes:
    return struct.pack(ITERATIONS_FORMAT, iterations_log2)


def unpack_iterations(field: BytesLike) -> int:
    value: int = struct.unpack(ITERATIONS_FORMAT, bytes(field))[0]
    return value


@dataclass(frozen=True)
class Envelope:
    """Parsed view of an encrypted envelope."""

    salt: bytes
    iterations_log2: int
    iv: bytes
    ciphertext: bytes
    tag: bytes

    def __post_init__(self) -> None:
        value = self.iterations_log2
        if (
            isinstance(value, bool)
            or not isinstance(value, int)
            or not ITERATIONS_MIN <= value <= ITERATIONS_MAX
        ):
            raise MalformedEnvelopeError("Iteration field does not fit in 16 bits")

    @staticmethod
    def minimum_length(iv_length: int, tag_length: int) -> int:
        return HEADER_LEN + iv_length + tag_length

    @staticmethod
    def peek_iterations(data: BytesLike) -> int:
        """Read the cost field without parsing the rest; data must hold the header."""
        if len(data) < HEADER_LEN:
            raise MalformedEnvelopeError("Envelope is too short")
        return unpack_iterations(data[SALT_LEN:HEADER_LEN])

    @classmethod
    def parse(cls, data: BytesLike, iv_length: int, tag_length: int) -> "Envelope":
        """
        Split raw bytes into envelope fields.

        Raises:
            MalformedEnvelopeError: if data is shorter than the minimum envelope.
        """
        raw = bytes(data)
        if len(raw) < cls.minimum_length(iv_length, tag_length):
            raise MalformedEnvelopeError("Envelope is too short")
        body_end = len(raw) - tag_length
        return cls(
            salt=raw[:SALT_LEN],
            iterations_log2=unpack_iterations(raw[SALT_LEN:HEADER_LEN]),
            iv=raw[HEADER_LEN : HEADER_LEN + iv_length],
            ciphertext=raw[HEADER_LEN + iv_length : body_end],
            tag=raw[body_end:],
        )

    @property
    def authenticated_data(self) -> bytes:
        """Everything the tag covers: salt, cost field, iv and ciphertext."""
        return (
            self.salt + pack_iterations(self.iterations_log2) + self.iv + self.ciphertext
        )

    def to_bytes(self) -> bytes:
        return self.authenticated_data + self.tag


__all__ = [
    "SALT_LEN",
    "ITERATIONS_FORMAT",
    "ITERATIONS_LEN",
    "ITERATIONS_MIN",
    "ITERATIONS_MAX",
    "HEADER_LEN",
    "Envelope",
    "pack_iterations",
    "unpack_iterations",
]
