# -*- coding: utf-8 -*-
"""Outcome values: the error taxonomy as return values instead of exceptions."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar, cast

from pwseal.exceptions import CryptoError, ErrorKind

T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """
    Result of an operation: either a value or a CryptoError.

    Examples:
        >>> Outcome.success(b"x").unwrap()
        b'x'
        >>> from pwseal.exceptions import AuthenticationFailedError
        >>> Outcome.failure(AuthenticationFailedError("bad")).kind
        <ErrorKind.AUTHENTICATION_FAILED: 'authentication_failed'>
    """

    value: Optional[T] = None
    error: Optional[CryptoError] = None

    @classmethod
    def success(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: CryptoError) -> "Outcome[T]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> Optional[ErrorKind]:
        return None if self.error is None else self.error.kind

    def unwrap(self) -> T:
        """Return the value or raise the stored error."""
        if self.error is not None:
            raise self.error
        return cast(T, self.value)


__all__ = ["Outcome"]
