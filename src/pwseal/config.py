# -*- coding: utf-8 -*-
"""
Key-derivation cost configuration with named profiles.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Final

from pwseal.exceptions import ConfigurationError
from pwseal.kdf import MAX_ITERATIONS_LOG2

_LOGGER: Final = logging.getLogger(__name__)

MIN_ITERATIONS_LOG2: Final[int] = 12
DEFAULT_ITERATIONS_LOG2: Final[int] = MIN_ITERATIONS_LOG2


class CostProfile(str, Enum):
    """Predefined PBKDF2 cost profiles for different latency budgets."""

    # Interactive use, lowest acceptable cost
    INTERACTIVE = "interactive"

    # Desktop/laptop systems
    DESKTOP = "desktop"

    # Servers and long-term storage
    SERVER = "server"


@dataclass(frozen=True)
class EncryptionConfig:
    """
    Envelope encryption parameters.

    Attributes:
        iterations_log2: log2 of the PBKDF2 iteration count used when
            encrypting, and the largest value accepted when decrypting.

    Values below MIN_ITERATIONS_LOG2 are raised to the minimum with a warning.

    Examples:
        >>> EncryptionConfig.from_profile(CostProfile.DESKTOP).iterations_log2
        16
        >>> EncryptionConfig(iterations_log2=20).iteration_count
        1048576
    """

    iterations_log2: int = DEFAULT_ITERATIONS_LOG2

    def __post_init__(self) -> None:
        """Validate parameters."""
        value = self.iterations_log2
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigurationError("iterations_log2 must be an integer")
        if value > MAX_ITERATIONS_LOG2:
            raise ConfigurationError(
                f"iterations_log2 must be <= {MAX_ITERATIONS_LOG2}"
            )
        if value < MIN_ITERATIONS_LOG2:
            _LOGGER.warning(
                "Number of iterations used for key stretching is too low, "
                "using default instead (2^%d)",
                MIN_ITERATIONS_LOG2,
            )
            object.__setattr__(self, "iterations_log2", MIN_ITERATIONS_LOG2)

    @property
    def iteration_count(self) -> int:
        return 1 << self.iterations_log2

    @staticmethod
    def from_profile(profile: CostProfile) -> "EncryptionConfig":
        """
        Create configuration from predefined profile.

        Args:
            profile: cost profile.

        Returns:
            EncryptionConfig instance.
        """
        return _PROFILE_PARAMS[profile]


_PROFILE_PARAMS: Final[dict[CostProfile, EncryptionConfig]] = {
    CostProfile.INTERACTIVE: EncryptionConfig(iterations_log2=12),
    CostProfile.DESKTOP: EncryptionConfig(iterations_log2=16),
    CostProfile.SERVER: EncryptionConfig(iterations_log2=20),
}


__all__ = [
    "MIN_ITERATIONS_LOG2",
    "DEFAULT_ITERATIONS_LOG2",
    "CostProfile",
    "EncryptionConfig",
]
