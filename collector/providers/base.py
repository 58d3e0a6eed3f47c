"""Shared types for resource providers.

Every metric read returns a :class:`Reading` instead of raising. The
status tells the caller how to treat the value:

    OK        - a real measurement (a measured 0 is still OK)
    DEGRADED  - the value is 0 because the source could not be read for
                an expected reason (process exited, permission denied,
                platform unsupported, missing field); the cycle continues
    FATAL     - an unexpected exception; ``unwrap()`` re-raises it so it
                ends the current sampling attempt
"""

import enum
import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


class CollectorError(Exception):
    """Base class for collector errors."""


class UnsupportedPlatformError(CollectorError):
    """Raised when no provider implementation exists for the host OS."""

    def __init__(self, platform_name: str, family: str):
        self.platform_name = platform_name
        self.family = family
        super().__init__(
            f"Unsupported platform '{platform_name}': no {family} provider "
            "is available (supported: linux, windows)"
        )


class ProviderReadError(CollectorError):
    """An accounting source could not be read or parsed."""


class SamplingError(CollectorError):
    """A sampling cycle hit an unexpected failure and was abandoned."""


class ReadStatus(enum.Enum):
    OK = "ok"
    DEGRADED = "degraded"
    FATAL = "fatal"


@dataclass(frozen=True)
class Reading:
    """Outcome of a single metric read.

    Attributes:
        status: OK, DEGRADED or FATAL.
        value: The measurement; always 0 unless status is OK.
        reason: Short explanation for DEGRADED/FATAL readings.
        error: The exception behind a FATAL reading.

    Example:
        >>> Reading.ok(42.5).value
        42.5
        >>> Reading.degraded("process 1234 exited").value
        0.0
    """

    status: ReadStatus
    value: float = 0.0
    reason: str = ""
    error: Optional[BaseException] = None

    @classmethod
    def ok(cls, value: float) -> "Reading":
        return cls(ReadStatus.OK, value)

    @classmethod
    def degraded(cls, reason: str, error: Optional[BaseException] = None) -> "Reading":
        return cls(ReadStatus.DEGRADED, 0.0, reason, error)

    @classmethod
    def fatal(cls, error: BaseException, reason: str = "") -> "Reading":
        return cls(ReadStatus.FATAL, 0.0, reason or str(error), error)

    @property
    def is_ok(self) -> bool:
        return self.status is ReadStatus.OK

    @property
    def is_degraded(self) -> bool:
        return self.status is ReadStatus.DEGRADED

    @property
    def is_fatal(self) -> bool:
        return self.status is ReadStatus.FATAL

    def unwrap(self) -> float:
        """Return the value, raising the stored error for FATAL readings.

        Raises:
            SamplingError: If the reading is FATAL. The original exception is
                chained as ``__cause__``.
        """
        if self.is_fatal:
            raise SamplingError(self.reason) from self.error
        return self.value
