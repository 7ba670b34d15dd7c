from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Sequence, Tuple

if TYPE_CHECKING:  # pragma: no cover
    from slurm_availability.models.report import CommandAttempt, RawMetrics


class AvailabilityError(Exception):
    """Base exception for availability computation errors."""

    output: Optional[str] = None


class InvalidPeriodError(AvailabilityError):
    """Raised when the requested period is not YYYY, YYYY-MM or YYYY-MM-DD."""


class ExternalToolFailureError(AvailabilityError):
    """Raised when the effective sreport invocation exits non-zero."""

    def __init__(self, message: str, attempts: Sequence["CommandAttempt"] = ()):
        super().__init__(message)
        self.attempts: Tuple["CommandAttempt", ...] = tuple(attempts)
        self.output = self.attempts[-1].output if self.attempts else None


class ReportNotFoundError(AvailabilityError):
    """Raised when no row in the report has the utilization shape."""

    def __init__(self, message: str, output: str):
        super().__init__(message)
        self.output = output


class MalformedNumberError(AvailabilityError):
    """Raised when a report field is not a valid non-negative decimal."""

    def __init__(
        self,
        token: str,
        *,
        raw: Optional["RawMetrics"] = None,
        output: Optional[str] = None,
    ):
        message = f"Not a valid number after suffix conversion: '{token}'"
        if raw is not None:
            message += (
                f" (Reported: '{raw.reported}', Down: '{raw.down}',"
                f" PLND Down: '{raw.planned_down}')"
            )
        super().__init__(message)
        self.token = token
        self.raw = raw
        self.output = output
