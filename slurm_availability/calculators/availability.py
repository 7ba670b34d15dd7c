from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from slurm_availability.models.results import (
    AvailabilityResult,
    MetricTriple,
    Percentage,
    PercentStatus,
)


PERCENT_QUANTUM = Decimal("0.01")
HUNDRED = Decimal(100)


def availability_percentage(available: Decimal, reported: Decimal) -> Percentage:
    """Share of ``reported`` time that was available, in percent.

    Zero reported time gives UNDEFINED before the sign of ``available`` is
    looked at; negative available time gives NEGATIVE. Values are rounded to
    two places, half away from zero.
    """
    if reported == 0:
        return Percentage(status=PercentStatus.UNDEFINED)
    if available < 0:
        return Percentage(status=PercentStatus.NEGATIVE)
    value = (available / reported * HUNDRED).quantize(PERCENT_QUANTUM, rounding=ROUND_HALF_UP)
    return Percentage(status=PercentStatus.OK, value=value)


def compute_availability(metrics: MetricTriple) -> AvailabilityResult:
    unavailable_total = metrics.down + metrics.planned_down
    available_total = metrics.reported - unavailable_total
    available_excl_planned = metrics.reported - metrics.down

    return AvailabilityResult(
        unavailable_total=unavailable_total,
        available_total=available_total,
        available_excl_planned=available_excl_planned,
        percent_total=availability_percentage(available_total, metrics.reported),
        percent_excl_planned=availability_percentage(available_excl_planned, metrics.reported),
    )
