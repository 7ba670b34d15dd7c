from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from slurm_availability.calculators.availability import compute_availability
from slurm_availability.core.exceptions import MalformedNumberError, ReportNotFoundError
from slurm_availability.models.report import DelimiterMode
from slurm_availability.models.results import (
    AvailabilityReport,
    AvailabilityResult,
    MetricTriple,
    PercentStatus,
    PeriodInfo,
)
from slurm_availability.parsers.sreport_parser import select_metrics
from slurm_availability.slurm.sreport import obtain_report
from slurm_availability.utils.periods import ReportPeriod, parse_period
from slurm_availability.utils.units import parse_suffixed


LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class AvailabilityConfig:
    sreport_bin: str = "sreport"
    timeout: Optional[float] = None


def extract_metrics(text: str, mode: DelimiterMode) -> MetricTriple:
    raw = select_metrics(text, mode)
    if raw is None:
        raise ReportNotFoundError(
            "Could not parse the required data from sreport output. This might be due "
            "to an unexpected sreport output format or no data for the period.",
            text,
        )
    try:
        reported, down, planned_down = (parse_suffixed(t) for t in raw.as_tuple())
    except MalformedNumberError as e:
        raise MalformedNumberError(e.token, raw=raw, output=text) from e
    LOGGER.info(
        "Parsed values: reported=%s down=%s plnd_down=%s", reported, down, planned_down
    )
    return MetricTriple(reported=reported, down=down, planned_down=planned_down)


def evaluate_report(text: str, mode: DelimiterMode) -> Tuple[MetricTriple, AvailabilityResult]:
    """Run the parse and compute stages on an already fetched report."""
    metrics = extract_metrics(text, mode)
    return metrics, compute_availability(metrics)


def _anomalies(metrics: MetricTriple, result: AvailabilityResult) -> List[str]:
    if metrics.reported == 0:
        return ["'Reported' CPU minutes is zero. Cannot calculate percentages."]
    warnings: List[str] = []
    if result.percent_total.status is PercentStatus.NEGATIVE:
        warnings.append(
            f"Calculated 'Total Available CPU Time' ({result.available_total}) is negative."
        )
    if result.percent_excl_planned.status is PercentStatus.NEGATIVE:
        warnings.append(
            "Calculated 'Available CPU Time (Ignoring Planned Downtime)' "
            f"({result.available_excl_planned}) is negative."
        )
    return warnings


def orchestrate(period: str | ReportPeriod, cfg: AvailabilityConfig) -> AvailabilityReport:
    if not isinstance(period, ReportPeriod):
        period = parse_period(period)
    LOGGER.info("Fetching Slurm utilization report %s", period.description)

    fetch = obtain_report(period, sreport_bin=cfg.sreport_bin, timeout=cfg.timeout)
    metrics, result = evaluate_report(fetch.text, fetch.mode)

    warnings: List[str] = []
    if fetch.used_fallback:
        warnings.append(
            "'sreport ... -t Minutes --parsable2' was rejected; used basic sreport output."
        )
    anomalies = _anomalies(metrics, result)
    for msg in anomalies:
        LOGGER.warning(msg)
    warnings.extend(anomalies)

    return AvailabilityReport(
        period=PeriodInfo(
            kind=period.kind,
            start=period.start.isoformat(),
            end=period.end.isoformat(),
            label=period.label,
        ),
        delimiter_mode=fetch.mode.value,
        used_fallback=fetch.used_fallback,
        metrics=metrics,
        availability=result,
        warnings=warnings,
    )
