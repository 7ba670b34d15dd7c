from __future__ import annotations

import csv
import io
import json
from decimal import Decimal
from typing import List, Optional, Tuple

from rich.console import Console
from rich.table import Table

from slurm_availability.models.results import AvailabilityReport, Percentage, PercentStatus


RULE = "-" * 59

STATUS_LABELS = {
    PercentStatus.UNDEFINED: "N/A",
    PercentStatus.NEGATIVE: "Error (Negative Available Time)",
}


def format_minutes(value: Decimal) -> str:
    return f"{value.normalize():f}" if value else "0"


def format_percentage(p: Percentage) -> str:
    """Two decimals, comma as decimal separator, ``%`` only for numeric values."""
    if p.status is not PercentStatus.OK or p.value is None:
        return STATUS_LABELS.get(p.status, "N/A")
    return f"{p.value:.2f}".replace(".", ",") + "%"


def _figures(report: AvailabilityReport) -> List[Tuple[str, str]]:
    m = report.metrics
    a = report.availability
    return [
        ("Reported CPU Minutes", format_minutes(m.reported)),
        ("Unplanned Down CPU Minutes", format_minutes(m.down)),
        ("Planned Down CPU Minutes", format_minutes(m.planned_down)),
        ("Total Unavailable CPU Time", format_minutes(a.unavailable_total)),
        ("Total Available CPU Time", format_minutes(a.available_total)),
        ("Available CPU Time (Ignoring Planned)", format_minutes(a.available_excl_planned)),
        ("Percentage of CPU Time Available", format_percentage(a.percent_total)),
        (
            "Percentage of CPU Time Available (Ignoring Planned Downtime)",
            format_percentage(a.percent_excl_planned),
        ),
    ]


def render_table(report: AvailabilityReport, console: Optional[Console] = None) -> None:
    console = console or Console()
    m = report.metrics
    a = report.availability

    inputs = Table(title=f"Slurm Utilization {report.period.label}")
    inputs.add_column("Metric")
    inputs.add_column("CPU Minutes", justify="right")
    inputs.add_row("Reported", format_minutes(m.reported))
    inputs.add_row("Unplanned Down", format_minutes(m.down))
    inputs.add_row("Planned Down", format_minutes(m.planned_down))
    console.print(inputs)

    derived = Table(title="Availability")
    derived.add_column("Metric")
    derived.add_column("Value", justify="right")
    derived.add_row("Total Unavailable (Unplanned + Planned Down)", format_minutes(a.unavailable_total))
    derived.add_row("Total Available (Reported - Total Unavailable)", format_minutes(a.available_total))
    derived.add_row(
        "Available Ignoring Planned (Reported - Unplanned Down)",
        format_minutes(a.available_excl_planned),
    )
    derived.add_row("CPU Time Available", format_percentage(a.percent_total))
    derived.add_row(
        "CPU Time Available (Ignoring Planned Downtime)",
        format_percentage(a.percent_excl_planned),
    )
    console.print(derived)

    if report.warnings:
        warn = Table(title="Warnings")
        warn.add_column("Message")
        for w in report.warnings:
            warn.add_row(w)
        console.print(warn)


def render_text(report: AvailabilityReport) -> str:
    a = report.availability
    m = report.metrics
    total = format_percentage(a.percent_total)
    excl = format_percentage(a.percent_excl_planned)
    # Flagged values carry one extra space so the suffix lines up with "%"
    excl_sep = " " if a.percent_excl_planned.is_numeric else "  "
    lines = [
        RULE,
        "Slurm Cluster CPU Time Availability Calculator",
        RULE,
        f"Period: {report.period.label} (from {report.period.start} to {report.period.end})",
        RULE,
        f"Reported CPU Minutes:               {format_minutes(m.reported)}",
        f"Unplanned Down CPU Minutes:         {format_minutes(m.down)}",
        f"Planned Down CPU Minutes:           {format_minutes(m.planned_down)}",
        RULE,
        f"Total Unavailable CPU Time:         {format_minutes(a.unavailable_total)}",
        "(Unplanned + Planned Down)",
        "",
        f"Total Available CPU Time:           {format_minutes(a.available_total)}",
        "(Reported - Total Unavailable)",
        "",
        f"Available CPU Time (Ignoring Planned): {format_minutes(a.available_excl_planned)}",
        "(Reported - Unplanned Down Only)",
        RULE,
        f"Percentage of CPU Time Available:   {total}",
        f"Percentage of CPU Time Available:   {excl}{excl_sep}(Ignoring Planned Downtime)",
        RULE,
    ]
    return "\n".join(lines)


def render_json(report: AvailabilityReport) -> str:
    data = report.model_dump(mode="json")
    return json.dumps(data, indent=2, sort_keys=True)


def render_csv(report: AvailabilityReport) -> str:
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(["Metric", "Value"])
    for label, value in _figures(report):
        writer.writerow([label, value])
    return output.getvalue()
