from __future__ import annotations

import logging
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from slurm_availability.core.exceptions import AvailabilityError, ExternalToolFailureError
from slurm_availability.core.orchestrator import AvailabilityConfig, orchestrate
from slurm_availability.output.render import render_csv, render_json, render_table, render_text


app = typer.Typer(add_completion=False, help="Slurm cluster CPU time availability CLI")


@app.callback()
def main() -> None:
    """Slurm cluster CPU time availability CLI."""


def configure_logging(level: str) -> None:
    numeric = getattr(logging, (level or "WARNING").upper(), logging.WARNING)
    logging.basicConfig(
        level=numeric,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _report_failure(exc: AvailabilityError) -> None:
    typer.echo(f"Error: {exc}", err=True)
    if isinstance(exc, ExternalToolFailureError):
        for a in exc.attempts:
            typer.echo(f"--- {' '.join(a.command)} (exit code {a.returncode}) ---", err=True)
            typer.echo(a.output, err=True)
        return
    if exc.output is not None:
        typer.echo("Please check the sreport output manually:", err=True)
        typer.echo("-------------------- SREPORT OUTPUT START --------------------", err=True)
        typer.echo(exc.output, err=True)
        typer.echo("--------------------- SREPORT OUTPUT END ---------------------", err=True)


@app.command("availability")
def availability(
    period: str = typer.Argument(..., help="Period to report: YYYY, YYYY-MM or YYYY-MM-DD"),
    output: str = typer.Option(
        "table",
        "--output",
        case_sensitive=False,
        help="Output format: table|text|json|csv",
    ),
    sreport_bin: str = typer.Option(
        "sreport", "--sreport-bin", envvar="SREPORT_BIN", help="sreport executable"
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        envvar="SREPORT_TIMEOUT",
        help="Timeout in seconds for each sreport invocation",
    ),
    log_level: str = typer.Option(
        "WARNING",
        "--log-level",
        envvar="SLURM_AVAILABILITY_LOG_LEVEL",
        help="Logging level (DEBUG, INFO, WARNING, ERROR)",
    ),
):
    """Calculate Slurm cluster CPU time availability for a day, month or year."""
    configure_logging(log_level)

    fmt = output.lower()
    if fmt not in ("table", "text", "json", "csv"):
        typer.echo("Unknown output format. Use table|text|json|csv.", err=True)
        raise typer.Exit(code=2)

    try:
        cfg = AvailabilityConfig(sreport_bin=sreport_bin, timeout=timeout)
        report = orchestrate(period, cfg)
    except AvailabilityError as exc:
        _report_failure(exc)
        raise typer.Exit(code=1)

    if fmt == "table":
        render_table(report)
    elif fmt == "text":
        typer.echo(render_text(report))
    elif fmt == "json":
        typer.echo(render_json(report))
    else:
        typer.echo(render_csv(report))

    raise typer.Exit(code=0)


if __name__ == "__main__":  # pragma: no cover
    app()
