from __future__ import annotations

import logging
import subprocess
from typing import List, Optional, Sequence, Tuple

from slurm_availability.core.exceptions import ExternalToolFailureError
from slurm_availability.models.report import CommandAttempt, DelimiterMode, ReportFetch
from slurm_availability.utils.periods import ReportPeriod


LOGGER = logging.getLogger(__name__)

ERROR_MARKERS = ("Invalid option", "sreport: error:")

# Shell conventions, so launch problems flow through the same exit-status policy
EXIT_NOT_EXECUTABLE = 126
EXIT_NOT_FOUND = 127
EXIT_TIMEOUT = 124


def build_sreport_cmd(
    period: ReportPeriod, *, parsable: bool, sreport_bin: str = "sreport"
) -> List[str]:
    """Build the ``sreport cluster utilization`` command for ``period``.

    The parsable form asks for minutes explicitly and pipe-delimited rows;
    the plain form relies on sreport's defaults.

    Example:
        >>> from datetime import date
        >>> p = ReportPeriod("month", date(2025, 4, 1), date(2025, 5, 1), "for the month 2025-04")
        >>> build_sreport_cmd(p, parsable=True)[3:]
        ['start=2025-04-01', 'end=2025-05-01', '-t', 'Minutes', '--parsable2']
    """
    cmd = [
        sreport_bin,
        "cluster",
        "utilization",
        f"start={period.start.isoformat()}",
        f"end={period.end.isoformat()}",
    ]
    if parsable:
        cmd += ["-t", "Minutes", "--parsable2"]
    return cmd


def _run(cmd: Sequence[str], timeout: Optional[float] = None) -> Tuple[int, str]:
    """Run ``cmd`` with stderr folded into stdout, as ``2>&1`` would."""
    try:
        proc = subprocess.run(
            list(cmd),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            errors="replace",
            timeout=timeout,
        )
    except FileNotFoundError:
        return EXIT_NOT_FOUND, f"{cmd[0]}: command not found"
    except OSError as e:
        return EXIT_NOT_EXECUTABLE, f"{cmd[0]}: {e.strerror}"
    except subprocess.TimeoutExpired as e:
        partial = e.output if isinstance(e.output, str) else ""
        return EXIT_TIMEOUT, partial + f"\n{cmd[0]}: timed out after {timeout}s"
    return proc.returncode, proc.stdout or ""


def attempt(cmd: Sequence[str], timeout: Optional[float] = None) -> CommandAttempt:
    LOGGER.debug("Running: %s", " ".join(cmd))
    returncode, output = _run(cmd, timeout)
    return CommandAttempt(command=tuple(cmd), returncode=returncode, output=output)


def accepts_parsable(result: CommandAttempt) -> bool:
    """Whether a ``--parsable2`` attempt can be trusted as pipe-delimited."""
    if not result.succeeded:
        return False
    if any(marker in result.output for marker in ERROR_MARKERS):
        return False
    return "|" in result.output


def obtain_report(
    period: ReportPeriod,
    *,
    sreport_bin: str = "sreport",
    timeout: Optional[float] = None,
) -> ReportFetch:
    """Fetch the utilization report, falling back to columnar output once.

    The parsable attempt is used when it is trustworthy; otherwise the plain
    command is run exactly once and its exit status decides the outcome.
    """
    primary = attempt(build_sreport_cmd(period, parsable=True, sreport_bin=sreport_bin), timeout)
    if accepts_parsable(primary):
        LOGGER.info("Using sreport --parsable2 output")
        return ReportFetch(text=primary.output, mode=DelimiterMode.PIPE, attempts=(primary,))

    snippet = "\n".join(primary.output.splitlines()[:3])
    LOGGER.warning(
        "sreport --parsable2 attempt rejected (exit code %s); retrying with basic "
        "sreport command. Output snippet:\n%s",
        primary.returncode,
        snippet,
    )
    fallback = attempt(build_sreport_cmd(period, parsable=False, sreport_bin=sreport_bin), timeout)
    attempts = (primary, fallback)
    if not fallback.succeeded:
        raise ExternalToolFailureError(
            f"sreport command failed with exit code {fallback.returncode}", attempts
        )
    LOGGER.info("Using basic sreport output")
    return ReportFetch(text=fallback.output, mode=DelimiterMode.WHITESPACE, attempts=attempts)
