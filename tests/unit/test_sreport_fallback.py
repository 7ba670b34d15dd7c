from __future__ import annotations

from datetime import date
from typing import List, Sequence, Tuple

import pytest

import slurm_availability.slurm.sreport as sr
from slurm_availability.core.exceptions import ExternalToolFailureError
from slurm_availability.models.report import DelimiterMode
from slurm_availability.utils.periods import parse_period


PIPE_OUTPUT = "Cluster|Allocated|Down|PLND Down|Idle|Planned|Reported\ncluster1|1000|50|20|0|0|1000\n"
COLUMNAR_OUTPUT = "  Cluster  Allocated  Down PLND Dow  Idle Planned Reported\n cluster1 1000 50 20 0 0 1000\n"


class FakeSreport:
    """Replays canned (exit code, output) pairs and records the commands run."""

    def __init__(self, *responses: Tuple[int, str]):
        self.responses = list(responses)
        self.calls: List[List[str]] = []

    def __call__(self, cmd: Sequence[str], timeout=None) -> Tuple[int, str]:
        self.calls.append(list(cmd))
        return self.responses.pop(0)


@pytest.fixture
def period():
    return parse_period("2025-04")


def test_build_sreport_cmd(period):
    assert sr.build_sreport_cmd(period, parsable=True) == [
        "sreport",
        "cluster",
        "utilization",
        "start=2025-04-01",
        "end=2025-05-01",
        "-t",
        "Minutes",
        "--parsable2",
    ]
    plain = sr.build_sreport_cmd(period, parsable=False, sreport_bin="/opt/slurm/bin/sreport")
    assert plain == [
        "/opt/slurm/bin/sreport",
        "cluster",
        "utilization",
        "start=2025-04-01",
        "end=2025-05-01",
    ]


def test_parsable_output_accepted(monkeypatch, period):
    fake = FakeSreport((0, PIPE_OUTPUT))
    monkeypatch.setattr(sr, "_run", fake)
    fetch = sr.obtain_report(period)
    assert fetch.mode is DelimiterMode.PIPE
    assert fetch.text == PIPE_OUTPUT
    assert not fetch.used_fallback
    assert len(fake.calls) == 1
    assert "--parsable2" in fake.calls[0]


def test_error_marker_forces_fallback_despite_success_exit(monkeypatch, period):
    fake = FakeSreport((0, "sreport: error: something|odd\n"), (0, COLUMNAR_OUTPUT))
    monkeypatch.setattr(sr, "_run", fake)
    fetch = sr.obtain_report(period)
    assert fetch.mode is DelimiterMode.WHITESPACE
    assert fetch.text == COLUMNAR_OUTPUT
    assert fetch.used_fallback
    assert "--parsable2" not in fake.calls[1]


def test_invalid_option_forces_fallback(monkeypatch, period):
    fake = FakeSreport((0, "Invalid option: --parsable2 | try again\n"), (0, COLUMNAR_OUTPUT))
    monkeypatch.setattr(sr, "_run", fake)
    assert sr.obtain_report(period).mode is DelimiterMode.WHITESPACE


def test_output_without_pipe_forces_fallback(monkeypatch, period):
    fake = FakeSreport((0, COLUMNAR_OUTPUT), (0, COLUMNAR_OUTPUT))
    monkeypatch.setattr(sr, "_run", fake)
    assert sr.obtain_report(period).mode is DelimiterMode.WHITESPACE
    assert len(fake.calls) == 2


def test_nonzero_primary_falls_back_and_uses_fallback_status(monkeypatch, period):
    fake = FakeSreport((1, PIPE_OUTPUT), (0, COLUMNAR_OUTPUT))
    monkeypatch.setattr(sr, "_run", fake)
    fetch = sr.obtain_report(period)
    assert fetch.mode is DelimiterMode.WHITESPACE
    assert [a.returncode for a in fetch.attempts] == [1, 0]


def test_failed_fallback_raises_with_both_attempts(monkeypatch, period):
    fake = FakeSreport((1, "sreport: error: Problem talking to the database"), (1, "still broken"))
    monkeypatch.setattr(sr, "_run", fake)
    with pytest.raises(ExternalToolFailureError) as exc:
        sr.obtain_report(period)
    assert len(exc.value.attempts) == 2
    assert exc.value.output == "still broken"
    assert "exit code 1" in str(exc.value)
    # Exactly one fallback, no retry loop
    assert len(fake.calls) == 2


def test_missing_executable_maps_to_127(period):
    result = sr.attempt(["definitely-not-a-real-sreport-binary", "cluster"])
    assert result.returncode == sr.EXIT_NOT_FOUND
    assert "command not found" in result.output
    assert not sr.accepts_parsable(result)


def test_timeout_is_passed_through(monkeypatch, period):
    seen = []

    def fake_run(cmd, timeout=None):
        seen.append(timeout)
        return 0, PIPE_OUTPUT

    monkeypatch.setattr(sr, "_run", fake_run)
    sr.obtain_report(period, timeout=12.5)
    assert seen == [12.5]


def test_report_period_dates_in_command(monkeypatch):
    fake = FakeSreport((0, PIPE_OUTPUT))
    monkeypatch.setattr(sr, "_run", fake)
    sr.obtain_report(parse_period("2025-12-31"))
    assert "start=2025-12-31" in fake.calls[0]
    assert f"end={date(2026, 1, 1).isoformat()}" in fake.calls[0]


def _fake_sreport(tmp_path, body: str, mode: int = 0o755):
    script = tmp_path / "sreport"
    script.write_text("#!/bin/sh\n" + body + "\n", encoding="utf-8")
    script.chmod(mode)
    return str(script)


def test_undecodable_output_is_replaced_not_raised(tmp_path, period):
    fake = _fake_sreport(tmp_path, r"printf 'clu\377|1000|50|20|0|0|1000\n'")
    fetch = sr.obtain_report(period, sreport_bin=fake)
    assert fetch.mode is DelimiterMode.PIPE
    assert "�" in fetch.text
    assert fetch.text.endswith("|1000|50|20|0|0|1000\n")


def test_non_executable_binary_maps_to_126(tmp_path):
    fake = _fake_sreport(tmp_path, "echo never", mode=0o644)
    result = sr.attempt([fake, "cluster"])
    assert result.returncode == sr.EXIT_NOT_EXECUTABLE
    assert result.output == f"{fake}: Permission denied"


def test_path_through_a_file_maps_to_126(tmp_path):
    plain = tmp_path / "not-a-dir"
    plain.write_text("", encoding="utf-8")
    result = sr.attempt([str(plain / "sreport"), "cluster"])
    assert result.returncode == sr.EXIT_NOT_EXECUTABLE


def test_non_executable_binary_raises_tool_failure(tmp_path, period):
    fake = _fake_sreport(tmp_path, "echo never", mode=0o644)
    with pytest.raises(ExternalToolFailureError) as exc:
        sr.obtain_report(period, sreport_bin=fake)
    assert [a.returncode for a in exc.value.attempts] == [126, 126]
    assert "Permission denied" in exc.value.output


def test_fetch_and_failure_attempts_are_tuples(monkeypatch, period):
    monkeypatch.setattr(sr, "_run", FakeSreport((0, PIPE_OUTPUT)))
    assert isinstance(sr.obtain_report(period).attempts, tuple)
    monkeypatch.setattr(sr, "_run", FakeSreport((1, "x"), (1, "y")))
    with pytest.raises(ExternalToolFailureError) as exc:
        sr.obtain_report(period)
    assert isinstance(exc.value.attempts, tuple)
