from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Tuple


class DelimiterMode(str, Enum):
    PIPE = "pipe"  # sreport --parsable2
    WHITESPACE = "whitespace"  # default columnar output


@dataclass(frozen=True, slots=True)
class RawMetrics:
    reported: str
    down: str
    planned_down: str

    def as_tuple(self) -> Tuple[str, str, str]:
        return (self.reported, self.down, self.planned_down)


@dataclass(frozen=True, slots=True)
class CommandAttempt:
    command: Tuple[str, ...]
    returncode: int
    output: str

    @property
    def succeeded(self) -> bool:
        return self.returncode == 0


@dataclass(frozen=True, slots=True)
class ReportFetch:
    text: str
    mode: DelimiterMode
    attempts: Tuple[CommandAttempt, ...] = ()

    @property
    def used_fallback(self) -> bool:
        return len(self.attempts) > 1
