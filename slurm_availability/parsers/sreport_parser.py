from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from slurm_availability.models.report import DelimiterMode, RawMetrics


Tokenizer = Callable[[str], List[str]]


class LineKind(str, Enum):
    BLANK = "blank"
    SEPARATOR = "separator"
    TITLE = "title"
    HEADER = "header"
    CANDIDATE = "candidate"


@dataclass(frozen=True, slots=True)
class ColumnMap:
    """Zero-based positions of the fields we extract from a data row."""

    reported: int = 6
    down: int = 2
    planned_down: int = 3


# Allocated, Down, PLND Down, Idle, Planned/Reserved, Reported
DEFAULT_COLUMNS = ColumnMap()

MIN_FIELDS = 7

_PURE_NUMBER = re.compile(r"^[0-9]+(\.[0-9]+)?$")
_SUFFIXED_NUMBER = re.compile(r"^[0-9.,]+[KMGTPkmgtp]?$")
_TITLE = re.compile(r"^\s*(Cluster Utilization\b|Usage reported in\b|Time reported in\b)")
_HEADER_SPLIT = re.compile(r"[|\s]+")

# Single words that appear in sreport cluster utilization headers across versions
_HEADER_WORDS = {
    "cluster",
    "allocated",
    "alloc",
    "down",
    "plnd",
    "dow",
    "plnddown",
    "idle",
    "planned",
    "reserved",
    "tresused",
    "reported",
    "rept",
    "over",
    "comm",
    "overcommitted",
}

# Column names that span two whitespace-separated words
_MULTI_WORD_COLUMNS = {
    ("plnd", "down"): "plnd down",
    ("plnd", "dow"): "plnd down",
    ("over", "comm"): "over comm",
}

_COLUMN_ALIASES: Dict[str, Tuple[str, ...]] = {
    "reported": ("reported", "rept"),
    "down": ("down",),
    "planned_down": ("plnd down", "plnddown", "plnd dow"),
}


def split_pipe(line: str) -> List[str]:
    return [t.strip() for t in line.split("|")]


def split_whitespace(line: str) -> List[str]:
    return line.split()


TOKENIZERS: Dict[DelimiterMode, Tokenizer] = {
    DelimiterMode.PIPE: split_pipe,
    DelimiterMode.WHITESPACE: split_whitespace,
}


def is_blank(line: str) -> bool:
    return not line.strip()


def is_separator(line: str) -> bool:
    # Columnar output prints one dash run per column, separated by spaces
    s = line.strip()
    return bool(s) and "-" in s and set(s) <= {"-", " ", "\t"}


def is_title(line: str) -> bool:
    return bool(_TITLE.match(line))


def is_header(line: str) -> bool:
    """True for a column-header line, whatever the delimiter.

    Matches on vocabulary rather than exact text so that version differences
    (``Alloc`` vs ``Allocated``, ``PLND Dow`` vs ``PLND Down``) still classify.
    """
    words = [w.lower() for w in _HEADER_SPLIT.split(line.strip()) if w]
    if len(words) < 2 or words[0] != "cluster":
        return False
    return all(w in _HEADER_WORDS for w in words)


# Evaluated in order; the first predicate that accepts a line classifies it
SKIP_RULES: Sequence[Tuple[LineKind, Callable[[str], bool]]] = (
    (LineKind.BLANK, is_blank),
    (LineKind.SEPARATOR, is_separator),
    (LineKind.TITLE, is_title),
    (LineKind.HEADER, is_header),
)


def classify_line(line: str) -> LineKind:
    for kind, predicate in SKIP_RULES:
        if predicate(line):
            return kind
    return LineKind.CANDIDATE


def _header_names(tokens: List[str], mode: DelimiterMode) -> List[str]:
    words = [t.lower() for t in tokens]
    if mode is DelimiterMode.PIPE:
        return words
    names: List[str] = []
    i = 0
    while i < len(words):
        pair = tuple(words[i : i + 2])
        if pair in _MULTI_WORD_COLUMNS:
            names.append(_MULTI_WORD_COLUMNS[pair])
            i += 2
        else:
            names.append(words[i])
            i += 1
    return names


def resolve_columns(header_line: str, mode: DelimiterMode) -> Optional[ColumnMap]:
    """Locate Down, PLND Down and Reported from a header line.

    Returns ``None`` when the header does not name each of them exactly once,
    in which case callers keep the default positions.
    """
    names = _header_names(TOKENIZERS[mode](header_line), mode)
    if len(names) < MIN_FIELDS:
        return None
    positions: Dict[str, int] = {}
    for field_name, aliases in _COLUMN_ALIASES.items():
        hits = [i for i, n in enumerate(names) if n in aliases]
        if len(hits) != 1 or hits[0] == 0:
            return None
        positions[field_name] = hits[0]
    return ColumnMap(**positions)


def match_data_row(
    tokens: Sequence[str], columns: ColumnMap = DEFAULT_COLUMNS
) -> Optional[RawMetrics]:
    """Return the raw metrics if ``tokens`` has the shape of a utilization row."""
    if len(tokens) < MIN_FIELDS:
        return None
    if _PURE_NUMBER.match(tokens[0]):
        return None
    if not all(_SUFFIXED_NUMBER.match(t) for t in tokens[1:MIN_FIELDS]):
        return None
    picked = (columns.reported, columns.down, columns.planned_down)
    if any(i >= len(tokens) or not _SUFFIXED_NUMBER.match(tokens[i]) for i in picked):
        return None
    return RawMetrics(
        reported=tokens[columns.reported],
        down=tokens[columns.down],
        planned_down=tokens[columns.planned_down],
    )


def select_metrics(text: str, mode: DelimiterMode) -> Optional[RawMetrics]:
    """Find the first utilization data row in an sreport report.

    Blank lines, dash separators, title lines and header lines are skipped;
    the remaining lines are tokenized according to ``mode`` and the first one
    shaped like a data row wins. Returns ``None`` if no line qualifies.
    """
    tokenize = TOKENIZERS[mode]
    columns = DEFAULT_COLUMNS
    for line in text.splitlines():
        kind = classify_line(line)
        if kind is LineKind.HEADER:
            columns = resolve_columns(line, mode) or DEFAULT_COLUMNS
            continue
        if kind is not LineKind.CANDIDATE:
            continue
        raw = match_data_row(tokenize(line), columns)
        if raw is not None:
            return raw
    return None
