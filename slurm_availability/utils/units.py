from __future__ import annotations

import re
from decimal import Decimal

from slurm_availability.core.exceptions import MalformedNumberError


_SUFFIX_MULTIPLIERS = {
    "k": Decimal(10) ** 3,
    "m": Decimal(10) ** 6,
    "g": Decimal(10) ** 9,
    "t": Decimal(10) ** 12,
    "p": Decimal(10) ** 15,
}

_DECIMAL_PATTERN = re.compile(r"^(?:\d+(?:\.\d*)?|\.\d+)$")


def parse_suffixed(token: str) -> Decimal:
    """Parse an sreport figure such as ``1,234K`` into a plain number.

    - 1,234k => 1234000
    - 2.5G => 2500000000
    - 5 => 5

    Suffixes are decimal magnitudes (k=1e3 ... p=1e15), case-insensitive.
    """
    s = str(token).strip()
    multiplier = Decimal(1)
    if s and s[-1].lower() in _SUFFIX_MULTIPLIERS:
        multiplier = _SUFFIX_MULTIPLIERS[s[-1].lower()]
        s = s[:-1]
    s = s.replace(",", "")
    if not _DECIMAL_PATTERN.match(s):
        raise MalformedNumberError(str(token))
    return Decimal(s) * multiplier
