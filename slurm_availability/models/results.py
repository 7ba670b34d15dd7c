from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class PercentStatus(str, Enum):
    OK = "ok"
    UNDEFINED = "undefined"  # reported time is zero
    NEGATIVE = "negative"  # downtime exceeds reported time


class MetricTriple(BaseModel):
    model_config = ConfigDict(frozen=True)

    reported: Decimal = Field(ge=0)
    down: Decimal = Field(ge=0)
    planned_down: Decimal = Field(ge=0)


class Percentage(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: PercentStatus
    value: Optional[Decimal] = None

    @property
    def is_numeric(self) -> bool:
        return self.status is PercentStatus.OK


class AvailabilityResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    unavailable_total: Decimal
    available_total: Decimal
    available_excl_planned: Decimal
    percent_total: Percentage
    percent_excl_planned: Percentage


class PeriodInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: str
    start: str
    end: str
    label: str


class AvailabilityReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    period: PeriodInfo
    delimiter_mode: str
    used_fallback: bool
    metrics: MetricTriple
    availability: AvailabilityResult
    warnings: Tuple[str, ...]
