"""Business-calendar clock for Delivery Metrics.

All elapsed-time figures are measured in business hours: only the part of an
interval that falls inside working hours on a working day counts.
"""

import logging
import math
from dataclasses import dataclass
from typing import Tuple

import pandas as pd

from .common_constants import HOURS_PER_BUSINESS_DAY
from .config.exceptions import MetricsInputError
from .models import is_valid_timestamp, to_timestamp
from .utils import round_half_up

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BusinessCalendar:
    """Working days (Monday = 0) and working hours in a timezone."""

    work_days: Tuple[int, ...] = (0, 1, 2, 3, 4)
    work_start_hour: float = 9
    work_end_hour: float = 18
    timezone: str = "UTC"

    def __post_init__(self):
        if not 0 <= self.work_start_hour < self.work_end_hour <= 24:
            raise MetricsInputError(
                f"Invalid working hours {self.work_start_hour}-{self.work_end_hour}"
            )
        if any(d not in range(7) for d in self.work_days):
            raise MetricsInputError(f"Invalid working days {self.work_days}")

    @classmethod
    def from_settings(cls, settings) -> "BusinessCalendar":
        return cls(
            work_days=tuple(settings.get("work_days", (0, 1, 2, 3, 4))),
            work_start_hour=settings.get("work_start_hour", 9),
            work_end_hour=settings.get("work_end_hour", 18),
            timezone=settings.get("timezone", "UTC"),
        )

    def localize(self, value):
        """Wall-clock time in the calendar timezone as a naive timestamp."""
        timestamp = to_timestamp(value)
        if not is_valid_timestamp(timestamp):
            return timestamp
        return timestamp.tz_convert(self.timezone).tz_localize(None)


DEFAULT_CALENDAR = BusinessCalendar()


def business_hours(start, end, calendar=None) -> float:
    """Business hours elapsed between ``start`` and ``end``.

    Each working day contributes the overlap of ``[start, end]`` with its
    working hours. Inverted intervals count as zero, and an unparsable
    endpoint yields zero with a warning.
    """
    calendar = calendar or DEFAULT_CALENDAR

    start_ts = calendar.localize(start)
    end_ts = calendar.localize(end)

    if not is_valid_timestamp(start_ts) or not is_valid_timestamp(end_ts):
        logger.warning(
            "Cannot measure business hours between %r and %r; counting zero",
            start,
            end,
        )
        return 0.0

    if end_ts <= start_ts:
        if end_ts < start_ts:
            logger.debug("Inverted interval %s -> %s counted as zero", start, end)
        return 0.0

    day_start_offset = pd.Timedelta(hours=calendar.work_start_hour)
    day_end_offset = pd.Timedelta(hours=calendar.work_end_hour)

    seconds = 0.0
    for day in pd.date_range(start_ts.normalize(), end_ts.normalize(), freq="D"):
        if day.dayofweek not in calendar.work_days:
            continue
        period_start = max(start_ts, day + day_start_offset)
        period_end = min(end_ts, day + day_end_offset)
        if period_start < period_end:
            seconds += (period_end - period_start).total_seconds()

    return seconds / 3600


def business_hours_to_days(hours) -> float:
    """Business hours as business days of eight hours, to one decimal."""
    return round_half_up(hours / HOURS_PER_BUSINESS_DAY, 1)


def format_duration(hours) -> str:
    """Human-readable duration: ``45m``, ``3.5h``, ``2d`` or ``2d 4.5h``.

    Days here are 24-hour days.
    """
    if hours < 1:
        return f"{round_half_up(hours * 60, 0)}m"
    if hours < 24:
        return f"{round_half_up(hours, 1):g}h"
    days = math.floor(hours / 24)
    remaining = round_half_up(hours - days * 24, 1)
    if remaining == 0:
        return f"{days}d"
    return f"{days}d {remaining:g}h"
