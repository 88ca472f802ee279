"""Performance tier ratings and trends for Delivery Metrics."""

import copy
import logging

from .common_constants import (
    ELITE,
    HIGH,
    HIGHER_IS_BETTER,
    LOW,
    LOWER_IS_BETTER,
    MEDIUM,
    RATING_THRESHOLDS,
)
from .utils import round_half_up

logger = logging.getLogger(__name__)


def rating_table(overrides=None):
    """The rating table with any per-metric threshold overrides applied."""
    table = copy.deepcopy(RATING_THRESHOLDS)
    for metric, thresholds in (overrides or {}).items():
        if metric not in table:
            logger.warning("Ignoring rating thresholds for unknown metric %s", metric)
            continue
        table[metric]["thresholds"] = tuple(thresholds)
    return table


def is_lower_better(metric, table=None) -> bool:
    table = table or RATING_THRESHOLDS
    return table[metric]["direction"] == LOWER_IS_BETTER


def rate(metric, value, table=None) -> str:
    """Map a metric value to Elite, High, Medium or Low."""
    table = table or RATING_THRESHOLDS
    definition = table[metric]
    elite, high, medium = definition["thresholds"]

    if definition["direction"] == HIGHER_IS_BETTER:
        meets = lambda threshold: value > threshold  # noqa: E731
    else:
        meets = lambda threshold: value <= threshold  # noqa: E731

    if meets(elite):
        return ELITE
    if meets(high):
        return HIGH
    if meets(medium):
        return MEDIUM
    return LOW


def trend(current, previous, lower_is_better=False) -> int:
    """Whole-percentage change from the previous value; positive is better.

    Zero when there is no previous value to compare with.
    """
    if not previous:
        return 0
    change = round_half_up((current - previous) / previous * 100, 0)
    return -change if lower_is_better else change
