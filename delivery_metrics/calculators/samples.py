"""Sample construction helpers shared by the calculators.

Selects the items a calculation applies to and groups their milestone
durations by size estimate.
"""

import logging
from typing import Callable, Dict, Iterable, List, Optional

from ..common_constants import DEFAULT_HOURS_PER_POINT, REVIEW_STATES
from ..lifecycle import deploy_time, duration_hours, review_start
from ..models import WorkItem, is_valid_timestamp

logger = logging.getLogger(__name__)


def completed_items(items: Iterable[WorkItem]) -> List[WorkItem]:
    return [i for i in items if i.is_completed]


def completed_in_window(items: Iterable[WorkItem], window) -> List[WorkItem]:
    """Completed items whose completion falls inside the window."""
    return [i for i in items if i.is_completed and window.contains(i.completed_at)]


def estimated_completed_items(items: Iterable[WorkItem]) -> List[WorkItem]:
    return [i for i in items if i.is_completed and i.has_estimate]


def merge_history(
    items: Iterable[WorkItem], historical_items: Optional[Iterable[WorkItem]]
) -> List[WorkItem]:
    """Current items followed by historical items not already present."""
    merged = list(items)
    seen = {i.identifier for i in merged}
    for item in historical_items or []:
        if item.identifier not in seen:
            seen.add(item.identifier)
            merged.append(item)
    return merged


def lead_time_hours(item: WorkItem, calendar=None, review_states=None):
    """Business hours from review start to deployment, ``None`` if unknown."""
    start = review_start(item, review_states or REVIEW_STATES)
    return duration_hours(start, deploy_time(item), calendar)


def estimate_key(estimate):
    """Integral estimates as ``int`` so that 2.0 and 2 group together."""
    return int(estimate) if float(estimate).is_integer() else estimate


def build_duration_sample(
    items: Iterable[WorkItem], duration: Callable[[WorkItem], Optional[float]]
) -> Dict[float, List[float]]:
    """Durations of estimated items grouped by size estimate.

    Items whose duration is not computable are left out.
    """
    sample: Dict[float, List[float]] = {}
    for item in items:
        if not item.has_estimate:
            continue
        hours = duration(item)
        if hours is None:
            continue
        sample.setdefault(estimate_key(item.size_estimate), []).append(hours)
    return sample


def team_hours_per_point(
    historical_items: Optional[Iterable[WorkItem]],
    duration: Callable[[WorkItem], Optional[float]],
):
    """Observed hours per story point over the historical sample.

    Returns ``(hours_per_point, source)`` where source is ``"historical"`` or
    ``"default"`` when there is no usable history.
    """
    total_hours = 0.0
    total_points = 0.0
    for item in historical_items or []:
        if not item.is_completed or not item.has_estimate:
            continue
        hours = duration(item)
        if hours is None:
            continue
        total_hours += hours
        total_points += item.size_estimate

    if total_points > 0 and total_hours > 0:
        return total_hours / total_points, "historical"

    if historical_items:
        logger.info(
            "No usable historical durations; using %s hours per point",
            DEFAULT_HOURS_PER_POINT,
        )
    return DEFAULT_HOURS_PER_POINT, "default"


def latest_timestamp(timestamps):
    """The latest valid timestamp, or ``None``."""
    valid = [t for t in timestamps if is_valid_timestamp(t)]
    return max(valid) if valid else None
