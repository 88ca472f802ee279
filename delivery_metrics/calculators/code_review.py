"""Code review calculator for Delivery Metrics.

This module measures how long completed items spent in code review, using
recorded review transitions where they exist and a proportional estimate of
the review window otherwise.
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

import pandas as pd

from ..business_calendar import BusinessCalendar, format_duration
from ..calculator import Calculator
from ..common_constants import (
    DEFAULT_TREND_DAYS,
    ESTIMATE_SCALE,
    LOW,
    REVIEW_TIME_BUCKETS,
)
from ..lifecycle import default_review_strategies, resolve_review_window
from ..models import ReportingWindow, as_work_items, to_timestamp
from ..ratings import rate, rating_table, trend
from ..utils import round_half_up, to_plain, write_records
from .delivery import MetricResult
from .samples import completed_items, estimate_key, latest_timestamp

logger = logging.getLogger(__name__)


@dataclass
class CodeReviewTask:
    identifier: str
    time_in_review: float
    review_started_at: pd.Timestamp
    review_ended_at: pd.Timestamp
    estimated: bool = False
    estimate: Optional[float] = None
    title: Optional[str] = None
    # Unrounded business hours; time_in_review is the reported value
    review_hours: float = 0.0


@dataclass
class EstimateReviewTime:
    estimate: int
    average_hours: float
    count: int


@dataclass
class HistogramBucket:
    label: str
    min_hours: float
    max_hours: Optional[float]
    count: int
    percentage: int


@dataclass
class CodeReviewAnalysis:
    average_review_time: MetricResult
    tasks: List[CodeReviewTask]
    distribution_by_estimate: List[EstimateReviewTime]
    histogram_buckets: List[HistogramBucket]
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self):
        return to_plain(asdict(self))


class CodeReviewCalculator(Calculator):
    """Time spent in code review by completed items."""

    def run(self):
        return compute_code_review_analysis(
            self.store.items,
            settings=self.settings,
            as_of=self.settings.get("as_of"),
        )

    def write(self):
        data = self.get_result()
        output_files = self.settings.get("code_review_data")

        if not output_files:
            logger.debug("No output file specified for code review data")
            return

        for output_file in output_files:
            if output_file.lower().endswith(".json"):
                write_records(data.to_dict(), [output_file], "code review analysis")
            else:
                write_records(
                    [asdict(t) for t in data.tasks], [output_file], "code review tasks"
                )


def compute_code_review_analysis(
    items,
    calendar: Optional[BusinessCalendar] = None,
    settings: Optional[Dict[str, Any]] = None,
    as_of=None,
) -> CodeReviewAnalysis:
    """Review time per completed item with distribution and histogram.

    The trend compares tasks whose review ended in the ``trend_days`` up to
    ``as_of`` with the same span before that. ``as_of`` defaults to the
    latest review end.
    """
    settings = settings or {}
    calendar = calendar or BusinessCalendar.from_settings(settings)
    strategies = default_review_strategies(settings)
    ratings = rating_table(settings.get("rating_thresholds"))

    tasks = []
    for item in completed_items(as_work_items(items)):
        review_window, hours = resolve_review_window(item, strategies, calendar)
        if review_window is None:
            continue
        tasks.append(
            CodeReviewTask(
                identifier=item.identifier,
                time_in_review=round_half_up(hours, 1),
                review_started_at=review_window.start,
                review_ended_at=review_window.end,
                estimated=review_window.estimated,
                estimate=item.size_estimate,
                title=item.title,
                review_hours=hours,
            )
        )

    tasks.sort(key=lambda t: t.review_hours, reverse=True)
    estimated = sum(1 for t in tasks if t.estimated)
    if estimated:
        logger.info(
            "Estimated review windows for %d of %d tasks", estimated, len(tasks)
        )

    return CodeReviewAnalysis(
        average_review_time=average_review_time(
            tasks, ratings, as_of, settings.get("trend_days", DEFAULT_TREND_DAYS)
        ),
        tasks=tasks,
        distribution_by_estimate=distribution_by_estimate(tasks),
        histogram_buckets=histogram_buckets(tasks),
        details={"estimated_windows": estimated},
    )


def _mean(values):
    return sum(values) / len(values) if values else 0.0


def _mean_review_time(tasks, window):
    return _mean(
        [t.review_hours for t in tasks if window.contains(t.review_ended_at)]
    )


def average_review_time(tasks, ratings, as_of=None, trend_days=DEFAULT_TREND_DAYS):
    if not tasks:
        return MetricResult(
            name="Average Review Time",
            value=0,
            unit="hours",
            rating=LOW,
            explanation="No completed items with a review window",
        )

    hours = [t.review_hours for t in tasks]
    mean_hours = _mean(hours)

    as_of = to_timestamp(as_of)
    if as_of is None:
        as_of = latest_timestamp(t.review_ended_at for t in tasks)

    current = previous = 0.0
    if as_of is not None:
        current_window = ReportingWindow.ending_at(as_of, trend_days)
        previous_window = current_window.previous()
        current = _mean_review_time(tasks, current_window)
        previous = _mean_review_time(tasks, previous_window)

    return MetricResult(
        name="Average Review Time",
        value=round_half_up(mean_hours, 1),
        unit="hours",
        rating=rate("code_review_duration", mean_hours, ratings),
        trend=trend(current, previous, lower_is_better=True),
        sample_size=len(tasks),
        formatted_value=format_duration(mean_hours),
    )


def distribution_by_estimate(tasks):
    """Average review time for each value of the estimate scale."""
    by_estimate = {}
    for task in tasks:
        if task.estimate is not None and task.estimate > 0:
            by_estimate.setdefault(estimate_key(task.estimate), []).append(
                task.review_hours
            )

    return [
        EstimateReviewTime(
            estimate=estimate,
            average_hours=round_half_up(_mean(by_estimate.get(estimate, [])), 1),
            count=len(by_estimate.get(estimate, [])),
        )
        for estimate in ESTIMATE_SCALE
    ]


def histogram_buckets(tasks):
    """Count of tasks per review-time bucket, with whole percentages."""
    total = len(tasks)
    buckets = []
    for lower, upper, label in REVIEW_TIME_BUCKETS:
        count = sum(1 for t in tasks if lower <= t.review_hours < upper)
        buckets.append(
            HistogramBucket(
                label=label,
                min_hours=lower,
                max_hours=None if upper == float("inf") else upper,
                count=count,
                percentage=round_half_up(count / total * 100, 0) if total else 0,
            )
        )
    return buckets
