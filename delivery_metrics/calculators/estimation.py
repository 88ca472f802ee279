"""Estimation and bottleneck calculator for Delivery Metrics.

This module compares size estimates with observed delivery time. It reports
accuracy per estimate value against a team baseline of hours per point,
weekly planned-versus-delivered velocity, and the individual items that took
much longer than their estimate suggested.
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

import pandas as pd

from ..business_calendar import BusinessCalendar
from ..calculator import Calculator
from ..common_constants import (
    ACCURACY_BANDS,
    BOTTLENECK_SEVERITIES,
    DEFAULT_BOTTLENECK_THRESHOLD,
    DEFAULT_CONFIDENCE_LEVEL,
    ESTIMATE_SCALE,
    MAX_BOTTLENECKS,
    VELOCITY_WEEKS,
)
from ..models import as_work_items, is_valid_timestamp
from ..statistics_utils import (
    ConfidenceInterval,
    PredictiveRange,
    StatisticalSummary,
    accuracy_with_confidence,
    summarize_sample,
)
from ..utils import round_half_up, to_plain, write_records
from .samples import (
    build_duration_sample,
    estimated_completed_items,
    lead_time_hours,
    merge_history,
    team_hours_per_point,
)

logger = logging.getLogger(__name__)


@dataclass
class EstimateAccuracy:
    """Observed delivery time for one estimate value."""

    estimate: int
    count: int
    expected_hours: float
    average_hours: float
    accuracy: float
    confidence_interval: ConfidenceInterval
    predictive_range: PredictiveRange
    summary: StatisticalSummary
    band: Optional[str] = None


@dataclass
class VelocityWeek:
    """Planned and delivered points for the week starting ``week_start``."""

    week_start: pd.Timestamp
    planned_points: float
    delivered_points: float
    accuracy: int
    confidence_interval: ConfidenceInterval


@dataclass
class Bottleneck:
    """A completed item that took much longer than its estimate suggested."""

    identifier: str
    estimate: float
    actual_hours: float
    expected_hours: float
    ratio: float
    overrun_percent: int
    severity: str
    title: Optional[str] = None
    assignee: Optional[str] = None


@dataclass
class EstimationAnalysis:
    accuracy_by_estimate: List[EstimateAccuracy]
    velocity_trends: List[VelocityWeek]
    bottlenecks: List[Bottleneck]
    hours_per_point: float
    baseline_source: str
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self):
        return to_plain(asdict(self))


class EstimationAnalysisCalculator(Calculator):
    """Estimation accuracy, velocity and bottlenecks for the current items."""

    def run(self):
        return compute_estimation_analysis(
            self.store.items,
            historical_items=self.store.historical_items(),
            settings=self.settings,
        )

    def write(self):
        data = self.get_result()

        if self.settings.get("estimation_data"):
            write_records(
                [to_plain(asdict(e)) for e in data.accuracy_by_estimate],
                self.settings["estimation_data"],
                "estimation accuracy",
            )
        else:
            logger.debug("No output file specified for estimation data")

        if self.settings.get("velocity_data"):
            write_records(
                [to_plain(asdict(w)) for w in data.velocity_trends],
                self.settings["velocity_data"],
                "velocity trends",
            )
        else:
            logger.debug("No output file specified for velocity data")

        if self.settings.get("bottlenecks_data"):
            write_records(
                [asdict(b) for b in data.bottlenecks],
                self.settings["bottlenecks_data"],
                "bottlenecks",
            )
        else:
            logger.debug("No output file specified for bottlenecks data")


def classify_severity(ratio) -> str:
    """Severity of an overrun from its actual/expected ratio."""
    for minimum, severity in BOTTLENECK_SEVERITIES:
        if ratio >= minimum:
            return severity
    return "Low"


def classify_accuracy_band(actual, expected) -> str:
    """Excellent within 80-120% of expected, Good within 60-140%, else Poor."""
    if expected <= 0:
        return "Poor"
    percentage = actual / expected * 100
    for lower, upper, band in ACCURACY_BANDS:
        if lower <= percentage <= upper:
            return band
    return "Poor"


def compute_estimation_analysis(
    items,
    historical_items=None,
    calendar: Optional[BusinessCalendar] = None,
    settings: Optional[Dict[str, Any]] = None,
) -> EstimationAnalysis:
    """Compare estimates with observed lead times.

    The expected duration of an item is its estimate times the team's hours
    per point, taken from the historical sample when there is one and 8
    otherwise. Historical items join the per-estimate sample unless an item
    with the same identifier is among the current items.
    """
    settings = settings or {}
    calendar = calendar or BusinessCalendar.from_settings(settings)
    confidence_level = settings.get("confidence_level", DEFAULT_CONFIDENCE_LEVEL)
    threshold = settings.get("bottleneck_threshold", DEFAULT_BOTTLENECK_THRESHOLD)

    items = as_work_items(items)
    historical_items = as_work_items(historical_items or [])

    def duration(item):
        return lead_time_hours(item, calendar, settings.get("review_states"))

    hours_per_point, baseline_source = team_hours_per_point(historical_items, duration)
    logger.debug("Hours per point %.2f (%s)", hours_per_point, baseline_source)

    combined = estimated_completed_items(merge_history(items, historical_items))
    sample = build_duration_sample(combined, duration)

    return EstimationAnalysis(
        accuracy_by_estimate=accuracy_by_estimate(
            sample, hours_per_point, confidence_level
        ),
        velocity_trends=velocity_trends(items, calendar, confidence_level),
        bottlenecks=find_bottlenecks(items, duration, hours_per_point, threshold),
        hours_per_point=round_half_up(hours_per_point, 2),
        baseline_source=baseline_source,
        details={
            "current_items": len(items),
            "historical_items": len(historical_items),
            "sampled_items": sum(len(v) for v in sample.values()),
        },
    )


def accuracy_by_estimate(sample, hours_per_point, confidence_level):
    """Accuracy statistics for every value of the estimate scale."""
    rows = []
    for estimate in ESTIMATE_SCALE:
        durations = sample.get(estimate, [])
        expected = estimate * hours_per_point
        summary = summarize_sample(durations, confidence_level)
        accuracy = accuracy_with_confidence(
            durations, [expected] * len(durations), confidence_level
        )
        rows.append(
            EstimateAccuracy(
                estimate=estimate,
                count=len(durations),
                expected_hours=round_half_up(expected, 1),
                average_hours=round_half_up(summary.mean, 1),
                accuracy=accuracy.accuracy,
                confidence_interval=accuracy.confidence_interval,
                predictive_range=summary.predictive_range,
                summary=summary,
                band=(
                    classify_accuracy_band(summary.mean, expected)
                    if durations
                    else None
                ),
            )
        )
    return rows


def find_bottlenecks(
    items, duration, hours_per_point, threshold=DEFAULT_BOTTLENECK_THRESHOLD
):
    """Completed items whose actual time is at least ``threshold`` times expected.

    Sorted by overrun, largest first, and capped at ten.
    """
    bottlenecks = []
    for item in estimated_completed_items(items):
        actual = duration(item)
        if actual is None:
            continue
        expected = item.size_estimate * hours_per_point
        ratio = actual / expected
        if ratio < threshold:
            continue
        bottlenecks.append(
            Bottleneck(
                identifier=item.identifier,
                estimate=item.size_estimate,
                actual_hours=round_half_up(actual, 1),
                expected_hours=round_half_up(expected, 1),
                ratio=round_half_up(ratio, 2),
                overrun_percent=round_half_up(
                    (actual - expected) / expected * 100, 0
                ),
                severity=classify_severity(ratio),
                title=item.title,
                assignee=item.assignee,
            )
        )

    bottlenecks.sort(key=lambda b: b.overrun_percent, reverse=True)
    return bottlenecks[:MAX_BOTTLENECKS]


def _week_start(timestamp, calendar):
    local = calendar.localize(timestamp)
    return (local - pd.Timedelta(days=local.dayofweek)).normalize()


def velocity_trends(items, calendar, confidence_level, weeks=VELOCITY_WEEKS):
    """Planned versus delivered points per week for the latest weeks.

    Points are planned in the week an item started (or was created) and
    delivered in the week it was completed. A week with nothing planned
    scores zero accuracy.
    """
    rows = []
    for item in items:
        if not item.has_estimate:
            continue
        planned_at = (
            item.started_at if is_valid_timestamp(item.started_at) else item.created_at
        )
        if is_valid_timestamp(planned_at):
            rows.append(
                {
                    "week_start": _week_start(planned_at, calendar),
                    "planned": item.size_estimate,
                    "delivered": 0.0,
                }
            )
        if item.is_completed:
            rows.append(
                {
                    "week_start": _week_start(item.completed_at, calendar),
                    "planned": 0.0,
                    "delivered": item.size_estimate,
                }
            )

    if not rows:
        return []

    weekly = (
        pd.DataFrame(rows)
        .groupby("week_start")[["planned", "delivered"]]
        .sum()
        .sort_index()
        .tail(weeks)
    )

    def week_accuracy(planned, delivered):
        return min(delivered, planned) / planned * 100 if planned > 0 else 0.0

    accuracies = [week_accuracy(r.planned, r.delivered) for r in weekly.itertuples()]
    interval = summarize_sample(accuracies, confidence_level).confidence_interval
    interval = ConfidenceInterval(
        round_half_up(interval.lower, 1),
        round_half_up(interval.upper, 1),
        confidence_level,
    )

    return [
        VelocityWeek(
            week_start=week_start,
            planned_points=float(row.planned),
            delivered_points=float(row.delivered),
            accuracy=round_half_up(accuracy, 0),
            confidence_interval=interval,
        )
        for (week_start, row), accuracy in zip(weekly.iterrows(), accuracies)
    ]
