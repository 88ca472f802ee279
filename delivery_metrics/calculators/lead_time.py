"""Lead time analysis calculator for Delivery Metrics.

This module breaks lead time (review start to deployment) down by size
estimate, by duration bucket and by day, and fits a linear trend to the
daily averages.
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

import pandas as pd
from scipy import stats

from ..business_calendar import BusinessCalendar
from ..calculator import Calculator
from ..common_constants import (
    DEFAULT_CONFIDENCE_LEVEL,
    DEFAULT_TREND_DAYS,
    LEAD_TIME_BUCKETS,
)
from ..models import as_work_items, is_valid_timestamp, to_timestamp
from ..utils import round_half_up, to_plain, write_records
from .estimation import EstimateAccuracy, accuracy_by_estimate
from .samples import (
    build_duration_sample,
    estimated_completed_items,
    latest_timestamp,
    lead_time_hours,
    merge_history,
    team_hours_per_point,
)

logger = logging.getLogger(__name__)


@dataclass
class LeadTimeBucket:
    label: str
    count: int
    percentage: int


@dataclass
class DailyLeadTime:
    date: pd.Timestamp
    average_hours: float
    count: int
    fitted_hours: Optional[float] = None


@dataclass
class LeadTimeAnalysis:
    by_estimate: List[EstimateAccuracy]
    distribution: List[LeadTimeBucket]
    daily_trend: List[DailyLeadTime]
    hours_per_point: float
    slope_hours_per_day: Optional[float] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self):
        return to_plain(asdict(self))


class LeadTimeAnalysisCalculator(Calculator):
    """Lead time by estimate, by bucket and by day."""

    def run(self):
        return compute_lead_time_analysis(
            self.store.items,
            historical_items=self.store.historical_items(),
            settings=self.settings,
            as_of=self.settings.get("as_of"),
        )

    def write(self):
        data = self.get_result()
        output_files = self.settings.get("lead_time_data")

        if not output_files:
            logger.debug("No output file specified for lead time data")
            return

        for output_file in output_files:
            if output_file.lower().endswith(".json"):
                write_records(data.to_dict(), [output_file], "lead time analysis")
            else:
                write_records(
                    [asdict(d) for d in data.daily_trend],
                    [output_file],
                    "lead time trend",
                )


def compute_lead_time_analysis(
    items,
    historical_items=None,
    calendar: Optional[BusinessCalendar] = None,
    settings: Optional[Dict[str, Any]] = None,
    as_of=None,
) -> LeadTimeAnalysis:
    """Lead time statistics for completed, estimated items.

    The daily trend covers the ``trend_days`` days ending at ``as_of``, which
    defaults to the latest completion among the current items.
    """
    settings = settings or {}
    calendar = calendar or BusinessCalendar.from_settings(settings)
    confidence_level = settings.get("confidence_level", DEFAULT_CONFIDENCE_LEVEL)
    trend_days = settings.get("trend_days", DEFAULT_TREND_DAYS)

    items = as_work_items(items)
    historical_items = as_work_items(historical_items or [])

    def duration(item):
        return lead_time_hours(item, calendar, settings.get("review_states"))

    hours_per_point, _ = team_hours_per_point(historical_items, duration)
    combined = estimated_completed_items(merge_history(items, historical_items))
    sample = build_duration_sample(combined, duration)
    all_hours = [h for hours in sample.values() for h in hours]

    current = []
    for item in estimated_completed_items(items):
        hours = duration(item)
        if hours is not None:
            current.append((calendar.localize(item.completed_at), hours))

    as_of = to_timestamp(as_of)
    if as_of is None:
        as_of = latest_timestamp(i.completed_at for i in items if i.is_completed)

    daily = []
    if is_valid_timestamp(as_of):
        daily = daily_trend(current, calendar.localize(as_of), trend_days)
    slope = fit_trend(daily)

    return LeadTimeAnalysis(
        by_estimate=accuracy_by_estimate(sample, hours_per_point, confidence_level),
        distribution=lead_time_distribution(all_hours),
        daily_trend=daily,
        hours_per_point=round_half_up(hours_per_point, 2),
        slope_hours_per_day=None if slope is None else round_half_up(slope, 2),
        details={"sampled_items": len(all_hours)},
    )


def lead_time_distribution(hours):
    """Count of lead times per bucket, with whole percentages."""
    total = len(hours)
    buckets = []
    for lower, upper, label in LEAD_TIME_BUCKETS:
        count = sum(1 for h in hours if lower <= h < upper)
        buckets.append(
            LeadTimeBucket(
                label=label,
                count=count,
                percentage=round_half_up(count / total * 100, 0) if total else 0,
            )
        )
    return buckets


def daily_trend(completions, as_of, days=DEFAULT_TREND_DAYS):
    """Average lead time per calendar day over the ``days`` ending at ``as_of``.

    ``completions`` is a list of ``(local completion time, hours)`` pairs.
    Days without completions are included with a count of zero.
    """
    end = as_of.normalize()
    index = pd.date_range(end - pd.Timedelta(days=days - 1), end, freq="D")

    if completions:
        frame = pd.DataFrame(completions, columns=["completed", "hours"])
        frame["date"] = frame["completed"].dt.normalize()
        grouped = frame.groupby("date")["hours"].agg(["mean", "count"])
    else:
        grouped = pd.DataFrame(columns=["mean", "count"])

    grouped = grouped.reindex(index)

    trend = []
    for date, row in grouped.iterrows():
        if pd.isna(row["count"]):
            trend.append(DailyLeadTime(date=date, average_hours=0.0, count=0))
        else:
            trend.append(
                DailyLeadTime(
                    date=date,
                    average_hours=round_half_up(row["mean"], 1),
                    count=int(row["count"]),
                )
            )
    return trend


def fit_trend(daily):
    """Fit a least-squares line through the days that have completions.

    Sets ``fitted_hours`` on every day and returns the slope in hours per
    day, or ``None`` when fewer than two days have data.
    """
    points = [(n, d.average_hours) for n, d in enumerate(daily) if d.count > 0]
    if len(points) < 2:
        return None

    x, y = zip(*points)

    # Fit a linear regression using scipy.stats.linregress
    slope, intercept, _, _, _ = stats.linregress(x, y)
    for n, day in enumerate(daily):
        day.fitted_hours = round_half_up(max(0.0, slope * n + intercept), 1)
    return slope
