"""Delivery metrics calculator for Delivery Metrics.

This module computes the six delivery performance metrics for a reporting
window or cycle: deployment frequency, lead time for changes, change failure
rate, time to recovery, time to deploy and code review duration. Each metric
carries a performance tier and a trend against the preceding period of the
same length.
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from ..business_calendar import (
    DEFAULT_CALENDAR,
    BusinessCalendar,
    business_hours_to_days,
    format_duration,
)
from ..calculator import Calculator
from ..common_constants import (
    DEFAULT_CONFIDENCE_LEVEL,
    DEFAULT_FAILURE_TAGS,
    DEFAULT_INCIDENT_TAGS,
    LOW,
    REVIEW_STATES,
)
from ..config.exceptions import MetricsInputError
from ..lifecycle import (
    default_review_strategies,
    deploy_time,
    deployed_transition_time,
    duration_hours,
    incident_detected,
    merge_time,
    resolve_review_window,
)
from ..models import Cycle, ReportingWindow, WorkItem, as_work_items
from ..ratings import is_lower_better, rate, rating_table, trend
from ..statistics_utils import StatisticalSummary, summarize_sample
from ..utils import round_half_up, to_plain, write_records
from .samples import completed_in_window, completed_items, lead_time_hours

logger = logging.getLogger(__name__)


@dataclass
class MetricResult:
    """One delivery metric with its tier and trend."""

    name: str
    value: float
    unit: str
    rating: str = LOW
    trend: int = 0
    sample_size: int = 0
    formatted_value: Optional[str] = None
    explanation: Optional[str] = None
    summary: Optional[StatisticalSummary] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self):
        return to_plain(asdict(self))


@dataclass
class DeliveryMetrics:
    """All delivery metrics for one reporting window or cycle."""

    deployment_frequency: MetricResult
    lead_time_for_changes: MetricResult
    change_failure_rate: MetricResult
    time_to_recovery: MetricResult
    time_to_deploy: MetricResult
    code_review_duration: MetricResult
    window: ReportingWindow
    cycle: Optional[Cycle] = None

    def metrics(self) -> List[MetricResult]:
        return [
            self.deployment_frequency,
            self.lead_time_for_changes,
            self.change_failure_rate,
            self.time_to_recovery,
            self.time_to_deploy,
            self.code_review_duration,
        ]

    def to_dict(self):
        return to_plain(
            {
                "window": {"start": self.window.start, "end": self.window.end},
                "cycle": asdict(self.cycle) if self.cycle else None,
                "deployment_frequency": asdict(self.deployment_frequency),
                "lead_time_for_changes": asdict(self.lead_time_for_changes),
                "change_failure_rate": asdict(self.change_failure_rate),
                "time_to_recovery": asdict(self.time_to_recovery),
                "time_to_deploy": asdict(self.time_to_deploy),
                "code_review_duration": asdict(self.code_review_duration),
            }
        )


@dataclass
class MetricOptions:
    """Settings that shape the metric calculations."""

    calendar: BusinessCalendar = DEFAULT_CALENDAR
    confidence_level: int = DEFAULT_CONFIDENCE_LEVEL
    failure_tags: List[str] = field(default_factory=lambda: list(DEFAULT_FAILURE_TAGS))
    incident_tags: List[str] = field(
        default_factory=lambda: list(DEFAULT_INCIDENT_TAGS)
    )
    review_states: List[str] = field(default_factory=lambda: list(REVIEW_STATES))
    lead_time_requires_estimate: bool = True
    ratings: Dict[str, Dict] = field(default_factory=rating_table)
    review_strategies: List = field(default_factory=default_review_strategies)

    @classmethod
    def from_settings(cls, settings=None, calendar=None) -> "MetricOptions":
        settings = settings or {}
        return cls(
            calendar=calendar or BusinessCalendar.from_settings(settings),
            confidence_level=settings.get("confidence_level", DEFAULT_CONFIDENCE_LEVEL),
            failure_tags=list(settings.get("failure_tags", DEFAULT_FAILURE_TAGS)),
            incident_tags=list(settings.get("incident_tags", DEFAULT_INCIDENT_TAGS)),
            review_states=list(settings.get("review_states", REVIEW_STATES)),
            lead_time_requires_estimate=settings.get(
                "lead_time_requires_estimate", True
            ),
            ratings=rating_table(settings.get("rating_thresholds")),
            review_strategies=default_review_strategies(settings),
        )


class DeliveryMetricsCalculator(Calculator):
    """Compute the delivery metrics for the configured window or cycle."""

    def run(self):
        items = self.store.items
        cycle = self.settings.get("reporting_cycle")
        if cycle is not None and not isinstance(cycle, Cycle):
            cycle = Cycle.from_dict(cycle)

        window = None
        if cycle is None:
            window = reporting_window_from_settings(self.settings, items)
            if window is None:
                logger.warning(
                    "No completed items and no reporting window configured; "
                    "skipping delivery metrics"
                )
                return None

        return compute_delivery_metrics(
            items, window=window, cycle=cycle, settings=self.settings
        )

    def write(self):
        data = self.get_result()
        output_files = self.settings.get("delivery_metrics_data")

        if not output_files:
            logger.debug("No output file specified for delivery metrics data")
            return
        if data is None:
            logger.warning("No delivery metrics to write")
            return

        for output_file in output_files:
            if output_file.lower().endswith(".json"):
                write_records(data.to_dict(), [output_file], "delivery metrics")
            else:
                write_records(
                    [metric_row(m) for m in data.metrics()],
                    [output_file],
                    "delivery metrics",
                )


def metric_row(metric: MetricResult) -> Dict[str, Any]:
    """Flat representation of a metric for tabular output."""
    return {
        "metric": metric.name,
        "value": metric.value,
        "unit": metric.unit,
        "formatted_value": metric.formatted_value,
        "rating": metric.rating,
        "trend": metric.trend,
        "sample_size": metric.sample_size,
        "explanation": metric.explanation,
    }


def reporting_window_from_settings(settings, items) -> Optional[ReportingWindow]:
    """Explicit window dates, else ``window_days`` ending at ``as_of``.

    ``as_of`` defaults to the latest completion among the items.
    """
    if settings.get("window_start") and settings.get("window_end"):
        return ReportingWindow.from_dates(
            settings["window_start"], settings["window_end"]
        )

    as_of = settings.get("as_of")
    if as_of is None:
        completions = [i.completed_at for i in completed_items(items)]
        if not completions:
            return None
        as_of = max(completions)

    return ReportingWindow.ending_at(as_of, settings.get("window_days", 30))


def compute_delivery_metrics(
    items,
    window: Optional[ReportingWindow] = None,
    cycle: Optional[Cycle] = None,
    prior_window_items=None,
    calendar: Optional[BusinessCalendar] = None,
    settings: Optional[Dict[str, Any]] = None,
) -> DeliveryMetrics:
    """Compute every delivery metric for a window or a cycle.

    When a cycle is given it defines the window and deployment frequency is
    reported per cycle instead of per day. The trend of each metric compares
    against the equal-length period before the window, using
    ``prior_window_items`` when supplied and otherwise the items completed in
    that period.

    Raises:
        MetricsInputError: if neither a window nor a cycle is given.
    """
    if cycle is not None:
        window = cycle.window()
    if window is None:
        raise MetricsInputError("A reporting window or a cycle is required")

    options = MetricOptions.from_settings(settings, calendar)
    items = as_work_items(items)

    deployed = completed_in_window(items, window)
    if prior_window_items is not None:
        prior_deployed = completed_items(as_work_items(prior_window_items))
    else:
        prior_deployed = completed_in_window(items, window.previous())

    logger.debug(
        "Computing delivery metrics over %s - %s: %d deployments, %d prior",
        window.start,
        window.end,
        len(deployed),
        len(prior_deployed),
    )

    return DeliveryMetrics(
        deployment_frequency=deployment_frequency(
            deployed, prior_deployed, window, cycle, options
        ),
        lead_time_for_changes=lead_time_for_changes(deployed, prior_deployed, options),
        change_failure_rate=change_failure_rate(deployed, prior_deployed, options),
        time_to_recovery=time_to_recovery(deployed, prior_deployed, options),
        time_to_deploy=time_to_deploy(deployed, prior_deployed, options),
        code_review_duration=code_review_duration(deployed, prior_deployed, options),
        window=window,
        cycle=cycle,
    )


def deployment_frequency(deployed, prior_deployed, window, cycle, options):
    """Deployments per cycle, or per day over a time window."""
    if cycle is not None:
        metric = "deployment_frequency_cycle"
        unit = f"deployments in cycle #{cycle.number}"
        value = len(deployed)
        prior_value = len(prior_deployed)
        display_value = value
    else:
        metric = "deployment_frequency_daily"
        unit = "deployments per day"
        days = window.days
        value = len(deployed) / days if days > 0 else 0.0
        prior_value = len(prior_deployed) / days if days > 0 else 0.0
        display_value = round_half_up(value, 1)

    if not deployed:
        return MetricResult(
            name="Deployment Frequency",
            value=0,
            unit=unit,
            rating=LOW,
            trend=trend(0, prior_value),
            explanation="No deployments found in the selected period",
        )

    return MetricResult(
        name="Deployment Frequency",
        value=display_value,
        unit=unit,
        rating=rate(metric, value, options.ratings),
        trend=trend(value, prior_value),
        sample_size=len(deployed),
        explanation=f"{len(deployed)} completed items deployed",
        details={"deployments": len(deployed), "window_days": window.days},
    )


def _duration_metric(name, metric, hours, prior_hours, options, empty_explanation):
    """Metric whose value is the mean of a business-hours sample.

    Values are reported in business days unless the rating table measures
    the metric in hours.
    """
    in_days = options.ratings[metric]["unit"] == "days"
    unit = "days" if in_days else "hours"
    lower_is_better = is_lower_better(metric, options.ratings)

    summary = summarize_sample(hours, options.confidence_level)
    prior_mean = sum(prior_hours) / len(prior_hours) if prior_hours else 0.0

    if not hours:
        return MetricResult(
            name=name,
            value=0,
            unit=unit,
            rating=LOW,
            trend=0,
            explanation=empty_explanation,
            summary=summary,
        )

    mean_hours = summary.mean
    value = (
        business_hours_to_days(mean_hours) if in_days else round_half_up(mean_hours, 1)
    )

    return MetricResult(
        name=name,
        value=value,
        unit=unit,
        rating=rate(metric, value if in_days else mean_hours, options.ratings),
        trend=trend(mean_hours, prior_mean, lower_is_better=lower_is_better),
        sample_size=len(hours),
        formatted_value=format_duration(mean_hours),
        summary=summary,
        details={"average_hours": round_half_up(mean_hours, 1)},
    )


def _hours(items, duration):
    sample = []
    for item in items:
        hours = duration(item)
        if hours is not None:
            sample.append(hours)
    return sample


def _lead_time_sample(items: List[WorkItem], options: MetricOptions):
    def duration(item):
        if options.lead_time_requires_estimate and not item.has_estimate:
            return None
        return lead_time_hours(item, options.calendar, options.review_states)

    return _hours(items, duration)


def lead_time_for_changes(deployed, prior_deployed, options):
    """Mean business time from review start to deployment."""
    return _duration_metric(
        "Lead Time for Changes",
        "lead_time",
        _lead_time_sample(deployed, options),
        _lead_time_sample(prior_deployed, options),
        options,
        "No deployed items with a review start time",
    )


def _failure_rate(deployed, options):
    if not deployed:
        return 0.0, 0
    failed = sum(1 for i in deployed if i.has_tag_containing(options.failure_tags))
    return failed / len(deployed) * 100, failed


def change_failure_rate(deployed, prior_deployed, options):
    """Share of deployments tagged as failures."""
    tags = "/".join(options.failure_tags)
    if not deployed:
        return MetricResult(
            name="Change Failure Rate",
            value=0,
            unit="%",
            rating=LOW,
            explanation="No deployments in the selected period",
        )

    value, failed = _failure_rate(deployed, options)
    prior_value, _ = _failure_rate(prior_deployed, options)

    return MetricResult(
        name="Change Failure Rate",
        value=round_half_up(value, 1),
        unit="%",
        rating=rate("change_failure_rate", value, options.ratings),
        trend=trend(value, prior_value, lower_is_better=True),
        sample_size=len(deployed),
        explanation=(
            f"{failed} out of {len(deployed)} deployments marked as failures "
            f"(tags: {tags})"
        ),
        details={"failed": failed, "total": len(deployed)},
    )


def _recovery_sample(items, options):
    return _hours(
        items,
        lambda item: duration_hours(
            incident_detected(item, options.incident_tags),
            deploy_time(item),
            options.calendar,
        ),
    )


def time_to_recovery(deployed, prior_deployed, options):
    """Mean business time from incident creation to resolution."""
    return _duration_metric(
        "Time to Recovery",
        "time_to_recovery",
        _recovery_sample(deployed, options),
        _recovery_sample(prior_deployed, options),
        options,
        "No resolved incidents in the selected period",
    )


def _deploy_sample(items, options):
    return _hours(
        items,
        lambda item: duration_hours(
            merge_time(item), deployed_transition_time(item), options.calendar
        ),
    )


def time_to_deploy(deployed, prior_deployed, options):
    """Mean business time from merge to deployment."""
    return _duration_metric(
        "Time to Deploy",
        "time_to_deploy",
        _deploy_sample(deployed, options),
        _deploy_sample(prior_deployed, options),
        options,
        "No items with both merge and deployment transitions",
    )


def _review_sample(items, options):
    sample = []
    estimated = 0
    for item in items:
        review_window, hours = resolve_review_window(
            item, options.review_strategies, options.calendar
        )
        if review_window is None:
            continue
        estimated += review_window.estimated
        sample.append(hours)
    return sample, estimated


def code_review_duration(deployed, prior_deployed, options):
    """Mean business time from review start to merge or completion."""
    hours, estimated = _review_sample(deployed, options)
    prior_hours, _ = _review_sample(prior_deployed, options)
    result = _duration_metric(
        "Code Review Duration",
        "code_review_duration",
        hours,
        prior_hours,
        options,
        "No reviewed items in the selected period",
    )
    result.details["estimated_windows"] = estimated
    return result
