"""Tests for the delivery metrics calculator in Delivery Metrics."""

import pytest
from mock import Mock

from ..config.exceptions import MetricsInputError
from ..models import Cycle, ReportingWindow
from ..test_data_factory import make_item, reviewed_item, transition
from ..utils import extend_dict
from .delivery import (
    DeliveryMetricsCalculator,
    compute_delivery_metrics,
    reporting_window_from_settings,
)


@pytest.fixture(name="window")
def fixture_window():
    """The month of January 2024."""
    return ReportingWindow.from_dates("2024-01-01", "2024-01-30")


@pytest.fixture(name="cycle")
def fixture_cycle():
    """A ten-day cycle."""
    return Cycle(7, "2024-01-01T00:00:00Z", "2024-01-10T23:59:59Z")


def _completed(identifier, completed, **kwargs):
    return make_item(identifier, completed=completed, **kwargs)


def test_cycle_deployment_frequency(cycle):
    """Deployments are counted per cycle when a cycle is given."""
    items = [
        _completed("A-1", "2024-01-02T10:00:00Z"),
        _completed("A-2", "2024-01-05T10:00:00Z"),
        _completed("A-3", "2024-01-09T10:00:00Z"),
        _completed("A-4", "2024-01-12T10:00:00Z"),
        make_item("A-5", started="2024-01-03T10:00:00Z"),
    ]

    metric = compute_delivery_metrics(items, cycle=cycle).deployment_frequency

    assert metric.value == 3
    assert metric.unit == "deployments in cycle #7"
    assert metric.sample_size == 3
    assert metric.rating == "Medium"
    assert metric.rating not in ("Elite", "High")


def test_single_deployment_in_cycle_is_low(cycle):
    """Test one deployment in a cycle rates Low."""
    items = [_completed("A-1", "2024-01-02T10:00:00Z")]

    metric = compute_delivery_metrics(items, cycle=cycle).deployment_frequency

    assert metric.value == 1
    assert metric.rating == "Low"


def test_daily_deployment_frequency(window):
    """Time-bound deployment frequency is deployments per day."""
    items = [
        _completed(f"A-{n}", f"2024-01-{n + 1:02d}T10:00:00Z") for n in range(1, 16)
    ]

    metric = compute_delivery_metrics(items, window=window).deployment_frequency

    assert metric.value == 0.5
    assert metric.unit == "deployments per day"
    assert metric.rating == "High"


def test_lead_time_for_changes(window):
    """Lead time runs from review start to completion in business time."""
    items = [
        reviewed_item(
            "A-1",
            review_started="2024-01-08T10:00:00Z",
            completed="2024-01-09T12:00:00Z",
            estimate=2,
        )
    ]

    metric = compute_delivery_metrics(items, window=window).lead_time_for_changes

    assert metric.value == 1.4
    assert metric.unit == "days"
    assert metric.formatted_value == "11h"
    assert metric.rating == "High"
    assert metric.sample_size == 1
    assert metric.summary.mean == 11.0


def test_lead_time_requires_estimate(window):
    """Items without an estimate are left out unless configured otherwise."""
    items = [
        reviewed_item(
            "A-1",
            review_started="2024-01-08T10:00:00Z",
            completed="2024-01-09T12:00:00Z",
        )
    ]

    metric = compute_delivery_metrics(items, window=window).lead_time_for_changes
    assert metric.sample_size == 0

    metric = compute_delivery_metrics(
        items, window=window, settings={"lead_time_requires_estimate": False}
    ).lead_time_for_changes
    assert metric.sample_size == 1


def test_change_failure_rate(window):
    """Two incidents out of ten deployments is a 20% failure rate."""
    items = [
        _completed(
            f"A-{n}",
            f"2024-01-{n + 1:02d}T10:00:00Z",
            tags=["incident"] if n <= 2 else ["feature"],
        )
        for n in range(1, 11)
    ]

    metric = compute_delivery_metrics(items, window=window).change_failure_rate

    assert metric.value == 20.0
    assert metric.rating == "High"
    assert metric.explanation.startswith("2 out of 10 deployments")
    assert "incident/rollback" in metric.explanation


def test_change_failure_rate_custom_tags(window):
    """Failure tags are configurable and matched as substrings."""
    items = [
        _completed("A-1", "2024-01-02T10:00:00Z", tags=["Hotfix-Prod"]),
        _completed("A-2", "2024-01-03T10:00:00Z", tags=["incident"]),
    ]

    metric = compute_delivery_metrics(
        items, window=window, settings={"failure_tags": ["hotfix"]}
    ).change_failure_rate

    assert metric.value == 50.0


def test_time_to_recovery(window):
    """Recovery runs from incident creation to resolution."""
    items = [
        _completed(
            "INC-1",
            "2024-01-08T17:00:00Z",
            created="2024-01-08T09:00:00Z",
            tags=["incident"],
        ),
        _completed("A-1", "2024-01-08T17:00:00Z", created="2024-01-01T09:00:00Z"),
    ]

    metric = compute_delivery_metrics(items, window=window).time_to_recovery

    assert metric.value == 1.0
    assert metric.sample_size == 1
    assert metric.rating == "High"


def test_time_to_deploy(window):
    """Time to deploy needs both the Merged and Deployed transitions."""
    items = [
        reviewed_item(
            "A-1",
            review_started="2024-01-08T09:00:00Z",
            merged="2024-01-08T10:00:00Z",
            deployed="2024-01-08T13:00:00Z",
            completed="2024-01-08T14:00:00Z",
        ),
        reviewed_item(
            "A-2",
            review_started="2024-01-08T09:00:00Z",
            merged="2024-01-08T10:00:00Z",
            completed="2024-01-08T14:00:00Z",
        ),
    ]

    metric = compute_delivery_metrics(items, window=window).time_to_deploy

    assert metric.sample_size == 1
    assert metric.summary.mean == 3.0
    assert metric.value == 0.4
    assert metric.rating == "High"


def test_code_review_duration(window):
    """Review duration runs from review start to merge."""
    items = [
        reviewed_item(
            "A-1",
            review_started="2024-01-08T10:00:00Z",
            merged="2024-01-08T14:00:00Z",
            completed="2024-01-08T16:00:00Z",
        )
    ]

    metric = compute_delivery_metrics(items, window=window).code_review_duration

    assert metric.value == 4.0
    assert metric.unit == "hours"
    assert metric.rating == "Elite"
    assert metric.details["estimated_windows"] == 0


@pytest.mark.parametrize(
    "merged, rating",
    [("2024-01-08T12:58:00Z", "Elite"), ("2024-01-08T13:02:00Z", "High")],
)
def test_code_review_duration_rated_unrounded(window, merged, rating):
    """Review hours near a threshold are rated before rounding for display."""
    items = [
        reviewed_item(
            "R-1",
            review_started="2024-01-08T09:00:00Z",
            merged=merged,
            completed="2024-01-08T15:00:00Z",
        )
    ]

    metric = compute_delivery_metrics(items, window=window).code_review_duration

    assert metric.value == 4.0
    assert metric.rating == rating


def test_empty_sample(window):
    """With nothing delivered every metric is zero and rated Low."""
    metrics = compute_delivery_metrics([], window=window)

    for metric in metrics.metrics():
        assert metric.value == 0
        assert metric.rating == "Low"
        assert metric.sample_size == 0
        assert metric.explanation


def test_unparsable_timestamps_count_zero(window):
    """A bad milestone timestamp gives a zero duration rather than an error."""
    item = make_item(
        "A-1",
        completed="2024-01-08T16:00:00Z",
        estimate=1,
        history=[transition("garbage", "In Review")],
    )

    metric = compute_delivery_metrics([item], window=window).lead_time_for_changes

    assert metric.sample_size == 1
    assert metric.value == 0.0


def test_trend_against_previous_window(window):
    """Trends compare with the equal-length window before the current one."""
    items = [
        _completed("A-1", "2024-01-10T10:00:00Z"),
        _completed("A-2", "2024-01-11T10:00:00Z"),
        _completed("P-1", "2023-12-20T10:00:00Z"),
    ]

    metric = compute_delivery_metrics(items, window=window).deployment_frequency

    assert metric.trend == 100


def test_trend_with_prior_window_items(window):
    """Explicit prior items are used as the comparison sample."""
    items = [
        _completed("A-1", "2024-01-10T10:00:00Z", tags=["incident"]),
        _completed("A-2", "2024-01-11T10:00:00Z"),
    ]
    prior = [
        _completed("P-1", "2023-06-01T10:00:00Z", tags=["incident"]),
        _completed("P-2", "2023-06-02T10:00:00Z"),
        _completed("P-3", "2023-06-03T10:00:00Z"),
        _completed("P-4", "2023-06-04T10:00:00Z"),
    ]

    metric = compute_delivery_metrics(
        items, window=window, prior_window_items=prior
    ).change_failure_rate

    # 50% now against 25% before; lower is better
    assert metric.trend == -100


def test_window_or_cycle_required():
    """Test that a window or a cycle must be given."""
    with pytest.raises(MetricsInputError):
        compute_delivery_metrics([])


def test_deterministic_and_pure(delivered_items, window):
    """Repeated runs give equal results and leave the input untouched."""
    before = list(delivered_items)

    first = compute_delivery_metrics(delivered_items, window=window)
    second = compute_delivery_metrics(delivered_items, window=window)

    assert first == second
    assert delivered_items == before


def test_fixture_metrics(delivered_items, window):
    """Test all metrics over the shared fixture."""
    metrics = compute_delivery_metrics(delivered_items, window=window)

    assert metrics.lead_time_for_changes.summary.mean == pytest.approx(11.75)
    assert metrics.lead_time_for_changes.value == 1.5
    assert metrics.change_failure_rate.value == 25.0
    assert metrics.time_to_recovery.value == 0.5
    assert metrics.code_review_duration.value == 10.5
    assert metrics.to_dict()["window"]["start"] == "2024-01-01T00:00:00+00:00"


def test_reporting_window_from_settings(delivered_items, base_settings):
    """The window defaults to the configured days before the latest completion."""
    window = reporting_window_from_settings(base_settings, delivered_items)

    assert window.end.isoformat() == "2024-01-11T13:00:00+00:00"
    assert window.days == 30

    explicit = reporting_window_from_settings(
        extend_dict(
            base_settings, {"window_start": "2024-01-01", "window_end": "2024-01-05"}
        ),
        delivered_items,
    )
    assert explicit.days == 5

    assert reporting_window_from_settings(base_settings, []) is None


def test_calculator(store, base_settings):
    """Test the calculator over the item store."""
    calculator = DeliveryMetricsCalculator(store, base_settings, {})

    metrics = calculator.run()

    assert metrics.deployment_frequency.sample_size == 4
    assert metrics.cycle is None


def test_calculator_with_cycle(store, base_settings):
    """A configured cycle takes precedence over the window settings."""
    settings = extend_dict(
        base_settings,
        {
            "reporting_cycle": {
                "number": 2,
                "starts_at": "2024-01-08T00:00:00Z",
                "ends_at": "2024-01-09T23:59:59Z",
            }
        },
    )

    metrics = DeliveryMetricsCalculator(store, settings, {}).run()

    assert metrics.deployment_frequency.value == 2
    assert metrics.deployment_frequency.unit == "deployments in cycle #2"


def test_calculator_without_deliveries(base_settings, tmp_path, monkeypatch):
    """Nothing is computed or written without a window or any completions."""
    monkeypatch.chdir(tmp_path)
    settings = extend_dict(base_settings, {"delivery_metrics_data": ["out.json"]})
    calculator = DeliveryMetricsCalculator(Mock(items=[]), settings, {})

    assert calculator.run() is None

    calculator.write()
    assert not (tmp_path / "out.json").exists()


def test_calculator_writes_csv(store, base_settings, tmp_path, monkeypatch):
    """Test one CSV row per metric."""
    monkeypatch.chdir(tmp_path)
    settings = extend_dict(base_settings, {"delivery_metrics_data": ["out.csv"]})
    results = {}
    calculator = DeliveryMetricsCalculator(store, settings, results)
    results[DeliveryMetricsCalculator] = calculator.run()

    calculator.write()

    lines = (tmp_path / "out.csv").read_text(encoding="utf-8").splitlines()
    assert lines[0].startswith("metric,value,unit")
    assert len(lines) == 7
