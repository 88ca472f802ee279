"""Tests for sample construction helpers in Delivery Metrics."""

import pandas as pd

from ..models import ReportingWindow
from ..test_data_factory import make_item, reviewed_item
from .samples import (
    build_duration_sample,
    completed_in_window,
    estimate_key,
    latest_timestamp,
    lead_time_hours,
    merge_history,
    team_hours_per_point,
)


def test_completed_in_window():
    """Test completion must fall inside the window."""
    window = ReportingWindow.from_dates("2024-01-08", "2024-01-09")
    items = [
        make_item("A-1", completed="2024-01-08T00:00:00Z"),
        make_item("A-2", completed="2024-01-09T23:59:00Z"),
        make_item("A-3", completed="2024-01-10T00:00:00Z"),
        make_item("A-4", started="2024-01-08T10:00:00Z"),
        make_item(
            "A-5", completed="2024-01-08T10:00:00Z", state_category="started"
        ),
    ]

    assert [i.identifier for i in completed_in_window(items, window)] == [
        "A-1",
        "A-2",
    ]


def test_merge_history():
    """Test current items win over historical items with the same identifier."""
    current = [make_item("A-1", estimate=1), make_item("A-2")]
    history = [make_item("A-1", estimate=8), make_item("H-1"), make_item("H-1")]

    merged = merge_history(current, history)

    assert [i.identifier for i in merged] == ["A-1", "A-2", "H-1"]
    assert merged[0].size_estimate == 1
    assert merge_history(current, None) == current


def test_lead_time_hours(calendar):
    """Test lead time runs from review start to completion."""
    item = reviewed_item(
        "A-1",
        review_started="2024-01-08T10:00:00Z",
        completed="2024-01-09T12:00:00Z",
    )

    assert lead_time_hours(item, calendar) == 11.0
    assert lead_time_hours(make_item("A-2", started="2024-01-08T10:00:00Z")) is None


def test_lead_time_hours_falls_back_to_start(calendar):
    """Test items without review transitions start at their start time."""
    item = make_item(
        "A-1", started="2024-01-08T09:00:00Z", completed="2024-01-08T12:00:00Z"
    )

    assert lead_time_hours(item, calendar) == 3.0


def test_estimate_key():
    """Test integral estimates group together."""
    assert estimate_key(2.0) == 2
    assert isinstance(estimate_key(2.0), int)
    assert estimate_key(0.5) == 0.5


def test_build_duration_sample():
    """Test durations grouped by estimate, skipping what cannot be measured."""
    items = [
        make_item("A-1", estimate=1.0),
        make_item("A-2", estimate=2),
        make_item("A-3", estimate=1),
        make_item("A-4"),
        make_item("A-5", estimate=3),
    ]
    hours = {"A-1": 4.0, "A-2": 10.0, "A-3": 6.0, "A-4": 1.0, "A-5": None}

    sample = build_duration_sample(items, lambda i: hours[i.identifier])

    assert sample == {1: [4.0, 6.0], 2: [10.0]}


def test_team_hours_per_point():
    """Test the baseline comes from history, or defaults to eight."""
    history = [
        make_item("H-1", completed="2024-01-08T12:00:00Z", estimate=2),
        make_item("H-2", completed="2024-01-08T12:00:00Z", estimate=3),
        make_item("H-3", estimate=5),
    ]
    hours = {"H-1": 10.0, "H-2": 20.0, "H-3": 100.0}

    assert team_hours_per_point(history, lambda i: hours[i.identifier]) == (
        6.0,
        "historical",
    )
    assert team_hours_per_point([], lambda i: 1.0) == (8, "default")
    assert team_hours_per_point(history, lambda i: None) == (8, "default")


def test_latest_timestamp():
    """Test absent and unparsable timestamps are ignored."""
    latest = pd.Timestamp("2024-01-09", tz="UTC")

    earlier = latest - pd.Timedelta(days=1)

    assert latest_timestamp([None, pd.NaT, latest, earlier]) == latest
    assert latest_timestamp([None]) is None
