"""Tests for statistical summaries in Delivery Metrics."""

import math

import pytest

from .config.exceptions import MetricsInputError
from .statistics_utils import (
    accuracy_with_confidence,
    pair_accuracy,
    summarize_sample,
    t_critical_value,
)


def test_empty_sample():
    """An empty sample summarizes to zeros."""
    summary = summarize_sample([])

    assert summary.sample_size == 0
    assert summary.mean == 0.0
    assert summary.std_dev == 0.0
    assert summary.confidence_interval.lower == 0.0
    assert summary.confidence_interval.upper == 0.0
    assert summary.predictive_range.max_value == 0.0


def test_single_value():
    """A single observation has no spread; both ranges collapse onto it."""
    summary = summarize_sample([5.0])

    assert summary.sample_size == 1
    assert summary.mean == 5.0
    assert summary.median == 5.0
    assert summary.std_dev == 0.0
    assert summary.std_err == 0.0
    assert (summary.confidence_interval.lower, summary.confidence_interval.upper) == (
        5.0,
        5.0,
    )
    assert summary.predictive_range.min_value == 5.0
    assert summary.predictive_range.max_value == 5.0


def test_small_sample_floors_at_zero():
    """Test a three-value sample whose lower bounds would go negative."""
    summary = summarize_sample([2, 4, 6])

    assert summary.mean == 4.0
    assert summary.median == 4.0
    assert summary.std_dev == pytest.approx(2.0)
    assert summary.std_err == pytest.approx(2 / math.sqrt(3))
    assert summary.confidence_interval.lower == 0.0
    assert summary.confidence_interval.upper == pytest.approx(
        4 + 4.303 * 2 / math.sqrt(3)
    )
    assert summary.predictive_range.min_value == 0.0
    assert summary.predictive_range.max_value == pytest.approx(
        4 + 4.303 * 2 * math.sqrt(1 + 1 / 3)
    )


def test_confidence_interval_five_values():
    """Test the 95% interval with four degrees of freedom."""
    summary = summarize_sample([10, 12, 14, 16, 18])

    margin = 2.776 * math.sqrt(10) / math.sqrt(5)
    assert summary.confidence_interval.lower == pytest.approx(14 - margin)
    assert summary.confidence_interval.upper == pytest.approx(14 + margin)
    assert summary.confidence_interval.confidence_level == 95


def test_other_confidence_levels_are_narrower_or_wider():
    """A 99% interval is wider than a 90% one for the same sample."""
    values = [10, 12, 14, 16, 18]
    narrow = summarize_sample(values, 90).confidence_interval
    wide = summarize_sample(values, 99).confidence_interval

    assert wide.lower < narrow.lower
    assert wide.upper > narrow.upper


@pytest.mark.parametrize(
    "values",
    [
        [1.0, 2.0],
        [3, 3, 3, 3],
        [8, 11, 24, 4],
        [0.5, 40, 2, 19, 7, 7, 120],
    ],
)
def test_predictive_range_contains_confidence_interval(values):
    """The predictive range is at least as wide as the confidence interval."""
    summary = summarize_sample(values)

    assert summary.predictive_range.min_value <= summary.confidence_interval.lower
    assert summary.predictive_range.max_value >= summary.confidence_interval.upper
    assert summary.confidence_interval.lower >= 0
    assert summary.predictive_range.min_value >= 0


def test_t_critical_value_lookup():
    """Untabulated degrees of freedom use the next row up."""
    assert t_critical_value(95, 1) == 12.706
    assert t_critical_value(95, 10) == 2.228
    assert t_critical_value(95, 11) == 2.131
    assert t_critical_value(95, 1000) == 1.962
    assert t_critical_value(95, 5000) == 1.962
    assert t_critical_value(90, 3) == 2.353
    assert t_critical_value(99, 61) == 2.626


def test_unsupported_confidence_level():
    """Test that only tabulated confidence levels are accepted."""
    with pytest.raises(MetricsInputError):
        t_critical_value(80, 5)
    with pytest.raises(MetricsInputError):
        summarize_sample([1, 2, 3], confidence_level=80)


def test_non_numeric_values_rejected():
    """Test that non-numeric sample values break the input contract."""
    with pytest.raises(MetricsInputError):
        summarize_sample([1, "two", 3])
    with pytest.raises(MetricsInputError):
        summarize_sample([1, float("nan")])


def test_pair_accuracy():
    """Test per-estimate accuracy bounds."""
    assert pair_accuracy(8, 8) == 100.0
    assert pair_accuracy(12, 8) == 50.0
    assert pair_accuracy(4, 8) == 50.0
    assert pair_accuracy(16, 8) == 0.0
    assert pair_accuracy(40, 8) == 0.0
    assert pair_accuracy(5, 0) == 0.0


def test_accuracy_perfect_estimates():
    """Perfect estimates are 100% accurate with a collapsed interval."""
    result = accuracy_with_confidence([8, 8, 8], [8, 8, 8])

    assert result.accuracy == 100.0
    assert result.confidence_interval.lower == 100.0
    assert result.confidence_interval.upper == 100.0
    assert result.sample_size == 3


def test_accuracy_mixed_estimates():
    """Test accuracy averaged over items and rounded to one decimal."""
    result = accuracy_with_confidence([12, 4, 8], [8, 8, 8])

    assert result.accuracy == pytest.approx(66.7)
    assert 0 <= result.confidence_interval.lower <= result.accuracy
    assert result.confidence_interval.upper >= result.accuracy


def test_accuracy_empty():
    """Empty samples have zero accuracy."""
    result = accuracy_with_confidence([], [])

    assert result.accuracy == 0.0
    assert result.sample_size == 0


def test_accuracy_mismatched_lengths():
    """Mismatched inputs break the input contract."""
    with pytest.raises(MetricsInputError):
        accuracy_with_confidence([1, 2, 3], [1, 2])
