"""Statistical summaries for Delivery Metrics.

Small-sample statistics built on Student's t distribution: confidence
intervals for the mean, predictive ranges for a single future observation
and estimation accuracy with its own confidence interval.

Critical values come from a fixed table rather than a distribution function
so that results are reproducible across library versions.
"""

import logging
import math
import numbers
from dataclasses import asdict, dataclass, field
from typing import Dict, Sequence

import numpy as np

from .common_constants import DEFAULT_CONFIDENCE_LEVEL
from .config.exceptions import MetricsInputError
from .utils import round_half_up

logger = logging.getLogger(__name__)

T_TABLE_DEGREES_OF_FREEDOM = (
    1, 2, 3, 4, 5, 6, 7, 8, 9, 10,
    15, 20, 25, 30, 40, 50, 60, 100, 1000,
)  # fmt: skip

# Two-sided critical values, aligned with T_TABLE_DEGREES_OF_FREEDOM
T_TABLE: Dict[int, tuple] = {
    90: (
        6.314, 2.920, 2.353, 2.132, 2.015, 1.943, 1.895, 1.860, 1.833, 1.812,
        1.753, 1.725, 1.708, 1.697, 1.684, 1.676, 1.671, 1.660, 1.645,
    ),
    95: (
        12.706, 4.303, 3.182, 2.776, 2.571, 2.447, 2.365, 2.306, 2.262, 2.228,
        2.131, 2.086, 2.060, 2.042, 2.021, 2.009, 2.000, 1.984, 1.962,
    ),
    99: (
        63.657, 9.925, 5.841, 4.604, 4.032, 3.707, 3.499, 3.355, 3.250, 3.169,
        2.947, 2.845, 2.787, 2.750, 2.704, 2.678, 2.660, 2.626, 2.576,
    ),
}  # fmt: skip


@dataclass(frozen=True)
class ConfidenceInterval:
    lower: float
    upper: float
    confidence_level: int = DEFAULT_CONFIDENCE_LEVEL


@dataclass(frozen=True)
class PredictiveRange:
    """Where a single new observation is expected to fall."""

    expected_value: float
    min_value: float
    max_value: float
    confidence_level: int = DEFAULT_CONFIDENCE_LEVEL


@dataclass(frozen=True)
class StatisticalSummary:
    mean: float = 0.0
    median: float = 0.0
    std_dev: float = 0.0
    std_err: float = 0.0
    sample_size: int = 0
    confidence_interval: ConfidenceInterval = field(
        default_factory=lambda: ConfidenceInterval(0.0, 0.0)
    )
    predictive_range: PredictiveRange = field(
        default_factory=lambda: PredictiveRange(0.0, 0.0, 0.0)
    )

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class AccuracyResult:
    """Mean estimation accuracy (0-100) with its confidence interval."""

    accuracy: float
    confidence_interval: ConfidenceInterval
    sample_size: int

    def to_dict(self):
        return asdict(self)


def _check_confidence_level(confidence_level):
    if confidence_level not in T_TABLE:
        raise MetricsInputError(
            f"Unsupported confidence level {confidence_level}; "
            f"expected one of {sorted(T_TABLE)}"
        )


def t_critical_value(confidence_level, degrees_of_freedom) -> float:
    """Critical t value for a two-sided interval.

    Degrees of freedom between tabulated rows use the next tabulated row up;
    anything from 1000 upward uses the last row.
    """
    _check_confidence_level(confidence_level)
    if degrees_of_freedom < 1:
        raise MetricsInputError("At least one degree of freedom is required")

    values = T_TABLE[confidence_level]
    for index, tabulated in enumerate(T_TABLE_DEGREES_OF_FREEDOM):
        if tabulated >= degrees_of_freedom:
            return values[index]
    return values[-1]


def _as_sample(values, name="values") -> np.ndarray:
    values = list(values)
    for value in values:
        if isinstance(value, bool) or not isinstance(value, numbers.Real):
            raise MetricsInputError(f"Non-numeric value {value!r} in {name}")
        if math.isnan(value):
            raise MetricsInputError(f"NaN in {name}")
    return np.asarray(values, dtype=float)


def summarize_sample(
    values: Sequence[float], confidence_level=DEFAULT_CONFIDENCE_LEVEL
) -> StatisticalSummary:
    """Summarize a sample of non-negative observations.

    The lower bounds of the confidence interval and predictive range are
    floored at zero. A single observation yields zero spread and both ranges
    collapse onto it; an empty sample yields all zeros.
    """
    sample = _as_sample(values)
    n = len(sample)

    _check_confidence_level(confidence_level)

    if n == 0:
        return StatisticalSummary(
            confidence_interval=ConfidenceInterval(0.0, 0.0, confidence_level),
            predictive_range=PredictiveRange(0.0, 0.0, 0.0, confidence_level),
        )

    mean = float(np.mean(sample))
    median = float(np.median(sample))

    if n == 1:
        return StatisticalSummary(
            mean=mean,
            median=median,
            sample_size=1,
            confidence_interval=ConfidenceInterval(mean, mean, confidence_level),
            predictive_range=PredictiveRange(mean, mean, mean, confidence_level),
        )

    std_dev = float(np.std(sample, ddof=1))
    std_err = std_dev / math.sqrt(n)
    t_value = t_critical_value(confidence_level, n - 1)

    margin = t_value * std_err
    prediction_margin = t_value * std_dev * math.sqrt(1 + 1 / n)

    return StatisticalSummary(
        mean=mean,
        median=median,
        std_dev=std_dev,
        std_err=std_err,
        sample_size=n,
        confidence_interval=ConfidenceInterval(
            max(0.0, mean - margin), mean + margin, confidence_level
        ),
        predictive_range=PredictiveRange(
            mean,
            max(0.0, mean - prediction_margin),
            mean + prediction_margin,
            confidence_level,
        ),
    )


def pair_accuracy(actual, expected) -> float:
    """Accuracy of one estimate, 100 for a perfect match, never below 0."""
    if expected <= 0:
        return 0.0
    return max(0.0, min(100.0, (1 - abs(actual - expected) / expected) * 100))


def accuracy_with_confidence(
    actuals: Sequence[float],
    expecteds: Sequence[float],
    confidence_level=DEFAULT_CONFIDENCE_LEVEL,
) -> AccuracyResult:
    """Mean per-item estimation accuracy with a confidence interval.

    Raises:
        MetricsInputError: if the sequences differ in length or hold
            non-numeric values.
    """
    actual_sample = _as_sample(actuals, "actuals")
    expected_sample = _as_sample(expecteds, "expecteds")
    if len(actual_sample) != len(expected_sample):
        raise MetricsInputError(
            f"Got {len(actual_sample)} actual values "
            f"but {len(expected_sample)} expected values"
        )

    if len(actual_sample) == 0:
        return AccuracyResult(0.0, ConfidenceInterval(0.0, 0.0, confidence_level), 0)

    accuracies = [pair_accuracy(a, e) for a, e in zip(actual_sample, expected_sample)]
    summary = summarize_sample(accuracies, confidence_level)
    interval = summary.confidence_interval

    return AccuracyResult(
        accuracy=round_half_up(summary.mean, 1),
        confidence_interval=ConfidenceInterval(
            round_half_up(interval.lower, 1),
            round_half_up(interval.upper, 1),
            confidence_level,
        ),
        sample_size=len(accuracies),
    )
