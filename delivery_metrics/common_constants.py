"""Common constants used across Delivery Metrics modules."""

from typing import Dict, Final, List, Tuple

# Work-item state category that marks an item as delivered
COMPLETED_STATE_CATEGORY: Final[str] = "completed"

# Lifecycle state names, compared case-insensitively after trimming
PROGRESS_STATES: Final[List[str]] = ["in progress"]

REVIEW_STATES: Final[List[str]] = [
    "code review",
    "in review",
    "review",
    "pr review",
    "reviewing",
    "ready for review",
    "pending review",
    "under review",
]

REVIEW_END_STATES: Final[List[str]] = [
    "merged",
    "deployed",
    "completed",
    "done",
    "released",
    "closed",
    "finished",
]

# Matched exactly
MERGED_STATE: Final[str] = "Merged"
DEPLOYED_STATE: Final[str] = "Deployed"

DEFAULT_FAILURE_TAGS: Final[List[str]] = ["incident", "rollback"]
DEFAULT_INCIDENT_TAGS: Final[List[str]] = ["incident"]

# Closed set of size estimates analysed per estimate
ESTIMATE_SCALE: Final[List[int]] = [1, 2, 3, 5, 8]

DEFAULT_HOURS_PER_POINT: Final[float] = 8.0
HOURS_PER_BUSINESS_DAY: Final[float] = 8.0

DEFAULT_CONFIDENCE_LEVEL: Final[int] = 95
DEFAULT_BOTTLENECK_THRESHOLD: Final[float] = 1.5
MAX_BOTTLENECKS: Final[int] = 10
VELOCITY_WEEKS: Final[int] = 8
DEFAULT_TREND_DAYS: Final[int] = 30

# Proportional review-window heuristic
DEFAULT_REVIEW_RATIO: Final[float] = 0.75
DEFAULT_REVIEW_LEAD_HOURS: Final[float] = 24.0
DEFAULT_REVIEW_MINIMUM_HOURS: Final[float] = 2.0

# Rating tiers, best first
ELITE: Final[str] = "Elite"
HIGH: Final[str] = "High"
MEDIUM: Final[str] = "Medium"
LOW: Final[str] = "Low"
RATING_TIERS: Final[Tuple[str, ...]] = (ELITE, HIGH, MEDIUM, LOW)

HIGHER_IS_BETTER: Final[str] = "higher"
LOWER_IS_BETTER: Final[str] = "lower"

# Metric -> direction and the Elite/High/Medium thresholds. Higher-is-better
# metrics must strictly exceed a threshold; lower-is-better metrics must be at
# or below it.
RATING_THRESHOLDS: Final[Dict[str, Dict]] = {
    "deployment_frequency_cycle": {
        "direction": HIGHER_IS_BETTER,
        "unit": "deployments per cycle",
        "thresholds": (10, 5, 1),
    },
    "deployment_frequency_daily": {
        "direction": HIGHER_IS_BETTER,
        "unit": "deployments per day",
        "thresholds": (1, 0.2, 0.1),
    },
    "lead_time": {
        "direction": LOWER_IS_BETTER,
        "unit": "days",
        "thresholds": (1, 7, 30),
    },
    "change_failure_rate": {
        "direction": LOWER_IS_BETTER,
        "unit": "%",
        "thresholds": (15, 30, 45),
    },
    "time_to_recovery": {
        "direction": LOWER_IS_BETTER,
        "unit": "days",
        "thresholds": (0.04, 1, 7),
    },
    "time_to_deploy": {
        "direction": LOWER_IS_BETTER,
        "unit": "days",
        "thresholds": (0.125, 0.5, 2),
    },
    "code_review_duration": {
        "direction": LOWER_IS_BETTER,
        "unit": "hours",
        "thresholds": (4, 24, 72),
    },
}

# Bottleneck severity by actual/expected ratio, most severe first
BOTTLENECK_SEVERITIES: Final[List[Tuple[float, str]]] = [
    (3.0, "Critical"),
    (2.0, "High"),
    (1.5, "Medium"),
]

# Accuracy bands by actual/expected percentage, inclusive bounds
ACCURACY_BANDS: Final[List[Tuple[float, float, str]]] = [
    (80, 120, "Excellent"),
    (60, 140, "Good"),
]

# (lower hours, upper hours, label); lower bound inclusive
REVIEW_TIME_BUCKETS: Final[List[Tuple[float, float, str]]] = [
    (0, 4, "< 4 hours"),
    (4, 24, "4-24 hours"),
    (24, 72, "1-3 days"),
    (72, 168, "3-7 days"),
    (168, float("inf"), "> 1 week"),
]

LEAD_TIME_BUCKETS: Final[List[Tuple[float, float, str]]] = [
    (0, 8, "< 1 day"),
    (8, 40, "1-5 days"),
    (40, 168, "5 days - 1 week"),
    (168, 336, "1-2 weeks"),
    (336, float("inf"), "> 2 weeks"),
]

# Output data file settings, written as lists of file names
DATA_FILENAME_KEYS: Final[List[str]] = [
    "delivery_metrics_data",
    "estimation_data",
    "velocity_data",
    "bottlenecks_data",
    "code_review_data",
    "lead_time_data",
]
