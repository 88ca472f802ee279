"""Delivery metrics calculation core.

DORA-style delivery performance metrics, estimation accuracy and bottleneck
analysis computed from normalized work-item records.
"""

from .business_calendar import BusinessCalendar, business_hours
from .calculators.code_review import compute_code_review_analysis
from .calculators.delivery import compute_delivery_metrics
from .calculators.estimation import compute_estimation_analysis
from .calculators.lead_time import compute_lead_time_analysis
from .statistics_utils import accuracy_with_confidence, summarize_sample

__all__ = [
    "BusinessCalendar",
    "accuracy_with_confidence",
    "business_hours",
    "compute_code_review_analysis",
    "compute_delivery_metrics",
    "compute_estimation_analysis",
    "compute_lead_time_analysis",
    "summarize_sample",
]
