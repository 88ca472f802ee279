"""Calculators run by the command line tool, in order."""

from .calculators.code_review import CodeReviewCalculator
from .calculators.delivery import DeliveryMetricsCalculator
from .calculators.estimation import EstimationAnalysisCalculator
from .calculators.lead_time import LeadTimeAnalysisCalculator

CALCULATORS = (
    DeliveryMetricsCalculator,
    EstimationAnalysisCalculator,
    CodeReviewCalculator,
    LeadTimeAnalysisCalculator,
)
