"""Configuration module for Delivery Metrics.

This module provides configuration loading and error handling utilities.
"""

from .exceptions import ConfigError, MetricsInputError
from .loader import config_to_options

__all__ = ["config_to_options", "ConfigError", "MetricsInputError"]
