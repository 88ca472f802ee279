"""Exceptions for Delivery Metrics.

This module provides custom exception classes for configuration errors and
for violations of the calculation input contract.
"""


class ConfigError(Exception):
    """
    Exception raised for errors in the configuration.
    """


class MetricsInputError(ValueError):
    """
    Exception raised when a caller passes input that breaks the calculation
    contract, e.g. mismatched sample lengths or non-numeric values.

    Degraded data (missing or unparsable timestamps, empty samples) never
    raises; it produces well-formed zero or "not computable" results instead.
    """
