"""Type utilities for configuration processing.

This module provides utilities for type conversion and validation in
configuration files.
"""

import datetime

import dateutil.parser

from .exceptions import ConfigError

WEEKDAY_NAMES = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


def force_list(val) -> list:
    """
    Ensure the value is a list.
    """
    return list(val) if isinstance(val, (list, tuple)) else [val]


def force_int(key, value) -> int:
    """
    Convert value to int, raise ConfigError on failure.
    """
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(
            f"Could not convert value `{value}` for key `{expand_key(key)}` to integer"
        ) from None


def force_float(key, value) -> float:
    """
    Convert value to float, raise ConfigError on failure.
    """
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigError(
            f"Could not convert value `{value}` for key `{expand_key(key)}` to decimal"
        ) from None


def force_float_list(key, value) -> list:
    """
    Convert value to a list of floats, raise ConfigError on failure.
    """
    return [force_float(key, v) for v in force_list(value)]


def force_date(key, value) -> datetime.datetime:
    """
    Ensure value is a date or timestamp; ISO strings are parsed.
    """
    if isinstance(value, datetime.datetime):
        return value
    if isinstance(value, datetime.date):
        return datetime.datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        try:
            return dateutil.parser.isoparse(value)
        except ValueError:
            pass
    raise ConfigError(f"Value `{value}` for key `{expand_key(key)}` is not a date")


def force_weekdays(key, value) -> tuple:
    """
    Convert a list of day names or numbers (Monday = 0) to weekday numbers.
    """
    days = []
    for day in force_list(value):
        if isinstance(day, int) and 0 <= day <= 6:
            days.append(day)
        elif isinstance(day, str) and day.strip().lower() in WEEKDAY_NAMES:
            days.append(WEEKDAY_NAMES.index(day.strip().lower()))
        else:
            raise ConfigError(
                f"Value `{day}` for key `{expand_key(key)}` is not a day of the week"
            )
    return tuple(sorted(set(days)))


def expand_key(key) -> str:
    """
    Expand config key for display.
    """
    return str(key).replace("_", " ").lower()
