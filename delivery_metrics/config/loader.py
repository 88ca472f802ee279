"""Configuration loader for Delivery Metrics."""

import logging
import os.path

import yaml

from ..common_constants import (
    DATA_FILENAME_KEYS,
    DEFAULT_BOTTLENECK_THRESHOLD,
    DEFAULT_CONFIDENCE_LEVEL,
    DEFAULT_FAILURE_TAGS,
    DEFAULT_INCIDENT_TAGS,
    DEFAULT_REVIEW_LEAD_HOURS,
    DEFAULT_REVIEW_MINIMUM_HOURS,
    DEFAULT_REVIEW_RATIO,
    DEFAULT_TREND_DAYS,
    RATING_THRESHOLDS,
    REVIEW_STATES,
)
from .exceptions import ConfigError
from .type_utils import (
    expand_key,
    force_date,
    force_float,
    force_float_list,
    force_int,
    force_list,
    force_weekdays,
)
from .yaml_utils import ordered_load

logger = logging.getLogger(__name__)


def _create_default_options():
    """Create default options dictionary."""
    return {
        "input": {
            "items": None,
            "history": None,
            "history_scope": None,
        },
        "settings": {
            "work_days": (0, 1, 2, 3, 4),
            "work_start_hour": 9.0,
            "work_end_hour": 18.0,
            "timezone": "UTC",
            "confidence_level": DEFAULT_CONFIDENCE_LEVEL,
            "bottleneck_threshold": DEFAULT_BOTTLENECK_THRESHOLD,
            "failure_tags": list(DEFAULT_FAILURE_TAGS),
            "incident_tags": list(DEFAULT_INCIDENT_TAGS),
            "review_states": list(REVIEW_STATES),
            "lead_time_requires_estimate": True,
            "review_ratio": DEFAULT_REVIEW_RATIO,
            "review_lead_hours": DEFAULT_REVIEW_LEAD_HOURS,
            "review_minimum_hours": DEFAULT_REVIEW_MINIMUM_HOURS,
            "trend_days": DEFAULT_TREND_DAYS,
            "window_days": 30,
            "window_start": None,
            "window_end": None,
            "as_of": None,
            "reporting_cycle": None,
            "rating_thresholds": {},
            "delivery_metrics_data": None,
            "estimation_data": None,
            "velocity_data": None,
            "bottlenecks_data": None,
            "code_review_data": None,
            "lead_time_data": None,
        },
    }


def _parse_input_config(config, options):
    """Parse input file configuration."""
    if "input" not in config:
        return

    input_config = config["input"]
    for key in ("items", "history", "history_scope"):
        if expand_key(key) in input_config:
            options["input"][key] = str(input_config[expand_key(key)])


def _parse_calendar_config(config, options):
    """Parse business calendar configuration."""
    if "calendar" not in config:
        return

    calendar_config = config["calendar"]
    settings = options["settings"]

    if expand_key("work_days") in calendar_config:
        settings["work_days"] = force_weekdays(
            "work_days", calendar_config[expand_key("work_days")]
        )

    for key in ("work_start_hour", "work_end_hour"):
        if expand_key(key) in calendar_config:
            settings[key] = force_float(key, calendar_config[expand_key(key)])

    if "timezone" in calendar_config:
        settings["timezone"] = str(calendar_config["timezone"])

    if not 0 <= settings["work_start_hour"] < settings["work_end_hour"] <= 24:
        raise ConfigError(
            f"`Work start hour` ({settings['work_start_hour']}) must be before "
            f"`Work end hour` ({settings['work_end_hour']}) within the day"
        )


def _parse_metrics_config(config, options):
    """Parse metric calculation settings."""
    if "metrics" not in config:
        return

    metrics_config = config["metrics"]
    settings = options["settings"]

    _parse_int_values(metrics_config, settings)
    _parse_float_values(metrics_config, settings)
    _parse_date_values(metrics_config, settings)
    _parse_list_values(metrics_config, settings)
    _parse_boolean_values(metrics_config, settings)

    if settings["confidence_level"] not in (90, 95, 99):
        raise ConfigError(
            f"`Confidence level` must be 90, 95 or 99, "
            f"not {settings['confidence_level']}"
        )

    if "cycle" in metrics_config:
        settings["reporting_cycle"] = _parse_cycle(metrics_config["cycle"])


def _parse_int_values(section, settings):
    """Parse integer values."""
    for key in ("confidence_level", "window_days", "trend_days"):
        if expand_key(key) in section:
            settings[key] = force_int(key, section[expand_key(key)])


def _parse_float_values(section, settings):
    """Parse float values."""
    float_keys = [
        "bottleneck_threshold",
        "review_ratio",
        "review_lead_hours",
        "review_minimum_hours",
    ]

    for key in float_keys:
        if expand_key(key) in section:
            settings[key] = force_float(key, section[expand_key(key)])


def _parse_date_values(section, settings):
    """Parse date values."""
    for key in ("window_start", "window_end", "as_of"):
        if expand_key(key) in section:
            settings[key] = force_date(key, section[expand_key(key)])


def _parse_list_values(section, settings):
    """Parse list values."""
    for key in ("failure_tags", "incident_tags", "review_states"):
        if expand_key(key) in section:
            settings[key] = [str(v) for v in force_list(section[expand_key(key)])]


def _parse_boolean_values(section, settings):
    """Parse boolean values."""
    for key in ("lead_time_requires_estimate",):
        if expand_key(key) in section:
            settings[key] = bool(section[expand_key(key)])


def _parse_cycle(cycle_config):
    """Parse a reporting cycle with a number and start and end dates."""
    for key in ("number", "starts_at", "ends_at"):
        if expand_key(key) not in cycle_config:
            raise ConfigError(f"`Cycle` must define `{expand_key(key).capitalize()}`")

    return {
        "number": force_int("number", cycle_config["number"]),
        "starts_at": force_date("starts_at", cycle_config[expand_key("starts_at")]),
        "ends_at": force_date("ends_at", cycle_config[expand_key("ends_at")]),
    }


def _parse_ratings_config(config, options):
    """Parse per-metric rating threshold overrides."""
    if "ratings" not in config:
        return

    overrides = options["settings"]["rating_thresholds"]
    for name, thresholds in config["ratings"].items():
        metric = str(name).strip().lower().replace(" ", "_")
        if metric not in RATING_THRESHOLDS:
            raise ConfigError(
                f"Unknown metric `{name}` in `Ratings`; "
                f"expected one of {[expand_key(m) for m in RATING_THRESHOLDS]}"
            )
        values = force_float_list(name, thresholds)
        if len(values) != 3:
            raise ConfigError(
                f"`Ratings` for `{name}` must list three thresholds "
                f"(Elite, High, Medium)"
            )
        overrides[metric] = values


def _parse_output_config(config, options):
    """Parse output configuration."""
    if "output" not in config:
        return

    output_config = config["output"]
    settings = options["settings"]

    if expand_key("output_directory") in output_config:
        options["output_directory"] = output_config[expand_key("output_directory")]

    for key in DATA_FILENAME_KEYS:
        if expand_key(key) in output_config:
            settings[key] = list(
                map(
                    os.path.basename,
                    force_list(output_config[expand_key(key)]),
                )
            )


def config_to_options(data, cwd=None, extended=False, _visited_files=None):
    """
    Parse YAML config data and return options dict.
    """
    if _visited_files is None:
        _visited_files = set()

    try:
        config = ordered_load(data, yaml.SafeLoader)
    except Exception as e:
        raise ConfigError("Unable to parse YAML configuration file.") from e

    if config is None:
        raise ConfigError("Configuration file is empty") from None

    options = _create_default_options()

    # Handle extends configuration
    if "extends" in config:
        if cwd is None:
            raise ConfigError("`extends` is not supported here.")

        extends_filename = os.path.abspath(
            os.path.normpath(
                os.path.join(cwd, config["extends"].replace("/", os.path.sep))
            )
        )

        if not os.path.exists(extends_filename):
            raise ConfigError(
                f"File `{extends_filename}` referenced in `extends` not found."
            ) from None

        if extends_filename in _visited_files:
            raise ConfigError(
                f"Circular extends reference detected: {extends_filename}"
            ) from None

        _visited_files.add(extends_filename)

        logger.debug("Extending file %s", extends_filename)
        with open(extends_filename, encoding="utf-8") as extends_file:
            options = config_to_options(
                extends_file.read(),
                cwd=os.path.dirname(extends_filename),
                extended=True,
                _visited_files=_visited_files,
            )

    _parse_input_config(config, options)
    _parse_calendar_config(config, options)
    _parse_metrics_config(config, options)
    _parse_ratings_config(config, options)
    _parse_output_config(config, options)

    _resolve_input_paths(options, cwd)

    if not extended and options["input"]["items"] is None:
        logger.warning(
            "No `Items` file found in the `Input` section. "
            "It must then be given on the command line."
        )

    return options


def _resolve_input_paths(options, cwd):
    """Make relative input file paths relative to the config file."""
    if cwd is None:
        return
    for key in ("items", "history"):
        path = options["input"][key]
        if path and not os.path.isabs(path):
            options["input"][key] = os.path.join(cwd, path)
