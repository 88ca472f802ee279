"""Utility functions for Delivery Metrics.

This module provides small helpers shared by the calculators: dictionary
merging, half-up rounding, JSON-friendly conversion and output file writing.
"""

import datetime
import json
import logging
import math
import os.path

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


def extend_dict(d, e):
    """Extend dictionary d with entries from e, returning a new dictionary."""
    r = d.copy()
    r.update(e)
    return r


def get_extension(filename):
    """Get the file extension from a filename."""
    return os.path.splitext(filename.replace("\\", "/"))[1].lower()


def round_half_up(value, digits=1):
    """Round half away from zero, so 2.25 becomes 2.3 rather than 2.2."""
    factor = 10**digits
    if value < 0:
        return -round_half_up(-value, digits)
    result = math.floor(value * factor + 0.5) / factor
    return int(result) if digits == 0 else result


def to_plain(value):
    """Recursively convert timestamps and numpy scalars to JSON-friendly values."""
    if isinstance(value, dict):
        return {str(k): to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(v) for v in value]
    if value is None or value is pd.NaT:
        return None
    if isinstance(value, (pd.Timestamp, datetime.datetime, datetime.date)):
        return value.isoformat()
    if isinstance(value, np.integer):
        return int(value)
    if isinstance(value, np.floating):
        return float(value)
    return value


def to_json_string(value):
    """Serialize a result structure to an indented JSON string."""
    return json.dumps(to_plain(value), indent=2)


def write_records(records, output_files, label):
    """Write a list of row dictionaries to each output file.

    ``.json`` files receive the records as a JSON array; anything else is
    written as CSV with one column per key.
    """
    for output_file in output_files:
        logger.info("Writing %s to %s", label, output_file)
        if get_extension(output_file) == ".json":
            with open(output_file, "w", encoding="utf-8") as f:
                f.write(to_json_string(records))
        else:
            pd.DataFrame([to_plain(r) for r in records]).to_csv(
                output_file, header=True, index=False
            )
