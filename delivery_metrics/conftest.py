"""Test configuration and fixtures for Delivery Metrics.

This module provides shared fixtures: the default settings, a business
calendar and a small, realistic set of work items.
"""

import pytest

from .business_calendar import BusinessCalendar
from .config.loader import _create_default_options
from .itemstore import ItemStore
from .test_data_factory import make_item, reviewed_item

# Fixtures


@pytest.fixture(name="base_settings")
def fixture_base_settings():
    """The default `settings` as produced by an empty configuration."""
    return _create_default_options()["settings"]


@pytest.fixture(name="calendar")
def fixture_calendar():
    """Monday to Friday, 09:00 to 18:00 UTC."""
    return BusinessCalendar()


@pytest.fixture(name="delivered_items")
def fixture_delivered_items():
    """Four items completed in the week of 2024-01-08, one still in progress.

    Lead times (review start to completion) in business hours:
    A-1: 8, A-2: 11, A-3: 24, A-4 (incident): 4.
    """
    return [
        reviewed_item(
            "A-1",
            review_started="2024-01-08T09:00:00Z",
            completed="2024-01-08T17:00:00Z",
            merged="2024-01-08T12:00:00Z",
            deployed="2024-01-08T15:00:00Z",
            estimate=1,
        ),
        reviewed_item(
            "A-2",
            review_started="2024-01-08T10:00:00Z",
            completed="2024-01-09T12:00:00Z",
            estimate=2,
        ),
        reviewed_item(
            "A-3",
            review_started="2024-01-08T09:00:00Z",
            completed="2024-01-10T15:00:00Z",
            estimate=2,
            title="Slow item",
            assignee="dev-1",
        ),
        reviewed_item(
            "A-4",
            review_started="2024-01-11T09:00:00Z",
            completed="2024-01-11T13:00:00Z",
            created="2024-01-11T09:00:00Z",
            estimate=1,
            tags=["incident"],
        ),
        make_item(
            "A-5",
            started="2024-01-10T09:00:00Z",
            estimate=3,
        ),
    ]


@pytest.fixture(name="store")
def fixture_store(delivered_items):
    """An item store over the delivered items, without history."""
    return ItemStore(delivered_items)
