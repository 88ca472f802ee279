"""Lifecycle interpretation for Delivery Metrics.

Derives the milestone timestamps metrics are measured between (progress
start, review start, merge, deploy, incident detection) from a work item's
fields and its ordered status history.

A milestone that cannot be found is ``None`` and the item is left out of
samples that need it. Reading the status history never reorders it: the
first matching transition in the recorded order wins.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional

import pandas as pd

from .business_calendar import business_hours
from .common_constants import (
    DEFAULT_INCIDENT_TAGS,
    DEFAULT_REVIEW_LEAD_HOURS,
    DEFAULT_REVIEW_MINIMUM_HOURS,
    DEFAULT_REVIEW_RATIO,
    DEPLOYED_STATE,
    MERGED_STATE,
    PROGRESS_STATES,
    REVIEW_END_STATES,
    REVIEW_STATES,
)
from .models import WorkItem, is_valid_timestamp

logger = logging.getLogger(__name__)


def _normalize(state) -> str:
    return (state or "").strip().lower()


def first_transition_index(
    item: WorkItem, matches: Callable[[str], bool], start: int = 0
) -> Optional[int]:
    """Position of the first timestamped transition from ``start`` on whose
    target state matches.
    """
    for index in range(start, len(item.status_history)):
        transition = item.status_history[index]
        if transition.timestamp is not None and matches(transition.to_state):
            return index
    return None


def first_transition_time(
    item: WorkItem, matches: Callable[[str], bool], start: int = 0
) -> Optional[pd.Timestamp]:
    """Timestamp of the first timestamped transition whose target state matches."""
    index = first_transition_index(item, matches, start)
    return None if index is None else item.status_history[index].timestamp


def state_in(states: Iterable[str]) -> Callable[[str], bool]:
    """Case-insensitive membership test for state names."""
    normalized = {_normalize(s) for s in states}
    return lambda state: _normalize(state) in normalized


def state_is(state_name: str) -> Callable[[str], bool]:
    """Exact state name test."""
    return lambda state: state == state_name


def progress_start(item: WorkItem, progress_states=PROGRESS_STATES):
    """First entry into an in-progress state, else ``started_at``."""
    found = first_transition_time(item, state_in(progress_states))
    return found if found is not None else item.started_at


def review_start(item: WorkItem, review_states=REVIEW_STATES):
    """First entry into a review state, else ``started_at``."""
    found = first_transition_time(item, state_in(review_states))
    return found if found is not None else item.started_at


def merge_time(item: WorkItem):
    """First transition to exactly ``Merged``."""
    return first_transition_time(item, state_is(MERGED_STATE))


def deployed_transition_time(item: WorkItem):
    """First transition to exactly ``Deployed``."""
    return first_transition_time(item, state_is(DEPLOYED_STATE))


def deploy_time(item: WorkItem):
    """Completion time of a completed item."""
    return item.completed_at if item.is_completed else None


def incident_detected(item: WorkItem, incident_tags=DEFAULT_INCIDENT_TAGS):
    """Creation time of an item tagged as an incident."""
    if not item.has_tag_containing(incident_tags):
        return None
    return item.created_at


def review_end(item: WorkItem, end_states=REVIEW_END_STATES, start: int = 0):
    """First move out of review from position ``start`` on, else completion
    time when completed.
    """
    found = first_transition_time(item, state_in(end_states), start)
    return found if found is not None else deploy_time(item)


def duration_hours(start, end, calendar=None) -> Optional[float]:
    """Business hours between two milestones, ``None`` if either is missing.

    A milestone that is present but unparsable (``NaT``) counts as zero.
    """
    if start is None or end is None:
        return None
    return business_hours(start, end, calendar)


@dataclass(frozen=True)
class ReviewWindow:
    """The period an item spent in code review."""

    start: pd.Timestamp
    end: pd.Timestamp
    estimated: bool = False


class ReviewWindowStrategy:
    """Finds the review window of a completed work item.

    Strategies are tried in order by ``resolve_review_window``; a strategy
    returns ``None`` when it has nothing to say about an item.
    """

    def window(self, item: WorkItem) -> Optional[ReviewWindow]:
        raise NotImplementedError()

    def hours(self, review_window: ReviewWindow, calendar=None) -> float:
        return business_hours(review_window.start, review_window.end, calendar)


class StatusHistoryReviewWindow(ReviewWindowStrategy):
    """Review window read from recorded review transitions."""

    def __init__(self, review_states=REVIEW_STATES, end_states=REVIEW_END_STATES):
        self.review_states = review_states
        self.end_states = end_states

    def window(self, item):
        index = first_transition_index(item, state_in(self.review_states))
        if index is None:
            return None
        start = item.status_history[index].timestamp
        # Only transitions after review began can end it
        end = review_end(item, self.end_states, index + 1)
        if end is None:
            return None
        return ReviewWindow(start, end)


class ProportionalReviewWindow(ReviewWindowStrategy):
    """Approximate review window for items without review transitions.

    Review is assumed to start ``ratio`` of the way from start to completion,
    or ``lead_hours`` before completion when the start is unknown, and to last
    at least ``minimum_hours``.
    """

    def __init__(
        self,
        ratio=DEFAULT_REVIEW_RATIO,
        lead_hours=DEFAULT_REVIEW_LEAD_HOURS,
        minimum_hours=DEFAULT_REVIEW_MINIMUM_HOURS,
    ):
        self.ratio = ratio
        self.lead_hours = lead_hours
        self.minimum_hours = minimum_hours

    def window(self, item):
        end = deploy_time(item)
        if not is_valid_timestamp(end):
            return None
        if is_valid_timestamp(item.started_at) and item.started_at < end:
            start = item.started_at + (end - item.started_at) * self.ratio
        else:
            start = end - pd.Timedelta(hours=self.lead_hours)
        logger.debug("Estimating review window for %s from %s", item.identifier, start)
        return ReviewWindow(start, end, estimated=True)

    def hours(self, review_window, calendar=None):
        return max(super().hours(review_window, calendar), self.minimum_hours)


def default_review_strategies(settings=None) -> List[ReviewWindowStrategy]:
    """Status history first, then the proportional heuristic."""
    settings = settings or {}
    return [
        StatusHistoryReviewWindow(
            review_states=settings.get("review_states", REVIEW_STATES),
        ),
        ProportionalReviewWindow(
            ratio=settings.get("review_ratio", DEFAULT_REVIEW_RATIO),
            lead_hours=settings.get("review_lead_hours", DEFAULT_REVIEW_LEAD_HOURS),
            minimum_hours=settings.get(
                "review_minimum_hours", DEFAULT_REVIEW_MINIMUM_HOURS
            ),
        ),
    ]


def resolve_review_window(item, strategies, calendar=None):
    """Return ``(window, hours)`` from the first strategy that applies.

    Returns ``(None, None)`` when no strategy can place the item.
    """
    for strategy in strategies:
        review_window = strategy.window(item)
        if review_window is not None:
            return review_window, strategy.hours(review_window, calendar)
    return None, None
