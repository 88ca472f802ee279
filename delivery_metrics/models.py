"""Work-item data model for Delivery Metrics.

Work items arrive as normalized records from an issue tracker. This module
turns them into immutable value objects with parsed timestamps and provides
the reporting windows and cycles the metrics are computed over.

Timestamps are always timezone-aware ``pandas.Timestamp`` values in UTC.
``None`` means a value is absent; ``pandas.NaT`` means a value was supplied
but could not be parsed.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple

import dateutil.parser
import pandas as pd

from .common_constants import COMPLETED_STATE_CATEGORY

logger = logging.getLogger(__name__)


def to_timestamp(value) -> Optional[pd.Timestamp]:
    """Parse an ISO-8601 string, ``datetime`` or ``Timestamp`` to a UTC timestamp.

    Returns ``None`` for absent values and ``NaT`` (with a warning) for values
    that cannot be parsed. Naive values are taken to be UTC.
    """
    if value is None:
        return None
    if value is pd.NaT:
        return pd.NaT
    try:
        if isinstance(value, str):
            value = dateutil.parser.isoparse(value.strip())
        timestamp = pd.Timestamp(value)
    except (TypeError, ValueError, OverflowError):
        logger.warning("Unable to parse timestamp %r", value)
        return pd.NaT
    if timestamp is pd.NaT:
        return pd.NaT
    if timestamp.tzinfo is None:
        return timestamp.tz_localize("UTC")
    return timestamp.tz_convert("UTC")


def is_valid_timestamp(value) -> bool:
    """True when ``value`` is a parsed timestamp (neither absent nor ``NaT``)."""
    return value is not None and not pd.isna(value)


@dataclass(frozen=True)
class Transition:
    """A single change of workflow state."""

    timestamp: Optional[pd.Timestamp]
    to_state: str
    from_state: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Transition":
        return cls(
            timestamp=to_timestamp(_get(data, "timestamp", "createdAt", "created_at")),
            to_state=str(_get(data, "to_state", "toState", "to") or ""),
            from_state=_get(data, "from_state", "fromState", "from"),
        )


@dataclass(frozen=True)
class WorkItem:
    """A unit of delivered work as seen by the metrics calculations."""

    identifier: str
    created_at: Optional[pd.Timestamp] = None
    state_name: str = ""
    state_category: str = ""
    size_estimate: Optional[float] = None
    started_at: Optional[pd.Timestamp] = None
    completed_at: Optional[pd.Timestamp] = None
    tags: FrozenSet[str] = frozenset()
    status_history: Tuple[Transition, ...] = ()
    title: Optional[str] = None
    assignee: Optional[str] = None

    @property
    def is_completed(self) -> bool:
        """Completed means a terminal state category and a completion time."""
        return (
            self.state_category.strip().lower() == COMPLETED_STATE_CATEGORY
            and is_valid_timestamp(self.completed_at)
        )

    @property
    def has_estimate(self) -> bool:
        return self.size_estimate is not None and self.size_estimate > 0

    def has_tag_containing(self, fragments: Iterable[str]) -> bool:
        """Case-insensitive substring match of any fragment against any tag."""
        fragments = [f.lower() for f in fragments]
        return any(f in tag.lower() for tag in self.tags for f in fragments)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorkItem":
        """Build a work item from a tracker record.

        Both ``snake_case`` and ``camelCase`` keys are accepted. The state may be
        given as ``{"name": ..., "type": ...}`` and tags either as a list of
        strings or as ``{"nodes": [{"name": ...}]}``.
        """
        state = _get(data, "state") or {}
        if isinstance(state, dict):
            state_name = state.get("name", "")
            state_category = state.get("type", state.get("category", ""))
        else:
            state_name = str(state)
            state_category = _get(data, "state_category", "stateCategory") or ""

        estimate = _get(data, "size_estimate", "sizeEstimate", "estimate")
        try:
            estimate = float(estimate) if estimate is not None else None
        except (TypeError, ValueError):
            logger.warning(
                "Ignoring non-numeric estimate %r on %s", estimate, _get(data, "id")
            )
            estimate = None

        assignee = _get(data, "assignee")
        if isinstance(assignee, dict):
            assignee = assignee.get("name")

        history = _get(data, "status_history", "statusHistory", "history") or []

        return cls(
            identifier=str(_get(data, "identifier", "id", "key")),
            created_at=to_timestamp(_get(data, "created_at", "createdAt")),
            state_name=state_name or "",
            state_category=state_category or "",
            size_estimate=estimate,
            started_at=to_timestamp(_get(data, "started_at", "startedAt")),
            completed_at=to_timestamp(_get(data, "completed_at", "completedAt")),
            tags=frozenset(_tag_names(_get(data, "tags", "labels"))),
            status_history=tuple(Transition.from_dict(t) for t in history),
            title=_get(data, "title", "summary"),
            assignee=assignee,
        )


def _get(data, *keys):
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return None


def _tag_names(tags) -> List[str]:
    if not tags:
        return []
    if isinstance(tags, dict):
        tags = tags.get("nodes", [])
    return [t["name"] if isinstance(t, dict) else str(t) for t in tags]


@dataclass(frozen=True)
class ReportingWindow:
    """A time range metrics are computed over.

    The start is always inclusive; the end is inclusive unless
    ``end_inclusive`` is False, which is how preceding windows are built so
    that adjacent windows never share an item.
    """

    start: pd.Timestamp
    end: pd.Timestamp
    end_inclusive: bool = True

    def __post_init__(self):
        object.__setattr__(self, "start", to_timestamp(self.start))
        object.__setattr__(self, "end", to_timestamp(self.end))

    @classmethod
    def from_dates(cls, start_date, end_date) -> "ReportingWindow":
        """Whole calendar days from ``start_date`` through ``end_date``."""
        start = to_timestamp(pd.Timestamp(start_date).normalize())
        end = to_timestamp(pd.Timestamp(end_date).normalize()) + pd.Timedelta(days=1)
        return cls(start, end, end_inclusive=False)

    @classmethod
    def ending_at(cls, end, days) -> "ReportingWindow":
        """The ``days``-long window ending at ``end``."""
        end = to_timestamp(end)
        return cls(end - pd.Timedelta(days=days), end)

    @property
    def length(self) -> pd.Timedelta:
        return self.end - self.start

    @property
    def days(self) -> float:
        return self.length.total_seconds() / 86400

    def contains(self, timestamp) -> bool:
        if not is_valid_timestamp(timestamp):
            return False
        if timestamp < self.start:
            return False
        return timestamp <= self.end if self.end_inclusive else timestamp < self.end

    def previous(self) -> "ReportingWindow":
        """The equal-length window immediately before this one."""
        return ReportingWindow(
            self.start - self.length, self.start, end_inclusive=False
        )


@dataclass(frozen=True)
class Cycle:
    """A numbered iteration (sprint) with inclusive bounds."""

    number: int
    starts_at: pd.Timestamp
    ends_at: pd.Timestamp

    def __post_init__(self):
        object.__setattr__(self, "starts_at", to_timestamp(self.starts_at))
        object.__setattr__(self, "ends_at", to_timestamp(self.ends_at))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Cycle":
        return cls(
            number=int(_get(data, "number")),
            starts_at=_get(data, "starts_at", "startsAt"),
            ends_at=_get(data, "ends_at", "endsAt"),
        )

    def window(self) -> ReportingWindow:
        return ReportingWindow(self.starts_at, self.ends_at)


def load_work_items(filename) -> List[WorkItem]:
    """Load a JSON array of work-item records from a file."""
    with open(filename, encoding="utf-8") as f:
        records = json.load(f)
    if isinstance(records, dict):
        records = records.get("items", records.get("nodes", []))
    logger.debug("Loaded %d work items from %s", len(records), filename)
    return [WorkItem.from_dict(r) for r in records]


def as_work_items(items) -> List[WorkItem]:
    """Accept work items or raw dictionaries and return work items."""
    return [i if isinstance(i, WorkItem) else WorkItem.from_dict(i) for i in items]
