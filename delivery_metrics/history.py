"""Historical sample providers for Delivery Metrics.

Estimation and lead-time analyses can be calibrated against previously
completed work. Where that history comes from is behind the
``HistoricalSampleProvider`` interface so that calculations never fetch
data themselves.
"""

import logging
import os.path
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional

from .models import WorkItem, as_work_items, load_work_items

logger = logging.getLogger(__name__)


class HistoricalSampleProvider(ABC):
    """Supplies previously completed work items for a scope (e.g. a team)."""

    @abstractmethod
    def fetch(self, scope: Optional[str] = None) -> List[WorkItem]:
        """Return the historical items for ``scope``; empty if there are none."""


class InMemoryHistoryProvider(HistoricalSampleProvider):
    """History held in memory, either one list or a list per scope."""

    def __init__(
        self, items=None, items_by_scope: Optional[Dict[str, Iterable]] = None
    ):
        self.items = as_work_items(items or [])
        self.items_by_scope = {
            scope: as_work_items(scoped)
            for scope, scoped in (items_by_scope or {}).items()
        }

    def fetch(self, scope=None):
        if scope is not None and scope in self.items_by_scope:
            return list(self.items_by_scope[scope])
        return list(self.items)


class JsonFileHistoryProvider(HistoricalSampleProvider):
    """History read from a JSON file of work-item records.

    The file is read lazily on the first fetch and cached.
    """

    def __init__(self, filename):
        self.filename = filename
        self._items = None

    def fetch(self, scope=None):
        if self._items is None:
            if not os.path.exists(self.filename):
                logger.warning("History file %s not found", self.filename)
                self._items = []
            else:
                self._items = load_work_items(self.filename)
        return list(self._items)


class NoHistoryProvider(HistoricalSampleProvider):
    """Provider for runs without history."""

    def fetch(self, scope=None):
        return []
