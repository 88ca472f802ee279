"""Work-item store for Delivery Metrics.

The store is the per-run snapshot of input data handed to every calculator:
the current work items and access to historical samples.
"""

import logging

from .history import NoHistoryProvider
from .models import as_work_items, load_work_items

logger = logging.getLogger(__name__)


class ItemStore:
    """Current work items plus a historical sample provider."""

    def __init__(self, items, history_provider=None, history_scope=None):
        self.items = as_work_items(items)
        self.history_provider = history_provider or NoHistoryProvider()
        self.history_scope = history_scope
        self._historical_items = None

    @classmethod
    def from_file(cls, filename, history_provider=None, history_scope=None):
        return cls(load_work_items(filename), history_provider, history_scope)

    def historical_items(self):
        """Historical items for the configured scope, fetched once per run."""
        if self._historical_items is None:
            self._historical_items = self.history_provider.fetch(self.history_scope)
            logger.info(
                "Using %d historical items for scope %s",
                len(self._historical_items),
                self.history_scope,
            )
        return self._historical_items
