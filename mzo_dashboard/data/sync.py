"""
Background staleness check.

For each dataset the live header + first row is fetched and its date is
compared with the date on the first cached row. A mismatch (or no cache
entry at all) triggers a full re-fetch, a cache overwrite and a
`DataUpdated` notification. Datasets are checked concurrently and fail
independently of one another.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Iterable, MutableMapping, Optional

from mzo_dashboard.data.cache import cache_key, first_row
from mzo_dashboard.data.loader import get_value
from mzo_dashboard.data.models import Dataset, parse_text
from mzo_dashboard.data.service import DataService

logger = logging.getLogger(__name__)

SYNC_DATASETS = (
    Dataset.PENDING_APPLICATIONS,
    Dataset.CONSUMERS,
    Dataset.PERFORMANCE,
    Dataset.DOCKETS,
    Dataset.COLLECTIONS,
    Dataset.USERS,
)


def _row_date(row) -> Optional[str]:
    if row is None:
        return None
    return parse_text(get_value(row, "date"))


class BackgroundSync:
    def __init__(self, service: DataService):
        self.service = service

    async def sync_dataset(self, dataset: Dataset) -> bool:
        """Returns True when the cached copy was replaced."""
        key = cache_key(dataset)
        probe = await self.service.probe(dataset)
        if not probe.ok or probe.data is None:
            return False

        latest = _row_date(probe.data)
        cached = self.service.cache.get(key)
        if cached is not None and latest == _row_date(first_row(cached)):
            return False

        logger.info(f"Change detected in {key}. Fetching full data...")
        result = await self.service.refresh(dataset, notify=True)
        return result.ok

    async def run_full_sync(self, datasets: Iterable[Dataset] = SYNC_DATASETS) -> Dict[Dataset, bool]:
        datasets = list(datasets)
        logger.info("Starting full background sync...")
        outcomes = await asyncio.gather(
            *(self.sync_dataset(d) for d in datasets), return_exceptions=True
        )
        changes: Dict[Dataset, bool] = {}
        for dataset, outcome in zip(datasets, outcomes):
            if isinstance(outcome, Exception):
                logger.error(f"Error syncing {cache_key(dataset)}: {outcome!r}")
                changes[dataset] = False
            else:
                changes[dataset] = outcome
        logger.info(f"Full background sync completed. Updated: {[d.value for d, c in changes.items() if c]}")
        return changes


SYNC_REQUESTED_KEY = "sync_requested"


def request_sync(state: MutableMapping[str, Any]) -> None:
    """Mark a sync as due on the next script run (`state` is the session state)."""
    state[SYNC_REQUESTED_KEY] = True


def run_requested_sync(
    state: MutableMapping[str, Any],
    service: DataService,
    datasets: Iterable[Dataset] = SYNC_DATASETS,
) -> Optional[Dict[Dataset, bool]]:
    """Run a previously requested sync once; None when nothing was requested."""
    if not state.pop(SYNC_REQUESTED_KEY, False):
        return None
    return asyncio.run(BackgroundSync(service).run_full_sync(datasets))
