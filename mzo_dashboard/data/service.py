"""
Dataset access for the reports: read-through cache in front of a blocking
provider, typed per-dataset fetches, and the fan-out/fan-in helpers a
screen uses to load several datasets at once.

Provider calls run in worker threads (`asyncio.to_thread`); cache reads,
cache writes and update notifications stay on the event-loop thread.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Dict, Hashable, List, Optional, Type

from mzo_dashboard.config import DEFAULT_COMPACT_THRESHOLD
from mzo_dashboard.data.auth import parse_users
from mzo_dashboard.data.cache import CacheStore, cache_key, pack_rows, unpack_rows
from mzo_dashboard.data.events import DataUpdated, UpdateNotifier
from mzo_dashboard.data.filters import serialize_filters
from mzo_dashboard.data.loader import DatasetProvider, Row
from mzo_dashboard.data.models import (
    DEFAULT_AUDIT_STATUS,
    AuditEntry,
    CollectionTxn,
    ConsumerBucket,
    Dataset,
    Docket,
    PendingApplication,
    PerformanceMetric,
    R,
    User,
    parse_record,
)
from mzo_dashboard.data.offices import OfficeDirectory
from mzo_dashboard.data.results import FetchError, FetchErrorKind, FetchResult, join_results
from mzo_dashboard.data.sample_data import get_performance_data

logger = logging.getLogger(__name__)


class DataService:
    def __init__(
        self,
        provider: DatasetProvider,
        cache: CacheStore,
        notifier: Optional[UpdateNotifier] = None,
        compact_threshold: int = DEFAULT_COMPACT_THRESHOLD,
    ):
        self.provider = provider
        self.cache = cache
        self.notifier = notifier or UpdateNotifier()
        self.compact_threshold = compact_threshold

    async def load(self, dataset: Dataset) -> FetchResult[List[Row]]:
        """Cached rows when present (no expiry check), otherwise fetch and cache."""
        cached = self.cache.get(cache_key(dataset))
        if cached is not None:
            return FetchResult.success(unpack_rows(cached))
        return await self.refresh(dataset)

    async def refresh(self, dataset: Dataset, notify: bool = False) -> FetchResult[List[Row]]:
        """Fetch the full dataset and overwrite its cache entry."""
        try:
            rows = await asyncio.to_thread(self.provider.fetch_rows, dataset)
        except FetchError as exc:
            logger.error(f"Error fetching {dataset.value}: {exc}")
            return FetchResult.failure(exc)

        key = cache_key(dataset)
        self.cache.set(key, pack_rows(rows, self.compact_threshold))
        if notify:
            self.notifier.publish(DataUpdated(dataset=dataset, cache_key=key))
        return FetchResult.success(rows)

    async def probe(self, dataset: Dataset) -> FetchResult[Optional[Row]]:
        """Header plus first data row only."""
        try:
            row = await asyncio.to_thread(self.provider.fetch_probe, dataset)
        except FetchError as exc:
            logger.error(f"Error probing {dataset.value}: {exc}")
            return FetchResult.failure(exc)
        return FetchResult.success(row)

    async def records(self, record_type: Type[R]) -> FetchResult[List[R]]:
        result = await self.load(record_type.DATASET)
        if not result.ok:
            return FetchResult.failure(result.error)
        try:
            return FetchResult.success([parse_record(record_type, row) for row in result.data])
        except (TypeError, ValueError) as exc:
            error = FetchError(record_type.DATASET, FetchErrorKind.PARSE, str(exc))
            logger.error(f"Error parsing {record_type.DATASET.value}: {error}")
            return FetchResult.failure(error)

    async def pending_applications(self) -> FetchResult[List[PendingApplication]]:
        return await self.records(PendingApplication)

    async def consumers(self) -> FetchResult[List[ConsumerBucket]]:
        return await self.records(ConsumerBucket)

    async def dockets(self) -> FetchResult[List[Docket]]:
        return await self.records(Docket)

    async def collections(self) -> FetchResult[List[CollectionTxn]]:
        return await self.records(CollectionTxn)

    async def performance(self) -> FetchResult[List[PerformanceMetric]]:
        result = await self.records(PerformanceMetric)
        if result.ok and not result.data:
            logger.info("Performance sheet is empty; using sample data")
            return FetchResult.success(get_performance_data())
        return result

    async def audit_log(self) -> FetchResult[List[AuditEntry]]:
        """Audit entries newest first, read live on every call."""
        result = await self.refresh(Dataset.AUDIT_LOG)
        if not result.ok:
            return FetchResult.failure(result.error)
        entries = [parse_record(AuditEntry, row) for row in result.data]
        entries = [e if e.status else replace(e, status=DEFAULT_AUDIT_STATUS) for e in entries]
        return FetchResult.success(sorted(entries, key=lambda e: e.timestamp, reverse=True))

    async def office_directory(self) -> FetchResult[OfficeDirectory]:
        result = await self.load(Dataset.OFFICES)
        if not result.ok:
            return FetchResult.failure(result.error)
        return FetchResult.success(OfficeDirectory.from_rows(result.data))

    async def users(self) -> FetchResult[List[User]]:
        result = await self.load(Dataset.USERS)
        if not result.ok:
            return FetchResult.failure(result.error)
        return FetchResult.success(parse_users(result.data))


async def gather_results(*fetches: Awaitable[FetchResult[Any]]) -> FetchResult[tuple]:
    """Run fetches concurrently; the joined result fails if any of them failed."""
    results = await asyncio.gather(*fetches)
    return join_results(results)


@dataclass(frozen=True)
class RequestTicket:
    serial: int
    state: Optional[Hashable] = None


class RequestGuard:
    """
    Tags each request so a response that arrives after a newer request was
    issued (for example after the filters changed) can be recognised and
    dropped. Nothing is cancelled.
    """

    def __init__(self):
        self._serial = 0
        self._latest: Optional[RequestTicket] = None

    def issue(self, state: Optional[Hashable] = None) -> RequestTicket:
        self._serial += 1
        self._latest = RequestTicket(serial=self._serial, state=state)
        return self._latest

    def is_current(self, ticket: RequestTicket, state: Optional[Hashable] = None) -> bool:
        if self._latest is None or ticket.serial != self._latest.serial:
            return False
        return state is None or ticket.state == state


def filters_state(filters: Any) -> Hashable:
    """Hashable snapshot of a filter dataclass, for RequestGuard tickets."""
    snapshot: Dict[str, Any] = serialize_filters(filters)
    return tuple(
        (k, tuple(v) if isinstance(v, list) else v) for k, v in sorted(snapshot.items())
    )
