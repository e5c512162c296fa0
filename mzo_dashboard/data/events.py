"""
Fire-and-forget notification that a cached dataset was replaced by fresher
data. Listeners decide for themselves whether to re-fetch.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List

from mzo_dashboard.data.models import Dataset

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DataUpdated:
    dataset: Dataset
    cache_key: str
    timestamp: float = field(default_factory=time.time)


Listener = Callable[[DataUpdated], None]


class UpdateNotifier:
    def __init__(self):
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register `listener`; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, event: DataUpdated) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(f"Update listener failed for {event.cache_key}")
