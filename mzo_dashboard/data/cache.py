"""
Local key-value cache for dataset snapshots.

Entries are stored as JSON `{"data": ..., "timestamp": ...}` under keys that
share the `mzo_cache_` prefix. Writes are best-effort: when a back-end runs
out of room, every other cache key is evicted and the write is retried once;
a second failure is logged and dropped. Reads never raise.

Large row lists can be stored compactly as `[headers, row, row, ...]`;
`unpack_rows` turns either form back into row mappings.
"""

from __future__ import annotations

import json
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

from mzo_dashboard.config import CACHE_PREFIX, DEFAULT_COMPACT_THRESHOLD
from mzo_dashboard.data.models import Dataset

logger = logging.getLogger(__name__)


class CacheQuotaExceeded(Exception):
    """Raised by a back-end when a write does not fit in its storage quota."""


@dataclass(frozen=True)
class CacheEntry:
    data: Any
    timestamp: float


def cache_key(dataset: Dataset) -> str:
    return f"{CACHE_PREFIX}{dataset.value}"


def pack_rows(rows: Sequence[Mapping[str, Any]], threshold: int = DEFAULT_COMPACT_THRESHOLD) -> Any:
    """Return rows as-is, or `[headers, *row_values]` when there are more than `threshold`."""
    rows = list(rows)
    if len(rows) <= threshold or not rows:
        return [dict(r) for r in rows]
    headers = list(rows[0].keys())
    for row in rows[1:]:
        for key in row.keys():
            if key not in headers:
                headers.append(key)
    return [headers] + [[row.get(h) for h in headers] for row in rows]


def is_compact(data: Any) -> bool:
    return isinstance(data, list) and len(data) > 0 and isinstance(data[0], list)


def unpack_rows(data: Any) -> List[Dict[str, Any]]:
    if not data:
        return []
    if is_compact(data):
        headers, *rows = data
        return [{h: (row[i] if i < len(row) else None) for i, h in enumerate(headers)} for row in rows]
    if isinstance(data, list):
        return [dict(r) for r in data if isinstance(r, Mapping)]
    return []


class CacheStore(ABC):
    """Cache port. Subclasses provide raw string storage; policy lives here."""

    prefix = CACHE_PREFIX

    @abstractmethod
    def _read(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def _write(self, key: str, payload: str) -> None:
        """Store payload; raise CacheQuotaExceeded when it does not fit."""

    @abstractmethod
    def _remove(self, key: str) -> None:
        ...

    @abstractmethod
    def keys(self) -> List[str]:
        ...

    def get_entry(self, key: str) -> Optional[CacheEntry]:
        try:
            raw = self._read(key)
            if raw is None:
                return None
            item = json.loads(raw)
            return CacheEntry(data=item["data"], timestamp=float(item.get("timestamp", 0)))
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.debug(f"Unreadable cache entry {key}: {exc}")
            return None

    def get(self, key: str) -> Any:
        entry = self.get_entry(key)
        return entry.data if entry is not None else None

    def set(self, key: str, data: Any) -> None:
        try:
            payload = json.dumps({"data": data, "timestamp": time.time()}, separators=(",", ":"))
        except (TypeError, ValueError) as exc:
            logger.warning(f"Failed to save to cache: {key}: {exc}")
            return

        try:
            self._write(key, payload)
            return
        except CacheQuotaExceeded:
            logger.warning(f"Cache quota exceeded. Attempting to clear older caches... {key}")
        except OSError as exc:
            logger.warning(f"Failed to save to cache: {key}: {exc}")
            return

        self.evict_others(key)
        try:
            self._write(key, payload)
            logger.info(f"Successfully saved to cache after clearing space: {key}")
        except (CacheQuotaExceeded, OSError) as exc:
            logger.error(f"Failed to save to cache even after clearing space: {key}: {exc!r}")

    def delete(self, key: str) -> None:
        try:
            self._remove(key)
        except OSError as exc:
            logger.warning(f"Failed to remove cache entry {key}: {exc}")

    def evict_others(self, keep: str) -> None:
        for key in self.keys():
            if key.startswith(self.prefix) and key != keep:
                self.delete(key)

    def clear(self) -> None:
        for key in self.keys():
            if key.startswith(self.prefix):
                self.delete(key)


class MemoryCacheStore(CacheStore):
    """In-process store; `quota_bytes` simulates a bounded storage area."""

    def __init__(self, quota_bytes: Optional[int] = None):
        self.quota_bytes = quota_bytes
        self._items: Dict[str, str] = {}

    def _read(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def _write(self, key: str, payload: str) -> None:
        if self.quota_bytes is not None:
            used = sum(len(v.encode("utf-8")) for k, v in self._items.items() if k != key)
            if used + len(payload.encode("utf-8")) > self.quota_bytes:
                raise CacheQuotaExceeded(key)
        self._items[key] = payload

    def _remove(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._items.keys())


class FileCacheStore(CacheStore):
    """One JSON file per key inside `directory`, bounded by `quota_bytes` in total."""

    def __init__(self, directory: Path, quota_bytes: Optional[int] = None):
        self.directory = Path(directory)
        self.quota_bytes = quota_bytes

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def _read(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def _used_bytes(self, exclude: str) -> int:
        total = 0
        for key in self.keys():
            if key == exclude:
                continue
            try:
                total += self._path(key).stat().st_size
            except OSError:
                continue
        return total

    def _write(self, key: str, payload: str) -> None:
        encoded = payload.encode("utf-8")
        if self.quota_bytes is not None and self._used_bytes(key) + len(encoded) > self.quota_bytes:
            raise CacheQuotaExceeded(key)
        self.directory.mkdir(parents=True, exist_ok=True)
        tmp = self._path(key).with_suffix(".tmp")
        tmp.write_bytes(encoded)
        tmp.replace(self._path(key))

    def _remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def keys(self) -> List[str]:
        if not self.directory.exists():
            return []
        return sorted(p.stem for p in self.directory.glob("*.json"))


def first_row(data: Any) -> Optional[Dict[str, Any]]:
    """First row of a cached payload in either form, without unpacking the rest."""
    if not data or not isinstance(data, list):
        return None
    if is_compact(data):
        return unpack_rows(data[:2])[0] if len(data) > 1 else None
    return dict(data[0]) if isinstance(data[0], Mapping) else None
