"""
Fetch outcomes that keep failure reasons distinguishable inside the core.

The UI turns a failed result into an empty list plus a message; everything
below the UI passes `FetchResult` values around instead of raising.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Iterable, Optional, Tuple, TypeVar

from mzo_dashboard.data.models import Dataset

T = TypeVar("T")


class FetchErrorKind(str, Enum):
    CONFIG = "config"
    NETWORK = "network"
    NOT_FOUND = "not_found"
    PARSE = "parse"


class FetchError(Exception):
    def __init__(self, dataset: Optional[Dataset], kind: FetchErrorKind, message: str):
        super().__init__(message)
        self.dataset = dataset
        self.kind = kind
        self.message = message

    def __str__(self) -> str:
        name = self.dataset.value if self.dataset else "dataset"
        return f"{name}: {self.kind.value}: {self.message}"


@dataclass(frozen=True)
class FetchResult(Generic[T]):
    data: Optional[T] = None
    error: Optional[FetchError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, data: T) -> "FetchResult[T]":
        return cls(data=data)

    @classmethod
    def failure(cls, error: FetchError) -> "FetchResult[T]":
        return cls(error=error)

    def unwrap_or(self, default: T) -> T:
        return self.data if self.ok and self.data is not None else default


def join_results(results: Iterable[FetchResult[Any]]) -> FetchResult[Tuple[Any, ...]]:
    """All-or-nothing fan-in: the first failure fails the whole group."""
    values = []
    for result in results:
        if not result.ok:
            return FetchResult.failure(result.error)
        values.append(result.data)
    return FetchResult.success(tuple(values))
