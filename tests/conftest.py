"""
Pytest configuration and fixtures for the MZO dashboard tests.

Provides record/user factories, an in-memory provider that stands in for
Google Sheets, and a DataService wired to an in-memory cache.
"""
import pytest

from mzo_dashboard.data.cache import MemoryCacheStore
from mzo_dashboard.data.events import UpdateNotifier
from mzo_dashboard.data.models import (
    CollectionTxn,
    Dataset,
    PendingApplication,
    Role,
    User,
)
from mzo_dashboard.data.results import FetchError, FetchErrorKind
from mzo_dashboard.data.service import DataService


# =============================================================================
# Factory Helpers
# =============================================================================

def make_user(role: Role = Role.CCC, **codes) -> User:
    """Create a User; hierarchy codes and other fields passed as keywords."""
    return User(user_id=codes.pop("user_id", f"{role.value.lower()}_user"), role=role, **codes)


def make_application(**fields) -> PendingApplication:
    defaults = dict(
        date="2024-06-01",
        zone_code="6600000",
        region_code="6610000",
        division_code="6613000",
        ccc_code="6613001",
    )
    defaults.update(fields)
    return PendingApplication(**defaults)


def make_payment(payment_dt: str, count: int = 1, amount: float = 100.0, mode: str = "CASH") -> CollectionTxn:
    return CollectionTxn(
        date="2024-06-01",
        ccc_code="6613001",
        payment_dt=payment_dt,
        mode=mode,
        count=count,
        amount_paid=amount,
    )


class FakeProvider:
    """In-memory DatasetProvider; `failures` maps a dataset to the FetchError it raises."""

    def __init__(self, datasets=None, failures=None):
        self.datasets = {k: [dict(r) for r in v] for k, v in (datasets or {}).items()}
        self.failures = dict(failures or {})
        self.fetch_calls = []
        self.probe_calls = []

    def fetch_rows(self, dataset):
        self.fetch_calls.append(dataset)
        if dataset in self.failures:
            raise self.failures[dataset]
        return [dict(r) for r in self.datasets.get(dataset, [])]

    def fetch_probe(self, dataset):
        self.probe_calls.append(dataset)
        if dataset in self.failures:
            raise self.failures[dataset]
        rows = self.datasets.get(dataset, [])
        return dict(rows[0]) if rows else None


def network_error(dataset: Dataset) -> FetchError:
    return FetchError(dataset, FetchErrorKind.NETWORK, "connection reset")


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def ccc_user():
    return make_user(Role.CCC, zone_code="6600000", region_code="6610000",
                     division_code="6613000", ccc_code="6613001")


@pytest.fixture
def division_user():
    return make_user(Role.DIVISION, zone_code="6600000", region_code="6610000", division_code="6613000")


@pytest.fixture
def zone_user():
    return make_user(Role.ZONE, zone_code="6600000")


@pytest.fixture
def nsc_rows():
    """Sheet rows as they come back from the pending NSC worksheet."""
    return [
        {"DATE": "2024-06-02", "ccc_code": "6613001", "APPL_NO": "A-1", "NAME": "Ramesh Kumar",
         "PHONE_NO": "9830000001", "DelayRange": "0-3 Day", "DelaySerial": "1", "DelayInSC": "2",
         "APPLICANT_TYPE": "Domestic"},
        {"DATE": "2024-06-02", "ccc_code": "6613002", "APPL_NO": "A-2", "NAME": "Shyam Lal",
         "PHONE_NO": "9830000002", "DelayRange": "8+ Day", "DelaySerial": "3", "DelayInSC": "11",
         "APPLICANT_TYPE": "Commercial"},
    ]


@pytest.fixture
def cache():
    return MemoryCacheStore()


@pytest.fixture
def notifier():
    return UpdateNotifier()


@pytest.fixture
def make_service(cache, notifier):
    def _make(datasets=None, failures=None, compact_threshold=500):
        provider = FakeProvider(datasets, failures)
        return DataService(provider, cache, notifier, compact_threshold=compact_threshold)
    return _make
