"""
Tests for the data service: read-through caching, typed fetches, fan-in and
the stale-response guard.
"""

import asyncio

from mzo_dashboard.data.cache import cache_key, is_compact
from mzo_dashboard.data.filters import PendingApplicationFilters, filter_records
from mzo_dashboard.data.models import AuditEntry, Dataset, PendingApplication, PerformanceMetric
from mzo_dashboard.data.results import FetchErrorKind, FetchResult, join_results
from mzo_dashboard.data.service import RequestGuard, filters_state, gather_results
from tests.conftest import network_error


class TestReadThrough:
    def test_first_load_fetches_and_caches(self, make_service, nsc_rows, cache):
        service = make_service({Dataset.PENDING_APPLICATIONS: nsc_rows})
        result = asyncio.run(service.load(Dataset.PENDING_APPLICATIONS))
        assert result.ok
        assert result.data == nsc_rows
        assert cache.get(cache_key(Dataset.PENDING_APPLICATIONS)) == nsc_rows

    def test_second_load_served_from_cache(self, make_service, nsc_rows):
        service = make_service({Dataset.PENDING_APPLICATIONS: nsc_rows})
        asyncio.run(service.load(Dataset.PENDING_APPLICATIONS))
        asyncio.run(service.load(Dataset.PENDING_APPLICATIONS))
        assert service.provider.fetch_calls == [Dataset.PENDING_APPLICATIONS]

    def test_cached_copy_never_expires_on_read(self, make_service, nsc_rows, cache):
        cache.set(cache_key(Dataset.PENDING_APPLICATIONS), nsc_rows[:1])
        service = make_service({Dataset.PENDING_APPLICATIONS: nsc_rows})
        result = asyncio.run(service.load(Dataset.PENDING_APPLICATIONS))
        assert result.data == nsc_rows[:1]
        assert service.provider.fetch_calls == []

    def test_large_dataset_cached_compact(self, make_service, cache):
        rows = [{"date": "2024-06-01", "ccc_code": str(i)} for i in range(5)]
        service = make_service({Dataset.CONSUMERS: rows}, compact_threshold=3)
        asyncio.run(service.load(Dataset.CONSUMERS))
        assert is_compact(cache.get(cache_key(Dataset.CONSUMERS)))
        again = asyncio.run(service.load(Dataset.CONSUMERS))
        assert again.data == rows

    def test_fetch_failure_is_a_result_not_an_exception(self, make_service, cache):
        service = make_service(failures={Dataset.DOCKETS: network_error(Dataset.DOCKETS)})
        result = asyncio.run(service.dockets())
        assert not result.ok
        assert result.error.kind is FetchErrorKind.NETWORK
        assert result.unwrap_or([]) == []
        assert cache.get(cache_key(Dataset.DOCKETS)) is None


class TestTypedFetches:
    def test_rows_parse_into_records(self, make_service, nsc_rows):
        service = make_service({Dataset.PENDING_APPLICATIONS: nsc_rows})
        result = asyncio.run(service.pending_applications())
        first = result.data[0]
        assert isinstance(first, PendingApplication)
        assert first.appl_no == "A-1"
        assert first.delay_in_sc == 2.0
        assert first.delay_serial == 1
        assert first.date == "2024-06-02"

    def test_malformed_numbers_default_to_zero(self, make_service):
        rows = [{"ccc_code": "6613001", "DelayInSC": "pending", "NO_OF_POLES": ""}]
        service = make_service({Dataset.PENDING_APPLICATIONS: rows})
        record = asyncio.run(service.pending_applications()).data[0]
        assert record.delay_in_sc == 0.0
        assert record.no_of_poles == 0
        assert record.name == ""

    def test_empty_performance_sheet_uses_sample_data(self, make_service):
        service = make_service({Dataset.PERFORMANCE: []})
        result = asyncio.run(service.performance())
        assert result.ok
        assert len(result.data) == 30
        assert all(isinstance(m, PerformanceMetric) for m in result.data)

    def test_users_and_office_directory_share_the_user_sheet(self, make_service):
        rows = [{"user_id": "dd", "role": "DIVISION", "office_name": "Howrah Division",
                 "division_code": "6613000", "password_hash": "12345"}]
        service = make_service({Dataset.USERS: rows, Dataset.OFFICES: rows})
        users = asyncio.run(service.users()).data
        directory = asyncio.run(service.office_directory()).data
        assert users[0].division_code == "6613000"
        assert directory.lookup("6613000") == "Howrah Division"


class TestFanIn:
    """A screen's datasets load together, all or nothing."""

    def test_all_succeed(self, make_service, nsc_rows):
        service = make_service({Dataset.PENDING_APPLICATIONS: nsc_rows, Dataset.DOCKETS: []})
        result = asyncio.run(gather_results(service.pending_applications(), service.dockets()))
        assert result.ok
        applications, dockets = result.data
        assert len(applications) == 2
        assert dockets == []

    def test_one_failure_fails_the_group(self, make_service, nsc_rows):
        service = make_service(
            {Dataset.PENDING_APPLICATIONS: nsc_rows},
            failures={Dataset.DOCKETS: network_error(Dataset.DOCKETS)},
        )
        result = asyncio.run(gather_results(service.pending_applications(), service.dockets()))
        assert not result.ok
        assert result.data is None
        assert result.error.dataset is Dataset.DOCKETS

    def test_join_results_first_failure_wins(self):
        first = FetchResult.failure(network_error(Dataset.CONSUMERS))
        second = FetchResult.failure(network_error(Dataset.DOCKETS))
        joined = join_results([FetchResult.success([1]), first, second])
        assert joined.error is first.error


class TestRequestGuard:
    def test_latest_ticket_is_current(self):
        guard = RequestGuard()
        ticket = guard.issue("state-a")
        assert guard.is_current(ticket)
        assert guard.is_current(ticket, "state-a")

    def test_superseded_ticket_is_stale(self):
        guard = RequestGuard()
        old = guard.issue("state-a")
        new = guard.issue("state-b")
        assert not guard.is_current(old)
        assert guard.is_current(new)

    def test_ticket_stale_when_state_moved_on(self):
        guard = RequestGuard()
        ticket = guard.issue("state-a")
        assert not guard.is_current(ticket, "state-b")

    def test_filters_state_tracks_filter_changes(self):
        before = filters_state(PendingApplicationFilters(delay_range=["0-3 Day"]))
        same = filters_state(PendingApplicationFilters(delay_range="0-3 Day"))
        after = filters_state(PendingApplicationFilters(delay_range=["8+ Day"]))
        assert before == same
        assert before != after
        hash(before)


AUDIT_ROWS = [
    {"Timestamp": "2024-06-01T09:15:00", "User ID": "dd", "Action": "LOGIN", "Office": "Howrah",
     "Details": "Signed in", "Status": "SUCCESS"},
    {"Timestamp": "2024-06-03T18:40:00", "User ID": "reg_manager", "Action": "EXPORT", "Office": "Burdwan",
     "Details": "Pending NSC CSV", "Status": ""},
    {"Timestamp": "2024-06-02T11:05:00", "User ID": "ccc_1", "Action": "LOGIN", "Office": "Barasat",
     "Details": "Wrong password", "Status": "FAILED"},
]


class TestAuditLog:
    def test_entries_sorted_newest_first(self, make_service):
        service = make_service({Dataset.AUDIT_LOG: AUDIT_ROWS})
        entries = asyncio.run(service.audit_log()).data
        assert [e.timestamp[:10] for e in entries] == ["2024-06-03", "2024-06-02", "2024-06-01"]

    def test_fields_parsed_and_status_defaults_to_info(self, make_service):
        service = make_service({Dataset.AUDIT_LOG: AUDIT_ROWS})
        newest = asyncio.run(service.audit_log()).data[0]
        assert isinstance(newest, AuditEntry)
        assert newest.user_id == "reg_manager"
        assert newest.action == "EXPORT"
        assert newest.office == "Burdwan"
        assert newest.status == "INFO"

    def test_read_live_on_every_call(self, make_service):
        service = make_service({Dataset.AUDIT_LOG: AUDIT_ROWS})
        asyncio.run(service.audit_log())
        asyncio.run(service.audit_log())
        assert service.provider.fetch_calls == [Dataset.AUDIT_LOG, Dataset.AUDIT_LOG]

    def test_failure_propagates(self, make_service):
        service = make_service(failures={Dataset.AUDIT_LOG: network_error(Dataset.AUDIT_LOG)})
        result = asyncio.run(service.audit_log())
        assert not result.ok
        assert result.error.kind is FetchErrorKind.NETWORK

    def test_log_is_not_scoped_to_an_office(self, make_service, ccc_user):
        service = make_service({Dataset.AUDIT_LOG: AUDIT_ROWS})
        entries = asyncio.run(service.audit_log()).data
        assert filter_records(entries, ccc_user) == entries
