"""
Tests for breakdowns, KPI builders and collection rollups.
"""

from datetime import date

import pytest

from mzo_dashboard.data.aggregation import (
    aggregate,
    applicant_type_breakdown,
    audit_kpis,
    audit_status_breakdown,
    collection_kpis,
    collection_mode_breakdown,
    collection_rollups,
    consumer_category_breakdown,
    consumer_kpis,
    daily_trend,
    delay_range_breakdown,
    docket_category,
    docket_kpis,
    fiscal_year_key,
    parse_compact_date,
    pending_application_kpis,
    performance_kpis,
    week_key,
)
from mzo_dashboard.data.models import AuditEntry, ConsumerBucket, Docket, PerformanceMetric
from tests.conftest import make_application, make_payment


def _labels(result):
    return [e.label for e in result.entries]


class TestAggregateTotals:
    """Totals and shares hold for any grouping."""

    @pytest.mark.parametrize("values", [
        ["a"],
        ["a", "b", "a", "c", "", "b", "a"],
        ["x", "y", "z"],
        ["", "", ""],
    ])
    def test_counts_sum_to_record_count(self, values):
        records = [make_application(applicant_type=v) for v in values]
        result = applicant_type_breakdown(records)
        assert sum(e.count for e in result.entries) == len(records)
        assert result.total == len(records)

    @pytest.mark.parametrize("n_groups", [1, 3, 7])
    def test_shares_sum_to_hundred(self, n_groups):
        records = [make_application(applicant_type=f"T{i % n_groups}") for i in range(20)]
        result = applicant_type_breakdown(records)
        assert sum(e.share_of_total for e in result.entries) == pytest.approx(100.0, abs=0.05 * n_groups)

    def test_empty_values_fall_into_sentinel(self):
        records = [make_application(applicant_type=""), make_application(applicant_type="Domestic")]
        assert "N/A" in _labels(applicant_type_breakdown(records))

    def test_empty_input(self):
        result = aggregate([], lambda r: r)
        assert result.entries == ()
        assert result.total == 0

    def test_derived_average(self):
        records = [
            make_application(applicant_type="Domestic", delay_in_sc=4),
            make_application(applicant_type="Domestic", delay_in_sc=6),
            make_application(applicant_type="Commercial", delay_in_sc=20),
        ]
        result = applicant_type_breakdown(records)
        assert _labels(result) == ["Commercial", "Domestic"]
        assert result.entries[1].derived_avg == pytest.approx(5.0)
        assert result.entries[0].share_of_total == pytest.approx(33.3)

    def test_zero_weight_bucket_has_zero_average(self):
        buckets = [ConsumerBucket(category="Idle", count=0, load=10)]
        result = consumer_category_breakdown(buckets)
        assert result.entries[0].derived_avg == 0
        assert result.entries[0].share_of_total == 0


class TestSortOrder:
    """Most-actionable first, dataset by dataset."""

    def test_delay_ranges_ranked_by_serial(self):
        records = [
            make_application(delay_range="0-3 Day", delay_serial=1, delay_in_sc=100),
            make_application(delay_range="16+ Day", delay_serial=4, delay_in_sc=1),
            make_application(delay_range="4-7 Day", delay_serial=2),
            make_application(delay_range="8-15 Day", delay_serial=3),
        ]
        result = delay_range_breakdown(records)
        assert _labels(result) == ["16+ Day", "8-15 Day", "4-7 Day", "0-3 Day"]
        assert [e.serial for e in result.entries] == [4, 3, 2, 1]

    def test_serial_ties_keep_input_order(self):
        records = [
            make_application(delay_range="B", delay_serial=1),
            make_application(delay_range="A", delay_serial=1),
            make_application(delay_range="C", delay_serial=1),
        ]
        assert _labels(delay_range_breakdown(records)) == ["B", "A", "C"]

    def test_consumer_categories_top_five_by_count(self):
        buckets = [ConsumerBucket(category=f"C{i}", count=i * 10) for i in range(1, 8)]
        result = consumer_category_breakdown(buckets)
        assert _labels(result) == ["C7", "C6", "C5", "C4", "C3"]
        assert result.total == sum(i * 10 for i in range(1, 8))

    def test_collection_modes_by_amount(self):
        payments = [
            make_payment("20240601", count=10, amount=1000, mode="CASH"),
            make_payment("20240601", count=2, amount=5000, mode="ONLINE"),
            make_payment("20240602", count=1, amount=300, mode=""),
        ]
        result = collection_mode_breakdown(payments)
        assert _labels(result) == ["ONLINE", "CASH", "Unknown"]
        assert result.entries[0].derived_avg == pytest.approx(2500)
        assert result.total == 13


class TestKpis:
    def test_pending_application_kpis(self):
        records = [make_application(delay_in_sc=2, delay_in_wo=4), make_application(delay_in_sc=5)]
        kpis = {k.label: k.value for k in pending_application_kpis(records)}
        assert kpis["Total Pending"] == "2"
        assert kpis["Avg SC Delay"] == "3.5 Days"
        assert kpis["Avg WO Delay"] == "2.0 Days"

    def test_pending_application_kpis_empty(self):
        kpis = {k.label: k.value for k in pending_application_kpis([])}
        assert kpis["Total Pending"] == "0"
        assert kpis["Avg SC Delay"] == "0.0 Days"

    def test_consumer_kpis(self):
        buckets = [ConsumerBucket(count=1200, load=10.5, sd_lakh=1.25, osd_lakh=0.5),
                   ConsumerBucket(count=300, load=4.5, sd_lakh=0.75)]
        kpis = {k.label: k.value for k in consumer_kpis(buckets)}
        assert kpis["Consumers"] == "1,500"
        assert kpis["Total Load"] == "15 KW"
        assert kpis["SD (Lakh)"] == "₹2.00"
        assert kpis["OSD (Lakh)"] == "₹0.50"

    def test_docket_categories(self):
        assert docket_category("FUSE CALL") == "Technical"
        assert docket_category("Transformer fault") == "Technical"
        assert docket_category("High bill") == "Billing"
        assert docket_category("Payment not updated") == "Billing"
        assert docket_category("New connection") == "Others"
        assert docket_category("") == "Others"

    def test_docket_kpis_partition_total(self):
        dockets = [Docket(prob_type=p) for p in ["FUSE CALL", "BILL", "Other", "breakdown", "bill payment"]]
        kpis = {k.label: k.value for k in docket_kpis(dockets)}
        assert kpis == {"Total Dockets": "5", "Technical": "2", "Billing": "2", "Others": "1"}

    def test_collection_kpis(self):
        payments = [
            make_payment("20240601", count=3, amount=150000, mode="CASH"),
            make_payment("20240601", count=1, amount=50000, mode="ONLINE"),
        ]
        kpis = {k.label: k.value for k in collection_kpis(payments)}
        assert kpis["Total Collection"] == "₹2.00L"
        assert kpis["Total Count"] == "4"
        assert kpis["Avg / Trans"] == "₹50000"
        assert kpis["Preferred Mode"] == "CASH"

    def test_collection_kpis_empty(self):
        assert collection_kpis([]) == []

    def test_performance_trend_compares_latest_two_dates(self):
        metrics = [
            PerformanceMetric(date="2024-06-01", revenue=100, orders=10, customers=5, efficiency=50),
            PerformanceMetric(date="2024-06-02", revenue=150, orders=10, customers=5, efficiency=50),
        ]
        kpis = {k.label: k for k in performance_kpis(metrics)}
        assert kpis["Revenue"].trend == pytest.approx(50.0)
        assert kpis["Orders"].trend == 0
        assert kpis["Revenue"].value == "₹250"

    def test_performance_trend_single_date(self):
        kpis = performance_kpis([PerformanceMetric(date="2024-06-01", revenue=100)])
        assert all(k.trend == 0 for k in kpis)

    def test_daily_trend_last_seven_ascending(self):
        metrics = [
            PerformanceMetric(date=f"2024-06-{day:02d}", revenue=day, orders=1)
            for day in range(10, 0, -1)
        ]
        trend = daily_trend(metrics)
        assert trend["date"].tolist() == [f"2024-06-{d:02d}" for d in range(4, 11)]
        assert trend["revenue"].tolist() == list(range(4, 11))


class TestDateKeys:
    def test_fiscal_year_boundaries(self):
        assert fiscal_year_key(date(2024, 3, 15)) == "FY 2023-2024"
        assert fiscal_year_key(date(2024, 4, 1)) == "FY 2024-2025"
        assert fiscal_year_key(date(2024, 12, 31)) == "FY 2024-2025"

    def test_week_key_sunday_start(self):
        # 2024-01-01 is a Monday.
        assert week_key(date(2024, 1, 1)) == "2024-W01"
        assert week_key(date(2024, 1, 6)) == "2024-W01"
        assert week_key(date(2024, 1, 7)) == "2024-W02"
        assert week_key(date(2024, 2, 1)) == "2024-W05"

    def test_week_key_year_starting_sunday(self):
        # 2023-01-01 is a Sunday.
        assert week_key(date(2023, 1, 1)) == "2023-W01"
        assert week_key(date(2023, 1, 8)) == "2023-W02"

    @pytest.mark.parametrize("raw, expected", [
        ("20240315", date(2024, 3, 15)),
        (20240315, date(2024, 3, 15)),
        ("20240315093000", date(2024, 3, 15)),
        ("2024-03-15", None),
        ("20241301", None),
        ("20240230", None),
        ("", None),
    ])
    def test_parse_compact_date(self, raw, expected):
        assert parse_compact_date(raw) == expected


class TestCollectionRollups:
    def test_fiscal_year_split(self):
        rollups = collection_rollups([
            make_payment("20240315", count=2, amount=200),
            make_payment("20240401", count=1, amount=50),
        ])
        assert [(p.key, p.count, p.amount) for p in rollups.fiscal_year] == [
            ("FY 2023-2024", 2, 200.0),
            ("FY 2024-2025", 1, 50.0),
        ]

    def test_four_granularities_sorted_ascending(self):
        rollups = collection_rollups([
            make_payment("20240502", amount=10),
            make_payment("20240115", amount=20),
            make_payment("20240501", amount=30),
            make_payment("20240115", amount=5),
        ])
        assert [p.key for p in rollups.daily] == ["2024-01-15", "2024-05-01", "2024-05-02"]
        assert [p.amount for p in rollups.daily] == [25.0, 30.0, 10.0]
        assert [p.key for p in rollups.monthly] == ["2024-01", "2024-05"]
        assert [p.key for p in rollups.weekly] == sorted(p.key for p in rollups.weekly)
        assert [p.key for p in rollups.fiscal_year] == ["FY 2023-2024", "FY 2024-2025"]

    def test_invalid_dates_skipped_everywhere(self):
        rollups = collection_rollups([
            make_payment("20240601", amount=100),
            make_payment("bad", amount=999),
            make_payment("20241341", amount=999),
        ])
        for periods in (rollups.daily, rollups.weekly, rollups.monthly, rollups.fiscal_year):
            assert sum(p.amount for p in periods) == 100.0

    def test_for_granularity(self):
        rollups = collection_rollups([make_payment("20240601")])
        assert rollups.for_granularity("Monthly") == rollups.monthly
        assert rollups.for_granularity("FY") == rollups.fiscal_year
        assert rollups.for_granularity("Hourly") == ()

    def test_no_valid_dates(self):
        rollups = collection_rollups([make_payment("")])
        assert rollups.daily == () and rollups.fiscal_year == ()


class TestAuditSummary:
    ENTRIES = [
        AuditEntry(timestamp="2024-06-03", user_id="dd", action="LOGIN", status="SUCCESS"),
        AuditEntry(timestamp="2024-06-02", user_id="dd", action="LOGIN", status="FAILED"),
        AuditEntry(timestamp="2024-06-01", user_id="reg_manager", action="EXPORT", status="SUCCESS"),
        AuditEntry(timestamp="2024-06-01", user_id="", action="SYNC", status="INFO"),
    ]

    def test_kpis(self):
        values = {k.label: k.value for k in audit_kpis(self.ENTRIES)}
        assert values == {"Events": "4", "Success": "2", "Failed": "1", "Users": "2"}

    def test_status_breakdown(self):
        result = audit_status_breakdown(self.ENTRIES)
        assert [(e.label, e.count) for e in result.entries] == [("SUCCESS", 2), ("FAILED", 1), ("INFO", 1)]
        assert result.total == 4
