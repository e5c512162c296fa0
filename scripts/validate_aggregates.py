"""Quick validation script for the aggregation layer.

Run with `python scripts/validate_aggregates.py` to check that parsed sheet
rows survive scoping, filtering and aggregation with the expected totals.
"""

from __future__ import annotations

from mzo_dashboard.data.aggregation import collection_rollups, delay_range_breakdown
from mzo_dashboard.data.filters import PendingApplicationFilters, filter_records
from mzo_dashboard.data.models import CollectionTxn, PendingApplication, Role, User, parse_record


def main() -> None:
    rows = [
        {"ccc_code": "6613001", "DelayRange": "0-3 Day", "DelaySerial": "1", "DelayInSC": "2"},
        {"ccc_code": "6613001", "DelayRange": "8+ Day", "DelaySerial": "3", "DelayInSC": "12"},
        {"ccc_code": "6613002", "DelayRange": "8+ Day", "DelaySerial": "3", "DelayInSC": "n/a"},
        {"ccc_code": "", "DelayRange": "", "DelaySerial": "", "DelayInSC": ""},
    ]
    applications = [parse_record(PendingApplication, row) for row in rows]
    user = User(user_id="ccc", role=Role.CCC, ccc_code="6613001")

    scoped = filter_records(applications, user, PendingApplicationFilters(delay_range=[]))
    if len(scoped) != 3:
        raise SystemExit(f"Expected 3 scoped rows, got {len(scoped)}")

    breakdown = delay_range_breakdown(scoped)
    assert breakdown.total == len(scoped), "Bucket counts must add up to the record count"
    assert breakdown.entries[0].label == "8+ Day", "Highest DelaySerial should rank first"
    assert abs(sum(e.share_of_total for e in breakdown.entries) - 100) <= 0.1 * len(breakdown.entries)

    payments = [
        parse_record(CollectionTxn, {"PAYMENT_DT": "20240315", "COUNT": "2", "AMOUNT PAID": "1,500"}),
        parse_record(CollectionTxn, {"PAYMENT_DT": "20240401", "COUNT": "1", "AMOUNT PAID": "700"}),
        parse_record(CollectionTxn, {"PAYMENT_DT": "2024-04-01", "COUNT": "1", "AMOUNT PAID": "700"}),
    ]
    rollups = collection_rollups(payments)
    assert [p.key for p in rollups.fiscal_year] == ["FY 2023-2024", "FY 2024-2025"]
    assert sum(p.amount for p in rollups.daily) == 2200, "Invalid payment dates must be skipped"

    print("Aggregation validation passed. Buckets:", [e.label for e in breakdown.entries])


if __name__ == "__main__":
    main()
