"""
Aggregations over scoped, filtered records: categorical breakdowns with
counts and shares, KPI tuples for the report headers, and time-bucketed
collection rollups (daily / weekly / monthly / fiscal year).

Breakdowns are always sorted "most actionable first"; each call site below
documents which key that means for its dataset.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date
from operator import attrgetter
from typing import Any, Callable, Iterable, List, Optional, Sequence, Tuple, Union

import pandas as pd

from mzo_dashboard.data.models import (
    AuditEntry,
    CollectionTxn,
    ConsumerBucket,
    Docket,
    PendingApplication,
    PerformanceMetric,
    parse_text,
    record_to_row,
)

Number = Union[int, float]

TECHNICAL_KEYWORDS = ("fuse", "transformer", "breakdown")
BILLING_KEYWORDS = ("bill", "payment")
LAKH = 100_000


@dataclass(frozen=True)
class AggregateEntry:
    label: str
    count: Number
    share_of_total: float
    derived_avg: float
    amount: float = 0.0
    serial: Optional[int] = None


@dataclass(frozen=True)
class AggregateResult:
    name: str
    entries: Tuple[AggregateEntry, ...]
    total: Number

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            [
                {
                    "Label": e.label,
                    "Count": e.count,
                    "Share": e.share_of_total,
                    "Average": e.derived_avg,
                    "Amount": e.amount,
                }
                for e in self.entries
            ],
            columns=["Label", "Count", "Share", "Average", "Amount"],
        )


@dataclass(frozen=True)
class Kpi:
    label: str
    value: str
    trend: float = 0.0
    icon: str = ""
    color: str = ""


def _as_number(value: float) -> Number:
    value = float(value)
    return int(value) if value.is_integer() else value


def aggregate(
    records: Iterable[Any],
    group_by: Callable[[Any], Any],
    *,
    name: str = "",
    weight: Optional[Callable[[Any], float]] = None,
    secondary: Optional[Callable[[Any], float]] = None,
    serial: Optional[Callable[[Any], int]] = None,
    sort_by: str = "derived_avg",
    sentinel: str = "N/A",
    limit: Optional[int] = None,
) -> AggregateResult:
    """Bucket records by `group_by` and summarise each bucket.

    `weight` is the count measure (one per record by default) and
    `secondary` the accumulator behind `derived_avg = secondary / count`.
    Empty group values fall into the `sentinel` bucket, so the bucket
    counts always add up to the total. When `serial` is given the buckets
    are ranked by it, highest first; otherwise by `sort_by`
    (`derived_avg`, `count` or `amount`). Ties keep first-seen order.
    """
    records = list(records)
    if not records:
        return AggregateResult(name=name, entries=(), total=0)

    frame = pd.DataFrame(
        {
            "label": [parse_text(group_by(r)) for r in records],
            "count": [float(weight(r)) if weight else 1.0 for r in records],
            "amount": [float(secondary(r)) if secondary else 0.0 for r in records],
            "serial": [int(serial(r)) if serial else 0 for r in records],
        }
    )
    frame["label"] = frame["label"].replace("", sentinel)

    grouped = (
        frame.groupby("label", sort=False)
        .agg(count=("count", "sum"), amount=("amount", "sum"), serial=("serial", "first"))
        .reset_index()
    )
    total = float(grouped["count"].sum())
    grouped["derived_avg"] = (grouped["amount"] / grouped["count"]).where(grouped["count"] > 0, 0.0)
    if total > 0:
        grouped["share"] = (grouped["count"] / total * 100).round(1)
    else:
        grouped["share"] = 0.0

    sort_key = "serial" if serial else sort_by
    grouped = grouped.sort_values(sort_key, ascending=False, kind="stable")
    if limit is not None:
        grouped = grouped.head(limit)

    entries = tuple(
        AggregateEntry(
            label=str(row.label),
            count=_as_number(row.count),
            share_of_total=float(row.share),
            derived_avg=float(row.derived_avg),
            amount=float(row.amount),
            serial=int(row.serial) if serial else None,
        )
        for row in grouped.itertuples(index=False)
    )
    return AggregateResult(name=name, entries=entries, total=_as_number(total))


# --------------------------------------------------------------------------
# Dataset breakdowns
# --------------------------------------------------------------------------

def delay_range_breakdown(records: Sequence[PendingApplication]) -> AggregateResult:
    """Pending applications per delay range, ranked by the sheet's DelaySerial
    (highest escalation first); the average is the SC delay in days."""
    return aggregate(
        records,
        attrgetter("delay_range"),
        name="Delay Range",
        secondary=attrgetter("delay_in_sc"),
        serial=attrgetter("delay_serial"),
    )


def applicant_type_breakdown(records: Sequence[PendingApplication]) -> AggregateResult:
    """Sorted by average SC delay, longest first."""
    return aggregate(
        records,
        attrgetter("applicant_type"),
        name="Applicant Type",
        secondary=attrgetter("delay_in_sc"),
        sort_by="derived_avg",
    )


def _consumer_breakdown(records, attr: str, name: str, limit: Optional[int] = None) -> AggregateResult:
    # Weighted by the bucket's consumer COUNT; average is load per consumer.
    return aggregate(
        records,
        attrgetter(attr),
        name=name,
        weight=attrgetter("count"),
        secondary=attrgetter("load"),
        sort_by="count",
        sentinel="Unknown",
        limit=limit,
    )


def consumer_category_breakdown(records: Sequence[ConsumerBucket], top: int = 5) -> AggregateResult:
    return _consumer_breakdown(records, "category", "Category", limit=top)


def consumer_status_breakdown(records: Sequence[ConsumerBucket]) -> AggregateResult:
    return _consumer_breakdown(records, "conn_stat", "Connection Status")


def consumer_phase_breakdown(records: Sequence[ConsumerBucket]) -> AggregateResult:
    return _consumer_breakdown(records, "conn_phase", "Connection Phase")


def docket_category(prob_type: str) -> str:
    text = (prob_type or "").lower()
    if any(k in text for k in TECHNICAL_KEYWORDS):
        return "Technical"
    if any(k in text for k in BILLING_KEYWORDS):
        return "Billing"
    return "Others"


def docket_problem_breakdown(records: Sequence[Docket]) -> AggregateResult:
    """Dockets per problem type, most frequent first."""
    return aggregate(records, attrgetter("prob_type"), name="Problem Type", sort_by="count", sentinel="Unknown")


def collection_mode_breakdown(records: Sequence[CollectionTxn]) -> AggregateResult:
    """Collections per payment mode, largest amount first; average is amount per transaction."""
    return aggregate(
        records,
        attrgetter("mode"),
        name="Payment Mode",
        weight=attrgetter("count"),
        secondary=attrgetter("amount_paid"),
        sort_by="amount",
        sentinel="Unknown",
    )



def audit_status_breakdown(records: Sequence[AuditEntry]) -> AggregateResult:
    return aggregate(records, attrgetter("status"), name="Status", sort_by="count", sentinel="INFO")


# --------------------------------------------------------------------------
# KPIs
# --------------------------------------------------------------------------

def _fmt_count(value: Number) -> str:
    return f"{value:,.0f}"


def _fmt_quantity(value: float) -> str:
    return f"{value:,.0f}" if float(value).is_integer() else f"{value:,.2f}"


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def pending_application_kpis(records: Sequence[PendingApplication]) -> List[Kpi]:
    total = len(records)
    avg_sc = _mean([r.delay_in_sc for r in records])
    avg_wo = _mean([r.delay_in_wo for r in records])
    avg_qtn = _mean([r.delay_in_qtn for r in records])
    return [
        Kpi("Total Pending", _fmt_count(total), 0, "fa-hourglass-half", "bg-rose-500"),
        Kpi("Avg SC Delay", f"{avg_sc:.1f} Days", 0, "fa-clock", "bg-orange-500"),
        Kpi("Avg WO Delay", f"{avg_wo:.1f} Days", 0, "fa-briefcase", "bg-blue-500"),
        Kpi("Avg Qtn Delay", f"{avg_qtn:.1f} Days", 0, "fa-file-invoice-dollar", "bg-indigo-500"),
    ]


def consumer_kpis(records: Sequence[ConsumerBucket]) -> List[Kpi]:
    total_count = sum(r.count for r in records)
    total_load = sum(r.load for r in records)
    total_sd = sum(r.sd_lakh for r in records)
    total_osd = sum(r.osd_lakh for r in records)
    return [
        Kpi("Consumers", _fmt_count(total_count), 0, "fa-users", "bg-blue-500"),
        Kpi("Total Load", f"{_fmt_quantity(total_load)} KW", 0, "fa-bolt", "bg-orange-500"),
        Kpi("SD (Lakh)", f"₹{total_sd:.2f}", 0, "fa-vault", "bg-emerald-500"),
        Kpi("OSD (Lakh)", f"₹{total_osd:.2f}", 0, "fa-triangle-exclamation", "bg-rose-500"),
    ]


def docket_kpis(records: Sequence[Docket]) -> List[Kpi]:
    categories = [docket_category(r.prob_type) for r in records]
    technical = categories.count("Technical")
    billing = categories.count("Billing")
    return [
        Kpi("Total Dockets", _fmt_count(len(records)), 0, "fa-ticket", "bg-indigo-600"),
        Kpi("Technical", _fmt_count(technical), 0, "fa-screwdriver-wrench", "bg-rose-600"),
        Kpi("Billing", _fmt_count(billing), 0, "fa-file-invoice-dollar", "bg-amber-600"),
        Kpi("Others", _fmt_count(len(records) - technical - billing), 0, "fa-circle-info", "bg-slate-600"),
    ]


def collection_kpis(records: Sequence[CollectionTxn]) -> List[Kpi]:
    if not records:
        return []
    total_amount = sum(r.amount_paid for r in records)
    total_count = sum(r.count for r in records)
    avg_amount = total_amount / total_count if total_count > 0 else 0.0
    modes = collection_mode_breakdown(records)
    top_mode = modes.entries[0].label if modes.entries else "N/A"
    return [
        Kpi("Total Collection", f"₹{total_amount / LAKH:.2f}L", 0, "fa-vault", "bg-emerald-600"),
        Kpi("Total Count", _fmt_count(total_count), 0, "fa-receipt", "bg-blue-600"),
        Kpi("Avg / Trans", f"₹{avg_amount:.0f}", 0, "fa-calculator", "bg-indigo-600"),
        Kpi("Preferred Mode", top_mode, 0, "fa-credit-card", "bg-purple-600"),
    ]


def audit_kpis(records: Sequence[AuditEntry]) -> List[Kpi]:
    statuses = [r.status for r in records]
    return [
        Kpi("Events", _fmt_count(len(records)), 0, "fa-list-check", "bg-blue-600"),
        Kpi("Success", _fmt_count(statuses.count("SUCCESS")), 0, "fa-check", "bg-emerald-600"),
        Kpi("Failed", _fmt_count(statuses.count("FAILED")), 0, "fa-xmark", "bg-rose-600"),
        Kpi("Users", _fmt_count(len({r.user_id for r in records if r.user_id})), 0, "fa-user", "bg-slate-600"),
    ]


def pct_change(current: Optional[float], previous: Optional[float]) -> Optional[float]:
    if current is None or previous in (None, 0):
        return None
    try:
        return ((current - previous) / previous) * 100
    except ZeroDivisionError:
        return None


def _trend(daily: pd.DataFrame, column: str) -> float:
    if len(daily) < 2:
        return 0.0
    change = pct_change(float(daily[column].iloc[-1]), float(daily[column].iloc[-2]))
    if change is None or math.isnan(change):
        return 0.0
    return round(change, 1)


def performance_kpis(records: Sequence[PerformanceMetric]) -> List[Kpi]:
    """Headline totals; `trend` compares the latest date with the one before it."""
    total_revenue = sum(r.revenue for r in records)
    total_orders = sum(r.orders for r in records)
    total_customers = sum(r.customers for r in records)
    avg_efficiency = _mean([r.efficiency for r in records])

    daily = pd.DataFrame()
    if records:
        daily = (
            to_frame(records)
            .groupby("date")
            .agg(revenue=("revenue", "sum"), orders=("orders", "sum"),
                 customers=("customers", "sum"), efficiency=("efficiency", "mean"))
            .sort_index()
        )
    return [
        Kpi("Revenue", f"₹{total_revenue:,.0f}", _trend(daily, "revenue"), "fa-indian-rupee-sign", "bg-emerald-500"),
        Kpi("Orders", _fmt_count(total_orders), _trend(daily, "orders"), "fa-cart-shopping", "bg-blue-500"),
        Kpi("Active Users", _fmt_count(total_customers), _trend(daily, "customers"), "fa-users", "bg-orange-500"),
        Kpi("Efficiency", f"{avg_efficiency:.1f}%", _trend(daily, "efficiency"), "fa-bolt", "bg-purple-500"),
    ]


def open_dockets_kpi(dockets: Sequence[Docket]) -> Kpi:
    return Kpi("Open Dockets", _fmt_count(len(dockets)), 0, "fa-ticket-simple", "bg-indigo-600")


def daily_trend(records: Sequence[PerformanceMetric], last_n: int = 7) -> pd.DataFrame:
    """Revenue and orders per date, ascending, limited to the last `last_n` dates."""
    if not records:
        return pd.DataFrame(columns=["date", "revenue", "orders"])
    frame = to_frame(records)
    daily = (
        frame.groupby("date", as_index=False)[["revenue", "orders"]]
        .sum()
        .sort_values("date")
    )
    return daily.tail(last_n).reset_index(drop=True)


# --------------------------------------------------------------------------
# Collection rollups
# --------------------------------------------------------------------------

@dataclass(frozen=True)
class PeriodTotal:
    key: str
    count: Number
    amount: float


@dataclass(frozen=True)
class CollectionRollups:
    daily: Tuple[PeriodTotal, ...] = ()
    weekly: Tuple[PeriodTotal, ...] = ()
    monthly: Tuple[PeriodTotal, ...] = ()
    fiscal_year: Tuple[PeriodTotal, ...] = ()

    def for_granularity(self, granularity: str) -> Tuple[PeriodTotal, ...]:
        return {
            "FY": self.fiscal_year,
            "Monthly": self.monthly,
            "Weekly": self.weekly,
            "Daily": self.daily,
        }.get(granularity, ())


def parse_compact_date(value: Any) -> Optional[date]:
    """`YYYYMMDD` (extra trailing characters ignored) -> date, or None when invalid."""
    digits = parse_text(value)[:8]
    if len(digits) != 8 or not digits.isdigit():
        return None
    try:
        return date(int(digits[:4]), int(digits[4:6]), int(digits[6:8]))
    except ValueError:
        return None


def week_key(day: date) -> str:
    """Approximate week label: day-of-year offset by January 1st's weekday,
    weeks starting on Sunday. Not ISO-8601."""
    jan1 = date(day.year, 1, 1)
    jan1_weekday = (jan1.weekday() + 1) % 7  # Sunday = 0
    past_days = (day - jan1).days
    week = math.ceil((past_days + jan1_weekday + 1) / 7)
    return f"{day.year}-W{week:02d}"


def fiscal_year_key(day: date) -> str:
    """April-March fiscal year label."""
    if day.month >= 4:
        return f"FY {day.year}-{day.year + 1}"
    return f"FY {day.year - 1}-{day.year}"


def collection_rollups(records: Iterable[CollectionTxn]) -> CollectionRollups:
    rows = []
    for r in records:
        day = parse_compact_date(r.payment_dt)
        if day is None:
            continue
        rows.append(
            {
                "daily": day.isoformat(),
                "weekly": week_key(day),
                "monthly": f"{day:%Y-%m}",
                "fiscal_year": fiscal_year_key(day),
                "count": r.count,
                "amount": r.amount_paid,
            }
        )
    if not rows:
        return CollectionRollups()

    frame = pd.DataFrame(rows)

    def _rollup(column: str) -> Tuple[PeriodTotal, ...]:
        grouped = frame.groupby(column)[["count", "amount"]].sum().sort_index()
        return tuple(
            PeriodTotal(key=str(key), count=_as_number(row["count"]), amount=float(row["amount"]))
            for key, row in grouped.iterrows()
        )

    return CollectionRollups(
        daily=_rollup("daily"),
        weekly=_rollup("weekly"),
        monthly=_rollup("monthly"),
        fiscal_year=_rollup("fiscal_year"),
    )


def rollup_frame(periods: Sequence[PeriodTotal]) -> pd.DataFrame:
    return pd.DataFrame(
        [{"key": p.key, "count": p.count, "amount": p.amount} for p in periods],
        columns=["key", "count", "amount"],
    )


def to_frame(records: Iterable[Any]) -> pd.DataFrame:
    return pd.DataFrame([record_to_row(r) for r in records])
