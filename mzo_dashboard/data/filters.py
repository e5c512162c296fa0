"""
Filter utilities that apply report filters to typed dataset records.

Every filter field is optional and the populated ones are AND-ed together:

* multi-select fields accept a list of values (a bare string is treated as
  a one-element selection); an empty selection does not restrict;
* `search_query` is a case-insensitive substring match over the record
  type's search fields;
* `date_range` compares ISO-style date strings directly, bounds inclusive.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, ClassVar, Dict, Iterable, List, Optional, Sequence, Tuple, TypeVar, Union

from mzo_dashboard.data.models import Record, User, parse_text
from mzo_dashboard.data.scope import is_in_scope

Selection = Union[str, Sequence[str], None]
R = TypeVar("R")


@dataclass(frozen=True)
class DateRange:
    start: Optional[str] = None
    end: Optional[str] = None


@dataclass
class HierarchyFilters:
    zone: Selection = None
    region: Selection = None
    division: Selection = None
    ccc: Selection = None
    search_query: str = ""
    date_range: Optional[DateRange] = None

    # filter attribute -> record attribute
    FIELD_MAP: ClassVar[Dict[str, str]] = {
        "zone": "zone_code",
        "region": "region_code",
        "division": "division_code",
        "ccc": "ccc_code",
    }

    def selections(self) -> Dict[str, Tuple[str, ...]]:
        """Populated multi-select constraints keyed by record attribute."""
        out = {}
        for filter_attr, record_attr in self.FIELD_MAP.items():
            selected = as_selection(getattr(self, filter_attr))
            if selected:
                out[record_attr] = selected
        return out


@dataclass
class PendingApplicationFilters(HierarchyFilters):
    delay_range: Selection = None
    pole_non_pole: Selection = None
    applicant_type: Selection = None
    scn_status: Selection = None
    applied_phase: Selection = None
    no_of_poles: Selection = None
    load_watts: Selection = None

    FIELD_MAP: ClassVar[Dict[str, str]] = {
        **HierarchyFilters.FIELD_MAP,
        "delay_range": "delay_range",
        "pole_non_pole": "pole_non_pole",
        "applicant_type": "applicant_type",
        "scn_status": "scn_status",
        "applied_phase": "applied_phase",
        "no_of_poles": "no_of_poles",
        "load_watts": "load_watts",
    }


@dataclass
class ConsumerFilters(HierarchyFilters):
    conn_stat: Selection = None
    base_class: Selection = None
    category: Selection = None
    conn_phase: Selection = None
    type_of_meter: Selection = None
    govt_stat: Selection = None

    FIELD_MAP: ClassVar[Dict[str, str]] = {
        **HierarchyFilters.FIELD_MAP,
        "conn_stat": "conn_stat",
        "base_class": "base_class",
        "category": "category",
        "conn_phase": "conn_phase",
        "type_of_meter": "type_of_meter",
        "govt_stat": "govt_stat",
    }


@dataclass
class DocketFilters(HierarchyFilters):
    prob_type: Selection = None

    FIELD_MAP: ClassVar[Dict[str, str]] = {**HierarchyFilters.FIELD_MAP, "prob_type": "prob_type"}


@dataclass
class CollectionFilters(HierarchyFilters):
    mode: Selection = None

    FIELD_MAP: ClassVar[Dict[str, str]] = {**HierarchyFilters.FIELD_MAP, "mode": "mode"}


@dataclass
class AuditLogFilters(HierarchyFilters):
    action: Selection = None
    status: Selection = None

    FIELD_MAP: ClassVar[Dict[str, str]] = {**HierarchyFilters.FIELD_MAP, "action": "action", "status": "status"}


DEFAULT_FILTERS = HierarchyFilters()


def as_selection(value: Selection) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,) if value else ()
    return tuple(parse_text(v) for v in value)


def selection_matches(value: Any, selection: Selection) -> bool:
    selected = as_selection(selection)
    if not selected:
        return True
    return parse_text(value) in selected


def search_matches(query: Optional[str], values: Iterable[Any]) -> bool:
    if not query:
        return True
    needle = query.lower()
    return any(needle in parse_text(v).lower() for v in values)


def date_in_range(value: Optional[str], date_range: Optional[DateRange]) -> bool:
    # Plain string comparison: assumes zero-padded, year-first dates.
    if date_range is None:
        return True
    value = value or ""
    if date_range.start and value < date_range.start:
        return False
    if date_range.end and value > date_range.end:
        return False
    return True


def _record_fields(record: Any) -> Tuple[str, ...]:
    return tuple(f.name for f in fields(record))


def matches(record: Record, filters: HierarchyFilters) -> bool:
    available = _record_fields(record)

    for record_attr, selected in filters.selections().items():
        # Not carried by this dataset, so not applicable.
        if record_attr not in available:
            continue
        if parse_text(getattr(record, record_attr)) not in selected:
            return False

    if filters.search_query:
        search_fields = getattr(record, "SEARCH_FIELDS", ())
        if search_fields and not search_matches(
            filters.search_query, (getattr(record, f) for f in search_fields)
        ):
            return False

    if filters.date_range is not None and "date" in available:
        if not date_in_range(getattr(record, "date"), filters.date_range):
            return False

    return True


def filter_records(records: Iterable[R], user: User, filters: Optional[HierarchyFilters] = None) -> List[R]:
    """Scope and filter in a single pass."""
    filters = filters or DEFAULT_FILTERS
    return [r for r in records if is_in_scope(r, user) and matches(r, filters)]


def distinct_values(records: Iterable[Any], attr: str) -> List[str]:
    """Sorted non-empty values of `attr`, for populating multi-select options."""
    return sorted({parse_text(getattr(r, attr)) for r in records} - {""})


def serialize_filters(filters: HierarchyFilters) -> Dict[str, Any]:
    """
    Convert a filter dataclass to a JSON-serialisable dictionary to be
    stored in session_state, compared between requests, or logged.
    """
    out: Dict[str, Any] = {"type": type(filters).__name__}
    for f in fields(filters):
        value = getattr(filters, f.name)
        if isinstance(value, DateRange):
            value = [value.start, value.end]
        elif f.name in filters.FIELD_MAP:
            value = list(as_selection(value))
        out[f.name] = value
    return out
