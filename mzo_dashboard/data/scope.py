"""
Mandatory hierarchy scoping.

Only the hierarchy field at the user's own role level is checked. A ZONE
user is compared on `zone_code` alone, a DIVISION user on `division_code`
alone; ancestor codes are never verified.

A record with no value in the checked field passes: the check is skipped
when the record lacks the code, not when the user does.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Mapping, Optional, TypeVar

from mzo_dashboard.data.models import HIERARCHY_FIELDS, User, parse_text

T = TypeVar("T")


def _record_code(record: Any, field_name: str) -> Optional[str]:
    if isinstance(record, Mapping):
        value = record.get(field_name)
    elif field_name in getattr(record, "HIERARCHY_FIELDS", HIERARCHY_FIELDS):
        value = getattr(record, field_name, None)
    else:
        return None
    if value is None:
        return None
    return parse_text(value)


def is_in_scope(record: Any, user: User) -> bool:
    field_name = user.role.code_field
    value = _record_code(record, field_name)
    if not value:
        return True
    return value == (user.scope_code or "")


def scope_records(records: Iterable[T], user: User) -> List[T]:
    return [r for r in records if is_in_scope(r, user)]
