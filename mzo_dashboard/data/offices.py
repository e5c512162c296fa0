"""
Office name directory: hierarchy code -> descriptive office name, and the
header label shown above every report ("Barasat CCC", "North Region").
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence

from mzo_dashboard.data.loader import get_value
from mzo_dashboard.data.models import HIERARCHY_FIELDS, Role, User, parse_text

_LEVEL_PREFIX = re.compile(r"^(Z-|R-|D-|CCC-)", re.IGNORECASE)
_NUMERIC = re.compile(r"^\d+$")

FALLBACK_LABEL = "Enterprise"


def strip_level_prefix(name: str) -> str:
    return _LEVEL_PREFIX.sub("", name or "").strip()


def role_label(name: str, role: Role) -> str:
    return f"{strip_level_prefix(name)} {role.label}"


@dataclass(frozen=True)
class OfficeDirectory:
    names: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_rows(cls, rows: Iterable[Mapping[str, Any]]) -> "OfficeDirectory":
        """Every non-empty code on a row maps to that row's office name; later rows win."""
        names: Dict[str, str] = {}
        for row in rows:
            name = parse_text(get_value(row, "office_name")) or parse_text(get_value(row, "office"))
            if not name:
                continue
            for code_field in HIERARCHY_FIELDS:
                code = parse_text(get_value(row, code_field))
                if code:
                    names[code] = name
        return cls(names=names)

    def __len__(self) -> int:
        return len(self.names)

    def lookup(self, code: Optional[str]) -> Optional[str]:
        if not code:
            return None
        return self.names.get(str(code))

    def resolve_name(self, code: Optional[str]) -> str:
        """Cleaned office name for `code`, or the raw code when it is not in the directory."""
        name = self.lookup(code)
        if name is None:
            return code or ""
        return strip_level_prefix(name)

    def header_label(self, user: User, records: Sequence[Any] = ()) -> str:
        """
        Display label for the user's office, first hit wins:

        1. the user's own descriptive office name (ignored when purely numeric);
        2. the directory name for the user's most specific code;
        3. the directory name, or raw code, of the first record's CCC;
        4. the user's most specific raw code;
        5. "Enterprise".
        """
        display = user.office_name or ""
        if not display or _NUMERIC.match(display):
            display = self.lookup(user.most_specific_code) or display

        if not display and records:
            first_ccc = parse_text(getattr(records[0], "ccc_code", ""))
            display = self.lookup(first_ccc) or first_ccc

        if not display:
            display = user.most_specific_code or FALLBACK_LABEL

        return role_label(display, user.role)
