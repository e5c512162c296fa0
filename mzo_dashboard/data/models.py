"""
Typed records for every dataset the dashboard reads, plus the user descriptor
and the administrative role hierarchy (Zone -> Region -> Division -> CCC).

Each record type declares how it is parsed from a sheet row: which header(s)
feed each attribute and whether the value is text, a float or an int. Numeric
cells that do not parse become 0 and missing text cells become "", so a row
is never dropped because of a malformed value.
"""

from __future__ import annotations

import math
import re
from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import Any, ClassVar, Dict, Mapping, Optional, Tuple, Type, TypeVar, Union

HIERARCHY_FIELDS: Tuple[str, ...] = ("zone_code", "region_code", "division_code", "ccc_code")

_NON_ALNUM = re.compile(r"[^a-z0-9]")


class Role(str, Enum):
    ZONE = "ZONE"
    REGION = "REGION"
    DIVISION = "DIVISION"
    CCC = "CCC"

    @property
    def level(self) -> int:
        """Breadth of the role: CCC is 0, ZONE is 3."""
        return _ROLE_LEVELS[self]

    @property
    def code_field(self) -> str:
        return _ROLE_CODE_FIELDS[self]

    @property
    def label(self) -> str:
        return _ROLE_LABELS[self]

    @classmethod
    def parse(cls, value: Any, default: "Role" = None) -> "Role":
        text = str(value or "").strip().upper()
        try:
            return cls(text)
        except ValueError:
            return default if default is not None else cls.CCC


_ROLE_LEVELS = {Role.CCC: 0, Role.DIVISION: 1, Role.REGION: 2, Role.ZONE: 3}
_ROLE_CODE_FIELDS = {
    Role.ZONE: "zone_code",
    Role.REGION: "region_code",
    Role.DIVISION: "division_code",
    Role.CCC: "ccc_code",
}
_ROLE_LABELS = {Role.ZONE: "Zone", Role.REGION: "Region", Role.DIVISION: "Division", Role.CCC: "CCC"}


@dataclass(frozen=True)
class User:
    user_id: str
    role: Role
    full_name: str = ""
    office_name: Optional[str] = None
    zone_code: Optional[str] = None
    region_code: Optional[str] = None
    division_code: Optional[str] = None
    ccc_code: Optional[str] = None
    mobile_number: str = ""
    designation: str = ""
    password_hash: str = ""
    is_active: bool = True

    def code_for(self, role: Role) -> Optional[str]:
        return getattr(self, role.code_field)

    @property
    def scope_code(self) -> Optional[str]:
        """The code that binds this user's scope (the one at their own level)."""
        return self.code_for(self.role)

    @property
    def most_specific_code(self) -> Optional[str]:
        return self.ccc_code or self.division_code or self.region_code or self.zone_code


class Dataset(str, Enum):
    PENDING_APPLICATIONS = "pending_applications"
    CONSUMERS = "consumers"
    DOCKETS = "dockets"
    COLLECTIONS = "collections"
    PERFORMANCE = "performance"
    OFFICES = "offices"
    USERS = "users"
    AUDIT_LOG = "audit_log"


# --------------------------------------------------------------------------
# Value coercion
# --------------------------------------------------------------------------

def normalize_header(key: Any) -> str:
    return _NON_ALNUM.sub("", str(key).lower())


def parse_float(value: Any) -> float:
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip().replace(",", "")
        if not text:
            return 0.0
        try:
            number = float(text)
        except ValueError:
            return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def parse_int(value: Any) -> int:
    return int(parse_float(value))


def parse_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
    return str(value).strip()


_PARSERS = {"text": parse_text, "float": parse_float, "int": parse_int}


def _column(kind: str, *aliases: str):
    default: Union[str, float, int] = {"text": "", "float": 0.0, "int": 0}[kind]
    return field(default=default, metadata={"kind": kind, "aliases": aliases})


def text(*aliases: str):
    return _column("text", *aliases)


def number(*aliases: str):
    return _column("float", *aliases)


def integer(*aliases: str):
    return _column("int", *aliases)


# --------------------------------------------------------------------------
# Records
# --------------------------------------------------------------------------

@dataclass(frozen=True)
class PendingApplication:
    date: str = text()
    zone_code: str = text()
    region_code: str = text()
    division_code: str = text()
    ccc_code: str = text()
    region_name: str = text("REGION")
    division_name: str = text("DIVN_NAME")
    supply_office: str = text("SUPP_OFF")
    appl_no: str = text("APPL_NO")
    creation_date: str = text("CREATION_DATE")
    con_id: str = text("CON_ID")
    name: str = text("NAME")
    phone_no: str = text("PHONE_NO")
    address: str = text("ADDRESS")
    applicant_type: str = text("APPLICANT_TYPE")
    conn_class: str = text("CONN_CLASS")
    conn_cat: str = text("CONN_CAT")
    conn_type: str = text("CONN_TYPE")
    agency_name: str = text("AGENCY_NAME")
    meter_number: str = text("METER_NUMBER")
    is_duare_sarkar: str = text("IS_DUARE_SARKAR")
    is_portal_appl: str = text("IS_PORTAL_APPL")
    delay_range: str = text("DelayRange")
    pole_non_pole: str = text("PoleNonPole")
    delay_in_wo: float = number("DelayInWO")
    delay_in_sc: float = number("DelayInSC")
    delay_in_qtn: float = number("DelayInQtn")
    delay_serial: int = integer("DelaySerial")
    scn_status: str = text("SCN_STATUS")
    wo_issued: str = text("WO_ISSUED")
    inspection_comment: str = text("INSPECTION_COMMENT")
    load_watts: float = number("LOAD_WATTS", "SUPP_OFFLOAD_WATTS")
    applied_phase: str = text("APPLIED_PHASE")
    no_of_poles: int = integer("NO_OF_POLES")

    DATASET: ClassVar[Dataset] = Dataset.PENDING_APPLICATIONS
    HIERARCHY_FIELDS: ClassVar[Tuple[str, ...]] = HIERARCHY_FIELDS
    SEARCH_FIELDS: ClassVar[Tuple[str, ...]] = ("appl_no", "name", "phone_no")


@dataclass(frozen=True)
class ConsumerBucket:
    date: str = text()
    ccc_code: str = text()
    conn_stat: str = text("CONN_STAT")
    base_class: str = text("BASE_CLASS")
    category: str = text("CATEGORY")
    type_of_meter: str = text("TYPE_OF_METER")
    conn_phase: str = text("CONN_PHASE")
    govt_stat: str = text("GOVT_STAT")
    time_of_day: str = text("TIME_OF_DAY")
    conn_by: str = text("CONN_BY")
    count: int = integer("COUNT")
    load: float = number("LOAD")
    sd_lakh: float = number("SD_LAKH")
    osd_lakh: float = number("OSD_LAKH")

    DATASET: ClassVar[Dataset] = Dataset.CONSUMERS
    # The consumer sheet only carries the leaf code.
    HIERARCHY_FIELDS: ClassVar[Tuple[str, ...]] = ("ccc_code",)
    SEARCH_FIELDS: ClassVar[Tuple[str, ...]] = ("category", "conn_stat")


@dataclass(frozen=True)
class Docket:
    date: str = text()
    zone_code: str = text()
    region_code: str = text()
    division_code: str = text()
    ccc_code: str = text()
    doc_no: str = text("doc_no")
    con_id: str = text("con_id")
    party_name: str = text("PARTY_NAME")
    mob_no: str = text("Mob_No")
    addr: str = text("addr")
    prob_type: str = text("prob_type")
    description: str = text("DESCRIPTION")
    doc_crn_dt: str = text("doc_crn_dt")

    DATASET: ClassVar[Dataset] = Dataset.DOCKETS
    HIERARCHY_FIELDS: ClassVar[Tuple[str, ...]] = HIERARCHY_FIELDS
    SEARCH_FIELDS: ClassVar[Tuple[str, ...]] = ("doc_no", "party_name", "con_id")


@dataclass(frozen=True)
class CollectionTxn:
    date: str = text()
    zone_code: str = text()
    region_code: str = text()
    division_code: str = text()
    ccc_code: str = text()
    payment_dt: str = text("PAYMENT_DT")
    mode: str = text("MODE")
    count: int = integer("COUNT")
    amount_paid: float = number("AMOUNT PAID", "AMOUNT_PAID")

    DATASET: ClassVar[Dataset] = Dataset.COLLECTIONS
    HIERARCHY_FIELDS: ClassVar[Tuple[str, ...]] = HIERARCHY_FIELDS
    SEARCH_FIELDS: ClassVar[Tuple[str, ...]] = ("mode", "ccc_code")


@dataclass(frozen=True)
class PerformanceMetric:
    date: str = text()
    zone_code: str = text()
    region_code: str = text()
    division_code: str = text()
    ccc_code: str = text()
    revenue: float = number()
    orders: int = integer()
    customers: int = integer()
    efficiency: float = number()

    DATASET: ClassVar[Dataset] = Dataset.PERFORMANCE
    HIERARCHY_FIELDS: ClassVar[Tuple[str, ...]] = HIERARCHY_FIELDS
    SEARCH_FIELDS: ClassVar[Tuple[str, ...]] = ()

DEFAULT_AUDIT_STATUS = "INFO"


@dataclass(frozen=True)
class AuditEntry:
    timestamp: str = text()
    user_id: str = text()
    action: str = text()
    office: str = text()
    details: str = text()
    status: str = text()

    DATASET: ClassVar[Dataset] = Dataset.AUDIT_LOG
    # System-wide log; not tied to an office.
    HIERARCHY_FIELDS: ClassVar[Tuple[str, ...]] = ()
    SEARCH_FIELDS: ClassVar[Tuple[str, ...]] = ("user_id", "action", "office", "details")


Record = Union[PendingApplication, ConsumerBucket, Docket, CollectionTxn, PerformanceMetric, AuditEntry]
R = TypeVar("R", PendingApplication, ConsumerBucket, Docket, CollectionTxn, PerformanceMetric, AuditEntry)

RECORD_TYPES: Dict[Dataset, Type[Any]] = {
    cls.DATASET: cls
    for cls in (PendingApplication, ConsumerBucket, Docket, CollectionTxn, PerformanceMetric, AuditEntry)
}


def normalized_row(row: Mapping[str, Any]) -> Dict[str, Any]:
    """Key a row by normalized header; the first occurrence of a header wins."""
    out: Dict[str, Any] = {}
    for key, value in row.items():
        out.setdefault(normalize_header(key), value)
    return out


def parse_record(cls: Type[R], row: Mapping[str, Any]) -> R:
    """Build a record from a sheet row or a cached row.

    Cached rows are keyed by attribute name and sheet rows by header; both
    resolve through header normalization, so `DelayInSC` and `delay_in_sc`
    land on the same attribute.
    """
    lookup = normalized_row(row)
    values: Dict[str, Any] = {}
    for f in fields(cls):
        raw = None
        for candidate in (f.name, *f.metadata.get("aliases", ())):
            raw = lookup.get(normalize_header(candidate))
            if raw not in (None, ""):
                break
        values[f.name] = _PARSERS[f.metadata.get("kind", "text")](raw)
    return cls(**values)


def record_to_row(record: Record) -> Dict[str, Any]:
    return asdict(record)
