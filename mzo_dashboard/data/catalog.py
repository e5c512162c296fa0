"""
Report catalog: which reports exist and who may open them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from mzo_dashboard.data.models import Role, User

ALL_CATEGORIES = "All"
CATEGORIES = ["Operations", "Commercial", "Security", "Analytics"]


@dataclass(frozen=True)
class ReportDefinition:
    id: str
    name: str
    description: str
    category: str
    icon: str
    min_role: Role = Role.CCC

    def visible_to(self, user: User) -> bool:
        return user.role.level >= self.min_role.level

    def matches_search(self, query: str) -> bool:
        needle = (query or "").lower()
        return needle in self.name.lower() or needle in self.description.lower()


REPORT_CATALOG: List[ReportDefinition] = [
    ReportDefinition(
        id="REP_PENDING_NSC",
        name="Pending NSC Status",
        description="Track new service connection delays and SCN status.",
        category="Operations",
        icon="fa-hourglass-start",
    ),
    ReportDefinition(
        id="REP_CONSUMERS_SUMMARY",
        name="Consumers Summary",
        description="Breakdown of consumer base by status, class, and load.",
        category="Commercial",
        icon="fa-users-viewfinder",
    ),
    ReportDefinition(
        id="REP_DOCKET_MONITORING",
        name="Docket Monitoring",
        description="Complaint dockets by problem type, technical versus billing.",
        category="Operations",
        icon="fa-ticket",
    ),
    ReportDefinition(
        id="REP_COLLECTION_ANALYSIS",
        name="Billing & Collection",
        description="Collections by payment mode with daily, weekly, monthly and fiscal-year rollups.",
        category="Commercial",
        icon="fa-file-invoice",
    ),
    ReportDefinition(
        id="REP_AUDIT_LOG",
        name="System Audit Log",
        description="Track user access and critical system activities.",
        category="Security",
        icon="fa-shield-halved",
        min_role=Role.REGION,
    ),
    ReportDefinition(
        id="REP_REVENUE_SUMMARY",
        name="Revenue Performance",
        description="Consolidated revenue vs target analysis across hierarchy.",
        category="Analytics",
        icon="fa-indian-rupee-sign",
        min_role=Role.DIVISION,
    ),
]


def get_report(report_id: str) -> Optional[ReportDefinition]:
    return next((r for r in REPORT_CATALOG if r.id == report_id), None)


def available_reports(user: User, search: str = "", category: str = ALL_CATEGORIES) -> List[ReportDefinition]:
    return [
        report
        for report in REPORT_CATALOG
        if report.visible_to(user)
        and report.matches_search(search)
        and (category == ALL_CATEGORIES or report.category == category)
    ]
