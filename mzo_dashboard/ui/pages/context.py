from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Optional, Tuple

import streamlit as st

from mzo_dashboard.data.models import User
from mzo_dashboard.data.offices import OfficeDirectory
from mzo_dashboard.data.results import FetchResult
from mzo_dashboard.data.service import DataService, RequestGuard, gather_results


@dataclass
class PageContext:
    service: DataService
    user: User
    guard: RequestGuard
    report_id: str


def run_async(coro: Awaitable[Any]) -> Any:
    return asyncio.run(coro)


def load_datasets(context: PageContext, *fetches: Awaitable[FetchResult[Any]]) -> Optional[Tuple[Any, ...]]:
    """
    Fetch every dataset a report needs, all or nothing.

    Returns None (after showing the error) when any fetch failed or when a
    newer request superseded this one.
    """
    ticket = context.guard.issue(context.report_id)
    result = run_async(gather_results(*fetches))
    if not context.guard.is_current(ticket, context.report_id):
        return None
    if not result.ok:
        st.error(f"Could not load report data ({result.error.kind.value}): {result.error.message}")
        return None
    return result.data


def office_directory(service: DataService) -> OfficeDirectory:
    """Directory for header labels; a failed lookup only costs the pretty name."""
    result = run_async(service.office_directory())
    return result.unwrap_or(OfficeDirectory())
