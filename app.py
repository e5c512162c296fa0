from mzo_dashboard.bootstrap_env import ensure_env

ensure_env()  # must run before settings are read

import logging

import streamlit as st

from mzo_dashboard.config import load_settings
from mzo_dashboard.data.auth import authenticate
from mzo_dashboard.data.cache import FileCacheStore
from mzo_dashboard.data.catalog import get_report
from mzo_dashboard.data.events import DataUpdated
from mzo_dashboard.data.loader import build_provider
from mzo_dashboard.data.models import User
from mzo_dashboard.data.service import DataService, RequestGuard
from mzo_dashboard.data.sync import request_sync, run_requested_sync
from mzo_dashboard.ui.layout import setup_page
from mzo_dashboard.ui.pages import audit_log, catalog, collections, consumers, dockets, overview, pending_applications
from mzo_dashboard.ui.pages.context import PageContext, office_directory, run_async

SETTINGS = load_settings()

logging.basicConfig(
    level=getattr(logging, SETTINGS.log_level, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)
logger = logging.getLogger(__name__)

PAGE_RENDERERS = {
    "REP_PENDING_NSC": pending_applications.render,
    "REP_CONSUMERS_SUMMARY": consumers.render,
    "REP_DOCKET_MONITORING": dockets.render,
    "REP_COLLECTION_ANALYSIS": collections.render,
    "REP_AUDIT_LOG": audit_log.render,
    "REP_REVENUE_SUMMARY": overview.render,
}

DATASET_LABELS = {
    "pending_applications": "Pending NSC",
    "consumers": "Consumers",
    "dockets": "Dockets",
    "collections": "Collections",
    "performance": "Performance",
    "users": "Users",
}


@st.cache_resource
def get_service() -> DataService:
    cache = FileCacheStore(SETTINGS.cache_directory, quota_bytes=SETTINGS.cache_quota_bytes)
    return DataService(build_provider(SETTINGS), cache, compact_threshold=SETTINGS.compact_threshold)


def _background_sync(service: DataService) -> None:
    def _announce(event: DataUpdated) -> None:
        label = DATASET_LABELS.get(event.dataset.value, event.dataset.value)
        st.session_state.setdefault("pending_toasts", []).append(f"{label} data updated")

    unsubscribe = service.notifier.subscribe(_announce)
    try:
        run_requested_sync(st.session_state, service)
    finally:
        unsubscribe()


def _login(service: DataService) -> None:
    st.title("MZO Reports")
    st.caption("Sign in with your office credentials.")
    with st.form("login"):
        user_id = st.text_input("User ID")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Sign in", type="primary")
    if not submitted:
        return

    users = run_async(service.users())
    if not users.ok:
        st.warning("User directory is unavailable; only demo accounts can sign in.")
    result = authenticate(users.unwrap_or([]), user_id, password)
    if not result.ok:
        st.error(result.message)
        return

    st.session_state["user"] = result.user
    st.session_state["guard"] = RequestGuard()
    request_sync(st.session_state)
    st.rerun()


def _sidebar(service: DataService) -> None:
    user = st.session_state["user"]
    st.sidebar.markdown(f"**{user.full_name}**  \n{user.designation} · {user.role.label}")
    if st.session_state.get("report_id") and st.sidebar.button("⬅ All Reports"):
        st.session_state.pop("report_id", None)
        st.rerun()
    if st.sidebar.button("🔄 Refresh Data"):
        service.cache.clear()
        logger.info("Cache cleared by user")
        st.rerun()
    if st.sidebar.button("Sign out"):
        for key in ("user", "guard", "report_id"):
            st.session_state.pop(key, None)
        st.rerun()
    st.sidebar.divider()


def _render_report(service: DataService, user: User) -> None:
    report_id = st.session_state.get("report_id")
    if report_id is None:
        chosen = catalog.render(user, office_directory(service).header_label(user))
        if chosen:
            st.session_state["report_id"] = chosen
            st.rerun()
        return

    report = get_report(report_id)
    renderer = PAGE_RENDERERS.get(report_id)
    if report is None or renderer is None or not report.visible_to(user):
        st.warning("This report is not available for your role.")
        return

    context = PageContext(service=service, user=user, guard=st.session_state["guard"], report_id=report_id)
    renderer(context)


def main() -> None:
    setup_page()
    service = get_service()

    if "user" not in st.session_state:
        _login(service)
        return

    _sidebar(service)
    _render_report(service, st.session_state["user"])

    # The sync requested at sign-in runs once the page is drawn.
    _background_sync(service)
    for message in st.session_state.pop("pending_toasts", []):
        st.toast(message, icon="🔄")


if __name__ == "__main__":
    main()
