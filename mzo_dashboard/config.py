"""
Application-wide configuration: where each dataset lives, cache settings,
and helpers to read values from the environment or Streamlit secrets.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Union

import streamlit as st

from mzo_dashboard.data.models import Dataset

logger = logging.getLogger(__name__)

CACHE_PREFIX = "mzo_cache_"
DEFAULT_CACHE_QUOTA_BYTES = 5 * 1024 * 1024
DEFAULT_COMPACT_THRESHOLD = 500

# Dataset -> (spreadsheet id variable, default worksheet gid)
SHEET_LOCATIONS: Dict[Dataset, tuple] = {
    Dataset.PENDING_APPLICATIONS: ("NSC_SHEET_ID", "0"),
    Dataset.CONSUMERS: ("CONSUMERS_SHEET_ID", "0"),
    Dataset.DOCKETS: ("DOCKET_SHEET_ID", "0"),
    Dataset.COLLECTIONS: ("COLLECTION_SHEET_ID", "0"),
    Dataset.PERFORMANCE: ("USERS_SHEET_ID", "1"),
    Dataset.OFFICES: ("USERS_SHEET_ID", "0"),
    Dataset.USERS: ("USERS_SHEET_ID", "0"),
    Dataset.AUDIT_LOG: ("USERS_SHEET_ID", "2"),
}


@dataclass(frozen=True)
class DatasetSource:
    dataset: Dataset
    spreadsheet_id: Optional[str]
    worksheet: Union[str, int] = "0"

    @property
    def configured(self) -> bool:
        return bool(self.spreadsheet_id)


@dataclass(frozen=True)
class Settings:
    sources: Dict[Dataset, DatasetSource] = field(default_factory=dict)
    data_source: str = "sheets"
    csv_directory: Path = Path("data")
    service_account_file: str = "google-credentials.json"
    cache_directory: Path = Path.home() / ".cache" / "mzo_dashboard"
    cache_quota_bytes: int = DEFAULT_CACHE_QUOTA_BYTES
    compact_threshold: int = DEFAULT_COMPACT_THRESHOLD
    log_level: str = "INFO"


def get_secret(name: str, default: Optional[str] = None) -> Optional[str]:
    """Try env first, then st.secrets (if available)."""
    val = os.getenv(name)
    if val:
        return val
    try:
        sec = getattr(st, "secrets", None)
        if sec:
            v = sec.get(name)  # type: ignore[index]
            return str(v) if v is not None else default
    except (FileNotFoundError, KeyError, TypeError):
        pass
    except Exception as exc:  # no secrets.toml outside Streamlit Cloud
        logger.debug(f"st.secrets lookup for {name} failed: {exc}")
    return default


def _int_setting(name: str, default: int) -> int:
    raw = get_secret(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"{name}={raw!r} is not an integer; using {default}")
        return default


def _worksheet(raw: str) -> Union[str, int]:
    return int(raw) if raw.isdigit() else raw


def load_settings() -> Settings:
    sources = {}
    for dataset, (sheet_var, default_gid) in SHEET_LOCATIONS.items():
        worksheet = get_secret(f"{dataset.name}_WORKSHEET", default_gid) or default_gid
        sources[dataset] = DatasetSource(
            dataset=dataset,
            spreadsheet_id=get_secret(sheet_var),
            worksheet=_worksheet(worksheet),
        )

    cache_dir = get_secret("CACHE_DIR")
    return Settings(
        sources=sources,
        data_source=(get_secret("DATA_SOURCE", "sheets") or "sheets").lower(),
        csv_directory=Path(get_secret("DATA_DIR", "data") or "data"),
        service_account_file=get_secret("GOOGLE_APPLICATION_CREDENTIALS", "google-credentials.json")
        or "google-credentials.json",
        cache_directory=Path(cache_dir) if cache_dir else Path.home() / ".cache" / "mzo_dashboard",
        cache_quota_bytes=_int_setting("CACHE_QUOTA_BYTES", DEFAULT_CACHE_QUOTA_BYTES),
        compact_threshold=_int_setting("CACHE_COMPACT_THRESHOLD", DEFAULT_COMPACT_THRESHOLD),
        log_level=(get_secret("LOG_LEVEL", "INFO") or "INFO").upper(),
    )
