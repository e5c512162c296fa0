"""
Raw dataset providers: fetch flat rows for a logical dataset from Google
Sheets (gspread + service account) or from local CSV exports.

Providers are blocking and raise `FetchError`; the service layer runs them
off the event loop and converts failures into `FetchResult` values.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Protocol

import gspread
import pandas as pd
from google.auth.exceptions import GoogleAuthError
from google.oauth2.service_account import Credentials

from mzo_dashboard.config import DatasetSource, Settings
from mzo_dashboard.data.models import Dataset, normalize_header
from mzo_dashboard.data.results import FetchError, FetchErrorKind

logger = logging.getLogger(__name__)

SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets.readonly",
    "https://www.googleapis.com/auth/drive.readonly",
]

# Header plus the first data row; enough for the staleness probe.
PROBE_RANGE = "A1:Z2"

Row = Dict[str, Any]


class DatasetProvider(Protocol):
    def fetch_rows(self, dataset: Dataset) -> List[Row]:
        ...

    def fetch_probe(self, dataset: Dataset) -> Optional[Row]:
        ...


def get_value(row: Mapping[str, Any], key: str) -> Any:
    """Look up a column ignoring case and punctuation (`Delay Range` == `delay_range`)."""
    wanted = normalize_header(key)
    for actual, value in row.items():
        if normalize_header(actual) == wanted:
            return value
    return None


def _clean_rows(rows: List[Row]) -> List[Row]:
    """Strip string cells and drop rows whose first column is blank."""
    cleaned: List[Row] = []
    for row in rows:
        if not row:
            continue
        tidy = {str(k).strip(): (v.strip() if isinstance(v, str) else v) for k, v in row.items()}
        first = next(iter(tidy.values()))
        if first in (None, ""):
            continue
        cleaned.append(tidy)
    return cleaned


def _rows_from_values(values: List[List[Any]]) -> List[Row]:
    if not values:
        return []
    headers = [str(h).strip() for h in values[0]]
    rows = []
    for raw in values[1:]:
        padded = list(raw) + [""] * (len(headers) - len(raw))
        rows.append(dict(zip(headers, padded)))
    return _clean_rows(rows)


class SheetsDatasetProvider:
    """Reads datasets from Google Sheets worksheets with a service account."""

    def __init__(self, sources: Mapping[Dataset, DatasetSource], service_account_file: str):
        self.sources = dict(sources)
        self.service_account_file = service_account_file
        self._client: Optional[gspread.Client] = None

    def _authorize(self) -> gspread.Client:
        if self._client is None:
            if not os.path.exists(self.service_account_file):
                raise FetchError(
                    None,
                    FetchErrorKind.CONFIG,
                    f"Service account file not found: {self.service_account_file}",
                )
            try:
                credentials = Credentials.from_service_account_file(self.service_account_file, scopes=SCOPES)
            except (ValueError, GoogleAuthError) as exc:
                raise FetchError(None, FetchErrorKind.CONFIG, f"Invalid service account file: {exc}") from exc
            self._client = gspread.authorize(credentials)
        return self._client

    def _worksheet(self, dataset: Dataset) -> gspread.Worksheet:
        source = self.sources.get(dataset)
        if source is None or not source.configured:
            raise FetchError(dataset, FetchErrorKind.CONFIG, "spreadsheet id is not configured")
        try:
            client = self._authorize()
            spreadsheet = client.open_by_key(source.spreadsheet_id)
            if isinstance(source.worksheet, int):
                return spreadsheet.get_worksheet_by_id(source.worksheet)
            return spreadsheet.worksheet(source.worksheet)
        except FetchError as exc:
            exc.dataset = dataset
            raise
        except (gspread.exceptions.SpreadsheetNotFound, gspread.exceptions.WorksheetNotFound) as exc:
            raise FetchError(dataset, FetchErrorKind.NOT_FOUND, str(exc) or "worksheet not found") from exc
        except (gspread.exceptions.GSpreadException, GoogleAuthError, OSError) as exc:
            raise FetchError(dataset, FetchErrorKind.NETWORK, str(exc)) from exc

    def fetch_rows(self, dataset: Dataset) -> List[Row]:
        ws = self._worksheet(dataset)
        try:
            # Keep every cell as text; office codes can carry leading zeros.
            rows = ws.get_all_records(numericise_ignore=["all"])
        except (gspread.exceptions.GSpreadException, GoogleAuthError, OSError) as exc:
            raise FetchError(dataset, FetchErrorKind.NETWORK, str(exc)) from exc
        except (ValueError, IndexError) as exc:
            raise FetchError(dataset, FetchErrorKind.PARSE, str(exc)) from exc
        logger.info(f"Fetched {len(rows)} rows for {dataset.value}")
        return _clean_rows(rows)

    def fetch_probe(self, dataset: Dataset) -> Optional[Row]:
        ws = self._worksheet(dataset)
        try:
            values = ws.get(PROBE_RANGE)
        except (gspread.exceptions.GSpreadException, GoogleAuthError, OSError) as exc:
            raise FetchError(dataset, FetchErrorKind.NETWORK, str(exc)) from exc
        rows = _rows_from_values([list(r) for r in values])
        return rows[0] if rows else None


class CsvDatasetProvider:
    """Reads `<dataset>.csv` exports from a local directory."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def _path(self, dataset: Dataset) -> Path:
        path = self.directory / f"{dataset.value}.csv"
        if not path.exists():
            raise FetchError(dataset, FetchErrorKind.NOT_FOUND, f"{path} does not exist")
        return path

    def _read(self, dataset: Dataset, nrows: Optional[int] = None) -> List[Row]:
        path = self._path(dataset)
        try:
            df = pd.read_csv(path, dtype=str, keep_default_na=False, nrows=nrows)
        except pd.errors.EmptyDataError:
            return []
        except (pd.errors.ParserError, UnicodeDecodeError) as exc:
            raise FetchError(dataset, FetchErrorKind.PARSE, str(exc)) from exc
        except OSError as exc:
            raise FetchError(dataset, FetchErrorKind.NETWORK, str(exc)) from exc
        df.columns = [str(c).strip() for c in df.columns]
        return _clean_rows(df.to_dict("records"))

    def fetch_rows(self, dataset: Dataset) -> List[Row]:
        return self._read(dataset)

    def fetch_probe(self, dataset: Dataset) -> Optional[Row]:
        rows = self._read(dataset, nrows=1)
        return rows[0] if rows else None


def build_provider(settings: Settings) -> DatasetProvider:
    if settings.data_source == "csv":
        return CsvDatasetProvider(settings.csv_directory)
    return SheetsDatasetProvider(settings.sources, settings.service_account_file)
