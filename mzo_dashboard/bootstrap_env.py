"""
Bootstrap environment for Streamlit Cloud & local dev:
- Flatten st.secrets into uppercase os.environ keys (nested -> PREFIX_CHILD)
- If GOOGLE_CREDENTIALS_JSON is provided in secrets (dict or JSON string),
  write it to a temp file and set GOOGLE_APPLICATION_CREDENTIALS
- Finally, load .env (without overriding existing env vars)
"""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from typing import Iterator, Tuple

import streamlit as st
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

CREDENTIALS_FILENAME = "mzo-google-credentials.json"


def _sanitize_key(key: str) -> str:
    # Uppercase and replace non-alphanumeric with underscores
    return re.sub(r"[^A-Za-z0-9_]", "_", key.upper())


def _flatten_secrets(prefix: str, val) -> Iterator[Tuple[str, str]]:
    if isinstance(val, dict):
        for k, v in val.items():
            yield from _flatten_secrets(f"{prefix}_{k}", v)
    else:
        yield _sanitize_key(prefix), str(val)


def _secrets_dict() -> dict:
    # st.secrets raises when no secrets.toml exists outside Streamlit Cloud
    try:
        items = getattr(st, "secrets", None)
        if not items:
            return {}
        try:
            return items.to_dict()  # type: ignore[attr-defined]
        except AttributeError:
            return dict(items)
    except (FileNotFoundError, KeyError, TypeError, ValueError):
        return {}
    except Exception as exc:  # StreamlitSecretNotFoundError and friends
        logger.debug(f"Secrets unavailable: {exc}")
        return {}


def _bridge_secrets_to_env() -> None:
    for key, value in _secrets_dict().items():
        if isinstance(value, dict):
            for flat_k, flat_v in _flatten_secrets(key, value):
                os.environ.setdefault(flat_k, flat_v)
        else:
            os.environ.setdefault(_sanitize_key(key), str(value))


def _write_credentials(json_text: str) -> str:
    path = os.path.join(tempfile.gettempdir(), CREDENTIALS_FILENAME)
    with open(path, "w", encoding="utf-8") as f:
        f.write(json_text)
    return path


def _materialize_google_credentials() -> None:
    """Create a temp service account file from secrets if needed.

    Priority:
    1) If GOOGLE_APPLICATION_CREDENTIALS already set and exists -> keep
    2) Else if it holds inline JSON -> write to a temp file and point at it
    3) Else if GOOGLE_CREDENTIALS_JSON provided -> write to a temp file and set env
    4) Else do nothing (the provider reports a CONFIG fetch error later)
    """
    existing = os.getenv("GOOGLE_APPLICATION_CREDENTIALS")
    if existing and os.path.exists(existing):
        return

    json_text = None
    if existing:
        try:
            json.loads(existing)
            json_text = existing
        except ValueError:
            json_text = None

    if not json_text:
        creds = _secrets_dict().get("GOOGLE_CREDENTIALS_JSON") or os.getenv("GOOGLE_CREDENTIALS_JSON")
        if not creds:
            return
        if isinstance(creds, dict):
            json_text = json.dumps(creds)
        else:
            try:
                json.loads(str(creds))
            except ValueError:
                logger.warning("GOOGLE_CREDENTIALS_JSON is not valid JSON; ignoring it")
                return
            json_text = str(creds)

    try:
        os.environ["GOOGLE_APPLICATION_CREDENTIALS"] = _write_credentials(json_text)
    except OSError as exc:
        logger.error(f"Could not write service account file: {exc}")


def ensure_env() -> None:
    """Idempotent: make sure env vars and creds are available.
    Safe to call multiple times, both inside and outside Streamlit runtime.
    """
    _bridge_secrets_to_env()
    _materialize_google_credentials()
    # load_dotenv will not override existing env vars by default
    load_dotenv()
