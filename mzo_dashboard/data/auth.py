"""
User directory parsing and the sign-in check.

Credentials live in the users sheet. A stored value that looks like a
SHA256 hex digest is compared against the digest of the entered password;
anything else is compared verbatim. This is a convenience gate for the
dashboard, not an access-control boundary.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import re
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional, Sequence

from mzo_dashboard.data.loader import get_value
from mzo_dashboard.data.models import Role, User, parse_text
from mzo_dashboard.data.sample_data import get_demo_users

logger = logging.getLogger(__name__)

ACTIVE_VALUES = {"", "TRUE", "true", "1", "Y"}
_SHA256_HEX = re.compile(r"^[0-9a-fA-F]{64}$")

INVALID_USER = "Invalid User ID"
INCORRECT_PASSWORD = "Incorrect Password"
INACTIVE_ACCOUNT = "Account is inactive"


@dataclass(frozen=True)
class AuthResult:
    user: Optional[User] = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.user is not None


def _optional(value: Any) -> Optional[str]:
    return parse_text(value) or None


def parse_user(row: Mapping[str, Any]) -> User:
    raw_active = get_value(row, "is_active")
    user_id = parse_text(get_value(row, "user_id"))
    return User(
        user_id=user_id,
        role=Role.parse(get_value(row, "role")),
        full_name=parse_text(get_value(row, "full_name")) or user_id or "Unknown User",
        office_name=_optional(get_value(row, "office_name")) or _optional(get_value(row, "office")),
        zone_code=_optional(get_value(row, "zone_code")),
        region_code=_optional(get_value(row, "region_code")),
        division_code=_optional(get_value(row, "division_code")),
        ccc_code=_optional(get_value(row, "ccc_code")),
        mobile_number=parse_text(get_value(row, "mobile_number")) or "N/A",
        designation=parse_text(get_value(row, "designation")) or "Staff",
        password_hash=parse_text(get_value(row, "password_hash")),
        is_active=raw_active is None or parse_text(raw_active) in ACTIVE_VALUES,
    )


def parse_users(rows: Iterable[Mapping[str, Any]]) -> List[User]:
    return [parse_user(row) for row in rows if parse_text(get_value(row, "user_id"))]


def hash_password(password: str) -> str:
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


def verify_password(password: str, stored: str) -> bool:
    stored = stored or ""
    if _SHA256_HEX.match(stored):
        return hmac.compare_digest(hash_password(password).lower(), stored.lower())
    return hmac.compare_digest(password.encode("utf-8"), stored.encode("utf-8"))


def find_user(users: Sequence[User], user_id: str) -> Optional[User]:
    wanted = (user_id or "").strip().lower()
    for user in users:
        if user.user_id.lower() == wanted:
            return user
    return None


def authenticate(users: Sequence[User], user_id: str, password: str) -> AuthResult:
    """
    Check credentials against the user directory (demo users when it is empty).

    Returns an AuthResult carrying the signed-in user, or the message to show.
    """
    directory = list(users) or get_demo_users()
    user = find_user(directory, user_id)
    if user is None:
        logger.info(f"Sign-in rejected for unknown user id {user_id!r}")
        return AuthResult(message=INVALID_USER)
    if not verify_password(password or "", user.password_hash):
        logger.info(f"Sign-in rejected for {user.user_id}: wrong password")
        return AuthResult(message=INCORRECT_PASSWORD)
    if not user.is_active:
        logger.info(f"Sign-in rejected for {user.user_id}: inactive")
        return AuthResult(message=INACTIVE_ACCOUNT)
    logger.info(f"User {user.user_id} signed in as {user.role.value}")
    return AuthResult(user=user)
