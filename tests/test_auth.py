"""
Tests for user directory parsing and sign-in.
"""

from mzo_dashboard.data.auth import (
    INACTIVE_ACCOUNT,
    INCORRECT_PASSWORD,
    INVALID_USER,
    authenticate,
    hash_password,
    parse_user,
    parse_users,
    verify_password,
)
from mzo_dashboard.data.models import Role


def _row(**overrides):
    row = {
        "user_id": "ccc_barasat",
        "password_hash": "secret",
        "full_name": "P. Sen",
        "role": "ccc",
        "office_name": "CCC-Barasat",
        "ccc_code": "6613001",
        "designation": "AE",
    }
    row.update(overrides)
    return row


class TestParseUser:
    def test_fields(self):
        user = parse_user(_row())
        assert user.role is Role.CCC
        assert user.ccc_code == "6613001"
        assert user.zone_code is None
        assert user.mobile_number == "N/A"

    def test_defaults(self):
        user = parse_user({"user_id": "x1", "role": "MANAGER"})
        assert user.full_name == "x1"
        assert user.designation == "Staff"
        assert user.role is Role.CCC
        assert user.is_active

    def test_is_active_values(self):
        assert parse_user(_row(is_active="Y")).is_active
        assert parse_user(_row(is_active="")).is_active
        assert not parse_user(_row(is_active="FALSE")).is_active
        assert not parse_user(_row(is_active="0")).is_active

    def test_rows_without_user_id_skipped(self):
        users = parse_users([_row(), _row(user_id="  ")])
        assert [u.user_id for u in users] == ["ccc_barasat"]


class TestPasswords:
    def test_plain_stored_value(self):
        assert verify_password("secret", "secret")
        assert not verify_password("Secret", "secret")

    def test_sha256_stored_value(self):
        stored = hash_password("secret")
        assert len(stored) == 64
        assert verify_password("secret", stored)
        assert verify_password("secret", stored.upper())
        assert not verify_password(stored, stored)


class TestAuthenticate:
    def test_success_is_case_insensitive_on_id(self):
        result = authenticate(parse_users([_row()]), "CCC_Barasat", "secret")
        assert result.ok
        assert result.user.user_id == "ccc_barasat"

    def test_unknown_user(self):
        result = authenticate(parse_users([_row()]), "nobody", "secret")
        assert not result.ok
        assert result.message == INVALID_USER

    def test_wrong_password(self):
        result = authenticate(parse_users([_row()]), "ccc_barasat", "wrong")
        assert result.message == INCORRECT_PASSWORD

    def test_inactive_checked_after_password(self):
        users = parse_users([_row(is_active="FALSE")])
        assert authenticate(users, "ccc_barasat", "wrong").message == INCORRECT_PASSWORD
        assert authenticate(users, "ccc_barasat", "secret").message == INACTIVE_ACCOUNT

    def test_empty_directory_falls_back_to_demo_users(self):
        result = authenticate([], "dd", "12345")
        assert result.ok
        assert result.user.role is Role.DIVISION
