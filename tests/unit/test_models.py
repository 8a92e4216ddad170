import pytest

from rostersync.core.exceptions import MalformedRowError
from rostersync.core.models import (
    AccountState,
    CampusRow,
    DownstreamAccount,
    Roles,
    format_login_id,
    parse_login_id,
    sis_login_key,
    uid_sis_user_id,
)


class TestParseLoginId:
    def test_understands_an_inactive_id(self):
        parsed = parse_login_id("inactive-1084726")
        assert parsed.ldap_uid == 1084726
        assert parsed.inactive_account is True
        assert parsed.state is AccountState.INACTIVE

    def test_understands_an_active_id(self):
        parsed = parse_login_id("1084726")
        assert parsed.ldap_uid == 1084726
        assert parsed.inactive_account is False

    @pytest.mark.parametrize("login_id", ["forgetit", "", None, "inactive-", "test-123", "12a"])
    def test_does_not_even_try_to_deal_with_anything_else(self, login_id):
        parsed = parse_login_id(login_id)
        assert parsed.ldap_uid is None
        assert parsed.inactive_account is False


def test_login_id_helpers():
    assert format_login_id(42) == "42"
    assert format_login_id(42, AccountState.INACTIVE) == "inactive-42"
    assert uid_sis_user_id(42) == "UID:42"
    assert sis_login_key("inactive-42") == "sis_login_id:inactive-42"


class TestRoles:
    def test_from_mapping_with_feed_names(self):
        roles = Roles.from_value({"exStudent": True, "expiredAccount": "true", "staff": False})
        assert roles.ex_student is True
        assert roles.expired_account is True
        assert roles.staff is False

    def test_from_separated_string(self):
        roles = Roles.from_value("student;registered, concurrentEnrollmentStudent")
        assert roles.student and roles.registered and roles.concurrent_enrollment_student

    def test_unknown_roles_ignored(self):
        assert Roles.from_value(["student", "alumni"]) == Roles(student=True)

    def test_none_means_no_roles(self):
        assert Roles.from_value(None) == Roles()


class TestCampusRow:
    def test_normalizes_raw_row(self):
        row = CampusRow.from_dict({
            "ldap_uid": " 61889 ",
            "first_name": " Ema ",
            "last_name": "Ilcha",
            "email_address": "ema@example.edu",
            "roles": {"student": True, "registered": True},
            "student_id": 11667051,
        })
        assert row.ldap_uid == 61889
        assert row.first_name == "Ema"
        assert row.student_id == "11667051"
        assert row.roles.student is True
        assert row.is_expired is False

    def test_blank_student_id_is_none(self):
        assert CampusRow.from_dict({"ldap_uid": 5, "student_id": ""}).student_id is None

    def test_placeholder_uid(self):
        assert CampusRow.from_dict({"ldap_uid": 0}).is_placeholder is True

    def test_non_string_fields_are_coerced(self):
        row = CampusRow.from_dict({"ldap_uid": 7, "first_name": 42, "last_name": 3.5, "email_address": 0})
        assert row.first_name == "42"
        assert row.last_name == "3.5"
        assert row.email_address == ""

    def test_unreadable_roles(self):
        with pytest.raises(MalformedRowError):
            CampusRow.from_dict({"ldap_uid": 7, "roles": 12})

    @pytest.mark.parametrize("raw_uid", [None, "", "abc", "-4"])
    def test_malformed_uid(self, raw_uid):
        with pytest.raises(MalformedRowError):
            CampusRow.from_dict({"ldap_uid": raw_uid, "first_name": "No", "last_name": "Body"})


class TestDownstreamAccount:
    def test_from_report_row(self):
        account = DownstreamAccount.from_dict({
            "canvas_user_id": 7,
            "user_id": "UID:42",
            "login_id": "inactive-42",
            "email": None,
            "status": "",
        })
        assert account.canvas_user_id == "7"
        assert account.email == ""
        assert account.status == "active"
        assert account.ldap_uid == 42
        assert account.state is AccountState.INACTIVE
        assert account.as_record()["login_id"] == "inactive-42"
