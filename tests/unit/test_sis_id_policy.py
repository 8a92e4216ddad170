import pytest

from rostersync.core.models import Roles
from rostersync.core.sis_id_policy import derive_sis_user_id


UID = "1084726"
STUDENT_ID = "11667051"


def test_ex_student_uses_uid():
    assert derive_sis_user_id(UID, STUDENT_ID, {"exStudent": True}) == f"UID:{UID}"


@pytest.mark.parametrize(
    "roles",
    [
        {"exStudent": True, "student": True, "registered": True},
        {"exStudent": True, "concurrentEnrollmentStudent": True},
        {"exStudent": True, "staff": True},
    ],
)
def test_ex_student_never_uses_student_id(roles):
    assert derive_sis_user_id(UID, STUDENT_ID, roles) == f"UID:{UID}"


def test_student_employee_uses_student_id():
    roles = {"student": True, "registered": True, "faculty": True}
    assert derive_sis_user_id(UID, STUDENT_ID, roles) == STUDENT_ID


def test_student_with_registration_issues_uses_student_id():
    roles = {"staff": True, "student": True, "registered": False}
    assert derive_sis_user_id(UID, STUDENT_ID, roles) == STUDENT_ID


def test_student_missing_student_id_uses_uid():
    assert derive_sis_user_id(UID, None, {"student": True, "registered": True}) == f"UID:{UID}"
    assert derive_sis_user_id(UID, "  ", {"student": True}) == f"UID:{UID}"


def test_concurrent_enrollment_student_uses_student_id():
    assert derive_sis_user_id(UID, STUDENT_ID, {"concurrentEnrollmentStudent": True}) == STUDENT_ID


def test_staff_uses_uid():
    assert derive_sis_user_id(UID, STUDENT_ID, {"staff": True}) == f"UID:{UID}"


def test_mixed_ids_disabled_uses_bare_uid_for_everyone():
    roles = {"student": True, "registered": True}
    assert derive_sis_user_id(UID, STUDENT_ID, roles, mixed_sis_user_id=False) == UID
    assert derive_sis_user_id(int(UID), None, {"exStudent": True}, mixed_sis_user_id=False) == UID


def test_accepts_roles_dataclass_and_numeric_student_id():
    assert derive_sis_user_id(61889, 11667051, Roles(student=True, registered=True)) == "11667051"


def test_no_roles_uses_uid():
    assert derive_sis_user_id(UID, STUDENT_ID, None) == f"UID:{UID}"
