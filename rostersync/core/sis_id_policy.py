"""Canonical SIS user id derivation.

Students are tracked in Canvas by campus student id; everyone else (and
anyone whose student career has ended) by campus UID with a ``UID:`` prefix.
"""
from __future__ import annotations
from typing import Any, Mapping, Optional, Union

from .models import Roles, uid_sis_user_id


def derive_sis_user_id(
    ldap_uid: Union[int, str],
    student_id: Optional[Any],
    roles: Union[Roles, Mapping[str, Any], None],
    *,
    mixed_sis_user_id: bool = True,
) -> str:
    """Return the SIS user id Canvas should hold for a campus identity.

    Rules, in order:
    1. Mixed ids disabled: bare UID for everyone.
    2. Ex-students: ``UID:<uid>``, even if a student id is still on file.
    3. Students with a student id: the student id (registration status and
       concurrent staff/faculty roles do not matter).
    4. Concurrent enrollment students with a student id: the student id.
    5. Everyone else, including students missing a student id: ``UID:<uid>``.

    Args:
        ldap_uid: Campus UID
        student_id: Campus student id, if any
        roles: Campus roles (``Roles`` or a mapping of role flags)
        mixed_sis_user_id: Whether student ids may be used at all

    Returns:
        Canonical SIS user id
    """
    if not mixed_sis_user_id:
        return str(ldap_uid)

    roles = Roles.from_value(roles)
    student_id = str(student_id).strip() if student_id is not None else ""

    if roles.ex_student:
        return uid_sis_user_id(ldap_uid)
    if roles.student and student_id:
        return student_id
    if roles.concurrent_enrollment_student and student_id:
        return student_id
    return uid_sis_user_id(ldap_uid)
