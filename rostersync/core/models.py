"""Campus roster rows, Canvas accounts and the login-id state convention.

Canvas does not carry an explicit "inactive" flag for SIS-provisioned users.
The convention is a prefix on the login id:

    "1084726"            -> active account for campus UID 1084726
    "inactive-1084726"   -> inactivated account for the same UID

Internally that is promoted to ``AccountState`` and only serialized back to
the prefix form through ``format_login_id()``.
"""
from __future__ import annotations
import enum
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, NamedTuple, Optional

from .exceptions import MalformedRowError

INACTIVE_LOGIN_PREFIX = "inactive-"
UID_SIS_PREFIX = "UID:"
SIS_LOGIN_KEY_PREFIX = "sis_login_id:"

# Placeholder UID for non-personal administrative rows
SENTINEL_UID = 0

_CAMPUS_LOGIN_PATTERN = re.compile(r"^(inactive-)?(\d+)$")


class AccountState(enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class ParsedLoginId(NamedTuple):
    ldap_uid: Optional[int]
    state: AccountState

    @property
    def inactive_account(self) -> bool:
        return self.state is AccountState.INACTIVE


def parse_login_id(login_id: Any) -> ParsedLoginId:
    """Split a Canvas login id into campus UID and activation state.

    Anything that is not ``<digits>`` or ``inactive-<digits>`` is a
    non-campus account and parses to ``ldap_uid=None``.
    """
    match = _CAMPUS_LOGIN_PATTERN.match(str(login_id or "").strip())
    if not match:
        return ParsedLoginId(None, AccountState.ACTIVE)
    state = AccountState.INACTIVE if match.group(1) else AccountState.ACTIVE
    return ParsedLoginId(int(match.group(2)), state)


def format_login_id(ldap_uid: int, state: AccountState = AccountState.ACTIVE) -> str:
    if state is AccountState.INACTIVE:
        return f"{INACTIVE_LOGIN_PREFIX}{ldap_uid}"
    return str(ldap_uid)


def uid_sis_user_id(ldap_uid: int) -> str:
    """SIS user id that tracks an identity by campus UID."""
    return f"{UID_SIS_PREFIX}{ldap_uid}"


def sis_login_key(login_id: str) -> str:
    """Canvas user lookup key addressing a user by SIS login id."""
    return f"{SIS_LOGIN_KEY_PREFIX}{login_id}"


def _truthy(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "t", "yes", "y"}
    return bool(value)


@dataclass(frozen=True)
class Roles:
    """Named boolean campus affiliations."""
    student: bool = False
    registered: bool = False
    ex_student: bool = False
    expired_account: bool = False
    staff: bool = False
    faculty: bool = False
    concurrent_enrollment_student: bool = False

    # Campus feed names -> attribute names
    ALIASES = {
        "student": "student",
        "registered": "registered",
        "exStudent": "ex_student",
        "ex_student": "ex_student",
        "expiredAccount": "expired_account",
        "expired_account": "expired_account",
        "staff": "staff",
        "faculty": "faculty",
        "concurrentEnrollmentStudent": "concurrent_enrollment_student",
        "concurrent_enrollment_student": "concurrent_enrollment_student",
    }

    @classmethod
    def from_value(cls, value: Any) -> "Roles":
        """Build roles from a mapping of flags or an iterable of role names.

        Unknown role names are ignored.
        """
        if value is None:
            return cls()
        if isinstance(value, Roles):
            return value
        if isinstance(value, str):
            value = [part for part in re.split(r"[;,\s]+", value) if part]
        if isinstance(value, Mapping):
            pairs = value.items()
        else:
            pairs = ((name, True) for name in value)

        flags: dict[str, bool] = {}
        for name, flag in pairs:
            attr = cls.ALIASES.get(str(name).strip())
            if attr:
                flags[attr] = _truthy(flag)
        return cls(**flags)


@dataclass(frozen=True)
class CampusRow:
    """One identity's facts from the campus roster for a sync pass."""
    ldap_uid: int
    first_name: str = ""
    last_name: str = ""
    email_address: str = ""
    roles: Roles = field(default_factory=Roles)
    student_id: Optional[str] = None

    @property
    def is_placeholder(self) -> bool:
        return self.ldap_uid == SENTINEL_UID

    @property
    def is_expired(self) -> bool:
        return self.roles.expired_account

    @classmethod
    def from_dict(cls, row: Mapping[str, Any]) -> "CampusRow":
        """Normalize a raw roster row.

        Raises:
            MalformedRowError: If ldap_uid is missing or not numeric
        """
        raw_uid = row.get("ldap_uid")
        if raw_uid is None or (isinstance(raw_uid, str) and not raw_uid.strip()):
            raise MalformedRowError("Campus row is missing ldap_uid", row)
        try:
            ldap_uid = int(str(raw_uid).strip())
        except ValueError:
            raise MalformedRowError(f"Campus row has non-numeric ldap_uid {raw_uid!r}", row)
        if ldap_uid < 0:
            raise MalformedRowError(f"Campus row has negative ldap_uid {ldap_uid}", row)

        student_id = row.get("student_id")
        if student_id is not None:
            student_id = str(student_id).strip() or None

        try:
            roles = Roles.from_value(row.get("roles"))
        except TypeError:
            raise MalformedRowError(f"Campus row for UID {ldap_uid} has unreadable roles {row.get('roles')!r}", row)

        return cls(
            ldap_uid=ldap_uid,
            first_name=str(row.get("first_name") or "").strip(),
            last_name=str(row.get("last_name") or "").strip(),
            email_address=str(row.get("email_address") or "").strip(),
            roles=roles,
            student_id=student_id,
        )


@dataclass(frozen=True)
class DownstreamAccount:
    """Existing Canvas user as listed by the provisioning report."""
    canvas_user_id: str
    login_id: str
    user_id: str = ""
    first_name: str = ""
    last_name: str = ""
    full_name: str = ""
    sortable_name: str = ""
    email: str = ""
    status: str = "active"

    RECORD_FIELDS = (
        "canvas_user_id",
        "user_id",
        "login_id",
        "first_name",
        "last_name",
        "full_name",
        "sortable_name",
        "email",
        "status",
    )

    @property
    def parsed_login(self) -> ParsedLoginId:
        return parse_login_id(self.login_id)

    @property
    def ldap_uid(self) -> Optional[int]:
        return self.parsed_login.ldap_uid

    @property
    def state(self) -> AccountState:
        return self.parsed_login.state

    @classmethod
    def from_dict(cls, account: Mapping[str, Any]) -> "DownstreamAccount":
        values = {}
        for name in cls.RECORD_FIELDS:
            value = account.get(name)
            values[name] = "" if value is None else str(value)
        if not values["status"]:
            values["status"] = "active"
        return cls(**values)

    def as_record(self) -> dict[str, str]:
        return {name: getattr(self, name) for name in self.RECORD_FIELDS}


def coerce_accounts(accounts: Iterable[Any]) -> list[DownstreamAccount]:
    return [a if isinstance(a, DownstreamAccount) else DownstreamAccount.from_dict(a) for a in accounts]
