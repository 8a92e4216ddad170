"""Per-identity categorization of Canvas accounts against the campus roster.

Each identity is in exactly one state, derived from:

    roster row present / absent / marked expiredAccount
    Canvas account present / absent, active / inactive ("inactive-<uid>")
    whether campus data may trigger deactivation (inactivate_expired_users)

``classify()`` maps those facts to a ``Transition``; a dispatch table maps
each transition to the handler that builds its instructions. Handlers are
pure: they return a ``Categorization`` and never touch shared state, so
identities can be categorized from worker threads and merged afterwards
with ``record()``.
"""
from __future__ import annotations
import enum
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Union

from rostersync.config.settings import SyncConfig, settings
from .account_equivalence import NameTokens, load_name_tokens, provisioned_account_eq_sis_account
from .exceptions import FallbackLookupError, LedgerCorruptionError
from .models import (
    AccountState,
    CampusRow,
    DownstreamAccount,
    SENTINEL_UID,
    format_login_id,
    sis_login_key,
    uid_sis_user_id,
)
from .sis_id_policy import derive_sis_user_id

logger = logging.getLogger(__name__)

# Column order of the SIS user import consumed by Canvas
USER_IMPORT_FIELDS = ("user_id", "login_id", "first_name", "last_name", "email", "status")

RowLike = Union[CampusRow, Mapping[str, Any], None]
AccountLike = Union[DownstreamAccount, Mapping[str, Any], None]
FallbackLookup = Callable[[int], RowLike]


class Transition(enum.Enum):
    SKIP = "skip"                # placeholder row, non-campus login, expired row without account
    CREATE = "create"            # roster row, no Canvas account
    UPDATE = "update"            # roster row, active account
    REACTIVATE = "reactivate"    # roster row, inactive account
    DEACTIVATE = "deactivate"    # no/expired row, active account, campus trusted
    RETAIN = "retain"            # no/expired row, active account, campus not trusted
    IGNORE = "ignore"            # no/expired row, inactive account


@dataclass
class Categorization:
    """Instructions produced for one identity."""
    transition: Transition
    ldap_uid: Optional[int] = None
    sis_user_id: Optional[str] = None
    account_change: Optional[dict] = None
    sis_user_id_change: Optional[tuple[str, dict]] = None
    email_deletion: Optional[str] = None

    @property
    def records_ledger(self) -> bool:
        return self.ldap_uid is not None and self.sis_user_id is not None

    @property
    def instruction_count(self) -> int:
        return sum(
            1 for item in (self.account_change, self.sis_user_id_change, self.email_deletion)
            if item is not None
        )


def _coerce_row(row: RowLike) -> Optional[CampusRow]:
    if row is None or isinstance(row, CampusRow):
        return row
    return CampusRow.from_dict(row)


def _coerce_account(account: AccountLike) -> Optional[DownstreamAccount]:
    if account is None or isinstance(account, DownstreamAccount):
        return account
    return DownstreamAccount.from_dict(account)


def canvas_user_from_campus_row(row: CampusRow, sis_user_id: str) -> dict:
    """Target Canvas user import record for an active campus identity."""
    return {
        "user_id": sis_user_id,
        "login_id": format_login_id(row.ldap_uid, AccountState.ACTIVE),
        "first_name": row.first_name,
        "last_name": row.last_name,
        "email": row.email_address,
        "status": "active",
    }


class UserCategorizer:
    """Accumulates reconciliation instructions for one sync pass.

    Attributes:
        known_users: Ledger of campus UID (str) -> SIS user id, owned by the caller
        account_changes: Pending user import records, owned by the caller
        sis_user_id_changes: "sis_login_id:<login>" -> {"old_id", "new_id"}
        user_email_deletions: Canvas user ids whose email channels must go
    """

    def __init__(
        self,
        known_users: Optional[dict] = None,
        account_changes: Optional[list] = None,
        config: Optional[SyncConfig] = None,
        *,
        name_tokens: Optional[NameTokens] = None,
        fallback_lookup: Optional[FallbackLookup] = None,
    ):
        self.config = config or settings
        self.known_users = known_users if known_users is not None else {}
        self.account_changes = account_changes if account_changes is not None else []
        self.sis_user_id_changes: dict[str, dict] = {}
        self.user_email_deletions: list[str] = []
        self.name_tokens = name_tokens or load_name_tokens(self.config.name_tokens_file or None)
        self.fallback_lookup = fallback_lookup

        self._lock = threading.Lock()
        self._recorded_uids: set[str] = set()
        self._handlers = {
            Transition.SKIP: self._no_instructions,
            Transition.IGNORE: self._no_instructions,
            Transition.CREATE: self._create,
            Transition.UPDATE: self._update,
            Transition.REACTIVATE: self._reactivate,
            Transition.DEACTIVATE: self._deactivate,
            Transition.RETAIN: self._retain,
        }

    # ─────────────────────────────────────────────────────────────────────
    # Classification
    # ─────────────────────────────────────────────────────────────────────

    def classify(self, campus_row: Optional[CampusRow], account: Optional[DownstreamAccount]) -> Transition:
        """Map roster/account facts to a transition.

        Raises:
            ValueError: If both sides are absent or they belong to different UIDs
        """
        if campus_row is None and account is None:
            raise ValueError("Cannot categorize an identity with neither roster row nor account")
        if campus_row is not None and campus_row.is_placeholder:
            return Transition.SKIP

        if account is None:
            return Transition.SKIP if campus_row.is_expired else Transition.CREATE

        parsed = account.parsed_login
        if parsed.ldap_uid is None or parsed.ldap_uid == SENTINEL_UID:
            return Transition.SKIP
        if campus_row is not None and campus_row.ldap_uid != parsed.ldap_uid:
            raise ValueError(
                f"Roster UID {campus_row.ldap_uid} does not match login {account.login_id!r}"
            )

        on_roster = campus_row is not None and not campus_row.is_expired
        if on_roster:
            return Transition.REACTIVATE if parsed.inactive_account else Transition.UPDATE
        if parsed.inactive_account:
            return Transition.IGNORE
        if self.config.inactivate_expired_users:
            return Transition.DEACTIVATE
        return Transition.RETAIN

    def categorize(self, campus_row: RowLike, existing_account: AccountLike) -> Categorization:
        """Compute instructions for one identity without touching shared state.

        Raises:
            FallbackLookupError: If the fallback lookup itself fails; the
                identity is left uncategorized rather than deactivated
        """
        row = _coerce_row(campus_row)
        account = _coerce_account(existing_account)

        if row is None and self.fallback_lookup and account is not None:
            parsed = account.parsed_login
            if parsed.ldap_uid not in (None, SENTINEL_UID) and not parsed.inactive_account:
                try:
                    found = self.fallback_lookup(parsed.ldap_uid)
                except Exception as e:
                    raise FallbackLookupError(parsed.ldap_uid, e) from e
                row = _coerce_row(found)
                if row is not None:
                    logger.info("[categorize] UID %s missing from roster, found by fallback lookup", parsed.ldap_uid)

        transition = self.classify(row, account)
        return self._handlers[transition](transition, row, account)

    # ─────────────────────────────────────────────────────────────────────
    # Transition handlers
    # ─────────────────────────────────────────────────────────────────────

    def _derive(self, row: CampusRow) -> str:
        sis_user_id = derive_sis_user_id(
            row.ldap_uid,
            row.student_id,
            row.roles,
            mixed_sis_user_id=self.config.mixed_sis_user_id,
        )
        if row.roles.student and not row.student_id:
            logger.debug("[categorize] Student UID %s has no student id, using %s", row.ldap_uid, sis_user_id)
        return sis_user_id

    def _no_instructions(self, transition, row, account) -> Categorization:
        uid = row.ldap_uid if row is not None else account.ldap_uid
        return Categorization(transition, ldap_uid=uid)

    def _create(self, transition, row, account) -> Categorization:
        sis_user_id = self._derive(row)
        return Categorization(
            transition,
            ldap_uid=row.ldap_uid,
            sis_user_id=sis_user_id,
            account_change=canvas_user_from_campus_row(row, sis_user_id),
        )

    def _update(self, transition, row, account) -> Categorization:
        sis_user_id = self._derive(row)
        result = Categorization(transition, ldap_uid=row.ldap_uid, sis_user_id=sis_user_id)

        if account.user_id != sis_user_id:
            result.sis_user_id_change = (
                sis_login_key(account.login_id),
                {"old_id": account.user_id, "new_id": sis_user_id},
            )

        new_account = canvas_user_from_campus_row(row, sis_user_id)
        if not provisioned_account_eq_sis_account(
            account.as_record(),
            new_account,
            maintain_user_names=self.config.maintain_user_names,
            name_tokens=self.name_tokens,
        ):
            result.account_change = new_account
        return result

    def _reactivate(self, transition, row, account) -> Categorization:
        logger.warning("[categorize] Reactivating account for UID %s", row.ldap_uid)
        sis_user_id = self._derive(row)
        result = Categorization(
            transition,
            ldap_uid=row.ldap_uid,
            sis_user_id=sis_user_id,
            account_change=canvas_user_from_campus_row(row, sis_user_id),
        )
        inactive_sis_user_id = uid_sis_user_id(row.ldap_uid)
        if inactive_sis_user_id != sis_user_id:
            result.sis_user_id_change = (
                sis_login_key(account.login_id),
                {"old_id": inactive_sis_user_id, "new_id": sis_user_id},
            )
        return result

    def _deactivate(self, transition, row, account) -> Categorization:
        uid = account.ldap_uid
        inactive_sis_user_id = uid_sis_user_id(uid)
        logger.info("[categorize] Inactivating account for UID %s (canvas user %s)", uid, account.canvas_user_id)
        result = Categorization(
            transition,
            ldap_uid=uid,
            sis_user_id=inactive_sis_user_id,
            account_change={
                "user_id": inactive_sis_user_id,
                "login_id": format_login_id(uid, AccountState.INACTIVE),
                "first_name": account.first_name,
                "last_name": account.last_name,
                "email": "",
                "status": "active",
            },
            email_deletion=account.canvas_user_id,
        )
        if account.user_id != inactive_sis_user_id:
            result.sis_user_id_change = (
                sis_login_key(account.login_id),
                {"old_id": account.user_id, "new_id": inactive_sis_user_id},
            )
        return result

    def _retain(self, transition, row, account) -> Categorization:
        return Categorization(transition, ldap_uid=account.ldap_uid, sis_user_id=account.user_id)

    # ─────────────────────────────────────────────────────────────────────
    # Merging into shared state
    # ─────────────────────────────────────────────────────────────────────

    def record(self, categorization: Categorization) -> Categorization:
        """Merge one identity's instructions into the pass accumulators.

        Raises:
            LedgerCorruptionError: If this pass already recorded a different
                SIS user id for the same UID
        """
        with self._lock:
            if categorization.records_ledger:
                uid_key = str(categorization.ldap_uid)
                previous = self.known_users.get(uid_key)
                if uid_key in self._recorded_uids and previous != categorization.sis_user_id:
                    raise LedgerCorruptionError(
                        f"UID {uid_key} recorded twice in one pass ({previous!r} vs {categorization.sis_user_id!r})"
                    )
                self._recorded_uids.add(uid_key)
                self.known_users[uid_key] = categorization.sis_user_id

            if categorization.account_change is not None:
                self.account_changes.append(categorization.account_change)
            if categorization.sis_user_id_change is not None:
                key, change = categorization.sis_user_id_change
                self.sis_user_id_changes[key] = change
            if categorization.email_deletion is not None:
                self.user_email_deletions.append(categorization.email_deletion)
        return categorization

    def categorize_user_account(self, existing_account: AccountLike, campus_row: RowLike = None) -> Categorization:
        """Categorize an existing Canvas account and record the result."""
        return self.record(self.categorize(campus_row, existing_account))

    def categorize_new_user(self, campus_row: RowLike) -> Categorization:
        """Categorize a roster row with no Canvas account and record the result."""
        return self.record(self.categorize(campus_row, None))
