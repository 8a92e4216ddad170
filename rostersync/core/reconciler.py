"""Sync pass driver: pair roster rows with Canvas accounts and categorize them.

Steps:
    1. Normalize roster rows (malformed rows are reported and skipped)
    2. Resolve duplicate rows for one UID (non-expired wins, then first seen)
    3. Categorize every campus-login Canvas account against its row (or none)
    4. Categorize leftover roster rows as new users
    5. Merge per-identity results, in input order, into a SyncResult
"""
from __future__ import annotations
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from rostersync.config.settings import SyncConfig, settings
from .account_equivalence import NameTokens
from .categorizer import Categorization, FallbackLookup, Transition, UserCategorizer
from .exceptions import FallbackLookupError, MalformedRowError
from .models import SENTINEL_UID, CampusRow, DownstreamAccount, coerce_accounts

logger = logging.getLogger(__name__)


@dataclass
class SyncError:
    """A reportable, non-fatal problem found during a pass."""
    kind: str
    message: str
    context: dict = field(default_factory=dict)


@dataclass
class SyncResult:
    """Everything a pass produced, ready for bulk import and the change applicator."""
    known_users: dict
    account_changes: list
    sis_user_id_changes: dict
    user_email_deletions: list
    transitions: dict = field(default_factory=dict)
    errors: list = field(default_factory=list)

    def counts(self) -> dict[str, int]:
        counts = {
            "known_users": len(self.known_users),
            "account_changes": len(self.account_changes),
            "sis_user_id_changes": len(self.sis_user_id_changes),
            "user_email_deletions": len(self.user_email_deletions),
            "errors": len(self.errors),
        }
        for transition in Transition:
            counts[transition.value] = self.transitions.get(transition, 0)
        return counts


def index_campus_rows(rows: Iterable[Any], errors: list) -> dict[int, CampusRow]:
    """Normalize roster rows and index them by UID.

    Placeholder rows (UID 0) are dropped. When a UID appears twice, a row
    without ``expiredAccount`` beats an expired one; otherwise the first
    row seen wins. Every dropped duplicate is reported.
    """
    indexed: dict[int, CampusRow] = {}
    for position, raw in enumerate(rows):
        try:
            row = raw if isinstance(raw, CampusRow) else CampusRow.from_dict(raw)
        except MalformedRowError as e:
            logger.warning("[reconcile] Skipping roster row %d: %s", position, e)
            errors.append(SyncError("malformed_row", str(e), {"position": position}))
            continue
        if row.is_placeholder:
            continue

        current = indexed.get(row.ldap_uid)
        if current is None:
            indexed[row.ldap_uid] = row
            continue

        keep = row if current.is_expired and not row.is_expired else current
        logger.warning("[reconcile] Duplicate roster rows for UID %s", row.ldap_uid)
        errors.append(SyncError(
            "duplicate_row",
            f"UID {row.ldap_uid} appears more than once in the roster",
            {"ldap_uid": row.ldap_uid, "position": position, "kept_expired": keep.is_expired},
        ))
        indexed[row.ldap_uid] = keep
    return indexed


def reconcile_roster(
    rows: Iterable[Any],
    accounts: Iterable[Any],
    *,
    config: Optional[SyncConfig] = None,
    known_users: Optional[dict] = None,
    account_changes: Optional[list] = None,
    name_tokens: Optional[NameTokens] = None,
    fallback_lookup: Optional[FallbackLookup] = None,
    max_workers: Optional[int] = None,
) -> SyncResult:
    """Run one reconciliation pass over the roster and the Canvas accounts.

    Args:
        rows: Roster rows (CampusRow or mappings)
        accounts: Canvas accounts (DownstreamAccount or provisioning report mappings)
        config: Sync configuration (defaults to global settings)
        known_users: Ledger to extend (a new dict if omitted)
        account_changes: Import list to extend (a new list if omitted)
        name_tokens: Credential tokens for name comparison
        fallback_lookup: Secondary lookup for UIDs missing from the roster
        max_workers: Categorize on a thread pool of this size when > 1

    Returns:
        SyncResult with ledger, instruction sets and reported errors
    """
    config = config or settings
    workers = max_workers if max_workers is not None else config.max_workers
    errors: list[SyncError] = []

    categorizer = UserCategorizer(
        known_users,
        account_changes,
        config,
        name_tokens=name_tokens,
        fallback_lookup=fallback_lookup,
    )
    campus_rows = index_campus_rows(rows, errors)

    pairs: list[tuple[Optional[CampusRow], Optional[DownstreamAccount]]] = []
    claimed: dict[int, DownstreamAccount] = {}
    for account in coerce_accounts(accounts):
        uid = account.ldap_uid
        if uid is None or uid == SENTINEL_UID:
            logger.debug("[reconcile] Skipping non-campus login %r", account.login_id)
            continue
        if uid in claimed:
            logger.warning(
                "[reconcile] Canvas users %s and %s share UID %s",
                claimed[uid].canvas_user_id, account.canvas_user_id, uid,
            )
            errors.append(SyncError(
                "duplicate_account",
                f"UID {uid} maps to more than one Canvas account",
                {"ldap_uid": uid, "canvas_user_id": account.canvas_user_id,
                 "kept_canvas_user_id": claimed[uid].canvas_user_id},
            ))
            continue
        claimed[uid] = account
        pairs.append((campus_rows.get(uid), account))

    pairs.extend((row, None) for uid, row in campus_rows.items() if uid not in claimed)

    results = _categorize_all(categorizer, pairs, workers, errors)
    transitions: dict[Transition, int] = {}
    for categorization in results:
        categorizer.record(categorization)
        transitions[categorization.transition] = transitions.get(categorization.transition, 0) + 1

    result = SyncResult(
        known_users=categorizer.known_users,
        account_changes=categorizer.account_changes,
        sis_user_id_changes=categorizer.sis_user_id_changes,
        user_email_deletions=categorizer.user_email_deletions,
        transitions=transitions,
        errors=errors,
    )
    logger.info("[reconcile] Pass complete: %s", result.counts())
    return result


def _categorize_all(
    categorizer: UserCategorizer,
    pairs: list,
    workers: int,
    errors: list,
) -> list[Categorization]:
    """Categorize pairs, on a thread pool when workers > 1, keeping input order."""
    def categorize(pair):
        row, account = pair
        try:
            return categorizer.categorize(row, account)
        except (FallbackLookupError, MalformedRowError, ValueError) as e:
            return e

    if workers > 1 and len(pairs) > 1:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            outcomes = list(executor.map(categorize, pairs))
    else:
        outcomes = [categorize(pair) for pair in pairs]

    results = []
    for (row, account), outcome in zip(pairs, outcomes):
        if isinstance(outcome, Exception):
            subject = account.login_id if account is not None else row.ldap_uid
            logger.warning("[reconcile] Could not categorize %s: %s", subject, outcome)
            kind = "fallback_failed" if isinstance(outcome, FallbackLookupError) else "categorize_failed"
            errors.append(SyncError(kind, str(outcome), {"subject": subject}))
            continue
        results.append(outcome)
    return results
