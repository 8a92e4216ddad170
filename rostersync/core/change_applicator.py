"""Apply SIS user id changes and email channel deletions to Canvas.

Profile updates go through the SIS user import; the two operations here
cannot, so they are issued one API call at a time. A failed call is
recorded and never stops the batch. Dry-run mode reads from Canvas but
sends no mutation at all.
"""
from __future__ import annotations
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional

from rostersync import audit
from rostersync.config.settings import SyncConfig, settings
from .canvas.exceptions import CanvasError
from .exceptions import LoginLookupError
from .models import SIS_LOGIN_KEY_PREFIX, AccountState, format_login_id, parse_login_id

logger = logging.getLogger(__name__)


@dataclass
class ApplyFailure:
    """One downstream mutation that could not be applied."""
    operation: str
    subject: str
    error: str
    details: dict = field(default_factory=dict)


@dataclass
class ApplyReport:
    """Outcome of applying a batch of instructions."""
    dry_run: bool = False
    attempted: int = 0
    succeeded: int = 0
    skipped: int = 0
    failures: list = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failures)

    @property
    def ok(self) -> bool:
        return not self.failures

    def merge(self, other: "ApplyReport") -> "ApplyReport":
        self.dry_run = self.dry_run or other.dry_run
        self.attempted += other.attempted
        self.succeeded += other.succeeded
        self.skipped += other.skipped
        self.failures.extend(other.failures)
        return self

    def as_dict(self) -> dict[str, Any]:
        return {
            "dry_run": self.dry_run,
            "attempted": self.attempted,
            "succeeded": self.succeeded,
            "skipped": self.skipped,
            "failed": self.failed,
        }


def login_id_candidates(lookup_key: Any) -> list[str]:
    """Active and inactive login forms addressed by a "sis_login_id:" key.

    A bare Canvas user id yields no candidates (any campus login matches).
    """
    key = str(lookup_key)
    if not key.startswith(SIS_LOGIN_KEY_PREFIX):
        return []
    uid = parse_login_id(key[len(SIS_LOGIN_KEY_PREFIX):]).ldap_uid
    if uid is None:
        return []
    return [format_login_id(uid, AccountState.ACTIVE), format_login_id(uid, AccountState.INACTIVE)]


class ChangeApplicator:
    """Drain a pass's SIS user id changes and email deletions against a directory.

    Args:
        directory: Object with list_logins, rename_identifier, list_channels,
            delete_channel (see rostersync.core.canvas.directory)
        config: Sync configuration (defaults to global settings)
        dry_run: Override config.dry_run_import
        max_workers: Concurrent API calls (defaults to config.max_workers)
        operator: Name recorded in the audit trail
    """

    def __init__(
        self,
        directory,
        *,
        config: Optional[SyncConfig] = None,
        dry_run: Optional[bool] = None,
        max_workers: Optional[int] = None,
        operator: Optional[str] = None,
    ):
        config = config or settings
        self.directory = directory
        self.dry_run = config.dry_run_import if dry_run is None else dry_run
        self.max_workers = max(1, max_workers if max_workers is not None else config.max_workers)
        self.operator = operator or config.audit_operator

    def _run(self, fn: Callable[[Any], ApplyReport], items: list) -> ApplyReport:
        report = ApplyReport(dry_run=self.dry_run)
        if self.max_workers > 1 and len(items) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                outcomes = list(executor.map(fn, items))
        else:
            outcomes = [fn(item) for item in items]
        for outcome in outcomes:
            report.merge(outcome)
        return report

    # ─────────────────────────────────────────────────────────────────────
    # SIS user id changes
    # ─────────────────────────────────────────────────────────────────────

    def change_sis_user_ids_by_api(self, sis_user_id_changes: dict) -> ApplyReport:
        """Rename every SIS user id in the map, or none of them in dry-run mode."""
        items = list(sis_user_id_changes.items())
        if self.dry_run:
            for lookup_key, change in items:
                logger.info(
                    "[apply] DRY RUN: would change SIS user id of %s from %s to %s",
                    lookup_key, change.get("old_id"), change.get("new_id"),
                )
            return ApplyReport(dry_run=True, skipped=len(items))

        logger.info("[apply] Changing %d SIS user ids (workers=%d)", len(items), self.max_workers)
        return self._run(self._change_one, items)

    def _change_one(self, item) -> ApplyReport:
        lookup_key, change = item
        details = {"old_id": change.get("old_id"), "new_id": change.get("new_id")}
        report = ApplyReport(dry_run=False, attempted=1)
        try:
            login = self.change_sis_user_id(lookup_key, change["new_id"])
            details["login_id"] = login.get("id")
            report.succeeded = 1
            audit.safe_log_sync_event("sis_id_change", str(lookup_key), operator=self.operator, details=details)
        except (LoginLookupError, CanvasError) as e:
            logger.error("[apply] SIS user id change failed for %s (%s -> %s): %s",
                         lookup_key, details["old_id"], details["new_id"], e)
            report.failures.append(ApplyFailure("sis_id_change", str(lookup_key), str(e), details))
            audit.safe_log_sync_event(
                "sis_id_change",
                str(lookup_key),
                operator=self.operator,
                details={**details, "error": str(e)},
                success=False,
            )
        return report

    def change_sis_user_id(self, lookup_key, new_sis_user_id: str) -> dict:
        """Set a new SIS user id on the campus login of one Canvas user.

        The login may be in either its active or inactive form, since a
        reactivation's import may or may not have run yet.

        Returns:
            The login that was changed

        Raises:
            LoginLookupError: If no login has a matching unique_id
            CanvasError: If Canvas rejects either call
        """
        candidates = login_id_candidates(lookup_key)
        for login in self.directory.list_logins(lookup_key) or []:
            unique_id = str(login.get("unique_id") or "")
            if candidates:
                matched = unique_id in candidates
            else:
                matched = parse_login_id(unique_id).ldap_uid is not None
            if matched:
                self.directory.rename_identifier(login["id"], new_sis_user_id, login.get("account_id"))
                logger.debug("[apply] Login %s (%s) now has SIS user id %s", login["id"], unique_id, new_sis_user_id)
                return login
        raise LoginLookupError(str(lookup_key), candidates)

    # ─────────────────────────────────────────────────────────────────────
    # Email deletions
    # ─────────────────────────────────────────────────────────────────────

    def handle_email_deletions(self, canvas_user_ids: Iterable[Any]) -> ApplyReport:
        """Delete every active email channel of each user, once per user."""
        unique_ids = list(dict.fromkeys(str(user_id) for user_id in canvas_user_ids))
        logger.info("[apply] Purging email channels of %d users (dry_run=%s)", len(unique_ids), self.dry_run)
        return self._run(self._purge_email_channels, unique_ids)

    def _purge_email_channels(self, canvas_user_id: str) -> ApplyReport:
        report = ApplyReport(dry_run=self.dry_run)
        try:
            channels = self.directory.list_channels(canvas_user_id) or []
        except CanvasError as e:
            logger.error("[apply] Could not list channels of Canvas user %s: %s", canvas_user_id, e)
            report.failures.append(ApplyFailure("email_deletion", canvas_user_id, str(e), {"step": "list"}))
            return report

        emails = [
            channel for channel in channels
            if channel.get("type") == "email" and channel.get("workflow_state") == "active"
        ]
        for channel in emails:
            details = {"channel_id": channel.get("id"), "address": channel.get("address")}
            if self.dry_run:
                logger.info("[apply] DRY RUN: would delete email channel %s of Canvas user %s",
                            channel.get("id"), canvas_user_id)
                report.skipped += 1
                continue

            report.attempted += 1
            try:
                self.directory.delete_channel(canvas_user_id, channel["id"])
                report.succeeded += 1
                audit.safe_log_sync_event("email_deletion", canvas_user_id, operator=self.operator, details=details)
            except CanvasError as e:
                logger.error("[apply] Could not delete channel %s of Canvas user %s: %s",
                             channel.get("id"), canvas_user_id, e)
                report.failures.append(ApplyFailure("email_deletion", canvas_user_id, str(e), details))
                audit.safe_log_sync_event(
                    "email_deletion",
                    canvas_user_id,
                    operator=self.operator,
                    details={**details, "error": str(e)},
                    success=False,
                )
        return report

    def apply(self, result) -> ApplyReport:
        """Apply both instruction sets of a SyncResult."""
        report = self.change_sis_user_ids_by_api(result.sis_user_id_changes)
        report.merge(self.handle_email_deletions(result.user_email_deletions))
        logger.info("[apply] Done: %s", report.as_dict())
        return report
