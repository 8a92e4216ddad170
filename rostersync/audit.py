"""Audit logging utilities for roster sync mutations."""

from __future__ import annotations
import datetime
import hashlib
import hmac
import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Literal

logger = logging.getLogger(__name__)

AUDIT_LOG_DIR = Path(os.environ.get("AUDIT_LOG_DIR", ".runtime/audit"))
AUDIT_LOG_FILE = AUDIT_LOG_DIR / "sync-events.jsonl"
_env_secret_path_str = os.environ.get("AUDIT_LOG_SIGNING_KEY_FILE")
_env_secret_path: Path | None = Path(_env_secret_path_str) if _env_secret_path_str else None
_write_lock = threading.Lock()


def _get_signing_key() -> bytes:
    """Get the audit signing key (file, then environment, then demo default)."""
    if _env_secret_path and _env_secret_path.exists():
        try:
            return _env_secret_path.read_text(encoding="utf-8").strip().encode("utf-8")
        except OSError:
            logger.warning("[audit] Could not read %s, falling back to environment", _env_secret_path)
    if "AUDIT_LOG_SIGNING_KEY" in os.environ:
        return os.environ.get("AUDIT_LOG_SIGNING_KEY", "").strip().encode("utf-8")
    if os.environ.get("DEMO_MODE", "false").lower() == "true":
        return b"demo-audit-signing-key-change-in-production"
    return b""

EventType = Literal[
    "sis_id_change",
    "email_deletion",
    "account_update",
    "sync_pass",
]


def _ensure_audit_dir() -> None:
    """Create audit directory with restricted permissions."""
    AUDIT_LOG_DIR.mkdir(parents=True, exist_ok=True)
    AUDIT_LOG_DIR.chmod(0o700)


def _sign_event(event: dict[str, Any]) -> str:
    """Generate HMAC-SHA256 signature for audit event."""
    signing_key = _get_signing_key()
    if not signing_key:
        return ""
    # Canonical JSON representation for signing
    canonical = json.dumps(event, sort_keys=True, separators=(",", ":"))
    return hmac.new(signing_key, canonical.encode("utf-8"), hashlib.sha256).hexdigest()


def log_sync_event(
    event_type: EventType,
    subject: str,
    *,
    operator: str = "roster-sync",
    details: dict[str, Any] | None = None,
    dry_run: bool = False,
    success: bool = True,
) -> None:
    """Log a sync event to the audit trail with timestamp and signature.

    Args:
        event_type: Type of mutation (sis_id_change, email_deletion, ...)
        subject: Lookup key or Canvas user id affected by the operation
        operator: Who ran the sync job
        details: Additional context (old/new ids, channel ids, errors)
        dry_run: Whether the mutation was suppressed
        success: Whether the operation succeeded
    """
    _ensure_audit_dir()

    event = {
        "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
        "event_type": event_type,
        "subject": subject,
        "operator": operator,
        "dry_run": dry_run,
        "success": success,
        "details": details or {},
    }

    signature = _sign_event(event)
    if signature:
        event["signature"] = signature

    # Append to JSONL file (one JSON object per line); applicator workers share it
    with _write_lock:
        with AUDIT_LOG_FILE.open("a", encoding="utf-8") as f:
            f.write(json.dumps(event, ensure_ascii=False) + "\n")
        AUDIT_LOG_FILE.chmod(0o600)


def safe_log_sync_event(
    event_type: EventType,
    subject: str,
    *,
    operator: str = "roster-sync",
    details: dict[str, Any] | None = None,
    dry_run: bool = False,
    success: bool = True,
) -> bool:
    """Log a sync event, never raising.

    Audit failures must not break a sync pass; they are logged as warnings.

    Returns:
        True if event was logged successfully, False if logging failed
    """
    try:
        log_sync_event(
            event_type,
            subject,
            operator=operator,
            details=details,
            dry_run=dry_run,
            success=success,
        )
        return True
    except (OSError, TypeError, ValueError) as e:
        logger.warning("[audit] Failed to log %s event for %s: %s", event_type, subject, e)
        return False


def verify_audit_log() -> tuple[int, int]:
    """Verify all signatures in the audit log.

    Returns:
        Tuple of (total_events, valid_signatures)
    """
    if not AUDIT_LOG_FILE.exists():
        return 0, 0

    total = 0
    valid = 0

    with AUDIT_LOG_FILE.open("r", encoding="utf-8") as f:
        for line in f:
            if not line.strip():
                continue
            total += 1
            try:
                event = json.loads(line)
                stored_sig = event.pop("signature", "")
                if not stored_sig:
                    continue
                computed_sig = _sign_event(event)
                if hmac.compare_digest(stored_sig, computed_sig):
                    valid += 1
            except (json.JSONDecodeError, KeyError):
                continue

    return total, valid


if __name__ == "__main__":
    import sys
    total, valid = verify_audit_log()
    print(f"Audit log: {valid}/{total} events with valid signatures")
    sys.exit(0 if total == valid else 1)
