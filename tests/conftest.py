"""Pytest shared fixtures for roster sync tests."""
import os
import pathlib
import sys
import tempfile

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Configure test environment BEFORE any rostersync imports (settings load at import)
os.environ["DEMO_MODE"] = "false"
os.environ["DRY_RUN_IMPORT"] = "false"
os.environ["MIXED_SIS_USER_ID"] = "true"
os.environ["MAINTAIN_USER_NAMES"] = "true"
os.environ["INACTIVATE_EXPIRED_USERS"] = "false"
os.environ["SYNC_MAX_WORKERS"] = "1"
os.environ.pop("NAME_TOKENS_FILE", None)
os.environ.setdefault("AUDIT_LOG_DIR", tempfile.mkdtemp(prefix="rostersync-audit-"))

import pytest

from rostersync import audit
from rostersync.config.settings import SyncConfig


@pytest.fixture(autouse=True)
def isolated_audit_log(monkeypatch, tmp_path):
    """Every test writes audit events to its own directory."""
    audit_dir = tmp_path / "audit"
    audit_file = audit_dir / "sync-events.jsonl"
    monkeypatch.setattr(audit, "AUDIT_LOG_DIR", audit_dir)
    monkeypatch.setattr(audit, "AUDIT_LOG_FILE", audit_file)
    monkeypatch.setenv("AUDIT_LOG_SIGNING_KEY", "test-signing-key-for-audit-trail")
    return audit_file


@pytest.fixture
def make_config():
    """Build a SyncConfig with test-friendly defaults."""
    def _make(**overrides):
        base = dict(
            demo_mode=False,
            dry_run_import=False,
            mixed_sis_user_id=True,
            maintain_user_names=True,
            inactivate_expired_users=False,
            canvas_url="https://canvas.test",
            canvas_account_id="1",
            canvas_api_token="test-token",
            max_workers=1,
        )
        base.update(overrides)
        return SyncConfig(**base)
    return _make
