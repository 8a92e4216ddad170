"""Settings loader with environment variable and Docker secrets integration."""
from __future__ import annotations
import os
from dataclasses import dataclass
from pathlib import Path


def _load_secret_from_file(secret_name: str, env_var: str | None = None) -> str | None:
    """
    Load secret from /run/secrets (Docker secrets pattern).

    Priority:
    1. /run/secrets/{secret_name} (Docker secrets mount)
    2. Environment variable (fallback)

    Args:
        secret_name: Name of the secret file in /run/secrets
        env_var: Optional environment variable name to check as fallback

    Returns:
        Secret value or None if not found
    """
    secret_file = Path("/run/secrets") / secret_name

    if secret_file.exists() and secret_file.is_file():
        try:
            secret_value = secret_file.read_text().strip()
            if secret_value:
                print(f"[settings] ✓ Loaded {secret_name} from /run/secrets")
                return secret_value
        except OSError as e:
            print(f"[settings] ✗ Failed to read /run/secrets/{secret_name}: {e}")

    if env_var:
        secret_value = os.getenv(env_var)
        if secret_value:
            print(f"[settings] ✓ Loaded {env_var} from environment (fallback)")
            return secret_value

    return None


def _env_flag(var_name: str, default: bool) -> bool:
    """Read a boolean flag ("true"/"false") from the environment."""
    raw = os.environ.get(var_name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class SyncConfig:
    """Roster sync configuration container."""
    # Mode
    demo_mode: bool = False

    # Reconciliation flags
    dry_run_import: bool = False
    mixed_sis_user_id: bool = True
    maintain_user_names: bool = True
    inactivate_expired_users: bool = False

    # Canvas
    canvas_url: str = ""
    canvas_account_id: str = "1"
    canvas_api_token: str = ""

    # Execution
    max_workers: int = 1
    name_tokens_file: str = ""

    # Audit
    audit_operator: str = "roster-sync"

    @property
    def canvas_api_token_resolved(self) -> str:
        """Get the Canvas API token with fallback to secrets and environment.

        Priority:
        1. Configured value in canvas_api_token
        2. Docker secrets: /run/secrets/canvas_api_token
        3. Environment variable: CANVAS_API_TOKEN

        Raises:
            ValueError: If no token is available
        """
        if self.canvas_api_token:
            return self.canvas_api_token

        for secret_name in ["canvas_api_token", "canvas-api-token"]:
            secret_path = Path("/run/secrets") / secret_name
            if secret_path.exists():
                secret = secret_path.read_text().strip()
                if secret:
                    return secret

        token = os.environ.get("CANVAS_API_TOKEN")
        if token:
            return token

        raise ValueError(
            "CANVAS_API_TOKEN not found. "
            "Provide it via Docker secrets or environment variable."
        )


def load_settings() -> SyncConfig:
    """Load sync settings from environment and /run/secrets."""
    demo_mode = _env_flag("DEMO_MODE", False)

    canvas_api_token = _load_secret_from_file("canvas_api_token", "CANVAS_API_TOKEN") or ""

    # Demo mode never writes to Canvas unless explicitly told to
    dry_run_import = _env_flag("DRY_RUN_IMPORT", demo_mode)
    mixed_sis_user_id = _env_flag("MIXED_SIS_USER_ID", True)
    maintain_user_names = _env_flag("MAINTAIN_USER_NAMES", True)
    inactivate_expired_users = _env_flag("INACTIVATE_EXPIRED_USERS", False)

    max_workers_raw = os.environ.get("SYNC_MAX_WORKERS", "1").strip() or "1"
    try:
        max_workers = max(1, int(max_workers_raw))
    except ValueError:
        print(f"[settings] WARNING: Invalid SYNC_MAX_WORKERS={max_workers_raw!r}, using 1")
        max_workers = 1

    canvas_url = os.environ.get("CANVAS_URL", "http://localhost:3000" if demo_mode else "").rstrip("/")

    mode_label = "DEMO" if demo_mode else "PRODUCTION"
    print(
        f"[settings] Mode={mode_label}; dry_run={dry_run_import}; "
        f"inactivate_expired_users={inactivate_expired_users}"
    )

    return SyncConfig(
        demo_mode=demo_mode,
        dry_run_import=dry_run_import,
        mixed_sis_user_id=mixed_sis_user_id,
        maintain_user_names=maintain_user_names,
        inactivate_expired_users=inactivate_expired_users,
        canvas_url=canvas_url,
        canvas_account_id=os.environ.get("CANVAS_ACCOUNT_ID", "1"),
        canvas_api_token=canvas_api_token,
        max_workers=max_workers,
        name_tokens_file=os.environ.get("NAME_TOKENS_FILE", ""),
        audit_operator=os.environ.get("AUDIT_OPERATOR", "roster-sync"),
    )


# Global settings instance (loaded on first import)
settings: SyncConfig = load_settings()
