"""Batch job: reconcile a campus roster export against Canvas users.

This module serves as a CLI wrapper around rostersync.core services.
"""
from __future__ import annotations
import argparse
import dataclasses
import logging
import sys
from pathlib import Path

SCRIPT_DIR = Path(__file__).parent
PROJECT_ROOT = SCRIPT_DIR.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from rostersync import audit
from rostersync.config.settings import settings
from rostersync.core.account_equivalence import load_name_tokens
from rostersync.core.canvas import directory_from_settings
from rostersync.core.change_applicator import ChangeApplicator
from rostersync.core.csv_io import (
    read_campus_rows,
    read_provisioned_accounts,
    write_ledger,
    write_user_import,
)
from rostersync.core.reconciler import reconcile_roster


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Campus roster → Canvas user sync")
    parser.add_argument("--roster", required=True, help="Campus roster CSV export")
    parser.add_argument("--accounts", required=True, help="Canvas users provisioning report CSV")
    parser.add_argument("--output", default="user-import.csv", help="SIS user import CSV to write")
    parser.add_argument("--ledger", help="Write the UID → SIS user id ledger as JSON")
    parser.add_argument("--canvas-url", default=None)
    parser.add_argument("--workers", type=int, default=None)
    parser.add_argument("--name-tokens", default=None, help="YAML file of credential tokens")
    parser.add_argument("--operator", default=None,
                        help="Operator identifier for audit logs (default: AUDIT_OPERATOR)")
    parser.add_argument("--trust-campus", action="store_true",
                        help="Inactivate accounts missing or expired in campus data")
    parser.add_argument("--verbose", "-v", action="store_true")

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--dry-run", dest="dry_run", action="store_true", default=None,
                      help="Do not send SIS id changes or channel deletions")
    mode.add_argument("--apply", dest="dry_run", action="store_false",
                      help="Send changes even if DRY_RUN_IMPORT is set")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Command-line entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    overrides = {}
    if args.dry_run is not None:
        overrides["dry_run_import"] = args.dry_run
    if args.trust_campus:
        overrides["inactivate_expired_users"] = True
    if args.canvas_url:
        overrides["canvas_url"] = args.canvas_url.rstrip("/")
    if args.workers:
        overrides["max_workers"] = max(1, args.workers)
    if args.operator:
        overrides["audit_operator"] = args.operator
    if args.name_tokens:
        overrides["name_tokens_file"] = args.name_tokens
    config = dataclasses.replace(settings, **overrides)

    try:
        name_tokens = load_name_tokens(config.name_tokens_file or None)
        rows = read_campus_rows(args.roster)
        accounts = read_provisioned_accounts(args.accounts)
    except (OSError, ValueError) as e:
        print(f"[sync] Error: {e}", file=sys.stderr)
        return 2

    result = reconcile_roster(rows, accounts, config=config, name_tokens=name_tokens)
    written = write_user_import(args.output, result.account_changes)
    print(f"[sync] Wrote {written} account change(s) to {args.output}")
    if args.ledger:
        write_ledger(args.ledger, result.known_users)
        print(f"[sync] Wrote ledger of {len(result.known_users)} user(s) to {args.ledger}")
    for error in result.errors:
        print(f"[sync] {error.kind}: {error.message}", file=sys.stderr)

    report = None
    if result.sis_user_id_changes or result.user_email_deletions:
        try:
            directory = directory_from_settings(config)
        except ValueError as e:
            if not config.dry_run_import:
                print(f"[sync] Error: {e}", file=sys.stderr)
                return 2
            print(f"[sync] Dry run without Canvas credentials, not reading channels: {e}")
            directory = None
        if directory is not None:
            report = ChangeApplicator(directory, config=config).apply(result)

    summary = result.counts()
    if report is not None:
        summary.update({f"apply_{key}": value for key, value in report.as_dict().items()})
    audit.safe_log_sync_event(
        "sync_pass",
        args.roster,
        operator=config.audit_operator,
        details=summary,
        dry_run=config.dry_run_import,
        success=report is None or report.ok,
    )
    print(f"[sync] Summary: {summary}")

    if report is not None:
        for failure in report.failures:
            print(f"[sync] {failure.operation} failed for {failure.subject}: {failure.error}", file=sys.stderr)
        if not report.ok:
            return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
