"""CSV adapters for the batch job.

- Roster export: ldap_uid, first_name, last_name, email_address, student_id,
  roles (role names separated by ";", e.g. "student;registered")
- Canvas provisioning report (users): canvas_user_id, user_id, login_id,
  first_name, last_name, full_name, sortable_name, email, status
- Canvas SIS user import: user_id, login_id, first_name, last_name, email, status
"""
from __future__ import annotations
import csv
import json
from pathlib import Path
from typing import Iterable, Iterator

from .categorizer import USER_IMPORT_FIELDS


def _read_dicts(path: str | Path) -> Iterator[dict]:
    with Path(path).open("r", encoding="utf-8", newline="") as handle:
        for row in csv.DictReader(handle):
            yield {(key or "").strip(): value for key, value in row.items()}


def read_campus_rows(path: str | Path) -> list[dict]:
    """Read roster rows; roles stay a ";"-separated string for CampusRow.from_dict."""
    return list(_read_dicts(path))


def read_provisioned_accounts(path: str | Path) -> list[dict]:
    """Read a Canvas users provisioning report."""
    return list(_read_dicts(path))


def write_user_import(path: str | Path, account_changes: Iterable[dict]) -> int:
    """Write pending account changes as a Canvas SIS user import CSV.

    Returns:
        Number of data rows written
    """
    count = 0
    with Path(path).open("w", encoding="utf-8", newline="") as handle:
        writer = csv.DictWriter(handle, fieldnames=USER_IMPORT_FIELDS, extrasaction="ignore")
        writer.writeheader()
        for change in account_changes:
            writer.writerow({name: change.get(name) or "" for name in USER_IMPORT_FIELDS})
            count += 1
    return count


def write_ledger(path: str | Path, known_users: dict) -> None:
    """Write the UID -> SIS user id ledger as JSON for later pipeline stages."""
    with Path(path).open("w", encoding="utf-8") as handle:
        json.dump(known_users, handle, indent=2, sort_keys=True)
        handle.write("\n")
