import csv
import json

from rostersync.core.csv_io import (
    read_campus_rows,
    read_provisioned_accounts,
    write_ledger,
    write_user_import,
)
from rostersync.core.models import CampusRow, DownstreamAccount


def test_roster_rows_parse_into_campus_rows(tmp_path):
    path = tmp_path / "roster.csv"
    path.write_text(
        "ldap_uid,first_name,last_name,email_address,student_id,roles\n"
        "61889,Ema,Ilcha,ema@example.edu,11667051,student;registered\n"
        "500,Staff,Person,staff@example.edu,,staff\n"
    )
    rows = [CampusRow.from_dict(raw) for raw in read_campus_rows(path)]

    assert rows[0].ldap_uid == 61889
    assert rows[0].roles.student and rows[0].roles.registered
    assert rows[0].student_id == "11667051"
    assert rows[1].student_id is None
    assert rows[1].roles.staff


def test_provisioning_report(tmp_path):
    path = tmp_path / "users.csv"
    path.write_text(
        "canvas_user_id, user_id ,login_id,first_name,last_name,full_name,sortable_name,email,status\n"
        "7,UID:42,inactive-42,Pat,Person,Pat Person,\"Person, Pat\",,active\n"
    )
    account = DownstreamAccount.from_dict(read_provisioned_accounts(path)[0])

    assert account.user_id == "UID:42"
    assert account.sortable_name == "Person, Pat"
    assert account.ldap_uid == 42


def test_write_user_import(tmp_path):
    path = tmp_path / "import.csv"
    count = write_user_import(path, [
        {"user_id": "UID:42", "login_id": "inactive-42", "first_name": "Pat", "last_name": "Person",
         "email": "", "status": "active", "extra": "ignored"},
    ])

    assert count == 1
    with path.open(newline="") as handle:
        rows = list(csv.DictReader(handle))
    assert list(rows[0]) == ["user_id", "login_id", "first_name", "last_name", "email", "status"]
    assert rows[0]["login_id"] == "inactive-42"
    assert rows[0]["email"] == ""


def test_write_empty_user_import_keeps_header(tmp_path):
    path = tmp_path / "import.csv"
    assert write_user_import(path, []) == 0
    assert path.read_text().strip() == "user_id,login_id,first_name,last_name,email,status"


def test_write_ledger(tmp_path):
    path = tmp_path / "ledger.json"
    write_ledger(path, {"61889": "11667051", "1084726": "UID:1084726"})
    assert json.loads(path.read_text()) == {"61889": "11667051", "1084726": "UID:1084726"}
