"""Tests for CSV loader functions."""

import csv
import tempfile
from pathlib import Path

import pytest

from assignment_engine.adapters.csv_loader.loader import (
    load_accounts,
    load_reps,
    load_snapshot,
    load_territory_map,
)


def _write_csv(rows: list[dict], path: Path, encoding: str = "utf-8-sig", delimiter: str = ",") -> None:
    """Helper to write a test CSV file."""
    if not rows:
        return
    with open(path, "w", encoding=encoding, newline="") as f:
        writer = csv.DictWriter(f, fieldnames=rows[0].keys(), delimiter=delimiter)
        writer.writeheader()
        writer.writerows(rows)


def _account_row(**overrides) -> dict:
    row = {
        "Account ID": "A1",
        "Account Name": "Acme",
        "Is Parent": "true",
        "Ultimate Parent ID": "",
        "Is Customer": "yes",
        "ARR": "$500,000",
        "Hierarchy ARR": "",
        "ATR": "120000",
        "Expansion Tier": "Tier 1",
        "Initial Sale Tier": "",
        "Territory": "Pacific NW",
        "CRE Count": "2",
        "Renewal Quarter": "Q3-FY27",
        "Owner ID": "R1",
        "Owner Name": "Rita",
        "Exclude From Reassignment": "",
        "Lock Reason": "",
    }
    row.update(overrides)
    return row


def test_load_accounts_basic():
    with tempfile.TemporaryDirectory() as tmpdir:
        csv_path = Path(tmpdir) / "accounts.csv"
        _write_csv([
            _account_row(),
            _account_row(**{
                "Account ID": "A2", "Account Name": "Acme EU", "Is Parent": "false",
                "Ultimate Parent ID": "A1", "ARR": "75000", "CRE Count": "0",
                "Exclude From Reassignment": "TRUE", "Lock Reason": "renewal in flight",
            }),
        ], csv_path)

        accounts = load_accounts(csv_path)
        assert len(accounts) == 2
        parent, child = accounts
        assert parent.arr == 500_000.0
        assert parent.tier_number == 1
        assert parent.renewal_quarter_number == 3
        assert parent.current_owner_id == "R1"
        assert parent.ultimate_parent_id is None
        assert child.ultimate_parent_id == "A1"
        assert child.is_locked
        assert child.lock_reason == "renewal in flight"


def test_load_accounts_semicolon_delimiter():
    with tempfile.TemporaryDirectory() as tmpdir:
        csv_path = Path(tmpdir) / "accounts.csv"
        _write_csv([_account_row(ARR="1 000,5")], csv_path, delimiter=";")

        accounts = load_accounts(csv_path)
        assert accounts[0].arr == 1000.5


def test_load_accounts_skips_rows_without_id():
    with tempfile.TemporaryDirectory() as tmpdir:
        csv_path = Path(tmpdir) / "accounts.csv"
        _write_csv([_account_row(), _account_row(**{"Account ID": ""})], csv_path)

        assert [a.account_id for a in load_accounts(csv_path)] == ["A1"]


def test_load_accounts_reports_bad_number_with_line():
    with tempfile.TemporaryDirectory() as tmpdir:
        csv_path = Path(tmpdir) / "accounts.csv"
        _write_csv([_account_row(ARR="n/a")], csv_path)

        with pytest.raises(ValueError, match="line 2"):
            load_accounts(csv_path)


def test_load_reps_flags():
    with tempfile.TemporaryDirectory() as tmpdir:
        csv_path = Path(tmpdir) / "sales_reps.csv"
        _write_csv([
            {"Rep ID": "R1", "Name": "Rita", "Region": "West", "Team": "Ent",
             "Is Active": "true", "Include In Assignments": "", "Is Manager": "", "Is Strategic Rep": "yes"},
            {"Rep ID": "R2", "Name": "Sam", "Region": "East", "Team": "",
             "Is Active": "false", "Include In Assignments": "no", "Is Manager": "1", "Is Strategic Rep": ""},
        ], csv_path)

        reps = load_reps(csv_path)
        assert reps[0].is_strategic_rep and reps[0].is_eligible
        assert reps[0].team == "Ent"
        assert not reps[1].is_active
        assert not reps[1].include_in_assignments
        assert reps[1].is_manager
        assert reps[1].team is None


def test_load_territory_map_case_insensitive():
    with tempfile.TemporaryDirectory() as tmpdir:
        csv_path = Path(tmpdir) / "territories.csv"
        _write_csv([
            {"Territory": "Pacific NW", "Region": "West"},
            {"Territory": "New England", "Region": "East"},
        ], csv_path)

        territory_map = load_territory_map(csv_path)
        assert territory_map.region_for("pacific nw") == "West"
        assert territory_map.region_for("NEW ENGLAND") == "East"


def test_load_snapshot_without_territories():
    with tempfile.TemporaryDirectory() as tmpdir:
        data_dir = Path(tmpdir)
        _write_csv([_account_row()], data_dir / "accounts.csv")
        _write_csv([{"Rep ID": "R1", "Name": "Rita", "Region": "West"}], data_dir / "sales_reps.csv")

        snapshot = load_snapshot(data_dir)
        assert len(snapshot.accounts) == 1
        assert len(snapshot.reps) == 1
        assert snapshot.territory_map.region_for("Pacific NW") is None
