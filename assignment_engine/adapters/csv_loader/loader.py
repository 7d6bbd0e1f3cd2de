"""CSV loader — reads account, rep and territory snapshots into domain entities."""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass
from pathlib import Path

from assignment_engine.adapters.csv_loader.normalizer import (
    clean_string,
    normalize_column_name,
    parse_bool,
    parse_int,
    parse_money,
)
from assignment_engine.domain.entities.account import Account
from assignment_engine.domain.entities.sales_rep import SalesRep
from assignment_engine.domain.value_objects.territory_map import TerritoryMap

logger = logging.getLogger(__name__)

ACCOUNTS_FILE = "accounts.csv"
REPS_FILE = "sales_reps.csv"
TERRITORIES_FILE = "territories.csv"


def _sniff_dialect(sample: str) -> type[csv.Dialect] | csv.Dialect:
    """Detect the delimiter (comma/semicolon/tab) from the header line."""
    if not sample:
        return csv.excel

    first_line = sample.splitlines()[0]
    counts = {d: first_line.count(d) for d in (";", ",", "\t")}
    best_delim = max(counts, key=counts.get)

    if counts[best_delim] > 0:
        class DynamicDialect(csv.excel):
            delimiter = best_delim
        return DynamicDialect

    return csv.excel


def _read_csv(file_path: Path, encoding: str = "utf-8-sig") -> list[dict[str, str | None]]:
    """Read a CSV file with BOM handling and column normalization."""
    with open(file_path, encoding=encoding, newline="") as f:
        sample = f.read(4096)
        f.seek(0)
        reader = csv.DictReader(f, dialect=_sniff_dialect(sample))
        if reader.fieldnames is None:
            raise ValueError(f"CSV file {file_path} has no header row")

        col_map = {col: normalize_column_name(col) for col in reader.fieldnames}
        rows = [
            {col_map[k]: clean_string(v) for k, v in raw_row.items() if k is not None}
            for raw_row in reader
        ]

    logger.info("Loaded %d rows from %s (columns: %s)", len(rows), file_path.name, list(col_map.values()))
    return rows


def _first(row: dict[str, str | None], *keys: str) -> str | None:
    for key in keys:
        value = row.get(key)
        if value:
            return value
    return None


def load_accounts(file_path: Path) -> list[Account]:
    """Load the accounts CSV.

    Expected columns (after normalization):
        account_id (or sfdc_account_id), account_name, is_parent,
        ultimate_parent_id, is_customer, arr, hierarchy_arr, atr,
        expansion_tier, initial_sale_tier, territory (or geo), cre_count,
        renewal_quarter, owner_id, owner_name, exclude_from_reassignment,
        lock_reason
    """
    accounts = []
    for line_no, row in enumerate(_read_csv(file_path), start=2):
        account_id = _first(row, "account_id", "sfdc_account_id", "id")
        if not account_id:
            logger.warning("%s line %d: missing account id, skipped", file_path.name, line_no)
            continue
        parent_id = _first(row, "ultimate_parent_id", "parent_id")
        try:
            accounts.append(
                Account(
                    account_id=account_id,
                    name=_first(row, "account_name", "name") or account_id,
                    is_parent=parse_bool(row.get("is_parent"), default=not parent_id),
                    ultimate_parent_id=parent_id if parent_id != account_id else None,
                    is_customer=parse_bool(row.get("is_customer"), default=True),
                    arr=parse_money(_first(row, "arr", "calculated_arr")),
                    hierarchy_arr=parse_money(_first(row, "hierarchy_arr", "hierarchy_bookings_arr_converted")),
                    atr=parse_money(_first(row, "atr", "calculated_atr")),
                    expansion_tier=row.get("expansion_tier"),
                    initial_sale_tier=row.get("initial_sale_tier"),
                    territory=_first(row, "territory", "sales_territory", "geo"),
                    cre_count=parse_int(row.get("cre_count")),
                    renewal_quarter=row.get("renewal_quarter"),
                    current_owner_id=_first(row, "owner_id", "current_owner_id"),
                    current_owner_name=_first(row, "owner_name", "current_owner_name"),
                    exclude_from_reassignment=parse_bool(_first(row, "exclude_from_reassignment", "locked")),
                    lock_reason=row.get("lock_reason"),
                )
            )
        except ValueError as e:
            raise ValueError(f"{file_path.name} line {line_no}: {e}") from e
    logger.info("Parsed %d accounts", len(accounts))
    return accounts


def load_reps(file_path: Path) -> list[SalesRep]:
    """Load the sales reps CSV.

    Expected columns (after normalization):
        rep_id, name, region, team, is_active, include_in_assignments,
        is_manager, is_strategic_rep
    """
    reps = []
    for line_no, row in enumerate(_read_csv(file_path), start=2):
        rep_id = _first(row, "rep_id", "id")
        if not rep_id:
            logger.warning("%s line %d: missing rep id, skipped", file_path.name, line_no)
            continue
        try:
            reps.append(
                SalesRep(
                    rep_id=rep_id,
                    name=_first(row, "name", "rep_name") or rep_id,
                    region=row.get("region"),
                    team=row.get("team"),
                    is_active=parse_bool(row.get("is_active"), default=True),
                    include_in_assignments=parse_bool(row.get("include_in_assignments"), default=True),
                    is_manager=parse_bool(row.get("is_manager")),
                    is_strategic_rep=parse_bool(row.get("is_strategic_rep")),
                )
            )
        except ValueError as e:
            raise ValueError(f"{file_path.name} line {line_no}: {e}") from e
    logger.info("Parsed %d reps", len(reps))
    return reps


def load_territory_map(file_path: Path) -> TerritoryMap:
    """Two-column territory → region table."""
    mappings: dict[str, str] = {}
    for row in _read_csv(file_path):
        territory = _first(row, "territory", "sales_territory", "geo")
        region = row.get("region")
        if territory and region:
            mappings[territory] = region
    logger.info("Parsed %d territory mappings", len(mappings))
    return TerritoryMap(mappings)


@dataclass
class Snapshot:
    accounts: list[Account]
    reps: list[SalesRep]
    territory_map: TerritoryMap


def load_snapshot(data_dir: Path) -> Snapshot:
    """Load accounts, reps and (optional) territories from one directory."""
    data_dir = Path(data_dir)
    territories = data_dir / TERRITORIES_FILE
    return Snapshot(
        accounts=load_accounts(data_dir / ACCOUNTS_FILE),
        reps=load_reps(data_dir / REPS_FILE),
        territory_map=load_territory_map(territories) if territories.exists() else TerritoryMap(),
    )
