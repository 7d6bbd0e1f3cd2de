"""Run one assignment pass over a CSV snapshot and print the outcome.

Usage:
    python -m assignment_engine.tools.run_pass
    python -m assignment_engine.tools.run_pass --data-dir data --rules rules.json
    python -m assignment_engine.tools.run_pass --output proposals.csv
"""

from __future__ import annotations

import argparse
import csv
import logging
import sys
from collections import Counter
from pathlib import Path

from assignment_engine.adapters.csv_loader.loader import load_snapshot
from assignment_engine.config import settings
from assignment_engine.domain.errors import AssignmentEngineError
from assignment_engine.domain.services.orchestrator import AssignmentOrchestrator, PassResult
from assignment_engine.rule_config import default_rules, load_rules_file

logging.basicConfig(level=logging.INFO, format="%(levelname)s | %(message)s")
logger = logging.getLogger(__name__)

OUTPUT_COLUMNS = [
    "account_id",
    "proposed_owner_id",
    "proposed_owner_name",
    "rule_applied",
    "confidence",
    "cre_risk",
    "warnings",
    "assignment_reason",
]


def _write_proposals(result: PassResult, path: Path) -> None:
    with open(path, "w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=OUTPUT_COLUMNS)
        writer.writeheader()
        for p in result.proposals:
            writer.writerow(
                {
                    "account_id": p.account_id,
                    "proposed_owner_id": p.proposed_owner_id or "",
                    "proposed_owner_name": p.proposed_owner_name or "",
                    "rule_applied": p.rule_applied.value,
                    "confidence": p.confidence.value,
                    "cre_risk": p.cre_risk.value,
                    "warnings": ";".join(w.type.value for w in p.warnings),
                    "assignment_reason": p.assignment_reason,
                }
            )
    logger.info("Wrote %d proposals to %s", len(result.proposals), path)


def _print_summary(result: PassResult) -> None:
    summary = result.summary()
    print(f"\n{'='*50}")
    print(f"Accounts:   {summary['accounts']}")
    print(f"Assigned:   {summary['assigned']}")
    print(f"Unassigned: {summary['unassigned']}")
    print(f"By rule:       {summary['by_rule']}")
    print(f"By confidence: {summary['by_confidence']}")
    flagged = result.warnings_by_account()
    warnings = Counter(w.type.value for ws in flagged.values() for w in ws)
    print(f"Warnings:      {dict(sorted(warnings.items()))} on {len(flagged)} accounts")
    if result.quality is not None:
        q = result.quality
        print(f"Quality score: {q.before.overall_score} -> {q.after.overall_score} (improvement {q.overall_improvement:+d})")
        for change in q.changes:
            mark = "+" if change.improved else "-"
            print(f"  {mark} {change.metric}: {change.before:.2f} -> {change.after:.2f}")
        for warning in q.after.warnings:
            print(f"  ! {warning.message}")
    print(f"{'='*50}\n")


def main():
    parser = argparse.ArgumentParser(description="Run one account assignment pass over CSV data")
    parser.add_argument(
        "--data-dir", type=str, default=settings.csv_data_path,
        help="Directory containing accounts.csv, sales_reps.csv and territories.csv",
    )
    parser.add_argument(
        "--rules", type=str, default=settings.rules_path,
        help="JSON file with the assignment rules (default: built-in rules)",
    )
    parser.add_argument(
        "--output", type=str, default="",
        help="Write proposals to this CSV file",
    )
    args = parser.parse_args()

    data_dir = Path(args.data_dir)
    if not data_dir.exists():
        logger.error("Data directory not found: %s", data_dir)
        sys.exit(1)

    try:
        rules = load_rules_file(args.rules) if args.rules else default_rules()
        snapshot = load_snapshot(data_dir)
        orchestrator = AssignmentOrchestrator(
            balance_precedence=settings.balance_precedence,
            follow_rule_priority=settings.balance_follow_rule_priority,
            tie_tolerance_arr=settings.balance_tie_tolerance_arr,
        )
        result = orchestrator.run_pass(
            snapshot.accounts,
            snapshot.reps,
            rules,
            snapshot.territory_map,
            settings.capacity_limits(),
        )
    except (AssignmentEngineError, OSError, ValueError) as e:
        logger.error("Assignment pass failed: %s", e)
        sys.exit(1)

    _print_summary(result)
    if args.output:
        _write_proposals(result, Path(args.output))


if __name__ == "__main__":
    main()
