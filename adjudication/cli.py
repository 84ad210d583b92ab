"""Command-line entry point for validating a claims file.

Usage:
    python -m adjudication.cli --claims claims.csv [--medical medical.txt]
        [--technical technical.txt] [--output report.json]

Rule files default to the bundled reference guides.
"""

from __future__ import annotations

import argparse
import csv
import json
import logging
import sys
from pathlib import Path
from typing import Any

from adjudication import config
from adjudication.claim_structurer import claims_from_records
from adjudication.exceptions import AdjudicationError
from adjudication.extraction import extract_medical_rules, extract_technical_rules
from adjudication.reference_rules import reference_medical_rules, reference_technical_rules
from adjudication.reporting import format_results_for_export
from adjudication.rules import run_validation

logger = logging.getLogger(__name__)


def load_claim_records(path: Path) -> list[dict[str, Any]]:
    """Read claim rows from a CSV file or a JSON array (optionally under "claims")."""
    if path.suffix.lower() == ".csv":
        with open(path, "r", encoding="utf-8-sig", newline="") as f:
            return list(csv.DictReader(f))

    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("claims", [])
    if not isinstance(data, list):
        raise AdjudicationError(f"{path} must contain a JSON array of claims")
    return data


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Validate claims against medical and technical adjudication guides"
    )
    parser.add_argument(
        "--claims",
        type=Path,
        required=True,
        help="Claims file (.csv or .json)",
    )
    parser.add_argument(
        "--medical",
        type=Path,
        help="Medical adjudication guide as plain text (default: reference guide)",
    )
    parser.add_argument(
        "--technical",
        type=Path,
        help="Technical adjudication guide as plain text (default: reference guide)",
    )
    parser.add_argument(
        "--output",
        type=Path,
        help="Write the JSON report here instead of stdout",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        medical_rules = (
            extract_medical_rules(args.medical.read_text(encoding="utf-8"))
            if args.medical
            else reference_medical_rules()
        )
        technical_rules = (
            extract_technical_rules(args.technical.read_text(encoding="utf-8"))
            if args.technical
            else reference_technical_rules()
        )
        claims = claims_from_records(load_claim_records(args.claims))
        report = run_validation(claims, medical_rules, technical_rules)
    except (OSError, json.JSONDecodeError, AdjudicationError) as e:
        logger.error(f"Validation failed: {e}")
        return 1

    payload = report.to_dict()
    payload["export_rows"] = format_results_for_export(report.results, claims)
    text = json.dumps(payload, indent=2, default=str)

    if args.output:
        args.output.write_text(text, encoding="utf-8")
        logger.info(f"Wrote report for {len(claims)} claim(s) to {args.output}")
    else:
        sys.stdout.write(text + "\n")

    summary = report.summary
    logger.info(
        f"{summary.validated_claims}/{summary.total_claims} claim(s) validated "
        f"({summary.validation_rate}%)"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
