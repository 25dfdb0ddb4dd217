#!/usr/bin/env python3
"""
Run the sales audit against a database and print the report as JSON.

Usage:
  python scripts/run_audit.py --database-url sqlite:///sales.db
  python scripts/run_audit.py --database-url postgresql+psycopg2://... \\
      --start 2024-01-01 --end 2025-01-01 --center PARIS-01 \\
      --reference-file legacy_totals.yaml --xlsx audit.xlsx

Exit status is 0 when the audit passes or only has warnings, 2 when it
has errors, 1 when it could not run.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import date
from pathlib import Path

# Allow running from a checkout without installing.
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from sales_config import get_active_config
from sales_config.loader import load_reference_totals
from sales_engines.types import CheckStatus
from sales_kernel.db.engine import init_engine_from_url
from sales_kernel.domain.window import DateWindow
from sales_kernel.logging_config import configure_logging
from sales_services.api import SalesLedgerApi
from sales_services.exporters.excel import export_audit_report


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the sales audit")
    parser.add_argument("--database-url", required=True, help="SQLAlchemy database URL")
    parser.add_argument("--start", type=date.fromisoformat, help="Window start (inclusive), YYYY-MM-DD")
    parser.add_argument("--end", type=date.fromisoformat, help="Window end (exclusive), YYYY-MM-DD")
    parser.add_argument("--center", help="Restrict to one center")
    parser.add_argument("--config", type=Path, help="Configuration YAML (defaults to the packaged one)")
    parser.add_argument("--reference-file", type=Path, help="YAML file with reference totals")
    parser.add_argument("--xlsx", type=Path, help="Also export the report to this workbook")
    parser.add_argument("--verbose", action="store_true", help="Emit structured logs on stderr")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    configure_logging(level=logging.INFO if args.verbose else logging.WARNING)

    try:
        init_engine_from_url(args.database_url)
        api = SalesLedgerApi(config=get_active_config(args.config))
        reference = load_reference_totals(args.reference_file) if args.reference_file else None
        report = api.run_audit(DateWindow(args.start, args.end), args.center, reference)
    except Exception as exc:
        print(f"ERROR: audit could not run: {exc}", file=sys.stderr)
        return 1

    print(json.dumps(report.to_dict(), indent=2))
    if args.xlsx:
        path = export_audit_report(report, args.xlsx)
        print(f"Report written to {path}", file=sys.stderr)

    return 2 if report.status is CheckStatus.FAILED else 0


if __name__ == "__main__":
    sys.exit(main())
