#!/usr/bin/env python3
"""
Print revenue, COGS and profit for a window as JSON.

Usage:
  python scripts/print_summary.py --database-url sqlite:///sales.db
  python scripts/print_summary.py --database-url ... --start 2024-01-01 \\
      --end 2024-07-01 --center PARIS-01 --include-orders
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import date
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from sales_config import get_active_config
from sales_kernel.db.engine import init_engine_from_url
from sales_kernel.domain.window import DateWindow
from sales_kernel.logging_config import configure_logging
from sales_services.api import SalesLedgerApi
from sales_services.expenses import FixedExpenseProvider, NoExpenses


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Print the sales summary")
    parser.add_argument("--database-url", required=True, help="SQLAlchemy database URL")
    parser.add_argument("--start", type=date.fromisoformat, help="Window start (inclusive), YYYY-MM-DD")
    parser.add_argument("--end", type=date.fromisoformat, help="Window end (exclusive), YYYY-MM-DD")
    parser.add_argument("--center", help="Restrict to one center")
    parser.add_argument("--config", type=Path, help="Configuration YAML")
    parser.add_argument("--expenses", help="Expenses of the window, for net profit")
    parser.add_argument(
        "--include-orders",
        action="store_true",
        help="Add the sales-without-invoice block (orders counted as sales)",
    )
    args = parser.parse_args(argv)

    logging.disable(logging.WARNING)
    configure_logging()

    try:
        init_engine_from_url(args.database_url)
        expenses = FixedExpenseProvider(args.expenses) if args.expenses else NoExpenses()
        api = SalesLedgerApi(config=get_active_config(args.config), expenses=expenses)
        summary = api.get_summary(
            DateWindow(args.start, args.end), args.center, include_orders=args.include_orders
        )
    except Exception as exc:
        print(f"ERROR: summary could not be computed: {exc}", file=sys.stderr)
        return 1

    print(json.dumps(summary.to_dict(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
