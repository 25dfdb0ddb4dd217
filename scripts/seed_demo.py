#!/usr/bin/env python3
"""
Create the schema and seed a small optical-store book.

Two centers, a month of invoices, orders, quotes and a credit note, frames
and lenses with purchase costs, and a pair of same-day cash payments so
the audit has something to report.

Usage:
    python3 scripts/seed_demo.py --database-url sqlite:///sales.db
    python3 scripts/seed_demo.py --database-url postgresql+psycopg2://... --reset
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import date, datetime, timezone
from pathlib import Path
from uuid import uuid4

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from sales_kernel.db.engine import create_tables, drop_tables, init_engine_from_url
from sales_kernel.logging_config import configure_logging
from sales_services.api import SalesLedgerApi

SEED_ACTOR = uuid4()


def _at(day: int, hour: int) -> datetime:
    return datetime(2024, 3, day, hour, 0, tzinfo=timezone.utc)


def seed(api: SalesLedgerApi) -> dict[str, int]:
    """Record the demo book through the facade; returns counts."""
    actor = SEED_ACTOR
    frame = api.create_product("MONT-RAYB-01", "Monture acetate", actor, center_id="PARIS-01")
    lens = api.create_product("VER-PROG-01", "Verre progressif", actor, center_id="PARIS-01")
    api.record_stock_in(frame.id, 10, "35.00", actor, occurred_at=_at(1, 8))
    api.record_stock_in(lens.id, 20, "60.00", actor, occurred_at=_at(1, 8))
    api.record_stock_in(lens.id, 20, "70.00", actor, occurred_at=_at(8, 8))

    documents = 0
    payments = 0
    for n, (total, day, method) in enumerate(
        [("420.00", 4, "CB"), ("890.00", 6, "especes"), ("1250.00", 12, "cheque")], start=1
    ):
        invoice = api.create_document(
            f"FAC-2024-{n:04d}", "Facture", total, actor,
            issue_date=date(2024, 3, day), center_id="PARIS-01",
        )
        api.record_stock_out(frame.id, 1, actor, document_id=invoice.id, occurred_at=_at(day, 10))
        api.record_stock_out(lens.id, 2, actor, document_id=invoice.id, occurred_at=_at(day, 10))
        api.apply_payment(invoice.id, total, method, actor, paid_at=_at(day, 11))
        documents += 1
        payments += 1

    order = api.create_document(
        "BC-2024-0001", "Bon de commande", "640.00", actor,
        issue_date=date(2024, 3, 15), center_id="PARIS-01",
    )
    api.apply_payment(order.id, "200.00", "ESPECES", actor, paid_at=_at(15, 9))
    api.apply_payment(order.id, "200.00", "ESPECES", actor, paid_at=_at(15, 17))
    payments += 2

    pending = api.create_document(
        "FAC-2024-0004", "Facture", "310.00", actor,
        issue_date=date(2024, 3, 18), center_id="PARIS-01", status="Vente en instance",
    )
    api.apply_payment(pending.id, "100.00", "CARTE", actor, paid_at=_at(18, 12))
    payments += 1

    api.create_document(
        "DV-2024-0001", "Devis", "980.00", actor,
        issue_date=date(2024, 3, 20), center_id="PARIS-01",
    )
    credit_note = api.create_document(
        "AV-2024-0001", "Avoir", "120.00", actor,
        issue_date=date(2024, 3, 22), center_id="PARIS-01",
    )
    api.record_return(frame.id, 1, actor, document_id=credit_note.id, occurred_at=_at(22, 14))

    api.create_document(
        "FAC-2024-0005", "Facture", "75.00", actor, center_id="PARIS-01",
    )
    api.create_document(
        "FAC-2024-0101", "Facture", "530.00", actor,
        issue_date=date(2024, 3, 9), center_id="LYON-01",
    )
    documents += 6

    return {"documents": documents, "payments": payments, "products": 2}


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Seed a demo sales book")
    parser.add_argument("--database-url", required=True, help="SQLAlchemy database URL")
    parser.add_argument("--reset", action="store_true", help="Drop existing tables first")
    args = parser.parse_args(argv)

    configure_logging(level=logging.WARNING)
    init_engine_from_url(args.database_url)
    if args.reset:
        drop_tables()
    create_tables()

    counts = seed(SalesLedgerApi())
    print(
        f"Seeded {counts['documents']} documents, {counts['payments']} payments "
        f"and {counts['products']} products"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
