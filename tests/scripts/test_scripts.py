"""Smoke tests for the command-line scripts against a seeded SQLite file."""

import importlib.util
import json
import logging
from decimal import Decimal
from pathlib import Path

import pytest

from sales_kernel.db.engine import reset_engine

SCRIPTS = Path(__file__).resolve().parents[2] / "scripts"


def _load(name):
    spec = importlib.util.spec_from_file_location(f"script_{name}", SCRIPTS / f"{name}.py")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def seeded_url(tmp_path):
    url = f"sqlite:///{tmp_path / 'demo.db'}"
    assert _load("seed_demo").main(["--database-url", url]) == 0
    yield url
    reset_engine()
    logging.disable(logging.NOTSET)


class TestScripts:
    def test_run_audit_prints_report_and_exports(self, seeded_url, tmp_path, capsys):
        capsys.readouterr()
        workbook = tmp_path / "audit.xlsx"
        code = _load("run_audit").main([
            "--database-url", seeded_url,
            "--start", "2024-03-01",
            "--end", "2024-04-01",
            "--center", "PARIS-01",
            "--xlsx", str(workbook),
        ])

        assert code == 0
        report = json.loads(capsys.readouterr().out)
        assert report["status"] == "warning"
        assert report["summary"]["revenue"] == "2440.00"
        assert len(report["duplicate_groups"]) == 1
        assert workbook.exists()

    def test_print_summary(self, seeded_url, capsys):
        capsys.readouterr()
        code = _load("print_summary").main([
            "--database-url", seeded_url,
            "--start", "2024-03-01",
            "--end", "2024-04-01",
            "--center", "PARIS-01",
            "--expenses", "400",
            "--include-orders",
        ])

        assert code == 0
        summary = json.loads(capsys.readouterr().out)
        assert summary["revenue"] == "2440.00"
        assert summary["net_profit"] == str(Decimal(summary["gross_margin"]) - 400)
        assert summary["sales_without_invoice"]["document_count"] == 2

    def test_bad_database_url(self, capsys):
        code = _load("run_audit").main(["--database-url", "nosuchdialect://x"])
        assert code == 1
        assert "could not run" in capsys.readouterr().err
