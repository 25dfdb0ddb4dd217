"""
Configuration Loader (``sales_config.loader``).

Responsibility
--------------
Reads YAML files and parses them into ``sales_config.schema`` dataclasses.
Runtime callers go through ``sales_config.get_active_config()``; the
functions here are its building blocks and test tooling.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the parsed
  content, so reformatting the YAML does not change it.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Bad values (non-numeric tolerance, ...)  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from sales_config.schema import (
    AuditConfig,
    DocumentTypesConfig,
    LedgerConfig,
    NumberingConfig,
    SalesLedgerConfig,
    StatusConfig,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_decimal(value: Any, name: str) -> Decimal:
    # YAML floats go through str so 0.01 stays 0.01
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"{name}: not a number: {value!r}") from exc


def _tokens(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(str(v) for v in value)


def parse_numbering(data: dict[str, Any]) -> NumberingConfig:
    defaults = NumberingConfig()
    return NumberingConfig(
        invoice_prefixes=_tokens(data.get("invoice_prefixes", defaults.invoice_prefixes)),
        order_prefixes=_tokens(data.get("order_prefixes", defaults.order_prefixes)),
        invoice_number_pattern=str(
            data.get("invoice_number_pattern", defaults.invoice_number_pattern)
        ),
    )


def parse_document_types(data: dict[str, Any]) -> DocumentTypesConfig:
    return DocumentTypesConfig(
        invoice=_tokens(data.get("invoice")),
        order=_tokens(data.get("order")),
        quote=_tokens(data.get("quote")),
        credit_note=_tokens(data.get("credit_note")),
    )


def parse_statuses(data: dict[str, Any]) -> StatusConfig:
    synonyms = data.get("synonyms") or {}
    return StatusConfig(
        pending_sale=_tokens(data.get("pending_sale")),
        active=_tokens(data.get("active")),
        order_sale=_tokens(data.get("order_sale")),
        synonyms={str(k): _tokens(v) for k, v in synonyms.items()},
    )


def parse_ledger(data: dict[str, Any]) -> LedgerConfig:
    defaults = LedgerConfig()
    return LedgerConfig(
        max_retries=int(data.get("max_retries", defaults.max_retries)),
        money_tolerance=parse_decimal(
            data.get("money_tolerance", defaults.money_tolerance), "ledger.money_tolerance"
        ),
    )


def parse_audit(data: dict[str, Any]) -> AuditConfig:
    defaults = AuditConfig()
    return AuditConfig(
        duplicate_granularity=str(
            data.get("duplicate_granularity", defaults.duplicate_granularity)
        ).lower(),
        listing_limit=int(data.get("listing_limit", defaults.listing_limit)),
    )


def parse_config(data: dict[str, Any], source: str | None = None) -> SalesLedgerConfig:
    """
    Parse a full configuration dict.

    Raises:
        KeyError: ``config_id`` or ``version`` missing.
        ValueError: malformed values.
    """
    methods = data.get("payment_methods") or {}
    return SalesLedgerConfig(
        config_id=data["config_id"],
        version=int(data["version"]),
        checksum=compute_checksum(data),
        numbering=parse_numbering(data.get("numbering") or {}),
        document_types=parse_document_types(data.get("document_types") or {}),
        statuses=parse_statuses(data.get("statuses") or {}),
        payment_methods={str(k): _tokens(v) for k, v in methods.items()},
        ledger=parse_ledger(data.get("ledger") or {}),
        audit=parse_audit(data.get("audit") or {}),
        source=source,
    )


def load_config_file(path: Path) -> SalesLedgerConfig:
    return parse_config(load_yaml_file(path), source=str(path))


def load_reference_totals(path: Path) -> dict[str, Any]:
    """
    Read a reference-totals file (figures from another system).

    Expected shape::

        label: legacy ERP export
        revenue: "125000.00"
        categories:
          invoice: {count: 412, amount: "131000.00"}
          credit_note: {count: 9, amount: "6000.00"}

    Returns the raw dict with amounts as Decimal; ``bridges`` turns it
    into ``ReferenceTotals``.
    """
    data = load_yaml_file(path)
    result: dict[str, Any] = {"label": str(data.get("label", path.stem))}
    if data.get("revenue") is not None:
        result["revenue"] = parse_decimal(data["revenue"], "revenue")
    categories: dict[str, dict[str, Any]] = {}
    for name, values in (data.get("categories") or {}).items():
        values = values or {}
        categories[str(name)] = {
            "count": int(values["count"]) if values.get("count") is not None else None,
            "amount": (
                parse_decimal(values["amount"], f"categories.{name}.amount")
                if values.get("amount") is not None
                else None
            ),
        }
    result["categories"] = categories
    return result
