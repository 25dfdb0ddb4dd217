"""
Sales ledger configuration schema.

The human-authored configuration, parsed from YAML by the loader into these
frozen dataclasses.  Nothing here imports the kernel; ``bridges`` turns a
``SalesLedgerConfig`` into kernel rule objects.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

# ---------------------------------------------------------------------------
# Classification vocabulary
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NumberingConfig:
    """Document number conventions."""

    invoice_prefixes: tuple[str, ...] = ("FAC",)
    order_prefixes: tuple[str, ...] = ("BC",)
    invoice_number_pattern: str = r"^\d+/\d{4}$"


@dataclass(frozen=True)
class DocumentTypesConfig:
    """Declared-type tokens per category.  The first token is canonical."""

    invoice: tuple[str, ...] = ()
    order: tuple[str, ...] = ()
    quote: tuple[str, ...] = ()
    credit_note: tuple[str, ...] = ()


@dataclass(frozen=True)
class StatusConfig:
    pending_sale: tuple[str, ...] = ()
    active: tuple[str, ...] = ()
    order_sale: tuple[str, ...] = ()
    synonyms: dict[str, tuple[str, ...]] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Policies
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LedgerConfig:
    max_retries: int = 3
    money_tolerance: Decimal = Decimal("0.01")


@dataclass(frozen=True)
class AuditConfig:
    duplicate_granularity: str = "day"  # minute, hour, day
    listing_limit: int = 500


# ---------------------------------------------------------------------------
# Top-level configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SalesLedgerConfig:
    """
    The complete configuration.

    Attributes:
        config_id: identifier of the configuration (e.g. "sales-ledger-default").
        version: configuration version number.
        checksum: SHA-256 of the canonical JSON of the parsed YAML.
        source: file the configuration was read from.
    """

    config_id: str
    version: int
    checksum: str
    numbering: NumberingConfig
    document_types: DocumentTypesConfig
    statuses: StatusConfig
    payment_methods: dict[str, tuple[str, ...]]
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    audit: AuditConfig = field(default_factory=AuditConfig)
    source: str | None = None
