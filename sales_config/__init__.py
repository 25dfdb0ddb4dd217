"""
sales_config -- single public entrypoint for sales ledger configuration.

Responsibility:
    ``get_active_config()`` is the only way runtime code obtains
    configuration.  It reads YAML (the packaged ``defaults.yaml`` unless a
    path is given), parses it into frozen dataclasses, validates it and
    logs a ``SALES_CONFIG_TRACE`` entry with its checksum.

Architecture position:
    Configuration -- sits above ``sales_kernel`` and ``sales_engines`` and
    below ``sales_services``.  The kernel never imports this package;
    ``sales_config.bridges`` translates configuration into kernel inputs.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``yaml.YAMLError`` -- the file is not valid YAML.
    - ``ValueError`` -- validation failed; the message lists every error.
"""

from __future__ import annotations

import logging
from pathlib import Path

from sales_config.loader import load_config_file
from sales_config.schema import SalesLedgerConfig
from sales_config.validator import validate_configuration

_logger = logging.getLogger("sales_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(config_path: Path | str | None = None) -> SalesLedgerConfig:
    """
    The ONLY public configuration entrypoint.

    Args:
        config_path: YAML file to load.  Defaults to the packaged
            ``defaults.yaml``.

    Returns:
        A validated, frozen ``SalesLedgerConfig``.

    Raises:
        FileNotFoundError, yaml.YAMLError, ValueError.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    config = load_config_file(path)

    validation = validate_configuration(config)
    if not validation.is_valid:
        raise ValueError(
            "Configuration validation failed:\n"
            + "\n".join(f"  - {e}" for e in validation.errors)
        )
    for warning in validation.warnings:
        _logger.warning("config_validation_warning", extra={"warning": warning})

    _logger.info(
        "SALES_CONFIG_TRACE",
        extra={
            "trace_type": "SALES_CONFIG_TRACE",
            "config_set_id": config.config_id,
            "config_set_version": config.version,
            "checksum": config.checksum,
            "source": config.source,
            "max_retries": config.ledger.max_retries,
            "duplicate_granularity": config.audit.duplicate_granularity,
        },
    )
    return config


__all__ = ["DEFAULT_CONFIG_PATH", "SalesLedgerConfig", "get_active_config"]
