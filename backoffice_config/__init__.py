"""
backoffice_config -- single public entrypoint for workflow configuration.

Responsibility:
    ``get_active_config()`` loads configuration from YAML: it reads
    ``sets/default.yaml`` (or an explicit file), validates it into a frozen
    ``BackofficeConfig`` and emits an audit trace.  Services receive that
    object through their ``config`` argument; when it is omitted they fall
    back to ``BackofficeConfig.with_defaults()`` and no file is read.

Architecture position:
    Sits beside ``backoffice_modules`` and above ``backoffice_kernel``.  The
    kernel never imports this package; modules translate config values into
    plain arguments for kernel services (role mapping, number prefixes).

Audit relevance:
    Every successful call emits a ``BACKOFFICE_CONFIG_TRACE`` log entry with
    the config id, version and checksum of the source file.
"""

from __future__ import annotations

from pathlib import Path

from backoffice_config.loader import compute_checksum, load_yaml_file, parse_config
from backoffice_config.schema import (
    ApproverRoutingConfig,
    BackofficeConfig,
    CategoryFieldDef,
    CategorySchema,
    EligibilityConfig,
    FinanceSyncConfig,
    NumberingConfig,
)
from backoffice_kernel.logging_config import get_logger

_logger = get_logger("config")

_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"
DEFAULT_CONFIG_PATH = _DEFAULT_CONFIG_DIR / "default.yaml"


def get_active_config(config_path: Path | None = None) -> BackofficeConfig:
    """
    Load, validate and return the active configuration.

    Args:
        config_path: Override path to a YAML file.  Defaults to
            ``backoffice_config/sets/default.yaml``.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file fails schema validation.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH
    data = load_yaml_file(path)
    config = parse_config(data)

    _logger.info(
        "BACKOFFICE_CONFIG_TRACE",
        extra={
            "config_id": config.config_id,
            "config_version": config.version,
            "config_checksum": compute_checksum(data),
            "config_path": str(path),
            "category_count": len(config.categories),
            "routing_scopes": sorted(config.routing.role_by_organization),
        },
    )
    return config


__all__ = [
    "ApproverRoutingConfig",
    "BackofficeConfig",
    "CategoryFieldDef",
    "CategorySchema",
    "EligibilityConfig",
    "FinanceSyncConfig",
    "NumberingConfig",
    "get_active_config",
]
