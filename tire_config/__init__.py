"""
tire_config -- single public entrypoint for tire ledger configuration.

Responsibility:
    ``get_active_config()`` returns the frozen ``TireLedgerConfig`` that
    module services read location labels, the tire size catalog, intake
    and retread policies, and the system-actor policy from.  No service
    reads YAML or environment variables itself.

Architecture position:
    Configuration.  Sits beside ``tire_kernel`` and below
    ``tire_modules``.  The kernel MUST NEVER import from ``tire_config``;
    modules pass the values the kernel needs as arguments.

Audit relevance:
    Every load emits a ``tire_config_loaded`` log entry with the config
    id, version and checksum.
"""

from __future__ import annotations

import threading
from pathlib import Path

from tire_config.loader import compute_checksum, load_config, load_yaml_file, parse_config
from tire_config.schema import (
    ActorPolicy,
    IntakePolicy,
    LocationLabels,
    RetreadPolicy,
    TireCatalog,
    TireLedgerConfig,
)
from tire_kernel.logging_config import get_logger

_logger = get_logger("config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"

_cache: dict[Path, TireLedgerConfig] = {}
_cache_lock = threading.Lock()


def get_active_config(path: Path | str | None = None) -> TireLedgerConfig:
    """
    Return the configuration at ``path`` (default: the packaged defaults).

    Parsed configurations are cached per resolved path; call
    ``clear_config_cache()`` after editing a file in place.

    Raises:
        FileNotFoundError, yaml.YAMLError, ValueError: see tire_config.loader.
    """
    resolved = Path(path or DEFAULT_CONFIG_PATH).resolve()
    with _cache_lock:
        cached = _cache.get(resolved)
    if cached is not None:
        return cached

    config = load_config(resolved)
    with _cache_lock:
        _cache[resolved] = config

    _logger.info(
        "tire_config_loaded",
        extra={
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "path": str(resolved),
        },
    )
    return config


def clear_config_cache() -> None:
    with _cache_lock:
        _cache.clear()


__all__ = [
    "ActorPolicy",
    "DEFAULT_CONFIG_PATH",
    "IntakePolicy",
    "LocationLabels",
    "RetreadPolicy",
    "TireCatalog",
    "TireLedgerConfig",
    "clear_config_cache",
    "compute_checksum",
    "get_active_config",
    "load_config",
    "load_yaml_file",
    "parse_config",
]
