"""
Configuration Loader (``tire_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the frozen
``tire_config.schema`` dataclasses.  Runtime callers go through
``tire_config.get_active_config()``; this module is the tooling behind it.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* Unknown keys in a section are rejected, so a misspelt setting cannot
  silently fall back to its default.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the
  parsed source for change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown key or invalid value  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import fields
from pathlib import Path
from typing import Any
from uuid import UUID

import yaml

from tire_config.schema import (
    ActorPolicy,
    IntakePolicy,
    LocationLabels,
    RetreadPolicy,
    TireCatalog,
    TireLedgerConfig,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _section(cls, data: dict[str, Any] | None, name: str) -> dict[str, Any]:
    data = data or {}
    if not isinstance(data, dict):
        raise ValueError(f"{name} must be a mapping, got {type(data).__name__}")
    known = {f.name for f in fields(cls)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"{name}: unknown key(s) {sorted(unknown)}")
    return data


def parse_locations(data: dict[str, Any] | None) -> LocationLabels:
    return LocationLabels(**_section(LocationLabels, data, "locations"))


def parse_catalog(data: dict[str, Any] | None) -> TireCatalog:
    data = _section(TireCatalog, data, "catalog")
    if "sizes" in data:
        return TireCatalog(sizes=tuple(str(s) for s in data["sizes"]))
    return TireCatalog()


def parse_intake(data: dict[str, Any] | None) -> IntakePolicy:
    return IntakePolicy(**_section(IntakePolicy, data, "intake"))


def parse_retread(data: dict[str, Any] | None) -> RetreadPolicy:
    return RetreadPolicy(**_section(RetreadPolicy, data, "retread"))


def parse_actors(data: dict[str, Any] | None) -> ActorPolicy:
    data = _section(ActorPolicy, data, "actors")
    raw = data.get("system_actor_id")
    return ActorPolicy(system_actor_id=UUID(str(raw)) if raw else None)


def parse_config(data: dict[str, Any]) -> TireLedgerConfig:
    """
    Parse a full configuration mapping.

    Sections that are absent take their schema defaults.
    """
    known = {"config_id", "version", "locations", "catalog", "intake", "retread", "actors"}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"unknown top-level key(s) {sorted(unknown)}")
    return TireLedgerConfig(
        config_id=data.get("config_id", "tire-ledger-default"),
        version=int(data.get("version", 1)),
        locations=parse_locations(data.get("locations")),
        catalog=parse_catalog(data.get("catalog")),
        intake=parse_intake(data.get("intake")),
        retread=parse_retread(data.get("retread")),
        actors=parse_actors(data.get("actors")),
        checksum=compute_checksum(data),
    )


def load_config(path: Path) -> TireLedgerConfig:
    return parse_config(load_yaml_file(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
