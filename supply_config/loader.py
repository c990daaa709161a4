"""
Configuration Loader (``supply_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into a frozen
``SupplyConfig``.  Callers use ``supply_config.get_active_config()``.

Invariants enforced
-------------------
* Unknown top-level sections raise ``ValueError``; no silent ignores.
* Missing sections fall back to the module's ``with_defaults()``.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown field in a section  -> ``TypeError`` from the dataclass, re-raised
  as ``ValueError`` naming the section.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from supply_config.schema import SupplyConfig
from supply_modules.inventory.config import InventoryConfig
from supply_modules.payments.config import PaymentConfig
from supply_modules.procurement.config import ProcurementConfig
from supply_modules.receiving.config import ReceivingConfig

_SECTIONS = {
    "procurement": ProcurementConfig,
    "receiving": ReceivingConfig,
    "payments": PaymentConfig,
    "inventory": InventoryConfig,
}

_IDENTITY_KEYS = frozenset({"config_id", "version"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _parse_section(name: str, data: Any):
    config_cls = _SECTIONS[name]
    if data is None:
        return config_cls.with_defaults()
    if not isinstance(data, dict):
        raise ValueError(f"Config section '{name}' must be a mapping, got {type(data).__name__}")
    try:
        return config_cls.from_dict(dict(data))
    except TypeError as exc:
        raise ValueError(f"Invalid config section '{name}': {exc}") from exc


def parse_config(data: dict[str, Any]) -> SupplyConfig:
    """Parse a loaded YAML dict into a SupplyConfig."""
    unknown = set(data) - set(_SECTIONS) - _IDENTITY_KEYS
    if unknown:
        raise ValueError(f"Unknown config sections: {sorted(unknown)}")

    return SupplyConfig(
        config_id=str(data.get("config_id", "DEFAULT")),
        version=int(data.get("version", 1)),
        procurement=_parse_section("procurement", data.get("procurement")),
        receiving=_parse_section("receiving", data.get("receiving")),
        payments=_parse_section("payments", data.get("payments")),
        inventory=_parse_section("inventory", data.get("inventory")),
        checksum=compute_checksum(data),
    )


def load_config_file(path: Path) -> SupplyConfig:
    """Load and parse one configuration file."""
    return parse_config(load_yaml_file(path))
