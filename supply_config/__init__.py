"""
supply_config -- single public entrypoint for runtime configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Services never read files or environment
    variables themselves; they receive the per-module config object from
    the returned ``SupplyConfig``.

Architecture position:
    Configuration.  Sits above ``supply_kernel`` and beside the module
    config schemas in ``supply_modules.*.config``.  The kernel MUST NEVER
    import from ``supply_config``.

Failure modes:
    - ``FileNotFoundError`` -- the requested YAML file does not exist.
    - ``yaml.YAMLError`` -- malformed YAML.
    - ``ValueError`` -- unknown section or field names.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``SUPPLY_CONFIG_TRACE`` log entry with the config id, version and
    checksum, tying behaviour (review gating, clamping, required document
    references) back to the exact configuration that governed it.
"""

from __future__ import annotations

from pathlib import Path

from supply_config.loader import load_config_file
from supply_config.schema import SupplyConfig
from supply_kernel.logging_config import get_logger

logger = get_logger("config")

# Default configuration sets directory
DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "default.yaml"


def get_active_config(path: Path | str | None = None) -> SupplyConfig:
    """The ONLY public configuration entrypoint.

    Args:
        path: YAML file to load.  Defaults to ``supply_config/sets/default.yaml``.

    Returns:
        A frozen SupplyConfig.
    """
    config_path = Path(path) if path is not None else DEFAULT_CONFIG_FILE
    config = load_config_file(config_path)

    logger.info(
        "SUPPLY_CONFIG_TRACE",
        extra={
            "trace_type": "SUPPLY_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "source": str(config_path),
        },
    )
    return config


__all__ = ["SupplyConfig", "get_active_config", "DEFAULT_CONFIG_DIR"]
