"""
Tests for YAML configuration loading and the per-module config schemas.
"""

from pathlib import Path

import pytest
import yaml

from supply_config import DEFAULT_CONFIG_DIR, get_active_config
from supply_config.loader import compute_checksum, parse_config
from supply_config.schema import SupplyConfig
from supply_kernel.domain.dtos import MovementType
from supply_modules.inventory.config import InventoryConfig
from supply_modules.procurement.config import ProcurementConfig
from supply_modules.receiving.config import ReceivingConfig


def _write(tmp_path: Path, data: dict) -> Path:
    path = tmp_path / "supply.yaml"
    path.write_text(yaml.safe_dump(data))
    return path


class TestDefaultSet:

    def test_shipped_default_matches_builtin_defaults(self):
        loaded = get_active_config()
        builtin = SupplyConfig.with_defaults()

        assert loaded.config_id == "DEFAULT"
        assert loaded.procurement == builtin.procurement
        assert loaded.receiving == builtin.receiving
        assert loaded.payments == builtin.payments
        assert loaded.inventory == builtin.inventory
        assert len(loaded.checksum) == 64

    def test_default_set_on_disk(self):
        assert (DEFAULT_CONFIG_DIR / "default.yaml").is_file()

    def test_trace_logged(self, captured_logs):
        config = get_active_config()
        [trace] = [r for r in captured_logs() if r["message"] == "SUPPLY_CONFIG_TRACE"]
        assert trace["checksum"] == config.checksum


class TestParseConfig:

    def test_missing_sections_use_defaults(self):
        config = parse_config({"config_id": "SITE-A", "version": 3})
        assert config.config_id == "SITE-A"
        assert config.version == 3
        assert config.receiving.clamp_line_edits is True

    def test_sections_override_defaults(self, tmp_path):
        path = _write(tmp_path, {
            "config_id": "STRICT",
            "procurement": {"elevated_roles": ["Admin", "Manager"]},
            "receiving": {"clamp_line_edits": False},
            "inventory": {"cost_rollup_movement_types": ["CONSUMPTION"]},
        })
        config = get_active_config(path)

        assert config.procurement.elevated_roles == ("admin", "manager")
        assert config.receiving.clamp_line_edits is False
        assert config.inventory.cost_rollup_movement_types == (MovementType.CONSUMPTION,)

    def test_unknown_section_rejected(self):
        with pytest.raises(ValueError, match="Unknown config sections"):
            parse_config({"shipping": {}})

    def test_unknown_field_rejected(self):
        with pytest.raises(ValueError, match="receiving"):
            parse_config({"receiving": {"clamp": True}})

    def test_section_must_be_mapping(self):
        with pytest.raises(ValueError):
            parse_config({"payments": ["cash"]})

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "absent.yaml")


class TestChecksum:

    def test_independent_of_key_order(self):
        assert compute_checksum({"a": 1, "b": {"c": 2}}) == compute_checksum({"b": {"c": 2}, "a": 1})

    def test_changes_with_content(self):
        assert compute_checksum({"a": 1}) != compute_checksum({"a": 2})


class TestModuleSchemas:

    def test_procurement_needs_an_elevated_role(self):
        with pytest.raises(ValueError):
            ProcurementConfig(elevated_roles=())

    def test_inventory_needs_a_movement_type(self):
        with pytest.raises(ValueError):
            InventoryConfig(cost_rollup_movement_types=())

    def test_inventory_rejects_unknown_movement_type(self):
        with pytest.raises(ValueError):
            InventoryConfig(cost_rollup_movement_types=("theft",))

    def test_receiving_from_dict(self):
        config = ReceivingConfig.from_dict({"require_proof_ref": False})
        assert config.require_proof_ref is False
        assert config.require_supplier_ref is True
