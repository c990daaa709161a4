"""
SupplyConfig schema.

The frozen runtime configuration: one per-module config object plus the
identity (id, version, checksum) of the YAML it was loaded from.  The
per-module dataclasses live beside the services that consume them.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from supply_modules.inventory.config import InventoryConfig
from supply_modules.payments.config import PaymentConfig
from supply_modules.procurement.config import ProcurementConfig
from supply_modules.receiving.config import ReceivingConfig


@dataclass(frozen=True)
class SupplyConfig:
    """Complete runtime configuration."""

    config_id: str
    version: int
    procurement: ProcurementConfig = field(default_factory=ProcurementConfig)
    receiving: ReceivingConfig = field(default_factory=ReceivingConfig)
    payments: PaymentConfig = field(default_factory=PaymentConfig)
    inventory: InventoryConfig = field(default_factory=InventoryConfig)
    checksum: str = ""

    @classmethod
    def with_defaults(cls) -> SupplyConfig:
        """Built-in defaults, equivalent to the shipped default set."""
        return cls(
            config_id="DEFAULT",
            version=1,
            procurement=ProcurementConfig.with_defaults(),
            receiving=ReceivingConfig.with_defaults(),
            payments=PaymentConfig.with_defaults(),
            inventory=InventoryConfig.with_defaults(),
        )
