"""
Inventory Configuration Schema.

Which batch-tagged movement types feed the batch material cost rollup.
"""

from dataclasses import dataclass
from typing import Self

from supply_kernel.domain.dtos import MovementType
from supply_kernel.logging_config import get_logger

logger = get_logger("modules.inventory.config")


@dataclass
class InventoryConfig:
    """
    Configuration schema for the inventory module.

    ``cost_rollup_movement_types`` lists the movement types netted per
    material when costing a batch.  Consumption and the adjustments that
    revert it are the defaults.
    """

    cost_rollup_movement_types: tuple[MovementType, ...] = (
        MovementType.CONSUMPTION,
        MovementType.ADJUSTMENT,
    )

    def __post_init__(self):
        self.cost_rollup_movement_types = tuple(
            MovementType(m) if not isinstance(m, MovementType) else m
            for m in self.cost_rollup_movement_types
        )
        if not self.cost_rollup_movement_types:
            raise ValueError("cost_rollup_movement_types must name at least one type")
        logger.info(
            "inventory_config_initialized",
            extra={
                "cost_rollup_movement_types": [
                    m.value for m in self.cost_rollup_movement_types
                ],
            },
        )

    @classmethod
    def with_defaults(cls) -> Self:
        logger.info("inventory_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        logger.info(
            "inventory_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        data = dict(data)
        if "cost_rollup_movement_types" in data:
            data["cost_rollup_movement_types"] = tuple(
                str(m).lower() for m in data["cost_rollup_movement_types"]
            )
        return cls(**data)
