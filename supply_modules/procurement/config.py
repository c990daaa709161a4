"""
Procurement Configuration Schema.

Defines the structure and defaults for request review, reservation and
purchase order approval.  Actual values are loaded from the active
configuration set (``supply_config``) at runtime.
"""

from dataclasses import dataclass
from typing import Self

from supply_kernel.logging_config import get_logger

logger = get_logger("modules.procurement.config")

DEFAULT_RESERVATION_NOTE = "Auto-Reserved by System based on Batch Requirement Gap."


@dataclass
class ProcurementConfig:
    """
    Configuration schema for the procurement module.

        config = ProcurementConfig(
            elevated_roles=("admin",),
            review_requires_elevated_role=True,
        )
    """

    # Roles allowed to approve/delete issued purchase orders
    elevated_roles: tuple[str, ...] = ("admin",)

    # Purchase requests
    review_requires_elevated_role: bool = False
    reservation_note: str = DEFAULT_RESERVATION_NOTE

    # Purchase orders
    require_quotation_for_approval: bool = True

    def __post_init__(self):
        if not self.elevated_roles:
            raise ValueError("elevated_roles must name at least one role")
        logger.info(
            "procurement_config_initialized",
            extra={
                "elevated_roles": list(self.elevated_roles),
                "review_requires_elevated_role": self.review_requires_elevated_role,
                "require_quotation_for_approval": self.require_quotation_for_approval,
            },
        )

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with the standard defaults."""
        logger.info("procurement_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        """Create config from dictionary (e.g., loaded from a YAML file)."""
        logger.info(
            "procurement_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        if "elevated_roles" in data:
            data["elevated_roles"] = tuple(str(r).lower() for r in data["elevated_roles"])
        return cls(**data)
