"""
Receiving Configuration Schema.

Controls how goods receipt drafts react to out-of-range edits and which
document references a receipt must carry before it can be saved.
"""

from dataclasses import dataclass
from typing import Self

from supply_kernel.logging_config import get_logger

logger = get_logger("modules.receiving.config")


@dataclass
class ReceivingConfig:
    """
    Configuration schema for the receiving module.

    ``clamp_line_edits``: when True, draft edits outside [0, ordered] are
    clamped into range; when False they raise InvalidQuantityError.
    """

    clamp_line_edits: bool = True
    require_supplier_ref: bool = True
    require_proof_ref: bool = True

    def __post_init__(self):
        logger.info(
            "receiving_config_initialized",
            extra={
                "clamp_line_edits": self.clamp_line_edits,
                "require_supplier_ref": self.require_supplier_ref,
                "require_proof_ref": self.require_proof_ref,
            },
        )

    @classmethod
    def with_defaults(cls) -> Self:
        logger.info("receiving_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        logger.info(
            "receiving_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)
