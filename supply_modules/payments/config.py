"""
Payment Configuration Schema.

Which document references a payment voucher must carry and the method
recorded when the caller does not name one.
"""

from dataclasses import dataclass
from typing import Self

from supply_kernel.logging_config import get_logger

logger = get_logger("modules.payments.config")


@dataclass
class PaymentConfig:
    """Configuration schema for the payments module."""

    require_reference: bool = True
    require_proof_ref: bool = True
    default_method: str = "Bank Transfer"

    def __post_init__(self):
        if not self.default_method.strip():
            raise ValueError("default_method must not be blank")
        logger.info(
            "payment_config_initialized",
            extra={
                "require_reference": self.require_reference,
                "require_proof_ref": self.require_proof_ref,
                "default_method": self.default_method,
            },
        )

    @classmethod
    def with_defaults(cls) -> Self:
        logger.info("payment_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: dict) -> Self:
        logger.info(
            "payment_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)
