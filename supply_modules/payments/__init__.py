"""
Payments Module (``supply_modules.payments``).

Payment vouchers against received purchase orders; PARTIAL_PAID / PAID
status follows the cumulative amount paid.
"""

from supply_modules.payments.config import PaymentConfig
from supply_modules.payments.models import PaymentResult, PaymentVoucher
from supply_modules.payments.service import PaymentService

__all__ = [
    "PaymentConfig",
    "PaymentResult",
    "PaymentVoucher",
    "PaymentService",
]
