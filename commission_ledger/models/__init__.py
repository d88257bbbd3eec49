"""
ORM models.

Importing this package registers every table on ``Base.metadata``.
"""

from commission_ledger.models.base import Base, BaseModel
from commission_ledger.models.distribution import (
    Commission,
    CommissionSetting,
    Distributor,
    Withdrawal,
)
from commission_ledger.models.user import User
from commission_ledger.models.wallet import PointsRecord, UserWallet, WalletTransaction

__all__ = [
    "Base",
    "BaseModel",
    "Commission",
    "CommissionSetting",
    "Distributor",
    "PointsRecord",
    "User",
    "UserWallet",
    "WalletTransaction",
    "Withdrawal",
]
