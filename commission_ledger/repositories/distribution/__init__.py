from commission_ledger.repositories.distribution.commission_repository import CommissionRepository
from commission_ledger.repositories.distribution.commission_setting_repository import (
    CommissionSettingRepository,
)
from commission_ledger.repositories.distribution.distributor_repository import DistributorRepository
from commission_ledger.repositories.distribution.withdrawal_repository import WithdrawalRepository

__all__ = [
    "CommissionRepository",
    "CommissionSettingRepository",
    "DistributorRepository",
    "WithdrawalRepository",
]
