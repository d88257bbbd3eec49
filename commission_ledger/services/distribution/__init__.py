from commission_ledger.services.distribution.commission_service import CommissionService
from commission_ledger.services.distribution.commission_setting_service import (
    CommissionSettingService,
)
from commission_ledger.services.distribution.distributor_service import DistributorService
from commission_ledger.services.distribution.withdraw_service import WithdrawService

__all__ = [
    "CommissionService",
    "CommissionSettingService",
    "DistributorService",
    "WithdrawService",
]
