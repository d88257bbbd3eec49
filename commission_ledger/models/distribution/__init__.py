from commission_ledger.models.distribution.commission import Commission
from commission_ledger.models.distribution.commission_setting import CommissionSetting
from commission_ledger.models.distribution.distributor import Distributor
from commission_ledger.models.distribution.withdrawal import Withdrawal

__all__ = ["Commission", "CommissionSetting", "Distributor", "Withdrawal"]
