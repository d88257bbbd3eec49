from commission_ledger.models.wallet.points_record import PointsRecord
from commission_ledger.models.wallet.user_wallet import UserWallet
from commission_ledger.models.wallet.wallet_transaction import WalletTransaction

__all__ = ["PointsRecord", "UserWallet", "WalletTransaction"]
