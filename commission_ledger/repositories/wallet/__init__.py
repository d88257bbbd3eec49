from commission_ledger.repositories.wallet.points_record_repository import PointsRecordRepository
from commission_ledger.repositories.wallet.wallet_repository import WalletRepository
from commission_ledger.repositories.wallet.wallet_transaction_repository import (
    WalletTransactionRepository,
)

__all__ = ["PointsRecordRepository", "WalletRepository", "WalletTransactionRepository"]
