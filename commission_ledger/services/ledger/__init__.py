"""Wallet and points ledgers."""

from commission_ledger.services.ledger.points_service import PointsService
from commission_ledger.services.ledger.wallet_service import WalletService

__all__ = ["PointsService", "WalletService"]
