"""
Wallet repository.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from commission_ledger.models.wallet import UserWallet
from commission_ledger.repositories.base.base_repository import BaseRepository


class WalletRepository(BaseRepository[UserWallet]):
    """Wallet rows keyed by user."""

    def __init__(self, db: Session):
        super().__init__(UserWallet, db)

    def get_by_user_id(self, user_id: int) -> Optional[UserWallet]:
        return self.find_one_by_criteria({"user_id": user_id})

    def get_by_user_id_for_update(self, user_id: int) -> Optional[UserWallet]:
        return self._lock_one(select(UserWallet).where(UserWallet.user_id == user_id))
