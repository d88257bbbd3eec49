"""
Wallet transaction repository.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from commission_ledger.models.wallet import WalletTransaction
from commission_ledger.repositories.base.base_repository import BaseRepository
from commission_ledger.schemas.common.enums import WalletTransactionType
from commission_ledger.utils.pagination_utils import Page, PaginationParams


class WalletTransactionRepository(BaseRepository[WalletTransaction]):
    """Append-only wallet ledger."""

    def __init__(self, db: Session):
        super().__init__(WalletTransaction, db)

    def list_by_user(
        self,
        user_id: int,
        params: PaginationParams,
        tx_type: Optional[WalletTransactionType] = None,
    ) -> Page[WalletTransaction]:
        stmt = select(WalletTransaction).where(WalletTransaction.user_id == user_id)
        if tx_type is not None:
            stmt = stmt.where(WalletTransaction.type == tx_type)
        stmt = stmt.order_by(WalletTransaction.id.desc())
        return self.paginate_query(stmt, params)
