"""
Withdrawal repository.
"""

from decimal import Decimal
from typing import Dict, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from commission_ledger.models.distribution import Withdrawal
from commission_ledger.repositories.base.base_repository import BaseRepository
from commission_ledger.schemas.common.enums import WithdrawalStatus, WithdrawalType
from commission_ledger.utils.pagination_utils import Page, PaginationParams


class WithdrawalRepository(BaseRepository[Withdrawal]):
    """Withdrawal requests."""

    def __init__(self, db: Session):
        super().__init__(Withdrawal, db)

    def get_by_withdrawal_no(self, withdrawal_no: str) -> Optional[Withdrawal]:
        return self.find_one_by_criteria({"withdrawal_no": withdrawal_no})

    def count_pending_by_user(self, user_id: int) -> int:
        return self.count({"user_id": user_id, "status": WithdrawalStatus.PENDING})

    def list_by_user(self, user_id: int, params: PaginationParams) -> Page[Withdrawal]:
        stmt = (
            select(Withdrawal)
            .where(Withdrawal.user_id == user_id)
            .order_by(Withdrawal.id.desc())
        )
        return self.paginate_query(stmt, params)

    def list_filtered(
        self,
        params: PaginationParams,
        status: Optional[WithdrawalStatus] = None,
        withdrawal_type: Optional[WithdrawalType] = None,
    ) -> Page[Withdrawal]:
        stmt = select(Withdrawal)
        if status is not None:
            stmt = stmt.where(Withdrawal.status == status)
        if withdrawal_type is not None:
            stmt = stmt.where(Withdrawal.type == withdrawal_type)
        stmt = stmt.order_by(Withdrawal.id.desc())
        return self.paginate_query(stmt, params)

    def totals_by_status(self) -> Dict[WithdrawalStatus, Tuple[int, Decimal, Decimal]]:
        """Count, amount and fee per status."""
        stmt = select(
            Withdrawal.status,
            func.count(),
            func.coalesce(func.sum(Withdrawal.amount), 0),
            func.coalesce(func.sum(Withdrawal.fee), 0),
        ).group_by(Withdrawal.status)
        cent = Decimal("0.01")
        return {
            status: (
                count,
                Decimal(str(amount)).quantize(cent),
                Decimal(str(fee)).quantize(cent),
            )
            for status, count, amount, fee in self.db.execute(stmt).all()
        }
