"""
Commission repository.
"""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from commission_ledger.models.distribution import Commission
from commission_ledger.repositories.base.base_repository import BaseRepository
from commission_ledger.schemas.common.enums import CommissionStatus, CommissionType
from commission_ledger.utils.pagination_utils import Page, PaginationParams


class CommissionRepository(BaseRepository[Commission]):
    """Commission rows and aggregates."""

    def __init__(self, db: Session):
        super().__init__(Commission, db)

    def list_by_order(self, order_id: int) -> List[Commission]:
        return self.find_by_criteria({"order_id": order_id}, order_by=Commission.id)

    def list_active_by_order_for_update(self, order_id: int) -> List[Commission]:
        """Lock every non-cancelled commission of an order."""
        return self._lock_all(
            select(Commission)
            .where(
                Commission.order_id == order_id,
                Commission.status != CommissionStatus.CANCELLED,
            )
            .order_by(Commission.id)
        )

    def exists_for_order(self, order_id: int) -> bool:
        return self.exists({"order_id": order_id})

    def list_by_distributor(
        self,
        distributor_id: int,
        params: PaginationParams,
        status: Optional[CommissionStatus] = None,
    ) -> Page[Commission]:
        stmt = select(Commission).where(Commission.distributor_id == distributor_id)
        if status is not None:
            stmt = stmt.where(Commission.status == status)
        stmt = stmt.order_by(Commission.id.desc())
        return self.paginate_query(stmt, params)

    def list_due_ids(self, created_before: datetime, limit: int = 1000) -> List[int]:
        """Ids of pending commissions created before the cutoff, oldest first."""
        stmt = (
            select(Commission.id)
            .where(
                Commission.status == CommissionStatus.PENDING,
                Commission.created_at < created_before,
            )
            .order_by(Commission.id)
            .limit(limit)
        )
        return list(self.db.execute(stmt).scalars().all())

    def totals_by_status(self, distributor_id: int) -> Dict[CommissionStatus, Tuple[int, Decimal]]:
        stmt = (
            select(Commission.status, func.count(), func.coalesce(func.sum(Commission.amount), 0))
            .where(Commission.distributor_id == distributor_id)
            .group_by(Commission.status)
        )
        return {
            status: (count, Decimal(str(total)).quantize(Decimal("0.01")))
            for status, count, total in self.db.execute(stmt).all()
        }

    def sum_since(self, distributor_id: int, since: datetime) -> Decimal:
        """Commission earned since ``since``, excluding cancelled rows."""
        stmt = select(func.coalesce(func.sum(Commission.amount), 0)).where(
            Commission.distributor_id == distributor_id,
            Commission.status != CommissionStatus.CANCELLED,
            Commission.created_at >= since,
        )
        return Decimal(str(self.db.execute(stmt).scalar_one())).quantize(Decimal("0.01"))

    def list_earnings_since(
        self, distributor_id: int, since: datetime
    ) -> List[Tuple[datetime, CommissionType, Decimal]]:
        """``(created_at, type, amount)`` of non-cancelled commissions since ``since``."""
        stmt = (
            select(Commission.created_at, Commission.type, Commission.amount)
            .where(
                Commission.distributor_id == distributor_id,
                Commission.status != CommissionStatus.CANCELLED,
                Commission.created_at >= since,
            )
            .order_by(Commission.created_at)
        )
        return [tuple(row) for row in self.db.execute(stmt).all()]

    def totals_by_type(
        self,
        distributor_id: int,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> Dict[CommissionType, Tuple[int, Decimal]]:
        """Count and sum of non-cancelled commissions per type, optionally within ``[start, end]``."""
        stmt = (
            select(Commission.type, func.count(), func.coalesce(func.sum(Commission.amount), 0))
            .where(
                Commission.distributor_id == distributor_id,
                Commission.status != CommissionStatus.CANCELLED,
            )
            .group_by(Commission.type)
        )
        if start is not None:
            stmt = stmt.where(Commission.created_at >= start)
        if end is not None:
            stmt = stmt.where(Commission.created_at <= end)
        return {
            commission_type: (count, Decimal(str(total)).quantize(Decimal("0.01")))
            for commission_type, count, total in self.db.execute(stmt).all()
        }
