"""
Commission setting repository.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from commission_ledger.models.distribution import CommissionSetting
from commission_ledger.repositories.base.base_repository import BaseRepository
from commission_ledger.utils.pagination_utils import Page, PaginationParams


class CommissionSettingRepository(BaseRepository[CommissionSetting]):

    def __init__(self, db: Session):
        super().__init__(CommissionSetting, db)

    def get_active(self) -> Optional[CommissionSetting]:
        stmt = (
            select(CommissionSetting)
            .where(CommissionSetting.is_active.is_(True))
            .order_by(CommissionSetting.id.desc())
            .limit(1)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def list_history(self, params: PaginationParams) -> Page[CommissionSetting]:
        """Every stored configuration, newest first, active row included."""
        stmt = select(CommissionSetting).order_by(CommissionSetting.id.desc())
        return self.paginate_query(stmt, params)
