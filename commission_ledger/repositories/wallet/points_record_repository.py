"""
Points record repository.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from commission_ledger.models.wallet import PointsRecord
from commission_ledger.repositories.base.base_repository import BaseRepository
from commission_ledger.utils.pagination_utils import Page, PaginationParams


class PointsRecordRepository(BaseRepository[PointsRecord]):

    def __init__(self, db: Session):
        super().__init__(PointsRecord, db)

    def list_by_user(self, user_id: int, params: PaginationParams) -> Page[PointsRecord]:
        stmt = (
            select(PointsRecord)
            .where(PointsRecord.user_id == user_id)
            .order_by(PointsRecord.id.desc())
        )
        return self.paginate_query(stmt, params)
