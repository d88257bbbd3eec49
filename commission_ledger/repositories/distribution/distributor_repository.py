"""
Distributor repository.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from commission_ledger.models.distribution import Distributor
from commission_ledger.repositories.base.base_repository import BaseRepository
from commission_ledger.schemas.common.enums import DistributorStatus
from commission_ledger.utils.pagination_utils import Page, PaginationParams


class DistributorRepository(BaseRepository[Distributor]):
    """Referral tree membership."""

    def __init__(self, db: Session):
        super().__init__(Distributor, db)

    def get_by_user_id(self, user_id: int) -> Optional[Distributor]:
        return self.find_one_by_criteria({"user_id": user_id})

    def get_by_user_id_for_update(self, user_id: int) -> Optional[Distributor]:
        return self._lock_one(select(Distributor).where(Distributor.user_id == user_id))

    def get_by_invite_code(self, invite_code: str) -> Optional[Distributor]:
        return self.find_one_by_criteria({"invite_code": invite_code})

    def invite_code_exists(self, invite_code: str) -> bool:
        return self.exists({"invite_code": invite_code})

    def list_by_status(
        self, status: DistributorStatus, params: PaginationParams
    ) -> Page[Distributor]:
        stmt = (
            select(Distributor)
            .where(Distributor.status == status)
            .order_by(Distributor.id)
        )
        return self.paginate_query(stmt, params)

    def list_direct_members(
        self, distributor_id: int, params: PaginationParams
    ) -> Page[Distributor]:
        stmt = (
            select(Distributor)
            .where(
                Distributor.parent_id == distributor_id,
                Distributor.status == DistributorStatus.APPROVED,
            )
            .order_by(Distributor.id)
        )
        return self.paginate_query(stmt, params)

    def list_indirect_members(
        self, distributor_id: int, params: PaginationParams
    ) -> Page[Distributor]:
        direct_ids = select(Distributor.id).where(
            Distributor.parent_id == distributor_id,
            Distributor.status == DistributorStatus.APPROVED,
        )
        stmt = (
            select(Distributor)
            .where(
                Distributor.parent_id.in_(direct_ids),
                Distributor.status == DistributorStatus.APPROVED,
            )
            .order_by(Distributor.id)
        )
        return self.paginate_query(stmt, params)
