"""
Points service.

Loyalty points earned on consumption and taken back on refund.
"""

from typing import Optional

from sqlalchemy.orm import Session

from commission_ledger.core.exceptions import (
    PointsInsufficientError,
    ResourceNotFoundError,
    ValidationException,
)
from commission_ledger.models.user import User
from commission_ledger.models.wallet import PointsRecord
from commission_ledger.repositories.user import UserRepository
from commission_ledger.repositories.wallet import PointsRecordRepository
from commission_ledger.schemas.common.enums import PointsType
from commission_ledger.services.base import BaseService, ServiceResult
from commission_ledger.utils.money import Number, whole_units
from commission_ledger.utils.pagination_utils import Page, PaginationParams


class PointsService(BaseService[UserRepository]):
    """User points balance plus its record log."""

    def __init__(
        self,
        user_repository: UserRepository,
        record_repository: PointsRecordRepository,
        db_session: Session,
    ):
        super().__init__(user_repository, db_session)
        self.record_repository = record_repository

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def add_points(
        self,
        user_id: int,
        points: int,
        points_type: PointsType,
        remark: Optional[str] = None,
        order_no: Optional[str] = None,
    ) -> ServiceResult[User]:
        return self._run_in_transaction(
            "add points",
            lambda: self.add_points_tx(user_id, points, points_type, remark, order_no),
            entity_ref=user_id,
        )

    def deduct_points(
        self,
        user_id: int,
        points: int,
        points_type: PointsType,
        remark: Optional[str] = None,
        order_no: Optional[str] = None,
    ) -> ServiceResult[User]:
        return self._run_in_transaction(
            "deduct points",
            lambda: self.deduct_points_tx(user_id, points, points_type, remark, order_no),
            entity_ref=user_id,
        )

    @staticmethod
    def calculate_points_by_amount(amount: Number) -> int:
        """One point per whole currency unit spent."""
        return max(whole_units(amount), 0)

    def add_consume_points(self, user_id: int, amount: Number, order_no: str) -> ServiceResult[int]:
        """Grant points for a completed purchase; returns the points granted."""
        points = self.calculate_points_by_amount(amount)
        if points <= 0:
            return ServiceResult.success(0)

        def _grant() -> int:
            self.add_points_tx(user_id, points, PointsType.CONSUME, "order consumption", order_no)
            return points

        return self._run_in_transaction("add consume points", _grant, entity_ref=order_no)

    def deduct_refund_points(self, user_id: int, amount: Number, order_no: str) -> ServiceResult[int]:
        """Take back the points granted for a refunded purchase."""
        points = self.calculate_points_by_amount(amount)
        if points <= 0:
            return ServiceResult.success(0)

        def _revoke() -> int:
            self.deduct_points_tx(user_id, points, PointsType.REFUND, "order refund", order_no)
            return points

        return self._run_in_transaction("deduct refund points", _revoke, entity_ref=order_no)

    def get_records(self, user_id: int, page: int = 1, page_size: int = 20) -> ServiceResult[Page[PointsRecord]]:
        return self._run_query(
            "list points records",
            lambda: self.record_repository.list_by_user(
                user_id, PaginationParams(page=page, page_size=page_size)
            ),
            entity_ref=user_id,
        )

    # ------------------------------------------------------------------ #
    # Transaction-scoped operations
    # ------------------------------------------------------------------ #

    def add_points_tx(
        self,
        user_id: int,
        points: int,
        points_type: PointsType,
        remark: Optional[str] = None,
        order_no: Optional[str] = None,
    ) -> User:
        if points <= 0:
            raise ValidationException("Points must be greater than 0", field="points")
        user = self._lock_user(user_id)
        user.points += points
        self._record(user, points_type, points, remark, order_no)
        return user

    def deduct_points_tx(
        self,
        user_id: int,
        points: int,
        points_type: PointsType,
        remark: Optional[str] = None,
        order_no: Optional[str] = None,
    ) -> User:
        if points <= 0:
            raise ValidationException("Points must be greater than 0", field="points")
        user = self._lock_user(user_id)
        if user.points < points:
            raise PointsInsufficientError(available=user.points, requested=points)
        user.points -= points
        self._record(user, points_type, -points, remark, order_no)
        return user

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    def _lock_user(self, user_id: int) -> User:
        user = self.repository.get_for_update(user_id)
        if user is None:
            raise ResourceNotFoundError("User", user_id)
        return user

    def _record(
        self,
        user: User,
        points_type: PointsType,
        points: int,
        remark: Optional[str],
        order_no: Optional[str],
    ) -> PointsRecord:
        record = self.record_repository.create(
            PointsRecord(
                user_id=user.id,
                type=points_type,
                points=points,
                balance_after=user.points,
                order_no=order_no,
                remark=remark,
            )
        )
        self._logger.info(
            "Points changed",
            extra={
                "user_id": user.id,
                "points": points,
                "points_type": points_type.value,
                "points_after": user.points,
                "order_no": order_no,
            },
        )
        return record
