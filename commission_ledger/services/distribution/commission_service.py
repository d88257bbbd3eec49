"""
Commission engine.

Creates direct and indirect commissions when an order completes, moves
them into the distributor's available balance on settlement and unwinds
them when the order is refunded.
"""

from datetime import datetime, time, timedelta, timezone
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from commission_ledger.core.exceptions import (
    AlreadyExistsError,
    InvalidStateTransitionError,
    ReconciliationError,
    ResourceNotFoundError,
    ValidationException,
)
from commission_ledger.core.logging import log_execution_time
from commission_ledger.models.distribution import Commission, Distributor
from commission_ledger.repositories.distribution import CommissionRepository, DistributorRepository
from commission_ledger.repositories.user import UserRepository
from commission_ledger.schemas.common.enums import (
    CommissionStatus,
    CommissionType,
    DistributorStatus,
    OrderStatus,
)
from commission_ledger.schemas.distribution import (
    CommissionStats,
    CommissionStatusTotal,
    CommissionTrendPoint,
    CommissionTypeTotal,
)
from commission_ledger.schemas.order import OrderEvent
from commission_ledger.services.base import BaseService, ServiceResult
from commission_ledger.services.distribution.commission_setting_service import (
    CommissionSettingService,
)
from commission_ledger.utils.money import ZERO, Number, apply_rate, quantize_money
from commission_ledger.utils.pagination_utils import Page, PaginationParams


class CommissionService(BaseService[CommissionRepository]):
    """
    Commission lifecycle: pending -> settled, and any non-cancelled
    state -> cancelled on refund.
    """

    def __init__(
        self,
        commission_repository: CommissionRepository,
        distributor_repository: DistributorRepository,
        user_repository: UserRepository,
        setting_service: CommissionSettingService,
        db_session: Session,
    ):
        super().__init__(commission_repository, db_session)
        self.distributor_repository = distributor_repository
        self.user_repository = user_repository
        self.setting_service = setting_service

    # ------------------------------------------------------------------ #
    # Order events
    # ------------------------------------------------------------------ #

    def on_order_completed(self, order: OrderEvent) -> ServiceResult[List[Commission]]:
        """Create commissions for a completed order; other statuses are ignored."""
        if order.status != OrderStatus.COMPLETED:
            return ServiceResult.success([], message="Order not completed, no commission")
        return self.calculate(order.id, order.user_id, order.actual_amount)

    def calculate(
        self, order_id: int, user_id: int, order_amount: Number
    ) -> ServiceResult[List[Commission]]:
        return self._run_in_transaction(
            "calculate commission",
            lambda: self.calculate_tx(order_id, user_id, order_amount),
            entity_ref=order_id,
        )

    def settle(self, commission_id: int) -> ServiceResult[Commission]:
        return self._run_in_transaction(
            "settle commission",
            lambda: self.settle_tx(commission_id),
            entity_ref=commission_id,
        )

    def cancel_by_order_id(self, order_id: int) -> ServiceResult[List[Commission]]:
        return self._run_in_transaction(
            "cancel order commissions",
            lambda: self.cancel_by_order_id_tx(order_id),
            entity_ref=order_id,
        )

    @log_execution_time()
    def settle_pending_commissions(
        self, settle_delay_days: Optional[int] = None
    ) -> ServiceResult[int]:
        """
        Settle every pending commission older than the settlement delay.

        Best effort: each commission is settled in its own unit of work and
        failures are logged and skipped. Returns the number settled.
        """
        try:
            if settle_delay_days is None:
                settle_delay_days = self.setting_service.load_config().settle_delay_days
            cutoff = datetime.now(timezone.utc) - timedelta(days=settle_delay_days)
            due_ids = self.repository.list_due_ids(cutoff)
        except Exception as e:
            return self._handle_exception(e, "list commissions due for settlement")

        settled = 0
        for commission_id in due_ids:
            result = self.settle(commission_id)
            if result:
                settled += 1
            else:
                self._logger.warning(
                    "Scheduled settlement skipped commission",
                    extra={"commission_id": commission_id, "error": result.message},
                )

        self._logger.info(
            "Pending commissions settled",
            extra={"settled": settled, "due": len(due_ids), "settle_delay_days": settle_delay_days},
        )
        return ServiceResult.success(settled)

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #

    def get_by_id(self, commission_id: int) -> ServiceResult[Commission]:
        return self._run_query(
            "get commission",
            lambda: self.repository.get_or_raise(commission_id),
            entity_ref=commission_id,
        )

    def get_by_order_id(self, order_id: int) -> ServiceResult[List[Commission]]:
        return self._run_query(
            "list order commissions",
            lambda: self.repository.list_by_order(order_id),
            entity_ref=order_id,
        )

    def get_commissions(
        self,
        distributor_id: int,
        status: Optional[CommissionStatus] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> ServiceResult[Page[Commission]]:
        return self._run_query(
            "list distributor commissions",
            lambda: self.repository.list_by_distributor(
                distributor_id, PaginationParams(page=page, page_size=page_size), status
            ),
            entity_ref=distributor_id,
        )

    def get_commission_stats(self, distributor_id: int) -> ServiceResult[CommissionStats]:
        def _load() -> CommissionStats:
            totals = self.repository.totals_by_status(distributor_id)
            stats = CommissionStats(distributor_id=distributor_id)
            for status, (count, amount) in totals.items():
                setattr(stats, status.value, CommissionStatusTotal(count=count, amount=amount))
            return stats

        return self._run_query("get commission stats", _load, entity_ref=distributor_id)

    def get_commission_trend(
        self, distributor_id: int, days: int = 7
    ) -> ServiceResult[List[CommissionTrendPoint]]:
        """
        Daily earnings for the last ``days`` UTC days, oldest first.

        ``days`` defaults to 7 when not positive and is capped at 30. Days
        without commissions are included with zero totals; cancelled
        commissions are left out.
        """
        if days <= 0:
            days = 7
        days = min(days, 30)

        def _load() -> List[CommissionTrendPoint]:
            today = datetime.now(timezone.utc).date()
            first_day = today - timedelta(days=days - 1)
            since = datetime.combine(first_day, time.min, tzinfo=timezone.utc)

            buckets = {
                first_day + timedelta(days=i): {
                    "commission": ZERO, "orders": 0,
                    CommissionType.DIRECT: ZERO, CommissionType.INDIRECT: ZERO,
                }
                for i in range(days)
            }
            for created_at, commission_type, amount in self.repository.list_earnings_since(
                distributor_id, since
            ):
                if created_at.tzinfo is not None:
                    created_at = created_at.astimezone(timezone.utc)
                bucket = buckets.get(created_at.date())
                if bucket is None:
                    continue
                bucket["commission"] += amount
                bucket["orders"] += 1
                bucket[commission_type] += amount

            return [
                CommissionTrendPoint(
                    day=day,
                    commission=bucket["commission"],
                    orders=bucket["orders"],
                    direct_commission=bucket[CommissionType.DIRECT],
                    indirect_commission=bucket[CommissionType.INDIRECT],
                )
                for day, bucket in sorted(buckets.items())
            ]

        return self._run_query("get commission trend", _load, entity_ref=distributor_id)

    def get_commission_type_summary(
        self,
        distributor_id: int,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> ServiceResult[List[CommissionTypeTotal]]:
        """Count and total of non-cancelled commissions per type; both types always present."""

        def _load() -> List[CommissionTypeTotal]:
            totals = self.repository.totals_by_type(distributor_id, start, end)
            return [
                CommissionTypeTotal(
                    type=commission_type,
                    count=totals.get(commission_type, (0, ZERO))[0],
                    total_amount=totals.get(commission_type, (0, ZERO))[1],
                )
                for commission_type in CommissionType
            ]

        return self._run_query("get commission type summary", _load, entity_ref=distributor_id)

    # ------------------------------------------------------------------ #
    # Transaction-scoped operations
    # ------------------------------------------------------------------ #

    def calculate_tx(self, order_id: int, user_id: int, order_amount: Number) -> List[Commission]:
        """
        Create pending commissions for the buyer's referrer chain.

        The direct beneficiary is the buyer's referrer when that referrer
        is an approved distributor; the indirect beneficiary is the direct
        distributor's parent when approved.
        """
        try:
            amount = quantize_money(order_amount)
        except ValueError as e:
            raise ValidationException(str(e), field="order_amount") from e
        if amount <= ZERO:
            raise ValidationException("Order amount must be greater than 0", field="order_amount")

        user = self.user_repository.get_by_id(user_id)
        if user is None:
            raise ResourceNotFoundError("User", user_id)
        if user.referrer_id is None:
            return []

        direct = self.distributor_repository.get_by_user_id(user.referrer_id)
        if direct is None or direct.status != DistributorStatus.APPROVED:
            return []

        if self.repository.exists_for_order(order_id):
            raise AlreadyExistsError(
                "Commission already generated for order", details={"order_id": order_id}
            )

        config = self.setting_service.load_config()
        beneficiaries = [(direct, CommissionType.DIRECT, config.direct_rate)]
        if direct.parent_id is not None:
            parent = self.distributor_repository.get_by_id(direct.parent_id)
            if parent is not None and parent.status == DistributorStatus.APPROVED:
                beneficiaries.append((parent, CommissionType.INDIRECT, config.indirect_rate))

        created: List[Commission] = []
        for distributor, commission_type, rate in beneficiaries:
            commission_amount = apply_rate(amount, rate)
            if commission_amount <= ZERO:
                continue
            created.append(
                self.repository.create(
                    Commission(
                        distributor_id=distributor.id,
                        order_id=order_id,
                        from_user_id=user_id,
                        type=commission_type,
                        order_amount=amount,
                        rate=rate,
                        amount=commission_amount,
                        status=CommissionStatus.PENDING,
                    )
                )
            )

        self._logger.info(
            "Commissions created",
            extra={
                "order_id": order_id,
                "from_user_id": user_id,
                "order_amount": str(amount),
                "commissions": [
                    {"distributor_id": c.distributor_id, "type": c.type.value, "amount": str(c.amount)}
                    for c in created
                ],
            },
        )
        return created

    def settle_tx(self, commission_id: int) -> Commission:
        commission = self.repository.get_for_update_or_raise(commission_id)
        if commission.status != CommissionStatus.PENDING:
            raise InvalidStateTransitionError(
                "Commission",
                commission_id,
                commission.status.value,
                CommissionStatus.PENDING.value,
            )

        distributor = self._lock_distributor(commission.distributor_id)
        commission.status = CommissionStatus.SETTLED
        commission.settled_at = datetime.now(timezone.utc)
        distributor.available_commission += commission.amount
        distributor.total_commission += commission.amount

        self.db.flush()
        self._logger.info(
            "Commission settled",
            extra={
                "commission_id": commission.id,
                "distributor_id": distributor.id,
                "amount": str(commission.amount),
                "available_commission": str(distributor.available_commission),
            },
        )
        return commission

    def cancel_by_order_id_tx(self, order_id: int) -> List[Commission]:
        """
        Cancel every non-cancelled commission of an order.

        Settled commissions are taken back out of the distributor's
        available and total commission. When the available bucket no
        longer covers the amount, nothing is changed and a
        ReconciliationError reports the shortfall.
        """
        commissions = self.repository.list_active_by_order_for_update(order_id)

        for commission in commissions:
            if commission.status == CommissionStatus.SETTLED:
                distributor = self._lock_distributor(commission.distributor_id)
                self._reverse_settled(distributor, commission)
            commission.status = CommissionStatus.CANCELLED

        self.db.flush()
        if commissions:
            self._logger.info(
                "Order commissions cancelled",
                extra={"order_id": order_id, "cancelled": [c.id for c in commissions]},
            )
        return commissions

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    def _lock_distributor(self, distributor_id: int) -> Distributor:
        distributor = self.distributor_repository.get_for_update(distributor_id)
        if distributor is None:
            raise ResourceNotFoundError("Distributor", distributor_id)
        return distributor

    def _reverse_settled(self, distributor: Distributor, commission: Commission) -> None:
        if distributor.available_commission < commission.amount:
            shortfall: Decimal = commission.amount - distributor.available_commission
            self._logger.error(
                "Commission reversal exceeds available commission",
                extra={
                    "commission_id": commission.id,
                    "distributor_id": distributor.id,
                    "amount": str(commission.amount),
                    "available_commission": str(distributor.available_commission),
                    "shortfall": str(shortfall),
                },
            )
            raise ReconciliationError(
                "Available commission does not cover the refunded commission",
                details={
                    "commission_id": commission.id,
                    "distributor_id": distributor.id,
                    "order_id": commission.order_id,
                    "amount": str(commission.amount),
                    "available_commission": str(distributor.available_commission),
                    "shortfall": str(shortfall),
                },
            )

        distributor.available_commission -= commission.amount
        distributor.total_commission -= commission.amount
