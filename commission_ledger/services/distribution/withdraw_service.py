"""
Withdrawal workflow service.

    pending --approve--> approved --process--> processing --complete--> success
    pending --reject--> rejected

Applying freezes the requested amount (wallet balance or distributor
available commission). Completion turns the frozen amount into a
withdrawn total; rejection returns it to the available side.
"""

import secrets
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, Optional, Union

from pydantic import ValidationError
from sqlalchemy.orm import Session

from commission_ledger.core.exceptions import (
    BalanceInsufficientError,
    FrozenBalanceInsufficientError,
    InvalidStateTransitionError,
    ResourceNotFoundError,
    ValidationException,
)
from commission_ledger.core.logging import log_execution_time
from commission_ledger.models.distribution import Distributor, Withdrawal
from commission_ledger.repositories.distribution import DistributorRepository, WithdrawalRepository
from commission_ledger.schemas.common.enums import (
    DistributorStatus,
    WithdrawalStatus,
    WithdrawalType,
    WithdrawTo,
)
from commission_ledger.schemas.distribution import (
    BatchResult,
    CommissionConfig,
    WithdrawalApplyRequest,
    WithdrawalStatusTotal,
    WithdrawalSummary,
)
from commission_ledger.services.base import BaseService, ServiceResult
from commission_ledger.services.distribution.commission_setting_service import (
    CommissionSettingService,
)
from commission_ledger.services.ledger.wallet_service import WalletService
from commission_ledger.utils.money import Number, apply_rate
from commission_ledger.utils.pagination_utils import Page, PaginationParams


class WithdrawService(BaseService[WithdrawalRepository]):
    """
    Withdrawal requests and their approval workflow.
    """

    def __init__(
        self,
        withdrawal_repository: WithdrawalRepository,
        distributor_repository: DistributorRepository,
        wallet_service: WalletService,
        setting_service: CommissionSettingService,
        db_session: Session,
    ):
        super().__init__(withdrawal_repository, db_session)
        self.distributor_repository = distributor_repository
        self.wallet_service = wallet_service
        self.setting_service = setting_service

    # ------------------------------------------------------------------ #
    # Workflow
    # ------------------------------------------------------------------ #

    def apply(
        self,
        user_id: int,
        withdrawal_type: Union[WithdrawalType, str],
        amount: Number,
        withdraw_to: Union[WithdrawTo, str],
        account_info: Optional[Dict[str, Any]] = None,
    ) -> ServiceResult[Withdrawal]:
        return self._run_in_transaction(
            "apply for withdrawal",
            lambda: self.apply_tx(user_id, withdrawal_type, amount, withdraw_to, account_info),
            entity_ref=user_id,
        )

    def approve(self, withdrawal_id: int, operator_id: int) -> ServiceResult[Withdrawal]:
        return self._run_in_transaction(
            "approve withdrawal",
            lambda: self._advance(
                withdrawal_id, WithdrawalStatus.PENDING, WithdrawalStatus.APPROVED, operator_id
            ),
            entity_ref=withdrawal_id,
        )

    def process(self, withdrawal_id: int, operator_id: int) -> ServiceResult[Withdrawal]:
        return self._run_in_transaction(
            "process withdrawal",
            lambda: self._advance(
                withdrawal_id, WithdrawalStatus.APPROVED, WithdrawalStatus.PROCESSING, operator_id
            ),
            entity_ref=withdrawal_id,
        )

    def complete(self, withdrawal_id: int, operator_id: int) -> ServiceResult[Withdrawal]:
        return self._run_in_transaction(
            "complete withdrawal",
            lambda: self.complete_tx(withdrawal_id, operator_id),
            entity_ref=withdrawal_id,
        )

    def reject(self, withdrawal_id: int, operator_id: int, reason: str) -> ServiceResult[Withdrawal]:
        return self._run_in_transaction(
            "reject withdrawal",
            lambda: self.reject_tx(withdrawal_id, operator_id, reason),
            entity_ref=withdrawal_id,
        )

    @log_execution_time()
    def batch_approve(self, withdrawal_ids: Iterable[int], operator_id: int) -> ServiceResult[BatchResult]:
        return self._run_batch(withdrawal_ids, lambda wid: self.approve(wid, operator_id), "approve")

    @log_execution_time()
    def batch_complete(self, withdrawal_ids: Iterable[int], operator_id: int) -> ServiceResult[BatchResult]:
        return self._run_batch(withdrawal_ids, lambda wid: self.complete(wid, operator_id), "complete")

    @log_execution_time()
    def batch_reject(
        self, withdrawal_ids: Iterable[int], operator_id: int, reason: str
    ) -> ServiceResult[BatchResult]:
        return self._run_batch(
            withdrawal_ids, lambda wid: self.reject(wid, operator_id, reason), "reject"
        )

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #

    def get_by_id(self, withdrawal_id: int) -> ServiceResult[Withdrawal]:
        return self._run_query(
            "get withdrawal",
            lambda: self.repository.get_or_raise(withdrawal_id),
            entity_ref=withdrawal_id,
        )

    def get_by_withdrawal_no(self, withdrawal_no: str) -> ServiceResult[Withdrawal]:
        def _load() -> Withdrawal:
            withdrawal = self.repository.get_by_withdrawal_no(withdrawal_no)
            if withdrawal is None:
                raise ResourceNotFoundError("Withdrawal", withdrawal_no)
            return withdrawal

        return self._run_query("get withdrawal by number", _load, entity_ref=withdrawal_no)

    def get_user_withdrawals(
        self, user_id: int, page: int = 1, page_size: int = 20
    ) -> ServiceResult[Page[Withdrawal]]:
        return self._run_query(
            "list user withdrawals",
            lambda: self.repository.list_by_user(
                user_id, PaginationParams(page=page, page_size=page_size)
            ),
            entity_ref=user_id,
        )

    def list_withdrawals(
        self,
        status: Optional[WithdrawalStatus] = None,
        withdrawal_type: Optional[WithdrawalType] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> ServiceResult[Page[Withdrawal]]:
        return self._run_query(
            "list withdrawals",
            lambda: self.repository.list_filtered(
                PaginationParams(page=page, page_size=page_size), status, withdrawal_type
            ),
        )

    def get_summary(self) -> ServiceResult[WithdrawalSummary]:
        def _load() -> WithdrawalSummary:
            summary = WithdrawalSummary()
            for status, (count, amount, fee) in self.repository.totals_by_status().items():
                summary.by_status[status] = WithdrawalStatusTotal(count=count, amount=amount, fee=fee)
            success = summary.by_status.get(WithdrawalStatus.SUCCESS)
            if success is not None:
                summary.total_paid_out = success.amount - success.fee
                summary.total_fee = success.fee
            return summary

        return self._run_query("get withdrawal summary", _load)

    def get_config(self) -> ServiceResult[CommissionConfig]:
        return self.setting_service.get_config()

    # ------------------------------------------------------------------ #
    # Transaction-scoped operations
    # ------------------------------------------------------------------ #

    def apply_tx(
        self,
        user_id: int,
        withdrawal_type: Union[WithdrawalType, str],
        amount: Number,
        withdraw_to: Union[WithdrawTo, str],
        account_info: Optional[Dict[str, Any]] = None,
    ) -> Withdrawal:
        request = self._parse_request(withdrawal_type, amount, withdraw_to, account_info)
        config = self.setting_service.load_config()

        if request.amount < config.min_withdraw:
            raise ValidationException(
                f"Minimum withdrawal amount is {config.min_withdraw}", field="amount"
            )
        if self.repository.count_pending_by_user(user_id) >= config.max_pending_withdrawals:
            raise ValidationException(
                f"At most {config.max_pending_withdrawals} pending withdrawals are allowed",
                field="amount",
            )

        fee = apply_rate(request.amount, config.withdraw_fee_rate)
        withdrawal_no = self._generate_withdrawal_no()
        distributor_id: Optional[int] = None

        if request.type == WithdrawalType.COMMISSION:
            distributor = self._lock_approved_distributor(user_id)
            if distributor.available_commission < request.amount:
                raise BalanceInsufficientError(
                    "Available commission insufficient",
                    available=distributor.available_commission,
                    requested=request.amount,
                )
            distributor.available_commission -= request.amount
            distributor.frozen_commission += request.amount
            distributor_id = distributor.id
        else:
            self.wallet_service.freeze_for_withdrawal_tx(user_id, request.amount, withdrawal_no)

        withdrawal = self.repository.create(
            Withdrawal(
                withdrawal_no=withdrawal_no,
                user_id=user_id,
                distributor_id=distributor_id,
                type=request.type,
                amount=request.amount,
                fee=fee,
                actual_amount=request.amount - fee,
                withdraw_to=request.withdraw_to,
                account_info=request.account_info or None,
                status=WithdrawalStatus.PENDING,
            )
        )

        self._logger.info(
            "Withdrawal requested",
            extra={
                "withdrawal_id": withdrawal.id,
                "withdrawal_no": withdrawal_no,
                "user_id": user_id,
                "withdrawal_type": request.type.value,
                "amount": str(request.amount),
                "fee": str(fee),
            },
        )
        return withdrawal

    def complete_tx(self, withdrawal_id: int, operator_id: int) -> Withdrawal:
        withdrawal = self._lock_in_state(withdrawal_id, WithdrawalStatus.PROCESSING)

        if withdrawal.type == WithdrawalType.COMMISSION:
            distributor = self._lock_distributor(withdrawal.distributor_id)
            if distributor.frozen_commission < withdrawal.amount:
                raise FrozenBalanceInsufficientError(
                    "Frozen commission insufficient",
                    available=distributor.frozen_commission,
                    requested=withdrawal.amount,
                )
            distributor.frozen_commission -= withdrawal.amount
            distributor.withdrawn_commission += withdrawal.amount
        else:
            self.wallet_service.complete_withdrawal_tx(
                withdrawal.user_id, withdrawal.amount, withdrawal.withdrawal_no
            )

        withdrawal.status = WithdrawalStatus.SUCCESS
        withdrawal.operator_id = operator_id
        withdrawal.processed_at = datetime.now(timezone.utc)

        self.db.flush()
        self._log_transition(withdrawal, WithdrawalStatus.PROCESSING, operator_id)
        return withdrawal

    def reject_tx(self, withdrawal_id: int, operator_id: int, reason: str) -> Withdrawal:
        withdrawal = self._lock_in_state(withdrawal_id, WithdrawalStatus.PENDING)

        if withdrawal.type == WithdrawalType.COMMISSION:
            distributor = self._lock_distributor(withdrawal.distributor_id)
            if distributor.frozen_commission < withdrawal.amount:
                raise FrozenBalanceInsufficientError(
                    "Frozen commission insufficient",
                    available=distributor.frozen_commission,
                    requested=withdrawal.amount,
                )
            distributor.frozen_commission -= withdrawal.amount
            distributor.available_commission += withdrawal.amount
        else:
            self.wallet_service.release_withdrawal_tx(
                withdrawal.user_id, withdrawal.amount, withdrawal.withdrawal_no
            )

        withdrawal.status = WithdrawalStatus.REJECTED
        withdrawal.reject_reason = reason
        withdrawal.operator_id = operator_id
        withdrawal.processed_at = datetime.now(timezone.utc)

        self.db.flush()
        self._log_transition(withdrawal, WithdrawalStatus.PENDING, operator_id)
        return withdrawal

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    def _advance(
        self,
        withdrawal_id: int,
        expected: WithdrawalStatus,
        target: WithdrawalStatus,
        operator_id: int,
    ) -> Withdrawal:
        withdrawal = self._lock_in_state(withdrawal_id, expected)
        withdrawal.status = target
        withdrawal.operator_id = operator_id
        self.db.flush()
        self._log_transition(withdrawal, expected, operator_id)
        return withdrawal

    def _lock_in_state(self, withdrawal_id: int, expected: WithdrawalStatus) -> Withdrawal:
        withdrawal = self.repository.get_for_update_or_raise(withdrawal_id)
        if withdrawal.status != expected:
            raise InvalidStateTransitionError(
                "Withdrawal", withdrawal_id, withdrawal.status.value, expected.value
            )
        return withdrawal

    def _lock_distributor(self, distributor_id: Optional[int]) -> Distributor:
        distributor = (
            self.distributor_repository.get_for_update(distributor_id)
            if distributor_id is not None
            else None
        )
        if distributor is None:
            raise ResourceNotFoundError("Distributor", distributor_id)
        return distributor

    def _lock_approved_distributor(self, user_id: int) -> Distributor:
        distributor = self.distributor_repository.get_by_user_id_for_update(user_id)
        if distributor is None:
            raise ResourceNotFoundError("Distributor", user_id, message="User is not a distributor")
        if distributor.status != DistributorStatus.APPROVED:
            raise InvalidStateTransitionError(
                "Distributor",
                distributor.id,
                distributor.status.value,
                DistributorStatus.APPROVED.value,
                message="Distributor is not approved",
            )
        return distributor

    @staticmethod
    def _parse_request(
        withdrawal_type: Union[WithdrawalType, str],
        amount: Number,
        withdraw_to: Union[WithdrawTo, str],
        account_info: Optional[Dict[str, Any]],
    ) -> WithdrawalApplyRequest:
        try:
            return WithdrawalApplyRequest(
                type=withdrawal_type,
                amount=amount,
                withdraw_to=withdraw_to,
                account_info=account_info or {},
            )
        except ValidationError as e:
            first = e.errors()[0]
            field = ".".join(str(p) for p in first["loc"]) or None
            raise ValidationException(first["msg"], field=field) from e

    @staticmethod
    def _generate_withdrawal_no() -> str:
        stamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
        return f"W{stamp}{secrets.randbelow(10**6):06d}"

    def _run_batch(
        self,
        withdrawal_ids: Iterable[int],
        step: Callable[[int], ServiceResult[Withdrawal]],
        action: str,
    ) -> ServiceResult[BatchResult]:
        batch = BatchResult()
        for withdrawal_id in withdrawal_ids:
            result = step(withdrawal_id)
            if result:
                batch.succeeded.append(withdrawal_id)
            else:
                batch.failed[withdrawal_id] = result.message or "failed"

        self._logger.info(
            f"Batch {action} finished",
            extra={"succeeded": len(batch.succeeded), "failed": len(batch.failed)},
        )
        return ServiceResult.success(batch)

    def _log_transition(
        self, withdrawal: Withdrawal, previous: WithdrawalStatus, operator_id: int
    ) -> None:
        self._log_operation(
            f"withdrawal {previous.value} -> {withdrawal.status.value}",
            withdrawal.id,
            extra={
                "withdrawal_no": withdrawal.withdrawal_no,
                "operator_id": operator_id,
                "amount": str(withdrawal.amount),
            },
        )
