"""
Distribution schemas: distributors, commissions, withdrawals and settings.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator, model_validator

from commission_ledger.schemas.common.base import BaseResponseSchema, BaseSchema
from commission_ledger.schemas.common.enums import (
    CommissionStatus,
    CommissionType,
    DistributorStatus,
    WithdrawalStatus,
    WithdrawalType,
    WithdrawTo,
)

__all__ = [
    "DistributorResponse",
    "TeamStats",
    "DistributorDashboard",
    "CommissionResponse",
    "CommissionStatusTotal",
    "CommissionStats",
    "CommissionTrendPoint",
    "CommissionTypeTotal",
    "CommissionConfig",
    "CommissionConfigUpdate",
    "WithdrawalApplyRequest",
    "WithdrawalResponse",
    "WithdrawalStatusTotal",
    "WithdrawalSummary",
    "BatchResult",
]


# ---------------------------------------------------------------------------
# Distributors
# ---------------------------------------------------------------------------


class DistributorResponse(BaseResponseSchema):
    user_id: int
    parent_id: Optional[int] = None
    invite_code: str
    level: int
    status: DistributorStatus
    total_commission: Decimal
    available_commission: Decimal
    frozen_commission: Decimal
    withdrawn_commission: Decimal
    team_count: int
    direct_count: int
    approved_at: Optional[datetime] = None


class TeamStats(BaseSchema):
    """Approved team members within two levels."""

    direct_count: int = 0
    indirect_count: int = 0
    total_count: int = 0


class DistributorDashboard(BaseSchema):
    distributor: DistributorResponse
    team: TeamStats
    today_commission: Decimal = Decimal("0.00")
    month_commission: Decimal = Decimal("0.00")
    invite_link: str


# ---------------------------------------------------------------------------
# Commissions
# ---------------------------------------------------------------------------


class CommissionResponse(BaseResponseSchema):
    distributor_id: int
    order_id: int
    from_user_id: int
    type: CommissionType
    order_amount: Decimal
    rate: Decimal
    amount: Decimal
    status: CommissionStatus
    settled_at: Optional[datetime] = None


class CommissionStatusTotal(BaseSchema):
    count: int = 0
    amount: Decimal = Decimal("0.00")


class CommissionStats(BaseSchema):
    distributor_id: int
    pending: CommissionStatusTotal = Field(default_factory=CommissionStatusTotal)
    settled: CommissionStatusTotal = Field(default_factory=CommissionStatusTotal)
    cancelled: CommissionStatusTotal = Field(default_factory=CommissionStatusTotal)


class CommissionTrendPoint(BaseSchema):
    """Earnings of one UTC day, split by commission type."""

    day: date
    commission: Decimal = Decimal("0.00")
    orders: int = 0
    direct_commission: Decimal = Decimal("0.00")
    indirect_commission: Decimal = Decimal("0.00")


class CommissionTypeTotal(BaseSchema):
    type: CommissionType
    count: int = 0
    total_amount: Decimal = Decimal("0.00")


class CommissionConfig(BaseSchema):
    """Effective commission and withdrawal parameters."""

    direct_rate: Decimal
    indirect_rate: Decimal
    min_withdraw: Decimal
    withdraw_fee_rate: Decimal
    settle_delay_days: int
    max_pending_withdrawals: int


class CommissionConfigUpdate(BaseSchema):
    """Operator update of the commission parameters."""

    direct_rate: Decimal = Field(..., ge=0, le=1)
    indirect_rate: Decimal = Field(..., ge=0, le=1)
    min_withdraw: Decimal = Field(..., ge=0)
    withdraw_fee_rate: Decimal = Field(..., ge=0, le=1)
    settle_delay_days: int = Field(..., ge=0)
    max_pending_withdrawals: int = Field(default=5, ge=1)

    @model_validator(mode="after")
    def validate_combined_rate(self) -> "CommissionConfigUpdate":
        if self.direct_rate + self.indirect_rate > Decimal("0.5"):
            raise ValueError("direct_rate + indirect_rate must not exceed 0.5")
        return self


# ---------------------------------------------------------------------------
# Withdrawals
# ---------------------------------------------------------------------------


class WithdrawalApplyRequest(BaseSchema):
    """Withdrawal request as submitted by a user."""

    type: WithdrawalType
    amount: Decimal = Field(..., gt=0)
    withdraw_to: WithdrawTo
    account_info: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("amount")
    @classmethod
    def validate_precision(cls, v: Decimal) -> Decimal:
        if v != v.quantize(Decimal("0.01")):
            raise ValueError("amount supports at most two decimal places")
        return v


class WithdrawalResponse(BaseResponseSchema):
    withdrawal_no: str
    user_id: int
    distributor_id: Optional[int] = None
    type: WithdrawalType
    amount: Decimal
    fee: Decimal
    actual_amount: Decimal
    withdraw_to: WithdrawTo
    status: WithdrawalStatus
    reject_reason: Optional[str] = None
    operator_id: Optional[int] = None
    processed_at: Optional[datetime] = None


class WithdrawalStatusTotal(BaseSchema):
    count: int = 0
    amount: Decimal = Decimal("0.00")
    fee: Decimal = Decimal("0.00")


class WithdrawalSummary(BaseSchema):
    by_status: Dict[WithdrawalStatus, WithdrawalStatusTotal] = Field(default_factory=dict)
    total_paid_out: Decimal = Decimal("0.00")
    total_fee: Decimal = Decimal("0.00")


class BatchResult(BaseSchema):
    """Outcome of a best-effort batch: each id succeeds or fails on its own."""

    succeeded: List[int] = Field(default_factory=list)
    failed: Dict[int, str] = Field(default_factory=dict)

    @property
    def all_succeeded(self) -> bool:
        return not self.failed
