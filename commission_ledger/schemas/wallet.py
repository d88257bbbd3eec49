"""
Wallet and points schemas.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from pydantic import Field

from commission_ledger.schemas.common.base import BaseResponseSchema, BaseSchema
from commission_ledger.schemas.common.enums import PointsType, WalletTransactionType

__all__ = [
    "WalletResponse",
    "WalletTransactionResponse",
    "PointsRecordResponse",
]


class WalletResponse(BaseSchema):
    """Wallet balances and lifetime totals."""

    user_id: int
    balance: Decimal
    frozen_balance: Decimal
    total_recharged: Decimal
    total_consumed: Decimal
    total_withdrawn: Decimal


class WalletTransactionResponse(BaseResponseSchema):
    """One wallet ledger entry."""

    user_id: int
    type: WalletTransactionType
    amount: Decimal = Field(..., description="Signed movement amount")
    balance_before: Decimal
    balance_after: Decimal
    frozen_before: Decimal
    frozen_after: Decimal
    order_no: Optional[str] = None
    remark: Optional[str] = None


class PointsRecordResponse(BaseResponseSchema):
    user_id: int
    type: PointsType
    points: int
    balance_after: int
    order_no: Optional[str] = None
