"""
Commission Setting Model.

Operator-maintained commission and withdrawal parameters. When no
active row exists the environment defaults apply.
"""

from decimal import Decimal

from sqlalchemy import Boolean, Integer
from sqlalchemy.orm import Mapped, mapped_column

from commission_ledger.models.base.base_model import BaseModel
from commission_ledger.models.base.mixins import TimestampMixin
from commission_ledger.models.base.types import MoneyType, RateType

__all__ = ["CommissionSetting"]


class CommissionSetting(BaseModel, TimestampMixin):
    """Persisted commission configuration."""

    __tablename__ = "commission_settings"

    direct_rate: Mapped[Decimal] = mapped_column(RateType, nullable=False)
    indirect_rate: Mapped[Decimal] = mapped_column(RateType, nullable=False)
    min_withdraw: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    withdraw_fee_rate: Mapped[Decimal] = mapped_column(RateType, nullable=False)
    settle_delay_days: Mapped[int] = mapped_column(Integer, nullable=False)
    max_pending_withdrawals: Mapped[int] = mapped_column(Integer, nullable=False)

    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, index=True,
    )
