"""
Points Record Model.
"""

from typing import Optional

from sqlalchemy import Enum, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from commission_ledger.models.base.base_model import BaseModel
from commission_ledger.models.base.mixins import TimestampMixin
from commission_ledger.schemas.common.enums import PointsType

__all__ = ["PointsRecord"]


class PointsRecord(BaseModel, TimestampMixin):
    """Signed points movement for a user."""

    __tablename__ = "points_records"

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )

    type: Mapped[PointsType] = mapped_column(
        Enum(PointsType, native_enum=False, length=50),
        nullable=False,
    )

    points: Mapped[int] = mapped_column(Integer, nullable=False, comment="Signed points delta")

    balance_after: Mapped[int] = mapped_column(Integer, nullable=False)

    order_no: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)

    remark: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
