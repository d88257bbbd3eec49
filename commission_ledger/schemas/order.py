"""
Order event schema.

The order subsystem is external; this is the narrow view of an order the
hooks receive.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from pydantic import Field

from commission_ledger.schemas.common.base import BaseSchema
from commission_ledger.schemas.common.enums import OrderStatus, OrderType

__all__ = ["OrderEvent"]


class OrderEvent(BaseSchema):
    """Order lifecycle event payload."""

    id: int = Field(..., description="Order id")
    order_no: str = Field(..., min_length=1)
    user_id: int = Field(..., description="Purchasing user")
    order_type: OrderType
    status: OrderStatus
    actual_amount: Decimal = Field(..., ge=0, description="Amount actually paid")
    remark: Optional[str] = None
