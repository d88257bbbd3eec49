"""Hooks the order subsystem calls on completion and refund."""

from commission_ledger.services.order.order_hooks import (
    CommissionOrderHook,
    CompositeOrderHook,
    OrderEventHandler,
    PointsOrderHook,
)

__all__ = [
    "CommissionOrderHook",
    "CompositeOrderHook",
    "OrderEventHandler",
    "PointsOrderHook",
]
