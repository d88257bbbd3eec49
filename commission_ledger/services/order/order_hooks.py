"""
Order lifecycle hooks.

The order subsystem calls these after an order completes or is refunded.
Each hook reports its outcome as a ServiceResult; failures are returned
to the caller and never swallowed.
"""

from abc import ABC, abstractmethod
from typing import Any, List, Sequence

from commission_ledger.core.logging import get_logger
from commission_ledger.schemas.common.enums import OrderStatus, OrderType
from commission_ledger.schemas.order import OrderEvent
from commission_ledger.services.base import ErrorCode, ErrorSeverity, ServiceError, ServiceResult
from commission_ledger.services.distribution.commission_service import CommissionService
from commission_ledger.services.ledger.points_service import PointsService

logger = get_logger(__name__)


class OrderEventHandler(ABC):
    """Base class for order lifecycle hooks."""

    name: str = "order_hook"

    @abstractmethod
    def on_order_completed(self, order: OrderEvent) -> ServiceResult[Any]:
        """Handle an order that reached the completed state."""

    @abstractmethod
    def on_order_refunded(self, order: OrderEvent) -> ServiceResult[Any]:
        """Handle an order that was refunded."""


class CommissionOrderHook(OrderEventHandler):
    """Creates commissions on completion and cancels them on refund."""

    name = "commission"

    def __init__(self, commission_service: CommissionService):
        self.commission_service = commission_service

    def on_order_completed(self, order: OrderEvent) -> ServiceResult[Any]:
        return self.commission_service.on_order_completed(order)

    def on_order_refunded(self, order: OrderEvent) -> ServiceResult[Any]:
        return self.commission_service.cancel_by_order_id(order.id)


class PointsOrderHook(OrderEventHandler):
    """Grants consume points on completion and takes them back on refund."""

    name = "points"

    def __init__(self, points_service: PointsService):
        self.points_service = points_service

    def on_order_completed(self, order: OrderEvent) -> ServiceResult[Any]:
        if order.status != OrderStatus.COMPLETED:
            return ServiceResult.success(0, message="Order not completed, no points")
        if order.order_type == OrderType.MEMBER_PACKAGE:
            return ServiceResult.success(0, message="Member packages earn no points")
        return self.points_service.add_consume_points(
            order.user_id, order.actual_amount, order.order_no
        )

    def on_order_refunded(self, order: OrderEvent) -> ServiceResult[Any]:
        if order.order_type == OrderType.MEMBER_PACKAGE:
            return ServiceResult.success(0, message="Member packages earn no points")
        return self.points_service.deduct_refund_points(
            order.user_id, order.actual_amount, order.order_no
        )


class CompositeOrderHook(OrderEventHandler):
    """
    Runs several hooks in registration order.

    Every hook runs even when an earlier one fails. The combined result
    succeeds only if all of them did; otherwise its details list each
    failing hook with its error.
    """

    name = "composite"

    def __init__(self, handlers: Sequence[OrderEventHandler] = ()):
        self._handlers: List[OrderEventHandler] = list(handlers)

    def register(self, handler: OrderEventHandler) -> None:
        self._handlers.append(handler)

    @property
    def handlers(self) -> List[OrderEventHandler]:
        return list(self._handlers)

    def on_order_completed(self, order: OrderEvent) -> ServiceResult[Any]:
        return self._dispatch(order, "on_order_completed")

    def on_order_refunded(self, order: OrderEvent) -> ServiceResult[Any]:
        return self._dispatch(order, "on_order_refunded")

    def _dispatch(self, order: OrderEvent, method: str) -> ServiceResult[Any]:
        results = {}
        failures = []
        for handler in self._handlers:
            result = getattr(handler, method)(order)
            results[handler.name] = result.data
            if not result:
                failures.append(
                    {
                        "hook": handler.name,
                        "error": result.error.to_dict() if result.error else None,
                    }
                )

        if not failures:
            return ServiceResult.success(results)

        logger.error(
            "Order hooks failed",
            extra={"order_id": order.id, "event": method, "failed_hooks": [f["hook"] for f in failures]},
        )
        return ServiceResult.failure(
            ServiceError(
                code=self._aggregate_code(failures),
                message=f"{len(failures)} order hook(s) failed for order {order.order_no}",
                severity=ErrorSeverity.ERROR,
                details={"order_id": order.id, "failures": failures},
            ),
            metadata={"results": results},
        )

    @staticmethod
    def _aggregate_code(failures: List[dict]) -> ErrorCode:
        codes = {f["error"]["code"] for f in failures if f["error"]}
        if len(codes) == 1:
            return ErrorCode(codes.pop())
        return ErrorCode.INTERNAL_ERROR
