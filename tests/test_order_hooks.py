"""Tests for the order completion and refund hooks."""

from decimal import Decimal

from commission_ledger.core.exceptions import ErrorCode
from commission_ledger.models.wallet import PointsRecord
from commission_ledger.schemas.common.enums import (
    CommissionStatus,
    OrderStatus,
    OrderType,
    PointsType,
    WithdrawalType,
    WithdrawTo,
)
from commission_ledger.services.base import ServiceResult
from commission_ledger.services.order import CompositeOrderHook, OrderEventHandler


class _FailingHook(OrderEventHandler):
    name = "failing"

    def on_order_completed(self, order):
        return ServiceResult.validation_failure("bad order")

    def on_order_refunded(self, order):
        return ServiceResult.validation_failure("bad refund")


class _RecordingHook(OrderEventHandler):
    name = "recording"

    def __init__(self):
        self.seen = []

    def on_order_completed(self, order):
        self.seen.append(("completed", order.id))
        return ServiceResult.success(True)

    def on_order_refunded(self, order):
        self.seen.append(("refunded", order.id))
        return ServiceResult.success(True)


def _points(services, user):
    return services.points.repository.get_by_id(user.id).points


class TestCompletion:
    def test_completed_order_creates_commissions_and_points(self, services, tree, make_order):
        result = services.order_hooks.on_order_completed(make_order(1, tree["buyer"], "100.00"))

        assert result.is_success
        assert len(result.data["commission"]) == 2
        assert result.data["points"] == 100
        assert _points(services, tree["buyer"]) == 100

    def test_points_use_whole_units(self, services, tree, make_order, db_session):
        services.order_hooks.on_order_completed(make_order(1, tree["buyer"], "59.99"))

        record = db_session.query(PointsRecord).filter_by(user_id=tree["buyer"].id).one()
        assert record.points == 59
        assert record.type == PointsType.CONSUME
        assert record.order_no == "ORD000001"

    def test_member_package_earns_commission_but_no_points(self, services, tree, make_order):
        order = make_order(1, tree["buyer"], order_type=OrderType.MEMBER_PACKAGE)

        result = services.order_hooks.on_order_completed(order)

        assert len(result.data["commission"]) == 2
        assert _points(services, tree["buyer"]) == 0

    def test_non_completed_order_is_ignored(self, services, tree, make_order):
        result = services.order_hooks.on_order_completed(
            make_order(1, tree["buyer"], status=OrderStatus.PAID)
        )

        assert result.is_success
        assert result.data == {"commission": [], "points": 0}

    def test_duplicate_completion_reports_failure(self, services, tree, make_order):
        order = make_order(1, tree["buyer"])
        services.order_hooks.on_order_completed(order)

        result = services.order_hooks.on_order_completed(order)

        assert not result.is_success
        assert result.error.details["failures"][0]["hook"] == "commission"
        assert result.error_code == ErrorCode.ALREADY_EXISTS


class TestRefund:
    def test_refund_cancels_commissions_and_takes_back_points(self, services, tree, make_order):
        order = make_order(1, tree["buyer"], "100.00")
        services.order_hooks.on_order_completed(order)

        result = services.order_hooks.on_order_refunded(order.model_copy(update={"status": OrderStatus.REFUNDED}))

        assert result.is_success
        assert all(
            c.status == CommissionStatus.CANCELLED
            for c in services.commissions.get_by_order_id(1).unwrap()
        )
        assert _points(services, tree["buyer"]) == 0

    def test_refund_failure_is_propagated(self, services, tree, make_order):
        order = make_order(1, tree["buyer"], "100.00")
        services.order_hooks.on_order_completed(order)
        for commission in services.commissions.get_by_order_id(1).unwrap():
            services.commissions.settle(commission.id)
        services.withdrawals.apply(
            tree["member_user"].id, WithdrawalType.COMMISSION, "10.00", WithdrawTo.BANK
        ).unwrap()

        result = services.order_hooks.on_order_refunded(order)

        assert not result.is_success
        assert result.error_code == ErrorCode.RECONCILIATION_REQUIRED
        assert [f["hook"] for f in result.error.details["failures"]] == ["commission"]
        # the points hook still ran
        assert _points(services, tree["buyer"]) == 0

    def test_refund_after_points_spent(self, services, tree, make_order):
        order = make_order(1, tree["buyer"], "100.00")
        services.order_hooks.on_order_completed(order)
        services.points.deduct_points(tree["buyer"].id, 60, PointsType.ADMIN).unwrap()

        result = services.order_hooks.on_order_refunded(order)

        assert result.error_code == ErrorCode.POINTS_INSUFFICIENT
        assert _points(services, tree["buyer"]) == 40


class TestComposite:
    def test_all_hooks_run_even_after_failure(self, make_user, make_order):
        recorder = _RecordingHook()
        hook = CompositeOrderHook([_FailingHook(), recorder])

        result = hook.on_order_completed(make_order(5, make_user()))

        assert not result.is_success
        assert result.error_code == ErrorCode.VALIDATION_ERROR
        assert recorder.seen == [("completed", 5)]
        assert result.metadata["results"]["recording"] is True

    def test_mixed_failures_use_generic_code(self, make_user, make_order):
        class _OtherFailure(_FailingHook):
            name = "other"

            def on_order_refunded(self, order):
                return ServiceResult.not_found("Order", order.id)

        hook = CompositeOrderHook()
        hook.register(_FailingHook())
        hook.register(_OtherFailure())

        result = hook.on_order_refunded(make_order(6, make_user()))

        assert result.error_code == ErrorCode.INTERNAL_ERROR
        assert len(result.error.details["failures"]) == 2
        assert [h.name for h in hook.handlers] == ["failing", "other"]


class TestPointsService:
    def test_manual_points_adjustments(self, services, make_user):
        user = make_user()

        services.points.add_points(user.id, 30, PointsType.ACTIVITY, remark="sign-in").unwrap()
        result = services.points.deduct_points(user.id, 31, PointsType.ADMIN)

        assert result.error_code == ErrorCode.POINTS_INSUFFICIENT
        assert _points(services, user) == 30
        records = services.points.get_records(user.id).unwrap()
        assert records.total == 1

    def test_calculate_points_by_amount(self, services):
        assert services.points.calculate_points_by_amount(Decimal("99.99")) == 99
        assert services.points.calculate_points_by_amount("0.50") == 0
