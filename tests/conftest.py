"""Shared fixtures: an in-memory database and a service container per test."""

from decimal import Decimal
from typing import Callable, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from commission_ledger.config.settings import Settings
from commission_ledger.db.base import Base
from commission_ledger.dependencies import ServiceContainer
from commission_ledger.models.distribution import Distributor
from commission_ledger.models.user import User
from commission_ledger.schemas.common.enums import OrderStatus, OrderType
from commission_ledger.schemas.order import OrderEvent

OPERATOR_ID = 9000


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(engine) -> Session:
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = factory()
    yield session
    session.close()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        DATABASE_URL="sqlite://",
        COMMISSION_DIRECT_RATE=Decimal("0.10"),
        COMMISSION_INDIRECT_RATE=Decimal("0.05"),
        COMMISSION_SETTLE_DELAY_DAYS=7,
        WITHDRAW_MIN_AMOUNT=Decimal("10.00"),
        WITHDRAW_FEE_RATE=Decimal("0.006"),
        WITHDRAW_MAX_PENDING=5,
        INVITE_BASE_URL="https://shop.test/invite",
    )


@pytest.fixture
def services(db_session: Session, test_settings: Settings) -> ServiceContainer:
    return ServiceContainer(db_session, test_settings)


@pytest.fixture
def make_user(db_session: Session) -> Callable[..., User]:
    def _make(referrer: Optional[User] = None, points: int = 0) -> User:
        user = User(
            nickname="user",
            referrer_id=referrer.id if referrer is not None else None,
            points=points,
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _make


@pytest.fixture
def make_distributor(services: ServiceContainer) -> Callable[..., Distributor]:
    """Apply and approve a distributor for ``user``."""

    def _make(user: User, invite_code: Optional[str] = None) -> Distributor:
        distributor = services.distributors.apply(user.id, invite_code).unwrap()
        return services.distributors.approve(distributor.id, OPERATOR_ID).unwrap()

    return _make


@pytest.fixture
def tree(make_user, make_distributor):
    """
    Three users in a referral chain: root -> member -> buyer.

    ``root`` and ``member`` are approved distributors; ``member`` sits
    under ``root``. ``buyer`` is a plain user referred by ``member``.
    """
    root_user = make_user()
    root = make_distributor(root_user)
    member_user = make_user(referrer=root_user)
    member = make_distributor(member_user)
    buyer = make_user(referrer=member_user)
    return {
        "root_user": root_user,
        "root": root,
        "member_user": member_user,
        "member": member,
        "buyer": buyer,
    }


@pytest.fixture
def make_order() -> Callable[..., OrderEvent]:
    def _make(
        order_id: int,
        user: User,
        amount: str = "100.00",
        status: OrderStatus = OrderStatus.COMPLETED,
        order_type: OrderType = OrderType.MALL,
    ) -> OrderEvent:
        return OrderEvent(
            id=order_id,
            order_no=f"ORD{order_id:06d}",
            user_id=user.id,
            order_type=order_type,
            status=status,
            actual_amount=Decimal(amount),
        )

    return _make
