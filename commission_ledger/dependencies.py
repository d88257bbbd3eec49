"""
Service wiring.

A ServiceContainer builds every repository and service over one
SQLAlchemy session. Services built from the same container share that
session, so their ``*_tx`` steps can be composed in one transaction.
"""

from typing import Any, Callable, Dict, Generator, Optional, TypeVar

from sqlalchemy.orm import Session

from commission_ledger.config.settings import Settings, get_settings
from commission_ledger.core.logging import get_logger
from commission_ledger.db.session import SessionLocal
from commission_ledger.repositories.distribution import (
    CommissionRepository,
    CommissionSettingRepository,
    DistributorRepository,
    WithdrawalRepository,
)
from commission_ledger.repositories.user import UserRepository
from commission_ledger.repositories.wallet import (
    PointsRecordRepository,
    WalletRepository,
    WalletTransactionRepository,
)
from commission_ledger.services.distribution import (
    CommissionService,
    CommissionSettingService,
    DistributorService,
    WithdrawService,
)
from commission_ledger.services.ledger import PointsService, WalletService
from commission_ledger.services.order import (
    CommissionOrderHook,
    CompositeOrderHook,
    PointsOrderHook,
)

T = TypeVar("T")


class ServiceContainer:
    """
    Builds services with their repositories on a shared session.

    Instances are created on first access and reused afterwards.
    """

    def __init__(self, db_session: Session, settings: Optional[Settings] = None):
        self.db = db_session
        self.settings = settings or get_settings()
        self._logger = get_logger(self.__class__.__name__)
        self._cache: Dict[str, Any] = {}

    # -------------------------------------------------------------------------
    # Services
    # -------------------------------------------------------------------------

    @property
    def wallet(self) -> WalletService:
        return self._get(
            "wallet",
            lambda: WalletService(
                WalletRepository(self.db), WalletTransactionRepository(self.db), self.db
            ),
        )

    @property
    def points(self) -> PointsService:
        return self._get(
            "points",
            lambda: PointsService(UserRepository(self.db), PointsRecordRepository(self.db), self.db),
        )

    @property
    def commission_settings(self) -> CommissionSettingService:
        return self._get(
            "commission_settings",
            lambda: CommissionSettingService(
                CommissionSettingRepository(self.db), self.db, self.settings
            ),
        )

    @property
    def distributors(self) -> DistributorService:
        return self._get(
            "distributors",
            lambda: DistributorService(
                DistributorRepository(self.db),
                UserRepository(self.db),
                CommissionRepository(self.db),
                self.db,
                self.settings,
            ),
        )

    @property
    def commissions(self) -> CommissionService:
        return self._get(
            "commissions",
            lambda: CommissionService(
                CommissionRepository(self.db),
                DistributorRepository(self.db),
                UserRepository(self.db),
                self.commission_settings,
                self.db,
            ),
        )

    @property
    def withdrawals(self) -> WithdrawService:
        return self._get(
            "withdrawals",
            lambda: WithdrawService(
                WithdrawalRepository(self.db),
                DistributorRepository(self.db),
                self.wallet,
                self.commission_settings,
                self.db,
            ),
        )

    @property
    def order_hooks(self) -> CompositeOrderHook:
        """Commission and points hooks, in that order."""
        return self._get(
            "order_hooks",
            lambda: CompositeOrderHook(
                [CommissionOrderHook(self.commissions), PointsOrderHook(self.points)]
            ),
        )

    # -------------------------------------------------------------------------
    # Utility Methods
    # -------------------------------------------------------------------------

    def clear_cache(self) -> None:
        self._cache.clear()

    def _get(self, key: str, factory: Callable[[], T]) -> T:
        if key not in self._cache:
            self._cache[key] = factory()
            self._logger.debug(f"Created service: {key}")
        return self._cache[key]


def get_services() -> Generator[ServiceContainer, None, None]:
    """
    Yield a container on a fresh session and close the session afterwards.
    """
    db = SessionLocal()
    try:
        yield ServiceContainer(db)
    finally:
        db.close()
