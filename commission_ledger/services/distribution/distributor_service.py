"""
Distributor registry service.

Manages applications to the referral program and the two-level tree:
pending -> approved | rejected, with team counters maintained on
approval only.
"""

import secrets
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from commission_ledger.config.settings import Settings, get_settings
from commission_ledger.core.exceptions import (
    AlreadyExistsError,
    InvalidStateTransitionError,
    ResourceNotFoundError,
    ValidationException,
)
from commission_ledger.models.distribution import Distributor
from commission_ledger.repositories.distribution import CommissionRepository, DistributorRepository
from commission_ledger.repositories.user import UserRepository
from commission_ledger.schemas.common.enums import DistributorStatus, TeamLevel
from commission_ledger.schemas.distribution import (
    DistributorDashboard,
    DistributorResponse,
    TeamStats,
)
from commission_ledger.services.base import BaseService, ServiceResult
from commission_ledger.utils.money import ZERO
from commission_ledger.utils.pagination_utils import Page, PaginationParams

INVITE_CODE_BYTES = 4
INVITE_CODE_ATTEMPTS = 10


class DistributorService(BaseService[DistributorRepository]):
    """
    Referral tree membership.
    """

    def __init__(
        self,
        distributor_repository: DistributorRepository,
        user_repository: UserRepository,
        commission_repository: CommissionRepository,
        db_session: Session,
        settings: Optional[Settings] = None,
    ):
        super().__init__(distributor_repository, db_session)
        self.user_repository = user_repository
        self.commission_repository = commission_repository
        self.settings = settings or get_settings()

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def apply(self, user_id: int, invite_code: Optional[str] = None) -> ServiceResult[Distributor]:
        """
        Create a pending distributor for ``user_id``.

        The parent comes from ``invite_code`` when given, otherwise from
        the user's referrer if that referrer is an approved distributor.
        """
        return self._run_in_transaction(
            "apply for distributor",
            lambda: self._apply(user_id, invite_code),
            entity_ref=user_id,
        )

    def approve(self, distributor_id: int, operator_id: int) -> ServiceResult[Distributor]:
        return self._run_in_transaction(
            "approve distributor",
            lambda: self._approve(distributor_id, operator_id),
            entity_ref=distributor_id,
        )

    def reject(
        self, distributor_id: int, operator_id: int, reason: Optional[str] = None
    ) -> ServiceResult[Distributor]:
        return self._run_in_transaction(
            "reject distributor",
            lambda: self._reject(distributor_id, operator_id, reason),
            entity_ref=distributor_id,
        )

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #

    def get_by_id(self, distributor_id: int) -> ServiceResult[Distributor]:
        return self._run_query(
            "get distributor",
            lambda: self.repository.get_or_raise(distributor_id),
            entity_ref=distributor_id,
        )

    def get_by_user_id(self, user_id: int) -> ServiceResult[Distributor]:
        def _load() -> Distributor:
            distributor = self.repository.get_by_user_id(user_id)
            if distributor is None:
                raise ResourceNotFoundError("Distributor", user_id, message="User is not a distributor")
            return distributor

        return self._run_query("get distributor by user", _load, entity_ref=user_id)

    def get_by_invite_code(self, invite_code: str) -> ServiceResult[Distributor]:
        def _load() -> Distributor:
            distributor = self.repository.get_by_invite_code(invite_code.strip().upper())
            if distributor is None:
                raise ResourceNotFoundError("Distributor", invite_code, message="Invite code not found")
            return distributor

        return self._run_query("get distributor by invite code", _load, entity_ref=invite_code)

    def validate_invite_code(self, invite_code: str) -> ServiceResult[bool]:
        """Whether the code belongs to an approved distributor."""
        return self._run_query(
            "validate invite code",
            lambda: self._resolve_inviter(invite_code) is not None,
            entity_ref=invite_code,
        )

    def list_pending(self, page: int = 1, page_size: int = 20) -> ServiceResult[Page[Distributor]]:
        return self._run_query(
            "list pending distributors",
            lambda: self.repository.list_by_status(
                DistributorStatus.PENDING, PaginationParams(page=page, page_size=page_size)
            ),
        )

    def get_team_members(
        self,
        distributor_id: int,
        level: TeamLevel = TeamLevel.DIRECT,
        page: int = 1,
        page_size: int = 20,
    ) -> ServiceResult[Page[Distributor]]:
        params = PaginationParams(page=page, page_size=page_size)

        def _load() -> Page[Distributor]:
            self.repository.get_or_raise(distributor_id)
            if level == TeamLevel.DIRECT:
                return self.repository.list_direct_members(distributor_id, params)
            return self.repository.list_indirect_members(distributor_id, params)

        return self._run_query("list team members", _load, entity_ref=distributor_id)

    def get_team_stats(self, distributor_id: int) -> ServiceResult[TeamStats]:
        return self._run_query(
            "get team stats",
            lambda: self._team_stats(self.repository.get_or_raise(distributor_id)),
            entity_ref=distributor_id,
        )

    def get_dashboard(self, user_id: int) -> ServiceResult[DistributorDashboard]:
        """Commission buckets, team size and recent earnings for a user's distributor."""

        def _load() -> DistributorDashboard:
            distributor = self.repository.get_by_user_id(user_id)
            if distributor is None:
                raise ResourceNotFoundError("Distributor", user_id, message="User is not a distributor")

            now = datetime.now(timezone.utc)
            day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
            month_start = day_start.replace(day=1)

            return DistributorDashboard(
                distributor=DistributorResponse.model_validate(distributor),
                team=self._team_stats(distributor),
                today_commission=self.commission_repository.sum_since(distributor.id, day_start),
                month_commission=self.commission_repository.sum_since(distributor.id, month_start),
                invite_link=self.build_invite_link(distributor.invite_code),
            )

        return self._run_query("get distributor dashboard", _load, entity_ref=user_id)

    def build_invite_link(self, invite_code: str) -> str:
        return f"{self.settings.INVITE_BASE_URL.rstrip('/')}?code={invite_code}"

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    def _apply(self, user_id: int, invite_code: Optional[str]) -> Distributor:
        user = self.user_repository.get_by_id(user_id)
        if user is None:
            raise ResourceNotFoundError("User", user_id)

        if self.repository.get_by_user_id(user_id) is not None:
            raise AlreadyExistsError("User is already a distributor", details={"user_id": user_id})

        parent: Optional[Distributor] = None
        if invite_code:
            parent = self._resolve_inviter(invite_code)
            if parent is None:
                raise ValidationException("Invalid invite code", field="invite_code")
            if parent.user_id == user_id:
                raise ValidationException("Cannot use your own invite code", field="invite_code")
        elif user.referrer_id is not None:
            referrer = self.repository.get_by_user_id(user.referrer_id)
            if referrer is not None and referrer.is_approved:
                parent = referrer

        distributor = self.repository.create(
            Distributor(
                user_id=user_id,
                parent_id=parent.id if parent else None,
                invite_code=self._generate_invite_code(),
                level=2 if parent else 1,
                status=DistributorStatus.PENDING,
                total_commission=ZERO,
                available_commission=ZERO,
                frozen_commission=ZERO,
                withdrawn_commission=ZERO,
                team_count=0,
                direct_count=0,
            )
        )

        self._logger.info(
            "Distributor application submitted",
            extra={
                "distributor_id": distributor.id,
                "user_id": user_id,
                "parent_id": distributor.parent_id,
            },
        )
        return distributor

    def _approve(self, distributor_id: int, operator_id: int) -> Distributor:
        distributor = self.repository.get_for_update_or_raise(distributor_id)
        self._require_pending(distributor)

        distributor.status = DistributorStatus.APPROVED
        distributor.approved_at = datetime.now(timezone.utc)
        distributor.reviewed_by = operator_id

        if distributor.parent_id is not None:
            parent = self.repository.get_for_update(distributor.parent_id)
            if parent is not None:
                parent.direct_count += 1
                parent.team_count += 1
                if parent.parent_id is not None:
                    grandparent = self.repository.get_for_update(parent.parent_id)
                    if grandparent is not None:
                        grandparent.team_count += 1

        self.db.flush()
        self._log_operation(
            "distributor approved",
            distributor_id,
            extra={"operator_id": operator_id, "parent_id": distributor.parent_id},
        )
        return distributor

    def _reject(self, distributor_id: int, operator_id: int, reason: Optional[str]) -> Distributor:
        distributor = self.repository.get_for_update_or_raise(distributor_id)
        self._require_pending(distributor)

        distributor.status = DistributorStatus.REJECTED
        distributor.reviewed_by = operator_id
        distributor.reject_reason = reason

        self.db.flush()
        self._log_operation(
            "distributor rejected",
            distributor_id,
            extra={"operator_id": operator_id, "reason": reason},
        )
        return distributor

    @staticmethod
    def _require_pending(distributor: Distributor) -> None:
        if distributor.status != DistributorStatus.PENDING:
            raise InvalidStateTransitionError(
                "Distributor",
                distributor.id,
                distributor.status.value,
                DistributorStatus.PENDING.value,
                message="Distributor application already processed",
            )

    def _resolve_inviter(self, invite_code: str) -> Optional[Distributor]:
        code = (invite_code or "").strip().upper()
        if not code:
            return None
        inviter = self.repository.get_by_invite_code(code)
        if inviter is None or not inviter.is_approved:
            return None
        return inviter

    def _generate_invite_code(self) -> str:
        for _ in range(INVITE_CODE_ATTEMPTS):
            code = secrets.token_hex(INVITE_CODE_BYTES).upper()
            if not self.repository.invite_code_exists(code):
                return code
        raise AlreadyExistsError("Could not allocate a unique invite code")

    @staticmethod
    def _team_stats(distributor: Distributor) -> TeamStats:
        return TeamStats(
            direct_count=distributor.direct_count,
            indirect_count=distributor.team_count - distributor.direct_count,
            total_count=distributor.team_count,
        )
