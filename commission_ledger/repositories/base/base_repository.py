"""
Base repository with standardized lookups, row locking and error handling.

Repositories never commit. The owning service decides where a unit of
work begins and ends, so every write here only flushes.
"""

from typing import Any, Dict, Generic, List, Optional, Type

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.sql import Select

from commission_ledger.core.exceptions import AlreadyExistsError, ResourceNotFoundError
from commission_ledger.core.logging import get_logger
from commission_ledger.models.base import ModelType
from commission_ledger.utils.pagination_utils import Page, PaginationParams

logger = get_logger(__name__)


class BaseRepository(Generic[ModelType]):
    """
    Generic repository over one mapped model.
    """

    def __init__(self, model: Type[ModelType], db: Session):
        """
        Initialize repository.

        Args:
            model: SQLAlchemy model class
            db: Database session
        """
        self.model = model
        self.db = db

    # ==================== Create Operations ====================

    def create(self, entity: ModelType) -> ModelType:
        """
        Add a new entity and flush it so generated keys are available.

        Raises:
            AlreadyExistsError: If a unique constraint rejects the row
        """
        try:
            self.db.add(entity)
            self.db.flush()
            return entity
        except IntegrityError as e:
            logger.warning(
                f"Integrity error creating {self.model.__name__}",
                extra={"error": str(e.orig)},
            )
            raise AlreadyExistsError(
                f"{self.model.__name__} violates a uniqueness rule",
                details={"error": str(e.orig)},
            ) from e

    # ==================== Read Operations ====================

    def get_by_id(self, entity_id: int) -> Optional[ModelType]:
        """Find entity by primary key."""
        return self.db.get(self.model, entity_id)

    def get_or_raise(self, entity_id: int) -> ModelType:
        """
        Find entity by primary key.

        Raises:
            ResourceNotFoundError: If no row exists
        """
        entity = self.get_by_id(entity_id)
        if entity is None:
            raise ResourceNotFoundError(self.model.__name__, entity_id)
        return entity

    def get_for_update(self, entity_id: int) -> Optional[ModelType]:
        """
        Load an entity under a row-level lock held until the transaction ends.

        ``populate_existing`` refreshes an instance already present in the
        identity map so the caller sees the committed, locked values.
        """
        return self._lock_one(select(self.model).where(self.model.id == entity_id))

    def get_for_update_or_raise(self, entity_id: int) -> ModelType:
        entity = self.get_for_update(entity_id)
        if entity is None:
            raise ResourceNotFoundError(self.model.__name__, entity_id)
        return entity

    def find_by_criteria(
        self,
        criteria: Dict[str, Any],
        order_by: Optional[Any] = None,
        limit: Optional[int] = None,
    ) -> List[ModelType]:
        """Find entities whose columns equal the given values."""
        stmt = select(self.model).filter_by(**criteria)
        if order_by is not None:
            stmt = stmt.order_by(order_by)
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.db.execute(stmt).scalars().all())

    def find_one_by_criteria(self, criteria: Dict[str, Any]) -> Optional[ModelType]:
        stmt = select(self.model).filter_by(**criteria).limit(1)
        return self.db.execute(stmt).scalar_one_or_none()

    def count(self, criteria: Optional[Dict[str, Any]] = None) -> int:
        stmt = select(func.count()).select_from(self.model)
        if criteria:
            stmt = stmt.filter_by(**criteria)
        return self.db.execute(stmt).scalar_one()

    def exists(self, criteria: Dict[str, Any]) -> bool:
        return self.count(criteria) > 0

    # ==================== Helpers ====================

    def paginate_query(self, stmt: Select, params: PaginationParams) -> Page[ModelType]:
        """Run a select for one page and count the full result set."""
        total = self.db.execute(
            select(func.count()).select_from(stmt.order_by(None).subquery())
        ).scalar_one()
        items = self.db.execute(
            stmt.offset(params.offset).limit(params.page_size)
        ).scalars().all()
        return Page(items=list(items), total=total, page=params.page, page_size=params.page_size)

    def _lock_one(self, stmt: Select) -> Optional[ModelType]:
        return self.db.execute(self._locked(stmt)).scalar_one_or_none()

    def _lock_all(self, stmt: Select) -> List[ModelType]:
        return list(self.db.execute(self._locked(stmt)).scalars().all())

    def _locked(self, stmt: Select) -> Select:
        """
        Add FOR UPDATE to a select.

        Pending changes are flushed first because ``populate_existing``
        overwrites in-memory state of instances already in the session.
        """
        self.db.flush()
        return stmt.with_for_update().execution_options(populate_existing=True)
