"""
Base service class providing common functionality for all services.
"""

from abc import ABC
from contextlib import contextmanager
from typing import Any, Callable, Dict, Generic, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from commission_ledger.core.exceptions import BaseAppException, ErrorCode
from commission_ledger.core.logging import get_logger
from commission_ledger.repositories.base.base_repository import BaseRepository
from commission_ledger.services.base.service_result import (
    ErrorSeverity,
    ServiceError,
    ServiceResult,
)

TRepo = TypeVar("TRepo", bound=BaseRepository)
T = TypeVar("T")


class BaseService(ABC, Generic[TRepo]):
    """
    Base service with common behaviors:
    - Shared logger and db session
    - Consistent error handling via ServiceResult
    - Unit-of-work management: one commit or one rollback per public call
    """

    def __init__(self, repository: TRepo, db_session: Session):
        """
        Initialize base service.

        Args:
            repository: Primary repository for data access
            db_session: SQLAlchemy database session
        """
        self.repository: TRepo = repository
        self.db: Session = db_session
        self._logger = get_logger(self.__class__.__name__)

    # -------------------------------------------------------------------------
    # Exception & Error Handling
    # -------------------------------------------------------------------------

    def _handle_exception(
        self,
        exception: Exception,
        operation: str,
        entity_ref: Optional[Any] = None,
        additional_context: Optional[Dict[str, Any]] = None,
    ) -> ServiceResult:
        """
        Convert exception to a ServiceResult failure with logging.

        Domain exceptions keep their own code and are logged at WARNING.
        Database errors become DATABASE_ERROR and anything else
        INTERNAL_ERROR; both are logged with the traceback.
        """
        context = {
            "operation": operation,
            "entity_ref": str(entity_ref) if entity_ref is not None else None,
            "exception_type": type(exception).__name__,
        }
        if additional_context:
            context.update(additional_context)

        if isinstance(exception, BaseAppException):
            self._logger.warning(f"{operation} rejected: {exception.message}", extra=context)
            return ServiceResult.failure(ServiceError.from_exception(exception))

        self._logger.error(
            f"Error during {operation}: {exception}",
            exc_info=True,
            extra=context,
        )

        return ServiceResult.failure(
            ServiceError(
                code=self._map_exception_to_error_code(exception),
                message=f"Failed to {operation}",
                details={
                    "error": str(exception),
                    "entity_ref": context["entity_ref"],
                    "exception_type": context["exception_type"],
                },
                severity=ErrorSeverity.CRITICAL,
            )
        )

    def _map_exception_to_error_code(self, exception: Exception) -> ErrorCode:
        """Map exception types to appropriate error codes."""
        if isinstance(exception, BaseAppException):
            return exception.error_code
        if isinstance(exception, SQLAlchemyError):
            return ErrorCode.DATABASE_ERROR
        if isinstance(exception, ValueError):
            return ErrorCode.VALIDATION_ERROR
        return ErrorCode.INTERNAL_ERROR

    # -------------------------------------------------------------------------
    # Transaction Management
    # -------------------------------------------------------------------------

    @contextmanager
    def transaction(self):
        """
        Context manager for one unit of work: commit on success, rollback
        on any exception.

        Example:
            with self.transaction():
                self.recharge_tx(user_id, amount)
        """
        try:
            yield self.db
            self._commit()
        except Exception:
            self._rollback()
            raise

    def _commit(self) -> None:
        """Commit the current transaction with error handling."""
        try:
            self.db.commit()
            self._logger.debug("Transaction committed successfully")
        except Exception as e:
            self._logger.error(f"Commit failed: {e}", exc_info=True)
            self._rollback()
            raise

    def _rollback(self) -> None:
        """Rollback the current transaction, logging rollback errors."""
        try:
            self.db.rollback()
            self._logger.debug("Transaction rolled back")
        except SQLAlchemyError as e:
            self._logger.warning(f"Rollback failed: {e}")

    def _run_in_transaction(
        self,
        operation: str,
        func: Callable[[], T],
        entity_ref: Optional[Any] = None,
        message: Optional[str] = None,
    ) -> ServiceResult[T]:
        """
        Run ``func`` as one unit of work and wrap the outcome.

        Any exception rolls the whole unit back before it is converted to
        a failed result, so callers never observe partial state.
        """
        try:
            with self.transaction():
                data = func()
            return ServiceResult.success(data, message=message)
        except Exception as e:
            return self._handle_exception(e, operation, entity_ref)

    def _run_query(
        self,
        operation: str,
        func: Callable[[], T],
        entity_ref: Optional[Any] = None,
    ) -> ServiceResult[T]:
        """Run a read-only operation and wrap the outcome."""
        try:
            return ServiceResult.success(func())
        except Exception as e:
            return self._handle_exception(e, operation, entity_ref)

    # -------------------------------------------------------------------------
    # Utility Methods
    # -------------------------------------------------------------------------

    def _log_operation(
        self,
        operation: str,
        entity_ref: Optional[Any] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Log a completed state change with standardized format."""
        context = {"entity_ref": str(entity_ref) if entity_ref is not None else None}
        if extra:
            context.update(extra)

        self._logger.info(f"Operation: {operation}", extra=context)
