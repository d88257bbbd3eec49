"""
Custom Exceptions for the Commission Ledger

Domain exceptions raised by repositories and the transaction-scoped
service operations. Public service methods translate them into
``ServiceResult`` failures carrying the same ``ErrorCode``.
"""

from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorCode(str, Enum):
    """Standard error codes for the application"""
    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    ALREADY_EXISTS = "ALREADY_EXISTS"

    # Funds
    BALANCE_INSUFFICIENT = "BALANCE_INSUFFICIENT"
    FROZEN_BALANCE_INSUFFICIENT = "FROZEN_BALANCE_INSUFFICIENT"
    POINTS_INSUFFICIENT = "POINTS_INSUFFICIENT"

    # Workflow
    INVALID_STATE_TRANSITION = "INVALID_STATE_TRANSITION"
    RECONCILIATION_REQUIRED = "RECONCILIATION_REQUIRED"

    # Infrastructure
    DATABASE_ERROR = "DATABASE_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"


class BaseAppException(Exception):
    """
    Base exception class for all application exceptions.

    Provides consistent error handling across the application with
    structured error information.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"{self.error_code.value}: {self.message}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message='{self.message}', error_code='{self.error_code.value}')"


# ========================================
# General Exceptions
# ========================================

class ValidationException(BaseAppException):
    """Exception raised when input validation fails"""

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        field_errors: Optional[Dict[str, List[str]]] = None,
    ):
        details: Dict[str, Any] = {}
        if field:
            details["field"] = field
        if field_errors:
            details["field_errors"] = field_errors
        self.field = field
        super().__init__(message, ErrorCode.VALIDATION_ERROR, details)


class ResourceNotFoundError(BaseAppException):
    """Exception raised when a requested resource is not found"""

    def __init__(
        self,
        resource_type: str = "Resource",
        resource_id: Optional[Any] = None,
        message: Optional[str] = None
    ):
        if not message:
            message = f"{resource_type} not found"
            if resource_id is not None:
                message += f" (ID: {resource_id})"

        details = {
            "resource_type": resource_type,
            "resource_id": resource_id
        }
        super().__init__(message, ErrorCode.NOT_FOUND, details)


class AlreadyExistsError(BaseAppException):
    """Exception raised when a unique business record already exists"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCode.ALREADY_EXISTS, details)


# ========================================
# Funds Exceptions
# ========================================

class InsufficientFundsError(BaseAppException):
    """Base class for balance precondition failures"""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode,
        available: Optional[Decimal] = None,
        requested: Optional[Decimal] = None,
    ):
        details = {}
        if available is not None:
            details["available"] = str(available)
        if requested is not None:
            details["requested"] = str(requested)
        super().__init__(message, error_code, details)


class BalanceInsufficientError(InsufficientFundsError):
    """Spendable balance or available commission is below the requested amount"""

    def __init__(
        self,
        message: str = "Balance insufficient",
        available: Optional[Decimal] = None,
        requested: Optional[Decimal] = None,
    ):
        super().__init__(message, ErrorCode.BALANCE_INSUFFICIENT, available, requested)


class FrozenBalanceInsufficientError(InsufficientFundsError):
    """Held funds are below the amount being released or deducted"""

    def __init__(
        self,
        message: str = "Frozen balance insufficient",
        available: Optional[Decimal] = None,
        requested: Optional[Decimal] = None,
    ):
        super().__init__(message, ErrorCode.FROZEN_BALANCE_INSUFFICIENT, available, requested)


class PointsInsufficientError(BaseAppException):
    """User does not hold enough points for the deduction"""

    def __init__(self, available: int, requested: int):
        super().__init__(
            "Points insufficient",
            ErrorCode.POINTS_INSUFFICIENT,
            {"available": available, "requested": requested},
        )


# ========================================
# Workflow Exceptions
# ========================================

class InvalidStateTransitionError(BaseAppException):
    """Exception raised when an entity is not in the state a transition requires"""

    def __init__(
        self,
        entity: str,
        entity_id: Any,
        current_status: str,
        expected_status: Optional[str] = None,
        message: Optional[str] = None,
    ):
        if not message:
            message = f"{entity} {entity_id} is {current_status}"
            if expected_status:
                message += f", expected {expected_status}"
        super().__init__(
            message,
            ErrorCode.INVALID_STATE_TRANSITION,
            {
                "entity": entity,
                "entity_id": entity_id,
                "current_status": current_status,
                "expected_status": expected_status,
            },
        )
        self.current_status = current_status


class ReconciliationError(BaseAppException):
    """
    A reversal cannot be applied without driving a balance negative.

    Raised when a settled commission is cancelled after the funds have
    already left the available bucket. The operation is rolled back and
    the shortfall is reported for manual reconciliation.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCode.RECONCILIATION_REQUIRED, details)


# ========================================
# Configuration Exceptions
# ========================================

class InvalidConfigurationError(BaseAppException):
    """Exception raised when configuration values are out of range"""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(
            message,
            ErrorCode.CONFIGURATION_ERROR,
            {"field": field} if field else None,
        )
