"""
Error taxonomy for the platform core.

Every error raised by domain methods, repositories and services is an
AppException carrying a kind. The kind is the only signal the boundary uses
to pick a response; messages are advisory.

Usage:
    from shared.utils.exceptions import NotFoundError, ValidationError

    raise NotFoundError("Order", order_id)
    raise ValidationError("quantity must be positive", field="quantity")
    raise InvalidTransitionError("Order", "PAID", "COMPLETED")
"""

from enum import Enum
from typing import Any, NoReturn, TypeVar

from fastapi import HTTPException, status

from shared.config.logging import get_logger

logger = get_logger(__name__)


class ErrorKind(str, Enum):
    """Kinds a boundary handler switches over."""

    VALIDATION = "validation"
    NOT_FOUND = "notFound"
    BUSINESS = "business"
    CONFLICT = "conflict"
    UNAUTHORIZED = "unauthorized"
    INTERNAL = "internal"


class ErrorCode:
    """Machine-readable codes for business and auth errors."""

    VALIDATION_FAILED = "VALIDATION_FAILED"
    NOT_FOUND = "NOT_FOUND"
    INVALID_STATUS_TRANSITION = "INVALID_STATUS_TRANSITION"
    INVALID_ORDER_TYPE = "INVALID_ORDER_TYPE"
    ORDER_NOT_CANCELLABLE = "ORDER_NOT_CANCELLABLE"
    ITEM_NOT_FOUND = "ITEM_NOT_FOUND"
    CATEGORY_NOT_EMPTY = "CATEGORY_NOT_EMPTY"
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
    DUPLICATE_ENTITY = "DUPLICATE_ENTITY"
    TABLE_ALREADY_BOOKED = "TABLE_ALREADY_BOOKED"
    CONCURRENT_MODIFICATION = "CONCURRENT_MODIFICATION"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    ACCOUNT_DISABLED = "ACCOUNT_DISABLED"
    INVALID_TOKEN = "INVALID_TOKEN"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    SESSION_INVALID = "SESSION_INVALID"
    FORBIDDEN = "FORBIDDEN"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"


HTTP_STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.BUSINESS: status.HTTP_409_CONFLICT,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

GENERIC_INTERNAL_DETAIL = "Internal server error"


class AppException(Exception):
    """
    Base exception with automatic logging.

    Attributes:
        kind: ErrorKind used by the boundary mapping.
        code: Machine-readable code (ErrorCode).
        detail: Human-readable message.
        op: Operation that failed, filled in as the error crosses layers.
        context: Structured data for logs.
    """

    kind: ErrorKind = ErrorKind.INTERNAL
    default_code: str = ErrorCode.INTERNAL_ERROR
    log_level: str = "warning"

    def __init__(
        self,
        detail: str,
        code: str | None = None,
        op: str | None = None,
        **context: Any,
    ):
        self.detail = detail
        self.code = code or self.default_code
        self.op = op
        self.context = context

        log_fn = getattr(logger, self.log_level, logger.warning)
        log_fn(detail, kind=self.kind.value, code=self.code, op=op, **context)

        super().__init__(detail)

    @property
    def http_status(self) -> int:
        return HTTP_STATUS_BY_KIND[self.kind]

    def __str__(self) -> str:
        if self.op:
            return f"{self.op}: {self.detail}"
        return self.detail


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(AppException):
    """
    Input failed a field-level rule (empty, negative, malformed).

    Usage:
        raise ValidationError("quantity must be positive", field="quantity")
    """

    kind = ErrorKind.VALIDATION
    default_code = ErrorCode.VALIDATION_FAILED

    def __init__(self, detail: str, field: str | None = None, **context: Any):
        self.field = field
        super().__init__(detail, field=field, **context)


# =============================================================================
# Not Found Errors
# =============================================================================


class NotFoundError(AppException):
    """
    Aggregate or child entity absent.

    Usage:
        raise NotFoundError("Order", order_id)
    """

    kind = ErrorKind.NOT_FOUND
    default_code = ErrorCode.NOT_FOUND

    def __init__(
        self,
        entity: str,
        entity_id: str | None = None,
        code: str | None = None,
        **context: Any,
    ):
        self.entity = entity
        self.entity_id = entity_id
        if entity_id is not None:
            detail = f"{entity} with ID {entity_id} not found"
        else:
            detail = f"{entity} not found"
        super().__init__(detail, code=code, entity=entity, entity_id=entity_id, **context)


class ItemNotFoundError(NotFoundError):
    """A child line of an aggregate does not exist."""

    def __init__(self, entity: str, item_id: str, **context: Any):
        super().__init__(entity, item_id, code=ErrorCode.ITEM_NOT_FOUND, **context)


# =============================================================================
# Business Rule Errors
# =============================================================================


class BusinessRuleError(AppException):
    """A rule was violated given the current state of an aggregate."""

    kind = ErrorKind.BUSINESS
    default_code = ErrorCode.VALIDATION_FAILED

    def __init__(self, code: str, detail: str, **context: Any):
        super().__init__(detail, code=code, **context)


class InvalidTransitionError(BusinessRuleError):
    """Status transition outside the state machine."""

    def __init__(
        self,
        entity: str,
        from_status: str,
        to_status: str,
        detail: str | None = None,
        **context: Any,
    ):
        self.from_status = _status_text(from_status)
        self.to_status = _status_text(to_status)
        if detail is None:
            detail = (
                f"invalid status transition from {self.from_status} "
                f"to {self.to_status} for {entity}"
            )
        super().__init__(
            ErrorCode.INVALID_STATUS_TRANSITION,
            detail,
            entity=entity,
            from_status=self.from_status,
            to_status=self.to_status,
            **context,
        )


class InvalidOrderTypeError(BusinessRuleError):
    """Operation does not apply to this order type."""

    def __init__(self, detail: str, order_type: str, **context: Any):
        super().__init__(
            ErrorCode.INVALID_ORDER_TYPE, detail, order_type=_status_text(order_type), **context
        )


class OrderNotCancellableError(BusinessRuleError):
    """Order is already completed or cancelled."""

    def __init__(self, order_id: str, current_status: str, **context: Any):
        super().__init__(
            ErrorCode.ORDER_NOT_CANCELLABLE,
            "cannot cancel completed or already cancelled order",
            order_id=order_id,
            current_status=_status_text(current_status),
            **context,
        )


# =============================================================================
# Conflict Errors
# =============================================================================


class ConflictError(AppException):
    """
    Duplicate or colliding state.

    Usage:
        raise ConflictError("table already booked for this time slot")
    """

    kind = ErrorKind.CONFLICT
    default_code = ErrorCode.DUPLICATE_ENTITY


class DuplicateEntityError(ConflictError):
    """Entity with the same natural key already exists within its parent."""

    def __init__(self, entity: str, identifier: str | None = None, **context: Any):
        if identifier:
            detail = f"{entity} '{identifier}' already exists"
        else:
            detail = f"{entity} already exists"
        super().__init__(detail, entity=entity, identifier=identifier, **context)


class ConcurrentModificationError(ConflictError):
    """The stored aggregate changed since it was loaded."""

    default_code = ErrorCode.CONCURRENT_MODIFICATION

    def __init__(self, entity: str, entity_id: str, expected_version: int, **context: Any):
        super().__init__(
            f"{entity} {entity_id} was modified concurrently",
            entity=entity,
            entity_id=entity_id,
            expected_version=expected_version,
            **context,
        )


# =============================================================================
# Authentication / Authorization Errors
# =============================================================================


class UnauthorizedError(AppException):
    """Authentication denied."""

    kind = ErrorKind.UNAUTHORIZED
    default_code = ErrorCode.INVALID_CREDENTIALS

    def __init__(self, detail: str = "Authentication failed", code: str | None = None, **context: Any):
        super().__init__(detail, code=code, **context)


class ForbiddenError(UnauthorizedError):
    """
    Authenticated, but not allowed to perform the action.

    Usage:
        raise ForbiddenError("kitchen", "delete", user_id=user.id)
    """

    default_code = ErrorCode.FORBIDDEN

    def __init__(self, resource: str | None = None, action: str | None = None, **context: Any):
        if resource and action:
            detail = f"Not authorized to {action} {resource}"
        else:
            detail = "Access denied"
        super().__init__(detail, resource=resource, action=action, **context)

    @property
    def http_status(self) -> int:
        return status.HTTP_403_FORBIDDEN


# =============================================================================
# Internal Errors
# =============================================================================


class InternalError(AppException):
    """
    Unexpected failure. Detail never leaves the process.

    Usage:
        raise InternalError("Failed to decode order items", order_id=order_id)
    """

    kind = ErrorKind.INTERNAL
    default_code = ErrorCode.INTERNAL_ERROR
    log_level = "error"

    def __init__(self, detail: str = GENERIC_INTERNAL_DETAIL, **context: Any):
        super().__init__(detail, **context)


class DatabaseError(InternalError):
    """Database operation failed."""

    default_code = ErrorCode.DATABASE_ERROR

    def __init__(self, operation: str, **context: Any):
        super().__init__(f"Database error during {operation}", operation=operation, **context)


# =============================================================================
# Helpers
# =============================================================================


def _status_text(value: Any) -> str:
    return value.value if isinstance(value, Enum) else str(value)


EnumT = TypeVar("EnumT", bound=Enum)


def parse_enum(enum_type: type[EnumT], value: Any, field: str, op: str | None = None) -> EnumT:
    """
    Coerce caller input to an enum member.

    Raises:
        ValidationError: If value names no member.
    """
    try:
        return enum_type(value)
    except ValueError:
        raise ValidationError(
            f"invalid {field}: {_status_text(value)}", field=field, op=op, value=_status_text(value)
        ) from None


def wrap_error(op: str, exc: Exception) -> NoReturn:
    """
    Re-raise a lower-layer error tagged with the calling operation.

    AppExceptions keep their kind and code; anything else becomes an
    InternalError chained to the original.
    """
    if isinstance(exc, AppException):
        if exc.op is None:
            exc.op = op
        raise exc
    raise InternalError(op=op, error=str(exc)) from exc


def to_http_exception(exc: AppException) -> HTTPException:
    """
    Map a core error to an HTTPException for the transport layer.

    Internal errors are reported with a generic message.
    """
    if exc.kind is ErrorKind.INTERNAL:
        detail: Any = {"code": exc.code, "message": GENERIC_INTERNAL_DETAIL}
    else:
        detail = {"code": exc.code, "message": exc.detail}
    return HTTPException(status_code=exc.http_status, detail=detail)
