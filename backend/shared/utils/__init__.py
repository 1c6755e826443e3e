"""
Utilities module: ids, clock, exceptions, schemas.
"""

from shared.utils.exceptions import (
    AppException,
    ErrorKind,
    ErrorCode,
    ValidationError,
    NotFoundError,
    BusinessRuleError,
    ConflictError,
    UnauthorizedError,
    ForbiddenError,
    InternalError,
)
from shared.utils.clock import utcnow, FixedClock, SystemClock, use_clock
from shared.utils.ids import generate_id, is_empty, is_valid, parse_id

__all__ = [
    # exceptions
    "AppException",
    "ErrorKind",
    "ErrorCode",
    "ValidationError",
    "NotFoundError",
    "BusinessRuleError",
    "ConflictError",
    "UnauthorizedError",
    "ForbiddenError",
    "InternalError",
    # clock
    "utcnow",
    "FixedClock",
    "SystemClock",
    "use_clock",
    # ids
    "generate_id",
    "is_empty",
    "is_valid",
    "parse_id",
]
