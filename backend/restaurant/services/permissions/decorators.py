"""
Permission decorators for async service methods.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any, TypeVar

from shared.utils.exceptions import ErrorCode, UnauthorizedError

from .context import PermissionContext

T = TypeVar("T")


def require_permission(resource: str, action: str):
    """
    Decorator to require a permission before an async service method runs.

    The caller passes the acting user as the ``actor`` keyword. Calls without
    an actor are internal (consumers, seeding) and are not checked.

    Usage:
        class OrderService(BaseDomainService):
            @require_permission(Resources.ORDER, Actions.DELETE)
            async def cancel_order(self, order_id, *, actor=None):
                ...
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args: Any, actor: Any = None, **kwargs: Any) -> T:
            if actor is not None:
                if not getattr(actor, "is_active", False):
                    raise UnauthorizedError("Account is disabled", code=ErrorCode.ACCOUNT_DISABLED)
                PermissionContext(actor).require(resource, action)
            return await func(*args, actor=actor, **kwargs)

        return wrapper

    return decorator
