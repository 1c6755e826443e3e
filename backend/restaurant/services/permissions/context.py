"""
Permission Context - main entry point for permission checks.

Checks are pure over user.role.permissions: no I/O, and "manage" is the only
non-literal rule.
"""

from __future__ import annotations

from restaurant.domain.user import User
from shared.config.logging import get_logger
from shared.utils.exceptions import ForbiddenError

logger = get_logger(__name__)


class PermissionContext:
    """
    Context for performing permission checks on behalf of a user.

    Usage:
        ctx = PermissionContext(user)

        if ctx.can("kitchen", "update"):
            ...

        ctx.require("order", "delete")  # raises ForbiddenError
    """

    def __init__(self, user: User):
        self._user = user

    @property
    def user(self) -> User:
        return self._user

    @property
    def user_id(self) -> str:
        return self._user.id

    @property
    def role_name(self) -> str | None:
        return self._user.role.name if self._user.role else None

    @property
    def is_admin(self) -> bool:
        return self._user.is_admin()

    def can(self, resource: str, action: str) -> bool:
        """Inactive users can do nothing."""
        return self._user.is_active and self._user.can_access(resource, action)

    def require(self, resource: str, action: str) -> None:
        """
        Raises:
            ForbiddenError: If the user may not perform action on resource.
        """
        if not self.can(resource, action):
            logger.warning(
                "Permission denied",
                user_id=self._user.id,
                role=self.role_name,
                resource=resource,
                action=action,
            )
            raise ForbiddenError(resource, action, user_id=self._user.id)
