"""
Permission checks for service operations.

Usage:
    from restaurant.services.permissions import PermissionContext, require_permission

    ctx = PermissionContext(user)
    ctx.require(Resources.KITCHEN, Actions.UPDATE)
"""

from .context import PermissionContext
from .decorators import require_permission

__all__ = [
    "PermissionContext",
    "require_permission",
]
