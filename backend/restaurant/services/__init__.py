"""
Service layer: application services, event consumers and permission checks.

Import from the subpackages:
    from restaurant.services.domain import OrderService
    from restaurant.services.events import register_event_handlers
    from restaurant.services.permissions import PermissionContext
"""
