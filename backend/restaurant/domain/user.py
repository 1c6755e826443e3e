"""
Users, roles, permissions and sessions.

Permission checks are pure over user.role.permissions. A permission whose
action is "manage" grants every action on its resource.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from shared.config.constants import Actions, Resources, Roles
from shared.utils.clock import utcnow
from shared.utils.exceptions import ValidationError
from shared.utils.ids import (
    PermissionID,
    RoleID,
    SessionID,
    UserID,
    is_empty,
    new_permission_id,
    new_session_id,
    new_user_id,
)


@dataclass
class Permission:
    id: PermissionID
    name: str
    resource: str
    action: str
    description: str = ""
    created_at: datetime = field(default_factory=utcnow)

    @classmethod
    def create(cls, resource: str, action: str, description: str = "") -> "Permission":
        return cls(
            id=new_permission_id(),
            name=f"{resource}:{action}",
            resource=resource,
            action=action,
            description=description,
        )

    def grants(self, resource: str, action: str) -> bool:
        return self.resource == resource and self.action in (action, Actions.MANAGE)

    def is_valid(self) -> None:
        if is_empty(self.id):
            raise ValidationError("permission ID is required", field="id")
        if not (self.name and self.resource and self.action):
            raise ValidationError("permission name, resource, and action are required")


@dataclass
class Role:
    id: RoleID
    name: str
    description: str = ""
    permissions: list[Permission] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def grants(self, resource: str, action: str) -> bool:
        return any(p.grants(resource, action) for p in self.permissions)

    def is_valid(self) -> None:
        if is_empty(self.id):
            raise ValidationError("role ID is required", field="id")
        if not self.name:
            raise ValidationError("role name is required", field="name")


@dataclass
class User:
    """Staff account. role is attached by the repository when loaded."""

    id: UserID
    email: str
    password_hash: str
    role_id: RoleID
    role: Role | None = None
    is_active: bool = True
    last_login_at: datetime | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @classmethod
    def create(cls, email: str, password_hash: str, role: Role) -> "User":
        now = utcnow()
        return cls(
            id=new_user_id(),
            email=email,
            password_hash=password_hash,
            role_id=role.id,
            role=role,
            created_at=now,
            updated_at=now,
        )

    def can_access(self, resource: str, action: str) -> bool:
        if self.role is None:
            return False
        return self.role.grants(resource, action)

    def has_role(self, role_name: str) -> bool:
        return self.role is not None and self.role.name == role_name

    def is_admin(self) -> bool:
        return self.has_role(Roles.ADMIN)

    def record_login(self) -> None:
        self.last_login_at = utcnow()
        self.updated_at = self.last_login_at

    def set_active(self, active: bool) -> None:
        self.is_active = active
        self.updated_at = utcnow()

    def assign_role(self, role: Role) -> None:
        self.role_id = role.id
        self.role = role
        self.updated_at = utcnow()

    def change_password_hash(self, password_hash: str) -> None:
        self.password_hash = password_hash
        self.updated_at = utcnow()

    def is_valid(self) -> None:
        if is_empty(self.id):
            raise ValidationError("user ID is required", field="id")
        if not self.email:
            raise ValidationError("email is required", field="email")
        if is_empty(self.role_id):
            raise ValidationError("role ID is required", field="role_id")


@dataclass
class UserSession:
    """Authenticated client. Tokens are stored as SHA-256 hashes only."""

    id: SessionID
    user_id: UserID
    token_hash: str
    refresh_token_hash: str
    expires_at: datetime
    ip_address: str = ""
    user_agent: str = ""
    is_active: bool = True
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @classmethod
    def create(
        cls,
        user_id: UserID,
        token_hash: str,
        refresh_token_hash: str,
        expires_at: datetime,
        ip_address: str = "",
        user_agent: str = "",
        session_id: SessionID | None = None,
    ) -> "UserSession":
        now = utcnow()
        return cls(
            id=session_id or new_session_id(),
            user_id=user_id,
            token_hash=token_hash,
            refresh_token_hash=refresh_token_hash,
            expires_at=expires_at,
            ip_address=ip_address,
            user_agent=user_agent,
            created_at=now,
            updated_at=now,
        )

    def is_expired(self) -> bool:
        return self.expires_at <= utcnow()

    def is_valid_session(self) -> bool:
        return self.is_active and not self.is_expired()

    def invalidate(self) -> None:
        self.is_active = False
        self.updated_at = utcnow()

    def rotate(self, token_hash: str, refresh_token_hash: str, expires_at: datetime) -> None:
        """Swap in a new token pair after a refresh."""
        self.token_hash = token_hash
        self.refresh_token_hash = refresh_token_hash
        self.expires_at = expires_at
        self.updated_at = utcnow()

    def is_valid(self) -> None:
        if is_empty(self.id):
            raise ValidationError("session ID is required", field="id")
        if is_empty(self.user_id):
            raise ValidationError("user ID is required", field="user_id")
        if not self.token_hash:
            raise ValidationError("token hash is required", field="token_hash")
        if self.is_expired():
            raise ValidationError("session has expired", field="expires_at")


# =============================================================================
# Default roles
# =============================================================================

_R, _A = Resources, Actions

DEFAULT_ROLE_PERMISSIONS: dict[str, list[tuple[str, str]]] = {
    Roles.ADMIN: [(resource, _A.MANAGE) for resource in _R.ALL],
    Roles.MANAGER: [
        (_R.MENU, _A.MANAGE),
        (_R.ORDER, _A.MANAGE),
        (_R.KITCHEN, _A.MANAGE),
        (_R.RESERVATION, _A.MANAGE),
        (_R.INVENTORY, _A.MANAGE),
        (_R.REPORT, _A.VIEW),
        (_R.USER, _A.READ),
    ],
    Roles.KITCHEN_STAFF: [
        (_R.ORDER, _A.READ),
        (_R.ORDER, _A.UPDATE),
        (_R.KITCHEN, _A.MANAGE),
        (_R.INVENTORY, _A.READ),
    ],
    Roles.WAITSTAFF: [
        (_R.MENU, _A.READ),
        (_R.ORDER, _A.CREATE),
        (_R.ORDER, _A.READ),
        (_R.ORDER, _A.UPDATE),
        (_R.RESERVATION, _A.READ),
    ],
    Roles.HOST: [
        (_R.RESERVATION, _A.MANAGE),
        (_R.MENU, _A.READ),
        (_R.ORDER, _A.READ),
    ],
    Roles.CASHIER: [
        (_R.ORDER, _A.READ),
        (_R.ORDER, _A.UPDATE),
        (_R.REPORT, _A.VIEW),
    ],
}

_DEFAULT_ROLE_SPECS: list[tuple[str, str, str]] = [
    ("role_admin", Roles.ADMIN, "Administrator with full system access"),
    ("role_manager", Roles.MANAGER, "Restaurant manager with operational access"),
    ("role_kitchen", Roles.KITCHEN_STAFF, "Kitchen staff with order and inventory access"),
    ("role_waitstaff", Roles.WAITSTAFF, "Wait staff with order and customer access"),
    ("role_host", Roles.HOST, "Host with reservation and seating access"),
    ("role_cashier", Roles.CASHIER, "Cashier with payment and order completion access"),
]


def default_roles() -> list[Role]:
    """The six staff roles with their default permission sets."""
    now = utcnow()
    roles = []
    for role_id, name, description in _DEFAULT_ROLE_SPECS:
        permissions = [
            Permission(
                id=PermissionID(f"perm_{name}_{resource}_{action}"),
                name=f"{resource}:{action}",
                resource=resource,
                action=action,
                created_at=now,
            )
            for resource, action in DEFAULT_ROLE_PERMISSIONS[name]
        ]
        roles.append(
            Role(
                id=RoleID(role_id),
                name=name,
                description=description,
                permissions=permissions,
                created_at=now,
                updated_at=now,
            )
        )
    return roles
