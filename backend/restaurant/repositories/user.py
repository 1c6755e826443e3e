"""
User Repositories - users, roles and sessions.

Users come back with their role (and its permissions) attached, so
permission checks never need another query.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from restaurant.domain.user import Permission, Role, User, UserSession
from restaurant.models import RoleModel, UserModel, UserSessionModel
from shared.infrastructure.db import safe_commit
from shared.utils.clock import utcnow
from shared.utils.exceptions import NotFoundError
from shared.utils.ids import PermissionID, RoleID, SessionID, UserID

from .base import RepositoryFilters, SQLRepository, dump_datetime, load_datetime, row_datetime


class UserRepository(ABC):
    @abstractmethod
    def create(self, user: User) -> None: ...

    @abstractmethod
    def get_by_id(self, user_id: str) -> User: ...

    @abstractmethod
    def get_by_email(self, email: str) -> User: ...

    @abstractmethod
    def update(self, user: User) -> None: ...

    @abstractmethod
    def delete(self, user_id: str) -> None: ...

    @abstractmethod
    def list(self, filters: RepositoryFilters | None = None) -> list[User]: ...


class RoleRepository(ABC):
    @abstractmethod
    def create(self, role: Role) -> None: ...

    @abstractmethod
    def get_by_id(self, role_id: str) -> Role: ...

    @abstractmethod
    def get_by_name(self, name: str) -> Role: ...

    @abstractmethod
    def list(self) -> list[Role]: ...


class SessionRepository(ABC):
    @abstractmethod
    def create(self, session: UserSession) -> None: ...

    @abstractmethod
    def get_by_id(self, session_id: str) -> UserSession: ...

    @abstractmethod
    def get_by_token_hash(self, token_hash: str) -> UserSession: ...

    @abstractmethod
    def update(self, session: UserSession) -> None: ...

    @abstractmethod
    def get_active_for_user(self, user_id: str) -> list[UserSession]: ...

    @abstractmethod
    def invalidate_for_user(self, user_id: str) -> int: ...

    @abstractmethod
    def delete_expired(self) -> int: ...


# =============================================================================
# Marshalling
# =============================================================================


def _permission_to_json(permission: Permission) -> dict[str, Any]:
    return {
        "id": permission.id,
        "name": permission.name,
        "resource": permission.resource,
        "action": permission.action,
        "description": permission.description,
        "created_at": dump_datetime(permission.created_at),
    }


def _permission_from_json(data: dict[str, Any]) -> Permission:
    return Permission(
        id=PermissionID(data["id"]),
        name=data["name"],
        resource=data["resource"],
        action=data["action"],
        description=data.get("description", ""),
        created_at=load_datetime(data.get("created_at")) or utcnow(),
    )


def role_from_row(row: RoleModel) -> Role:
    return Role(
        id=RoleID(row.id),
        name=row.name,
        description=row.description,
        permissions=[_permission_from_json(p) for p in row.permissions or []],
        created_at=row_datetime(row.created_at),
        updated_at=row_datetime(row.updated_at),
    )


def user_to_values(user: User) -> dict[str, Any]:
    return {
        "email": user.email,
        "password_hash": user.password_hash,
        "role_id": user.role_id,
        "is_active": user.is_active,
        "last_login_at": user.last_login_at,
        "created_at": user.created_at,
        "updated_at": user.updated_at,
    }


def user_from_row(row: UserModel, role: Role | None) -> User:
    return User(
        id=UserID(row.id),
        email=row.email,
        password_hash=row.password_hash,
        role_id=RoleID(row.role_id),
        role=role,
        is_active=row.is_active,
        last_login_at=row_datetime(row.last_login_at),
        created_at=row_datetime(row.created_at),
        updated_at=row_datetime(row.updated_at),
    )


def session_to_values(session: UserSession) -> dict[str, Any]:
    return {
        "user_id": session.user_id,
        "token_hash": session.token_hash,
        "refresh_token_hash": session.refresh_token_hash,
        "expires_at": session.expires_at,
        "ip_address": session.ip_address,
        "user_agent": session.user_agent,
        "is_active": session.is_active,
        "created_at": session.created_at,
        "updated_at": session.updated_at,
    }


def session_from_row(row: UserSessionModel) -> UserSession:
    return UserSession(
        id=SessionID(row.id),
        user_id=UserID(row.user_id),
        token_hash=row.token_hash,
        refresh_token_hash=row.refresh_token_hash,
        expires_at=row_datetime(row.expires_at),
        ip_address=row.ip_address,
        user_agent=row.user_agent,
        is_active=row.is_active,
        created_at=row_datetime(row.created_at),
        updated_at=row_datetime(row.updated_at),
    )


# =============================================================================
# SQLAlchemy implementations
# =============================================================================


class SQLRoleRepository(SQLRepository[RoleModel], RoleRepository):
    model = RoleModel
    entity_name = "Role"

    def create(self, role: Role) -> None:
        row = RoleModel(
            id=role.id,
            name=role.name,
            description=role.description,
            permissions=[_permission_to_json(p) for p in role.permissions],
            created_at=role.created_at,
            updated_at=role.updated_at,
        )
        self._insert(row, "RoleRepository.create")

    def get_by_id(self, role_id: str) -> Role:
        with self._errors("RoleRepository.get_by_id"):
            return role_from_row(self._get_row(role_id))

    def get_by_name(self, name: str) -> Role:
        rows = self._scalars(select(RoleModel).where(RoleModel.name == name), "RoleRepository.get_by_name")
        if not rows:
            raise NotFoundError(self.entity_name, name=name)
        return role_from_row(rows[0])

    def list(self) -> list[Role]:
        rows = self._scalars(select(RoleModel).order_by(RoleModel.name.asc()), "RoleRepository.list")
        return [role_from_row(row) for row in rows]


class SQLUserRepository(SQLRepository[UserModel], UserRepository):
    model = UserModel
    entity_name = "User"

    def _with_role(self, row: UserModel) -> User:
        role_row = self._db.get(RoleModel, row.role_id, populate_existing=True)
        return user_from_row(row, role_from_row(role_row) if role_row else None)

    def create(self, user: User) -> None:
        self._insert(UserModel(id=user.id, **user_to_values(user)), "UserRepository.create")

    def get_by_id(self, user_id: str) -> User:
        with self._errors("UserRepository.get_by_id"):
            return self._with_role(self._get_row(user_id))

    def get_by_email(self, email: str) -> User:
        rows = self._scalars(
            select(UserModel).where(UserModel.email == email.strip().lower()),
            "UserRepository.get_by_email",
        )
        if not rows:
            raise NotFoundError(self.entity_name)
        with self._errors("UserRepository.get_by_email"):
            return self._with_role(rows[0])

    def update(self, user: User) -> None:
        self._plain_update(user.id, user_to_values(user), "UserRepository.update")

    def delete(self, user_id: str) -> None:
        self._delete(user_id, "UserRepository.delete")

    def list(self, filters: RepositoryFilters | None = None) -> list[User]:
        filters = filters or RepositoryFilters()
        query = select(UserModel).order_by(UserModel.created_at.asc()).offset(filters.offset).limit(filters.limit)
        rows = self._scalars(query, "UserRepository.list")
        with self._errors("UserRepository.list"):
            return [self._with_role(row) for row in rows]


class SQLSessionRepository(SQLRepository[UserSessionModel], SessionRepository):
    model = UserSessionModel
    entity_name = "Session"

    def create(self, session: UserSession) -> None:
        self._insert(UserSessionModel(id=session.id, **session_to_values(session)), "SessionRepository.create")

    def get_by_id(self, session_id: str) -> UserSession:
        with self._errors("SessionRepository.get_by_id"):
            return session_from_row(self._get_row(session_id))

    def get_by_token_hash(self, token_hash: str) -> UserSession:
        rows = self._scalars(
            select(UserSessionModel).where(UserSessionModel.token_hash == token_hash),
            "SessionRepository.get_by_token_hash",
        )
        if not rows:
            raise NotFoundError(self.entity_name)
        return session_from_row(rows[0])

    def update(self, session: UserSession) -> None:
        self._plain_update(session.id, session_to_values(session), "SessionRepository.update")

    def get_active_for_user(self, user_id: str) -> list[UserSession]:
        query = (
            select(UserSessionModel)
            .where(
                UserSessionModel.user_id == user_id,
                UserSessionModel.is_active.is_(True),
                UserSessionModel.expires_at > utcnow(),
            )
            .order_by(UserSessionModel.created_at.desc())
        )
        return [session_from_row(row) for row in self._scalars(query, "SessionRepository.get_active_for_user")]

    def invalidate_for_user(self, user_id: str) -> int:
        """Deactivate every active session of the user. Returns the count."""
        with self._errors("SessionRepository.invalidate_for_user"):
            result = self._db.execute(
                update(UserSessionModel)
                .where(UserSessionModel.user_id == user_id, UserSessionModel.is_active.is_(True))
                .values(is_active=False, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            safe_commit(self._db)
        return result.rowcount

    def delete_expired(self) -> int:
        with self._errors("SessionRepository.delete_expired"):
            result = self._db.execute(
                delete(UserSessionModel).where(UserSessionModel.expires_at <= utcnow())
            )
            safe_commit(self._db)
        return result.rowcount


def get_user_repositories(
    db: Session,
) -> tuple[SQLUserRepository, SQLRoleRepository, SQLSessionRepository]:
    """Factory function for dependency injection."""
    return SQLUserRepository(db), SQLRoleRepository(db), SQLSessionRepository(db)
