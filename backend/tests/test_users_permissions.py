"""
Tests for users, roles, sessions and permission checks.

Tests verify:
- "manage" grants every action on its resource
- Default role permission sets
- Session expiry
- PermissionContext and the require_permission decorator
"""

from datetime import timedelta

import pytest

from restaurant.domain.user import Permission, Role, UserSession
from restaurant.services.permissions import PermissionContext, require_permission
from shared.config.constants import Actions, Resources, Roles
from shared.utils.exceptions import (
    ErrorCode,
    ErrorKind,
    ForbiddenError,
    UnauthorizedError,
    ValidationError,
)


class TestManageWildcard:
    def test_kitchen_staff_kitchen_manage(self, make_user):
        """kitchen:manage covers update and delete, but not menu:delete."""
        staff = make_user(Roles.KITCHEN_STAFF)

        assert staff.can_access(Resources.KITCHEN, Actions.UPDATE)
        assert staff.can_access(Resources.KITCHEN, Actions.DELETE)
        assert not staff.can_access(Resources.MENU, Actions.DELETE)

    def test_manage_does_not_cross_resources(self):
        permission = Permission.create(Resources.MENU, Actions.MANAGE)
        assert permission.name == "menu:manage"
        assert permission.grants(Resources.MENU, Actions.CREATE)
        assert not permission.grants(Resources.ORDER, Actions.CREATE)

    def test_literal_action_match(self):
        permission = Permission.create(Resources.ORDER, Actions.READ)
        assert permission.grants(Resources.ORDER, Actions.READ)
        assert not permission.grants(Resources.ORDER, Actions.UPDATE)

    def test_user_without_role_has_no_access(self, make_user):
        user = make_user()
        user.role = None
        assert not user.can_access(Resources.MENU, Actions.READ)


class TestDefaultRoles:
    def test_six_roles(self, roles_by_name):
        assert sorted(roles_by_name) == sorted(Roles.ALL)
        assert roles_by_name[Roles.ADMIN].id == "role_admin"
        assert roles_by_name[Roles.KITCHEN_STAFF].id == "role_kitchen"

    @pytest.mark.parametrize("resource", Resources.ALL)
    def test_admin_manages_everything(self, make_user, resource):
        admin = make_user(Roles.ADMIN)
        assert admin.is_admin()
        for action in Actions.ALL:
            assert admin.can_access(resource, action)

    @pytest.mark.parametrize(
        "role,resource,action,allowed",
        [
            (Roles.WAITSTAFF, Resources.ORDER, Actions.CREATE, True),
            (Roles.WAITSTAFF, Resources.MENU, Actions.UPDATE, False),
            (Roles.WAITSTAFF, Resources.RESERVATION, Actions.READ, True),
            (Roles.HOST, Resources.RESERVATION, Actions.DELETE, True),
            (Roles.HOST, Resources.ORDER, Actions.UPDATE, False),
            (Roles.CASHIER, Resources.REPORT, Actions.VIEW, True),
            (Roles.CASHIER, Resources.INVENTORY, Actions.READ, False),
            (Roles.MANAGER, Resources.USER, Actions.READ, True),
            (Roles.MANAGER, Resources.USER, Actions.UPDATE, False),
            (Roles.KITCHEN_STAFF, Resources.INVENTORY, Actions.UPDATE, False),
        ],
    )
    def test_role_matrix(self, make_user, role, resource, action, allowed):
        assert make_user(role).can_access(resource, action) is allowed

    def test_role_validation(self):
        with pytest.raises(ValidationError):
            Role(id="", name="x").is_valid()
        with pytest.raises(ValidationError):
            Role(id="role_x", name="").is_valid()


class TestUser:
    def test_assign_role(self, make_user, roles_by_name):
        user = make_user(Roles.WAITSTAFF)
        user.assign_role(roles_by_name[Roles.MANAGER])
        assert user.role_id == "role_manager"
        assert user.has_role(Roles.MANAGER)

    def test_record_login(self, make_user, frozen_clock):
        user = make_user()
        user.record_login()
        assert user.last_login_at == frozen_clock.now()

    def test_validation(self, make_user):
        user = make_user()
        user.email = ""
        with pytest.raises(ValidationError):
            user.is_valid()


class TestUserSession:
    def _session(self, expires_at):
        return UserSession.create("user_1", "token-hash", "refresh-hash", expires_at)

    def test_expired_one_second_ago(self, frozen_clock):
        session = self._session(frozen_clock.now() - timedelta(seconds=1))

        assert session.is_expired()
        assert not session.is_valid_session()
        with pytest.raises(ValidationError) as exc_info:
            session.is_valid()
        assert exc_info.value.detail == "session has expired"

    def test_expiry_boundary(self, frozen_clock):
        session = self._session(frozen_clock.now() + timedelta(seconds=1))
        assert session.is_valid_session()
        frozen_clock.advance(seconds=1)
        assert session.is_expired()

    def test_invalidate(self, frozen_clock):
        session = self._session(frozen_clock.now() + timedelta(hours=1))
        session.invalidate()
        assert not session.is_valid_session()

    def test_rotate(self, frozen_clock):
        session = self._session(frozen_clock.now() + timedelta(minutes=5))
        later = frozen_clock.now() + timedelta(hours=1)
        session.rotate("new-token", "new-refresh", later)
        assert (session.token_hash, session.refresh_token_hash, session.expires_at) == (
            "new-token",
            "new-refresh",
            later,
        )

    def test_token_hash_required(self, frozen_clock):
        session = self._session(frozen_clock.now() + timedelta(hours=1))
        session.token_hash = ""
        with pytest.raises(ValidationError):
            session.is_valid()


class TestPermissionContext:
    def test_can_and_require(self, make_user):
        ctx = PermissionContext(make_user(Roles.HOST))
        assert ctx.role_name == Roles.HOST
        assert not ctx.is_admin
        assert ctx.can(Resources.RESERVATION, Actions.UPDATE)
        ctx.require(Resources.RESERVATION, Actions.UPDATE)

    def test_require_denied(self, make_user):
        ctx = PermissionContext(make_user(Roles.HOST))
        with pytest.raises(ForbiddenError) as exc_info:
            ctx.require(Resources.INVENTORY, Actions.UPDATE)
        assert exc_info.value.kind is ErrorKind.UNAUTHORIZED
        assert exc_info.value.code == ErrorCode.FORBIDDEN
        assert exc_info.value.http_status == 403

    def test_inactive_user_can_do_nothing(self, make_user):
        ctx = PermissionContext(make_user(Roles.ADMIN, active=False))
        assert not ctx.can(Resources.MENU, Actions.READ)


class _Guarded:
    @require_permission(Resources.MENU, Actions.UPDATE)
    async def rename(self, name, *, actor=None):
        return name


class TestRequirePermission:
    @pytest.mark.asyncio
    async def test_internal_call_is_not_checked(self):
        assert await _Guarded().rename("x") == "x"

    @pytest.mark.asyncio
    async def test_allowed_actor(self, make_user):
        assert await _Guarded().rename("x", actor=make_user(Roles.MANAGER)) == "x"

    @pytest.mark.asyncio
    async def test_forbidden_actor(self, make_user):
        with pytest.raises(ForbiddenError):
            await _Guarded().rename("x", actor=make_user(Roles.WAITSTAFF))

    @pytest.mark.asyncio
    async def test_disabled_actor(self, make_user):
        with pytest.raises(UnauthorizedError) as exc_info:
            await _Guarded().rename("x", actor=make_user(Roles.MANAGER, active=False))
        assert exc_info.value.code == ErrorCode.ACCOUNT_DISABLED
        assert not isinstance(exc_info.value, ForbiddenError)
