"""
Auth Service - registration, login, sessions and role assignment.

Sessions store SHA-256 hashes of their tokens, never the tokens. Every
authentication outcome is written to the security audit log.
"""

from __future__ import annotations

import pydantic

from restaurant.domain.user import Role, User, UserSession, default_roles
from restaurant.repositories.user import RoleRepository, SessionRepository, UserRepository
from restaurant.services.domain.base_service import run_blocking
from shared.config.constants import TokenType
from shared.config.logging import audit_auth_event, auth_logger, mask_email
from shared.security.auth import JWTService, hash_token
from shared.security.password import PasswordService
from shared.utils.exceptions import (
    AppException,
    ConflictError,
    ErrorCode,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from shared.utils.ids import new_session_id
from shared.utils.schemas import LoginResult, PasswordStrength, TokenPair, normalize_email


class AuthService:
    """
    Application service for users, roles and sessions.

    Usage:
        auth = AuthService(users, roles, sessions)
        result = await auth.login("chef@example.com", "S3cure!Pass", ip, ua)
        user, session = await auth.validate_access_token(result.tokens.access_token)
    """

    _run = staticmethod(run_blocking)

    def __init__(
        self,
        users: UserRepository,
        roles: RoleRepository,
        sessions: SessionRepository,
        passwords: PasswordService | None = None,
        tokens: JWTService | None = None,
    ):
        self._users = users
        self._roles = roles
        self._sessions = sessions
        self._passwords = passwords or PasswordService()
        self._tokens = tokens or JWTService()

    # =========================================================================
    # Registration
    # =========================================================================

    async def register(self, email: str, password: str, role_id: str) -> User:
        """
        Create a user account.

        Raises:
            ValidationError: Malformed email or a password that fails the policy.
            ConflictError: The email is already registered.
            NotFoundError: The role does not exist.
        """
        try:
            email = normalize_email(email)
        except pydantic.ValidationError:
            raise ValidationError("invalid email address", field="email", op="AuthService.register") from None

        try:
            await self._run(self._users.get_by_email, email)
        except NotFoundError:
            pass
        else:
            raise ConflictError(
                "user with this email already exists",
                code=ErrorCode.DUPLICATE_ENTITY,
                op="AuthService.register",
                email=mask_email(email),
            )

        role = await self._run(self._roles.get_by_id, role_id)
        password_hash = await self._run(self._passwords.hash, password)

        user = User.create(email, password_hash, role)
        await self._run(self._users.create, user)
        auth_logger.info("User registered", user_id=user.id, email=mask_email(email), role=role.name)
        audit_auth_event("REGISTER", user_id=user.id, email=email, success=True)
        return user

    def estimate_password_strength(self, password: str) -> PasswordStrength:
        return self._passwords.estimate_strength(password)

    # =========================================================================
    # Login / logout
    # =========================================================================

    async def login(
        self,
        email: str,
        password: str,
        ip_address: str = "",
        user_agent: str = "",
    ) -> LoginResult:
        """
        Authenticate and open a session.

        Unknown users and wrong passwords get the same error.

        Raises:
            UnauthorizedError: INVALID_CREDENTIALS or ACCOUNT_DISABLED.
        """
        email = email.strip().lower()
        try:
            user = await self._run(self._users.get_by_email, email)
        except NotFoundError:
            audit_auth_event("LOGIN", email=email, success=False, reason="unknown_user", ip_address=ip_address)
            raise UnauthorizedError("Invalid credentials", code=ErrorCode.INVALID_CREDENTIALS) from None

        if not await self._run(self._passwords.compare, password, user.password_hash):
            audit_auth_event(
                "LOGIN", user_id=user.id, email=email, success=False, reason="bad_password", ip_address=ip_address
            )
            raise UnauthorizedError("Invalid credentials", code=ErrorCode.INVALID_CREDENTIALS)

        if not user.is_active:
            audit_auth_event(
                "LOGIN", user_id=user.id, email=email, success=False, reason="disabled", ip_address=ip_address
            )
            raise UnauthorizedError("Account is disabled", code=ErrorCode.ACCOUNT_DISABLED)

        session_id = new_session_id()
        pair = self._tokens.generate_token_pair(user, session_id)
        session = UserSession.create(
            user.id,
            hash_token(pair.access_token),
            hash_token(pair.refresh_token),
            pair.expires_at,
            ip_address=ip_address,
            user_agent=user_agent,
            session_id=session_id,
        )
        await self._run(self._sessions.create, session)

        user.record_login()
        try:
            await self._run(self._users.update, user)
        except AppException as e:
            auth_logger.warning("Failed to record last login", user_id=user.id, error=str(e))

        audit_auth_event("LOGIN", user_id=user.id, email=email, success=True, ip_address=ip_address)
        return self._login_result(user, session, pair)

    @staticmethod
    def _login_result(user: User, session: UserSession, pair: TokenPair) -> LoginResult:
        return LoginResult(
            user_id=user.id,
            email=user.email,
            role_id=user.role_id,
            session_id=session.id,
            tokens=pair,
        )

    async def logout(self, session_id: str) -> None:
        """Invalidate the session. A missing session counts as logged out."""
        try:
            session = await self._run(self._sessions.get_by_id, session_id)
        except NotFoundError:
            return
        session.invalidate()
        await self._run(self._sessions.update, session)
        audit_auth_event("LOGOUT", user_id=session.user_id, success=True, session_id=session_id)

    # =========================================================================
    # Tokens
    # =========================================================================

    async def refresh_token(self, refresh_token: str) -> LoginResult:
        """
        Exchange a refresh token for a new pair on the same session.

        Raises:
            UnauthorizedError: Bad token, SESSION_INVALID, or ACCOUNT_DISABLED.
        """
        claims = self._tokens.validate_token(refresh_token, TokenType.REFRESH)

        try:
            session = await self._run(self._sessions.get_by_id, claims.session_id)
        except NotFoundError:
            raise UnauthorizedError("Session is no longer valid", code=ErrorCode.SESSION_INVALID) from None

        if not session.is_valid_session() or session.refresh_token_hash != hash_token(refresh_token):
            audit_auth_event(
                "TOKEN_REFRESH", user_id=claims.user_id, success=False, reason="session_invalid"
            )
            raise UnauthorizedError("Session is no longer valid", code=ErrorCode.SESSION_INVALID)

        user = await self._run(self._users.get_by_id, claims.user_id)
        if not user.is_active:
            audit_auth_event("TOKEN_REFRESH", user_id=user.id, success=False, reason="disabled")
            raise UnauthorizedError("Account is disabled", code=ErrorCode.ACCOUNT_DISABLED)

        pair = self._tokens.generate_token_pair(user, session.id)
        session.rotate(hash_token(pair.access_token), hash_token(pair.refresh_token), pair.expires_at)
        await self._run(self._sessions.update, session)

        audit_auth_event("TOKEN_REFRESH", user_id=user.id, success=True, session_id=session.id)
        return self._login_result(user, session, pair)

    async def validate_access_token(self, token: str) -> tuple[User, UserSession]:
        """
        Resolve an access token to its user and live session.

        Raises:
            UnauthorizedError: Bad token, SESSION_INVALID, or ACCOUNT_DISABLED.
        """
        claims = self._tokens.validate_token(token, TokenType.ACCESS)

        try:
            session = await self._run(self._sessions.get_by_token_hash, hash_token(token))
        except NotFoundError:
            raise UnauthorizedError("Session is no longer valid", code=ErrorCode.SESSION_INVALID) from None
        if not session.is_valid_session():
            raise UnauthorizedError("Session is no longer valid", code=ErrorCode.SESSION_INVALID)

        user = await self._run(self._users.get_by_id, claims.user_id)
        if not user.is_active:
            raise UnauthorizedError("Account is disabled", code=ErrorCode.ACCOUNT_DISABLED)
        return user, session

    # =========================================================================
    # Passwords and sessions
    # =========================================================================

    async def change_password(self, user_id: str, old_password: str, new_password: str) -> None:
        """
        Replace the password and end every session of the user.

        Raises:
            UnauthorizedError: INVALID_CREDENTIALS if old_password is wrong.
            ValidationError: If new_password fails the policy.
        """
        user = await self._run(self._users.get_by_id, user_id)
        if not await self._run(self._passwords.compare, old_password, user.password_hash):
            audit_auth_event("PASSWORD_CHANGE", user_id=user.id, success=False, reason="bad_password")
            raise UnauthorizedError("Invalid credentials", code=ErrorCode.INVALID_CREDENTIALS)

        user.change_password_hash(await self._run(self._passwords.hash, new_password))
        await self._run(self._users.update, user)
        revoked = await self._run(self._sessions.invalidate_for_user, user.id)
        audit_auth_event("PASSWORD_CHANGE", user_id=user.id, success=True, sessions_revoked=revoked)

    async def get_user_sessions(self, user_id: str) -> list[UserSession]:
        return await self._run(self._sessions.get_active_for_user, user_id)

    async def invalidate_user_sessions(self, user_id: str) -> int:
        count = await self._run(self._sessions.invalidate_for_user, user_id)
        auth_logger.info("User sessions invalidated", user_id=user_id, count=count)
        return count

    async def cleanup_expired_sessions(self) -> int:
        count = await self._run(self._sessions.delete_expired)
        if count:
            auth_logger.info("Expired sessions deleted", count=count)
        return count

    # =========================================================================
    # Users and roles
    # =========================================================================

    async def get_user(self, user_id: str) -> User:
        return await self._run(self._users.get_by_id, user_id)

    async def activate_user(self, user_id: str) -> User:
        user = await self._run(self._users.get_by_id, user_id)
        user.set_active(True)
        await self._run(self._users.update, user)
        auth_logger.info("User activated", user_id=user.id)
        return user

    async def deactivate_user(self, user_id: str) -> User:
        """Disable the account and end its sessions."""
        user = await self._run(self._users.get_by_id, user_id)
        user.set_active(False)
        await self._run(self._users.update, user)
        await self._run(self._sessions.invalidate_for_user, user.id)
        auth_logger.info("User deactivated", user_id=user.id)
        return user

    async def assign_role(self, user_id: str, role_id: str) -> User:
        user = await self._run(self._users.get_by_id, user_id)
        role = await self._run(self._roles.get_by_id, role_id)
        user.assign_role(role)
        await self._run(self._users.update, user)
        auth_logger.info("Role assigned", user_id=user.id, role=role.name)
        return user

    async def get_roles(self) -> list[Role]:
        return await self._run(self._roles.list)

    async def seed_default_roles(self) -> list[Role]:
        """Create any default role that does not exist yet. Returns the created roles."""
        created: list[Role] = []
        for role in default_roles():
            try:
                await self._run(self._roles.get_by_name, role.name)
            except NotFoundError:
                await self._run(self._roles.create, role)
                created.append(role)
        if created:
            auth_logger.info("Default roles seeded", roles=[r.name for r in created])
        return created
