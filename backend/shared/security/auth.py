"""
JWT access and refresh tokens.

Tokens are HS256-signed with PyJWT. Time checks (exp, nbf) run against the
installed clock rather than the wall clock, so sessions and tokens expire
consistently under a FixedClock.

Claims:
    userId, sessionId, roleId, email, tokenType ("access" | "refresh")
    iss, sub, aud, iat, nbf, exp, jti
"""

from __future__ import annotations

import hashlib
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol

import jwt

from shared.config.constants import TokenType
from shared.config.logging import get_logger
from shared.config.settings import settings
from shared.utils.clock import utcnow
from shared.utils.exceptions import ErrorCode, UnauthorizedError
from shared.utils.schemas import TokenPair

logger = get_logger(__name__)

ALGORITHM = "HS256"
REQUIRED_CLAIMS = ("userId", "sessionId", "roleId", "tokenType", "exp", "iat")


class TokenSubject(Protocol):
    """What the token service needs to know about a user."""

    id: str
    email: str
    role_id: str


@dataclass(frozen=True)
class TokenClaims:
    """Decoded, typed view of a token's claims."""

    user_id: str
    session_id: str
    role_id: str
    email: str
    token_type: str
    expires_at: datetime
    issued_at: datetime
    token_id: str


def hash_token(token: str) -> str:
    """SHA-256 hex digest; sessions store hashes, never raw tokens."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _hash_jti(jti: str) -> str:
    """Short digest of a token id, safe to log."""
    return hashlib.sha256(jti.encode()).hexdigest()[:8]


def _from_timestamp(value: Any) -> datetime:
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


class JWTService:
    """
    Mints and validates access/refresh tokens.

    Usage:
        jwt_service = JWTService()
        pair = jwt_service.generate_token_pair(user, session_id)
        claims = jwt_service.validate_token(pair.access_token, TokenType.ACCESS)
    """

    def __init__(
        self,
        secret: str | None = None,
        issuer: str | None = None,
        audience: str | None = None,
        access_ttl: timedelta | None = None,
        refresh_ttl: timedelta | None = None,
    ):
        self._secret = secret or settings.jwt_secret
        self.issuer = issuer or settings.jwt_issuer
        self.audience = audience or settings.jwt_audience
        self.access_ttl = access_ttl or timedelta(minutes=settings.jwt_access_token_expire_minutes)
        self.refresh_ttl = refresh_ttl or timedelta(days=settings.jwt_refresh_token_expire_days)

    # =========================================================================
    # Minting
    # =========================================================================

    def generate_token(
        self,
        user: TokenSubject,
        session_id: str,
        token_type: str = TokenType.ACCESS,
    ) -> tuple[str, datetime]:
        """Sign one token. Returns the token and its expiry."""
        now = utcnow()
        ttl = self.refresh_ttl if token_type == TokenType.REFRESH else self.access_ttl
        expires_at = now + ttl

        claims = {
            "userId": str(user.id),
            "sessionId": str(session_id),
            "roleId": str(user.role_id),
            "email": user.email,
            "tokenType": token_type,
            "iss": self.issuer,
            "sub": str(user.id),
            "aud": self.audience,
            "iat": int(now.timestamp()),
            "nbf": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
            "jti": str(uuid.uuid4()),
        }
        return jwt.encode(claims, self._secret, algorithm=ALGORITHM), expires_at

    def generate_token_pair(self, user: TokenSubject, session_id: str) -> TokenPair:
        """Mint an access token and a refresh token for the same session."""
        access_token, access_expires = self.generate_token(user, session_id, TokenType.ACCESS)
        refresh_token, refresh_expires = self.generate_token(user, session_id, TokenType.REFRESH)
        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=access_expires,
            refresh_expires_at=refresh_expires,
        )

    # =========================================================================
    # Validation
    # =========================================================================

    def validate_token(self, token: str, expected_type: str | None = None) -> TokenClaims:
        """
        Verify signature, issuer, audience, expiry and type.

        Raises:
            UnauthorizedError: TOKEN_EXPIRED when past exp, INVALID_TOKEN otherwise.
        """
        if not token:
            raise UnauthorizedError("Invalid token", code=ErrorCode.INVALID_TOKEN)

        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                audience=self.audience,
                issuer=self.issuer,
                # exp/nbf/iat are checked below against the installed clock
                options={
                    "verify_exp": False,
                    "verify_nbf": False,
                    "verify_iat": False,
                    "require": list(REQUIRED_CLAIMS),
                },
            )
        except jwt.InvalidTokenError as e:
            logger.warning("JWT validation failed", error=str(e))
            raise UnauthorizedError("Invalid token", code=ErrorCode.INVALID_TOKEN) from e

        claims = self._to_claims(payload)
        now = utcnow()

        if "nbf" in payload and _from_timestamp(payload["nbf"]) > now:
            raise UnauthorizedError("Token not yet valid", code=ErrorCode.INVALID_TOKEN)

        if claims.expires_at <= now:
            raise UnauthorizedError("Token has expired", code=ErrorCode.TOKEN_EXPIRED)

        if expected_type is not None and claims.token_type != expected_type:
            logger.warning(
                "Token type mismatch",
                expected=expected_type,
                actual=claims.token_type,
                jti_hash=_hash_jti(claims.token_id),
            )
            raise UnauthorizedError(
                f"Invalid token type. Expected {expected_type} token.",
                code=ErrorCode.INVALID_TOKEN,
            )

        return claims

    def extract_claims(self, token: str) -> TokenClaims:
        """
        Decode without verifying the signature or expiry.

        Raises:
            UnauthorizedError: If the token cannot be parsed.
        """
        try:
            payload = jwt.decode(token, options={"verify_signature": False})
        except jwt.InvalidTokenError as e:
            raise UnauthorizedError("Invalid token", code=ErrorCode.INVALID_TOKEN) from e
        return self._to_claims(payload)

    def is_token_expired(self, token: str) -> bool:
        """True if the token is past exp or cannot be parsed."""
        try:
            claims = self.extract_claims(token)
        except UnauthorizedError:
            return True
        return claims.expires_at <= utcnow()

    @staticmethod
    def _to_claims(payload: dict[str, Any]) -> TokenClaims:
        try:
            return TokenClaims(
                user_id=str(payload["userId"]),
                session_id=str(payload["sessionId"]),
                role_id=str(payload["roleId"]),
                email=str(payload.get("email", "")),
                token_type=str(payload["tokenType"]),
                expires_at=_from_timestamp(payload["exp"]),
                issued_at=_from_timestamp(payload["iat"]),
                token_id=str(payload.get("jti", "")),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise UnauthorizedError(
                "Invalid token: malformed claims", code=ErrorCode.INVALID_TOKEN
            ) from e
