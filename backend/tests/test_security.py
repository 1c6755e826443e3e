"""
Tests for password hashing, the password policy and JWT tokens.
"""

from datetime import timedelta

import jwt
import pytest

from shared.config.constants import Roles, TokenType
from shared.security.auth import JWTService, hash_token
from shared.utils.exceptions import ErrorCode, UnauthorizedError, ValidationError
from tests.conftest import STAFF_PASSWORD


# =============================================================================
# Passwords
# =============================================================================


class TestPasswordPolicy:
    @pytest.mark.parametrize("password,message", [
        ("Sh0rt!", "at least 8 characters"),
        ("lowercase#only9", "uppercase"),
        ("UPPERCASE#ONLY9", "lowercase"),
        ("NoDigits#Here", "number"),
        ("NoSpecial9Here", "special character"),
        ("Password1!", "too common"),
        ("Grill#abc9X", "sequential"),
        ("Grill#7890X", "sequential"),
    ])
    def test_rejects(self, password_service, password, message):
        with pytest.raises(ValidationError) as exc_info:
            password_service.validate(password)
        assert message in exc_info.value.detail

    def test_too_long(self, password_service):
        with pytest.raises(ValidationError):
            password_service.validate("Aa#9" + "x" * 130)

    def test_accepts_policy_password(self, password_service):
        password_service.validate(STAFF_PASSWORD)

    def test_hash_and_compare(self, password_service):
        hashed = password_service.hash(STAFF_PASSWORD)
        assert hashed.startswith("$2b$04$")
        assert password_service.compare(STAFF_PASSWORD, hashed)
        assert not password_service.compare("Kitchen#Staff8", hashed)

    def test_hash_validates_first(self, password_service):
        with pytest.raises(ValidationError):
            password_service.hash("weak")

    @pytest.mark.parametrize("hashed", ["", "plain-text", "$2b$04$truncated"])
    def test_compare_rejects_bad_hashes(self, password_service, hashed):
        assert not password_service.compare(STAFF_PASSWORD, hashed)

    def test_compare_empty_password(self, password_service):
        assert not password_service.compare("", password_service.hash(STAFF_PASSWORD))


class TestPasswordStrength:
    def test_strong(self, password_service):
        strength = password_service.estimate_strength("Brisket#Smoke42Low")
        assert strength.score == 100
        assert strength.label == "strong"
        assert strength.feedback == []

    def test_weak(self, password_service):
        strength = password_service.estimate_strength("abc")
        assert strength.label == "weak"
        assert "use at least 8 characters" in strength.feedback
        assert "avoid sequences such as 'abc' or '123'" in strength.feedback

    def test_common_password_is_penalised(self, password_service):
        strength = password_service.estimate_strength("password")
        assert strength.score == 5
        assert "avoid common passwords" in strength.feedback


# =============================================================================
# JWT
# =============================================================================


@pytest.fixture
def chef(make_user):
    return make_user(Roles.KITCHEN_STAFF, email="chef@example.com")


class TestJWTService:
    def test_pair_round_trip(self, jwt_service, chef, frozen_clock):
        pair = jwt_service.generate_token_pair(chef, "ses_1")

        claims = jwt_service.validate_token(pair.access_token, TokenType.ACCESS)
        assert claims.user_id == chef.id
        assert claims.session_id == "ses_1"
        assert claims.role_id == chef.role_id
        assert claims.email == "chef@example.com"
        assert claims.issued_at == frozen_clock.now()

        assert pair.expires_at == frozen_clock.now() + timedelta(minutes=15)
        assert pair.refresh_expires_at == frozen_clock.now() + timedelta(days=7)
        assert pair.token_type == "Bearer"

    def test_each_token_is_unique(self, jwt_service, chef):
        first = jwt_service.generate_token_pair(chef, "ses_1")
        second = jwt_service.generate_token_pair(chef, "ses_1")
        assert first.access_token != second.access_token

    def test_type_mismatch(self, jwt_service, chef):
        pair = jwt_service.generate_token_pair(chef, "ses_1")
        with pytest.raises(UnauthorizedError) as exc_info:
            jwt_service.validate_token(pair.refresh_token, TokenType.ACCESS)
        assert exc_info.value.code == ErrorCode.INVALID_TOKEN

        assert jwt_service.validate_token(pair.refresh_token, TokenType.REFRESH).token_type == "refresh"

    def test_expiry_follows_installed_clock(self, jwt_service, chef, frozen_clock):
        pair = jwt_service.generate_token_pair(chef, "ses_1")

        frozen_clock.advance(minutes=14)
        jwt_service.validate_token(pair.access_token)
        assert not jwt_service.is_token_expired(pair.access_token)

        frozen_clock.advance(minutes=1)
        with pytest.raises(UnauthorizedError) as exc_info:
            jwt_service.validate_token(pair.access_token)
        assert exc_info.value.code == ErrorCode.TOKEN_EXPIRED
        assert jwt_service.is_token_expired(pair.access_token)

        # The refresh token lives on
        jwt_service.validate_token(pair.refresh_token, TokenType.REFRESH)

    def test_not_yet_valid(self, jwt_service, chef, frozen_clock):
        pair = jwt_service.generate_token_pair(chef, "ses_1")
        frozen_clock.advance(minutes=-5)
        with pytest.raises(UnauthorizedError):
            jwt_service.validate_token(pair.access_token)

    def test_wrong_secret(self, jwt_service, chef):
        forged = JWTService(secret="another-secret-that-is-also-long-enough")
        token = forged.generate_token_pair(chef, "ses_1").access_token
        with pytest.raises(UnauthorizedError) as exc_info:
            jwt_service.validate_token(token)
        assert exc_info.value.code == ErrorCode.INVALID_TOKEN

    def test_wrong_audience(self, jwt_service, chef):
        other = JWTService(secret="test-secret-with-enough-length-for-hs256", audience="billing")
        token = other.generate_token_pair(chef, "ses_1").access_token
        with pytest.raises(UnauthorizedError):
            jwt_service.validate_token(token)

    def test_missing_claims(self, jwt_service, frozen_clock):
        token = jwt.encode(
            {
                "sub": "usr_1",
                "iss": jwt_service.issuer,
                "aud": jwt_service.audience,
                "exp": int((frozen_clock.now() + timedelta(minutes=5)).timestamp()),
            },
            "test-secret-with-enough-length-for-hs256",
            algorithm="HS256",
        )
        with pytest.raises(UnauthorizedError):
            jwt_service.validate_token(token)

    @pytest.mark.parametrize("token", ["", "not.a.jwt"])
    def test_garbage(self, jwt_service, token):
        with pytest.raises(UnauthorizedError):
            jwt_service.validate_token(token)
        assert jwt_service.is_token_expired(token)

    def test_extract_claims_skips_verification(self, jwt_service, chef):
        forged = JWTService(secret="another-secret-that-is-also-long-enough")
        token = forged.generate_token_pair(chef, "ses_9").access_token
        assert jwt_service.extract_claims(token).session_id == "ses_9"


def test_hash_token():
    digest = hash_token("abc")
    assert digest == hash_token("abc")
    assert len(digest) == 64
    assert digest != hash_token("abd")
