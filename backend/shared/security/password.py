"""
Password hashing and strength policy using bcrypt.

PasswordService is stateless apart from its cost factor and is shared by
every auth operation.
"""

import re
import unicodedata

import bcrypt

from shared.config.constants import COMMON_PASSWORDS
from shared.config.logging import get_logger
from shared.config.settings import settings
from shared.utils.exceptions import ValidationError
from shared.utils.schemas import PasswordStrength

logger = get_logger(__name__)

BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")

# Shapes that are weak whatever their length
_WEAK_PATTERNS = (
    re.compile(r"^(.)\1+$"),  # one repeated character
    re.compile(r"^\d+$"),
    re.compile(r"^[a-zA-Z]+$"),
    re.compile(r"^password\d*[^a-zA-Z0-9]*$", re.IGNORECASE),
)


def _is_special(char: str) -> bool:
    category = unicodedata.category(char)
    return category[0] in ("P", "S") or ord(char) > 127 and not char.isalnum()


def _character_classes(password: str) -> tuple[bool, bool, bool, bool]:
    has_upper = any(c.isupper() for c in password)
    has_lower = any(c.islower() for c in password)
    has_digit = any(c.isdigit() for c in password)
    has_special = any(_is_special(c) for c in password)
    return has_upper, has_lower, has_digit, has_special


def is_common_password(password: str) -> bool:
    if password.lower() in COMMON_PASSWORDS:
        return True
    return any(pattern.match(password) for pattern in _WEAK_PATTERNS)


def has_sequential_chars(password: str) -> bool:
    """True if three consecutive code points ascend or descend by one ("abc", "321")."""
    for a, b, c in zip(password, password[1:], password[2:]):
        step1 = ord(b) - ord(a)
        step2 = ord(c) - ord(b)
        if step1 == step2 and step1 in (1, -1):
            return True
    return False


class PasswordService:
    """
    bcrypt hashing plus the password policy.

    Usage:
        passwords = PasswordService()
        hashed = passwords.hash("Tr0ub4dor&3")
        passwords.compare("Tr0ub4dor&3", hashed)  # True
    """

    def __init__(
        self,
        rounds: int | None = None,
        min_length: int | None = None,
        max_length: int | None = None,
    ):
        self.rounds = rounds or settings.password_bcrypt_rounds
        self.min_length = min_length or settings.password_min_length
        self.max_length = max_length or settings.password_max_length

    def hash(self, password: str) -> str:
        """
        Validate the password, then hash it.

        Raises:
            ValidationError: If the password violates the policy.
        """
        self.validate(password)
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

    def compare(self, password: str, hashed_password: str) -> bool:
        """True if the password matches. Empty input or a non-bcrypt hash never matches."""
        if not password or not hashed_password:
            return False

        if not hashed_password.startswith(BCRYPT_PREFIXES):
            logger.warning("Non-bcrypt password hash rejected")
            return False

        try:
            return bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("utf-8"))
        except ValueError:
            logger.warning("Malformed bcrypt hash rejected")
            return False

    def validate(self, password: str) -> None:
        """
        Enforce the password policy.

        Raises:
            ValidationError: With a message naming the first rule violated.
        """
        if len(password) < self.min_length:
            raise ValidationError(
                f"password must be at least {self.min_length} characters long", field="password"
            )
        if len(password) > self.max_length:
            raise ValidationError(
                f"password must not exceed {self.max_length} characters", field="password"
            )

        has_upper, has_lower, has_digit, has_special = _character_classes(password)
        if not has_upper:
            raise ValidationError("password must contain at least one uppercase letter", field="password")
        if not has_lower:
            raise ValidationError("password must contain at least one lowercase letter", field="password")
        if not has_digit:
            raise ValidationError("password must contain at least one number", field="password")
        if not has_special:
            raise ValidationError("password must contain at least one special character", field="password")

        if is_common_password(password):
            raise ValidationError(
                "password is too common, please choose a different one", field="password"
            )
        if has_sequential_chars(password):
            raise ValidationError(
                "password cannot contain sequential characters (e.g., '123', 'abc')",
                field="password",
            )

    def estimate_strength(self, password: str) -> PasswordStrength:
        """Score from 0 to 100 with a label and hints."""
        score = 0
        feedback: list[str] = []

        length = len(password)
        if length >= 8:
            score += 20
        else:
            feedback.append("use at least 8 characters")
        if length >= 12:
            score += 10
        if length >= 16:
            score += 10

        has_upper, has_lower, has_digit, has_special = _character_classes(password)
        for present, hint in (
            (has_upper, "add an uppercase letter"),
            (has_lower, "add a lowercase letter"),
            (has_digit, "add a number"),
            (has_special, "add a special character"),
        ):
            if present:
                score += 15
            else:
                feedback.append(hint)

        if is_common_password(password):
            score -= 30
            feedback.append("avoid common passwords")
        if has_sequential_chars(password):
            score -= 20
            feedback.append("avoid sequences such as 'abc' or '123'")

        score = max(0, min(100, score))
        return PasswordStrength(score=score, label=_strength_label(score), feedback=feedback)


def _strength_label(score: int) -> str:
    if score >= 80:
        return "strong"
    if score >= 60:
        return "good"
    if score >= 40:
        return "fair"
    return "weak"
