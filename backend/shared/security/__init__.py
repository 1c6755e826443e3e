"""
Security module: password hashing and JWT tokens.
"""

from shared.security.auth import JWTService, TokenClaims, hash_token
from shared.security.password import PasswordService

__all__ = [
    # auth
    "JWTService",
    "TokenClaims",
    "hash_token",
    # password
    "PasswordService",
]
