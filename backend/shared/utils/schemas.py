"""
Shared Pydantic schemas used as service inputs and outputs.
"""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, TypeAdapter

from shared.config.constants import Limits


# =============================================================================
# Order / Kitchen inputs
# =============================================================================


class OrderItemInput(BaseModel):
    """Line requested when creating an order."""

    menu_item_id: str = Field(min_length=1)
    name: str = ""
    quantity: int = Field(gt=0)
    unit_price: float = Field(ge=0)
    modifications: list[str] = Field(default_factory=list)
    notes: str = ""


class KitchenItemInput(BaseModel):
    """Line requested when creating a kitchen ticket. prep_time is in seconds."""

    menu_item_id: str = Field(min_length=1)
    name: str = ""
    quantity: int = Field(default=1, gt=0)
    prep_time: int = Field(default=0, ge=0)
    modifications: list[str] = Field(default_factory=list)
    notes: str = ""


# =============================================================================
# Reports
# =============================================================================


class SalesSummary(BaseModel):
    """Sales over a time range. Cancelled orders are excluded."""

    start: datetime
    end: datetime
    order_count: int = 0
    subtotal: float = 0.0
    tax: float = 0.0
    total: float = 0.0
    average_order_value: float = 0.0


# =============================================================================
# Authentication Schemas
# =============================================================================


class TokenPair(BaseModel):
    """Access and refresh tokens minted together."""

    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_at: datetime
    refresh_expires_at: datetime


class LoginResult(BaseModel):
    """Outcome of a successful login or refresh."""

    user_id: str
    email: str
    role_id: str
    session_id: str
    tokens: TokenPair


class PasswordStrength(BaseModel):
    """Heuristic password score."""

    score: int = Field(ge=0, le=100)
    label: str
    feedback: list[str] = Field(default_factory=list)


class RegisterUserInput(BaseModel):
    """Registration request."""

    email: EmailStr = Field(max_length=Limits.MAX_EMAIL_LENGTH)
    password: str
    role_id: str = Field(min_length=1)


_email_adapter = TypeAdapter(EmailStr)


def normalize_email(value: str) -> str:
    """
    Validate an email address and return it lowercased.

    Raises:
        pydantic.ValidationError: If the address is malformed.
    """
    return str(_email_adapter.validate_python(value.strip())).lower()
