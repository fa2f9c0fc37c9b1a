"""
Authentication and profile models.

Provides both SQLAlchemy ORM models and Pydantic schemas for:
- Profile entities (database and API)
- Sign up, sign in and password flows
- JWT tokens and payloads
- Roles and permissions

Uses SQLAlchemy 2.0 declarative syntax.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4
from enum import Enum
import re

from sqlalchemy import String, Boolean, DateTime, Text, Index, text
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from pydantic import BaseModel, Field, EmailStr, field_validator

from silent_money.config import get_settings


# ============================================================================
# SQLAlchemy Base
# ============================================================================


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


# ============================================================================
# Role Enum
# ============================================================================


class Role(str, Enum):
    """
    Profile roles, lowest to highest.

    - USER: community member, submits and saves assets
    - MODERATOR: reviews the moderation queue
    - ADMIN: also manages audits, users, categories and storage
    - SUPER_ADMIN: also grants and revokes admin access
    - OWNER: platform owner, cannot be banned or demoted
    """
    USER = "user"
    MODERATOR = "moderator"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"
    OWNER = "owner"


class Permission(str, Enum):
    """Granular permissions checked by route dependencies."""

    # Community
    SUBMIT_ASSETS = "submit:assets"
    REVIEW = "write:reviews"
    SAVE = "write:library"
    REQUEST_AUDIT = "create:audit_requests"

    # Moderation
    VIEW_ADMIN_DASHBOARD = "read:admin_dashboard"
    MODERATE_ASSETS = "moderate:assets"

    # Administration
    MANAGE_AUDITS = "manage:audits"
    MANAGE_CATEGORIES = "manage:categories"
    MANAGE_USERS = "manage:users"
    VIEW_ADMIN_LOGS = "read:admin_logs"
    MANAGE_STORAGE = "manage:storage"
    MANAGE_ADMINS = "manage:admins"


# ============================================================================
# SQLAlchemy Models
# ============================================================================


class Profile(Base):
    """
    Account and public profile of a platform member.

    Credentials live on the same row; the API never returns password_hash.
    """

    __tablename__ = "profiles"

    id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True),
        primary_key=True,
        default=uuid4,
        server_default=text("gen_random_uuid()"),
        nullable=False
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False
    )
    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False
    )
    full_name: Mapped[Optional[str]] = mapped_column(
        String(120),
        nullable=True
    )
    bio: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True
    )
    avatar_url: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True
    )
    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=Role.USER.value,
        server_default=Role.USER.value
    )
    is_admin: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false")
    )
    is_banned: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        onupdate=lambda: datetime.now(timezone.utc)
    )

    __table_args__ = (
        Index("idx_profiles_role", "role"),
        Index("idx_profiles_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<Profile(id={self.id}, email='{self.email}', role='{self.role}')>"


# ============================================================================
# Password Policy
# ============================================================================


def validate_password_strength(password: str, min_length: Optional[int] = None) -> str:
    """
    Validate password complexity.

    Requirements:
    - Minimum length (settings.password_min_length, 8 by default)
    - At least one letter
    - At least one digit
    """
    if min_length is None:
        min_length = get_settings().password_min_length
    if len(password) < min_length:
        raise ValueError(f"Password must be at least {min_length} characters long")
    if not re.search(r"[A-Za-z]", password):
        raise ValueError("Password must contain at least one letter")
    if not re.search(r"\d", password):
        raise ValueError("Password must contain at least one digit")
    return password


# ============================================================================
# Pydantic Request Models
# ============================================================================


class SignUpRequest(BaseModel):
    """Sign up request schema."""

    email: EmailStr = Field(..., description="Email address")
    password: str = Field(
        ...,
        max_length=128,
        description="Password (letters and digits, minimum length from settings)"
    )
    full_name: str = Field(
        ...,
        min_length=2,
        max_length=120,
        description="Display name"
    )

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return validate_password_strength(v)

    @field_validator("full_name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Full name must be at least 2 characters")
        return v

    model_config = {
        "json_schema_extra": {
            "example": {
                "email": "asha@example.com",
                "password": "Passive2024",
                "full_name": "Asha Verma"
            }
        }
    }


class SignInRequest(BaseModel):
    """Sign in request schema."""

    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., min_length=1, description="Password")


class PasswordResetRequest(BaseModel):
    """Request a password reset e-mail."""

    email: EmailStr


class PasswordResetConfirm(BaseModel):
    """Set a new password using a reset token."""

    token: str = Field(..., min_length=10)
    new_password: str = Field(..., max_length=128)

    @field_validator("new_password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return validate_password_strength(v)


class PasswordUpdateRequest(BaseModel):
    """Change password while signed in."""

    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., max_length=128)

    @field_validator("new_password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return validate_password_strength(v)


class UpdateProfileRequest(BaseModel):
    """Update own profile; omitted fields are left unchanged."""

    full_name: Optional[str] = Field(None, min_length=2, max_length=120)
    bio: Optional[str] = Field(None, max_length=1000)
    avatar_url: Optional[str] = Field(None, max_length=2048)


# ============================================================================
# Pydantic Response Models
# ============================================================================


class ProfileResponse(BaseModel):
    """Profile as seen by its owner and by admins."""

    id: UUID
    email: str
    full_name: Optional[str] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    role: Role = Role.USER
    is_admin: bool = False
    is_banned: bool = False
    created_at: datetime
    updated_at: Optional[datetime] = None


class TokenResponse(BaseModel):
    """JWT token response."""

    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(..., description="Token expiration time in seconds")
    profile: ProfileResponse


class PasswordResetIssued(BaseModel):
    """Acknowledgement of a reset request; the token is echoed only in development."""

    message: str = "If an account exists for this e-mail, a reset link has been sent."
    reset_token: Optional[str] = None


class TokenPayload(BaseModel):
    """Decoded JWT claims."""

    sub: str
    email: str
    role: Role
    type: str = "access"
    exp: int
    iat: int


class ErrorResponse(BaseModel):
    """Error response schema."""

    detail: str = Field(..., description="Error message")
    error_code: Optional[str] = Field(None, description="Machine readable error code")


class CurrentUser(BaseModel):
    """Authenticated caller resolved from a bearer token."""

    id: UUID
    email: str
    full_name: Optional[str] = None
    role: Role = Role.USER
    is_admin: bool = False
    is_banned: bool = False
