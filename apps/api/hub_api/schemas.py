"""Pydantic schemas for API requests/responses.

Request and response bodies use camelCase on the wire (``serviceRedirectUrl``,
``isActive``); Python attributes stay snake_case.
"""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

UserStatus = Literal["active", "inactive", "pending"]
Duration = Literal["Monthly", "Unlimited"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# ============================================================================
# RFC 9457 Problem Details
# ============================================================================


class ProblemDetail(BaseModel):
    """RFC 9457 Problem Details for admin and session endpoints."""

    type: str = Field(..., description="URI reference identifying the problem type")
    title: str = Field(..., description="Short, human-readable summary")
    status: int = Field(..., description="HTTP status code")
    detail: str | dict[str, Any] = Field(..., description="Human-readable explanation")
    instance: Optional[str] = Field(None, description="Opaque occurrence identifier")


# ============================================================================
# External auth gateway
# ============================================================================


class ExternalRegisterRequest(CamelModel):
    """POST /v1/auth/external/register. Presence is checked by the handler, not here."""

    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    service_redirect_url: Optional[str] = None


class ExternalLoginRequest(CamelModel):
    """POST /v1/auth/external/login."""

    email: Optional[str] = None
    password: Optional[str] = None
    service_redirect_url: Optional[str] = None


class ExternalAuthResponse(CamelModel):
    """``{success, message|error, redirectTo}`` envelope."""

    success: bool
    message: Optional[str] = None
    error: Optional[str] = None
    redirect_to: str


# ============================================================================
# Users
# ============================================================================


class UserOut(CamelModel):
    uid: str
    name: str
    email: str
    role: str
    status: str
    avatar_url: Optional[str] = None
    enabled_services: list[str] = Field(default_factory=list)
    subscription_plan_id: Optional[str] = None
    created_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None
    deletion_requested_at: Optional[datetime] = None


class MeResponse(CamelModel):
    """GET /v1/me."""

    current_user: UserOut
    is_admin: bool
    permissions: list[str]


class MeUpdate(CamelModel):
    name: str = Field(..., min_length=2, max_length=100)


class AdminUserCreate(CamelModel):
    name: str = Field(..., min_length=2, max_length=100)
    email: str = Field(..., pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=6)
    confirm_password: str
    role: str = Field("User", min_length=1)
    status: UserStatus = "active"
    subscription_plan_id: Optional[str] = None
    enabled_services: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def passwords_match(self) -> "AdminUserCreate":
        if self.password != self.confirm_password:
            raise ValueError("Passwords don't match.")
        return self


class AdminUserUpdate(CamelModel):
    """Partial update; omitted fields are left unchanged."""

    name: Optional[str] = Field(None, min_length=2, max_length=100)
    role: Optional[str] = Field(None, min_length=1)
    status: Optional[UserStatus] = None
    subscription_plan_id: Optional[str] = None
    enabled_services: Optional[list[str]] = None

    @model_validator(mode="after")
    def required_fields_not_null(self) -> "AdminUserUpdate":
        # name, role and status may be omitted but never cleared
        for field in ("name", "role", "status"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null.")
        return self


class DeletionAccepted(CamelModel):
    uid: str
    status: str = "pending_deletion"
    deletion_requested_at: datetime
    message: str


# ============================================================================
# Roles & permissions
# ============================================================================


class PermissionOut(CamelModel):
    id: str
    name: str
    description: str
    category: str


class RoleIn(CamelModel):
    name: str = Field(..., min_length=2, max_length=50)
    description: str = Field(..., min_length=5, max_length=200)
    permissions: list[str] = Field(default_factory=list)


class RoleOut(CamelModel):
    id: str
    name: str
    description: str
    permissions: list[str]
    protected: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ============================================================================
# Services
# ============================================================================


class ServiceIn(CamelModel):
    slug: str = Field(..., min_length=2, max_length=50, pattern=SLUG_PATTERN)
    name: str = Field(..., min_length=2, max_length=100)
    description: str = ""
    icon: str = Field(..., min_length=1)
    url: str = Field(..., min_length=3, max_length=100)
    is_active: bool = True
    linked_subscription_ids: list[str] = Field(default_factory=list)


class ServiceUpdate(CamelModel):
    """Partial update. ``newSlug`` moves the service to a new key."""

    new_slug: Optional[str] = Field(None, min_length=2, max_length=50, pattern=SLUG_PATTERN)
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    description: Optional[str] = None
    icon: Optional[str] = Field(None, min_length=1)
    url: Optional[str] = Field(None, min_length=3, max_length=100)
    is_active: Optional[bool] = None
    linked_subscription_ids: Optional[list[str]] = None


class ServiceOut(CamelModel):
    slug: str
    name: str
    description: str
    icon: str
    url: str
    is_active: bool
    linked_subscription_ids: list[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None


# ============================================================================
# Subscriptions
# ============================================================================


class SubscriptionIn(CamelModel):
    name: str = Field(..., min_length=2, max_length=100)
    slug: str = Field(..., min_length=2, max_length=50, pattern=SLUG_PATTERN)
    description: Optional[str] = None
    duration: Duration = "Monthly"
    points: int = Field(0, ge=0)
    storage_limit_mb: int = Field(0, ge=0, alias="storageLimitMB")
    price: str = Field(..., min_length=1, max_length=50)


class SubscriptionUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    slug: Optional[str] = Field(None, min_length=2, max_length=50, pattern=SLUG_PATTERN)
    description: Optional[str] = None
    duration: Optional[Duration] = None
    points: Optional[int] = Field(None, ge=0)
    storage_limit_mb: Optional[int] = Field(None, ge=0, alias="storageLimitMB")
    price: Optional[str] = Field(None, min_length=1, max_length=50)


class SubscriptionOut(CamelModel):
    id: str
    name: str
    slug: str
    description: Optional[str] = None
    duration: str
    points: int
    storage_limit_mb: int = Field(alias="storageLimitMB")
    price: str
    created_at: Optional[datetime] = None


# ============================================================================
# Health
# ============================================================================


class HealthResponse(BaseModel):
    status: str
    version: str
    services: dict[str, str]
