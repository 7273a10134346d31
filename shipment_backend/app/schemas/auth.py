"""
Authentication Pydantic schemas.

Defines request and response schemas for signup, login and account lookup.
"""

import re
from pydantic import AliasChoices, BaseModel, EmailStr, Field, field_validator
from datetime import datetime
from typing import Optional
from shipment_backend.app.models.enums import UserType, AccountStatus

# Labels the mobile screens have sent over time
_TYPE_LABELS = {
    "client": UserType.CLIENT,
    "customer": UserType.CLIENT,
    "dealer": UserType.DEALER,
    "field employee": UserType.FIELD_EMPLOYEE,
    "field_employee": UserType.FIELD_EMPLOYEE,
    "employee": UserType.FIELD_EMPLOYEE,
    "office employee": UserType.OFFICE_EMPLOYEE,
    "office_employee": UserType.OFFICE_EMPLOYEE,
    "officeemp": UserType.OFFICE_EMPLOYEE,
    "sales & purchase": UserType.SALES_PURCHASE,
    "sales_purchase": UserType.SALES_PURCHASE,
    "sale_purchase": UserType.SALES_PURCHASE,
    "sale_parchase": UserType.SALES_PURCHASE,
    "admin": UserType.ADMIN,
    "administrator": UserType.ADMIN,
}


def normalize_user_type(value):
    """Map a free-form account type label onto a UserType value."""
    if isinstance(value, str):
        return _TYPE_LABELS.get(value.strip().lower(), value)
    return value


def phone_digits(value: str) -> str:
    """Strip formatting from a phone number; at least 10 digits must remain."""
    digits = re.sub(r"\D", "", value)
    if len(digits) < 10:
        raise ValueError("phone must contain at least 10 digits")
    return digits


class UserSignup(BaseModel):
    """
    Schema for account registration.
    
    Used by POST /signup. `fullname` is accepted as an alias of `name`.
    """
    name: str = Field(
        ...,
        min_length=1,
        max_length=255,
        validation_alias=AliasChoices("name", "fullname"),
        description="Full name"
    )
    email: EmailStr = Field(..., description="Email address (unique)")
    password: str = Field(..., min_length=6, max_length=128, description="Password (min 6 characters)")
    phone: str = Field(..., description="Phone number, at least 10 digits")
    type: UserType = Field(..., description="Account type")
    
    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be blank")
        return value
    
    @field_validator("email")
    @classmethod
    def lower_email(cls, value: str) -> str:
        return value.strip().lower()
    
    @field_validator("phone")
    @classmethod
    def clean_phone(cls, value: str) -> str:
        return phone_digits(value)
    
    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, value):
        return normalize_user_type(value)


class UserLogin(BaseModel):
    """
    Schema for login.
    
    Used by POST /login.
    """
    email: str = Field(..., min_length=1, description="Email address")
    password: str = Field(..., min_length=1, description="Password")


class SignupResponse(BaseModel):
    """Returned by POST /signup."""
    id: int = Field(..., description="Internal account ID")
    user_id: int = Field(..., description="4-digit account code")
    status: AccountStatus
    message: str


class UserResponse(BaseModel):
    """Account row as exposed to clients (never includes the password hash)."""
    id: int
    user_id: int
    name: str
    email: str
    phone: str
    type: UserType
    status: AccountStatus
    is_active: bool
    last_login: Optional[datetime] = None
    created_at: datetime
    
    class Config:
        from_attributes = True  # Pydantic v2 (was orm_mode in v1)


class LoginResponse(UserResponse):
    """User row plus the bearer token for protected routes."""
    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")


class UserProfileUpdate(BaseModel):
    """
    Schema for PATCH /profile.
    
    Every field is optional; at least one must be supplied.
    """
    name: Optional[str] = Field(
        None,
        min_length=1,
        max_length=255,
        validation_alias=AliasChoices("name", "fullname")
    )
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    
    @field_validator("name")
    @classmethod
    def strip_name(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        value = value.strip()
        if not value:
            raise ValueError("name must not be blank")
        return value
    
    @field_validator("email")
    @classmethod
    def lower_email(cls, value: Optional[str]) -> Optional[str]:
        return value.strip().lower() if value is not None else value
    
    @field_validator("phone")
    @classmethod
    def clean_phone(cls, value: Optional[str]) -> Optional[str]:
        return phone_digits(value) if value is not None else value


class PasswordChange(BaseModel):
    """Schema for PATCH /change-password. Camel-case keys from the app are accepted."""
    current_password: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("current_password", "currentPassword")
    )
    new_password: str = Field(
        ...,
        min_length=6,
        max_length=128,
        validation_alias=AliasChoices("new_password", "newPassword")
    )


class AccountStatusResponse(BaseModel):
    """Approval state returned by GET /status/{identifier}."""
    user_id: int
    name: str
    type: UserType
    status: AccountStatus
    needs_approval: bool
