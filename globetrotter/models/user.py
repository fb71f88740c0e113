import re
from datetime import datetime
from typing import Optional, Dict, Any, Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, FiniteFloat, field_validator


NAME_PATTERN = re.compile(r"^[A-Za-zÀ-ÖØ-öø-ÿ'\-\s]+$")
ROLES = ("user", "admin", "superadmin")


def check_password_strength(password: str) -> str:
    if len(password) < 8:
        raise ValueError("Password must be at least 8 characters long")
    if not re.search(r"[A-Za-z]", password):
        raise ValueError("Password must contain at least one letter")
    if not re.search(r"\d", password):
        raise ValueError("Password must contain at least one number")
    return password


def clean_person_name(value: Any) -> str:
    name = re.sub(r"\s+", " ", str(value or "")).strip()
    if len(name) < 2 or len(name) > 50:
        raise ValueError("Name must be between 2 and 50 characters")
    if not NAME_PATTERN.match(name):
        raise ValueError("Name contains invalid characters")
    return name


def _lower_email(v):
    return v.strip().lower() if isinstance(v, str) else v


# ---------------------------
# Auth requests
# ---------------------------

class SignupRequest(BaseModel):
    name: str
    email: EmailStr
    password: str = Field(..., max_length=72)

    _normalize_email = field_validator("email", mode="before")(_lower_email)

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, v):
        return clean_person_name(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        return check_password_strength(v)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=72)

    _normalize_email = field_validator("email", mode="before")(_lower_email)


class RefreshRequest(BaseModel):
    refreshToken: str = Field(..., min_length=1)


class LogoutRequest(BaseModel):
    refreshToken: Optional[str] = None


class ForgotPasswordRequest(BaseModel):
    email: EmailStr

    _normalize_email = field_validator("email", mode="before")(_lower_email)


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    password: str = Field(..., max_length=72)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        return check_password_strength(v)


# ---------------------------
# Profile requests
# ---------------------------

class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    avatar: Optional[str] = Field(None, max_length=500)

    _normalize_email = field_validator("email", mode="before")(_lower_email)

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, v):
        return clean_person_name(v) if v is not None else v

    @field_validator("avatar", mode="before")
    @classmethod
    def strip_avatar(cls, v):
        return v.strip() if isinstance(v, str) else v


class PasswordChange(BaseModel):
    currentPassword: str = Field(..., min_length=1)
    newPassword: str = Field(..., max_length=72)

    @field_validator("newPassword")
    @classmethod
    def validate_password(cls, v):
        return check_password_strength(v)


class NotificationSettings(BaseModel):
    email: bool = True
    push: bool = False
    tripReminders: bool = True


class PrivacySettings(BaseModel):
    profilePublic: bool = False
    showTrips: bool = False


class PreferencesUpdate(BaseModel):
    language: Optional[str] = Field(None, min_length=2, max_length=10)
    timezone: Optional[str] = Field(None, max_length=64)
    currency: Optional[Literal["USD", "EUR", "GBP", "INR", "CAD", "AUD"]] = None
    theme: Optional[Literal["light", "dark", "system"]] = None
    notifications: Optional[NotificationSettings] = None
    privacy: Optional[PrivacySettings] = None


class SavedDestinationInput(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    city: str = Field(..., min_length=1, max_length=100)
    country: str = Field(..., min_length=1, max_length=100)
    coordinates: Dict[str, FiniteFloat] = Field(default_factory=dict)
    notes: str = Field("", max_length=500)

    @field_validator("name", "city", "country", "notes", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v


class DeleteAccountRequest(BaseModel):
    password: str = Field(..., min_length=1)


def default_preferences() -> Dict[str, Any]:
    return {
        "language": "en",
        "timezone": "UTC",
        "currency": "USD",
        "theme": "light",
        "notifications": NotificationSettings().model_dump(),
        "privacy": PrivacySettings().model_dump(),
    }


class PublicUser(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    name: str
    email: str
    role: str = "user"


class Session(BaseModel):
    user: PublicUser
    accessToken: str
    refreshToken: str
    expiresIn: int
    accessTokenExpiresAt: datetime


class SessionResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    success: bool = True
    data: Session
