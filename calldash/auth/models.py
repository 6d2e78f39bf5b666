"""
CallDash Authentication Models
Pydantic models for authentication commands, records and responses
"""

import unicodedata
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

# bcrypt only looks at the first 72 bytes of a password
MAX_PASSWORD_LENGTH = 72


def normalize_email(email: str) -> str:
    """
    Canonical form used for storage and lookup: stripped, lower-cased, NFC.
    email-validator also applies NFC, so signup and login agree.
    """
    return unicodedata.normalize("NFC", email.strip().lower())


# ============================================================================
# COMMANDS (validated request bodies)
# ============================================================================


class SignupCommand(BaseModel):
    """User registration request"""

    model_config = ConfigDict(populate_by_name=True)

    first_name: str = Field(..., alias="firstname", min_length=1, max_length=100)
    last_name: str = Field(..., alias="lastname", min_length=1, max_length=100)
    email: EmailStr = Field(..., description="User's email address")
    password: str = Field(..., min_length=1, max_length=MAX_PASSWORD_LENGTH)


class LoginCommand(BaseModel):
    """User login request"""

    email: str = Field(..., min_length=1, max_length=320)
    password: str = Field(..., min_length=1)


class ProfileUpdateCommand(BaseModel):
    """Profile update request; empty values are ignored"""

    model_config = ConfigDict(populate_by_name=True)

    first_name: Optional[str] = Field(None, alias="firstname", max_length=100)
    last_name: Optional[str] = Field(None, alias="lastname", max_length=100)
    password: Optional[str] = Field(None, max_length=MAX_PASSWORD_LENGTH)


# ============================================================================
# STORE RECORDS
# ============================================================================


class UserUpdateFields(BaseModel):
    """Partial update applied by the credential store"""

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    password_hash: Optional[str] = None

    def is_empty(self) -> bool:
        return not self.model_dump(exclude_none=True)


class UserProfile(BaseModel):
    """User details response (no sensitive data)"""

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: UUID = Field(..., description="User UUID")
    email: str = Field(..., description="Lower-cased email")
    first_name: str = Field(..., alias="firstname")
    last_name: str = Field(..., alias="lastname")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UserRecord(UserProfile):
    """Stored account including the password hash; never serialized to clients"""

    password_hash: str = Field(..., repr=False)

    def to_profile(self) -> UserProfile:
        return UserProfile.model_validate(self.model_dump(exclude={"password_hash"}))


# ============================================================================
# TOKENS & RESULTS
# ============================================================================


class TokenData(BaseModel):
    """Verified session token claims"""

    user_id: UUID
    email: str
    first_name: Optional[str] = None
    issued_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None


class LoginResult(BaseModel):
    """Issued session token plus the account's safe projection"""

    token: str = Field(..., repr=False)
    expires_in: int
    user: UserProfile


# ============================================================================
# HTTP RESPONSES
# ============================================================================


class SessionUser(BaseModel):
    """Minimal user payload returned on login"""

    email: str
    firstname: Optional[str] = None


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class LoginResponse(MessageResponse):
    user: SessionUser


class ProfileResponse(BaseModel):
    user: UserProfile


class ProfileUpdateResponse(BaseModel):
    success: bool = True
    user: UserProfile


class TokenValidationResponse(BaseModel):
    firstname: str
    email: str
