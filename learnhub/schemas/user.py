from pydantic import BaseModel, EmailStr, ConfigDict, field_validator, model_validator
from typing import Optional, Any
from datetime import datetime

from learnhub.core.constants import RoleEnum


class SignUpRequest(BaseModel):
    email: EmailStr
    password: str
    name: str

    @field_validator("password")
    def validate_password(cls, v):
        if not v or not v.strip():
            raise ValueError("Password cannot be empty or contain only whitespace.")
        if len(v) < 6:
            raise ValueError("Password must be at least 6 characters long.")
        return v

    @field_validator("name")
    def name_not_empty(cls, v):
        if not v or not v.strip():
            raise ValueError("Name cannot be empty")
        return v.strip()

class SignInRequest(BaseModel):
    email: EmailStr
    password: str
    redirect: Optional[str] = None

class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    avatar: Optional[str] = None

    @field_validator("name")
    def not_empty(cls, v):
        if v is not None and not v.strip():
            raise ValueError("Name cannot be empty")
        return v

    @model_validator(mode='before')
    @classmethod
    def at_least_one_value(cls, data: Any):
        if isinstance(data, dict) and not any(v is not None for v in data.values()):
            raise ValueError("At least one field must be provided for update")
        return data

class RoleUpdate(BaseModel):
    role: RoleEnum

class UserProfile(BaseModel):
    """The current user as seen by the rest of the application."""
    id: str
    email: str
    name: Optional[str] = None
    avatar: Optional[str] = None
    role: RoleEnum = RoleEnum.MEMBER
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def is_admin(self) -> bool:
        return self.role == RoleEnum.ADMIN

class SessionContext(BaseModel):
    """Explicit session handle passed to the services that need one."""
    current_user: Optional[UserProfile] = None
    is_loading: bool = False
    token: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def is_authenticated(self) -> bool:
        return self.current_user is not None

    @property
    def is_admin(self) -> bool:
        return self.current_user is not None and self.current_user.is_admin

class SessionState(BaseModel):
    current_user: Optional[UserProfile] = None
    is_loading: bool = False
    is_admin: bool = False
