"""
User-related Pydantic schemas for request/response validation.
"""
from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field, computed_field
from core.security import audience_for
from models.models import UserRoleEnum


class UserBase(BaseModel):
    """Base user schema with common fields."""
    email: EmailStr = Field(..., description="User's email address")
    first_name: Optional[str] = Field(None, max_length=100, description="User's first name")
    last_name: Optional[str] = Field(None, max_length=100, description="User's last name")


class UserCreate(UserBase):
    """Schema for signing up; admins are only created by seeding."""
    password: str = Field(..., min_length=8, description="User's password (min 8 characters)")
    role: UserRoleEnum = Field(UserRoleEnum.eleve, description="user, eleve or enseignant")


class UserRead(UserBase):
    """Schema for reading user data (excludes sensitive information)."""
    id: int
    display_name: str
    role: UserRoleEnum
    xp: int
    level: int
    skin: str
    birth_date: Optional[date] = None
    school_grade: Optional[str] = None
    is_active: bool
    created_at: datetime
    last_login: Optional[datetime] = None

    class Config:
        from_attributes = True

    @computed_field
    @property
    def audience(self) -> str:
        return audience_for(self.role).value


class ProfileUpdate(BaseModel):
    """Editable profile fields."""
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    birth_date: Optional[date] = None
    school_grade: Optional[str] = Field(None, max_length=50)


class SkinRead(BaseModel):
    id: str
    name: str
    description: str
    required_level: int
    unlocked: bool
    active: bool


class SkinSelect(BaseModel):
    skin: str = Field(..., min_length=1, max_length=50)
