"""
Authentication-related Pydantic schemas.
"""
from pydantic import BaseModel, EmailStr, Field
from schemas.user import UserRead


class LoginRequest(BaseModel):
    """Password sign-in."""
    email: EmailStr
    password: str = Field(..., min_length=1)


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Token expiration time in seconds")
    user: UserRead


class SessionRead(BaseModel):
    """Current session as seen by the client."""
    authenticated: bool
    user: UserRead


class MessageResponse(BaseModel):
    message: str
