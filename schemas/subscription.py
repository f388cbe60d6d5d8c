"""
Billing schemas.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field


class SubscriptionStatusRead(BaseModel):
    subscribed: bool
    subscription_tier: Optional[str] = None
    trial_end: Optional[datetime] = None
    subscription_end: Optional[datetime] = None

    class Config:
        from_attributes = True


class CheckoutRequest(BaseModel):
    origin: Optional[str] = Field(None, description="Base URL the payment page redirects back to")


class RedirectResponse(BaseModel):
    url: str


class SubscriptionInterestRequest(BaseModel):
    user_id: Optional[int] = Field(None, alias="userId")
    email: Optional[EmailStr] = None
    name: Optional[str] = Field(None, max_length=255)
    message: str = Field(..., min_length=1, max_length=5000)

    model_config = {"populate_by_name": True}


class SubscriptionInterestResponse(BaseModel):
    success: bool
    message: str
    email_sent: bool = False
