"""
User schemas.

Response models for identity records. The local password hash is never part
of any schema here.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class UserBase(BaseModel):
    """Base user fields."""

    email: str
    first_name: str
    last_name: str


class UserResponse(UserBase):
    """Sanitized user record."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    cognito_sub: str | None = None
    is_active: bool
    storage_used: int
    storage_quota: int
    created_at: datetime
    updated_at: datetime
