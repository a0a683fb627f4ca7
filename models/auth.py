from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime

from models.base import new_id, utcnow


class Session(SQLModel, table=True):
    """Login session; the token is sent as a Bearer header or session cookie."""
    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(foreign_key="user.id", index=True)
    token: str = Field(index=True, unique=True)
    expires_at: datetime
    ip_address: Optional[str] = Field(default=None, max_length=45)
    user_agent: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Account(SQLModel, table=True):
    """Credential account linked to a user (provider "credential" for passwords)."""
    id: str = Field(default_factory=new_id, primary_key=True)
    user_id: str = Field(foreign_key="user.id", index=True)
    account_id: str
    provider_id: str = Field(default="credential")
    password_hash: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
