from sqlmodel import SQLModel, Field, Relationship
from typing import Optional, TYPE_CHECKING
from datetime import datetime

from models.base import new_id, utcnow

if TYPE_CHECKING:
    from models.organization import UserOrganization


class User(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True)
    email: str = Field(index=True, unique=True, max_length=255)
    username: Optional[str] = Field(default=None, max_length=100)
    name: str = Field(max_length=255)
    email_verified: bool = Field(default=False)
    password_hash: Optional[str] = Field(default=None)
    image: Optional[str] = Field(default=None)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    memberships: list["UserOrganization"] = Relationship(
        back_populates="user",
        sa_relationship_kwargs={"cascade": "all, delete-orphan"},
    )
