# storefront/models/user.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class User(SQLModel, table=True):
    """
    Storefront account.

    Identity:
      - id: the JWT "sub" claim issued by the auth service

    Role:
      - "user" | "admin"

    Passwords, OTPs and sessions live in the auth service. Orders copy
    `name` and `email` at checkout so later profile edits don't rewrite
    order history.
    """

    __tablename__ = "users"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    email: str = Field(
        unique=True,
        index=True,
    )

    name: str = Field(
        max_length=100,
        description="Customer display name",
    )

    role: str = Field(
        default="user",
        index=True,
        description="Application role: user | admin",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
