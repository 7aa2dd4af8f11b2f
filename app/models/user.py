import uuid
from datetime import datetime

from sqlalchemy import DateTime
from sqlmodel import SQLModel, Field

from app.core.utils import utcnow


class User(SQLModel, table=True):
    """
    Persistent user profile.

    Identity:
      - id: MUST match the auth provider's user id (UUID from JWT "sub")

    Role:
      - "user" | "staff" | "admin"
      - "guest" is represented by the absence of a row / missing token.

    Passwords and sessions live with the auth provider. We only mirror
    identity, contact email, name, and application role.
    """

    __tablename__ = "users"

    id: uuid.UUID = Field(
        primary_key=True,
        index=True,
        description="Matches the auth provider's user id",
    )

    email: str = Field(
        unique=True,
        index=True,
        description="Email from the auth provider",
    )

    name: str = Field(
        max_length=50,
        description="Customer display name; first part of email by default",
    )

    role: str = Field(
        default="user",
        index=True,
        description="Application role: user | staff | admin",
    )

    created_at: datetime = Field(
        default_factory=utcnow,
        sa_type=DateTime,
        description="Creation timestamp (UTC)",
    )
