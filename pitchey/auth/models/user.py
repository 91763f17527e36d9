from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql.elements import ColumnElement

from pitchey.core.datetime_utils import utcnow
from pitchey.db.session import Base


class User(Base):
    """
    Marketplace account.

    Attributes:
        id: Integer primary key
        email: Unique email address (indexed for fast lookups)
        username: Public handle
        user_type: Portal the account belongs to ("creator", "investor" or
            "production"); fixed at registration
        name: Preferred display name, falls back to first/last name,
            username and email in that order
        hashed_password: Argon2 hashed password
        is_active: Whether the account may authenticate
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    username: Mapped[str | None] = mapped_column(String(100), nullable=True)
    user_type: Mapped[str] = mapped_column(String(20), default="creator")

    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    company_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    hashed_password: Mapped[str] = mapped_column(String(255))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    @property
    def display_name(self) -> str:
        if self.name:
            return self.name
        if self.first_name and self.last_name:
            return f"{self.first_name} {self.last_name}"
        return self.username or self.email

    @classmethod
    def display_name_expr(cls) -> ColumnElement[str]:
        """SQL twin of ``display_name`` for use inside queries."""
        return func.coalesce(
            cls.name,
            cls.first_name + " " + cls.last_name,
            cls.username,
            cls.email,
        )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, user_type={self.user_type})>"
