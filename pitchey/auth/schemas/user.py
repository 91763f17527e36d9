from typing import Any

from pydantic import BaseModel

from pitchey.auth.models.user import User


class AuthenticatedUser(BaseModel):
    """Identity attached to a request once a session or token resolves."""

    id: int
    email: str
    name: str
    user_type: str
    username: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    company_name: str | None = None

    @classmethod
    def from_user(cls, user: User) -> "AuthenticatedUser":
        return cls(
            id=user.id,
            email=user.email,
            name=user.display_name,
            user_type=user.user_type,
            username=user.username,
            first_name=user.first_name,
            last_name=user.last_name,
            company_name=user.company_name,
        )

    def to_cache_record(self) -> dict[str, Any]:
        return self.model_dump()


class UserResponse(BaseModel):
    id: int
    email: str
    username: str | None = None
    name: str
    user_type: str
    first_name: str | None = None
    last_name: str | None = None
    company_name: str | None = None
    bio: str | None = None
    avatar_url: str | None = None
    created_at: str | None = None

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            email=user.email,
            username=user.username,
            name=user.display_name,
            user_type=user.user_type,
            first_name=user.first_name,
            last_name=user.last_name,
            company_name=user.company_name,
            bio=user.bio,
            avatar_url=user.avatar_url,
            created_at=user.created_at.isoformat() if user.created_at else None,
        )
