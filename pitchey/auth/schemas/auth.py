from typing import Literal

from pydantic import BaseModel, EmailStr, Field

from pitchey.auth.schemas.user import AuthenticatedUser, UserResponse

PortalType = Literal["creator", "investor", "production"]


class LoginRequest(BaseModel):
    """Login request schema"""

    email: EmailStr
    password: str = Field(..., min_length=1)


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    username: str = Field(..., min_length=1, max_length=100)
    name: str | None = Field(None, max_length=255)
    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    company_name: str | None = Field(None, max_length=255)
    bio: str | None = None


class SessionInfo(BaseModel):
    user_id: int
    expires_at: str


class LoginData(BaseModel):
    """
    Payload returned after login or registration.

    The session itself travels in the httpOnly cookie; ``token`` is the
    bearer JWT kept for clients that predate session cookies.
    """

    user: UserResponse
    token: str | None = None
    session: SessionInfo


class LoginResponse(BaseModel):
    success: bool = True
    data: LoginData


class SessionResponse(BaseModel):
    success: bool = True
    data: dict[str, AuthenticatedUser]


class LogoutResponse(BaseModel):
    success: bool = True
    message: str = "Logged out successfully"


class AuthResult(BaseModel):
    """Outcome of resolving a request's identity."""

    authenticated: bool = False
    user: AuthenticatedUser | None = None
    # Name of the strategy that produced the identity
    source: str | None = None
