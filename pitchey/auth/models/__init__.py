from pitchey.auth.models.session import UserSession
from pitchey.auth.models.user import User

__all__ = ["User", "UserSession"]
