import structlog
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from pitchey.auth.schemas.auth import AuthResult, PortalType
from pitchey.auth.schemas.user import AuthenticatedUser
from pitchey.auth.services.auth_service import AuthService
from pitchey.auth.services.session_resolver import SessionResolver
from pitchey.core.exceptions import UnauthorizedError
from pitchey.core.redis import SessionCache, get_session_cache
from pitchey.db.session import get_db


def get_session_resolver(
    db: Session = Depends(get_db),
    cache: SessionCache | None = Depends(get_session_cache),
) -> SessionResolver:
    return SessionResolver.default(db, cache=cache)


def get_auth_service(
    db: Session = Depends(get_db),
    cache: SessionCache | None = Depends(get_session_cache),
) -> AuthService:
    return AuthService(db, cache=cache)


async def get_auth_result(
    request: Request,
    resolver: SessionResolver = Depends(get_session_resolver),
) -> AuthResult:
    """Resolve the caller's identity without rejecting anonymous requests"""
    result = await resolver.resolve_request(request)
    if result.authenticated and result.user is not None:
        structlog.contextvars.bind_contextvars(user_id=result.user.id)
    return result


async def get_current_user(
    auth: AuthResult = Depends(get_auth_result),
) -> AuthenticatedUser:
    """Get current authenticated user, 401 otherwise"""
    if not auth.authenticated or auth.user is None:
        raise UnauthorizedError("Authentication required")
    return auth.user


async def require_portal_auth(
    portal: PortalType,
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> AuthenticatedUser:
    """Authenticated user of the portal named in the path, 403 for other portals"""
    return AuthService.require_portal(current_user, portal)
