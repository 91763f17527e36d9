import logging

from fastapi import APIRouter, Depends, Request, Response, status

from pitchey.auth.dependencies import get_auth_service, get_current_user, require_portal_auth
from pitchey.auth.models.session import UserSession
from pitchey.auth.models.user import User
from pitchey.auth.schemas.auth import (
    LoginData,
    LoginRequest,
    LoginResponse,
    LogoutResponse,
    PortalType,
    RegisterRequest,
    SessionInfo,
    SessionResponse,
)
from pitchey.auth.schemas.user import AuthenticatedUser, UserResponse
from pitchey.auth.services.auth_service import AuthService
from pitchey.core import security
from pitchey.core.config import settings
from pitchey.core.datetime_utils import ensure_utc
from pitchey.core.rate_limit import limiter

logger = logging.getLogger(__name__)

router = APIRouter()


def _login_response(response: Response, user: User, session: UserSession) -> LoginResponse:
    security.set_session_cookie(response, session.id)
    token = AuthService.issue_token(user) if settings.ENABLE_JWT_FALLBACK else None
    return LoginResponse(
        data=LoginData(
            user=UserResponse.from_user(user),
            token=token,
            session=SessionInfo(
                user_id=user.id, expires_at=ensure_utc(session.expires_at).isoformat()
            ),
        )
    )


@router.post("/{portal}/login", response_model=LoginResponse)
@limiter.limit(settings.LOGIN_RATE_LIMIT)
async def login(
    request: Request,
    portal: PortalType,
    credentials: LoginRequest,
    response: Response,
    service: AuthService = Depends(get_auth_service),
) -> LoginResponse:
    user = service.authenticate(credentials.email, credentials.password, portal)
    session = service.create_session(user)
    logger.info("User logged in: id=%s portal=%s", user.id, portal)
    return _login_response(response, user, session)


@router.post(
    "/{portal}/register", response_model=LoginResponse, status_code=status.HTTP_201_CREATED
)
async def register(
    portal: PortalType,
    data: RegisterRequest,
    response: Response,
    service: AuthService = Depends(get_auth_service),
) -> LoginResponse:
    user = service.register(data, portal)
    session = service.create_session(user)
    return _login_response(response, user, session)


@router.post("/logout", response_model=LogoutResponse)
async def logout(
    request: Request,
    response: Response,
    service: AuthService = Depends(get_auth_service),
) -> LogoutResponse:
    session_id = security.session_id_from_cookies(request.headers.get("cookie"))
    await service.logout(session_id)
    security.clear_session_cookies(response)
    return LogoutResponse()


@router.get("/session", response_model=SessionResponse)
async def get_session(
    current_user: AuthenticatedUser = Depends(get_current_user),
) -> SessionResponse:
    return SessionResponse(data={"user": current_user})


@router.get("/{portal}/session", response_model=SessionResponse)
async def get_portal_session(
    current_user: AuthenticatedUser = Depends(require_portal_auth),
) -> SessionResponse:
    return SessionResponse(data={"user": current_user})
