import logging

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError

from backend.auth import gate
from backend.auth.dependencies import (
    get_auth_service,
    get_session_token,
    http_error,
)
from backend.auth.errors import AuthError
from backend.auth.service import AuthService
from backend.auth.sessions import clear_session_cookie_kwargs, session_cookie_kwargs
from backend.auth.user_store import UserProfile
from backend.models.user import UserRole

router = APIRouter(tags=['auth'])

logger = logging.getLogger(__name__)


class SignupRequest(BaseModel):
    # Missing fields are reported by the service, not as a 422.
    fullname: str | None = None
    email: str | None = None
    phone: str | None = None
    cet_roll_number: str | None = Field(default=None, alias='cetRollNumber')
    category: str | None = None
    password: str | None = None

    class Config:
        populate_by_name = True

    def to_profile(self) -> UserProfile:
        return UserProfile(
            fullname=self.fullname or '',
            email=self.email or '',
            phone=self.phone or '',
            cet_roll_number=self.cet_roll_number or '',
            category=self.category or '',
        )


class LoginRequest(BaseModel):
    email: str | None = None
    password: str | None = None


class UserSummaryResponse(BaseModel):
    fullname: str
    email: str


class MessageResponse(BaseModel):
    success: bool
    message: str


class LoginResponse(MessageResponse):
    user: UserSummaryResponse


class LogoutResponse(BaseModel):
    success: bool


class CheckAuthResponse(BaseModel):
    loggedIn: bool


class CurrentUserResponse(BaseModel):
    loggedIn: bool
    user: UserSummaryResponse | None = None


class AdminCheckResponse(BaseModel):
    admin: bool


@router.post('/signup', response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
def signup(data: SignupRequest, service: AuthService = Depends(get_auth_service)):
    try:
        service.signup(data.to_profile(), data.password)
    except AuthError as exc:
        raise http_error(exc) from exc

    return MessageResponse(success=True, message='Account created successfully')


@router.post('/login', response_model=LoginResponse)
def login(
    data: LoginRequest,
    response: Response,
    token: str | None = Depends(get_session_token),
    service: AuthService = Depends(get_auth_service),
):
    try:
        result = service.login(data.email, data.password, previous_token=token)
    except AuthError as exc:
        raise http_error(exc) from exc

    response.set_cookie(**session_cookie_kwargs(result.token))
    return LoginResponse(
        success=True,
        message='Login successful',
        user=UserSummaryResponse(fullname=result.user.fullname, email=result.user.email),
    )


@router.post('/logout', response_model=LogoutResponse)
def logout(
    response: Response,
    token: str | None = Depends(get_session_token),
    service: AuthService = Depends(get_auth_service),
):
    service.logout(token)
    response.set_cookie(**clear_session_cookie_kwargs())
    return LogoutResponse(success=True)


@router.get('/check-auth', response_model=CheckAuthResponse)
def check_auth(
    token: str | None = Depends(get_session_token),
    service: AuthService = Depends(get_auth_service),
):
    try:
        return CheckAuthResponse(loggedIn=service.current_subject(token) is not None)
    except AuthError:
        return CheckAuthResponse(loggedIn=False)


@router.get('/current-user', response_model=CurrentUserResponse)
def current_user(
    token: str | None = Depends(get_session_token),
    service: AuthService = Depends(get_auth_service),
):
    try:
        subject = service.current_subject(token)
    except AuthError:
        return CurrentUserResponse(loggedIn=False)

    if subject is None:
        return CurrentUserResponse(loggedIn=False)

    return CurrentUserResponse(
        loggedIn=True,
        user=UserSummaryResponse(fullname=subject.fullname, email=subject.email),
    )


@router.get('/admin-check', response_model=AdminCheckResponse)
def admin_check(
    token: str | None = Depends(get_session_token),
    service: AuthService = Depends(get_auth_service),
):
    try:
        gate.authorize(token, UserRole.ADMIN, service.sessions, service.users)
    except AuthError:
        return AdminCheckResponse(admin=False)
    except SQLAlchemyError:
        logger.exception('Admin check failed')
        return AdminCheckResponse(admin=False)

    return AdminCheckResponse(admin=True)
