"""
Authentication Routes

POST /auth/register - Register new student or employer
POST /auth/login - Login and get JWT token (admin attempts are audited)
POST /auth/logout - Close the admin login session
GET /auth/me - Get current user info
"""

from fastapi import APIRouter, Depends, Request

from studentjobs.api.responses import client_info, ok
from studentjobs.core.exceptions import AuthenticationException, AuthorizationException
from studentjobs.core.security import create_access_token, get_current_user
from studentjobs.schemas.schemas import (
    ApiResponse, LoginRequest, LoginStatus, RegisterRequest, TokenResponse, UserResponse, UserType
)
from studentjobs.services.admin_login_service import get_admin_login_service
from studentjobs.services.user_service import get_user_service

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=ApiResponse[TokenResponse], status_code=201)
async def register(request: RegisterRequest):
    """
    Register a new user account and return a token straight away.

    Employers start with approvalStatus=pending.
    """
    user = get_user_service().create(request)
    token = create_access_token(user)
    return ok(
        TokenResponse(token=token, user=UserResponse.from_doc(user)),
        message=f"Registered successfully as {user['userType']}",
        status_code=201,
    )


@router.post("/login", response_model=ApiResponse[TokenResponse])
async def login(request: LoginRequest, http_request: Request):
    """
    Login and receive JWT access token.

    Include token in requests: Authorization: Bearer <token>
    """
    users = get_user_service()
    logins = get_admin_login_service()
    ip_address, user_agent = client_info(http_request)
    account = users.get_by_email(request.email)
    is_admin_account = bool(account) and account.get("userType") == UserType.admin.value

    try:
        user = users.authenticate(request.email, request.password, request.user_type)
    except (AuthenticationException, AuthorizationException) as exc:
        if is_admin_account:
            logins.record(account, LoginStatus.failed, ip_address=ip_address,
                          user_agent=user_agent, failure_reason=exc.detail)
        elif account is None and request.user_type == UserType.admin:
            logins.record(None, LoginStatus.failed, email=request.email, ip_address=ip_address,
                          user_agent=user_agent, failure_reason="Unknown admin email")
        raise

    if is_admin_account:
        logins.record(user, LoginStatus.success, ip_address=ip_address, user_agent=user_agent)

    token = create_access_token(user)
    return ok(TokenResponse(token=token, user=UserResponse.from_doc(user)), message="Login successful")


@router.post("/logout", response_model=ApiResponse[dict])
async def logout(user: dict = Depends(get_current_user)):
    """Tokens are stateless; for admins this closes the open login row."""
    data = {}
    if user.get("userType") == UserType.admin.value:
        logins = get_admin_login_service()
        session = logins.latest_open_session(user["_id"])
        if session:
            closed = logins.record_logout(session["_id"])
            data["sessionDuration"] = closed["sessionDuration"]
    return ok(data, message="Logged out successfully")


@router.get("/me", response_model=ApiResponse[UserResponse])
async def get_me(user: dict = Depends(get_current_user)):
    """Get current authenticated user's info."""
    return ok(UserResponse.from_doc(user))
