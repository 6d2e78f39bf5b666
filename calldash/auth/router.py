"""
CallDash Authentication API Router
Endpoints for signup, login, logout, profile management and token validation
"""

from typing import Any, Callable, Dict, Type

from fastapi import APIRouter, Depends, Response, status

from calldash.utils.errors import (
    AuthenticationError,
    AuthorizationError,
    CallDashException,
    ConflictError,
    NotFoundError,
    ServiceUnavailableError,
    ValidationError,
)
from calldash.utils.logger import get_logger

from .dependencies import CurrentUserDependency
from .models import (
    LoginCommand,
    LoginResponse,
    MessageResponse,
    ProfileResponse,
    ProfileUpdateCommand,
    ProfileUpdateResponse,
    SessionUser,
    SignupCommand,
    TokenData,
    TokenValidationResponse,
)
from .service import AuthErrorKind, AuthResult, AuthService

logger = get_logger(__name__)

ERROR_TYPES: Dict[AuthErrorKind, Type[CallDashException]] = {
    AuthErrorKind.EMAIL_TAKEN: ConflictError,
    AuthErrorKind.INVALID_CREDENTIALS: AuthenticationError,
    AuthErrorKind.INVALID_TOKEN: AuthorizationError,
    AuthErrorKind.TOKEN_EXPIRED: AuthorizationError,
    AuthErrorKind.NOT_FOUND: NotFoundError,
    AuthErrorKind.TIMEOUT: ServiceUnavailableError,
    AuthErrorKind.INVALID_INPUT: ValidationError,
}


def error_for(result: AuthResult[Any]) -> CallDashException:
    """Map a failed AuthResult to the exception rendered by the app handler"""
    error_type = ERROR_TYPES.get(result.error)
    if error_type is None:
        # STORE_UNAVAILABLE and anything unmapped surface as a 500
        return CallDashException(result.message or "Internal server error", status_code=500)
    return error_type(result.message)


def create_auth_router(
    get_auth_service: Callable[..., Any],
    get_current_user: CurrentUserDependency,
    cookie_name: str = "token",
    cookie_secure: bool = False,
) -> APIRouter:
    """
    Factory function to create the auth router

    Args:
        get_auth_service: FastAPI dependency yielding an AuthService
        get_current_user: Dependency resolving the session cookie to claims
        cookie_name: Session cookie name
        cookie_secure: Mark the cookie Secure (production)

    Returns:
        Configured APIRouter with auth endpoints
    """

    auth_router = APIRouter(prefix="/api", tags=["authentication"])

    @auth_router.post(
        "/signup",
        response_model=MessageResponse,
        status_code=status.HTTP_200_OK,
        summary="Register new user",
        description="Create a new account. The client logs in separately.",
    )
    async def signup(
        command: SignupCommand,
        auth_service: AuthService = Depends(get_auth_service),
    ) -> MessageResponse:
        result = await auth_service.signup(command)
        if not result.ok:
            raise error_for(result)
        return MessageResponse(message="User registered successfully")

    @auth_router.post(
        "/login",
        response_model=LoginResponse,
        status_code=status.HTTP_200_OK,
        summary="User login",
        description="Authenticate with email and password; sets the session cookie",
    )
    async def login(
        command: LoginCommand,
        response: Response,
        auth_service: AuthService = Depends(get_auth_service),
    ) -> LoginResponse:
        result = await auth_service.login(command)
        if not result.ok:
            raise error_for(result)

        session = result.value
        response.set_cookie(
            key=cookie_name,
            value=session.token,
            max_age=session.expires_in,
            httponly=True,
            secure=cookie_secure,
            samesite="lax",
        )
        return LoginResponse(
            message="Authenticated",
            user=SessionUser(email=session.user.email, firstname=session.user.first_name),
        )

    @auth_router.post(
        "/logout",
        response_model=MessageResponse,
        status_code=status.HTTP_200_OK,
        summary="Logout",
        description="Clear the session cookie",
    )
    async def logout(
        response: Response,
        auth_service: AuthService = Depends(get_auth_service),
    ) -> MessageResponse:
        await auth_service.logout()
        response.delete_cookie(
            key=cookie_name, httponly=True, secure=cookie_secure, samesite="lax"
        )
        return MessageResponse(message="Logged out successfully")

    @auth_router.get(
        "/profile",
        response_model=ProfileResponse,
        status_code=status.HTTP_200_OK,
        summary="Get current user",
    )
    async def get_profile(
        current_user: TokenData = Depends(get_current_user),
        auth_service: AuthService = Depends(get_auth_service),
    ) -> ProfileResponse:
        result = await auth_service.get_profile(current_user.user_id)
        if not result.ok:
            raise error_for(result)
        return ProfileResponse(user=result.value)

    @auth_router.put(
        "/profile",
        response_model=ProfileUpdateResponse,
        status_code=status.HTTP_200_OK,
        summary="Update profile",
        description="Update first name, last name and/or password",
    )
    async def update_profile(
        command: ProfileUpdateCommand,
        current_user: TokenData = Depends(get_current_user),
        auth_service: AuthService = Depends(get_auth_service),
    ) -> ProfileUpdateResponse:
        result = await auth_service.update_profile(current_user.user_id, command)
        if not result.ok:
            raise error_for(result)
        return ProfileUpdateResponse(user=result.value)

    @auth_router.post(
        "/validate-token",
        response_model=TokenValidationResponse,
        status_code=status.HTTP_200_OK,
        summary="Validate token",
        description="Return the display claims of a valid session",
    )
    async def validate_token(
        current_user: TokenData = Depends(get_current_user),
    ) -> TokenValidationResponse:
        return TokenValidationResponse(
            firstname=current_user.first_name or "User",
            email=current_user.email,
        )

    return auth_router
