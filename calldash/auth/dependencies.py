"""
CallDash Authentication Dependencies
FastAPI dependency injection for cookie-based sessions
"""

from typing import Any, Callable, Coroutine

from fastapi import Request

from calldash.utils.errors import AuthenticationError, AuthorizationError
from calldash.utils.logger import get_logger

from .models import TokenData
from .service import check_token
from .tokens import SessionTokenIssuer

logger = get_logger(__name__)

CurrentUserDependency = Callable[..., Coroutine[Any, Any, TokenData]]


def make_current_user_dependency(
    issuer: SessionTokenIssuer,
    cookie_name: str = "token",
) -> CurrentUserDependency:
    """
    Build the dependency that resolves the session cookie to verified claims.
    Tokens are stateless, so no credential store session is opened.

    Usage:
    ```python
    get_current_user = make_current_user_dependency(container.issuer)

    @app.get("/protected")
    async def protected(current_user: TokenData = Depends(get_current_user)):
        return {"user_id": current_user.user_id}
    ```

    Raises:
        AuthenticationError 401: If the cookie is missing
        AuthorizationError 403: If the token is invalid or expired
    """

    async def get_current_user(request: Request) -> TokenData:
        token = request.cookies.get(cookie_name)
        if not token:
            logger.info(f"No session cookie on {request.method} {request.url.path}")
            raise AuthenticationError("Access Denied: No token provided")

        result = check_token(issuer, token)
        if not result.ok:
            raise AuthorizationError(result.message)

        return result.value

    return get_current_user
