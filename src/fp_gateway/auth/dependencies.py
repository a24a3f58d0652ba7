"""FastAPI dependencies: get_current_user, require_roles.

Usage in any protected router:
    from src.fp_gateway.auth.dependencies import CurrentUser, get_current_user

    @router.get("/protected")
    async def protected(user: CurrentUser = Depends(get_current_user)):
        ...
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from src.fp_common.enums import UserRole
from src.fp_common.errors import InvalidCredentialsError, RoleRequiredError
from src.fp_gateway.auth.jwt_handler import decode_access_token

# tokenUrl points at the auth service; only used by the Swagger "Authorize" button
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")

# Reusable 401 exception with WWW-Authenticate header (OAuth2 standard)
_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or expired token",
    headers={"WWW-Authenticate": "Bearer"},
)


@dataclass(frozen=True)
class CurrentUser:
    user_id: str
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role is UserRole.ADMIN


async def get_current_user(token: str = Depends(oauth2_scheme)) -> CurrentUser:
    """Validate the Bearer token and return the authenticated caller.

    Raises HTTP 401 if the token is missing, invalid, expired, or carries an
    unknown role.
    """
    try:
        payload = decode_access_token(token)
        role = UserRole(payload.get("role", UserRole.USER.value))
    except (InvalidCredentialsError, ValueError):
        raise _CREDENTIALS_EXCEPTION from None
    return CurrentUser(user_id=str(payload["sub"]), role=role)


def require_roles(*roles: UserRole) -> Callable[..., Awaitable[CurrentUser]]:
    """Build a dependency that only admits callers holding one of ``roles``."""

    async def _dependency(
        current_user: CurrentUser = Depends(get_current_user),
    ) -> CurrentUser:
        if current_user.role not in roles:
            raise RoleRequiredError([r.value for r in roles])
        return current_user

    return _dependency
