"""JWT access-token verification.

Credential issuance belongs to the auth service; this module only verifies the
HS256 access tokens it signs (shared JWT_SECRET) and exposes the claims every
use case relies on: ``sub`` (user id) and ``role``.

create_access_token mints tokens with the same claims for operators and tests.
"""

from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from config.settings import settings
from src.fp_common.enums import UserRole
from src.fp_common.errors import InvalidCredentialsError

_ALGORITHM = settings.JWT_ALGORITHM  # "HS256"
_ACCESS_EXPIRE = timedelta(minutes=settings.JWT_EXPIRE_MINUTES)


def create_access_token(user_id: str, role: UserRole = UserRole.USER) -> str:
    now = datetime.now(UTC)
    payload = {
        "sub": user_id,
        "role": role.value,
        "type": "access",
        "iat": now,
        "exp": now + _ACCESS_EXPIRE,
    }
    return str(jwt.encode(payload, settings.JWT_SECRET, algorithm=_ALGORITHM))


def decode_access_token(token: str) -> dict[str, str]:
    """Decode and validate an access token.

    Raises:
        InvalidCredentialsError: signature invalid, token expired, wrong type,
            or missing subject.
    """
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[_ALGORITHM],  # Explicit list prevents algorithm confusion
        )
    except JWTError:
        raise InvalidCredentialsError() from None

    if payload.get("type") != "access" or not payload.get("sub"):
        raise InvalidCredentialsError()
    return payload
