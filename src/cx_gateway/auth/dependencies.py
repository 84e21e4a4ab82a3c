"""FastAPI dependency: get_current_user.

Usage in any protected router:
    from src.cx_gateway.auth.dependencies import CurrentUser, get_current_user

    @router.get("/protected")
    async def protected(user: Annotated[CurrentUser, Depends(get_current_user)]):
        ...
"""

from dataclasses import dataclass, field

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from src.cx_common.errors import InvalidCredentialsError
from src.cx_gateway.auth.jwt_handler import decode_access_token

# tokenUrl points at the external auth service (used by Swagger's "Authorize" button)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")

# Reusable 401 exception with WWW-Authenticate header (OAuth2 standard)
_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or expired token",
    headers={"WWW-Authenticate": "Bearer"},
)


@dataclass(frozen=True)
class CurrentUser:
    id: int
    roles: tuple[str, ...] = field(default_factory=tuple)


async def get_current_user(token: str = Depends(oauth2_scheme)) -> CurrentUser:
    """Extract the acting user (id + role ids) from the Bearer token.

    Raises HTTP 401 if the token is missing, invalid, expired, or carries a
    non-numeric subject.
    """
    try:
        payload = decode_access_token(token)
    except InvalidCredentialsError:
        raise _CREDENTIALS_EXCEPTION from None

    sub = payload.get("sub")
    try:
        user_id = int(sub)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise _CREDENTIALS_EXCEPTION from None

    roles = payload.get("roles") or []
    if not isinstance(roles, list):
        raise _CREDENTIALS_EXCEPTION
    return CurrentUser(id=user_id, roles=tuple(str(r) for r in roles))
