"""JWT bearer verification.

Tokens are issued by the external auth service (HS256, shared JWT_SECRET).
This side only verifies them and extracts the claims the trading core
needs:

    {"sub": "<user id>", "type": "access", "roles": ["member", ...], "exp": ...}
"""

from typing import Any

from jose import JWTError, jwt

from config.settings import settings
from src.cx_common.errors import InvalidCredentialsError

_ALGORITHM = settings.JWT_ALGORITHM  # "HS256"


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and validate an access token.

    Raises:
        InvalidCredentialsError: signature/expiry invalid, or the token is
            not an access token (refresh tokens are rejected here).
    """
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[_ALGORITHM],  # Explicit list prevents algorithm confusion
        )
    except JWTError:
        raise InvalidCredentialsError() from None

    if payload.get("type") != "access":
        raise InvalidCredentialsError()
    return payload
