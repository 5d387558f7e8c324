"""JWT token creation and decoding.

Token claims:
  - sub:    user ID
  - email:  user e-mail
  - rol:    user role string
  - type:   "access"
  - iat:    issue timestamp (float seconds)
  - exp:    expiry timestamp

Permissions are deliberately NOT embedded: every check goes through the
resolver so grants and revocations apply to the very next request.
"""

from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt

from consultorio.config import settings
from consultorio.middleware.exceptions import AuthenticationError

ALGORITHM = settings.jwt_algorithm


def create_access_token(
    user_id: str,
    email: str,
    role: str,
    expires_delta: timedelta | None = None,
) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    payload = {
        "sub": user_id,
        "email": email,
        "rol": role,
        "type": "access",
        "iat": now.timestamp(),
        "exp": expire,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=ALGORITHM)


def decode_token(token: str) -> dict:
    """Decode and validate a JWT.

    Raises AuthenticationError with code TOKEN_EXPIRED or INVALID_TOKEN.
    """
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except ExpiredSignatureError as exc:
        raise AuthenticationError("Token expirado", "TOKEN_EXPIRED") from exc
    except JWTError as exc:
        raise AuthenticationError("Token inválido", "INVALID_TOKEN") from exc
