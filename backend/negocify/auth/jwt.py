"""JWT token creation and decoding.

Token claims:
  - sub:      user ID (authoritative; everything else is re-fetched)
  - email, name, surname: informational copies for clients
  - type:     "access"
  - exp:      expiry timestamp

Permissions are deliberately NOT embedded: they are recomputed from the
database on every request, so a revoked role takes effect immediately.
"""

from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt

from negocify.config import settings
from negocify.middleware.exceptions import ExpiredTokenError, InvalidTokenError

ALGORITHM = settings.jwt_algorithm


def create_access_token(
    user_id: int,
    email: str,
    name: str,
    surname: str,
    expires_delta: timedelta | None = None,
) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    payload = {
        "sub": str(user_id),
        "email": email,
        "name": name,
        "surname": surname,
        "type": "access",
        "exp": expire,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=ALGORITHM)


def decode_token(token: str) -> dict:
    """Verify signature and expiry and return the claims.

    Raises ExpiredTokenError for a correctly signed but expired token and
    InvalidTokenError for anything else that fails verification.
    """
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except ExpiredSignatureError as exc:
        raise ExpiredTokenError() from exc
    except JWTError as exc:
        raise InvalidTokenError() from exc
