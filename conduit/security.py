"""Password hashing (bcrypt over a SHA-256 pre-hash) and JWT access tokens."""
import base64
import hashlib
from datetime import datetime, timedelta, timezone

import bcrypt
from jose import JWTError, jwt

from conduit.config import settings
from conduit.errors import AuthenticationError


def _prehash(password: str) -> bytes:
    # bcrypt only reads the first 72 bytes of its input.
    return base64.b64encode(hashlib.sha256(password.encode("utf-8")).digest())


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(_prehash(password), salt).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(_prehash(password), hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def create_access_token(user_id: int, expires_delta: timedelta | None = None) -> str:
    """Return a signed token whose ``sub`` claim is *user_id*."""
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    claims = {"sub": str(user_id), "iat": now, "exp": expire}
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> int:
    """
    Return the user id carried by *token*.

    Raises AuthenticationError if the token is malformed, expired, signed
    with another key, or lacks a numeric ``sub``.
    """
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
            options={"require_exp": True, "require_sub": True},
        )
        return int(payload["sub"])
    except (JWTError, KeyError, ValueError) as exc:
        raise AuthenticationError("invalid or expired token") from exc
