from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from punktual import config
from punktual.errors import ApiError

if not config.SUPABASE_JWT_SECRET:
    raise RuntimeError("SUPABASE_JWT_SECRET is not set")

# Supabase keeps the session in this cookie when the browser calls us directly
SESSION_COOKIE = "sb-access-token"

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthContext:
    """Identity of the caller for one request."""

    user_id: str
    email: str | None = None
    role: str | None = None


def create_access_token(user_id: str, email: str | None = None, expires_delta: timedelta | None = None) -> str:
    """Mint a token shaped like the ones Supabase Auth issues."""
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(hours=1))
    claims = {"sub": user_id, "aud": config.JWT_AUDIENCE, "role": "authenticated", "exp": expire}
    if email:
        claims["email"] = email
    return jwt.encode(claims, config.SUPABASE_JWT_SECRET, algorithm=config.JWT_ALGORITHM)


def decode_token(token: str) -> AuthContext | None:
    try:
        payload = jwt.decode(
            token,
            config.SUPABASE_JWT_SECRET,
            algorithms=[config.JWT_ALGORITHM],
            audience=config.JWT_AUDIENCE,
        )
    except JWTError:
        return None
    user_id = payload.get("sub")
    if not user_id:
        return None
    return AuthContext(user_id=user_id, email=payload.get("email"), role=payload.get("role"))


def _token_from_request(request: Request, credentials: HTTPAuthorizationCredentials | None) -> str | None:
    if credentials and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(SESSION_COOKIE)


def get_optional_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> AuthContext | None:
    token = _token_from_request(request, credentials)
    if not token:
        return None
    return decode_token(token)


def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> AuthContext:
    token = _token_from_request(request, credentials)
    if not token:
        raise ApiError(401, "Unauthorized", headers={"WWW-Authenticate": "Bearer"})
    user = decode_token(token)
    if user is None:
        raise ApiError(401, "Invalid token", headers={"WWW-Authenticate": "Bearer"})
    return user
