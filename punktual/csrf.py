"""CSRF tokens for state-changing requests.

The client receives a random token (JSON body and a script-readable cookie)
and echoes it in the ``X-CSRF-Token`` header. The server only keeps the
SHA-256 of the token, in an httpOnly cookie, and compares the two.
"""

import hashlib
import hmac
import logging
import secrets

from fastapi import Request, Response

from punktual import config
from punktual.errors import ApiError

logger = logging.getLogger("punktual.csrf")

SERVER_COOKIE = "__csrf_token"
CLIENT_COOKIE = "__csrf_token_client"
HEADER = "x-csrf-token"
MAX_AGE = 3600


def generate_token() -> str:
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def validate_csrf_token(client_token: str | None, server_hash: str | None) -> bool:
    if not client_token or not server_hash:
        logger.warning("CSRF token or cookie missing")
        return False
    return hmac.compare_digest(hash_token(client_token), server_hash)


def issue_token(response: Response) -> str:
    token = generate_token()
    common = dict(max_age=MAX_AGE, path="/", samesite="strict", secure=config.IS_PROD)
    response.set_cookie(key=SERVER_COOKIE, value=hash_token(token), httponly=True, **common)
    response.set_cookie(key=CLIENT_COOKIE, value=token, httponly=False, **common)
    return token


def require_csrf(request: Request) -> None:
    """Dependency guarding POST/PUT/PATCH/DELETE endpoints."""
    client_token = request.headers.get(HEADER)
    if not client_token:
        raise ApiError(403, "CSRF token missing")
    server_hash = request.cookies.get(SERVER_COOKIE)
    if not server_hash:
        raise ApiError(403, "CSRF token not found in session")
    if not validate_csrf_token(client_token, server_hash):
        logger.warning("CSRF token validation failed for %s", request.url.path)
        raise ApiError(403, "CSRF token validation failed")
