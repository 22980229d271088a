"""
verify.py
---------
Purpose:
    Supabase JWT verification (ES256 via the project's JWKS).

Notes:
    - The JWKS client is created on first use and caches signing keys.
    - Tokens without a subject are rejected; the subject is the user id every
      workflow operation is scoped to.
"""

from functools import lru_cache

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import PyJWKClient

from app.config import settings
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

SUPABASE_AUDIENCE = "authenticated"
JWKS_CACHE_SECONDS = 3600

_security = HTTPBearer()


@lru_cache(maxsize=1)
def get_jwk_client() -> PyJWKClient:
    return PyJWKClient(settings.jwks_url(), cache_keys=True, lifespan=JWKS_CACHE_SECONDS)


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid authentication token",
        headers={"WWW-Authenticate": "Bearer"},
    )


def verify_jwt(token: str) -> dict:
    try:
        signing_key = get_jwk_client().get_signing_key_from_jwt(token)
        claims = jwt.decode(
            token,
            signing_key.key,
            algorithms=["ES256"],
            audience=SUPABASE_AUDIENCE,
            options={"verify_exp": True, "require": ["exp", "sub"]},
        )
    except jwt.PyJWTError as e:
        logger.info("Rejected bearer token", error_type=type(e).__name__)
        raise _unauthorized() from e

    if not claims.get("sub"):
        raise _unauthorized()
    return claims


def auth_dependency(credentials: HTTPAuthorizationCredentials = Depends(_security)) -> dict:
    return verify_jwt(credentials.credentials)
