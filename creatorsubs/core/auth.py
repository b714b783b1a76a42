"""
Caller identity for API routes.

A Bearer JWT (HS256, signed with AUTH_SECRET_KEY) names the caller in its
`sub` claim. When ALLOW_USER_ID_HEADER is on, X-User-Id is accepted
instead; tests and local development rely on it.
"""
import logging
from typing import Optional

import jwt
from fastapi import Header, HTTPException, Request

from creatorsubs.core.config import settings

logger = logging.getLogger(__name__)


def _bearer_token(request: Request) -> Optional[str]:
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


def verify_token(token: str, secret: Optional[str] = None) -> Optional[str]:
    """
    Return the `sub` of a valid token, or None when no secret is configured.

    Raises:
        HTTPException 401: expired, badly signed, or missing `sub`
    """
    key = secret or settings.AUTH_SECRET_KEY
    if not key:
        logger.debug("AUTH_SECRET_KEY unset; bearer tokens are not accepted")
        return None

    try:
        claims = jwt.decode(
            token,
            key,
            algorithms=["HS256"],
            audience=settings.AUTH_AUDIENCE,
            issuer=settings.AUTH_ISSUER,
            options={"verify_aud": bool(settings.AUTH_AUDIENCE), "require": ["sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError as e:
        logger.debug(f"Rejected token: {e}")
        raise HTTPException(status_code=401, detail="Invalid token")

    return str(claims["sub"])


async def get_current_user_id(
    request: Request,
    x_user_id: Optional[str] = Header(None, description="Caller id for tests and local development"),
) -> str:
    """FastAPI dependency: the verified caller id, also stored on request.state."""
    token = _bearer_token(request)
    user_id = verify_token(token) if token else None
    if not user_id and x_user_id and settings.ALLOW_USER_ID_HEADER:
        user_id = x_user_id
    if not user_id:
        raise HTTPException(
            status_code=401,
            detail="Missing Authorization (Bearer JWT) or X-User-Id header",
        )
    request.state.user_id = user_id
    return user_id
