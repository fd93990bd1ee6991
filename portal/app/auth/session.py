"""
Session Token Module
====================

Handles creation and verification of the signed session token carried in
the session cookie, and reconstruction of the session object per request.
Supports HMAC (default) and RS256 signing.

The cookie holds the claims produced by ``derive_token``; the registered JWT
claims (iat, exp, iss, jti) are added on encode and stripped on decode.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from fastapi import Depends, HTTPException, Request, Response, status
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError

from ..config import Settings
from ..dependencies import get_app_settings, get_user_adapter
from ..models import Session, SessionUser, UserRecord
from .callbacks import derive_session, derive_token

logger = logging.getLogger(__name__)

_REGISTERED_CLAIMS = ("iat", "exp", "iss", "jti", "nbf")


# =============================================================================
# Exceptions
# =============================================================================

class JWTSessionError(Exception):
    """Base exception for session token errors"""
    pass


# =============================================================================
# Token Creation
# =============================================================================

def build_initial_token(user: UserRecord) -> Dict[str, Any]:
    """
    Claims for a token minted right after sign-in, before derive_token runs.
    """
    return {
        "name": user.name,
        "email": user.email,
        "picture": user.image,
        "sub": user.id,
    }


def encode_session_token(claims: Dict[str, Any], settings: Settings) -> str:
    """
    Sign session token claims.

    Args:
        claims: Claims returned by derive_token
        settings: Application settings

    Returns:
        Encoded JWT string

    Raises:
        JWTSessionError: If signing fails or the signing key is missing
    """
    try:
        # Create a copy to avoid mutating the input
        payload = {k: v for k, v in claims.items() if k not in _REGISTERED_CLAIMS}

        now = datetime.now(timezone.utc)
        payload.update({
            "iat": now,
            "exp": now + timedelta(seconds=settings.SESSION_MAX_AGE_SECONDS),
            "iss": settings.SESSION_JWT_ISSUER,
            "jti": str(uuid.uuid4()),
        })

        token = jwt.encode(
            payload,
            _get_signing_key(settings),
            algorithm=settings.jwt_algorithm
        )

        logger.debug(
            "Issued session token",
            extra={"user_id": payload.get("id") or payload.get("sub")}
        )

        return token

    except JWTSessionError:
        raise
    except Exception as e:
        logger.error(f"Failed to create session token: {e}", exc_info=True)
        raise JWTSessionError(f"Failed to create session token: {str(e)}") from e


# =============================================================================
# Token Verification
# =============================================================================

def decode_session_token(token: Optional[str], settings: Settings) -> Optional[Dict[str, Any]]:
    """
    Verify and decode a session token.

    An expired, tampered or otherwise invalid token means the visitor is
    signed out, so every token failure returns None.

    Args:
        token: JWT string from the session cookie
        settings: Application settings

    Returns:
        Claims without the registered JWT claims, or None

    Raises:
        JWTSessionError: If RS256 is enabled without a public key
    """
    if not token:
        return None

    try:
        decoded = jwt.decode(
            token,
            _get_verification_key(settings),
            algorithms=[settings.jwt_algorithm],
            issuer=settings.SESSION_JWT_ISSUER,
            options={"require": ["exp", "iat", "iss"]},
        )
    except ExpiredSignatureError:
        logger.info("Session token expired")
        return None
    except InvalidTokenError as e:
        logger.warning(f"Invalid session token: {e}")
        return None

    return {k: v for k, v in decoded.items() if k not in _REGISTERED_CLAIMS}


def get_token_expiry(settings: Settings) -> datetime:
    """Expiry of a token issued now."""
    return datetime.now(timezone.utc) + timedelta(seconds=settings.SESSION_MAX_AGE_SECONDS)


def _get_signing_key(settings: Settings) -> str:
    """Get the appropriate signing key based on algorithm."""
    if settings.USE_RS256_JWT:
        if not settings.JWT_PRIVATE_KEY:
            raise JWTSessionError("RS256 enabled but JWT_PRIVATE_KEY not configured")
        return settings.JWT_PRIVATE_KEY
    return settings.AUTH_SECRET


def _get_verification_key(settings: Settings) -> str:
    """Get the appropriate verification key based on algorithm."""
    if settings.USE_RS256_JWT:
        if not settings.JWT_PUBLIC_KEY:
            raise JWTSessionError("RS256 enabled but JWT_PUBLIC_KEY not configured")
        return settings.JWT_PUBLIC_KEY
    return settings.AUTH_SECRET


# =============================================================================
# Cookies
# =============================================================================

def set_session_cookie(response: Response, token: str, settings: Settings) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=settings.SESSION_MAX_AGE_SECONDS,
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite="lax",
        path="/",
    )


def clear_session_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite="lax",
        path="/",
    )


# =============================================================================
# Session Retrieval
# =============================================================================

async def load_session(request: Request, settings: Settings, users) -> Optional[Session]:
    """
    Rebuild the session for a request from its cookie.

    Runs the refresh pipeline: decode the cookie, derive_token, build the
    default session object, derive_session. The refreshed claims are left on
    ``request.state.session_claims`` so the caller can re-issue the cookie.

    A missing verification key is logged and treated as signed out.

    Returns:
        The session, or None when there is no valid session cookie
    """
    try:
        claims = decode_session_token(request.cookies.get(settings.SESSION_COOKIE_NAME), settings)
    except JWTSessionError as e:
        logger.error(f"Cannot verify session token: {e}")
        return None

    if claims is None:
        return None

    claims = await derive_token(claims, users)
    request.state.session_claims = claims

    session = Session(
        user=SessionUser(
            name=claims.get("name"),
            email=claims.get("email"),
            image=claims.get("picture"),
        ),
        expires=get_token_expiry(settings),
    )
    return await derive_session(session, claims, users)


# =============================================================================
# FastAPI Dependencies
# =============================================================================

async def get_auth_session(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    users=Depends(get_user_adapter),
) -> Optional[Session]:
    """
    FastAPI dependency for server-side session retrieval.

    Usage in routes:
        @app.get("/dashboard")
        async def dashboard(session: Optional[Session] = Depends(get_auth_session)):
            if session is None:
                return {"message": "Hello anonymous"}
            return {"message": f"Hello {session.user.name}"}

    Returns:
        The current session, or None when signed out
    """
    return await load_session(request, settings, users)


async def require_auth_session(
    session: Optional[Session] = Depends(get_auth_session),
) -> Session:
    """
    FastAPI dependency for routes that need a signed-in user.

    Raises:
        HTTPException: 401 if there is no valid session
    """
    if session is None or not session.user.id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not signed in",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return session


# =============================================================================
# Exports
# =============================================================================

__all__ = [
    # Creation
    "build_initial_token",
    "encode_session_token",

    # Verification
    "decode_session_token",

    # Cookies
    "set_session_cookie",
    "clear_session_cookie",

    # Retrieval
    "load_session",
    "get_auth_session",
    "require_auth_session",

    # Exceptions
    "JWTSessionError",
]
