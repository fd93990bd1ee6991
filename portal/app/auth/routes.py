"""
Authentication routes for password sign-in, session reads and sign-out.

The OAuth redirect handshake for the federated providers is not served
here; only their public registration is listed.
"""

import asyncio
import logging
from typing import Any, Dict, Optional
from urllib.parse import urlencode, urlsplit

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse, RedirectResponse

from ..config import Settings
from ..db import UserAlreadyExistsError
from ..dependencies import get_app_settings, get_user_adapter
from ..models import PublicUser, RegisterRequest
from .callbacks import CredentialsSigninError, authorize, derive_token
from .providers import build_providers, describe_providers
from .session import (
    build_initial_token,
    clear_session_cookie,
    encode_session_token,
    load_session,
    set_session_cookie,
)
from .utils import credentials_from_mapping, hash_password

logger = logging.getLogger(__name__)


# =============================================================================
# Router Setup
# =============================================================================

auth_router = APIRouter(
    prefix="/auth",
    tags=["authentication"],
)


# =============================================================================
# Helpers
# =============================================================================

async def _read_body(request: Request) -> Dict[str, Any]:
    """Read a JSON or form body into a plain dict. Anything else is empty."""
    content_type = request.headers.get("content-type", "")

    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}

    if content_type.startswith(("application/x-www-form-urlencoded", "multipart/form-data")):
        form = await request.form()
        return {key: value for key, value in form.items()}

    return {}


def _safe_callback_url(value: Optional[Any], default: str = "/") -> str:
    """
    Only local paths are accepted as post sign-in redirects.

    Browsers read a backslash as a slash, so ``/\\host`` would leave the site
    just like ``//host``.
    """
    if not isinstance(value, str) or not value.startswith("/") or "\\" in value:
        return default

    parts = urlsplit(value)
    if parts.scheme or parts.netloc:
        return default
    return value


# =============================================================================
# Provider Listing
# =============================================================================

@auth_router.get("/providers")
async def providers(settings: Settings = Depends(get_app_settings)) -> Dict[str, Dict[str, str]]:
    """
    List enabled sign-in providers for the sign-in page.

    Returns:
        Mapping of provider id to its public description
    """
    return describe_providers(build_providers(settings), base_path=auth_router.prefix)


# =============================================================================
# Password Sign-in
# =============================================================================

@auth_router.post("/callback/credentials")
async def credentials_callback(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    users=Depends(get_user_adapter),
):
    """
    Handle a password sign-in submission.

    This endpoint:
    1. Reads email and password from a form or JSON body
    2. Runs the authorize callback
    3. Mints the initial token and passes it through derive_token
    4. Sets the signed session cookie
    5. Redirects to callbackUrl

    A rejected sign-in redirects to the error page with the reason in the
    ``error`` query parameter and leaves any existing cookie untouched.
    """
    body = await _read_body(request)
    callback_url = _safe_callback_url(body.get("callbackUrl"))

    try:
        user = await authorize(credentials_from_mapping(body), users)
    except CredentialsSigninError as e:
        query = urlencode({"error": str(e), "callbackUrl": callback_url})
        return RedirectResponse(url=f"{settings.ERROR_PAGE}?{query}", status_code=status.HTTP_302_FOUND)

    claims = await derive_token(build_initial_token(user), users, user=user)

    response = RedirectResponse(url=callback_url, status_code=status.HTTP_302_FOUND)
    set_session_cookie(response, encode_session_token(claims, settings), settings)

    logger.info("Signed in with credentials", extra={"user_id": user.id})
    return response


# =============================================================================
# Session Endpoint
# =============================================================================

@auth_router.get("/session")
async def session(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    users=Depends(get_user_adapter),
):
    """
    Return the current session, or an empty object when signed out.

    Every successful read re-issues the cookie with the refreshed claims and
    a renewed expiry. An invalid cookie is cleared.
    """
    current = await load_session(request, settings, users)

    if current is None:
        response = JSONResponse(content={})
        if settings.SESSION_COOKIE_NAME in request.cookies:
            clear_session_cookie(response, settings)
        return response

    response = JSONResponse(content=current.model_dump(mode="json"))
    set_session_cookie(
        response,
        encode_session_token(request.state.session_claims, settings),
        settings,
    )
    return response


# =============================================================================
# Sign-out
# =============================================================================

@auth_router.post("/signout")
async def signout(request: Request, settings: Settings = Depends(get_app_settings)):
    """Clear the session cookie and redirect to callbackUrl or the home page."""
    body = await _read_body(request)

    response = RedirectResponse(
        url=_safe_callback_url(body.get("callbackUrl")),
        status_code=status.HTTP_302_FOUND,
    )
    clear_session_cookie(response, settings)
    return response


# =============================================================================
# Registration
# =============================================================================

@auth_router.post("/register", status_code=status.HTTP_201_CREATED, response_model=PublicUser)
async def register(
    payload: RegisterRequest,
    settings: Settings = Depends(get_app_settings),
    users=Depends(get_user_adapter),
):
    """
    Create a password account.

    The email is stored as normalized by validation (domain lower-cased);
    sign-in matches the stored value exactly.

    Raises:
        HTTPException: 409 if the email or username is already registered
    """
    hashed_password = await asyncio.to_thread(
        hash_password, payload.password, rounds=settings.BCRYPT_ROUNDS
    )

    try:
        user = await users.create_user(
            email=payload.email,
            name=payload.name,
            hashed_password=hashed_password,
            username=payload.username,
        )
    except UserAlreadyExistsError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="An account with this email or username already exists",
        )

    return PublicUser.model_validate(user)
