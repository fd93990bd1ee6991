"""
Credential & Session Reconciler
===============================

The three callbacks the sign-in pipeline runs:

- authorize:      password sign-in, returns the user record or raises
- derive_token:   rebuilds the session token claims on every refresh
- derive_session: turns token claims into the session object handed to
                  application code

All three take the user adapter explicitly. Anything with find-by-email
and find-by-id coroutines (``get_user_by_email`` / ``get_user``) works.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from ..models import Credentials, Session, SessionUser, UserRecord
from .utils import verify_password

logger = logging.getLogger(__name__)


# =============================================================================
# Exceptions
# =============================================================================

class CredentialsSigninError(Exception):
    """Base exception for rejected password sign-ins"""

    message = "Sign in failed. Check the details you provided are correct."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)


class MissingCredentials(CredentialsSigninError):
    message = "Please enter email and password"


class UserNotFound(CredentialsSigninError):
    message = "User not found. Please try again."


class InvalidPassword(CredentialsSigninError):
    message = "The entered password is not correct. Please try again."


# =============================================================================
# Password Sign-in
# =============================================================================

async def authorize(credentials: Optional[Credentials], users) -> UserRecord:
    """
    Verify a password sign-in attempt.

    Args:
        credentials: Submitted credentials, possibly missing fields
        users: User adapter

    Returns:
        The full user record

    Raises:
        MissingCredentials: If email or password is missing or empty
        UserNotFound: If no user has this email, or the user has no password
        InvalidPassword: If the password does not match the stored hash
    """
    if credentials is None or not credentials.email or not credentials.password:
        raise MissingCredentials()

    user = await users.get_user_by_email(credentials.email)

    # OAuth-only accounts have no hash and are reported the same as unknown emails
    if user is None or not user.hashed_password:
        logger.warning("Sign-in for unknown or passwordless account")
        raise UserNotFound()

    # bcrypt blocks, so it runs in a worker thread
    if not await asyncio.to_thread(verify_password, credentials.password, user.hashed_password):
        logger.warning("Sign-in with wrong password", extra={"user_id": user.id})
        raise InvalidPassword()

    logger.info("Password sign-in accepted", extra={"user_id": user.id})
    return user


# =============================================================================
# Token Refresh
# =============================================================================

async def derive_token(
    token: Dict[str, Any],
    users,
    user: Optional[UserRecord] = None,
) -> Dict[str, Any]:
    """
    Rebuild session token claims from the stored user.

    When a user with the token's email exists, the claims are rebuilt from
    the record and every other claim is dropped, so a changed profile heals
    on the next refresh. Otherwise the token is kept, stamped with the id of
    the user who just signed in (if any). Never raises.

    Args:
        token: Current token claims
        users: User adapter
        user: The user returned by sign-in, only on the sign-in cycle

    Returns:
        Claims for the next session token
    """
    db_user = await users.get_user_by_email(token.get("email"))

    if db_user is None:
        if user is not None:
            token["id"] = user.id
        else:
            logger.debug("No stored user for session token; keeping claims")
        return token

    return {
        "id": db_user.id,
        "name": db_user.name,
        "email": db_user.email,
        "picture": db_user.image,
    }


# =============================================================================
# Session Read
# =============================================================================

async def derive_session(
    session: Session,
    token: Optional[Dict[str, Any]],
    users,
) -> Session:
    """
    Fill the session object from token claims and the live user record.

    Display fields are freshened on every read: after copying the token
    claims, the user is looked up again by id (by email for tokens that
    carry no id) and the stored image, username and lower-cased name
    overwrite the token values. derive_token never puts a username in the
    claims, so that one comes from the store alone. Token claims only
    change on refresh, and this keeps the avatar and name current in
    between at the price of one extra read per session check. If the user is gone the
    token values stay.

    A session without a user object gets an empty one before copying.

    Args:
        session: Session object to fill
        token: Decoded token claims
        users: User adapter

    Returns:
        The same session, updated in place
    """
    if session.user is None:
        session.user = SessionUser()

    if token:
        session.user.id = token.get("id")
        session.user.name = token.get("name")
        session.user.email = token.get("email")
        session.user.image = token.get("picture")
        session.user.username = token.get("username")

    claims = token or {}
    if claims.get("id"):
        db_user = await users.get_user(claims["id"])
    else:
        # Tokens minted before the id was stamped only carry the email
        db_user = await users.get_user_by_email(claims.get("email"))

    if db_user is not None:
        session.user.image = db_user.image
        session.user.name = db_user.name.lower() if db_user.name is not None else None
        session.user.username = db_user.username

    return session


__all__ = [
    "authorize",
    "derive_token",
    "derive_session",
    "CredentialsSigninError",
    "MissingCredentials",
    "UserNotFound",
    "InvalidPassword",
]
