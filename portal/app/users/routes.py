"""
User Profile Routes
===================

Endpoints:
----------
- GET /users/me: profile of the signed-in user
- PATCH /users/me: update name, image or username
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from ..auth.session import require_auth_session
from ..db import UserAlreadyExistsError
from ..dependencies import get_user_adapter
from ..models import ProfileUpdate, PublicUser, Session

logger = logging.getLogger(__name__)

users_router = APIRouter(prefix="/users", tags=["users"])


@users_router.get("/me", response_model=PublicUser)
async def read_me(
    session: Session = Depends(require_auth_session),
    users=Depends(get_user_adapter),
):
    """
    Return the stored profile of the signed-in user.

    Raises:
        HTTPException: 401 if signed out, 404 if the account no longer exists
    """
    user = await users.get_user(session.user.id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    return PublicUser.model_validate(user)


@users_router.patch("/me", response_model=PublicUser)
async def update_me(
    changes: ProfileUpdate,
    session: Session = Depends(require_auth_session),
    users=Depends(get_user_adapter),
):
    """
    Update the signed-in user's profile.

    Only fields present in the request body are changed.

    Raises:
        HTTPException: 401 if signed out, 404 if the account no longer
            exists, 409 if the username is taken
    """
    fields = changes.model_dump(exclude_unset=True)

    try:
        user = await users.update_user(session.user.id, **fields)
    except UserAlreadyExistsError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Username already in use"
        )

    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    logger.info("Profile updated", extra={"user_id": user.id, "fields": sorted(fields)})
    return PublicUser.model_validate(user)
