from fastapi import HTTPException, Request, status

from .config import Settings
from .db import UserAdapter


def get_app_settings(request: Request) -> Settings:
    """
    Dependency returning the settings the application was created with.
    """
    return request.app.state.settings


def get_user_adapter(request: Request) -> UserAdapter:
    """
    Dependency returning the user adapter built at startup.
    """
    users = getattr(request.app.state, "users", None)
    if users is None:
        # lifespan has not run, e.g. the app was served without startup events
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="User store not initialized"
        )
    return users
