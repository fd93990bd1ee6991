"""
Users Package
=============

Profile endpoints for the signed-in user.

Main Components:
----------------
- routes.py: FastAPI router with /users/me (read and update)

Profile edits show up in the session immediately: the session read looks
the user up again and the next token refresh rebuilds the claims.

Usage:
------
    from portal.app.users.routes import users_router
    app.include_router(users_router)
"""

from .routes import users_router

__all__ = ["users_router"]
