"""
Authentication Package

This package handles sign-in and session management for the Portal
service: a password flow checked against bcrypt hashes, federated provider
registration, and signed session tokens kept in sync with the user store.

Key responsibilities:
- Password sign-in (the authorize callback)
- Session token refresh (derive_token) and session reads (derive_session)
- Session cookie issuance and verification
- Provider listing, registration and sign-out endpoints

Modules:
- callbacks: the credential and session reconciler
- session: session token encoding, cookies and get_auth_session
- providers: federated and credentials provider registry
- utils: bcrypt hashing and credential parsing
- routes: public authentication endpoints (/auth/...)

The password sign-in flow:
1. Client posts email and password to /auth/callback/credentials
2. authorize verifies them against the stored hash
3. derive_token builds the session claims, which are signed into a cookie
4. Each /auth/session read refreshes the claims and rebuilds the session
"""

from .routes import auth_router
from .session import get_auth_session, require_auth_session

__all__ = [
    "auth_router",
    "get_auth_session",
    "require_auth_session",
]
