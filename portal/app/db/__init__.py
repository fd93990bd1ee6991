"""
Database Package

Persistence for framework-managed entities. Only users are stored here;
OAuth accounts and server-side sessions are not, since sessions live in
the signed cookie.

Modules:
- database: engine and session factory construction, table creation
- models: SQLAlchemy declarative models
- adapter: UserAdapter, the lookup/create/update surface used by auth
"""

from .adapter import UserAdapter, UserAlreadyExistsError
from .database import Base, create_engine_from_settings, create_session_factory, init_models

__all__ = [
    "Base",
    "UserAdapter",
    "UserAlreadyExistsError",
    "create_engine_from_settings",
    "create_session_factory",
    "init_models",
]
