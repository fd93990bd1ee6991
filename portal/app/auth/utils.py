"""
Authentication utilities for password hashing and credential inspection.

This module handles:
- Hashing new passwords with bcrypt
- Comparing submitted passwords against stored hashes
- Normalizing credentials submitted as form or JSON bodies
"""

import logging
from typing import Any, Dict, Mapping, Optional

import bcrypt

from ..models import Credentials

logger = logging.getLogger(__name__)


# =============================================================================
# Password Hashing
# =============================================================================

def hash_password(password: str, rounds: int = 12) -> str:
    """
    Hash a password with a fresh bcrypt salt.

    Args:
        password: Plaintext password (at most 72 bytes)
        rounds: bcrypt work factor

    Returns:
        The bcrypt hash as text, salt and cost embedded
    """
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, hashed_password: str) -> bool:
    """
    Compare a plaintext password with a stored bcrypt hash.

    bcrypt rejects over-long passwords and malformed hashes with ValueError;
    both are reported as a mismatch.

    Args:
        password: Password submitted at sign-in
        hashed_password: Hash stored on the user record

    Returns:
        True if the password matches
    """
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError as e:
        logger.warning(f"Password comparison rejected: {e}")
        return False


# =============================================================================
# Credential Helpers
# =============================================================================

def credentials_from_mapping(data: Mapping[str, Any]) -> Credentials:
    """
    Build Credentials from a submitted form or JSON object.

    Non-string values are ignored so that a malformed body ends up as
    missing credentials rather than a validation error.
    """
    fields: Dict[str, Optional[str]] = {}
    for key in ("name", "email", "password"):
        value = data.get(key)
        fields[key] = value if isinstance(value, str) else None
    return Credentials(**fields)
