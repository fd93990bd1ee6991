"""
Data Models Module

This module defines Pydantic models for request/response validation
and data serialization throughout the Portal service.

Models are organized by functional area:
- User models (the stored record and its public projection)
- Authentication models (credentials, registration, profile updates)
- Session models (the server-side session object)
- Service models (health and error responses)
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


# ============================================================================
# User Models
# ============================================================================

class UserRecord(BaseModel):
    """A user row as handed out by the user adapter."""
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., description="Unique user identifier")
    email: str = Field(..., description="Email address, case-sensitive as stored")
    name: Optional[str] = Field(None, description="Display name")
    image: Optional[str] = Field(None, description="Avatar URL")
    hashed_password: Optional[str] = Field(None, description="bcrypt hash, absent for OAuth-only accounts")
    username: Optional[str] = Field(None, description="Unique handle")


class PublicUser(BaseModel):
    """User profile safe to return to clients (no password hash)."""
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., description="Unique user identifier")
    email: str = Field(..., description="Email address")
    name: Optional[str] = Field(None, description="Display name")
    image: Optional[str] = Field(None, description="Avatar URL")
    username: Optional[str] = Field(None, description="Unique handle")


# ============================================================================
# Authentication Models
# ============================================================================

class Credentials(BaseModel):
    """Credentials submitted to the password sign-in flow. Never persisted."""
    name: Optional[str] = Field(None, description="Display name (unused by sign-in)")
    email: Optional[str] = Field(None, description="Account email")
    password: Optional[str] = Field(None, description="Plaintext password")


class RegisterRequest(BaseModel):
    """Request model for creating a password account."""
    name: Optional[str] = Field(None, description="Display name", max_length=120)
    email: EmailStr = Field(..., description="Account email")
    password: str = Field(..., description="Plaintext password", min_length=8)
    username: Optional[str] = Field(None, description="Unique handle", min_length=3, max_length=40)

    @field_validator("password")
    @classmethod
    def validate_password_length(cls, v: str) -> str:
        """bcrypt only looks at the first 72 bytes of a password."""
        if len(v.encode("utf-8")) > 72:
            raise ValueError("Password must be at most 72 bytes")
        return v


class ProfileUpdate(BaseModel):
    """Request model for editing the signed-in user's profile."""
    name: Optional[str] = Field(None, description="New display name", min_length=1, max_length=120)
    image: Optional[str] = Field(None, description="New avatar URL")
    username: Optional[str] = Field(None, description="New handle", min_length=3, max_length=40)


# ============================================================================
# Session Models
# ============================================================================

class SessionUser(BaseModel):
    """Identity fields exposed to application code for the current request."""
    id: Optional[str] = Field(None, description="User identifier")
    name: Optional[str] = Field(None, description="Display name")
    email: Optional[str] = Field(None, description="Email address")
    image: Optional[str] = Field(None, description="Avatar URL")
    username: Optional[str] = Field(None, description="Unique handle")


class Session(BaseModel):
    """Server-side session object, rebuilt on every request."""
    user: SessionUser = Field(default_factory=SessionUser, description="Current user")
    expires: datetime = Field(..., description="When the session token expires")


# ============================================================================
# Health Check Models
# ============================================================================

class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service health status")
    service: str = Field(..., description="Service name")
    version: str = Field(..., description="Service version")


# ============================================================================
# Error Models
# ============================================================================

class ErrorResponse(BaseModel):
    """Standardized error response model."""
    error: str = Field(..., description="Error type or code")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")
