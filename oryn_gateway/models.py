"""
Data Models Module

This module defines Pydantic models for request/response validation
and data serialization throughout the gateway.

Models are organized by functional area:
- Identity models (the user record carried in the session)
- Provider models (GitHub token and profile payloads)
- Response models (identity-check, logout, health and error bodies)
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr


# ============================================================================
# Identity Models
# ============================================================================

class UserIdentity(BaseModel):
    """
    Snapshot of the provider-reported profile taken at login time.

    Every field is required: a record is only ever built from an explicit
    profile (see ``from_github_profile``) or from a verified session token
    that carries all five fields.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: StrictInt = Field(..., description="GitHub numeric user id")
    login: StrictStr = Field(..., description="GitHub username", min_length=1)
    name: StrictStr = Field(..., description="Display name (login when GitHub has none)")
    avatar_url: StrictStr = Field(..., description="Avatar image URL")
    role: StrictStr = Field(..., description="Console role label", min_length=1)

    @classmethod
    def from_github_profile(cls, profile: "GitHubProfile", role: str) -> "UserIdentity":
        """Build an identity, falling back to ``login`` for an empty name."""
        return cls(
            id=profile.id,
            login=profile.login,
            name=profile.name or profile.login,
            avatar_url=profile.avatar_url or "",
            role=role,
        )


# ============================================================================
# Provider Models
# ============================================================================

class GitHubTokenResponse(BaseModel):
    """Body returned by the GitHub access_token endpoint."""

    access_token: Optional[str] = None
    token_type: Optional[str] = None
    scope: Optional[str] = None
    error: Optional[str] = None
    error_description: Optional[str] = None


class GitHubProfile(BaseModel):
    """The subset of ``GET /user`` the gateway relies on."""

    model_config = ConfigDict(extra="ignore")

    id: StrictInt
    login: StrictStr = Field(..., min_length=1)
    name: Optional[str] = None
    avatar_url: Optional[str] = None


# ============================================================================
# Response Models
# ============================================================================

class LogoutResponse(BaseModel):
    """Confirmation returned by the logout endpoint."""
    success: bool = True


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service health status")
    service: str = Field(..., description="Service name")
    version: str = Field(..., description="Service version")


class ErrorResponse(BaseModel):
    """Minimal error body; never carries provider payloads or tracebacks."""
    error: str = Field(..., description="Short error message")
    detail: Optional[Dict[str, Any]] = Field(None, description="Additional error details")
