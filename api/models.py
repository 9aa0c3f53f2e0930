"""
API request and response models for HubLink REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict

# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class OAuthProviderInfo(BaseModel):
    """One entry of GET /api/v1/auth/providers."""

    model_config = ConfigDict(frozen=True)

    name: str
    label: str
    description: str
    login_url: str


class AuthStatusResponse(BaseModel):
    """Response for GET /api/v1/auth/status.

    problems lists every reason login is unavailable; empty when active.
    """

    model_config = ConfigDict(frozen=True)

    enabled: bool
    configured: bool
    problems: list[str]


class MeResponse(BaseModel):
    """Identity of the currently authenticated principal."""

    model_config = ConfigDict(frozen=True)

    user_id: int
    username: str
    github_user_id: Optional[str] = None
    display_name: Optional[str] = None
    last_login: Optional[str] = None


# ---------------------------------------------------------------------------
# Errors / health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
