"""
api/routes/v1/auth.py -- Authentication REST endpoints.

Routes:
  GET  /api/v1/auth/providers  -- active login provider, if any (public)
  GET  /api/v1/auth/status     -- auth module configuration status (public)
  GET  /api/v1/auth/me         -- current principal (requires auth)
  POST /api/v1/auth/logout     -- clears the JWT cookie

The login itself is browser-driven and lives in web/routes.py
(GET /login/github and GET /callback).
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.models import AuthStatusResponse, MeResponse, OAuthProviderInfo
from auth.connection import LOGIN_PATH, SettingsConnectionProvider
from auth.dependencies import get_current_user
from auth.models import User
from auth.tokens import ACCESS_COOKIE

# Auth policy:
# - GET  /api/v1/auth/providers: public -- the login page renders buttons from it
# - GET  /api/v1/auth/status:    public -- exposes configuration problems only, no secrets
# - GET  /api/v1/auth/me:        requires auth (get_current_user)
# - POST /api/v1/auth/logout:    public -- clearing a cookie needs no prior auth
router = APIRouter()


@router.get("/auth/providers", response_model=list[OAuthProviderInfo])
async def list_providers(request: Request) -> list[OAuthProviderInfo]:
    """Return the configured login provider. Empty list when GitHub login is inactive."""
    connections: SettingsConnectionProvider = request.app.state.connections
    return [OAuthProviderInfo(login_url=LOGIN_PATH, **p) for p in connections.get_enabled_providers()]


@router.get("/auth/status", response_model=AuthStatusResponse)
async def auth_status(request: Request) -> AuthStatusResponse:
    connections: SettingsConnectionProvider = request.app.state.connections
    return AuthStatusResponse(
        enabled=connections.is_auth_module_configured(),
        configured=connections.get_active_connection() is not None,
        problems=connections.describe_problems(),
    )


@router.get("/auth/me", response_model=MeResponse)
async def me(current_user: User = Depends(get_current_user)) -> MeResponse:
    """Return identity information for the currently authenticated user."""
    return MeResponse(
        user_id=current_user.id,
        username=current_user.username,
        github_user_id=current_user.github_user_id,
        display_name=current_user.display_name,
        last_login=current_user.last_login,
    )


@router.post("/auth/logout")
async def logout() -> JSONResponse:
    """Clear the JWT cookie and end the session."""
    resp = JSONResponse(content={"message": "Logged out."})
    resp.delete_cookie(ACCESS_COOKIE)
    return resp
