"""
web/routes.py -- Browser routes for the GitHub login flow.

These routes serve redirects and server-rendered HTML. They share app.state
with the API routes (same user store, connection provider and auth flow).

Routes:
  GET  /                 -- signed-in landing page (auth required)
  GET  /login            -- login page with the "Login with GitHub" link
  GET  /login/github     -- begin login: issue state, redirect to GitHub
  GET  /callback         -- complete login: GitHub redirects back here
  POST /logout           -- clear cookie, redirect /login

Outcome mapping for GET /callback:
  Authenticated -> JWT cookie, 302 to /
  NotApplicable -> 302 to /login (not a provider callback at all)
  Rejected      -> 401 error page with the outcome's user-facing message

Security:
  - ?error= on /login goes through a whitelist; the raw value never reaches
    the template.
  - Jinja2 autoescaping covers the one interpolated value on the rejection
    page (a username from the GitHub profile).
  - GET /callback is rate limited per client address.
"""

import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from api.limiter import callback_rate_limit, limiter
from auth.connection import LOGIN_PATH, SettingsConnectionProvider
from auth.dependencies import try_get_current_user
from auth.errors import NotConfiguredError
from auth.flow import AuthenticationFlow
from auth.models import NotApplicable, Rejected
from auth.provider import CALLBACK_PATH
from auth.store import UserStore
from auth.tokens import ACCESS_COOKIE, create_access_token, set_auth_cookie

logger = logging.getLogger("hublink.web")

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))
router = APIRouter()

# Whitelist mapping for ?error= query params on /login.
_ERROR_MESSAGES: dict[str, str] = {
    "not_configured": "GitHub login is not configured on this server.",
}


@router.get("/", response_class=HTMLResponse)
def home(request: Request):
    user = try_get_current_user(request)
    if user is None:
        return RedirectResponse("/login", status_code=302)
    return templates.TemplateResponse(request, "home.html", {"user": user})


# Route registration order: /login/github must come before GET /login.


@router.get(LOGIN_PATH, name="github_login")
def github_login(request: Request) -> RedirectResponse:
    """Redirect the browser to GitHub's authorization page."""
    flow: AuthenticationFlow = request.app.state.auth_flow
    try:
        url = flow.begin_login(request.session)
    except NotConfiguredError:
        logger.warning("GitHub login requested while the GitHub connection is not configured")
        return RedirectResponse("/login?error=not_configured", status_code=302)
    return RedirectResponse(url, status_code=302)


@router.get(CALLBACK_PATH, response_class=HTMLResponse, name="github_callback")
@limiter.limit(callback_rate_limit)  # must be BELOW @router so the registered endpoint is the limited wrapper
def github_callback(
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
):
    """Complete the GitHub login and establish the session principal.

    Sync on purpose: the flow makes two blocking HTTP calls to GitHub, so
    FastAPI runs this handler in its threadpool.
    """
    flow: AuthenticationFlow = request.app.state.auth_flow
    outcome = flow.complete_login(request.session, code, state)

    if isinstance(outcome, NotApplicable):
        return RedirectResponse("/login", status_code=302)

    if isinstance(outcome, Rejected):
        resp = templates.TemplateResponse(
            request,
            "login_error.html",
            {"message": outcome.message, "reason": outcome.reason.value},
            status_code=401,
        )
        resp.headers["Cache-Control"] = "no-store"
        return resp

    user = outcome.principal
    user_store: UserStore = request.app.state.user_store
    user_store.update_last_login(user.id)

    token_str = create_access_token(user.id, user.username)
    resp = RedirectResponse("/", status_code=302)
    set_auth_cookie(resp, token_str)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.get("/login", response_class=HTMLResponse)
def login_form(request: Request):
    """Render the login page with the GitHub button when login is available."""
    if try_get_current_user(request) is not None:
        return RedirectResponse("/", status_code=302)

    connections: SettingsConnectionProvider = request.app.state.connections
    error_msg = _ERROR_MESSAGES.get(request.query_params.get("error", ""), None)
    return templates.TemplateResponse(
        request,
        "login.html",
        {
            "error_msg": error_msg,
            "providers": connections.get_enabled_providers(),
            "login_url": LOGIN_PATH,
        },
    )


@router.post("/logout")
def logout() -> RedirectResponse:
    resp = RedirectResponse("/login", status_code=302)
    resp.delete_cookie(ACCESS_COOKIE)
    return resp
