# Account routes: local login/registration, logout and Google sign-in

import asyncio
import logging
import secrets
from pathlib import Path

from fastapi import APIRouter, Request
from fastapi.responses import RedirectResponse
from fastapi.templating import Jinja2Templates

from ideahub.auth import (
    LOCAL,
    OAUTH_STATE_KEY,
    end_session,
    get_current_user,
    hash_password,
    start_session,
    verify_password,
)
from ideahub.config import MIN_PASSWORD_LENGTH
from ideahub.errors import UpstreamUnavailable

logger = logging.getLogger(__name__)

router = APIRouter(tags=["accounts"])

templates = Jinja2Templates(directory=str(Path(__file__).parent / "static" / "html"))


def _render_login(request: Request, error: str = None, status_code: int = 200):
    return templates.TemplateResponse(request, "login.html", {
        "error": error,
        "google_enabled": request.app.state.services.google.is_enabled(),
    }, status_code=status_code)


@router.get("/login")
async def login_page(request: Request):
    """Serves the login page, or sends signed-in users home."""
    if await get_current_user(request) is not None:
        return RedirectResponse("/", status_code=303)
    return _render_login(request)


@router.post("/login")
async def login(request: Request):
    form = await request.form()
    username = (form.get("username") or "").strip()
    password = form.get("password") or ""

    user = await request.app.state.services.users.get_by_username(username) if username else None
    if user is None or not await asyncio.to_thread(verify_password, password, user.password_hash):
        logger.info(f"Failed login attempt for '{username}'")
        return _render_login(request, "Invalid username or password.", status_code=401)

    await start_session(request, user)
    return RedirectResponse("/", status_code=303)


@router.get("/register")
async def register_page(request: Request):
    return templates.TemplateResponse(request, "register.html", {"error": None})


@router.post("/register")
async def register(request: Request):
    form = await request.form()
    username = (form.get("username") or "").strip()
    password = form.get("password") or ""
    users = request.app.state.services.users

    error = None
    if not username or not password:
        error = "Username and password are required."
    elif len(password) < MIN_PASSWORD_LENGTH:
        error = f"Password must be at least {MIN_PASSWORD_LENGTH} characters."
    elif await users.get_by_username(username) is not None:
        error = "That username is already taken."

    if error:
        return templates.TemplateResponse(request, "register.html", {
            "error": error,
            "username": username,
        }, status_code=400)

    user = await users.create({
        "username": username,
        "password_hash": await asyncio.to_thread(hash_password, password),
        "auth_method": LOCAL,
    })
    await start_session(request, user)
    return RedirectResponse("/", status_code=303)


@router.get("/logout")
async def logout(request: Request):
    await end_session(request)
    return RedirectResponse("/login", status_code=303)


@router.get("/auth/google")
async def google_login(request: Request):
    google = request.app.state.services.google
    if not google.is_enabled():
        return _render_login(request, "Google sign-in is not configured.", status_code=503)

    state = secrets.token_urlsafe(16)
    request.session[OAUTH_STATE_KEY] = state
    return RedirectResponse(google.authorization_url(state), status_code=303)


@router.get("/auth/google/callback")
async def google_callback(request: Request):
    services = request.app.state.services
    params = request.query_params
    expected_state = request.session.pop(OAUTH_STATE_KEY, None)

    if params.get("error"):
        logger.info(f"Google sign-in declined: {params.get('error')}")
        return _render_login(request, "Google sign-in was cancelled.", status_code=401)
    if not expected_state or params.get("state") != expected_state or not params.get("code"):
        return _render_login(request, "Google sign-in failed. Please try again.", status_code=400)

    try:
        claims = await asyncio.to_thread(services.google.exchange_code, params["code"])
    except UpstreamUnavailable as e:
        logger.warning(f"Google sign-in failed: {e}")
        return _render_login(request, "Google sign-in failed. Please try again.", status_code=502)

    google_id = claims.get("sub")
    if not google_id:
        return _render_login(request, "Google sign-in failed. Please try again.", status_code=502)

    user = await services.users.upsert_google_user(
        google_id,
        claims.get("name") or claims.get("email") or "Google user",
        claims.get("email"),
    )
    await start_session(request, user)
    return RedirectResponse("/", status_code=303)
