import secrets
from urllib.parse import urlencode

from flask import current_app, redirect, request, session

from . import bp
from ..utils.api import ok
from ..utils.payload import json_body
from .cookies import clear_session_cookies, refresh_cookie, set_session_cookies
from .google import GoogleOAuthClient
from .service import build_auth_service

OAUTH_STATE_KEY = "google_oauth_state"


def _client_redirect(path, **params):
    url = f"{current_app.config['CLIENT_URL'].rstrip('/')}{path}"
    if params:
        url = f"{url}?{urlencode(params)}"
    return redirect(url)


@bp.post("/register")
def register():
    data = json_body()
    user, pair = build_auth_service().register(
        name=data.get("name"),
        email=data.get("email"),
        password=data.get("password"),
        role=data.get("role"),
        store_name=data.get("store_name"),
    )
    resp = ok("Account created successfully", {"user": user.public_profile(with_role=False)}, status=201)
    return set_session_cookies(resp, pair)


@bp.post("/login")
def login():
    data = json_body()
    user, pair = build_auth_service().login(data.get("email"), data.get("password"))
    resp = ok("You've logged in successfully", {"user": user.public_profile()})
    return set_session_cookies(resp, pair)


@bp.get("/google")
def google_login():
    client = GoogleOAuthClient.from_config(current_app.config)
    if not client.configured:
        current_app.logger.error("google login requested but GOOGLE_CLIENT_ID/SECRET are not set")
        return _client_redirect("/auth/error", message="Authentication failed")
    state = secrets.token_urlsafe(24)
    session[OAUTH_STATE_KEY] = state
    return redirect(client.authorization_url(state))


@bp.get("/google/callback")
def google_callback():
    # browser-driven: every outcome is a redirect, never JSON
    expected_state = session.pop(OAUTH_STATE_KEY, None)
    try:
        if request.args.get("error"):
            raise ValueError(f"provider returned error: {request.args['error']}")
        code = request.args.get("code")
        if not code or not expected_state or request.args.get("state") != expected_state:
            raise ValueError("missing code or state mismatch")
        profile = GoogleOAuthClient.from_config(current_app.config).profile_from_code(code)
        _, pair = build_auth_service().oauth_login(profile)
    except Exception as e:
        current_app.logger.warning("google oauth callback failed: %s", e)
        return _client_redirect("/auth/error", message="Authentication failed")

    return set_session_cookies(_client_redirect("/auth/success"), pair)


@bp.post("/refresh")
def refresh():
    _, pair = build_auth_service().renew(refresh_cookie(request))
    resp = ok("Token refreshed", {"access_token": pair.access_token})
    return set_session_cookies(resp, pair)


@bp.get("/me")
def me():
    user, pair = build_auth_service().renew(refresh_cookie(request))
    resp = ok("OK", {"user": user.public_profile()})
    return set_session_cookies(resp, pair)


@bp.post("/logout")
def logout():
    build_auth_service().logout(refresh_cookie(request))
    return clear_session_cookies(ok("Logged out successfully"))
