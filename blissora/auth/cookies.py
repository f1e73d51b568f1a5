# blissora/auth/cookies.py
from flask import current_app


def _cookie_options():
    return {
        "httponly": True,
        "secure": current_app.config["AUTH_COOKIE_SECURE"],
        "samesite": "Strict",
        "path": "/",
    }


def set_session_cookies(response, pair):
    """Attach both tokens; the two cookies always travel together."""
    cfg = current_app.config
    opts = _cookie_options()
    response.set_cookie(
        cfg["REFRESH_COOKIE_NAME"],
        pair.refresh_token,
        max_age=int(cfg["REFRESH_COOKIE_MAX_AGE"].total_seconds()),
        **opts,
    )
    response.set_cookie(
        cfg["ACCESS_COOKIE_NAME"],
        pair.access_token,
        max_age=int(cfg["JWT_ACCESS_TOKEN_EXPIRES"].total_seconds()),
        **opts,
    )
    return response


def clear_session_cookies(response):
    cfg = current_app.config
    opts = _cookie_options()
    response.delete_cookie(cfg["REFRESH_COOKIE_NAME"], **opts)
    response.delete_cookie(cfg["ACCESS_COOKIE_NAME"], **opts)
    return response


def refresh_cookie(request):
    return request.cookies.get(current_app.config["REFRESH_COOKIE_NAME"])
