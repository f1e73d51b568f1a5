# blissora/auth/google.py
from dataclasses import dataclass
from urllib.parse import urlencode

import requests

AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"
SCOPES = ("openid", "email", "profile")


class OAuthError(Exception):
    pass


@dataclass(frozen=True)
class OAuthProfile:
    subject: str
    email: str
    name: str
    avatar: str | None = None


class GoogleOAuthClient:
    """Authorization-code flow against Google, limited to login."""

    def __init__(self, client_id, client_secret, redirect_uri, timeout=10):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.timeout = timeout

    @classmethod
    def from_config(cls, config):
        return cls(config["GOOGLE_CLIENT_ID"], config["GOOGLE_CLIENT_SECRET"], config["GOOGLE_REDIRECT_URI"])

    @property
    def configured(self):
        return bool(self.client_id and self.client_secret)

    def authorization_url(self, state):
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(SCOPES),
            "state": state,
            "prompt": "select_account",
        }
        return f"{AUTH_URL}?{urlencode(params)}"

    def exchange_code(self, code):
        resp = requests.post(
            TOKEN_URL,
            data={
                "code": code,
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "redirect_uri": self.redirect_uri,
                "grant_type": "authorization_code",
            },
            timeout=self.timeout,
        )
        if resp.status_code != 200:
            raise OAuthError(f"token exchange failed ({resp.status_code})")
        token = resp.json().get("access_token")
        if not token:
            raise OAuthError("token exchange returned no access_token")
        return token

    def fetch_profile(self, access_token) -> OAuthProfile:
        resp = requests.get(
            USERINFO_URL,
            headers={"Authorization": f"Bearer {access_token}"},
            timeout=self.timeout,
        )
        if resp.status_code != 200:
            raise OAuthError(f"userinfo request failed ({resp.status_code})")
        info = resp.json()
        if not info.get("id") or not info.get("email"):
            raise OAuthError("userinfo is missing id or email")
        if info.get("verified_email") is False:
            raise OAuthError("google account email is not verified")
        return OAuthProfile(
            subject=str(info["id"]),
            email=info["email"],
            name=info.get("name") or info["email"].split("@")[0],
            avatar=info.get("picture"),
        )

    def profile_from_code(self, code) -> OAuthProfile:
        return self.fetch_profile(self.exchange_code(code))
