"""Access / refresh token minting.

Both tokens carry the same claim set and are compatible with
Flask-JWT-Extended's decoder (``sub``, ``type``, ``jti``, ``fresh``), so the
access token is accepted by ``@jwt_required()`` as-is. Each token type is
signed with its own secret.
"""
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt

from ..errors import InvalidToken, SessionExpired


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


class TokenMinter:
    def __init__(self, access_secret, refresh_secret, access_ttl: timedelta, refresh_ttl: timedelta,
                 algorithm="HS256"):
        if access_secret == refresh_secret:
            raise ValueError("access and refresh tokens need different secrets")
        self.access_secret = access_secret
        self.refresh_secret = refresh_secret
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self.algorithm = algorithm

    @classmethod
    def from_config(cls, config):
        return cls(
            access_secret=config["JWT_SECRET_KEY"],
            refresh_secret=config["JWT_REFRESH_SECRET_KEY"],
            access_ttl=config["JWT_ACCESS_TOKEN_EXPIRES"],
            refresh_ttl=config["JWT_REFRESH_TOKEN_EXPIRES"],
            algorithm=config.get("JWT_ALGORITHM", "HS256"),
        )

    def _claims(self, token_type, user_id, name, email, role, now, ttl):
        return {
            "sub": str(user_id),
            "name": name,
            "email": email,
            "role": role,
            "type": token_type,
            "fresh": False,
            "jti": str(uuid.uuid4()),
            "iat": now,
            "nbf": now,
            "exp": now + ttl,
        }

    def mint(self, user_id, name, email, role, now: datetime | None = None) -> TokenPair:
        now = now or datetime.now(timezone.utc)
        access = jwt.encode(
            self._claims("access", user_id, name, email, role, now, self.access_ttl),
            self.access_secret,
            algorithm=self.algorithm,
        )
        refresh = jwt.encode(
            self._claims("refresh", user_id, name, email, role, now, self.refresh_ttl),
            self.refresh_secret,
            algorithm=self.algorithm,
        )
        return TokenPair(access_token=access, refresh_token=refresh)

    def _decode(self, token, secret, expected_type, verify_exp=True):
        try:
            claims = jwt.decode(
                token,
                secret,
                algorithms=[self.algorithm],
                options={"verify_exp": verify_exp, "require": ["sub", "exp", "type"]},
            )
        except jwt.ExpiredSignatureError as e:
            raise SessionExpired("Token expired, please login again") from e
        except jwt.PyJWTError as e:
            raise InvalidToken("Invalid token") from e
        if claims.get("type") != expected_type or not claims.get("email"):
            raise InvalidToken("Invalid token")
        return claims

    def decode_refresh(self, token, verify_exp=True) -> dict:
        return self._decode(token, self.refresh_secret, "refresh", verify_exp)

    def decode_access(self, token) -> dict:
        return self._decode(token, self.access_secret, "access")
