# --- blissora/model/user.py ---
from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy.sql import func
from werkzeug.security import check_password_hash, generate_password_hash

from ..extensions import db


def _hash_method():
    return current_app.config.get("PASSWORD_HASH_METHOD", "scrypt")


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(180), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=True)
    google_id = db.Column(db.String(64), unique=True, nullable=True, index=True)
    avatar = db.Column(db.String(1024), nullable=True)
    role = db.Column(db.String(16), nullable=False, default="user", index=True)  # user, seller, admin

    # seller profile
    store_name = db.Column(db.String(180), nullable=True)
    seller_approved = db.Column(db.Boolean, nullable=False, default=False)

    # single active session: hash of the current refresh token + its expiry
    refresh_token_hash = db.Column(db.String(255), nullable=True)
    refresh_token_expires_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, server_default=func.now())
    updated_at = db.Column(db.DateTime, onupdate=func.now(), server_default=func.now())

    # ---- credentials ----
    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password, method=_hash_method())

    def check_password(self, password: str) -> bool:
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    # ---- session store ----
    def set_session(self, raw_refresh_token: str, now: datetime, ttl: timedelta) -> None:
        """Replace whatever session was stored with one for ``raw_refresh_token``."""
        self.refresh_token_hash = generate_password_hash(raw_refresh_token, method=_hash_method())
        self.refresh_token_expires_at = now + ttl

    def clear_session(self) -> None:
        self.refresh_token_hash = None
        self.refresh_token_expires_at = None

    def session_expired(self, now: datetime) -> bool:
        # no stored session counts as expired
        if self.refresh_token_expires_at is None:
            return True
        return self.refresh_token_expires_at < now

    def is_valid_session(self, raw_refresh_token: str) -> bool:
        if not self.refresh_token_hash or not raw_refresh_token:
            return False
        return check_password_hash(self.refresh_token_hash, raw_refresh_token)

    # ---- serialisation ----
    def public_profile(self, with_role=True):
        data = {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "avatar": self.avatar,
        }
        if with_role:
            data["role"] = self.role
        return data

    def as_dict(self):
        return {
            **self.public_profile(),
            "store_name": self.store_name,
            "seller_approved": self.seller_approved,
            "has_password": bool(self.password_hash),
            "google_linked": bool(self.google_id),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
