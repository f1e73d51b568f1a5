"""Credential verification and the login-type flows built on it."""
import re

from flask import current_app
from sqlalchemy.exc import IntegrityError
from werkzeug.security import check_password_hash, generate_password_hash

from ..extensions import db, mailer
from ..model import User
from ..services.user_repository import UserRepository
from ..errors import InvalidCredentials, NotFound, SessionExpired, UserAlreadyExists, ValidationError
from ..utils.text import normalize_email
from .sessions import SessionStore, SessionValidator
from .tokens import TokenMinter

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 6
SELF_SERVICE_ROLES = {"user", "seller"}

_dummy_hashes = {}


def _dummy_hash(method):
    # compared against when there is no real hash, so both paths cost one check
    if method not in _dummy_hashes:
        _dummy_hashes[method] = generate_password_hash("blissora-dummy-password", method=method)
    return _dummy_hashes[method]


class AuthService:
    def __init__(self, users, user_model, minter: TokenMinter, store: SessionStore,
                 validator: SessionValidator, mailer=None):
        self.users = users
        self.user_model = user_model
        self.minter = minter
        self.store = store
        self.validator = validator
        self.mailer = mailer

    # ---- credential verifier ----
    def verify_credentials(self, email, password):
        user = self.users.find_by_email(email)
        if user is None or not user.password_hash:
            check_password_hash(_dummy_hash(current_app.config["PASSWORD_HASH_METHOD"]), password or "")
            raise InvalidCredentials("Invalid credentials")
        if not user.check_password(password or ""):
            raise InvalidCredentials("Invalid credentials")
        return user

    def resolve_oauth_user(self, profile):
        """Find the account for a Google profile, linking or creating it as needed."""
        user = self.users.find_by_google_id(profile.subject)
        if user is not None:
            return user

        user = self.users.find_by_email(profile.email)
        if user is not None:
            user.google_id = profile.subject
            if not user.avatar and profile.avatar:
                user.avatar = profile.avatar
            current_app.logger.info("linked google account to user %s", user.id)
            return self.users.save(user)

        user = self.user_model(
            name=profile.name,
            email=normalize_email(profile.email),
            google_id=profile.subject,
            avatar=profile.avatar,
            role="user",
        )
        current_app.logger.info("creating user from google profile %s", profile.subject)
        return self.users.add(user)

    # ---- flows ----
    def register(self, name, email, password, role=None, store_name=None):
        name = (name or "").strip()
        email = normalize_email(email)
        password = password or ""
        role = (role or "user").strip().lower()

        if not name:
            raise ValidationError("Name is required")
        if not EMAIL_RE.match(email):
            raise ValidationError("A valid email is required")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password required, min {MIN_PASSWORD_LENGTH} chars")
        if role not in SELF_SERVICE_ROLES:
            role = "user"
        if self.users.find_by_email(email) is not None:
            raise UserAlreadyExists("User already exists")

        user = self.user_model(name=name, email=email, role=role)
        user.set_password(password)
        if role == "seller":
            user.store_name = (store_name or "").strip() or name
            user.seller_approved = False
        try:
            self.users.add(user)
        except IntegrityError as e:
            self.users.session.rollback()
            raise UserAlreadyExists("User already exists") from e
        current_app.logger.info("registered user %s (%s)", user.id, role)

        self._welcome(user)
        return user, self.store.start(user)

    def _welcome(self, user):
        if self.mailer is None:
            return
        try:
            self.mailer.send_welcome(user.email, user.name)
        except Exception as e:
            current_app.logger.error("failed to queue welcome email for user %s: %s", user.id, e)

    def login(self, email, password):
        user = self.verify_credentials(email, password)
        current_app.logger.info("user %s logged in", user.id)
        return user, self.store.start(user)

    def oauth_login(self, profile):
        user = self.resolve_oauth_user(profile)
        return user, self.store.start(user)

    def renew(self, raw_refresh_token):
        return self.validator.renew(raw_refresh_token)

    def logout(self, raw_refresh_token):
        """Drop the session named by a structurally valid refresh token.

        Only the signature and the email claim are checked; the token does
        not have to match the stored hash or be unexpired.
        """
        if not raw_refresh_token:
            raise SessionExpired("Session already expired", status_code=401)
        claims = self.minter.decode_refresh(raw_refresh_token, verify_exp=False)
        user = self.users.find_by_email(claims["email"])
        if user is None:
            raise NotFound("User not found")
        self.store.end(user)
        current_app.logger.info("user %s logged out", user.id)
        return user


def build_auth_service():
    """Wire an ``AuthService`` for the current app and database session."""
    config = current_app.config
    users = UserRepository(db.session, User)
    minter = TokenMinter.from_config(config)
    store = SessionStore(users, minter, config["REFRESH_SESSION_EXPIRES"])
    validator = SessionValidator(users, minter, store, refresh_cookie=config["REFRESH_COOKIE_NAME"])
    return AuthService(users, User, minter, store, validator, mailer=mailer)
