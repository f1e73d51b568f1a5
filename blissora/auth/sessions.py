"""Refresh-session storage and validation.

A user has at most one session: the hash of the current refresh token plus
its expiry, kept on the ``User`` row. Every successful renewal rotates the
refresh token, so a token is good for exactly one renewal.
"""
from datetime import timedelta

from flask import current_app

from ..errors import InvalidToken, SessionExpired
from ..utils.clock import utcnow
from .tokens import TokenMinter, TokenPair


class SessionStore:
    def __init__(self, users, minter: TokenMinter, ttl: timedelta, clock=utcnow):
        self.users = users
        self.minter = minter
        self.ttl = ttl
        self.clock = clock

    def start(self, user) -> TokenPair:
        """Mint a fresh pair for ``user`` and make its refresh token the only valid one."""
        pair = self.minter.mint(user.id, user.name, user.email, user.role)
        user.set_session(pair.refresh_token, self.clock(), self.ttl)
        self.users.save(user)
        return pair

    def end(self, user) -> None:
        user.clear_session()
        self.users.save(user)


class SessionValidator:
    """Checks a presented refresh token against the stored session.

    TOKEN_PRESENT -> SIGNATURE_VALID -> USER_FOUND -> NOT_EXPIRED -> HASH_MATCHES
    """

    def __init__(self, users, minter: TokenMinter, store: SessionStore, refresh_cookie="refreshToken", clock=utcnow):
        self.users = users
        self.minter = minter
        self.store = store
        self.refresh_cookie = refresh_cookie
        self.clock = clock

    def authorize(self, raw_refresh_token):
        if not raw_refresh_token:
            raise SessionExpired("Session expired, please login again")

        try:
            claims = self.minter.decode_refresh(raw_refresh_token)
        except SessionExpired as e:
            self._drop_lapsed_session(raw_refresh_token)
            e.clear_cookies = (self.refresh_cookie,)
            raise

        user = self.users.find_by_email(claims["email"])
        if user is None:
            raise InvalidToken("Invalid token")

        if user.session_expired(self.clock()):
            current_app.logger.info("session expired for user %s", user.id)
            self.store.end(user)
            raise SessionExpired("Refresh token expired, please login again",
                                 clear_cookies=(self.refresh_cookie,))

        if not user.is_valid_session(raw_refresh_token):
            current_app.logger.warning("refresh token mismatch for user %s; session dropped", user.id)
            self.store.end(user)
            raise InvalidToken("Invalid refresh token, please login again",
                               clear_cookies=(self.refresh_cookie,))

        return user

    def _drop_lapsed_session(self, raw_refresh_token):
        # the signature is still checked; only exp is skipped
        claims = self.minter.decode_refresh(raw_refresh_token, verify_exp=False)
        user = self.users.find_by_email(claims["email"])
        if user is None or user.refresh_token_hash is None:
            return
        # a newer session issued after this token stays untouched
        if user.is_valid_session(raw_refresh_token) or user.session_expired(self.clock()):
            current_app.logger.info("refresh token expired for user %s; session cleared", user.id)
            self.store.end(user)

    def renew(self, raw_refresh_token):
        """Authorize and rotate: returns the user and a brand-new token pair."""
        user = self.authorize(raw_refresh_token)
        return user, self.store.start(user)
