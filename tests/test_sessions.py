from datetime import datetime, timedelta, timezone

import pytest

from blissora.auth.sessions import SessionStore, SessionValidator
from blissora.auth.tokens import TokenMinter
from blissora.errors import InvalidToken, SessionExpired
from blissora.model import User


class FakeUsers:
    """In-memory stand-in for UserRepository."""

    def __init__(self, *users):
        self.by_email = {u.email: u for u in users}
        self.saved = 0

    def find_by_email(self, email):
        return self.by_email.get(email)

    def save(self, user):
        self.saved += 1
        return user


class Clock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kw):
        self.now += timedelta(**kw)


@pytest.fixture
def ctx(app):
    with app.app_context():
        yield


@pytest.fixture
def user(ctx):
    u = User(id=1, name="Asha", email="asha@example.com", role="user")
    u.set_password("secret123")
    return u


@pytest.fixture
def clock():
    return Clock(datetime(2024, 1, 1, 12, 0, 0))


@pytest.fixture
def wiring(user, clock):
    users = FakeUsers(user)
    minter = TokenMinter("access", "refresh", timedelta(minutes=15), timedelta(minutes=55))
    store = SessionStore(users, minter, timedelta(minutes=30), clock=clock)
    validator = SessionValidator(users, minter, store, refresh_cookie="refreshToken", clock=clock)
    return users, minter, store, validator


def test_start_stores_only_a_hash(wiring, user, clock):
    _, _, store, _ = wiring
    pair = store.start(user)
    assert user.refresh_token_hash
    assert pair.refresh_token not in user.refresh_token_hash
    assert user.refresh_token_expires_at == clock.now + timedelta(minutes=30)
    assert user.is_valid_session(pair.refresh_token)


def test_end_clears_both_fields(wiring, user):
    _, _, store, _ = wiring
    store.start(user)
    store.end(user)
    assert user.refresh_token_hash is None
    assert user.refresh_token_expires_at is None


def test_missing_token_is_session_expired_without_clearing(wiring):
    *_, validator = wiring
    with pytest.raises(SessionExpired) as exc:
        validator.authorize(None)
    assert exc.value.clear_cookies == ()


def test_foreign_signature_is_invalid(wiring, user):
    *_, validator = wiring
    forger = TokenMinter("access", "not-our-secret", timedelta(minutes=15), timedelta(minutes=55))
    pair = forger.mint(user.id, user.name, user.email, user.role)
    with pytest.raises(InvalidToken):
        validator.authorize(pair.refresh_token)


def test_unknown_user_is_invalid(wiring, user):
    _, minter, _, validator = wiring
    pair = minter.mint(99, "Ghost", "ghost@example.com", "user")
    with pytest.raises(InvalidToken):
        validator.authorize(pair.refresh_token)


def test_valid_session_authorizes(wiring, user, clock):
    _, _, store, validator = wiring
    pair = store.start(user)
    clock.advance(minutes=29)
    assert validator.authorize(pair.refresh_token) is user


def test_expired_session_is_dropped(wiring, user, clock):
    _, _, store, validator = wiring
    pair = store.start(user)
    clock.advance(minutes=31)

    with pytest.raises(SessionExpired) as exc:
        validator.authorize(pair.refresh_token)
    assert exc.value.clear_cookies == ("refreshToken",)
    assert user.refresh_token_hash is None
    assert user.refresh_token_expires_at is None


def test_no_stored_session_counts_as_expired(wiring, user):
    _, minter, _, validator = wiring
    pair = minter.mint(user.id, user.name, user.email, user.role)
    with pytest.raises(SessionExpired):
        validator.authorize(pair.refresh_token)


def test_renew_rotates_and_old_token_stops_working(wiring, user):
    _, _, store, validator = wiring
    first = store.start(user)

    renewed_user, second = validator.renew(first.refresh_token)
    assert renewed_user is user
    assert second.refresh_token != first.refresh_token
    assert user.is_valid_session(second.refresh_token)

    with pytest.raises(InvalidToken) as exc:
        validator.authorize(first.refresh_token)
    assert exc.value.clear_cookies == ("refreshToken",)
    # a replayed token also kills the live session
    assert user.refresh_token_hash is None


def _lapsed_pair(minter, user):
    # signed an hour ago, so the 55 minute claim has run out
    return minter.mint(user.id, user.name, user.email, user.role,
                       now=datetime.now(timezone.utc) - timedelta(minutes=60))


def test_expired_refresh_claim_clears_its_session(wiring, user, clock):
    _, minter, _, validator = wiring
    pair = _lapsed_pair(minter, user)
    user.set_session(pair.refresh_token, clock.now, timedelta(minutes=30))

    with pytest.raises(SessionExpired) as exc:
        validator.authorize(pair.refresh_token)
    assert exc.value.clear_cookies == ("refreshToken",)
    assert user.refresh_token_hash is None
    assert user.refresh_token_expires_at is None


def test_expired_refresh_claim_leaves_a_newer_session_alone(wiring, user):
    _, minter, store, validator = wiring
    stale = _lapsed_pair(minter, user)
    live = store.start(user)

    with pytest.raises(SessionExpired):
        validator.authorize(stale.refresh_token)
    assert user.is_valid_session(live.refresh_token)
