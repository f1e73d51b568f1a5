from datetime import datetime, timedelta, timezone

import jwt
import pytest

from blissora.auth.tokens import TokenMinter
from blissora.errors import InvalidToken, SessionExpired


@pytest.fixture
def minter():
    return TokenMinter(
        access_secret="access-secret",
        refresh_secret="refresh-secret",
        access_ttl=timedelta(minutes=15),
        refresh_ttl=timedelta(minutes=55),
    )


def test_same_secret_for_both_tokens_is_rejected():
    with pytest.raises(ValueError):
        TokenMinter("same", "same", timedelta(minutes=15), timedelta(minutes=55))


def test_mint_carries_identity_claims(minter):
    pair = minter.mint(7, "Asha", "asha@example.com", "seller")

    access = jwt.decode(pair.access_token, "access-secret", algorithms=["HS256"])
    refresh = jwt.decode(pair.refresh_token, "refresh-secret", algorithms=["HS256"])
    for claims, token_type in ((access, "access"), (refresh, "refresh")):
        assert claims["sub"] == "7"
        assert claims["email"] == "asha@example.com"
        assert claims["role"] == "seller"
        assert claims["type"] == token_type
    assert refresh["exp"] - refresh["iat"] == 55 * 60
    assert access["exp"] - access["iat"] == 15 * 60


def test_pairs_minted_in_the_same_second_differ(minter):
    now = datetime.now(timezone.utc)
    first = minter.mint(1, "A", "a@example.com", "user", now=now)
    second = minter.mint(1, "A", "a@example.com", "user", now=now)
    assert first.refresh_token != second.refresh_token
    assert first.access_token != second.access_token


def test_tokens_are_signed_with_independent_secrets(minter):
    pair = minter.mint(1, "A", "a@example.com", "user")
    with pytest.raises(jwt.InvalidSignatureError):
        jwt.decode(pair.refresh_token, "access-secret", algorithms=["HS256"])
    with pytest.raises(InvalidToken):
        minter.decode_refresh(pair.access_token)


def test_decode_refresh_rejects_garbage(minter):
    with pytest.raises(InvalidToken):
        minter.decode_refresh("not-a-token")


def test_expired_refresh_token_is_session_expired(minter):
    past = datetime.now(timezone.utc) - timedelta(hours=2)
    pair = minter.mint(1, "A", "a@example.com", "user", now=past)

    with pytest.raises(SessionExpired):
        minter.decode_refresh(pair.refresh_token)
    # logout only needs the signature
    assert minter.decode_refresh(pair.refresh_token, verify_exp=False)["email"] == "a@example.com"


def test_decode_access(minter):
    pair = minter.mint(3, "C", "c@example.com", "admin")
    assert minter.decode_access(pair.access_token)["role"] == "admin"
    with pytest.raises(InvalidToken):
        minter.decode_access(pair.refresh_token)
