from datetime import timedelta

import pytest

from app.core.security import (
    BadSignature,
    MalformedToken,
    SigningError,
    TokenExpired,
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)


def test_token_round_trip_preserves_claims():
    token = create_access_token({"sub": "user-123", "email": "a@example.com", "name": "A"})
    claims = decode_access_token(token)

    assert claims["sub"] == "user-123"
    assert claims["email"] == "a@example.com"
    assert claims["exp"] > claims["iat"]


def test_token_lifetime_defaults_to_one_hour():
    claims = decode_access_token(create_access_token({"sub": "user-123"}))
    assert claims["exp"] - claims["iat"] == 3600


def test_expired_token_is_reported_as_expired():
    token = create_access_token({"sub": "user-123"}, expires_delta=timedelta(seconds=-30))
    with pytest.raises(TokenExpired) as exc_info:
        decode_access_token(token)
    assert exc_info.value.reason == "token_expired"


def test_token_signed_with_other_secret_is_rejected():
    token = create_access_token({"sub": "user-123"}, secret="some-other-secret")
    with pytest.raises(BadSignature) as exc_info:
        decode_access_token(token)
    assert exc_info.value.reason == "token_invalid"


def test_tampered_payload_is_rejected():
    token = create_access_token({"sub": "user-123"})
    forged = create_access_token({"sub": "admin-1"}, secret="attacker")
    header, _, signature = token.split(".")
    spliced = ".".join([header, forged.split(".")[1], signature])

    with pytest.raises(BadSignature):
        decode_access_token(spliced)


def test_expired_and_forged_token_is_not_reported_as_expired():
    token = create_access_token(
        {"sub": "user-123"}, secret="attacker", expires_delta=timedelta(seconds=-30)
    )
    with pytest.raises(BadSignature):
        decode_access_token(token)


@pytest.mark.parametrize("token", ["not-a-jwt", "a.b.c", ""])
def test_malformed_token(token):
    with pytest.raises(MalformedToken) as exc_info:
        decode_access_token(token)
    assert exc_info.value.reason == "token_malformed"


def test_empty_secret_fails_loudly():
    with pytest.raises(SigningError):
        create_access_token({"sub": "user-123"}, secret="")
    with pytest.raises(SigningError):
        decode_access_token("a.b.c", secret="")


def test_password_hashes_are_salted():
    first = hash_password("correct-horse-battery")
    second = hash_password("correct-horse-battery")

    assert first != second
    assert first.startswith("$argon2id$")
    assert verify_password("correct-horse-battery", first)
    assert verify_password("correct-horse-battery", second)


def test_wrong_password_does_not_verify():
    password_hash = hash_password("correct-horse-battery")
    assert not verify_password("wrong-password", password_hash)


def test_verify_without_stored_hash():
    assert not verify_password("anything", None)
    assert not verify_password("anything", "not-an-argon2-hash")


def test_empty_password_cannot_be_hashed():
    with pytest.raises(ValueError):
        hash_password("")
