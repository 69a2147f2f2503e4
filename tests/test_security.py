"""
Tests for password hashing and session tokens.
"""

from datetime import timedelta

import jwt
import pytest

from projecthub.auth.security import (
    ACCESS,
    REFRESH,
    TokenExpiredError,
    TokenInvalidError,
    create_token_pair,
    decode_token,
    hash_password,
    settings,
    verify_password,
)
from projecthub.core.models import Role
from projecthub.core.utils import utc_now


class TestPasswords:
    def test_roundtrip(self):
        digest = hash_password("Passw0rd!")
        assert verify_password("Passw0rd!", digest)
        assert not verify_password("passw0rd!", digest)

    def test_salted(self):
        assert hash_password("same") != hash_password("same")

    def test_malformed_digest(self):
        assert not verify_password("anything", "not-a-digest")


class TestTokens:
    def test_pair_carries_claims(self):
        pair = create_token_pair("user_1", "a@example.com", Role.MANAGER)

        access = decode_token(pair.access_token, expected_type=ACCESS)
        refresh = decode_token(pair.refresh_token, expected_type=REFRESH)

        assert (access.sub, access.email, access.role) == ("user_1", "a@example.com", Role.MANAGER)
        assert refresh.sub == "user_1"
        assert access.jti != refresh.jti
        assert pair.expires_in == settings.jwt_access_token_expire_minutes * 60

    def test_pair_renders_camel_case(self):
        body = create_token_pair("user_1", "a@example.com", Role.STAFF).model_dump(by_alias=True)
        assert {"accessToken", "refreshToken", "tokenType", "expiresIn"} == set(body)

    def test_wrong_type(self):
        pair = create_token_pair("user_1", "a@example.com", Role.STAFF)
        with pytest.raises(TokenInvalidError):
            decode_token(pair.refresh_token, expected_type=ACCESS)

    def test_expired(self):
        now = utc_now()
        token = jwt.encode(
            {
                "sub": "user_1",
                "email": "a@example.com",
                "role": "STAFF",
                "type": ACCESS,
                "iat": now - timedelta(hours=1),
                "exp": now - timedelta(minutes=1),
            },
            settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
        )
        with pytest.raises(TokenExpiredError):
            decode_token(token)

    def test_bad_signature(self):
        token = jwt.encode({"sub": "user_1"}, "a-different-secret-of-sufficient-length-42", algorithm="HS256")
        with pytest.raises(TokenInvalidError):
            decode_token(token)

    def test_garbage(self):
        with pytest.raises(TokenInvalidError):
            decode_token("not.a.jwt")
