"""
Unit Tests for Security Module
Tests for: password hashing, temp passwords, JWT tokens
"""
import pytest
from datetime import datetime, timedelta
from jose import jwt

from academy.core.security import (
    verify_password,
    get_password_hash,
    generate_temp_password,
    create_access_token,
    decode_token,
)
from academy.core.config import settings
from academy.core.exceptions import AuthenticationError


class TestPasswordHashing:
    """Test password hashing functions"""

    def test_hash_password_returns_different_value(self):
        hashed = get_password_hash("testpassword123")

        assert hashed != "testpassword123"
        assert hashed.startswith("$2")

    def test_hash_password_different_each_time(self):
        # Bcrypt generates different salts
        assert get_password_hash("testpassword123") != get_password_hash("testpassword123")

    def test_verify_password_correct(self):
        hashed = get_password_hash("testpassword123")

        assert verify_password("testpassword123", hashed) is True

    def test_verify_password_incorrect(self):
        hashed = get_password_hash("testpassword123")

        assert verify_password("wrongpassword", hashed) is False

    def test_hash_long_password_truncated(self):
        """Bcrypt only looks at the first 72 bytes"""
        hashed = get_password_hash("a" * 100)

        assert verify_password("a" * 100, hashed) is True
        assert verify_password("a" * 72, hashed) is True


class TestTempPassword:

    def test_default_length(self):
        assert len(generate_temp_password()) == 12

    def test_alphanumeric(self):
        assert generate_temp_password(32).isalnum()

    def test_random(self):
        assert generate_temp_password() != generate_temp_password()


class TestAccessTokens:
    """Test JWT creation and decoding"""

    def test_token_carries_subject_and_user_type(self):
        token = create_access_token("student-1", "student")

        payload = decode_token(token)

        assert payload["sub"] == "student-1"
        assert payload["user_type"] == "student"
        assert payload["type"] == "access"

    def test_default_expiry_is_seven_days(self):
        token = create_access_token("admin-1", "admin")
        payload = jwt.get_unverified_claims(token)

        expires_in = datetime.utcfromtimestamp(payload["exp"]) - datetime.utcnow()
        assert timedelta(days=6, hours=23) < expires_in <= timedelta(days=7)

    def test_extra_claims_are_kept(self):
        token = create_access_token("student-1", "student", extra_claims={"email": "a@b.in"})

        assert decode_token(token)["email"] == "a@b.in"

    def test_expired_token_rejected(self):
        token = create_access_token("student-1", "student", expires_delta=timedelta(seconds=-1))

        with pytest.raises(AuthenticationError) as exc_info:
            decode_token(token)
        assert exc_info.value.message == "Token has expired"

    def test_token_signed_with_other_key_rejected(self):
        token = jwt.encode(
            {"sub": "student-1", "user_type": "student", "type": "access"},
            "not-the-secret",
            algorithm=settings.JWT_ALGORITHM,
        )

        with pytest.raises(AuthenticationError) as exc_info:
            decode_token(token)
        assert exc_info.value.message == "Invalid token"

    def test_garbage_token_rejected(self):
        with pytest.raises(AuthenticationError):
            decode_token("not.a.jwt")
