"""
Tests for API Token Service.

Tests token generation, hashing, creation, revocation and verification.
"""

import hashlib
import hmac
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from conftest import make_result

from app.db.models import ApiToken
from app.exceptions import TokenNotFoundError, ValidationFailedError
from app.services.api_token import TOKEN_PREFIX, ApiTokenService, hash_token


def _stored_token(**overrides) -> MagicMock:
    token = MagicMock(spec=ApiToken)
    token.id = overrides.get("id", uuid4())
    token.user_id = overrides.get("user_id", uuid4())
    token.name = overrides.get("name", "ci")
    token.is_active = overrides.get("is_active", True)
    token.created_at = overrides.get("created_at")
    return token


class TestTokenGeneration:
    """Tests for token generation and hashing."""

    def test_generate_token_format(self, db_session):
        """Tokens are spk_ followed by 64 hex characters."""
        plaintext, token_hash = ApiTokenService(db_session, pepper="").generate_token()

        assert plaintext.startswith(TOKEN_PREFIX)
        assert len(plaintext) == len(TOKEN_PREFIX) + 64
        int(plaintext[len(TOKEN_PREFIX) :], 16)
        assert token_hash == hashlib.sha256(plaintext.encode()).hexdigest()

    def test_tokens_are_unique(self, db_session):
        """Each generated token differs."""
        service = ApiTokenService(db_session, pepper="")
        assert service.generate_token()[0] != service.generate_token()[0]

    def test_hash_is_deterministic(self):
        """Same input, same digest."""
        assert hash_token("spk_abc", pepper="") == hash_token("spk_abc", pepper="")

    def test_pepper_uses_hmac(self):
        """With a pepper the digest is HMAC-SHA-256."""
        expected = hmac.new(b"pepper", b"spk_abc", hashlib.sha256).hexdigest()
        assert hash_token("spk_abc", pepper="pepper") == expected
        assert hash_token("spk_abc", pepper="pepper") != hash_token("spk_abc", pepper="")


class TestCreateToken:
    """Tests for token creation."""

    @pytest.mark.asyncio
    async def test_raw_secret_returned_once_hash_stored(self, db_session):
        """Only the digest is persisted; the raw value is returned."""
        user_id = uuid4()

        generated = await ApiTokenService(db_session, pepper="").create_token(user_id, " ci ")

        stored = db_session.add.call_args[0][0]
        assert stored.user_id == user_id
        assert stored.name == "ci"
        assert stored.is_active is True
        assert stored.token_hash == hash_token(generated.plaintext_token, pepper="")
        assert generated.plaintext_token not in stored.token_hash
        assert generated.token_id == stored.id
        db_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", [None, "", "   "])
    async def test_name_required(self, db_session, name):
        """Tokens must be named."""
        with pytest.raises(ValidationFailedError) as exc_info:
            await ApiTokenService(db_session).create_token(uuid4(), name)

        assert str(exc_info.value) == 'Token "name" is required.'
        db_session.add.assert_not_called()


class TestRevokeToken:
    """Tests for soft revocation."""

    @pytest.mark.asyncio
    async def test_revoke(self, db_session):
        """Active owned token is revoked."""
        token_id = uuid4()
        db_session.execute = AsyncMock(return_value=make_result(scalar=token_id))

        result = await ApiTokenService(db_session).revoke_token(uuid4(), token_id)

        assert result == token_id
        db_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_revoke_unknown_or_revoked(self, db_session):
        """No matching active row is not found."""
        db_session.execute = AsyncMock(return_value=make_result(scalar=None))

        with pytest.raises(TokenNotFoundError):
            await ApiTokenService(db_session).revoke_token(uuid4(), uuid4())

        db_session.rollback.assert_awaited_once()
        db_session.commit.assert_not_awaited()


class TestVerifyToken:
    """Tests for token verification."""

    @pytest.mark.asyncio
    async def test_valid_token(self, db_session):
        """Live token resolves to its owner without writing anything."""
        stored = _stored_token()
        db_session.execute = AsyncMock(return_value=make_result(scalar=stored))

        identity = await ApiTokenService(db_session).verify_api_token("spk_" + "a" * 64)

        assert identity.user_id == stored.user_id
        assert identity.token_id == stored.id
        db_session.commit.assert_not_awaited()
        db_session.flush.assert_not_awaited()
        db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_revoked_token_fails(self, db_session):
        """Revoked tokens don't match the active-only query."""
        db_session.execute = AsyncMock(return_value=make_result(scalar=None))

        assert await ApiTokenService(db_session).verify_api_token("spk_" + "b" * 64) is None

    @pytest.mark.asyncio
    async def test_wrong_prefix(self, db_session):
        """Non-spk_ strings are rejected without a lookup."""
        assert await ApiTokenService(db_session).verify_api_token("eyJhbGciOi") is None
        db_session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_list_tokens(self, db_session):
        """Listing exposes metadata, never secrets."""
        stored = [_stored_token(name="new"), _stored_token(name="old", is_active=False)]
        db_session.execute = AsyncMock(return_value=make_result(scalars=stored))

        tokens = await ApiTokenService(db_session).list_tokens(uuid4())

        assert [t.name for t in tokens] == ["new", "old"]
        assert [t.is_active for t in tokens] == [True, False]
        assert not hasattr(tokens[0], "token_hash")
