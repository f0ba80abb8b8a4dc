"""
Unit Tests: AuthService and token encryption
"""

import pytest

from copperx_bot.errors import ApiError, AuthExpiredError, TokenDecryptionError
from copperx_bot.services.auth_service import DEFAULT_TOKEN_LIFETIME, parse_expiry
from copperx_bot.session.models import AuthState
from copperx_bot.utils.encryption import TokenCipher

from conftest import TEST_TOKEN


# ============================================================================
# ENCRYPTION
# ============================================================================

def test_cipher_encrypts_and_decrypts(cipher):
    encrypted = cipher.encrypt("secret-token")

    assert encrypted != "secret-token"
    assert cipher.decrypt(encrypted) == "secret-token"


def test_cipher_rejects_other_keys(cipher):
    encrypted = TokenCipher("another-key-0123456789").encrypt("secret-token")

    with pytest.raises(TokenDecryptionError):
        cipher.decrypt(encrypted)


def test_cipher_requires_key():
    with pytest.raises(ValueError):
        TokenCipher("")


# ============================================================================
# EXPIRY PARSING
# ============================================================================

def test_parse_expiry():
    assert parse_expiry("2024-01-01T00:00:00Z", 0) == 1704067200
    assert parse_expiry(1704067200000, 0) == 1704067200
    assert parse_expiry(1704067200, 0) == 1704067200
    assert parse_expiry(None, 100) == 100 + DEFAULT_TOKEN_LIFETIME
    assert parse_expiry("garbage", 100) == 100 + DEFAULT_TOKEN_LIFETIME


# ============================================================================
# OTP LOGIN
# ============================================================================

@pytest.mark.asyncio
async def test_request_otp_returns_sid(services, api):
    api.post.return_value = {"sid": "sid-1", "email": "a@b.co"}

    assert await services.auth.request_otp("a@b.co") == "sid-1"
    api.post.assert_awaited_once_with("/auth/email-otp/request", data={"email": "a@b.co"})


@pytest.mark.asyncio
async def test_request_otp_without_sid_fails(services, api):
    api.post.return_value = {}

    with pytest.raises(ApiError):
        await services.auth.request_otp("a@b.co")


@pytest.mark.asyncio
async def test_verify_otp_stores_encrypted_token(services, api, session, cipher, clock):
    api.post.return_value = {
        "accessToken": TEST_TOKEN,
        "expireAt": "2099-01-01T00:00:00Z",
        "user": {"id": "user-1", "organizationId": "org-1"},
    }

    auth = await services.auth.verify_otp(session, "a@b.co", "123456", "sid-1")

    assert session.auth is auth
    assert auth.access_token != TEST_TOKEN
    assert cipher.decrypt(auth.access_token) == TEST_TOKEN
    assert (auth.user_id, auth.organization_id, auth.email) == ("user-1", "org-1", "a@b.co")
    assert services.auth.is_authenticated(session)
    assert services.auth.get_access_token(session) == TEST_TOKEN
    api.get.assert_not_awaited()


@pytest.mark.asyncio
async def test_verify_otp_fetches_profile_when_user_missing(services, api, session):
    api.post.return_value = {"accessToken": TEST_TOKEN}
    api.get.return_value = {"id": "user-2", "organizationId": "org-2"}

    auth = await services.auth.verify_otp(session, "a@b.co", "123456", "sid-1")

    api.get.assert_awaited_once_with("/auth/me", token=TEST_TOKEN)
    assert auth.user_id == "user-2"


@pytest.mark.asyncio
async def test_verify_otp_rejected(services, api, session):
    api.post.side_effect = ApiError(400, "Invalid OTP")

    with pytest.raises(ApiError):
        await services.auth.verify_otp(session, "a@b.co", "000000", "sid-1")

    assert session.auth is None


# ============================================================================
# SESSION STATE
# ============================================================================

def test_expired_auth_is_not_authenticated(services, logged_in, clock):
    assert services.auth.is_authenticated(logged_in)

    clock.advance(3601)

    assert not services.auth.is_authenticated(logged_in)
    assert services.auth.get_access_token(logged_in) is None


def test_undecryptable_token_clears_auth(services, session, clock):
    session.auth = AuthState(is_authenticated=True, access_token="not-a-token", expires_at=clock() + 60)

    assert services.auth.get_access_token(session) is None
    assert session.auth is None


def test_no_session_is_not_authenticated(services):
    assert not services.auth.is_authenticated(None)


@pytest.mark.asyncio
async def test_get_current_user(services, api, logged_in):
    api.get.return_value = {"id": "user-1", "email": "user@example.com"}

    user = await services.auth.get_current_user(logged_in)

    assert user["email"] == "user@example.com"
    api.get.assert_awaited_once_with("/auth/me", token=TEST_TOKEN)


@pytest.mark.asyncio
async def test_get_current_user_rejected_token_clears_auth(services, api, logged_in):
    api.get.side_effect = ApiError(401, "Unauthorized")

    with pytest.raises(AuthExpiredError):
        await services.auth.get_current_user(logged_in)

    assert logged_in.auth is None


@pytest.mark.asyncio
async def test_logout_clears_session_even_if_remote_fails(services, api, logged_in):
    api.post.side_effect = ApiError(500, "down")

    await services.auth.logout(logged_in)

    api.post.assert_awaited_once_with("/auth/logout", token=TEST_TOKEN)
    assert logged_in.auth is None
