"""
Unit tests for the authentication service.

Tests cover:
- Password hashing and verification
- Access and reset token creation and validation
- Sign up and sign in, including banned accounts
- Password reset and password change flows
- Resolving the caller from a bearer token
"""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import UUID

import pytest
from jose import jwt

from silent_money.config import Settings
from silent_money.exceptions import (
    AuthenticationError,
    ConflictError,
    ExternalServiceError,
    PermissionDeniedError,
)
from silent_money.models.auth import Role, SignInRequest, SignUpRequest
from silent_money.services.auth_service import RESET_TOKEN, AuthService
from silent_money.services.contact_service import ContactService
from tests.factories import make_profile, make_user

SECRET = "unit-test-secret-key-0123456789abcdef"


def make_settings(**overrides) -> Settings:
    values = {
        "environment": "development",
        "jwt_secret_key": SECRET,
        "password_bcrypt_rounds": 4,
        "public_site_url": "https://silentmoney.example",
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def profile_repo():
    repo = MagicMock()
    repo.get_by_email = AsyncMock(return_value=None)
    repo.get_by_id = AsyncMock(return_value=None)
    repo.create_profile = AsyncMock()
    repo.update_password = AsyncMock(return_value=True)
    return repo


@pytest.fixture
def contact():
    relay = MagicMock()
    relay.send_password_reset = AsyncMock()
    return relay


@pytest.fixture
def service(profile_repo, contact):
    return AuthService(profile_repo, settings=make_settings(), contact_service=contact)


# ============================================================================
# PASSWORDS AND TOKENS
# ============================================================================


class TestPasswords:
    """Test bcrypt hashing."""

    def test_hash_and_verify(self, service):
        hashed = service.hash_password("Passive2024")

        assert hashed != "Passive2024"
        assert service.verify_password("Passive2024", hashed)
        assert not service.verify_password("Passive2025", hashed)

    def test_malformed_hash_does_not_verify(self, service):
        assert service.verify_password("Passive2024", "not-a-bcrypt-hash") is False


class TestTokens:
    """Test JWT creation and validation."""

    def test_access_token_round_trip(self, service):
        profile = make_profile(role=Role.MODERATOR.value)

        payload = service.decode_token(service.create_access_token(profile))

        assert payload.sub == str(profile["id"])
        assert payload.email == profile["email"]
        assert payload.role is Role.MODERATOR
        assert payload.type == "access"
        assert payload.exp > payload.iat

    def test_reset_token_is_not_an_access_token(self, service):
        token = service.create_reset_token(make_profile())

        assert service.decode_token(token) is None
        assert service.decode_token(token, expected_type=RESET_TOKEN) is not None

    def test_token_signed_with_other_key_rejected(self, service):
        other = AuthService(MagicMock(), settings=make_settings(jwt_secret_key="another-secret-key-entirely"))
        token = other.create_access_token(make_profile())

        assert service.decode_token(token) is None

    def test_expired_token_rejected(self, service):
        past = datetime.now(timezone.utc) - timedelta(hours=2)
        token = jwt.encode(
            {
                "sub": "00000000-0000-0000-0000-000000000001",
                "email": "a@example.com",
                "role": "user",
                "type": "access",
                "exp": int((past + timedelta(minutes=5)).timestamp()),
                "iat": int(past.timestamp()),
            },
            SECRET,
            algorithm="HS256",
        )

        assert service.decode_token(token) is None

    def test_missing_claims_rejected(self, service):
        token = jwt.encode({"sub": "x"}, SECRET, algorithm="HS256")

        assert service.decode_token(token) is None

    def test_garbage_rejected(self, service):
        assert service.decode_token("not.a.jwt") is None


# ============================================================================
# SIGN UP / SIGN IN
# ============================================================================


class TestSignUp:
    """Test account registration."""

    @pytest.mark.asyncio
    async def test_creates_member_with_hashed_password(self, service, profile_repo):
        profile_repo.create_profile.return_value = make_profile(email="new@example.com")

        response = await service.sign_up(SignUpRequest(
            email="new@example.com", password="Passive2024", full_name="New Member"
        ))

        kwargs = profile_repo.create_profile.await_args.kwargs
        assert kwargs["role"] == "user"
        assert kwargs["password_hash"] != "Passive2024"
        assert service.verify_password("Passive2024", kwargs["password_hash"])
        assert response.token_type == "bearer"
        assert response.profile.email == "new@example.com"

    @pytest.mark.asyncio
    async def test_duplicate_email_propagates_conflict(self, service, profile_repo):
        profile_repo.create_profile.side_effect = ConflictError("Email already registered")

        with pytest.raises(ConflictError):
            await service.sign_up(SignUpRequest(
                email="dup@example.com", password="Passive2024", full_name="Dup"
            ))


class TestSignIn:
    """Test credential checks."""

    @pytest.mark.asyncio
    async def test_valid_credentials(self, service, profile_repo):
        profile = make_profile(password_hash=service.hash_password("Passive2024"))
        profile_repo.get_by_email.return_value = profile

        response = await service.sign_in(SignInRequest(email=profile["email"], password="Passive2024"))

        assert response.profile.id == profile["id"]
        assert service.decode_token(response.access_token).sub == str(profile["id"])
        assert response.expires_in == service.settings.jwt_access_token_expire_minutes * 60

    @pytest.mark.asyncio
    async def test_wrong_password(self, service, profile_repo):
        profile_repo.get_by_email.return_value = make_profile(
            password_hash=service.hash_password("Passive2024")
        )

        with pytest.raises(AuthenticationError, match="Invalid email or password"):
            await service.sign_in(SignInRequest(email="asha@example.com", password="wrong"))

    @pytest.mark.asyncio
    async def test_unknown_email(self, service):
        with pytest.raises(AuthenticationError):
            await service.sign_in(SignInRequest(email="ghost@example.com", password="Passive2024"))

    @pytest.mark.asyncio
    async def test_banned_account(self, service, profile_repo):
        profile_repo.get_by_email.return_value = make_profile(
            password_hash=service.hash_password("Passive2024"),
            is_banned=True,
        )

        with pytest.raises(PermissionDeniedError) as exc_info:
            await service.sign_in(SignInRequest(email="asha@example.com", password="Passive2024"))

        assert exc_info.value.error_code == "SM_403_BANNED"


# ============================================================================
# PASSWORD FLOWS
# ============================================================================


class TestPasswordReset:
    """Test reset token issue and redemption."""

    @pytest.mark.asyncio
    async def test_unknown_email_answers_the_same(self, service, contact):
        issued = await service.request_password_reset("ghost@example.com")

        assert issued.reset_token is None
        assert "If an account exists" in issued.message
        contact.send_password_reset.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_link_relayed_and_token_echoed_in_development(self, service, profile_repo, contact):
        profile = make_profile()
        profile_repo.get_by_email.return_value = profile

        issued = await service.request_password_reset(profile["email"])

        email, link = contact.send_password_reset.await_args.args
        assert email == profile["email"]
        assert link == f"https://silentmoney.example/reset-password?token={issued.reset_token}"
        assert service.decode_token(issued.reset_token, expected_type=RESET_TOKEN) is not None

    @pytest.mark.asyncio
    async def test_token_not_echoed_in_production(self, profile_repo, contact):
        service = AuthService(profile_repo, settings=make_settings(environment="production"), contact_service=contact)
        profile_repo.get_by_email.return_value = make_profile()

        issued = await service.request_password_reset("asha@example.com")

        assert issued.reset_token is None
        contact.send_password_reset.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_relay_failure_is_not_reported(self, service, profile_repo, contact):
        profile_repo.get_by_email.return_value = make_profile()
        contact.send_password_reset.side_effect = ExternalServiceError("relay down")

        issued = await service.request_password_reset("asha@example.com")

        assert issued.reset_token is not None

    @pytest.mark.asyncio
    async def test_relay_timeout_answers_like_unknown_email(self, profile_repo):
        settings = make_settings(environment="production")
        relay = ContactService(settings=settings)
        service = AuthService(profile_repo, settings=settings, contact_service=relay)
        profile_repo.get_by_email.return_value = make_profile()

        with patch(
            "silent_money.services.contact_service.aiohttp.ClientSession",
            side_effect=asyncio.TimeoutError(),
        ):
            known = await service.request_password_reset("asha@example.com")
        profile_repo.get_by_email.return_value = None
        unknown = await service.request_password_reset("ghost@example.com")

        assert known == unknown

    @pytest.mark.asyncio
    async def test_reset_with_valid_token(self, service, profile_repo):
        profile = make_profile()
        token = service.create_reset_token(profile)

        await service.reset_password(token, "NewPassive2025")

        user_id, new_hash = profile_repo.update_password.await_args.args
        assert user_id == profile["id"]
        assert isinstance(user_id, UUID)
        assert service.verify_password("NewPassive2025", new_hash)

    @pytest.mark.asyncio
    async def test_access_token_cannot_reset(self, service, profile_repo):
        token = service.create_access_token(make_profile())

        with pytest.raises(AuthenticationError, match="invalid or has expired"):
            await service.reset_password(token, "NewPassive2025")

        profile_repo.update_password.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_reset_for_deleted_profile(self, service, profile_repo):
        profile_repo.update_password.return_value = False
        token = service.create_reset_token(make_profile())

        with pytest.raises(AuthenticationError):
            await service.reset_password(token, "NewPassive2025")


class TestUpdatePassword:
    """Test password change while signed in."""

    @pytest.mark.asyncio
    async def test_requires_current_password(self, service, profile_repo):
        user = make_user()
        profile_repo.get_by_id.return_value = make_profile(
            id=user.id, password_hash=service.hash_password("Passive2024")
        )

        with pytest.raises(AuthenticationError, match="Current password is incorrect"):
            await service.update_password(user, "wrong", "NewPassive2025")

        profile_repo.update_password.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_updates_hash(self, service, profile_repo):
        user = make_user()
        profile_repo.get_by_id.return_value = make_profile(
            id=user.id, password_hash=service.hash_password("Passive2024")
        )

        await service.update_password(user, "Passive2024", "NewPassive2025")

        user_id, new_hash = profile_repo.update_password.await_args.args
        assert user_id == user.id
        assert service.verify_password("NewPassive2025", new_hash)


# ============================================================================
# CURRENT USER
# ============================================================================


class TestGetCurrentUser:
    """Test caller resolution from a bearer token."""

    @pytest.mark.asyncio
    async def test_resolves_profile(self, service, profile_repo):
        profile = make_profile(role=Role.ADMIN.value, is_admin=True)
        profile_repo.get_by_id.return_value = profile

        user = await service.get_current_user(service.create_access_token(profile))

        assert user.id == profile["id"]
        assert user.role is Role.ADMIN
        assert user.is_admin is True

    @pytest.mark.asyncio
    async def test_role_read_from_profile_not_token(self, service, profile_repo):
        profile = make_profile(role=Role.ADMIN.value)
        token = service.create_access_token(profile)
        profile_repo.get_by_id.return_value = {**profile, "role": Role.USER.value}

        user = await service.get_current_user(token)

        assert user.role is Role.USER

    @pytest.mark.asyncio
    async def test_deleted_profile(self, service):
        token = service.create_access_token(make_profile())

        with pytest.raises(AuthenticationError):
            await service.get_current_user(token)

    @pytest.mark.asyncio
    async def test_banned_profile(self, service, profile_repo):
        profile = make_profile(is_banned=True)
        profile_repo.get_by_id.return_value = profile

        with pytest.raises(PermissionDeniedError):
            await service.get_current_user(service.create_access_token(profile))

    @pytest.mark.asyncio
    async def test_invalid_token(self, service):
        with pytest.raises(AuthenticationError):
            await service.get_current_user("garbage")
