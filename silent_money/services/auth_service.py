"""
Authentication service for accounts and JWT token management.

Provides:
- Password hashing and verification (passlib + bcrypt)
- JWT access and reset token creation and validation
- Sign up, sign in and password flows
- Resolving the caller from a bearer token
"""

import structlog
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from uuid import UUID
from passlib.context import CryptContext
from jose import JWTError, jwt
from pydantic import ValidationError

from silent_money.config import Settings, get_settings
from silent_money.exceptions import (
    AuthenticationError, ExternalServiceError, NotFoundError, PermissionDeniedError, SilentMoneyError,
)
from silent_money.models.auth import (
    CurrentUser, PasswordResetIssued, ProfileResponse, Role, SignInRequest,
    SignUpRequest, TokenPayload, TokenResponse,
)
from silent_money.repositories.profile_repo import ProfileRepository
from shared.tracing import trace_function

logger = structlog.get_logger(__name__)

ACCESS_TOKEN = "access"
RESET_TOKEN = "reset"


class AuthService:
    """Service for authentication operations."""

    def __init__(
        self,
        profile_repo: ProfileRepository,
        settings: Optional[Settings] = None,
        contact_service: Optional[Any] = None,
    ):
        """
        Initialize auth service.

        Args:
            profile_repo: Profile repository
            settings: Settings override (defaults to cached settings)
            contact_service: Relay used to deliver password reset links
        """
        self.profile_repo = profile_repo
        self.settings = settings or get_settings()
        self.contact_service = contact_service

        self.pwd_context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=self.settings.password_bcrypt_rounds
        )

    # ------------------------------------------------------------------
    # Passwords
    # ------------------------------------------------------------------

    def hash_password(self, password: str) -> str:
        return self.pwd_context.hash(password)

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        """
        Verify a password against its hash.

        Returns:
            True if password matches, False otherwise (including malformed hashes)
        """
        try:
            return self.pwd_context.verify(plain_password, hashed_password)
        except (ValueError, TypeError) as e:
            logger.error("password_verify_failed", error=str(e))
            return False

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    def _create_token(self, profile: Dict[str, Any], token_type: str, lifetime: timedelta) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(profile["id"]),
            "email": profile["email"],
            "role": profile["role"],
            "type": token_type,
            "exp": int((now + lifetime).timestamp()),
            "iat": int(now.timestamp()),
        }
        return jwt.encode(
            payload,
            self.settings.jwt_secret_key,
            algorithm=self.settings.jwt_algorithm
        )

    def create_access_token(self, profile: Dict[str, Any]) -> str:
        token = self._create_token(
            profile,
            ACCESS_TOKEN,
            timedelta(minutes=self.settings.jwt_access_token_expire_minutes)
        )
        logger.info("access_token_created", user_id=str(profile["id"]))
        return token

    def create_reset_token(self, profile: Dict[str, Any]) -> str:
        token = self._create_token(
            profile,
            RESET_TOKEN,
            timedelta(minutes=self.settings.jwt_reset_token_expire_minutes)
        )
        logger.info("reset_token_created", user_id=str(profile["id"]))
        return token

    def decode_token(self, token: str, expected_type: str = ACCESS_TOKEN) -> Optional[TokenPayload]:
        """
        Decode and validate a JWT.

        Args:
            token: JWT token string
            expected_type: Required value of the "type" claim

        Returns:
            Token payload, or None if invalid, expired or of another type
        """
        try:
            claims = jwt.decode(
                token,
                self.settings.jwt_secret_key,
                algorithms=[self.settings.jwt_algorithm]
            )
            payload = TokenPayload(**claims)
        except JWTError as e:
            logger.warning("token_decode_failed", error=str(e))
            return None
        except ValidationError as e:
            logger.warning("token_claims_invalid", error=str(e))
            return None

        if payload.type != expected_type:
            logger.warning("token_type_mismatch", expected=expected_type, actual=payload.type)
            return None
        return payload

    def _token_response(self, profile: Dict[str, Any]) -> TokenResponse:
        return TokenResponse(
            access_token=self.create_access_token(profile),
            token_type="bearer",
            expires_in=self.settings.jwt_access_token_expire_minutes * 60,
            profile=ProfileResponse(**profile)
        )

    # ------------------------------------------------------------------
    # Account flows
    # ------------------------------------------------------------------

    @trace_function("auth.sign_up", expected=(SilentMoneyError,))
    async def sign_up(self, request: SignUpRequest) -> TokenResponse:
        """
        Register a member and sign them in.

        Raises:
            ConflictError: If the e-mail is already registered
        """
        profile = await self.profile_repo.create_profile(
            email=request.email,
            password_hash=self.hash_password(request.password),
            full_name=request.full_name,
            role=Role.USER.value
        )
        logger.info("user_signed_up", user_id=str(profile["id"]))
        return self._token_response(profile)

    @trace_function("auth.sign_in", expected=(SilentMoneyError,))
    async def sign_in(self, request: SignInRequest) -> TokenResponse:
        """
        Authenticate with e-mail and password.

        Raises:
            AuthenticationError: Wrong e-mail or password
            PermissionDeniedError: Account is banned
        """
        profile = await self.profile_repo.get_by_email(request.email)

        if not profile or not self.verify_password(request.password, profile["password_hash"]):
            logger.warning("authentication_failed", email=request.email)
            raise AuthenticationError("Invalid email or password")

        if profile["is_banned"]:
            logger.warning("authentication_failed_user_banned", user_id=str(profile["id"]))
            raise PermissionDeniedError("Account suspended", error_code="SM_403_BANNED")

        logger.info("user_signed_in", user_id=str(profile["id"]))
        return self._token_response(profile)

    async def request_password_reset(self, email: str) -> PasswordResetIssued:
        """
        Issue a reset token for an existing account.

        The answer is identical whether or not the account exists. The
        token is echoed back only in development.
        """
        issued = PasswordResetIssued()
        profile = await self.profile_repo.get_by_email(email)
        if not profile:
            logger.info("password_reset_unknown_email")
            return issued

        token = self.create_reset_token(profile)
        if self.contact_service is not None:
            link = f"{self.settings.public_site_url.rstrip('/')}/reset-password?token={token}"
            try:
                await self.contact_service.send_password_reset(profile["email"], link)
            except ExternalServiceError as e:
                logger.error("password_reset_delivery_failed", user_id=str(profile["id"]), error=e.detail)

        if self.settings.is_development:
            issued.reset_token = token
        return issued

    @trace_function("auth.reset_password", expected=(SilentMoneyError,))
    async def reset_password(self, token: str, new_password: str) -> None:
        """
        Set a new password using a reset token.

        Raises:
            AuthenticationError: Token invalid or expired
        """
        payload = self.decode_token(token, expected_type=RESET_TOKEN)
        if not payload:
            raise AuthenticationError("Reset link is invalid or has expired")

        updated = await self.profile_repo.update_password(UUID(payload.sub), self.hash_password(new_password))
        if not updated:
            raise AuthenticationError("Reset link is invalid or has expired")
        logger.info("password_reset_completed", user_id=payload.sub)

    async def update_password(self, user: CurrentUser, current_password: str, new_password: str) -> None:
        """
        Change the caller's password.

        Raises:
            AuthenticationError: Current password is wrong
        """
        profile = await self.profile_repo.get_by_id(user.id)
        if not profile or not self.verify_password(current_password, profile["password_hash"]):
            logger.warning("password_update_rejected", user_id=str(user.id))
            raise AuthenticationError("Current password is incorrect")

        await self.profile_repo.update_password(user.id, self.hash_password(new_password))
        logger.info("password_updated", user_id=str(user.id))

    async def get_profile(self, user_id: UUID) -> ProfileResponse:
        profile = await self.profile_repo.get_by_id(user_id)
        if not profile:
            raise NotFoundError("Profile not found")
        return ProfileResponse(**profile)

    async def get_current_user(self, token: str) -> CurrentUser:
        """
        Resolve the caller from an access token.

        The profile is re-read on every request so bans and role changes
        apply immediately.

        Raises:
            AuthenticationError: Token invalid or profile gone
            PermissionDeniedError: Account is banned
        """
        payload = self.decode_token(token)
        if not payload:
            raise AuthenticationError("Invalid authentication token")

        try:
            user_id = UUID(payload.sub)
        except ValueError:
            logger.warning("get_current_user_failed_invalid_user_id", user_id=payload.sub)
            raise AuthenticationError("Invalid authentication token")

        profile = await self.profile_repo.get_by_id(user_id)
        if not profile:
            logger.warning("get_current_user_failed_user_not_found", user_id=str(user_id))
            raise AuthenticationError("Invalid authentication token")

        if profile["is_banned"]:
            logger.warning("get_current_user_failed_user_banned", user_id=str(user_id))
            raise PermissionDeniedError("Account suspended", error_code="SM_403_BANNED")

        return CurrentUser(
            id=profile["id"],
            email=profile["email"],
            full_name=profile["full_name"],
            role=Role(profile["role"]),
            is_admin=profile["is_admin"],
            is_banned=profile["is_banned"],
        )
