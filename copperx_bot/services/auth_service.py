import time
from datetime import datetime
from typing import Callable, Dict, Optional

from copperx_bot.errors import ApiError, AuthExpiredError, TokenDecryptionError
from copperx_bot.services.api_service import ApiClient
from copperx_bot.session.models import AuthState, Session
from copperx_bot.utils.encryption import TokenCipher
from copperx_bot.utils.logger import logger

DEFAULT_TOKEN_LIFETIME = 24 * 60 * 60


def parse_expiry(value, now: float) -> float:
    """Turn the API's `expireAt` into an epoch timestamp"""
    if isinstance(value, (int, float)):
        # Milliseconds since epoch
        return value / 1000 if value > 10 ** 11 else float(value)
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp()
        except ValueError:
            logger.warning(f"Unrecognised token expiry '{value}'")
    return now + DEFAULT_TOKEN_LIFETIME


class AuthService:
    """Email OTP login and access token handling"""

    def __init__(self, api: ApiClient, cipher: TokenCipher, clock: Callable[[], float] = time.time):
        self.api = api
        self.cipher = cipher
        self._clock = clock

    async def request_otp(self, email: str) -> str:
        """Ask Copperx to email a one-time code; returns the OTP session id"""
        response = await self.api.post("/auth/email-otp/request", data={"email": email})
        sid = response.get("sid") if isinstance(response, dict) else None
        if not sid:
            raise ApiError(0, "OTP request did not return a session id")
        logger.info(f"OTP requested for {email}")
        return sid

    async def verify_otp(self, session: Session, email: str, otp: str, sid: str) -> AuthState:
        """Exchange an OTP for an access token and store it in the session"""
        response = await self.api.post(
            "/auth/email-otp/authenticate",
            data={"email": email, "otp": otp, "sid": sid},
        )
        token = response.get("accessToken") if isinstance(response, dict) else None
        if not token:
            raise ApiError(0, "Authentication did not return an access token")

        user = response.get("user") or {}
        if not user.get("id"):
            user = await self.api.get("/auth/me", token=token)

        session.auth = AuthState(
            is_authenticated=True,
            access_token=self.cipher.encrypt(token),
            expires_at=parse_expiry(response.get("expireAt"), self._clock()),
            email=email,
            user_id=user.get("id"),
            organization_id=user.get("organizationId"),
        )
        logger.info(f"User {session.auth.user_id} authenticated")
        return session.auth

    def is_authenticated(self, session: Optional[Session]) -> bool:
        if session is None or session.auth is None:
            return False
        auth = session.auth
        if not auth.is_authenticated or not auth.access_token or not auth.expires_at:
            return False
        return auth.expires_at > self._clock()

    def get_access_token(self, session: Optional[Session]) -> Optional[str]:
        """Decrypted token for a logged-in session, or None.

        A token that no longer decrypts (for example after APP_KEY rotation)
        logs the user out.
        """
        if not self.is_authenticated(session):
            return None
        try:
            return self.cipher.decrypt(session.auth.access_token)
        except TokenDecryptionError:
            logger.warning("Clearing session auth: stored token could not be decrypted")
            session.auth = None
            return None

    async def get_current_user(self, session: Session) -> Dict:
        """Fetch the profile for the session's token.

        Raises AuthExpiredError, after clearing the stored auth, when the
        token is missing or no longer accepted.
        """
        token = self.get_access_token(session)
        if token is None:
            session.auth = None
            raise AuthExpiredError("No valid access token")
        try:
            return await self.api.get("/auth/me", token=token)
        except ApiError as e:
            logger.warning(f"Profile fetch failed, clearing auth: {e}")
            session.auth = None
            raise AuthExpiredError(str(e)) from e

    async def logout(self, session: Session) -> None:
        token = self.get_access_token(session)
        if token:
            try:
                await self.api.post("/auth/logout", token=token)
            except ApiError as e:
                # The local session is cleared either way
                logger.warning(f"Remote logout failed: {e}")
        session.auth = None
