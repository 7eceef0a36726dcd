"""
app/services/auth_service.py

Purpose: Authentication calls

- Register (validated and phone-normalized before the call)
- Phone verification by OTP, which is what first yields tokens
- Login / logout
- Token refresh for the token manager
- Current user fetch
"""

from typing import Any, Dict, Optional

from app.core.exceptions import (
    AuthenticationError,
    CapitalizedError,
    ExternalServiceError,
    ValidationError,
)
from app.core.logging import get_logger, LogContext
from app.models.session import TokenPair
from app.models.user import UserRecord, extract_user_payload
from app.services.api_client import ApiClient
from app.services.session_service import SessionStore
from utils.constants import (
    AUTH_LOGIN_PATH,
    AUTH_LOGOUT_PATH,
    AUTH_ME_PATH,
    AUTH_REFRESH_PATH,
    AUTH_REGISTER_PATH,
    AUTH_RESEND_OTP_PATH,
    AUTH_VERIFY_PHONE_PATH,
    ERROR_MESSAGES,
    INVALID_OTP_MESSAGE,
)
from utils.validation_utils import (
    normalize_phone,
    sanitize_input,
    validate_email,
    validate_full_name,
    validate_otp_format,
    validate_password,
)

logger = get_logger(__name__)


def _token_pair(body: Any, require_refresh: bool = True) -> TokenPair:
    if not isinstance(body, dict) or not body.get("access_token"):
        raise ExternalServiceError("Authentication response did not include tokens")
    if require_refresh and not body.get("refresh_token"):
        raise ExternalServiceError("Authentication response did not include a refresh token")
    return TokenPair(
        access_token=body["access_token"],
        refresh_token=body.get("refresh_token"),
        token_type=body.get("token_type") or "bearer",
    )


class AuthService:
    """
    Talks to the backend auth endpoints and keeps the session store in sync.
    """

    def __init__(
        self,
        api: ApiClient,
        session_store: SessionStore,
        refresh_timeout: float = 10.0,
    ):
        self.api = api
        self.session_store = session_store
        self.refresh_timeout = refresh_timeout

    async def register(
        self,
        full_name: str,
        email: str,
        password: str,
        phone: str,
        country_code: str,
    ) -> Dict[str, Any]:
        """
        Creates an account. The backend then sends an OTP to the phone.

        Args:
            full_name: User's full name
            email: Email address
            password: Password meeting the strength rules
            phone: Phone number as typed
            country_code: Country the phone number belongs to

        Returns:
            Backend response (user_id, phone, otp_sent, message)

        Raises:
            ValidationError: If any field fails client-side validation
        """
        errors = {}
        for field, error in (
            ("full_name", validate_full_name(full_name)),
            ("email", validate_email(email)),
            ("password", validate_password(password)),
        ):
            if error:
                errors[field] = error

        phone_result = normalize_phone(phone, country_code)
        if not phone_result.valid:
            errors["phone"] = phone_result.message

        if errors:
            logger.info(f"Registration rejected client-side: {sorted(errors)}")
            raise ValidationError(ERROR_MESSAGES["validation"], details=errors)

        with LogContext(country=phone_result.country_code):
            logger.info("Registering new account")
            body = await self.api.post(
                AUTH_REGISTER_PATH,
                json={
                    "full_name": sanitize_input(full_name, max_length=50),
                    "email": email.strip().lower(),
                    "password": password,
                    "phone": phone_result.canonical,
                },
                authenticated=False,
            )

        result = dict(body or {})
        result.setdefault("phone", phone_result.canonical)
        return result

    async def verify_phone(self, phone: str, otp: str) -> Optional[UserRecord]:
        """
        Confirms the OTP, stores the issued tokens and loads the user.

        If the user fetch fails after a successful verification the tokens
        are kept; the user is loaded on the next call that needs it.

        Returns:
            The verified user, or None if it could not be fetched yet

        Raises:
            ValidationError: If the OTP is not 6 digits or is rejected
        """
        if not validate_otp_format(otp):
            raise ValidationError(INVALID_OTP_MESSAGE, details={"otp": INVALID_OTP_MESSAGE})

        body = await self.api.post(
            AUTH_VERIFY_PHONE_PATH,
            json={"phone": phone, "otp": otp.strip()},
            authenticated=False,
        )
        if isinstance(body, dict) and body.get("success") is False:
            raise ValidationError(body.get("message") or "Verification failed")

        pair = _token_pair(body)
        await self.session_store.set_tokens(pair.access_token, pair.refresh_token)
        logger.info("Phone verified, session established")

        user_payload = body.get("user") if isinstance(body, dict) else None
        if isinstance(user_payload, dict):
            return await self.session_store.set_user(user_payload)

        try:
            return await self.get_me()
        except CapitalizedError as e:
            logger.warning(f"Verified but could not load user yet: {e.message}")
            return None

    async def resend_otp(self, phone: str) -> Dict[str, Any]:
        body = await self.api.post(
            AUTH_RESEND_OTP_PATH,
            json={"phone": phone},
            authenticated=False,
        )
        return body or {}

    async def login(self, identifier: str, password: str) -> UserRecord:
        """
        Logs in with email or phone plus password.

        Returns:
            The logged-in user

        Raises:
            AuthenticationError: On wrong credentials
        """
        if not identifier or not identifier.strip() or not password:
            raise ValidationError(
                ERROR_MESSAGES["validation"],
                details={"identifier": bool(identifier), "password": bool(password)},
            )

        try:
            body = await self.api.post(
                AUTH_LOGIN_PATH,
                json={"identifier": identifier.strip(), "password": password},
                authenticated=False,
            )
        except AuthenticationError as e:
            raise AuthenticationError(ERROR_MESSAGES["invalid_credentials"], details=e.details) from e

        pair = _token_pair(body)
        await self.session_store.set_tokens(pair.access_token, pair.refresh_token)

        user_payload = body.get("user")
        if isinstance(user_payload, dict):
            user = await self.session_store.set_user(user_payload)
        else:
            user = await self.get_me()

        with LogContext(user_id=user.id if user else None):
            logger.info("✅ Logged in")
        return user

    async def refresh_tokens(self, refresh_token: str) -> TokenPair:
        """
        Exchanges a refresh token for a new pair. Used by the token manager;
        does not touch the session store itself.

        Raises:
            AuthenticationError: If the refresh token is rejected
            NetworkError: On transport failure or 5xx
        """
        body = await self.api.post(
            AUTH_REFRESH_PATH,
            json={"refresh_token": refresh_token},
            authenticated=False,
            timeout=self.refresh_timeout,
        )
        return _token_pair(body, require_refresh=False)

    async def get_me(self) -> UserRecord:
        """Fetches the current user and stores it in the session."""
        body = await self.api.get(AUTH_ME_PATH)
        payload = extract_user_payload(body)
        if payload is None:
            raise ExternalServiceError("User response was empty")
        return await self.session_store.set_user(payload)

    async def logout(self) -> None:
        """
        Tells the backend (best effort) and always clears the local session.
        """
        if self.session_store.verify_token():
            try:
                await self.api.post(
                    AUTH_LOGOUT_PATH,
                    json={"refresh_token": self.session_store.refresh_token},
                )
            except CapitalizedError as e:
                logger.warning(f"Server logout failed, clearing locally anyway: {e.message}")
        await self.session_store.clear_all()
        logger.info("Logged out")
