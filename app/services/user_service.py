"""
app/services/user_service.py

Purpose: Profile and KYC management

- Validates profile data before it leaves the client
- Submits the profile and stores the returned user record
- Reads the profile and KYC status
"""

from datetime import date, datetime
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic import ValidationError as PydanticValidationError

from app.core.exceptions import ExternalServiceError, ValidationError
from app.core.logging import get_logger, LogContext
from app.models.user import KycStatus, UserRecord, extract_user_payload
from app.services.api_client import ApiClient
from app.services.session_service import SessionStore
from utils.constants import AUTH_ME_PATH, AUTH_PROFILE_PATH, KYC_STATUS_PATH, PROFILE_VALIDATION_MESSAGE
from utils.validation_utils import calculate_age, sanitize_input

logger = get_logger(__name__)

MINIMUM_AGE = 18


class ProfileData(BaseModel):
    """
    Profile fields collected during onboarding.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    date_of_birth: date
    country: str
    city: str
    address: str

    @field_validator("date_of_birth")
    @classmethod
    def validate_age(cls, v: date) -> date:
        if v > date.today():
            raise ValueError("Date of birth cannot be in the future")
        if calculate_age(v) < MINIMUM_AGE:
            raise ValueError(f"You must be at least {MINIMUM_AGE} years old")
        return v

    @field_validator("country", "city")
    @classmethod
    def validate_place(cls, v: str) -> str:
        if not 2 <= len(v) <= 100:
            raise ValueError("Must be between 2 and 100 characters")
        return sanitize_input(v, max_length=100)

    @field_validator("address")
    @classmethod
    def validate_address(cls, v: str) -> str:
        if not 10 <= len(v) <= 500:
            raise ValueError("Address must be between 10 and 500 characters")
        return sanitize_input(v, max_length=500)


class KycStatusInfo(BaseModel):
    model_config = ConfigDict(extra="ignore")

    status: KycStatus = KycStatus.NOT_SUBMITTED
    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None


def validate_profile(data: Union[ProfileData, Dict[str, Any]]) -> ProfileData:
    """
    Checks profile input and returns the cleaned model.

    Raises:
        ValidationError: With a field -> message map in `details`
    """
    if isinstance(data, ProfileData):
        return data
    try:
        return ProfileData.model_validate(data)
    except PydanticValidationError as e:
        field_errors: Dict[str, str] = {}
        for error in e.errors():
            field = str(error["loc"][0]) if error.get("loc") else "profile"
            message = error["msg"]
            if message.startswith("Value error, "):
                message = message[len("Value error, "):]
            field_errors.setdefault(field, message)
        raise ValidationError(PROFILE_VALIDATION_MESSAGE, details=field_errors) from e


class ProfileService:
    """
    Profile completion and KYC reads for the logged-in user.
    """

    def __init__(self, api: ApiClient, session_store: SessionStore):
        self.api = api
        self.session_store = session_store

    async def submit_profile(self, data: Union[ProfileData, Dict[str, Any]]) -> UserRecord:
        """
        Validates and submits the profile, then stores the updated user.

        Args:
            data: ProfileData or a raw dict of its fields

        Returns:
            Updated user record (profile_completed set)

        Raises:
            ValidationError: Client-side or backend validation failure
        """
        profile = validate_profile(data)
        user = self.session_store.get_user()

        with LogContext(user_id=user.id if user else None, country=profile.country):
            logger.info("Submitting profile")
            body = await self.api.put(
                AUTH_PROFILE_PATH,
                json=profile.model_dump(mode="json"),
            )

            payload = extract_user_payload(body)
            if payload and (payload.get("id") or payload.get("email") or payload.get("phone")):
                updated = await self.session_store.set_user(payload)
            else:
                # Backend answered without the user; apply the change locally
                updated = await self.session_store.update_user(
                    **profile.model_dump(mode="json"), profile_completed=True
                )

            if updated is None:
                raise ExternalServiceError("Profile saved but no user is available")
            if not updated.profile_completed:
                updated = await self.session_store.update_user(profile_completed=True)

            logger.info("✅ Profile completed")
            return updated

    async def get_profile(self) -> UserRecord:
        """Fetches the current user from the backend and stores it."""
        body = await self.api.get(AUTH_ME_PATH)
        payload = extract_user_payload(body)
        if payload is None:
            raise ExternalServiceError("User response was empty")
        return await self.session_store.set_user(payload)

    async def get_kyc_status(self) -> KycStatusInfo:
        """
        Reads the KYC status and mirrors it into the stored user.
        """
        body = await self.api.get(KYC_STATUS_PATH) or {}
        # {"status": ...} is the KYC object itself, not a user
        if "status" in body and "kyc_status" not in body and "kycStatus" not in body:
            normalized = UserRecord.model_validate({"kyc": body})
        else:
            normalized = UserRecord.model_validate(body)
        info = KycStatusInfo(
            status=normalized.kyc_status,
            submitted_at=normalized.kyc_submitted_at,
            reviewed_at=normalized.kyc_reviewed_at,
            rejection_reason=normalized.kyc_rejection_reason or body.get("rejection_reason"),
        )
        if self.session_store.get_user() is not None:
            await self.session_store.update_user(kyc_status=info.status.value)
        return info
