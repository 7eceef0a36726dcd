from pydantic import BaseModel
from typing import Optional, Any, List

from app.flow.status import OnboardingStatus
from app.models.onboarding import OnboardingError, OnboardingState
from app.models.user import UserRecord
from app.services.auth_facade import Capabilities


class ErrorResponse(BaseModel):
    """
    Standard error response structure.
    """
    error: str
    code: str
    details: Optional[Any] = None


class MessageResponse(BaseModel):
    message: str
    data: Optional[Any] = None


class SessionResponse(BaseModel):
    """
    What the UI may know about the session. Never carries tokens.
    """
    capabilities: Capabilities
    user: Optional[UserRecord] = None
    status: OnboardingStatus


class OnboardingResponse(BaseModel):
    step: str
    display_name: str
    progress_message: str
    busy: bool
    finished: bool
    last_error: Optional[OnboardingError] = None

    @classmethod
    def from_state(cls, state: OnboardingState, finished: bool) -> "OnboardingResponse":
        return cls(
            step=state.step.value,
            display_name=state.display_name,
            progress_message=state.progress_message,
            busy=state.busy,
            finished=finished,
            last_error=state.last_error,
        )


class PhoneNormalizeResponse(BaseModel):
    valid: bool
    canonical: Optional[str] = None
    error_kind: Optional[str] = None
    message: str = ""
    display_message: str = ""
    country_code: Optional[str] = None


class CountryResponse(BaseModel):
    country_code: str
    name: str
    calling_code: str
    min_length: int
    max_length: int
    format_hint: Optional[str] = None
    popular: bool


class CountryListResponse(BaseModel):
    default_country: str
    countries: List[CountryResponse]
