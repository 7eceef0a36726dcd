"""
app/models/onboarding.py

Purpose: Onboarding state snapshot

- Current step and the last recoverable error
- Busy flags for in-flight profile submit / trial activation
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict

from app.core.exceptions import ErrorKind
from app.flow.states import OnboardingStep, get_progress_message, get_step_metadata


class OnboardingError(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: ErrorKind
    message: str
    code: str
    field_errors: Optional[Dict[str, Any]] = None
    recoverable: bool = True


class OnboardingState(BaseModel):
    model_config = ConfigDict(frozen=True)

    step: OnboardingStep
    last_error: Optional[OnboardingError] = None
    submitting_profile: bool = False
    activating_trial: bool = False

    @property
    def busy(self) -> bool:
        return self.submitting_profile or self.activating_trial

    @property
    def display_name(self) -> str:
        return get_step_metadata(self.step).display_name

    @property
    def progress_message(self) -> str:
        return get_progress_message(self.step)
