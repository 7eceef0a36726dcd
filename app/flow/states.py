"""
app/flow/states.py

Purpose: Defines all onboarding steps

- Enum for each step (PROFILE_PENDING, TRIAL_PENDING, TRIAL_ACTIVE, COMPLETE, SKIPPED)
- Single source of truth for onboarding stages
- Step transition validation
- Metadata for each step (display name, progress, terminal)
"""

from enum import Enum
from typing import Dict, List
from dataclasses import dataclass


class OnboardingStep(str, Enum):
    """
    Steps of the post-registration onboarding workflow.
    """

    PROFILE_PENDING = "PROFILE_PENDING"
    TRIAL_PENDING = "TRIAL_PENDING"
    TRIAL_ACTIVE = "TRIAL_ACTIVE"

    # Terminal
    COMPLETE = "COMPLETE"
    SKIPPED = "SKIPPED"


@dataclass(frozen=True)
class StepMetadata:
    """
    Metadata associated with each onboarding step.
    """
    name: OnboardingStep
    display_name: str
    step_number: int = 0  # For progress tracking
    total_steps: int = 3
    requires_user_input: bool = True
    terminal: bool = False
    description: str = ""


STEP_METADATA: Dict[OnboardingStep, StepMetadata] = {
    OnboardingStep.PROFILE_PENDING: StepMetadata(
        name=OnboardingStep.PROFILE_PENDING,
        display_name="Complete Profile",
        step_number=1,
        description="Collect date of birth, country, city and address"
    ),
    OnboardingStep.TRIAL_PENDING: StepMetadata(
        name=OnboardingStep.TRIAL_PENDING,
        display_name="Activate Free Trial",
        step_number=2,
        description="Profile saved; free trial not active yet"
    ),
    OnboardingStep.TRIAL_ACTIVE: StepMetadata(
        name=OnboardingStep.TRIAL_ACTIVE,
        display_name="Trial Activated",
        step_number=3,
        requires_user_input=False,
        description="Trial active; settling before handing over to the app"
    ),
    OnboardingStep.COMPLETE: StepMetadata(
        name=OnboardingStep.COMPLETE,
        display_name="Complete",
        step_number=3,
        requires_user_input=False,
        terminal=True,
        description="Onboarding finished"
    ),
    OnboardingStep.SKIPPED: StepMetadata(
        name=OnboardingStep.SKIPPED,
        display_name="Skipped",
        requires_user_input=False,
        terminal=True,
        description="User chose to explore without finishing onboarding"
    ),
}


# Valid step transitions - onboarding never moves backwards
STEP_TRANSITIONS: Dict[OnboardingStep, List[OnboardingStep]] = {
    OnboardingStep.PROFILE_PENDING: [
        OnboardingStep.TRIAL_PENDING,
        OnboardingStep.SKIPPED,
    ],
    OnboardingStep.TRIAL_PENDING: [
        OnboardingStep.TRIAL_ACTIVE,
        OnboardingStep.SKIPPED,
    ],
    OnboardingStep.TRIAL_ACTIVE: [
        OnboardingStep.COMPLETE,
    ],
    OnboardingStep.COMPLETE: [],
    OnboardingStep.SKIPPED: [],
}


def is_valid_transition(from_step: OnboardingStep, to_step: OnboardingStep) -> bool:
    """
    Checks if a step transition is valid.

    Args:
        from_step: Current step
        to_step: Target step

    Returns:
        True if transition is allowed, False otherwise
    """
    return to_step in STEP_TRANSITIONS.get(from_step, [])


def is_terminal(step: OnboardingStep) -> bool:
    return get_step_metadata(step).terminal


def get_step_metadata(step: OnboardingStep) -> StepMetadata:
    """
    Retrieves metadata for a given step.
    """
    return STEP_METADATA.get(step, StepMetadata(
        name=step,
        display_name=step.value,
        description="Unknown step"
    ))


def get_progress_message(step: OnboardingStep) -> str:
    """
    Generates a progress message for the current step.

    Returns:
        Progress message (e.g., "Step 2 of 3"), empty for skipped
    """
    metadata = get_step_metadata(step)
    if metadata.step_number and metadata.step_number > 0:
        return f"📍 Step {metadata.step_number} of {metadata.total_steps}"
    return ""
