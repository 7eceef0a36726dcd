"""
app/flow/status.py

Purpose: Where a user stands in account setup

- Phone verification and profile completion are required
- KYC is optional for dashboard access
- Produces next action, redirect hint and progress for the UI
"""

from typing import List, Optional

from pydantic import BaseModel

from app.models.user import KycStatus, UserRecord
from utils.constants import NEXT_STEP_MESSAGES, REDIRECTS


class OnboardingStatus(BaseModel):
    is_complete: bool
    current_step: str
    next_step: str
    message: str
    redirect_to: Optional[str] = None
    can_access_dashboard: bool = False
    completed_steps: List[str] = []
    progress_percentage: int = 0


def derive_onboarding_status(user: Optional[UserRecord], authenticated: bool) -> OnboardingStatus:
    """
    Computes the account-setup status for a user.

    Args:
        user: Current user record, if any
        authenticated: Whether the session holds a valid access token

    Returns:
        OnboardingStatus
    """
    if not authenticated or user is None:
        return OnboardingStatus(
            is_complete=False,
            current_step="login",
            next_step="login",
            message=NEXT_STEP_MESSAGES["login"],
            redirect_to=REDIRECTS["login"],
        )

    phone_verified = user.phone_verified
    profile_completed = user.profile_completed
    kyc = user.kyc_status

    completed = []
    if phone_verified:
        completed.append("phone_verification")
    if profile_completed:
        completed.append("profile_completion")
    if kyc is not KycStatus.NOT_SUBMITTED:
        completed.append("kyc_submission")
    if kyc is KycStatus.APPROVED:
        completed.append("kyc_approval")

    percentage = round(sum([phone_verified, profile_completed]) / 2 * 100)

    if not phone_verified:
        current, next_step, redirect = "phone_verification", "verify_phone", REDIRECTS["verify_phone"]
    elif not profile_completed:
        current, next_step, redirect = "profile_completion", "complete_profile", REDIRECTS["complete_profile"]
    elif kyc is KycStatus.NOT_SUBMITTED:
        current, next_step, redirect = "kyc_optional", "submit_kyc_optional", None
    elif kyc is KycStatus.PENDING:
        current, next_step, redirect = "kyc_pending", "kyc_under_review", None
    elif kyc is KycStatus.REJECTED:
        current, next_step, redirect = "kyc_rejected", "resubmit_kyc", None
    else:
        current, next_step, redirect = "complete", "complete", REDIRECTS["dashboard"]

    ready = phone_verified and profile_completed
    return OnboardingStatus(
        is_complete=ready,
        current_step=current,
        next_step=next_step,
        message=NEXT_STEP_MESSAGES[next_step],
        redirect_to=redirect,
        can_access_dashboard=ready,
        completed_steps=completed,
        progress_percentage=percentage,
    )
