"""
app/api/onboarding.py

Purpose: Onboarding endpoints

- Start (or resume) the onboarding run
- Submit profile, activate trial, skip
- Report the current step and last error
"""

from fastapi import APIRouter, Depends

from app.api.deps import get_context
from app.context import AppContext
from app.core.exceptions import ResourceNotFoundError
from app.core.logging import get_logger
from app.flow.onboarding import OnboardingOrchestrator
from app.schemas.requests import ProfileRequest
from app.schemas.response import OnboardingResponse

logger = get_logger(__name__)
router = APIRouter(prefix="/onboarding")


def _active(context: AppContext) -> OnboardingOrchestrator:
    if context.onboarding is None:
        raise ResourceNotFoundError("No onboarding in progress")
    return context.onboarding


def _respond(orchestrator: OnboardingOrchestrator) -> OnboardingResponse:
    return OnboardingResponse.from_state(orchestrator.state, finished=orchestrator.finished)


@router.post("/start", response_model=OnboardingResponse)
async def start_onboarding(context: AppContext = Depends(get_context)):
    return _respond(context.start_onboarding())


@router.get("", response_model=OnboardingResponse)
async def get_onboarding(context: AppContext = Depends(get_context)):
    """
    Current step; after the run finished, its final state.
    """
    if context.onboarding is None and context.last_onboarding_result is not None:
        return OnboardingResponse.from_state(context.last_onboarding_result, finished=True)
    return _respond(_active(context))


@router.post("/profile", response_model=OnboardingResponse)
async def submit_profile(body: ProfileRequest, context: AppContext = Depends(get_context)):
    orchestrator = _active(context)
    await orchestrator.submit_profile(body.model_dump())
    return _respond(orchestrator)


@router.post("/trial", response_model=OnboardingResponse)
async def start_trial(context: AppContext = Depends(get_context)):
    orchestrator = _active(context)
    await orchestrator.start_trial()
    return _respond(orchestrator)


@router.post("/skip", response_model=OnboardingResponse)
async def skip_onboarding(context: AppContext = Depends(get_context)):
    orchestrator = _active(context)
    await orchestrator.skip()
    return _respond(orchestrator)
