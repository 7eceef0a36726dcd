"""
app/flow/onboarding.py

Purpose: Onboarding orchestrator

- Drives PROFILE_PENDING -> TRIAL_PENDING -> TRIAL_ACTIVE -> COMPLETE
- Skip ends onboarding at any pre-trial step
- Every await is followed by an applicability check: a result that
  arrives after the step moved on is discarded, never applied
- Busy flags suppress duplicate submits while a call is in flight
- Fires the completion callback once, on COMPLETE or SKIPPED
"""

import asyncio
import inspect
from typing import Any, Callable, Dict, Optional, Union

from app.core.exceptions import (
    AuthenticationError,
    CapitalizedError,
    ConflictError,
    ErrorKind,
    ForbiddenError,
    NetworkError,
    OnboardingStateError,
    ValidationError,
)
from app.core.logging import get_logger, LogContext
from app.flow.states import OnboardingStep, is_terminal, is_valid_transition
from app.models.onboarding import OnboardingError, OnboardingState
from app.models.user import UserRecord
from app.services.user_service import ProfileData
from utils.constants import (
    PROFILE_NETWORK_MESSAGE,
    TRIAL_AUTH_MESSAGE,
    TRIAL_CONFLICT_MESSAGE,
    TRIAL_FORBIDDEN_MESSAGE,
    TRIAL_NETWORK_MESSAGE,
)

logger = get_logger(__name__)

FinishedCallback = Callable[[OnboardingState], Any]


def _error_from(exc: CapitalizedError, message: Optional[str] = None) -> OnboardingError:
    field_errors = exc.details if isinstance(exc, ValidationError) and isinstance(exc.details, dict) else None
    return OnboardingError(
        kind=exc.kind,
        message=message or exc.message,
        code=exc.code,
        field_errors=field_errors,
        recoverable=exc.recoverable,
    )


class OnboardingOrchestrator:
    """
    One onboarding run for the logged-in user.

    Args:
        session_store: Source of the current user
        profile_service: Submits the profile
        subscription_service: Activates the free trial
        auth_service: Used to refresh the session user after activation
        on_finished: Called once with the final state (sync or async)
        settle_seconds: Pause on TRIAL_ACTIVE before COMPLETE (0 = immediate)
        auto_start_trial: Start the trial right after the profile is saved
        initial_step: PROFILE_PENDING or TRIAL_PENDING
    """

    def __init__(
        self,
        session_store,
        profile_service,
        subscription_service,
        auth_service=None,
        on_finished: Optional[FinishedCallback] = None,
        settle_seconds: float = 2.0,
        auto_start_trial: bool = True,
        initial_step: OnboardingStep = OnboardingStep.PROFILE_PENDING,
    ):
        if initial_step not in (OnboardingStep.PROFILE_PENDING, OnboardingStep.TRIAL_PENDING):
            raise OnboardingStateError(f"Onboarding cannot start at {initial_step.value}")

        self.session_store = session_store
        self.profile_service = profile_service
        self.subscription_service = subscription_service
        self.auth_service = auth_service
        self.on_finished = on_finished
        self.settle_seconds = settle_seconds
        self.auto_start_trial = auto_start_trial

        self._state = OnboardingState(step=initial_step)
        self._settle_task: Optional[asyncio.Task] = None
        self._finished = asyncio.Event()

    @classmethod
    def for_user(cls, user: Optional[UserRecord], **kwargs) -> "OnboardingOrchestrator":
        """
        Starts onboarding where the user left off: a user whose profile is
        already completed goes straight to trial activation.
        """
        step = (
            OnboardingStep.TRIAL_PENDING
            if user is not None and user.profile_completed
            else OnboardingStep.PROFILE_PENDING
        )
        return cls(initial_step=step, **kwargs)

    @property
    def state(self) -> OnboardingState:
        return self._state

    @property
    def step(self) -> OnboardingStep:
        return self._state.step

    @property
    def finished(self) -> bool:
        return self._finished.is_set()

    def _user_id(self) -> Optional[str]:
        user = self.session_store.get_user()
        return user.id if user else None

    def _update(self, **fields) -> None:
        self._state = self._state.model_copy(update=fields)

    def _transition(self, to_step: OnboardingStep) -> None:
        from_step = self._state.step
        if not is_valid_transition(from_step, to_step):
            raise OnboardingStateError(
                f"Cannot move from {from_step.value} to {to_step.value}",
                details={"from": from_step.value, "to": to_step.value},
            )
        self._update(step=to_step, last_error=None)
        with LogContext(user_id=self._user_id(), step=to_step.value):
            logger.info(f"🔄 Onboarding {from_step.value} -> {to_step.value}")

    def _record_error(self, expected_step: OnboardingStep, error: OnboardingError) -> None:
        if self._state.step != expected_step:
            logger.info(f"Discarding {error.kind.value} error from a stale {expected_step.value} call")
            return
        self._update(last_error=error)
        with LogContext(user_id=self._user_id(), step=expected_step.value):
            logger.warning(f"Onboarding error ({error.kind.value}): {error.message}")

    async def _notify_finished(self) -> None:
        if self._finished.is_set():
            return
        self._finished.set()
        if self.on_finished is None:
            return
        result = self.on_finished(self._state)
        if inspect.isawaitable(result):
            await result

    async def submit_profile(self, data: Union[ProfileData, Dict[str, Any]]) -> OnboardingState:
        """
        Saves the profile and moves to TRIAL_PENDING.

        Validation and network failures stay in PROFILE_PENDING with
        `last_error` set. A call made while a submit is in flight is ignored.

        Raises:
            OnboardingStateError: If the step is not PROFILE_PENDING
            AuthenticationError: If the session could not be renewed
        """
        if self._state.submitting_profile:
            logger.info("Profile submit already in flight, ignoring")
            return self._state
        if self._state.step != OnboardingStep.PROFILE_PENDING:
            raise OnboardingStateError(
                "Profile can only be submitted while it is pending",
                details={"step": self._state.step.value},
            )

        expected = OnboardingStep.PROFILE_PENDING
        error: Optional[OnboardingError] = None
        self._update(submitting_profile=True, last_error=None)
        try:
            await self.profile_service.submit_profile(data)
        except AuthenticationError as e:
            self._update(submitting_profile=False)
            self._record_error(expected, _error_from(e))
            raise
        except NetworkError as e:
            error = _error_from(e, PROFILE_NETWORK_MESSAGE)
        except CapitalizedError as e:
            error = _error_from(e)
        finally:
            self._update(submitting_profile=False)

        if error is not None:
            self._record_error(expected, error)
            return self._state

        if self._state.step != expected:
            logger.info(f"Profile saved after onboarding moved to {self._state.step.value}, not advancing")
            return self._state

        self._transition(OnboardingStep.TRIAL_PENDING)

        if self.auto_start_trial:
            return await self.start_trial()
        return self._state

    async def start_trial(self) -> OnboardingState:
        """
        Activates the free trial; on success moves to TRIAL_ACTIVE and
        schedules COMPLETE after the settle delay.

        Conflict, Forbidden and network failures keep TRIAL_PENDING with a
        recoverable `last_error`; the user retries manually. A call made
        while activation is in flight is ignored.

        Raises:
            OnboardingStateError: If the step is not TRIAL_PENDING
            AuthenticationError: If the session could not be renewed
        """
        if self._state.activating_trial:
            logger.info("Trial activation already in flight, ignoring")
            return self._state
        if self._state.step != OnboardingStep.TRIAL_PENDING:
            raise OnboardingStateError(
                "Trial can only be activated after the profile is complete",
                details={"step": self._state.step.value},
            )

        expected = OnboardingStep.TRIAL_PENDING
        error: Optional[OnboardingError] = None
        self._update(activating_trial=True, last_error=None)
        try:
            await self.subscription_service.start_free_trial()
        except AuthenticationError as e:
            self._update(activating_trial=False)
            self._record_error(expected, _error_from(e, TRIAL_AUTH_MESSAGE))
            raise
        except ConflictError as e:
            error = _error_from(e, TRIAL_CONFLICT_MESSAGE)
        except ForbiddenError as e:
            error = _error_from(e, TRIAL_FORBIDDEN_MESSAGE)
        except NetworkError as e:
            error = _error_from(e, TRIAL_NETWORK_MESSAGE)
        except CapitalizedError as e:
            error = _error_from(e)
        finally:
            self._update(activating_trial=False)

        if error is not None:
            self._record_error(expected, error)
            return self._state

        if self._state.step != expected:
            logger.info(f"Trial activated after onboarding moved to {self._state.step.value}, not advancing")
            return self._state

        self._transition(OnboardingStep.TRIAL_ACTIVE)
        await self._refresh_user()

        if self.settle_seconds > 0:
            self._settle_task = asyncio.ensure_future(self._settle())
        else:
            await self._complete()
        return self._state

    async def _refresh_user(self) -> None:
        if self.auth_service is None:
            return
        try:
            await self.auth_service.get_me()
        except AuthenticationError:
            raise
        except CapitalizedError as e:
            logger.warning(f"Could not refresh user after trial activation: {e.message}")

    async def _settle(self) -> None:
        await asyncio.sleep(self.settle_seconds)
        await self._complete()

    async def _complete(self) -> None:
        if self._state.step != OnboardingStep.TRIAL_ACTIVE:
            return
        self._transition(OnboardingStep.COMPLETE)
        logger.info("🎉 Onboarding complete")
        await self._notify_finished()

    async def skip(self) -> OnboardingState:
        """
        Ends onboarding without finishing it. The callback fires right away;
        calls still in flight resolve against SKIPPED and are discarded.

        Raises:
            OnboardingStateError: If the trial is already active
        """
        if is_terminal(self._state.step):
            return self._state
        self._transition(OnboardingStep.SKIPPED)
        await self._notify_finished()
        return self._state

    async def wait_until_finished(self, timeout: Optional[float] = None) -> OnboardingState:
        await asyncio.wait_for(self._finished.wait(), timeout=timeout)
        return self._state

    def cancel(self) -> None:
        """Stops a pending settle delay without waiting for it."""
        task = self._settle_task
        if task is not None and not task.done():
            task.cancel()

    async def close(self) -> None:
        """Cancels a pending settle delay."""
        task = self._settle_task
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
