"""
app/context.py

Purpose: Component wiring

- Builds every component explicitly and injects its collaborators
- Owns the single live onboarding run
- Drops the run when it finishes or the session is lost
"""

from typing import Optional

import httpx

from app.core.config import Settings, settings
from app.core.exceptions import AuthenticationError, SessionExpiredError
from app.core.logging import get_logger
from app.db.storage import KeyValueStore, build_storage
from app.flow.onboarding import OnboardingOrchestrator
from app.models.onboarding import OnboardingState
from app.services.api_client import ApiClient
from app.services.auth_facade import AuthFacade
from app.services.auth_service import AuthService
from app.services.session_service import SessionStore
from app.services.subscription_service import SubscriptionService
from app.services.token_service import TokenManager
from app.services.user_service import ProfileService

logger = get_logger(__name__)


class AppContext:
    """
    Holds one fully wired client core.

    Args:
        config: Settings
        storage: Durable key-value store for the session
        transport: Optional httpx transport for the backend client
    """

    def __init__(
        self,
        config: Settings,
        storage: KeyValueStore,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.storage = storage
        self.session_store = SessionStore(storage)

        self.api = ApiClient(
            config.API_BASE_URL,
            timeout=config.HTTP_TIMEOUT_SECONDS,
            transport=transport,
        )
        self.auth = AuthService(
            self.api,
            self.session_store,
            refresh_timeout=config.REFRESH_TIMEOUT_SECONDS,
        )
        self.tokens = TokenManager(
            self.session_store,
            refresher=self.auth.refresh_tokens,
            refresh_buffer_seconds=config.TOKEN_REFRESH_BUFFER_SECONDS,
            network_retries=config.TOKEN_REFRESH_NETWORK_RETRIES,
        )
        self.api.attach_token_manager(self.tokens)

        self.profiles = ProfileService(self.api, self.session_store)
        self.subscriptions = SubscriptionService(self.api, self.session_store)
        self.facade = AuthFacade(self.session_store)

        self.onboarding: Optional[OnboardingOrchestrator] = None
        self.last_onboarding_result: Optional[OnboardingState] = None

        self.tokens.add_logout_listener(self._on_logged_out)

    @classmethod
    async def create(
        cls,
        config: Optional[Settings] = None,
        storage: Optional[KeyValueStore] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "AppContext":
        """
        Builds the context and restores the persisted session.
        """
        config = config or settings
        if storage is None:
            storage = await build_storage(config)
        context = cls(config, storage, transport=transport)
        await context.session_store.load()
        return context

    def start_onboarding(self) -> OnboardingOrchestrator:
        """
        Returns the live onboarding run, starting one if none exists.

        Raises:
            AuthenticationError: If no one is logged in
        """
        if not self.facade.is_logged_in:
            raise AuthenticationError("Log in to start onboarding")

        if self.onboarding is not None and not self.onboarding.finished:
            return self.onboarding

        self.onboarding = OnboardingOrchestrator.for_user(
            self.session_store.get_user(),
            session_store=self.session_store,
            profile_service=self.profiles,
            subscription_service=self.subscriptions,
            auth_service=self.auth,
            on_finished=self._on_onboarding_finished,
            settle_seconds=self.config.ONBOARDING_SETTLE_SECONDS,
            auto_start_trial=self.config.ONBOARDING_AUTO_START_TRIAL,
        )
        self.last_onboarding_result = None
        logger.info(f"Onboarding started at {self.onboarding.step.value}")
        return self.onboarding

    def _on_onboarding_finished(self, state: OnboardingState) -> None:
        self.last_onboarding_result = state
        self.onboarding = None
        logger.info(f"Onboarding finished: {state.step.value}")

    def _on_logged_out(self, error: SessionExpiredError) -> None:
        if self.onboarding is not None:
            logger.info("Session lost, dropping onboarding run")
            self.onboarding.cancel()
        self.onboarding = None

    async def logout(self) -> None:
        onboarding, self.onboarding = self.onboarding, None
        if onboarding is not None:
            await onboarding.close()
        await self.auth.logout()

    async def close(self) -> None:
        if self.onboarding is not None:
            await self.onboarding.close()
        await self.api.close()
        await self.storage.close()
