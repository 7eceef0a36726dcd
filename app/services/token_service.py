"""
app/services/token_service.py

Purpose: Access token lifecycle

- Hands out a valid access token, refreshing ahead of expiry
- Collapses concurrent refreshes into one shared in-flight task
- Retries a refresh once on transient network failure
- Any other refresh rejection (or exhausted retries) clears the session and
  raises SessionExpiredError, the logged-out signal
- A refresh that resolves after logout is discarded, never stored
"""

import asyncio
from typing import Any, Awaitable, Callable, List, Optional

from app.core.exceptions import AuthenticationError, CapitalizedError, NetworkError, SessionExpiredError
from app.core.logging import get_logger
from app.models.session import TokenPair
from app.services.session_service import SessionStore
from utils.token_utils import token_fingerprint

logger = get_logger(__name__)

Refresher = Callable[[str], Awaitable[TokenPair]]
LogoutListener = Callable[[SessionExpiredError], Any]


class TokenManager:
    """
    Ensures callers always get a usable access token.

    Args:
        session_store: Owner of the token pair
        refresher: Coroutine exchanging a refresh token for a new pair
        refresh_buffer_seconds: Refresh this long before `exp`
        network_retries: Extra attempts after a transient refresh failure
    """

    def __init__(
        self,
        session_store: SessionStore,
        refresher: Refresher,
        refresh_buffer_seconds: float = 300,
        network_retries: int = 1,
    ):
        self.session_store = session_store
        self.refresher = refresher
        self.refresh_buffer_seconds = refresh_buffer_seconds
        self.network_retries = network_retries
        self._inflight: Optional[asyncio.Task] = None
        self._logout_listeners: List[LogoutListener] = []
        self.refresh_count = 0

    def add_logout_listener(self, listener: LogoutListener) -> None:
        self._logout_listeners.append(listener)

    @property
    def refresh_in_progress(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    async def ensure_valid_access_token(self) -> str:
        """
        Returns the current access token, refreshing it first if it is
        missing, malformed or about to expire.

        Raises:
            SessionExpiredError: If the session could not be renewed
        """
        if self.session_store.verify_token(buffer_seconds=self.refresh_buffer_seconds):
            return self.session_store.access_token
        return await self._refresh_shared()

    async def refresh_access_token(self, stale_token: Optional[str] = None) -> str:
        """
        Forces a refresh after the backend rejected `stale_token`.

        If another caller already replaced that token with a valid one,
        the newer token is returned without another network call.
        """
        current = self.session_store.access_token
        if (
            stale_token is not None
            and current
            and current != stale_token
            and self.session_store.verify_token()
        ):
            return current
        return await self._refresh_shared()

    async def _refresh_shared(self) -> str:
        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.ensure_future(self._refresh())
        else:
            logger.debug("Joining in-flight token refresh")
        # shield: one cancelled caller must not cancel the refresh for the rest
        return await asyncio.shield(self._inflight)

    async def _refresh(self) -> str:
        refresh_token = self.session_store.refresh_token
        if not refresh_token:
            await self._logout("No refresh token available")

        attempts = 1 + self.network_retries
        for attempt in range(1, attempts + 1):
            try:
                self.refresh_count += 1
                logger.info(f"Refreshing access token (attempt {attempt}/{attempts})")
                pair = await self.refresher(refresh_token)
            except AuthenticationError as e:
                logger.warning(f"Refresh token rejected: {e.message}")
                await self._logout("Refresh token rejected", cause=e)
            except NetworkError as e:
                if attempt < attempts:
                    logger.warning(f"Token refresh failed on network, retrying: {e.message}")
                    continue
                logger.error(f"Token refresh failed after {attempts} attempts: {e.message}")
                await self._logout("Token refresh kept failing", cause=e)
            except CapitalizedError as e:
                logger.warning(f"Refresh rejected with {e.code}: {e.message}")
                await self._logout("Refresh token rejected", cause=e)
            else:
                if self.session_store.refresh_token != refresh_token:
                    return self._discard_stale_refresh()
                await self.session_store.set_tokens(
                    pair.access_token,
                    pair.refresh_token or refresh_token,
                )
                logger.info(
                    "Access token refreshed",
                    extra={"token_fp": token_fingerprint(pair.access_token)}
                )
                return pair.access_token

        # unreachable: every branch above returns or raises
        raise SessionExpiredError()

    def _discard_stale_refresh(self) -> str:
        # session was cleared or replaced while the refresh was in flight
        if self.session_store.verify_token(buffer_seconds=self.refresh_buffer_seconds):
            logger.info("Refresh superseded by a newer session, keeping it")
            return self.session_store.access_token
        logger.info("Session ended during refresh, discarding the new tokens")
        raise SessionExpiredError(details={"reason": "Session ended during refresh"})

    async def _logout(self, reason: str, cause: Optional[Exception] = None) -> None:
        await self.session_store.clear_all()
        error = SessionExpiredError(details={"reason": reason})
        for listener in list(self._logout_listeners):
            listener(error)
        if cause is not None:
            raise error from cause
        raise error

    async def force_logout(self, reason: str) -> None:
        """
        Clears the session and raises SessionExpiredError.
        Used when the backend keeps rejecting a freshly refreshed token.
        """
        logger.warning(f"Forcing logout: {reason}")
        await self._logout(reason)
