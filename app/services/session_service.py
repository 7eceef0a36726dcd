"""
app/services/session_service.py

Purpose: Session store

- Sole writer of the session (tokens + user record)
- Persists under three fixed keys so a restart restores the session
- Token pair is always written and cleared together
- Readers get immutable snapshots; clear_all is never observed half-done
- Notifies listeners after every change
"""

import asyncio
import json
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from app.core.exceptions import ValidationError
from app.core.logging import get_logger, LogContext
from app.db.storage import KeyValueStore
from app.models.session import EMPTY_SESSION, Session
from app.models.user import UserRecord
from utils.constants import ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY, USER_DATA_KEY, SESSION_KEYS
from utils.token_utils import is_token_expired, token_fingerprint

logger = get_logger(__name__)

SessionListener = Callable[[Session], Any]


class SessionStore:
    """
    Holds the current session and mirrors it to durable storage.

    In-memory state is swapped before each storage write, so every read
    after a call returns the new state even while persistence is pending.
    """

    def __init__(self, storage: KeyValueStore):
        self.storage = storage
        self._session: Session = EMPTY_SESSION
        self._listeners: List[SessionListener] = []
        # storage writes land in call order
        self._write_lock = asyncio.Lock()

    @property
    def session(self) -> Session:
        return self._session

    @property
    def access_token(self) -> Optional[str]:
        return self._session.access_token

    @property
    def refresh_token(self) -> Optional[str]:
        return self._session.refresh_token

    def add_listener(self, listener: SessionListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: SessionListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _replace(self, session: Session) -> None:
        self._session = session
        for listener in list(self._listeners):
            listener(session)

    async def load(self) -> Session:
        """
        Restores the session from durable storage.

        A half-present token pair is discarded and removed from storage.
        A user record that no longer parses is dropped with a warning.

        Returns:
            The restored session snapshot
        """
        stored = await self.storage.get_many(SESSION_KEYS)
        access = stored.get(ACCESS_TOKEN_KEY) or None
        refresh = stored.get(REFRESH_TOKEN_KEY) or None

        if bool(access) != bool(refresh):
            logger.warning("Stored session has an incomplete token pair, discarding tokens")
            await self.storage.delete_many([ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY])
            access = refresh = None

        user = None
        raw_user = stored.get(USER_DATA_KEY)
        if raw_user:
            try:
                user = UserRecord.model_validate(json.loads(raw_user))
            except (json.JSONDecodeError, PydanticValidationError) as e:
                logger.warning(f"Stored user record unreadable, dropping it: {e}")
                await self.storage.delete_many([USER_DATA_KEY])

        self._replace(Session(access_token=access, refresh_token=refresh, user=user))

        logger.info(
            "Session restored",
            extra={
                "has_tokens": self._session.has_tokens,
                "has_user": user is not None,
                "user_id": user.id if user else None,
            }
        )
        return self._session

    async def set_tokens(self, access_token: str, refresh_token: str) -> None:
        """
        Stores a new token pair.

        Args:
            access_token: New access token
            refresh_token: New (or unchanged) refresh token

        Raises:
            ValidationError: If either member of the pair is empty
        """
        if not access_token or not refresh_token:
            raise ValidationError(
                "Both access and refresh tokens are required",
                details={
                    "access_token": bool(access_token),
                    "refresh_token": bool(refresh_token),
                },
            )

        self._replace(
            self._session.model_copy(
                update={"access_token": access_token, "refresh_token": refresh_token}
            )
        )
        async with self._write_lock:
            await self.storage.set_many({
                ACCESS_TOKEN_KEY: access_token,
                REFRESH_TOKEN_KEY: refresh_token,
            })

        logger.debug(
            "Tokens stored",
            extra={"token_fp": token_fingerprint(access_token)}
        )

    async def clear_all(self) -> None:
        """
        Removes both tokens and the user record.

        The in-memory snapshot is emptied in one step before storage is
        touched, so no reader sees cleared tokens next to a stale user.
        """
        user = self._session.user
        self._replace(EMPTY_SESSION)
        async with self._write_lock:
            await self.storage.delete_many(SESSION_KEYS)

        logger.info("Session cleared", extra={"user_id": user.id if user else None})

    def verify_token(self, buffer_seconds: float = 0) -> bool:
        """
        Checks that the access token is present, well-formed and unexpired.

        Never raises.

        Args:
            buffer_seconds: Treat the token as expired this many seconds early

        Returns:
            True if the access token can be used
        """
        token = self._session.access_token
        if not token:
            return False
        try:
            return not is_token_expired(token, buffer_seconds=buffer_seconds)
        except Exception:
            logger.debug("Token verification failed", exc_info=True)
            return False

    async def set_user(self, user: Union[UserRecord, Dict[str, Any], None]) -> Optional[UserRecord]:
        """
        Replaces the user record.

        Args:
            user: UserRecord, raw backend dict (any field spelling) or None

        Returns:
            The stored canonical record
        """
        if user is not None and not isinstance(user, UserRecord):
            user = UserRecord.model_validate(user)

        self._replace(self._session.model_copy(update={"user": user}))

        async with self._write_lock:
            if user is None:
                await self.storage.delete_many([USER_DATA_KEY])
            else:
                await self.storage.set_many({USER_DATA_KEY: json.dumps(user.to_storage())})

        with LogContext(user_id=user.id if user else None):
            logger.debug("User record stored")
        return user

    async def update_user(self, **fields) -> Optional[UserRecord]:
        """
        Merges fields into the current user record.

        Returns:
            The updated record, or None when no user is stored
        """
        current = self._session.user
        if current is None:
            logger.warning("update_user called without a stored user")
            return None
        return await self.set_user(current.merge(fields))

    def get_user(self) -> Optional[UserRecord]:
        return self._session.user
