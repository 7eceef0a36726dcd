"""
app/models/session.py

Purpose: Session document model

- Access/refresh token pair (always written and cleared together)
- Current user record
- Immutable snapshots: the session store swaps whole objects
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.user import UserRecord


class TokenPair(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    access_token: str = Field(..., min_length=1)
    refresh_token: Optional[str] = None
    token_type: str = "bearer"


class Session(BaseModel):
    """
    Snapshot of the authenticated session.

    Never mutated in place; the session store replaces the whole snapshot
    so a reader sees either the old or the new state, never a mix.
    """
    model_config = ConfigDict(frozen=True)

    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    user: Optional[UserRecord] = None

    @property
    def has_tokens(self) -> bool:
        return bool(self.access_token and self.refresh_token)


EMPTY_SESSION = Session()
