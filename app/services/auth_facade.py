"""
app/services/auth_facade.py

Purpose: Capability checks for the UI

- Pure reads of the session store, recomputed on every access
- The UI asks these questions instead of looking at tokens
"""

from typing import Optional

from pydantic import BaseModel

from app.models.user import KycStatus, UserRecord
from app.services.session_service import SessionStore


class Capabilities(BaseModel):
    is_logged_in: bool
    is_authenticated: bool
    is_phone_verified: bool
    is_profile_completed: bool
    can_access_protected_routes: bool
    can_make_investments: bool
    has_active_subscription: bool
    kyc_status: Optional[KycStatus] = None


class AuthFacade:
    """
    Boolean capabilities derived from the current session.
    Nothing is cached; each property reads the store again.
    """

    def __init__(self, session_store: SessionStore):
        self.session_store = session_store

    @property
    def user(self) -> Optional[UserRecord]:
        return self.session_store.get_user()

    @property
    def is_authenticated(self) -> bool:
        return self.session_store.verify_token()

    @property
    def is_logged_in(self) -> bool:
        return self.is_authenticated and self.user is not None

    @property
    def is_phone_verified(self) -> bool:
        user = self.user
        return bool(user and user.phone_verified)

    @property
    def is_profile_completed(self) -> bool:
        user = self.user
        return bool(user and user.profile_completed)

    @property
    def can_access_protected_routes(self) -> bool:
        return self.is_authenticated and self.is_phone_verified

    @property
    def kyc_status(self) -> Optional[KycStatus]:
        user = self.user
        return user.kyc_status if user else None

    @property
    def is_kyc_approved(self) -> bool:
        return self.kyc_status is KycStatus.APPROVED

    @property
    def is_kyc_pending(self) -> bool:
        return self.kyc_status is KycStatus.PENDING

    @property
    def is_kyc_rejected(self) -> bool:
        return self.kyc_status is KycStatus.REJECTED

    @property
    def can_make_investments(self) -> bool:
        return self.can_access_protected_routes and self.is_kyc_approved

    @property
    def has_active_subscription(self) -> bool:
        user = self.user
        if user is None:
            return False
        if user.subscription_active is not None:
            return user.subscription_active
        return user.subscription_status in ("trial", "active")

    def snapshot(self) -> Capabilities:
        return Capabilities(
            is_logged_in=self.is_logged_in,
            is_authenticated=self.is_authenticated,
            is_phone_verified=self.is_phone_verified,
            is_profile_completed=self.is_profile_completed,
            can_access_protected_routes=self.can_access_protected_routes,
            can_make_investments=self.can_make_investments,
            has_active_subscription=self.has_active_subscription,
            kyc_status=self.kyc_status,
        )
