"""
app/services/subscription_service.py

Purpose: Subscription calls

- Plans, the user's subscription, trial activation
- Subscribe and cancel
- Keeps the subscription flags on the stored user current
"""

from typing import List, Optional

from app.core.exceptions import ExternalServiceError, ResourceNotFoundError
from app.core.logging import get_logger
from app.models.subscription import Subscription, SubscriptionPlan, TrialActivation
from app.services.api_client import ApiClient
from app.services.session_service import SessionStore
from utils.constants import (
    SUBSCRIPTION_CANCEL_PATH,
    SUBSCRIPTION_MINE_PATH,
    SUBSCRIPTION_PLANS_PATH,
    SUBSCRIPTION_SUBSCRIBE_PATH,
    SUBSCRIPTION_TRIAL_PATH,
    TRIAL_NETWORK_MESSAGE,
)

logger = get_logger(__name__)


class SubscriptionService:

    def __init__(self, api: ApiClient, session_store: SessionStore):
        self.api = api
        self.session_store = session_store

    async def _mirror(self, subscription: Optional[Subscription]) -> None:
        if self.session_store.get_user() is None:
            return
        if subscription is None:
            await self.session_store.update_user(
                has_subscription=False,
                subscription_active=False,
                subscription_status=None,
            )
            return
        await self.session_store.update_user(
            has_subscription=True,
            subscription_active=subscription.is_active,
            subscription_status=subscription.status.value,
            subscription_expires_at=subscription.end_date,
        )

    async def get_plans(self) -> List[SubscriptionPlan]:
        body = await self.api.get(SUBSCRIPTION_PLANS_PATH)
        if isinstance(body, dict):
            body = body.get("plans") or body.get("data") or []
        return [SubscriptionPlan.model_validate(item) for item in body or []]

    async def get_my_subscription(self) -> Optional[Subscription]:
        """
        Returns the user's subscription, or None if they have none.
        """
        try:
            body = await self.api.get(SUBSCRIPTION_MINE_PATH)
        except ResourceNotFoundError:
            await self._mirror(None)
            return None

        if isinstance(body, dict) and isinstance(body.get("subscription"), dict):
            body = body["subscription"]
        if not body:
            await self._mirror(None)
            return None

        subscription = Subscription.model_validate(body)
        await self._mirror(subscription)
        return subscription

    async def start_free_trial(self) -> TrialActivation:
        """
        Activates the free trial.

        Raises:
            ConflictError: Trial already used or subscription exists
            ForbiddenError: Profile not complete
            ExternalServiceError: Backend answered success=false
        """
        body = await self.api.post(SUBSCRIPTION_TRIAL_PATH, json={})
        activation = TrialActivation.model_validate(body or {"success": False})

        if not activation.success:
            logger.error(f"Trial activation refused: {activation.message}")
            raise ExternalServiceError(activation.message or TRIAL_NETWORK_MESSAGE)

        logger.info("🎉 Free trial activated")
        if activation.subscription is not None:
            await self._mirror(activation.subscription)
        elif self.session_store.get_user() is not None:
            await self.session_store.update_user(
                has_subscription=True,
                subscription_active=True,
                subscription_status="trial",
            )
        return activation

    async def subscribe(self, plan_id: str) -> Subscription:
        body = await self.api.post(SUBSCRIPTION_SUBSCRIBE_PATH, json={"plan_id": plan_id})
        if isinstance(body, dict) and isinstance(body.get("subscription"), dict):
            body = body["subscription"]
        subscription = Subscription.model_validate(body)
        await self._mirror(subscription)
        logger.info(f"Subscribed to plan {plan_id}")
        return subscription

    async def cancel_subscription(self, subscription_id: str) -> None:
        await self.api.post(
            f"{SUBSCRIPTION_CANCEL_PATH}/{subscription_id}",
            json={},
        )
        logger.info(f"Subscription {subscription_id} cancelled")
        if self.session_store.get_user() is not None:
            await self.session_store.update_user(
                subscription_active=False,
                subscription_status="cancelled",
            )
