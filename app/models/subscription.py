"""
app/models/subscription.py

Purpose: Subscription models

- Plans offered by the platform
- The user's subscription (owned by the backend, read-only here)
- Trial activation result
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from utils.time_utils import days_until


class SubscriptionStatus(str, Enum):
    TRIAL = "trial"
    ACTIVE = "active"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class SubscriptionPlan(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    description: Optional[str] = None
    price: Decimal = Decimal("0")
    currency: str = "USD"
    duration_days: Optional[int] = None
    features: Dict[str, Any] = Field(default_factory=dict)
    is_active: bool = True


class Subscription(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    status: SubscriptionStatus
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    renewal_date: Optional[datetime] = None
    auto_renew: bool = False
    is_trial: bool = False
    plan: Optional[SubscriptionPlan] = None

    @model_validator(mode="before")
    @classmethod
    def _canonicalize(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        status = str(data.get("status") or "").strip().lower()
        if status in ("canceled",):
            status = "cancelled"
        if status in ("trialing",):
            status = "trial"
        if data.get("is_trial") and status == "active":
            status = "trial"
        data["status"] = status
        if data.get("renewal_date") is None and data.get("auto_renew"):
            data["renewal_date"] = data.get("end_date")
        if data.get("id") is not None:
            data["id"] = str(data["id"])
        if isinstance(data.get("plan"), str):
            data["plan"] = {"id": data["plan"], "name": data["plan"]}
        return data

    @property
    def is_active(self) -> bool:
        """Trial or paid subscription that has not ended yet."""
        if self.status not in (SubscriptionStatus.TRIAL, SubscriptionStatus.ACTIVE):
            return False
        return self.end_date is None or self.days_remaining > 0

    @property
    def days_remaining(self) -> int:
        return days_until(self.end_date)


class TrialActivation(BaseModel):
    model_config = ConfigDict(extra="ignore")

    success: bool
    message: Optional[str] = None
    subscription: Optional[Subscription] = None
