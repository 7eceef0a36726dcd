"""
app/models/user.py

Purpose: Canonical user record

- Identity fields and verification flags
- KYC status and optional subscription flags
- Backend field-name variants (kyc_status / kycStatus / kyc.status, ...)
  are folded into one shape here and nowhere else
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, model_validator


class KycStatus(str, Enum):
    NOT_SUBMITTED = "not_submitted"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


# canonical field -> alternative spellings seen across endpoints
_FIELD_ALIASES: Dict[str, tuple] = {
    "id": ("user_id", "userId", "_id"),
    "full_name": ("fullName", "name"),
    "phone_verified": ("phoneVerified", "is_phone_verified"),
    "phone_verified_at": ("phoneVerifiedAt",),
    "profile_completed": ("profileCompleted", "is_profile_completed"),
    "date_of_birth": ("dateOfBirth", "dob"),
    "kyc_submitted_at": ("kycSubmittedAt",),
    "kyc_reviewed_at": ("kycReviewedAt",),
    "kyc_rejection_reason": ("kycRejectionReason",),
    "has_subscription": ("hasSubscription",),
    "subscription_active": ("subscriptionActive",),
    "subscription_status": ("subscriptionStatus",),
    "subscription_expires_at": ("subscriptionExpiresAt",),
    "is_active": ("isActive",),
    "is_verified": ("isVerified",),
    "can_invest": ("canInvest",),
    "created_at": ("createdAt",),
    "updated_at": ("updatedAt",),
    "last_login": ("lastLogin",),
}

# Statuses some endpoints report that mean "nothing on file"
_KYC_NOT_SUBMITTED_VARIANTS = {"", "none", "not_started", "not-submitted", "notsubmitted"}


def _normalize_kyc_status(value: Any) -> str:
    if isinstance(value, KycStatus):
        return value.value
    text = str(value or "").strip().lower()
    if text in _KYC_NOT_SUBMITTED_VARIANTS:
        return KycStatus.NOT_SUBMITTED.value
    if text in ("verified", "completed"):
        return KycStatus.APPROVED.value
    if text in ("submitted", "in_review", "under_review"):
        return KycStatus.PENDING.value
    return text


def normalize_user_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Folds backend field-name variants into canonical snake_case keys.

    Canonical keys win over variants when both are present. KYC status may
    arrive as `kyc_status`, `kycStatus` or nested under `kyc.status`.

    Args:
        payload: Raw user dict from any endpoint

    Returns:
        New dict with canonical keys
    """
    data = dict(payload)

    for canonical, variants in _FIELD_ALIASES.items():
        for variant in variants:
            if variant in data:
                value = data.pop(variant)
                data.setdefault(canonical, value)

    kyc = data.pop("kyc", None)
    kyc_status = data.pop("kyc_status", None)
    camel_status = data.pop("kycStatus", None)
    if kyc_status is None:
        kyc_status = camel_status
    if kyc_status is None and isinstance(kyc, dict):
        kyc_status = kyc.get("status")
        submitted_at = kyc.get("submitted_at") or kyc.get("submittedAt")
        reviewed_at = kyc.get("reviewed_at") or kyc.get("reviewedAt")
        if submitted_at:
            data.setdefault("kyc_submitted_at", submitted_at)
        if reviewed_at:
            data.setdefault("kyc_reviewed_at", reviewed_at)
    if kyc_status is not None:
        data["kyc_status"] = _normalize_kyc_status(kyc_status)

    if data.get("id") is not None:
        data["id"] = str(data["id"])

    return data


class UserRecord(BaseModel):
    """
    The single user shape every consumer reads.
    """
    model_config = ConfigDict(extra="ignore", use_enum_values=False)

    id: Optional[str] = None
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    phone_verified: bool = False
    phone_verified_at: Optional[datetime] = None
    profile_completed: bool = False

    date_of_birth: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None
    address: Optional[str] = None

    kyc_status: KycStatus = KycStatus.NOT_SUBMITTED
    kyc_submitted_at: Optional[datetime] = None
    kyc_reviewed_at: Optional[datetime] = None
    kyc_rejection_reason: Optional[str] = None

    has_subscription: Optional[bool] = None
    subscription_active: Optional[bool] = None
    subscription_status: Optional[str] = None
    subscription_expires_at: Optional[datetime] = None

    is_active: bool = True
    is_verified: bool = False
    can_invest: Optional[bool] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    last_login: Optional[datetime] = None

    @model_validator(mode="before")
    @classmethod
    def _canonicalize(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return normalize_user_payload(data)
        return data

    def merge(self, updates: Dict[str, Any]) -> "UserRecord":
        """
        Returns a new record with `updates` applied on top of this one.

        `updates` may use any backend spelling; only fields present in it
        are changed.
        """
        patch = UserRecord.model_validate(updates).model_dump(exclude_unset=True)
        current = self.model_dump()
        current.update(patch)
        return UserRecord.model_validate(current)

    def to_storage(self) -> Dict[str, Any]:
        """JSON-safe dict for durable storage."""
        return self.model_dump(mode="json")


def extract_user_payload(body: Any) -> Optional[Dict[str, Any]]:
    """
    Finds the user dict in a backend response.

    Endpoints answer with the user itself, {"user": {...}} or {"data": {...}}.
    """
    if not isinstance(body, dict):
        return None
    for key in ("user", "data"):
        nested = body.get(key)
        if isinstance(nested, dict):
            return nested
    return body
