from datetime import datetime, timedelta, timezone

from app.models.subscription import Subscription, SubscriptionStatus
from app.models.user import KycStatus, UserRecord, extract_user_payload


def test_camel_case_fields_are_normalized():
    user = UserRecord.model_validate({
        "userId": 42,
        "fullName": "Jane Wanjiku",
        "phoneVerified": True,
        "profileCompleted": True,
        "kycStatus": "PENDING",
    })
    assert user.id == "42"
    assert user.full_name == "Jane Wanjiku"
    assert user.phone_verified is True
    assert user.profile_completed is True
    assert user.kyc_status is KycStatus.PENDING


def test_nested_kyc_object():
    submitted = "2026-01-05T10:00:00Z"
    user = UserRecord.model_validate({"id": "1", "kyc": {"status": "rejected", "submittedAt": submitted}})
    assert user.kyc_status is KycStatus.REJECTED
    assert user.kyc_submitted_at == datetime(2026, 1, 5, 10, 0, tzinfo=timezone.utc)


def test_canonical_spelling_wins_over_variant():
    user = UserRecord.model_validate({"kyc_status": "approved", "kycStatus": "pending"})
    assert user.kyc_status is KycStatus.APPROVED


def test_missing_kyc_means_not_submitted():
    assert UserRecord.model_validate({"id": "1"}).kyc_status is KycStatus.NOT_SUBMITTED
    assert UserRecord.model_validate({"kyc_status": "none"}).kyc_status is KycStatus.NOT_SUBMITTED


def test_merge_only_touches_given_fields():
    user = UserRecord.model_validate({"id": "1", "email": "jane@example.com", "kyc_status": "approved"})
    merged = user.merge({"cityName": "ignored", "city": "Nairobi"})
    assert merged.city == "Nairobi"
    assert merged.kyc_status is KycStatus.APPROVED
    assert merged.email == "jane@example.com"


def test_storage_round_trip_keeps_fields():
    user = UserRecord.model_validate({"id": "1", "kycStatus": "approved", "phone_verified": True})
    restored = UserRecord.model_validate(user.to_storage())
    assert restored == user


def test_extract_user_payload_envelopes():
    user = {"id": "1"}
    assert extract_user_payload({"user": user}) == user
    assert extract_user_payload({"data": user}) == user
    assert extract_user_payload(user) == user
    assert extract_user_payload(None) is None


def test_subscription_status_variants():
    end = datetime.now(timezone.utc) + timedelta(days=10)
    subscription = Subscription.model_validate({
        "id": 7, "status": "trialing", "end_date": end.isoformat(), "plan": "basic"
    })
    assert subscription.id == "7"
    assert subscription.status is SubscriptionStatus.TRIAL
    assert subscription.is_active
    assert subscription.days_remaining in (10, 11)
    assert subscription.plan.name == "basic"


def test_ended_subscription_is_not_active():
    end = datetime.now(timezone.utc) - timedelta(days=1)
    subscription = Subscription.model_validate({"status": "active", "end_date": end.isoformat()})
    assert not subscription.is_active
    assert subscription.days_remaining == 0
