from datetime import date

import pytest

from app.core.exceptions import ConflictError, ExternalServiceError, ValidationError
from app.models.subscription import SubscriptionStatus
from app.models.user import KycStatus
from app.services.api_client import ApiClient
from app.services.auth_service import AuthService
from app.services.subscription_service import SubscriptionService
from app.services.token_service import TokenManager
from app.services.user_service import ProfileService, validate_profile

from conftest import BackendStub, make_token, make_user, request_json

BASE_URL = "https://api.test/api/v1"

PROFILE = {
    "date_of_birth": "1990-04-12",
    "country": "Kenya",
    "city": " Nairobi ",
    "address": "12 Kenyatta Avenue, Nairobi",
}


async def logged_in(session_store, **user_fields):
    await session_store.set_tokens(make_token(), "refresh-1")
    await session_store.set_user(make_user(**user_fields))


def build_api(session_store, stub: BackendStub) -> ApiClient:
    api = ApiClient(BASE_URL, transport=stub.transport)
    api.attach_token_manager(TokenManager(session_store, AuthService(api, session_store).refresh_tokens))
    return api


def test_validate_profile_cleans_input():
    profile = validate_profile(PROFILE)
    assert profile.city == "Nairobi"
    assert profile.date_of_birth == date(1990, 4, 12)


def test_validate_profile_collects_field_errors():
    with pytest.raises(ValidationError) as exc_info:
        validate_profile({**PROFILE, "date_of_birth": "2099-01-01", "city": "N", "address": "short"})

    details = exc_info.value.details
    assert details["date_of_birth"] == "Date of birth cannot be in the future"
    assert set(details) == {"date_of_birth", "city", "address"}


def test_validate_profile_minimum_age():
    today = date.today()
    too_young = date(today.year - 17, 1, 1)
    with pytest.raises(ValidationError) as exc_info:
        validate_profile({**PROFILE, "date_of_birth": too_young.isoformat()})
    assert "18" in exc_info.value.details["date_of_birth"]


@pytest.mark.asyncio
async def test_submit_profile_stores_returned_user(session_store):
    await logged_in(session_store)
    stub = BackendStub({"PUT /auth/profile": (200, {"user": make_user(profile_completed=True, city="Nairobi")})})
    api = build_api(session_store, stub)

    user = await ProfileService(api, session_store).submit_profile(PROFILE)

    assert user.profile_completed is True
    assert session_store.get_user().city == "Nairobi"
    assert request_json(stub.requests[0])["date_of_birth"] == "1990-04-12"
    await api.close()


@pytest.mark.asyncio
async def test_submit_profile_without_user_in_response(session_store):
    await logged_in(session_store)
    stub = BackendStub({"PUT /auth/profile": (200, {"success": True})})
    api = build_api(session_store, stub)

    user = await ProfileService(api, session_store).submit_profile(PROFILE)

    assert user.profile_completed is True
    assert user.city == "Nairobi"
    assert user.email == "jane@example.com"
    await api.close()


@pytest.mark.asyncio
async def test_invalid_profile_never_reaches_backend(session_store):
    await logged_in(session_store)
    stub = BackendStub()
    api = build_api(session_store, stub)

    with pytest.raises(ValidationError):
        await ProfileService(api, session_store).submit_profile({**PROFILE, "address": ""})
    assert stub.requests == []
    await api.close()


@pytest.mark.asyncio
async def test_kyc_status_is_mirrored_into_user(session_store):
    await logged_in(session_store)
    stub = BackendStub({"GET /kyc/status": (200, {"status": "pending", "submitted_at": "2026-01-05T10:00:00Z"})})
    api = build_api(session_store, stub)

    info = await ProfileService(api, session_store).get_kyc_status()

    assert info.status is KycStatus.PENDING
    assert info.submitted_at is not None
    assert session_store.get_user().kyc_status is KycStatus.PENDING
    await api.close()


@pytest.mark.asyncio
async def test_no_subscription_is_none(session_store):
    await logged_in(session_store, has_subscription=True)
    stub = BackendStub({"GET /subscriptions/my-subscription": (404, {"detail": "No subscription"})})
    api = build_api(session_store, stub)

    assert await SubscriptionService(api, session_store).get_my_subscription() is None
    assert session_store.get_user().has_subscription is False
    await api.close()


@pytest.mark.asyncio
async def test_start_free_trial_updates_user(session_store):
    await logged_in(session_store, profile_completed=True)
    stub = BackendStub({
        "POST /subscriptions/start-trial": (200, {
            "success": True,
            "subscription": {"id": "sub-1", "status": "trial"},
        })
    })
    api = build_api(session_store, stub)

    activation = await SubscriptionService(api, session_store).start_free_trial()

    assert activation.subscription.status is SubscriptionStatus.TRIAL
    user = session_store.get_user()
    assert user.subscription_active is True
    assert user.subscription_status == "trial"
    await api.close()


@pytest.mark.asyncio
async def test_trial_refused_with_success_false(session_store):
    await logged_in(session_store, profile_completed=True)
    stub = BackendStub({"POST /subscriptions/start-trial": (200, {"success": False, "message": "Not eligible"})})
    api = build_api(session_store, stub)

    with pytest.raises(ExternalServiceError) as exc_info:
        await SubscriptionService(api, session_store).start_free_trial()
    assert exc_info.value.message == "Not eligible"
    await api.close()


@pytest.mark.asyncio
async def test_trial_already_used_is_conflict(session_store):
    await logged_in(session_store, profile_completed=True)
    stub = BackendStub({"POST /subscriptions/start-trial": (409, {"detail": "Trial already used"})})
    api = build_api(session_store, stub)

    with pytest.raises(ConflictError):
        await SubscriptionService(api, session_store).start_free_trial()
    await api.close()


@pytest.mark.asyncio
async def test_plans_envelope(session_store):
    await logged_in(session_store)
    stub = BackendStub({
        "GET /subscriptions/plans": (200, {"plans": [
            {"id": "basic", "name": "Basic", "price": "9.99"},
            {"id": "pro", "name": "Pro", "price": "19.99"},
        ]})
    })
    api = build_api(session_store, stub)

    plans = await SubscriptionService(api, session_store).get_plans()
    assert [plan.id for plan in plans] == ["basic", "pro"]
    await api.close()
