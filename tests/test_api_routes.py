import json

from fastapi.testclient import TestClient

from app.context import AppContext
from app.core.config import Settings
from app.db.storage import MemoryKeyValueStore
from app.main import create_app
from utils.constants import ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY, USER_DATA_KEY

from conftest import BackendStub, make_token, make_user, request_json

BACKEND = "https://api.test/api/v1"


def make_client(stub: BackendStub, storage=None, **overrides) -> TestClient:
    config = Settings(
        SESSION_BACKEND="memory",
        API_BASE_URL=BACKEND,
        ONBOARDING_SETTLE_SECONDS=0,
        **overrides,
    )
    storage = storage if storage is not None else MemoryKeyValueStore()

    async def factory():
        return await AppContext.create(config=config, storage=storage, transport=stub.transport)

    return TestClient(create_app(factory))


def logged_in_storage(**user_fields) -> MemoryKeyValueStore:
    return MemoryKeyValueStore({
        ACCESS_TOKEN_KEY: make_token(),
        REFRESH_TOKEN_KEY: "refresh-1",
        USER_DATA_KEY: json.dumps(make_user(**user_fields)),
    })


def test_session_when_logged_out():
    with make_client(BackendStub()) as client:
        response = client.get("/api/v1/session")

    assert response.status_code == 200
    data = response.json()
    assert data["capabilities"]["is_logged_in"] is False
    assert data["user"] is None
    assert data["status"]["current_step"] == "login"


def test_session_is_restored_from_storage():
    with make_client(BackendStub(), storage=logged_in_storage(kyc_status="approved")) as client:
        data = client.get("/api/v1/session").json()

    assert data["capabilities"]["is_logged_in"] is True
    assert data["capabilities"]["can_make_investments"] is True
    assert data["user"]["id"] == "user-1"
    assert "access_token" not in json.dumps(data)


def test_register_sends_canonical_phone():
    stub = BackendStub({
        "POST /auth/register": (201, {"user_id": "user-1", "otp_sent": True, "message": "OTP sent"})
    })
    with make_client(stub) as client:
        response = client.post("/api/v1/auth/register", json={
            "full_name": "Jane Wanjiku",
            "email": "Jane@Example.com",
            "password": "Secret#123",
            "phone": "0712 345 678",
            "country_code": "KE",
        })

    assert response.status_code == 200
    assert response.json()["data"]["phone"] == "+254712345678"
    sent = request_json(stub.calls("POST", "/auth/register")[0])
    assert sent["phone"] == "+254712345678"
    assert sent["email"] == "jane@example.com"


def test_register_rejects_invalid_input_before_calling_backend():
    stub = BackendStub()
    with make_client(stub) as client:
        response = client.post("/api/v1/auth/register", json={
            "full_name": "Jane Wanjiku",
            "email": "not-an-email",
            "password": "weak",
            "phone": "123",
            "country_code": "KE",
        })

    assert response.status_code == 422
    body = response.json()
    assert body["code"] == "VALIDATION_ERROR"
    assert set(body["details"]) == {"email", "password", "phone"}
    assert stub.requests == []


def test_verify_phone_establishes_session():
    stub = BackendStub({
        "POST /auth/verify-phone": (200, {
            "success": True,
            "message": "Verified",
            "access_token": make_token(),
            "refresh_token": "refresh-1",
            "token_type": "bearer",
        }),
        "GET /auth/me": (200, {"user": make_user()}),
    })
    with make_client(stub) as client:
        response = client.post("/api/v1/auth/verify-phone", json={"phone": "+254712345678", "otp": "123456"})

    assert response.status_code == 200
    data = response.json()
    assert data["capabilities"]["can_access_protected_routes"] is True
    assert data["status"]["current_step"] == "profile_completion"


def test_verify_phone_rejects_malformed_otp():
    stub = BackendStub()
    with make_client(stub) as client:
        response = client.post("/api/v1/auth/verify-phone", json={"phone": "+254712345678", "otp": "12"})

    assert response.status_code == 422
    assert stub.requests == []


def test_login_with_wrong_password():
    stub = BackendStub({"POST /auth/login": (401, {"detail": "Invalid credentials"})})
    with make_client(stub) as client:
        response = client.post("/api/v1/auth/login", json={"identifier": "jane@example.com", "password": "x"})

    assert response.status_code == 401
    assert response.json()["code"] == "AUTHENTICATION_FAILED"


def test_logout_clears_session_even_if_backend_fails():
    storage = logged_in_storage()
    stub = BackendStub({"POST /auth/logout": (500, {})})
    with make_client(stub, storage=storage) as client:
        response = client.post("/api/v1/auth/logout")
        session = client.get("/api/v1/session").json()

    assert response.status_code == 200
    assert session["capabilities"]["is_logged_in"] is False
    assert storage.data == {}


def test_onboarding_requires_login():
    with make_client(BackendStub()) as client:
        response = client.post("/api/v1/onboarding/start")
    assert response.status_code == 401


def test_onboarding_without_run_is_not_found():
    with make_client(BackendStub(), storage=logged_in_storage()) as client:
        response = client.get("/api/v1/onboarding")
    assert response.status_code == 404


def test_onboarding_profile_then_trial_completes():
    stub = BackendStub({
        "PUT /auth/profile": (200, {"user": make_user(profile_completed=True, city="Nairobi")}),
        "POST /subscriptions/start-trial": (200, {
            "success": True,
            "message": "Trial started",
            "subscription": {"id": "sub-1", "status": "trial"},
        }),
        "GET /auth/me": (200, make_user(profile_completed=True, subscription_status="trial")),
    })
    with make_client(stub, storage=logged_in_storage()) as client:
        started = client.post("/api/v1/onboarding/start").json()
        assert started["step"] == "PROFILE_PENDING"

        done = client.post("/api/v1/onboarding/profile", json={
            "date_of_birth": "1990-04-12",
            "country": "Kenya",
            "city": "Nairobi",
            "address": "12 Kenyatta Avenue, Nairobi",
        }).json()
        after = client.get("/api/v1/onboarding").json()
        session = client.get("/api/v1/session").json()

    assert done["step"] == "COMPLETE"
    assert after["step"] == "COMPLETE"
    assert after["finished"] is True
    assert session["capabilities"]["has_active_subscription"] is True


def test_onboarding_profile_validation_error_is_reported_in_state():
    stub = BackendStub()
    with make_client(stub, storage=logged_in_storage()) as client:
        client.post("/api/v1/onboarding/start")
        data = client.post("/api/v1/onboarding/profile", json={
            "date_of_birth": "2020-01-01",
            "country": "Kenya",
            "city": "Nairobi",
            "address": "short",
        }).json()

    assert data["step"] == "PROFILE_PENDING"
    assert data["last_error"]["kind"] == "validation"
    assert set(data["last_error"]["field_errors"]) == {"date_of_birth", "address"}
    assert stub.requests == []


def test_trial_conflict_keeps_trial_pending():
    stub = BackendStub({
        "POST /subscriptions/start-trial": (409, {"detail": "Trial already used"}),
    })
    storage = logged_in_storage(profile_completed=True)
    with make_client(stub, storage=storage) as client:
        started = client.post("/api/v1/onboarding/start").json()
        assert started["step"] == "TRIAL_PENDING"

        data = client.post("/api/v1/onboarding/trial").json()

    assert data["step"] == "TRIAL_PENDING"
    assert data["last_error"]["kind"] == "conflict"
    assert data["last_error"]["recoverable"] is True


def test_skip_finishes_onboarding():
    with make_client(BackendStub(), storage=logged_in_storage()) as client:
        client.post("/api/v1/onboarding/start")
        skipped = client.post("/api/v1/onboarding/skip").json()
        after = client.get("/api/v1/onboarding").json()

    assert skipped["step"] == "SKIPPED"
    assert after["finished"] is True


def test_phone_normalize_endpoint():
    with make_client(BackendStub()) as client:
        valid = client.post("/api/v1/phone/normalize", json={"phone": "0712345678"}).json()
        partial = client.post("/api/v1/phone/normalize", json={"phone": "0712", "country_code": "KE"}).json()

    assert valid["valid"] is True
    assert valid["canonical"] == "+254712345678"
    assert partial["error_kind"] == "too_short"
    assert partial["display_message"] == ""


def test_countries_endpoint():
    with make_client(BackendStub()) as client:
        data = client.get("/api/v1/phone/countries").json()

    assert data["default_country"] == "KE"
    assert len(data["countries"]) == 35
    assert data["countries"][0]["popular"] is True


def test_health():
    with make_client(BackendStub()) as client:
        response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
