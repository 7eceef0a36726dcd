import asyncio
import json

import pytest

from app.core.exceptions import ValidationError
from app.db.storage import JsonFileKeyValueStore, MemoryKeyValueStore
from app.models.user import KycStatus
from app.services.session_service import SessionStore
from utils.constants import ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY, USER_DATA_KEY

from conftest import make_token, make_user


class TestVerifyToken:

    @pytest.mark.asyncio
    async def test_missing_token_is_invalid(self, session_store):
        assert session_store.verify_token() is False

    @pytest.mark.asyncio
    async def test_valid_token(self, session_store):
        await session_store.set_tokens(make_token(), "refresh-1")
        assert session_store.verify_token() is True

    @pytest.mark.asyncio
    async def test_expired_token(self, session_store):
        await session_store.set_tokens(make_token(expires_in=-10), "refresh-1")
        assert session_store.verify_token() is False

    @pytest.mark.asyncio
    async def test_buffer_treats_soon_expiring_token_as_stale(self, session_store):
        await session_store.set_tokens(make_token(expires_in=60), "refresh-1")
        assert session_store.verify_token() is True
        assert session_store.verify_token(buffer_seconds=300) is False

    @pytest.mark.asyncio
    async def test_malformed_token(self, storage):
        storage.data.update({ACCESS_TOKEN_KEY: "not-a-jwt", REFRESH_TOKEN_KEY: "refresh-1"})
        store = SessionStore(storage)
        await store.load()
        assert store.verify_token() is False

    @pytest.mark.asyncio
    async def test_token_without_exp_is_invalid(self, session_store):
        import jwt
        token = jwt.encode({"sub": "user-1"}, "secret", algorithm="HS256")
        await session_store.set_tokens(token, "refresh-1")
        assert session_store.verify_token() is False


@pytest.mark.asyncio
async def test_empty_token_rejected(session_store):
    with pytest.raises(ValidationError):
        await session_store.set_tokens("", "refresh-1")
    with pytest.raises(ValidationError):
        await session_store.set_tokens(make_token(), "")
    assert session_store.access_token is None


@pytest.mark.asyncio
async def test_tokens_and_user_persist_across_reload(storage, session_store):
    access = make_token()
    await session_store.set_tokens(access, "refresh-1")
    user = make_user()
    del user["kyc_status"]
    user["kycStatus"] = "approved"
    await session_store.set_user(user)

    reloaded = SessionStore(storage)
    session = await reloaded.load()

    assert session.access_token == access
    assert session.refresh_token == "refresh-1"
    assert session.user.id == "user-1"
    assert session.user.kyc_status is KycStatus.APPROVED


@pytest.mark.asyncio
async def test_half_present_token_pair_is_discarded():
    storage = MemoryKeyValueStore({ACCESS_TOKEN_KEY: make_token()})
    store = SessionStore(storage)
    session = await store.load()

    assert session.access_token is None
    assert session.refresh_token is None
    assert ACCESS_TOKEN_KEY not in storage.data


@pytest.mark.asyncio
async def test_unreadable_user_record_is_dropped():
    storage = MemoryKeyValueStore({USER_DATA_KEY: "{not json"})
    store = SessionStore(storage)
    session = await store.load()

    assert session.user is None
    assert USER_DATA_KEY not in storage.data


@pytest.mark.asyncio
async def test_clear_all_removes_everything(storage, session_store):
    await session_store.set_tokens(make_token(), "refresh-1")
    await session_store.set_user(make_user())

    await session_store.clear_all()

    assert session_store.access_token is None
    assert session_store.refresh_token is None
    assert session_store.get_user() is None
    assert storage.data == {}


@pytest.mark.asyncio
async def test_clear_all_is_never_observed_half_done(session_store):
    await session_store.set_tokens(make_token(), "refresh-1")
    await session_store.set_user(make_user())

    seen = []
    session_store.add_listener(seen.append)
    await session_store.clear_all()

    # one notification, already fully empty
    assert len(seen) == 1
    snapshot = seen[0]
    assert snapshot.access_token is None
    assert snapshot.refresh_token is None
    assert snapshot.user is None


class SlowWriteStore(MemoryKeyValueStore):
    """Memory store whose writes take a while, like a remote backend."""

    async def set_many(self, items):
        await asyncio.sleep(0.02)
        await super().set_many(items)


@pytest.mark.asyncio
async def test_clear_all_during_slow_write_leaves_storage_empty():
    storage = SlowWriteStore()
    store = SessionStore(storage)

    write = asyncio.ensure_future(store.set_tokens(make_token(), "refresh-1"))
    await asyncio.sleep(0)
    await store.clear_all()
    await write

    assert store.session.has_tokens is False
    assert storage.data == {}

    restored = SessionStore(storage)
    await restored.load()
    assert restored.verify_token() is False


@pytest.mark.asyncio
async def test_update_user_merges_fields(session_store):
    await session_store.set_user(make_user())
    updated = await session_store.update_user(profileCompleted=True, city="Nairobi")

    assert updated.profile_completed is True
    assert updated.city == "Nairobi"
    assert updated.email == "jane@example.com"


@pytest.mark.asyncio
async def test_update_user_without_user(session_store):
    assert await session_store.update_user(city="Nairobi") is None


@pytest.mark.asyncio
async def test_json_file_backend_round_trip(tmp_path):
    path = tmp_path / "session" / "session.json"
    store = SessionStore(JsonFileKeyValueStore(str(path)))
    await store.set_tokens(make_token(), "refresh-1")
    await store.set_user(make_user())

    on_disk = json.loads(path.read_text())
    assert on_disk[REFRESH_TOKEN_KEY] == "refresh-1"

    restored = SessionStore(JsonFileKeyValueStore(str(path)))
    session = await restored.load()
    assert session.has_tokens
    assert session.user.full_name == "Jane Wanjiku"

    await restored.clear_all()
    assert json.loads(path.read_text()) == {}
